"""
Domain enums for MealBridge.
"""

import enum


class IdempotencyDecision(str, enum.Enum):
    """Outcome of checking an idempotency key before executing a request"""

    FRESH = "fresh"
    REPLAY = "replay"
    CONFLICT = "conflict"


class RegistrationOutcome(str, enum.Enum):
    """Whether a food registration inserted a new record or replaced one"""

    CREATED = "created"
    UPDATED = "updated"
