"""API routes package"""

from . import health, auth, foods, meals, units

__all__ = ["health", "auth", "foods", "meals", "units"]
