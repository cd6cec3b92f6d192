"""
App package - Application configuration and core utilities.
Contains settings, exceptions, and foundational application code.
"""

from app.config import settings
from app.exceptions import (
    ServiceError,
    ServiceValidationError,
    ConflictError,
    UnauthorizedError,
    NoCredentialsError,
    UpstreamAuthError,
    UpstreamError,
)

__all__ = [
    "settings",
    "ServiceError",
    "ServiceValidationError",
    "ConflictError",
    "UnauthorizedError",
    "NoCredentialsError",
    "UpstreamAuthError",
    "UpstreamError",
]
