"""
Domain models package - SQLAlchemy ORM models.
"""

from domain.models.database import (
    Base,
    engine,
    SessionLocal,
    build_engine,
    init_database,
)
from domain.models.oauth_token import OAuthToken, SINGLETON_TOKEN_ID
from domain.models.food import Food
from domain.models.idempotency import IdempotencyKey
from domain.models.meal_log import MealLog

__all__ = [
    # Database
    "Base",
    "engine",
    "SessionLocal",
    "build_engine",
    "init_database",
    # Credential
    "OAuthToken",
    "SINGLETON_TOKEN_ID",
    # Food registry
    "Food",
    # Meal logging
    "IdempotencyKey",
    "MealLog",
]
