"""
Repositories package - Data access layer.
"""

from sqlalchemy.orm import Session
from pymongo.database import Database

from repositories.base import (
    CredentialRepository,
    FoodRepository,
    IdempotencyRepository,
    MealLogRepository,
    SQLRepository,
    Storage,
)
from repositories.token_repository import SQLCredentialRepository
from repositories.food_repository import SQLFoodRepository
from repositories.idempotency_repository import SQLIdempotencyRepository
from repositories.meal_log_repository import SQLMealLogRepository
from repositories.mongo_repository import (
    MongoCredentialRepository,
    MongoFoodRepository,
    MongoIdempotencyRepository,
    MongoMealLogRepository,
)


def sql_storage(db: Session) -> Storage:
    """Storage bundle sharing one SQLAlchemy session"""
    return Storage(
        credentials=SQLCredentialRepository(db),
        foods=SQLFoodRepository(db),
        idempotency=SQLIdempotencyRepository(db),
        meal_logs=SQLMealLogRepository(db),
    )


def mongo_storage(db: Database) -> Storage:
    """Storage bundle over one Mongo database"""
    return Storage(
        credentials=MongoCredentialRepository(db),
        foods=MongoFoodRepository(db),
        idempotency=MongoIdempotencyRepository(db),
        meal_logs=MongoMealLogRepository(db),
    )


__all__ = [
    "CredentialRepository",
    "FoodRepository",
    "IdempotencyRepository",
    "MealLogRepository",
    "SQLRepository",
    "Storage",
    "SQLCredentialRepository",
    "SQLFoodRepository",
    "SQLIdempotencyRepository",
    "SQLMealLogRepository",
    "MongoCredentialRepository",
    "MongoFoodRepository",
    "MongoIdempotencyRepository",
    "MongoMealLogRepository",
    "sql_storage",
    "mongo_storage",
]
