"""
Domain schemas package - Pydantic models for validation.
"""

from domain.schemas.record_schemas import TokenRecord, FoodRecord, IdempotencyRecord
from domain.schemas.food_schemas import (
    FoodCreate,
    FoodRegister,
    FoodRegistrationResponse,
    FoodResponse,
)
from domain.schemas.meal_schemas import (
    MealItem,
    MealLogRequest,
    LoggedItem,
    MealLogResponse,
)

__all__ = [
    # Storage records
    "TokenRecord",
    "FoodRecord",
    "IdempotencyRecord",
    # Food schemas
    "FoodCreate",
    "FoodRegister",
    "FoodRegistrationResponse",
    "FoodResponse",
    # Meal schemas
    "MealItem",
    "MealLogRequest",
    "LoggedItem",
    "MealLogResponse",
]
