"""Services package - Business logic layer"""

from services.token_service import TokenManager
from services.fitbit_service import FitbitService
from services.idempotency_service import IdempotencyGuard
from services.food_service import FoodService, normalize_canonical_name
from services.meal_service import MealLogService

__all__ = [
    "TokenManager",
    "FitbitService",
    "IdempotencyGuard",
    "FoodService",
    "normalize_canonical_name",
    "MealLogService",
]
