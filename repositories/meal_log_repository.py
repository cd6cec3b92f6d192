"""Repository for MealLog data access"""

import time
from sqlalchemy.orm import Session

from repositories.base import MealLogRepository, SQLRepository
from domain.models import MealLog


class SQLMealLogRepository(SQLRepository[MealLog], MealLogRepository):
    """Repository for the meal-log audit table"""

    def __init__(self, db: Session):
        super().__init__(db, MealLog)

    def append(
        self, date: str, meal_type_id: int, request_json: str, upstream_response_json: str
    ) -> None:
        """
        Create a new audit entry.

        Args:
            date: Day the meal was logged on (YYYY-MM-DD)
            meal_type_id: Fitbit meal type id
            request_json: Full validated request
            upstream_response_json: Per-item results returned by Fitbit
        """
        self._save(
            MealLog(
                date=date,
                meal_type_id=meal_type_id,
                request_json=request_json,
                upstream_response_json=upstream_response_json,
                created_at=int(time.time()),
            )
        )
