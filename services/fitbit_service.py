"""Fitbit REST operations used by the food and meal workflows"""

import json
import logging
from typing import Any, Optional

from adapters.fitbit_client import (
    CREATE_FOOD_PATH,
    LOG_FOOD_PATH,
    UNITS_PATH,
    FitbitClient,
)
from app.exceptions import UpstreamError
from services.token_service import TokenManager

logger = logging.getLogger("mealbridge.fitbit_service")


class FitbitService:
    """Authenticated calls to Fitbit; each call fetches a valid token first"""

    def __init__(self, tokens: TokenManager, client: FitbitClient):
        self.tokens = tokens
        self.client = client

    def _call(self, method: str, path: str, fields: Optional[dict] = None) -> Any:
        access_token = self.tokens.get_valid_access_token()
        return self.client.api_request(method, path, access_token, fields)

    def create_food(
        self,
        name: str,
        default_unit_id: int,
        default_serving_size: float,
        calories: float,
        protein: Optional[float] = None,
        carbs: Optional[float] = None,
        fat: Optional[float] = None,
    ) -> int:
        """Create a custom food and return the id Fitbit assigned to it."""
        data = self._call(
            "POST",
            CREATE_FOOD_PATH,
            {
                "name": name,
                "defaultFoodMeasurementUnitId": default_unit_id,
                "defaultServingSize": default_serving_size,
                "calories": calories,
                "protein": protein,
                "carbs": carbs,
                "fat": fat,
            },
        )
        try:
            return int(data["food"]["foodId"])
        except (KeyError, TypeError, ValueError):
            raise UpstreamError(
                200, json.dumps(data), "Fitbit create-food response had no food id"
            )

    def log_food(
        self,
        food_id: int,
        meal_type_id: int,
        unit_id: int,
        amount: float,
        date: str,
        food_name: Optional[str] = None,
    ) -> Optional[int]:
        """Log one food entry and return Fitbit's log id (None if absent)."""
        data = self._call(
            "POST",
            LOG_FOOD_PATH,
            {
                "foodId": food_id,
                "mealTypeId": meal_type_id,
                "unitId": unit_id,
                "amount": amount,
                "date": date,
                "foodName": food_name,
            },
        )
        log_id = ((data or {}).get("foodLog") or {}).get("logId")
        return int(log_id) if log_id is not None else None

    def get_units(self) -> Any:
        """Fitbit's unit definitions, passed through untouched."""
        return self._call("GET", UNITS_PATH)
