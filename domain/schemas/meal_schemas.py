from datetime import date as date_type
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional

from domain.schemas.food_schemas import normalize_canonical_name


class MealItem(BaseModel):
    """One food in a meal; referenced by canonical name or by Fitbit food id"""

    canonical_name: Optional[str] = Field(
        None, alias="canonicalName", description="Registered canonical name"
    )
    food_id: Optional[int] = Field(
        None, gt=0, alias="foodId", description="Fitbit food id, bypassing the registry"
    )
    amount: float = Field(..., gt=0, description="Amount expressed in unitId")
    unit_id: int = Field(..., alias="unitId", description="Fitbit unit id")
    note: Optional[str] = Field(None, description="Free-form note, not sent to Fitbit")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def exactly_one_reference(self):
        has_name = self.canonical_name is not None and self.canonical_name.strip() != ""
        has_id = self.food_id is not None
        if has_name == has_id:
            raise ValueError("Exactly one of canonicalName or foodId must be provided")
        return self


class MealLogRequest(BaseModel):
    """Schema for POST /meals/log"""

    date: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="Day to log the meal on (YYYY-MM-DD)",
    )
    meal_type_id: int = Field(..., alias="mealTypeId", description="Fitbit meal type id")
    items: List[MealItem] = Field(..., min_length=1)

    model_config = {"populate_by_name": True}

    @field_validator("date")
    @classmethod
    def must_be_calendar_date(cls, v: str) -> str:
        try:
            date_type.fromisoformat(v)
        except ValueError:
            raise ValueError("Date must be a valid calendar date in YYYY-MM-DD format")
        return v

    def fingerprint_payload(self) -> dict:
        """The normalized body hashed for idempotency checks and stored for audit"""
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        for item in payload["items"]:
            if "canonicalName" in item:
                item["canonicalName"] = normalize_canonical_name(item["canonicalName"])
        return payload


class LoggedItem(BaseModel):
    """Result of logging one item to Fitbit"""

    food_id: int = Field(..., alias="foodId")
    canonical_name: Optional[str] = Field(None, alias="canonicalName")
    amount: float
    unit_id: int = Field(..., alias="unitId")
    upstream_log_id: Optional[int] = Field(None, alias="upstreamLogId")

    model_config = {"populate_by_name": True}


class MealLogResponse(BaseModel):
    """Successful meal-log response; cached verbatim for idempotent replays"""

    success: bool = True
    logged: List[LoggedItem]
