"""
Backend-neutral records returned by every repository implementation.

SQL repositories build them from ORM rows, Mongo repositories from documents,
so services never see which storage engine is active.
"""

from typing import Optional
from pydantic import BaseModel


class TokenRecord(BaseModel):
    """The stored Fitbit credential; expires_at is epoch seconds"""

    access_token: str
    refresh_token: str
    expires_at: int

    model_config = {"from_attributes": True}

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class FoodRecord(BaseModel):
    """A food registered under its canonical name"""

    canonical_name: str
    display_name: str
    upstream_food_id: int
    default_unit_id: int
    default_amount: float
    calories: float
    protein_g: Optional[float] = None
    carbs_g: Optional[float] = None
    fat_g: Optional[float] = None
    created_at: int

    model_config = {"from_attributes": True}


class IdempotencyRecord(BaseModel):
    """Cached outcome for an idempotency key (response_json is None while pending)"""

    key: str
    request_hash: str
    response_json: Optional[str] = None
    created_at: int

    model_config = {"from_attributes": True}

    @property
    def is_pending(self) -> bool:
        return self.response_json is None
