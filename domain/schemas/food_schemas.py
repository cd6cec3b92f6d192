import re
from pydantic import AliasChoices, BaseModel, Field
from typing import Optional

_WHITESPACE = re.compile(r"\s+")


def normalize_canonical_name(name: str) -> str:
    """Trim, lower-case and collapse internal whitespace to single spaces"""
    return _WHITESPACE.sub(" ", name.strip().lower())


class FoodCreate(BaseModel):
    """Schema for creating a custom food in Fitbit and registering it"""

    canonical_name: str = Field(
        ...,
        min_length=1,
        alias="canonicalName",
        description="Lookup name; trimmed, lower-cased and whitespace-collapsed",
    )
    display_name: str = Field(
        ..., min_length=1, alias="displayName", description="Name shown in Fitbit"
    )
    default_unit_id: int = Field(
        ..., alias="defaultUnitId", description="Fitbit unit id of the default serving"
    )
    default_amount: float = Field(
        ..., gt=0, alias="defaultAmount", description="Default serving size"
    )
    calories: float = Field(..., description="Calories per default serving")
    protein_g: Optional[float] = Field(None, description="Protein in grams")
    carbs_g: Optional[float] = Field(None, description="Carbohydrates in grams")
    fat_g: Optional[float] = Field(None, description="Fat in grams")

    model_config = {"populate_by_name": True}


class FoodRegister(FoodCreate):
    """Schema for registering a food that already exists in Fitbit"""

    upstream_food_id: int = Field(
        ...,
        validation_alias=AliasChoices(
            "upstreamFoodId", "fitbitFoodId", "upstream_food_id"
        ),
        serialization_alias="upstreamFoodId",
        description="Fitbit food id to map the canonical name to",
    )


class FoodRegistrationResponse(BaseModel):
    """Result of creating or registering a food"""

    canonical_name: str = Field(..., alias="canonicalName")
    upstream_food_id: int = Field(..., alias="upstreamFoodId")
    default_unit_id: int = Field(..., alias="defaultUnitId")
    default_amount: float = Field(..., alias="defaultAmount")

    model_config = {"populate_by_name": True}


class FoodResponse(BaseModel):
    """Registered food as listed by GET /foods"""

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
