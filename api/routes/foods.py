"""Food registry routes"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_fitbit_service, get_storage
from domain.schemas import (
    FoodCreate,
    FoodRegister,
    FoodRegistrationResponse,
    FoodResponse,
)
from repositories import Storage
from services.fitbit_service import FitbitService
from services.food_service import FoodService

router = APIRouter(prefix="/foods", tags=["Foods"])


@router.get("", response_model=List[FoodResponse])
def list_foods(storage: Storage = Depends(get_storage)):
    """List all registered foods, newest first"""
    return [FoodResponse.model_validate(f) for f in FoodService.list_foods(storage)]


@router.post("", response_model=FoodRegistrationResponse)
def create_food(
    payload: FoodCreate,
    overwrite: Optional[str] = Query(
        None, description="Pass \"true\" to replace an existing registration"
    ),
    storage: Storage = Depends(get_storage),
    fitbit: FitbitService = Depends(get_fitbit_service),
):
    """
    Create a custom food in Fitbit and register it under its canonical name.

    Returns 409 if the canonical name is already registered, unless
    overwrite=true; in that case Fitbit is not called.
    """
    response, _ = FoodService.create_food(storage, fitbit, payload, overwrite == "true")
    return response


@router.post("/register", response_model=FoodRegistrationResponse)
def register_food(
    payload: FoodRegister,
    overwrite: Optional[str] = Query(
        None, description="Pass \"true\" to replace an existing registration"
    ),
    storage: Storage = Depends(get_storage),
):
    """Register a food that already exists in Fitbit (no Fitbit call is made)"""
    response, _ = FoodService.register_food(storage, payload, overwrite == "true")
    return response
