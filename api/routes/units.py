"""Fitbit unit definitions"""

from fastapi import APIRouter, Depends

from api.dependencies import get_fitbit_service
from services.fitbit_service import FitbitService

router = APIRouter(prefix="/units", tags=["Units"])


@router.get("")
def list_units(fitbit: FitbitService = Depends(get_fitbit_service)):
    """Unit ids and names as defined by Fitbit"""
    return fitbit.get_units()
