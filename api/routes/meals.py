"""Meal logging routes"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import JSONResponse

from api.dependencies import get_fitbit_service, get_storage
from api.middleware import error_body
from domain.schemas import MealLogRequest, MealLogResponse
from repositories import Storage
from services.fitbit_service import FitbitService
from services.meal_service import MealLogService

router = APIRouter(prefix="/meals", tags=["Meals"])

REPLAY_HEADER = "Idempotent-Replayed"


@router.post("/log", response_model=MealLogResponse)
def log_meal(
    payload: MealLogRequest,
    idempotency_key: Optional[str] = Header(
        None,
        alias="Idempotency-Key",
        description="A reused key is answered with 409; the first response is embedded for identical bodies",
    ),
    storage: Storage = Depends(get_storage),
    fitbit: FitbitService = Depends(get_fitbit_service),
):
    """
    Log a meal to Fitbit.

    Every canonical name must be registered; if any is not, nothing is logged
    and the response lists the missing names. Items are logged in order and
    the first Fitbit failure stops the request.

    Repeating a key with the same body makes no Fitbit calls and returns 409
    IDEMPOTENCY_REPLAY with the original response under error.response.
    """
    outcome = MealLogService.log_meal(storage, fitbit, payload, idempotency_key)
    if outcome.replayed:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=error_body(
                {
                    "code": "IDEMPOTENCY_REPLAY",
                    "message": "Request already processed",
                    "response": outcome.response,
                }
            ),
            headers={REPLAY_HEADER: "true"},
        )
    return outcome.response
