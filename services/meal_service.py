import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from app.exceptions import ConflictError, ServiceValidationError
from domain.enums import IdempotencyDecision
from domain.schemas import LoggedItem, MealItem, MealLogRequest, MealLogResponse
from repositories.base import Storage
from services.fitbit_service import FitbitService
from services.food_service import normalize_canonical_name
from services.idempotency_service import IdempotencyGuard

logger = logging.getLogger("mealbridge.meals")


@dataclass
class ResolvedItem:
    """A meal item whose Fitbit food id is known"""

    food_id: int
    amount: float
    unit_id: int
    canonical_name: Optional[str] = None
    display_name: Optional[str] = None


@dataclass
class MealLogOutcome:
    response: Dict[str, Any]
    replayed: bool = False


class MealLogService:
    @staticmethod
    def resolve_items(storage: Storage, items: List[MealItem]) -> List[ResolvedItem]:
        """
        Map every item to a Fitbit food id without calling Fitbit.

        All names are looked up before anything is reported, so the caller
        learns every unknown name at once.

        Raises:
            ServiceValidationError: one or more canonical names are not registered;
                details["missing"] lists them in request order
        """
        resolved: List[ResolvedItem] = []
        missing: List[str] = []

        for item in items:
            if item.food_id is not None:
                resolved.append(
                    ResolvedItem(food_id=item.food_id, amount=item.amount, unit_id=item.unit_id)
                )
                continue

            name = normalize_canonical_name(item.canonical_name)
            food = storage.foods.get_by_canonical_name(name)
            if food is None:
                if name not in missing:
                    missing.append(name)
                continue
            resolved.append(
                ResolvedItem(
                    food_id=food.upstream_food_id,
                    amount=item.amount,
                    unit_id=item.unit_id,
                    canonical_name=name,
                    display_name=food.display_name,
                )
            )

        if missing:
            logger.info("Meal rejected, unregistered foods: %s", ", ".join(missing))
            raise ServiceValidationError(
                "Some canonical names not found in registry",
                details={"missing": missing},
            )
        return resolved

    @staticmethod
    def execute(
        fitbit: FitbitService, request: MealLogRequest, resolved: List[ResolvedItem]
    ) -> List[LoggedItem]:
        """
        Log the items to Fitbit one at a time, in request order.

        The first failure propagates and later items are not attempted.
        Items logged before it stay logged; Fitbit offers no batch undo.
        """
        logged: List[LoggedItem] = []
        for position, item in enumerate(resolved):
            try:
                log_id = fitbit.log_food(
                    food_id=item.food_id,
                    meal_type_id=request.meal_type_id,
                    unit_id=item.unit_id,
                    amount=item.amount,
                    date=request.date,
                    food_name=item.display_name,
                )
            except Exception:
                logger.warning(
                    "Meal logging aborted at item %d of %d (%d already logged)",
                    position + 1,
                    len(resolved),
                    len(logged),
                )
                raise
            logged.append(
                LoggedItem(
                    food_id=item.food_id,
                    canonical_name=item.canonical_name,
                    amount=item.amount,
                    unit_id=item.unit_id,
                    upstream_log_id=log_id,
                )
            )
        return logged

    @staticmethod
    def log_meal(
        storage: Storage,
        fitbit: FitbitService,
        request: MealLogRequest,
        idempotency_key: Optional[str] = None,
    ) -> MealLogOutcome:
        """
        Log a meal to Fitbit.

        This method:
        1. Checks the idempotency key (replays or rejects reused keys)
        2. Resolves every item against the food registry (all or nothing)
        3. Logs the items to Fitbit sequentially
        4. Persists an audit record and caches the response under the key

        A failure at any step after the key was reserved releases it, so an
        identical retry is treated as new.

        Raises:
            ConflictError: key reused with another body or still in flight
            ServiceValidationError: unregistered canonical names
            UnauthorizedError: no Fitbit credential or refresh failed
            UpstreamError: Fitbit rejected one of the log calls
        """
        guard = IdempotencyGuard(storage.idempotency)
        payload = request.fingerprint_payload()

        check = guard.check_and_reserve(idempotency_key, payload)
        if check.decision == IdempotencyDecision.REPLAY:
            return MealLogOutcome(response=check.cached_response, replayed=True)
        if check.decision == IdempotencyDecision.CONFLICT:
            raise ConflictError(check.reason, code="IDEMPOTENCY_CONFLICT")

        try:
            resolved = MealLogService.resolve_items(storage, request.items)
            logged = MealLogService.execute(fitbit, request, resolved)

            response = MealLogResponse(logged=logged).model_dump(mode="json", by_alias=True)
            storage.meal_logs.append(
                request.date,
                request.meal_type_id,
                json.dumps(payload),
                json.dumps(response["logged"]),
            )
            guard.commit(idempotency_key, response)
        except Exception:
            guard.release(idempotency_key)
            raise

        logger.info(
            "Logged %d item(s) for %s meal type %d",
            len(logged),
            request.date,
            request.meal_type_id,
        )
        return MealLogOutcome(response=response)
