import logging
import time
from typing import List, Optional, Tuple

from app.exceptions import ConflictError, ServiceValidationError
from domain.enums import RegistrationOutcome
from domain.schemas.food_schemas import normalize_canonical_name
from domain.schemas import (
    FoodCreate,
    FoodRecord,
    FoodRegister,
    FoodRegistrationResponse,
)
from repositories.base import Storage
from services.fitbit_service import FitbitService

logger = logging.getLogger("mealbridge.foods")


class FoodService:
    @staticmethod
    def list_foods(storage: Storage) -> List[FoodRecord]:
        return storage.foods.list_all()

    @staticmethod
    def _check_available(
        storage: Storage, raw_name: str, overwrite: bool
    ) -> Tuple[str, Optional[FoodRecord]]:
        """
        Normalize the name and make sure it may be (re)registered.

        Returns:
            (canonical_name, existing record or None)

        Raises:
            ServiceValidationError: name is blank after normalization
            ConflictError: name taken and overwrite not requested
        """
        canonical_name = normalize_canonical_name(raw_name)
        if not canonical_name:
            raise ServiceValidationError("canonicalName must not be blank")

        existing = storage.foods.get_by_canonical_name(canonical_name)
        if existing is not None and not overwrite:
            raise ConflictError(
                f'Food with canonical name "{canonical_name}" already exists. '
                "Use ?overwrite=true to replace."
            )
        return canonical_name, existing

    @staticmethod
    def _store(
        storage: Storage,
        payload: FoodCreate,
        canonical_name: str,
        upstream_food_id: int,
        existing: Optional[FoodRecord],
    ) -> Tuple[FoodRegistrationResponse, RegistrationOutcome]:
        record = FoodRecord(
            canonical_name=canonical_name,
            display_name=payload.display_name,
            upstream_food_id=upstream_food_id,
            default_unit_id=payload.default_unit_id,
            default_amount=payload.default_amount,
            calories=payload.calories,
            protein_g=payload.protein_g,
            carbs_g=payload.carbs_g,
            fat_g=payload.fat_g,
            created_at=int(time.time()),
        )
        if existing is not None:
            storage.foods.replace(record)
            outcome = RegistrationOutcome.UPDATED
        else:
            storage.foods.insert(record)
            outcome = RegistrationOutcome.CREATED

        logger.info(
            "Food %r %s (upstream id %d)", canonical_name, outcome.value, upstream_food_id
        )
        response = FoodRegistrationResponse(
            canonical_name=canonical_name,
            upstream_food_id=upstream_food_id,
            default_unit_id=payload.default_unit_id,
            default_amount=payload.default_amount,
        )
        return response, outcome

    @staticmethod
    def create_food(
        storage: Storage, fitbit: FitbitService, payload: FoodCreate, overwrite: bool = False
    ) -> Tuple[FoodRegistrationResponse, RegistrationOutcome]:
        """
        Create a custom food in Fitbit, then register it locally.

        The conflict check runs before Fitbit is called, so a rejected
        registration never leaves an orphan food upstream.
        """
        canonical_name, existing = FoodService._check_available(
            storage, payload.canonical_name, overwrite
        )
        upstream_food_id = fitbit.create_food(
            name=payload.display_name,
            default_unit_id=payload.default_unit_id,
            default_serving_size=payload.default_amount,
            calories=payload.calories,
            protein=payload.protein_g,
            carbs=payload.carbs_g,
            fat=payload.fat_g,
        )
        return FoodService._store(storage, payload, canonical_name, upstream_food_id, existing)

    @staticmethod
    def register_food(
        storage: Storage, payload: FoodRegister, overwrite: bool = False
    ) -> Tuple[FoodRegistrationResponse, RegistrationOutcome]:
        """Map a canonical name to a food that already exists in Fitbit."""
        canonical_name, existing = FoodService._check_available(
            storage, payload.canonical_name, overwrite
        )
        return FoodService._store(
            storage, payload, canonical_name, payload.upstream_food_id, existing
        )
