"""
Tests for canonical-name normalization and the food registration workflows.
"""

import pytest

from app.exceptions import ConflictError, ServiceValidationError, UpstreamError
from domain.enums import RegistrationOutcome
from domain.schemas import FoodCreate, FoodRegister
from services.food_service import FoodService, normalize_canonical_name
from test_fixtures import (
    db_session,
    storage,
    fake_fitbit,
    fitbit_client,
    clock,
    token_manager,
    fitbit_service,
    authorized,
    make_food,
)


def oatmeal(**overrides) -> dict:
    body = {
        "canonicalName": "  Steel Cut   Oats ",
        "displayName": "Steel Cut Oats",
        "defaultUnitId": 147,
        "defaultAmount": 40,
        "calories": 150,
        "protein_g": 5,
        "carbs_g": 27,
        "fat_g": 2.5,
    }
    body.update(overrides)
    return body


@pytest.mark.parametrize(
    "raw, expected",
    [
        (" Apple   Pie ", "apple pie"),
        ("APPLE PIE", "apple pie"),
        ("apple\tpie\n", "apple pie"),
        ("Crème  Brûlée", "crème brûlée"),
        ("   ", ""),
    ],
)
def test_normalize_canonical_name(raw, expected):
    assert normalize_canonical_name(raw) == expected
    assert normalize_canonical_name(normalize_canonical_name(raw)) == normalize_canonical_name(raw)


def test_registered_name_found_with_different_spelling(storage):
    payload = FoodRegister.model_validate(
        {**oatmeal(canonicalName=" Apple   Pie "), "upstreamFoodId": 8123}
    )
    FoodService.register_food(storage, payload)

    found = storage.foods.get_by_canonical_name(normalize_canonical_name("APPLE PIE"))
    assert found is not None
    assert found.upstream_food_id == 8123


def test_register_food_creates_record(storage):
    payload = FoodRegister.model_validate({**oatmeal(), "fitbitFoodId": 8123})

    response, outcome = FoodService.register_food(storage, payload)

    assert outcome == RegistrationOutcome.CREATED
    assert response.model_dump(by_alias=True) == {
        "canonicalName": "steel cut oats",
        "upstreamFoodId": 8123,
        "defaultUnitId": 147,
        "defaultAmount": 40.0,
    }
    stored = storage.foods.get_by_canonical_name("steel cut oats")
    assert stored.display_name == "Steel Cut Oats"
    assert stored.fat_g == 2.5


def test_register_food_conflict_without_overwrite(storage):
    storage.foods.insert(make_food(canonical_name="steel cut oats", upstream_food_id=1))
    payload = FoodRegister.model_validate({**oatmeal(), "upstreamFoodId": 8123})

    with pytest.raises(ConflictError):
        FoodService.register_food(storage, payload)

    assert storage.foods.get_by_canonical_name("steel cut oats").upstream_food_id == 1


def test_register_food_overwrite_replaces_record(storage):
    storage.foods.insert(make_food(canonical_name="steel cut oats", upstream_food_id=1, protein_g=99))
    payload = FoodRegister.model_validate({**oatmeal(protein_g=None), "upstreamFoodId": 8123})

    _, outcome = FoodService.register_food(storage, payload, overwrite=True)

    assert outcome == RegistrationOutcome.UPDATED
    stored = storage.foods.get_by_canonical_name("steel cut oats")
    assert stored.upstream_food_id == 8123
    assert stored.protein_g is None
    assert len(storage.foods.list_all()) == 1


def test_blank_canonical_name_rejected(storage):
    payload = FoodRegister.model_validate({**oatmeal(canonicalName="   "), "upstreamFoodId": 1})

    with pytest.raises(ServiceValidationError):
        FoodService.register_food(storage, payload)


def test_create_food_calls_fitbit_then_stores(storage, fitbit_service, authorized, fake_fitbit):
    response, outcome = FoodService.create_food(
        storage, fitbit_service, FoodCreate.model_validate(oatmeal())
    )

    assert outcome == RegistrationOutcome.CREATED
    assert response.upstream_food_id == 5001
    call = fake_fitbit.create_calls[0]
    assert call.headers["authorization"] == "Bearer access-initial"
    assert call.form == {
        "name": "Steel Cut Oats",
        "defaultFoodMeasurementUnitId": "147",
        "defaultServingSize": "40.0",
        "calories": "150.0",
        "protein": "5.0",
        "carbs": "27.0",
        "fat": "2.5",
    }
    assert storage.foods.get_by_canonical_name("steel cut oats").upstream_food_id == 5001


def test_create_food_omits_missing_macros(storage, fitbit_service, authorized, fake_fitbit):
    body = oatmeal()
    for macro in ("protein_g", "carbs_g", "fat_g"):
        body.pop(macro)

    FoodService.create_food(storage, fitbit_service, FoodCreate.model_validate(body))

    form = fake_fitbit.create_calls[0].form
    assert "protein" not in form and "carbs" not in form and "fat" not in form


def test_create_food_conflict_skips_fitbit(storage, fitbit_service, authorized, fake_fitbit):
    storage.foods.insert(make_food(canonical_name="steel cut oats"))

    with pytest.raises(ConflictError):
        FoodService.create_food(storage, fitbit_service, FoodCreate.model_validate(oatmeal()))

    assert fake_fitbit.create_calls == []


def test_create_food_upstream_error_stores_nothing(storage, fitbit_service, authorized, fake_fitbit):
    fake_fitbit.create_failure = (400, '{"errors":[{"fieldName":"calories"}]}')

    with pytest.raises(UpstreamError) as exc_info:
        FoodService.create_food(storage, fitbit_service, FoodCreate.model_validate(oatmeal()))

    assert exc_info.value.status == 400
    assert exc_info.value.body == '{"errors":[{"fieldName":"calories"}]}'
    assert storage.foods.list_all() == []
