"""
Tests for meal logging: registry resolution, sequential execution and
idempotent retries.
"""

import json
import time

import pytest

from app.config import settings
from app.exceptions import (
    ConflictError,
    NoCredentialsError,
    ServiceValidationError,
    UpstreamError,
)
from domain.models import IdempotencyKey, MealLog
from domain.schemas import MealLogRequest
from services.idempotency_service import fingerprint
from services.meal_service import MealLogService
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
    meal_body,
)

YOGURT = {"canonicalName": "greek yogurt", "amount": 170, "unitId": 147}
BERRIES = {"canonicalName": "blueberries", "amount": 80, "unitId": 147}


@pytest.fixture
def registry(storage):
    storage.foods.insert(make_food())
    storage.foods.insert(
        make_food(canonical_name="blueberries", display_name="Blueberries", upstream_food_id=7002)
    )
    return storage


def request_of(*items, **kwargs) -> MealLogRequest:
    return MealLogRequest.model_validate(meal_body(*items, **kwargs))


def count(db_session, model) -> int:
    return db_session.query(model).count()


# =============================================================================
# RESOLUTION
# =============================================================================


def test_resolve_items_by_name_and_id(registry):
    request = request_of(YOGURT, {"foodId": 123, "amount": 1, "unitId": 304})

    resolved = MealLogService.resolve_items(registry, request.items)

    assert [r.food_id for r in resolved] == [7001, 123]
    assert resolved[0].display_name == "Greek Yogurt"
    assert resolved[1].canonical_name is None


def test_resolve_items_normalizes_names(registry):
    request = request_of({"canonicalName": "  GREEK   Yogurt", "amount": 1, "unitId": 147})

    resolved = MealLogService.resolve_items(registry, request.items)

    assert resolved[0].canonical_name == "greek yogurt"


def test_resolve_items_reports_every_missing_name(registry):
    request = request_of(
        {"canonicalName": "kale", "amount": 1, "unitId": 147},
        YOGURT,
        {"canonicalName": "Tofu", "amount": 1, "unitId": 147},
        {"canonicalName": "KALE", "amount": 2, "unitId": 147},
    )

    with pytest.raises(ServiceValidationError) as exc_info:
        MealLogService.resolve_items(registry, request.items)

    assert exc_info.value.details == {"missing": ["kale", "tofu"]}


# =============================================================================
# LOGGING
# =============================================================================


def test_log_meal_logs_items_in_order(registry, fitbit_service, authorized, fake_fitbit, db_session):
    request = request_of(YOGURT, BERRIES, meal_type_id=3)

    outcome = MealLogService.log_meal(registry, fitbit_service, request)

    assert not outcome.replayed
    assert outcome.response == {
        "success": True,
        "logged": [
            {"foodId": 7001, "canonicalName": "greek yogurt", "amount": 170.0, "unitId": 147, "upstreamLogId": 90001},
            {"foodId": 7002, "canonicalName": "blueberries", "amount": 80.0, "unitId": 147, "upstreamLogId": 90002},
        ],
    }
    forms = [c.form for c in fake_fitbit.log_calls]
    assert [f["foodId"] for f in forms] == ["7001", "7002"]
    assert forms[0] == {
        "foodId": "7001",
        "mealTypeId": "3",
        "unitId": "147",
        "amount": "170.0",
        "date": "2025-06-15",
        "foodName": "Greek Yogurt",
    }
    assert count(db_session, MealLog) == 1


def test_log_meal_with_food_id_skips_registry(storage, fitbit_service, authorized, fake_fitbit):
    request = request_of({"foodId": 4242, "amount": 2, "unitId": 304})

    outcome = MealLogService.log_meal(storage, fitbit_service, request)

    assert outcome.response["logged"][0]["foodId"] == 4242
    assert outcome.response["logged"][0]["canonicalName"] is None
    assert "foodName" not in fake_fitbit.log_calls[0].form


def test_log_meal_audit_record(registry, fitbit_service, authorized, db_session):
    request = request_of(YOGURT)

    outcome = MealLogService.log_meal(registry, fitbit_service, request)

    row = db_session.query(MealLog).one()
    assert row.date == "2025-06-15"
    assert row.meal_type_id == 1
    assert json.loads(row.request_json) == request.fingerprint_payload()
    assert json.loads(row.upstream_response_json) == outcome.response["logged"]


def test_missing_names_log_nothing(registry, fitbit_service, authorized, fake_fitbit, db_session):
    request = request_of(YOGURT, {"canonicalName": "kale", "amount": 1, "unitId": 147})

    with pytest.raises(ServiceValidationError):
        MealLogService.log_meal(registry, fitbit_service, request, idempotency_key="k-missing")

    assert fake_fitbit.log_calls == []
    assert count(db_session, MealLog) == 0
    assert count(db_session, IdempotencyKey) == 0


def test_partial_failure_stops_at_first_error(registry, fitbit_service, authorized, fake_fitbit, db_session):
    fake_fitbit.log_failures = {2: (400, '{"errors":[{"errorType":"validation"}]}')}
    request = request_of(YOGURT, BERRIES, {"foodId": 99, "amount": 1, "unitId": 304})

    with pytest.raises(UpstreamError) as exc_info:
        MealLogService.log_meal(registry, fitbit_service, request, idempotency_key="k-partial")

    assert exc_info.value.status == 400
    assert exc_info.value.body == '{"errors":[{"errorType":"validation"}]}'
    assert len(fake_fitbit.log_calls) == 2
    assert count(db_session, MealLog) == 0
    assert count(db_session, IdempotencyKey) == 0


def test_failed_request_can_be_retried_with_same_key(registry, fitbit_service, authorized, fake_fitbit):
    fake_fitbit.log_failures = {1: (503, "unavailable")}
    request = request_of(YOGURT)

    with pytest.raises(UpstreamError):
        MealLogService.log_meal(registry, fitbit_service, request, idempotency_key="k-retry")

    outcome = MealLogService.log_meal(registry, fitbit_service, request, idempotency_key="k-retry")

    assert not outcome.replayed
    assert len(fake_fitbit.log_calls) == 2


def test_no_credentials_releases_key(registry, fitbit_service, db_session):
    with pytest.raises(NoCredentialsError):
        MealLogService.log_meal(registry, fitbit_service, request_of(YOGURT), idempotency_key="k-anon")

    assert count(db_session, IdempotencyKey) == 0


# =============================================================================
# IDEMPOTENCY
# =============================================================================


def test_replay_returns_cached_response_without_upstream_calls(
    registry, fitbit_service, authorized, fake_fitbit, db_session
):
    request = request_of(YOGURT, BERRIES)
    first = MealLogService.log_meal(registry, fitbit_service, request, idempotency_key="k-1")
    calls_after_first = len(fake_fitbit.calls)

    second = MealLogService.log_meal(registry, fitbit_service, request, idempotency_key="k-1")

    assert second.replayed
    assert second.response == first.response
    assert len(fake_fitbit.calls) == calls_after_first
    assert count(db_session, MealLog) == 1


def test_replay_ignores_registry_changes(registry, fitbit_service, authorized, fake_fitbit):
    request = request_of(YOGURT)
    first = MealLogService.log_meal(registry, fitbit_service, request, idempotency_key="k-2")
    registry.foods.replace(make_food(upstream_food_id=9999))

    second = MealLogService.log_meal(registry, fitbit_service, request, idempotency_key="k-2")

    assert second.response["logged"][0]["foodId"] == 7001
    assert second.response == first.response


def test_key_reuse_with_different_body_conflicts(registry, fitbit_service, authorized, fake_fitbit, db_session):
    MealLogService.log_meal(registry, fitbit_service, request_of(YOGURT), idempotency_key="k-3")
    db_session.expire_all()
    cached = db_session.query(IdempotencyKey).one()
    stored_hash, stored_response = cached.request_hash, cached.response_json

    with pytest.raises(ConflictError) as exc_info:
        MealLogService.log_meal(registry, fitbit_service, request_of(BERRIES), idempotency_key="k-3")

    assert exc_info.value.code == "IDEMPOTENCY_CONFLICT"
    assert len(fake_fitbit.log_calls) == 1
    db_session.expire_all()
    cached = db_session.query(IdempotencyKey).one()
    assert cached.request_hash == stored_hash == fingerprint(request_of(YOGURT).fingerprint_payload())
    assert cached.response_json == stored_response


def test_without_key_every_request_executes(registry, fitbit_service, authorized, fake_fitbit, db_session):
    request = request_of(YOGURT)

    MealLogService.log_meal(registry, fitbit_service, request)
    MealLogService.log_meal(registry, fitbit_service, request)

    assert len(fake_fitbit.log_calls) == 2
    assert count(db_session, MealLog) == 2
    assert count(db_session, IdempotencyKey) == 0


def test_reservation_left_by_crashed_request_is_taken_over(
    registry, fitbit_service, authorized, fake_fitbit, db_session
):
    request = request_of(YOGURT)
    registry.idempotency.reserve("k-crash", fingerprint(request.fingerprint_payload()))

    with pytest.raises(ConflictError):
        MealLogService.log_meal(registry, fitbit_service, request, idempotency_key="k-crash")
    assert fake_fitbit.log_calls == []

    db_session.query(IdempotencyKey).update(
        {IdempotencyKey.created_at: int(time.time()) - settings.idempotency_lease_sec - 1}
    )
    db_session.commit()

    outcome = MealLogService.log_meal(registry, fitbit_service, request, idempotency_key="k-crash")

    assert not outcome.replayed
    assert len(fake_fitbit.log_calls) == 1
    assert not registry.idempotency.get("k-crash").is_pending


def test_name_spelling_does_not_change_fingerprint(registry, fitbit_service, authorized, fake_fitbit):
    first = MealLogService.log_meal(
        registry,
        fitbit_service,
        request_of({"canonicalName": "Greek  Yogurt ", "amount": 170, "unitId": 147}),
        idempotency_key="k-case",
    )

    second = MealLogService.log_meal(
        registry, fitbit_service, request_of(YOGURT), idempotency_key="k-case"
    )

    assert second.replayed
    assert second.response == first.response
    assert len(fake_fitbit.log_calls) == 1
