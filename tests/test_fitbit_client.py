"""
Tests for the Fitbit HTTP adapter: authentication headers, form encoding
and mapping of failed responses to UpstreamError.
"""

import httpx
import pytest

from adapters.fitbit_client import (
    CREATE_FOOD_PATH,
    UNITS_PATH,
    FitbitClient,
    _form,
)
from app.config import settings
from app.exceptions import UpstreamError
from test_fixtures import basic_auth_header, fake_fitbit, fitbit_client


def test_form_drops_none_and_stringifies():
    assert _form({"amount": 1.5, "unitId": 147, "foodName": None}) == {
        "amount": "1.5",
        "unitId": "147",
    }


def test_token_request_uses_basic_auth(fitbit_client, fake_fitbit):
    data = fitbit_client.token_request({"grant_type": "refresh_token", "refresh_token": "r-0"})

    call = fake_fitbit.token_calls[0]
    assert call.method == "POST"
    assert call.headers["authorization"] == basic_auth_header(
        settings.fitbit_client_id, settings.fitbit_client_secret
    )
    assert call.headers["content-type"] == "application/x-www-form-urlencoded"
    assert call.form == {"grant_type": "refresh_token", "refresh_token": "r-0"}
    assert data["access_token"] == "access-1"


def test_api_request_uses_bearer_token(fitbit_client, fake_fitbit):
    units = fitbit_client.api_request("GET", UNITS_PATH, "access-xyz")

    assert fake_fitbit.calls[0].headers["authorization"] == "Bearer access-xyz"
    assert units == fake_fitbit.units


def test_non_2xx_keeps_status_and_body(fitbit_client, fake_fitbit):
    fake_fitbit.create_failure = (401, '{"errors":[{"errorType":"expired_token"}]}')

    with pytest.raises(UpstreamError) as exc_info:
        fitbit_client.api_request("POST", CREATE_FOOD_PATH, "stale", {"name": "x"})

    assert exc_info.value.status == 401
    assert exc_info.value.body == '{"errors":[{"errorType":"expired_token"}]}'
    assert exc_info.value.to_dict()["code"] == "FITBIT_UPSTREAM_ERROR"


def test_transport_failure_becomes_upstream_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = FitbitClient(settings, transport=httpx.MockTransport(refuse))
    try:
        with pytest.raises(UpstreamError) as exc_info:
            client.api_request("GET", UNITS_PATH, "token")
    finally:
        client.close()

    assert exc_info.value.status is None
    assert exc_info.value.message == "Could not reach Fitbit"
    assert "connection refused" in exc_info.value.body


def test_empty_success_body_returns_none():
    client = FitbitClient(settings, transport=httpx.MockTransport(lambda r: httpx.Response(204)))
    try:
        assert client.api_request("GET", UNITS_PATH, "token") is None
    finally:
        client.close()
