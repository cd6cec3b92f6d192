"""Fitbit Web API adapter - thin HTTP transport.

Knows URLs, authentication headers and form encoding; turns every non-2xx
answer into UpstreamError carrying the status and raw body. Token lifecycle
and business rules live in the services layer.
"""

from typing import Any, Dict, Mapping, Optional
import logging

import httpx

from app.config import Settings, settings
from app.exceptions import UpstreamError

logger = logging.getLogger("mealbridge.fitbit")

TOKEN_PATH = "/oauth2/token"
AUTHORIZE_PATH = "/oauth2/authorize"
CREATE_FOOD_PATH = "/1/foods.json"
LOG_FOOD_PATH = "/1/user/-/foods/log.json"
UNITS_PATH = "/1/foods/units.json"


def _form(fields: Mapping[str, Any]) -> Dict[str, str]:
    """Form-encode values the way Fitbit expects them, dropping unset ones"""
    return {k: str(v) for k, v in fields.items() if v is not None}


class FitbitClient:
    """Synchronous Fitbit transport over a shared httpx.Client"""

    def __init__(
        self,
        config: Settings = settings,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.config = config
        self._http = httpx.Client(
            base_url=config.fitbit_api_base,
            timeout=config.upstream_timeout_sec,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def _send(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("Fitbit %s %s failed before a response: %s", method, path, exc)
            raise UpstreamError(None, str(exc))

        text = response.text
        if not response.is_success:
            logger.warning("Fitbit %s %s returned HTTP %d", method, path, response.status_code)
            raise UpstreamError(response.status_code, text)

        return response.json() if text else None

    def token_request(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """POST the token endpoint with HTTP Basic client authentication."""
        return self._send(
            "POST",
            TOKEN_PATH,
            data=_form(fields),
            auth=(self.config.fitbit_client_id, self.config.fitbit_client_secret),
        )

    def api_request(
        self,
        method: str,
        path: str,
        access_token: str,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Call a REST endpoint with a bearer token and an optional form body."""
        kwargs: Dict[str, Any] = {"headers": {"Authorization": f"Bearer {access_token}"}}
        if fields is not None:
            kwargs["data"] = _form(fields)
        return self._send(method, path, **kwargs)


_client: Optional[FitbitClient] = None


def get_client() -> FitbitClient:
    """Process-wide client, created on first use."""
    global _client
    if _client is None:
        _client = FitbitClient(settings)
    return _client


def close():
    """Close the shared client."""
    global _client
    try:
        if _client is not None:
            _client.close()
            logger.info("Fitbit HTTP client closed")
    finally:
        _client = None
