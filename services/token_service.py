"""
Token lifecycle for the single Fitbit account this deployment manages.

State of the stored credential:
    absent --authorize--> valid --clock reaches expires_at--> expired
    expired --refresh ok--> valid
    expired --refresh fails--> expired (the next request tries again)
"""

import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import urlencode

from adapters.fitbit_client import AUTHORIZE_PATH, FitbitClient
from app.config import Settings, settings
from app.exceptions import NoCredentialsError, UpstreamAuthError, UpstreamError
from repositories.base import CredentialRepository

logger = logging.getLogger("mealbridge.tokens")

# Serializes "read if expired, then refresh" across all requests in this process.
# Fitbit rotates refresh tokens, so two concurrent refreshes would invalidate
# each other's result.
_refresh_lock = threading.Lock()


class TokenManager:
    """Hands out a valid bearer token, refreshing it through Fitbit when expired"""

    def __init__(
        self,
        credentials: CredentialRepository,
        client: FitbitClient,
        config: Settings = settings,
        clock: Callable[[], float] = time.time,
        lock: Optional[threading.Lock] = None,
    ):
        self.credentials = credentials
        self.client = client
        self.config = config
        self.clock = clock
        self._lock = lock or _refresh_lock

    def get_valid_access_token(self) -> str:
        """
        Return the stored access token, refreshing it first if it has expired.

        Concurrent callers that all see an expired token queue on the refresh
        lock; the first refreshes, the rest re-read the record and reuse the
        new token, so one expiry costs exactly one call to Fitbit.

        Raises:
            NoCredentialsError: nothing stored yet (run the OAuth flow)
            UpstreamAuthError: Fitbit rejected the refresh token
        """
        record = self.credentials.get()
        if record is None:
            raise NoCredentialsError()
        if not record.is_expired(self.clock()):
            return record.access_token

        with self._lock:
            record = self.credentials.get()
            if record is None:
                raise NoCredentialsError()
            if not record.is_expired(self.clock()):
                logger.debug("Token already refreshed by a concurrent request")
                return record.access_token

            access_token, _ = self.refresh(record.refresh_token)
            return access_token

    def refresh(self, refresh_token: str) -> Tuple[str, str]:
        """
        Exchange a refresh token for a new token pair and store it.

        On failure the stored record is left as it was.
        """
        logger.info("Refreshing Fitbit access token")
        return self._grant(
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
            "refresh token",
        )

    def exchange_authorization_code(self, code: str) -> Tuple[str, str]:
        """One-time bootstrap: trade the consent-screen code for a token pair."""
        logger.info("Exchanging Fitbit authorization code")
        return self._grant(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.config.redirect_uri,
            },
            "exchange code",
        )

    def build_authorization_url(self) -> str:
        """URL of the Fitbit consent screen that starts the OAuth flow."""
        params = urlencode(
            {
                "client_id": self.config.fitbit_client_id,
                "response_type": "code",
                "scope": self.config.fitbit_scopes,
                "redirect_uri": self.config.redirect_uri,
            }
        )
        return f"{self.config.fitbit_auth_base}{AUTHORIZE_PATH}?{params}"

    def _grant(self, fields: Dict[str, str], action: str) -> Tuple[str, str]:
        try:
            data = self.client.token_request(fields)
        except UpstreamError as exc:
            logger.warning("Failed to %s: HTTP %s", action, exc.status)
            raise UpstreamAuthError(
                f"Failed to {action}: {exc.status} {exc.body}", exc.status, exc.body
            )

        try:
            access_token = data["access_token"]
            refresh_token = data["refresh_token"]
            expires_in = int(data["expires_in"])
        except (KeyError, TypeError, ValueError):
            raise UpstreamAuthError(
                f"Failed to {action}: token response is missing fields", 200, str(data)
            )

        expires_at = int(self.clock()) + expires_in
        self.credentials.replace(access_token, refresh_token, expires_at)
        logger.info("Stored new Fitbit token pair (expires_at=%d)", expires_at)
        return access_token, refresh_token
