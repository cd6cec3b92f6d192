"""
Idempotency guard for side-effecting requests.

A key is claimed with an atomic insert before the work runs, so two concurrent
requests carrying the same key cannot both execute. The claim becomes a
permanent cached response on success and is dropped on failure. A claim left
pending longer than the lease (its owner died mid-request) is taken over by
the next request with that key.
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from app.config import settings
from domain.enums import IdempotencyDecision
from domain.schemas import IdempotencyRecord
from repositories.base import IdempotencyRepository

logger = logging.getLogger("mealbridge.idempotency")

RESERVE_ATTEMPTS = 3


def fingerprint(payload: Mapping[str, Any]) -> str:
    """SHA-256 of the payload serialized as canonical JSON"""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass
class IdempotencyCheck:
    decision: IdempotencyDecision
    request_hash: Optional[str] = None
    cached_response: Optional[Any] = None
    reason: Optional[str] = None


class IdempotencyGuard:
    """Check, reserve, commit and release idempotency keys"""

    def __init__(
        self,
        repo: IdempotencyRepository,
        lease_sec: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.repo = repo
        self.lease_sec = lease_sec if lease_sec is not None else settings.idempotency_lease_sec
        self.clock = clock

    def check_and_reserve(
        self, key: Optional[str], payload: Mapping[str, Any]
    ) -> IdempotencyCheck:
        """
        Classify a request by its idempotency key.

        Returns:
            FRESH: no key was given, or this caller now holds the reservation
            REPLAY: the key completed earlier with an identical body
            CONFLICT: the key belongs to a different body or is still executing
        """
        if not key:
            return IdempotencyCheck(IdempotencyDecision.FRESH)

        request_hash = fingerprint(payload)
        for _ in range(RESERVE_ATTEMPTS):
            record = self.repo.get(key)
            if record is None:
                if self.repo.reserve(key, request_hash):
                    return IdempotencyCheck(IdempotencyDecision.FRESH, request_hash)
                # Lost the race to another request; read what it stored
                continue

            if record.is_pending and self._is_abandoned(record):
                if self.repo.reclaim(key, request_hash, self._stale_before()):
                    logger.warning(
                        "Took over idempotency key %r abandoned since %d", key, record.created_at
                    )
                    return IdempotencyCheck(IdempotencyDecision.FRESH, request_hash)
                continue

            return self._classify(key, record, request_hash)

        return IdempotencyCheck(
            IdempotencyDecision.CONFLICT,
            request_hash,
            reason="Idempotency key is being processed by another request",
        )

    def _stale_before(self) -> int:
        return int(self.clock()) - self.lease_sec

    def _is_abandoned(self, record: IdempotencyRecord) -> bool:
        return record.created_at < self._stale_before()

    def _classify(
        self, key: str, record: IdempotencyRecord, request_hash: str
    ) -> IdempotencyCheck:
        if record.request_hash != request_hash:
            logger.warning("Idempotency key %r reused with a different body", key)
            return IdempotencyCheck(
                IdempotencyDecision.CONFLICT,
                request_hash,
                reason="Idempotency key already used with different request body",
            )
        if record.is_pending:
            logger.warning("Idempotency key %r is still being processed", key)
            return IdempotencyCheck(
                IdempotencyDecision.CONFLICT,
                request_hash,
                reason="Idempotency key is being processed by another request",
            )
        logger.info("Replaying cached response for idempotency key %r", key)
        return IdempotencyCheck(
            IdempotencyDecision.REPLAY,
            request_hash,
            cached_response=json.loads(record.response_json),
        )

    def commit(self, key: Optional[str], response: Any) -> None:
        """Persist the successful response under the reserved key."""
        if not key:
            return
        self.repo.complete(key, json.dumps(response))

    def release(self, key: Optional[str]) -> None:
        """Forget a reservation after a failed execution."""
        if not key:
            return
        self.repo.release(key)
