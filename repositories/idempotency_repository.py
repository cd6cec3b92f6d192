"""
Idempotency Repository - SQL storage for idempotency keys
"""

import time
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from repositories.base import IdempotencyRepository, SQLRepository
from domain.models import IdempotencyKey
from domain.schemas import IdempotencyRecord


class SQLIdempotencyRepository(SQLRepository[IdempotencyKey], IdempotencyRepository):
    """Idempotency keys stored in a table whose primary key is the client key"""

    def __init__(self, db: Session):
        super().__init__(db, IdempotencyKey)

    def get(self, key: str) -> Optional[IdempotencyRecord]:
        row = self.db.get(IdempotencyKey, key, populate_existing=True)
        return IdempotencyRecord.model_validate(row) if row else None

    def reserve(self, key: str, request_hash: str) -> bool:
        """Insert a pending row; the primary key makes the claim atomic"""
        try:
            self._save(
                IdempotencyKey(
                    key=key,
                    request_hash=request_hash,
                    response_json=None,
                    created_at=int(time.time()),
                )
            )
        except IntegrityError:
            return False
        return True

    def reclaim(self, key: str, request_hash: str, stale_before: int) -> bool:
        """Restart an abandoned pending reservation with one conditional UPDATE"""
        updated = (
            self.db.query(IdempotencyKey)
            .filter(
                IdempotencyKey.key == key,
                IdempotencyKey.response_json.is_(None),
                IdempotencyKey.created_at < stale_before,
            )
            .update(
                {
                    IdempotencyKey.request_hash: request_hash,
                    IdempotencyKey.created_at: int(time.time()),
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated == 1

    def complete(self, key: str, response_json: str) -> None:
        updated = (
            self.db.query(IdempotencyKey)
            .filter(IdempotencyKey.key == key, IdempotencyKey.response_json.is_(None))
            .update({IdempotencyKey.response_json: response_json}, synchronize_session=False)
        )
        if updated != 1:
            self.db.rollback()
            raise RuntimeError(f"No pending reservation for idempotency key {key!r}")
        self.db.commit()

    def release(self, key: str) -> None:
        self.db.query(IdempotencyKey).filter(
            IdempotencyKey.key == key, IdempotencyKey.response_json.is_(None)
        ).delete(synchronize_session=False)
        self.db.commit()
