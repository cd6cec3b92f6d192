"""
Base repository interfaces for the data access layer.
This follows the Repository pattern to separate business logic from data access:
services depend on these interfaces, and the SQL and Mongo backends implement them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, List, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from domain.schemas import TokenRecord, FoodRecord, IdempotencyRecord

ModelType = TypeVar("ModelType")


class CredentialRepository(ABC):
    """Single-row storage for the Fitbit token pair"""

    @abstractmethod
    def get(self) -> Optional[TokenRecord]:
        """Return the stored token record, or None before the first authorization"""

    @abstractmethod
    def replace(self, access_token: str, refresh_token: str, expires_at: int) -> TokenRecord:
        """Upsert the token record as a whole; never a partial update"""


class FoodRepository(ABC):
    """Food registry keyed by canonical name"""

    @abstractmethod
    def get_by_canonical_name(self, canonical_name: str) -> Optional[FoodRecord]:
        """Exact match on the already-normalized canonical name"""

    @abstractmethod
    def list_all(self) -> List[FoodRecord]:
        """All registered foods, newest first"""

    @abstractmethod
    def insert(self, record: FoodRecord) -> FoodRecord:
        """Insert a new record; raises ConflictError if the name is taken"""

    @abstractmethod
    def replace(self, record: FoodRecord) -> FoodRecord:
        """Fully replace the record stored under record.canonical_name"""


class IdempotencyRepository(ABC):
    """Write-once cache of responses keyed by client idempotency key"""

    @abstractmethod
    def get(self, key: str) -> Optional[IdempotencyRecord]:
        """Return the record for key, pending or completed"""

    @abstractmethod
    def reserve(self, key: str, request_hash: str) -> bool:
        """
        Atomically insert a pending record for key.

        Returns:
            True if this caller now owns the key, False if a record already existed
        """

    @abstractmethod
    def reclaim(self, key: str, request_hash: str, stale_before: int) -> bool:
        """
        Atomically take over a pending record created before stale_before.

        Returns:
            True if the abandoned reservation now belongs to this caller
        """

    @abstractmethod
    def complete(self, key: str, response_json: str) -> None:
        """Store the successful response on a pending reservation"""

    @abstractmethod
    def release(self, key: str) -> None:
        """Drop a pending reservation; completed records are left untouched"""


class MealLogRepository(ABC):
    """Append-only audit log of meals sent to Fitbit"""

    @abstractmethod
    def append(
        self, date: str, meal_type_id: int, request_json: str, upstream_response_json: str
    ) -> None:
        """Persist one audit entry"""


@dataclass
class Storage:
    """One repository per concern, all backed by the same engine"""

    credentials: CredentialRepository
    foods: FoodRepository
    idempotency: IdempotencyRepository
    meal_logs: MealLogRepository


class SQLRepository(Generic[ModelType]):
    """
    Shared plumbing for the SQLAlchemy implementations.
    All SQL repositories inherit from this class.
    """

    def __init__(self, db: Session, model: Type[ModelType]):
        self.db = db
        self.model = model

    def _save(self, entity: ModelType) -> ModelType:
        """Add and commit an entity, rolling back on failure"""
        try:
            self.db.add(entity)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(entity)
        return entity
