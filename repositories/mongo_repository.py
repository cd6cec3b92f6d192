"""
Mongo repositories - document-store implementations of the repository interfaces.

Unique keys live in _id: the token document is "singleton", foods use their
canonical name and idempotency records use the client key, so inserts that
collide surface as DuplicateKeyError.
"""

import time
from typing import List, Optional

from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from repositories.base import (
    CredentialRepository,
    FoodRepository,
    IdempotencyRepository,
    MealLogRepository,
)
from domain.schemas import TokenRecord, FoodRecord, IdempotencyRecord
from app.exceptions import ConflictError

TOKEN_DOCUMENT_ID = "singleton"


class MongoCredentialRepository(CredentialRepository):
    def __init__(self, db: Database):
        self.collection = db["tokens"]

    def get(self) -> Optional[TokenRecord]:
        doc = self.collection.find_one({"_id": TOKEN_DOCUMENT_ID})
        return TokenRecord.model_validate(doc) if doc else None

    def replace(self, access_token: str, refresh_token: str, expires_at: int) -> TokenRecord:
        record = TokenRecord(
            access_token=access_token, refresh_token=refresh_token, expires_at=expires_at
        )
        self.collection.replace_one(
            {"_id": TOKEN_DOCUMENT_ID},
            {"_id": TOKEN_DOCUMENT_ID, **record.model_dump()},
            upsert=True,
        )
        return record


class MongoFoodRepository(FoodRepository):
    def __init__(self, db: Database):
        self.collection = db["foods"]

    def get_by_canonical_name(self, canonical_name: str) -> Optional[FoodRecord]:
        doc = self.collection.find_one({"_id": canonical_name})
        return FoodRecord.model_validate(doc) if doc else None

    def list_all(self) -> List[FoodRecord]:
        docs = self.collection.find({}).sort("created_at", DESCENDING)
        return [FoodRecord.model_validate(d) for d in docs]

    def insert(self, record: FoodRecord) -> FoodRecord:
        try:
            self.collection.insert_one({"_id": record.canonical_name, **record.model_dump()})
        except DuplicateKeyError:
            raise ConflictError(
                f'Food with canonical name "{record.canonical_name}" already exists.'
            )
        return record

    def replace(self, record: FoodRecord) -> FoodRecord:
        existing = self.collection.find_one({"_id": record.canonical_name}, {"created_at": 1})
        if existing is not None:
            record = record.model_copy(update={"created_at": existing["created_at"]})
        self.collection.replace_one(
            {"_id": record.canonical_name},
            {"_id": record.canonical_name, **record.model_dump()},
            upsert=True,
        )
        return record


class MongoIdempotencyRepository(IdempotencyRepository):
    def __init__(self, db: Database):
        self.collection = db["idempotency_keys"]

    def get(self, key: str) -> Optional[IdempotencyRecord]:
        doc = self.collection.find_one({"_id": key})
        if doc is None:
            return None
        return IdempotencyRecord.model_validate({**doc, "key": doc["_id"]})

    def reserve(self, key: str, request_hash: str) -> bool:
        try:
            self.collection.insert_one(
                {
                    "_id": key,
                    "request_hash": request_hash,
                    "response_json": None,
                    "created_at": int(time.time()),
                }
            )
        except DuplicateKeyError:
            return False
        return True

    def reclaim(self, key: str, request_hash: str, stale_before: int) -> bool:
        result = self.collection.update_one(
            {"_id": key, "response_json": None, "created_at": {"$lt": stale_before}},
            {"$set": {"request_hash": request_hash, "created_at": int(time.time())}},
        )
        return result.matched_count == 1

    def complete(self, key: str, response_json: str) -> None:
        result = self.collection.update_one(
            {"_id": key, "response_json": None},
            {"$set": {"response_json": response_json}},
        )
        if result.matched_count != 1:
            raise RuntimeError(f"No pending reservation for idempotency key {key!r}")

    def release(self, key: str) -> None:
        self.collection.delete_one({"_id": key, "response_json": None})


class MongoMealLogRepository(MealLogRepository):
    def __init__(self, db: Database):
        self.collection = db["logs"]

    def append(
        self, date: str, meal_type_id: int, request_json: str, upstream_response_json: str
    ) -> None:
        self.collection.insert_one(
            {
                "date": date,
                "meal_type_id": meal_type_id,
                "request_json": request_json,
                "upstream_response_json": upstream_response_json,
                "created_at": int(time.time()),
            }
        )
