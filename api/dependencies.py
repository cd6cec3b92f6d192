"""
API dependencies for dependency injection
"""

from typing import Generator

from fastapi import Depends

from adapters import fitbit_client, mongo_adapter
from adapters.fitbit_client import FitbitClient
from app.config import StorageBackend, settings
from domain.models import SessionLocal
from repositories import Storage, mongo_storage, sql_storage
from services.fitbit_service import FitbitService
from services.token_service import TokenManager


def get_storage() -> Generator[Storage, None, None]:
    """
    Repositories for the configured backend.

    Usage:
        @router.get("/example")
        def example(storage: Storage = Depends(get_storage)):
            storage.foods.list_all()
    """
    if settings.storage_backend == StorageBackend.MONGO:
        yield mongo_storage(mongo_adapter.get_db())
        return

    db = SessionLocal()
    try:
        yield sql_storage(db)
    finally:
        db.close()


def get_fitbit_client() -> FitbitClient:
    return fitbit_client.get_client()


def get_token_manager(
    storage: Storage = Depends(get_storage),
    client: FitbitClient = Depends(get_fitbit_client),
) -> TokenManager:
    return TokenManager(storage.credentials, client)


def get_fitbit_service(
    tokens: TokenManager = Depends(get_token_manager),
    client: FitbitClient = Depends(get_fitbit_client),
) -> FitbitService:
    return FitbitService(tokens, client)
