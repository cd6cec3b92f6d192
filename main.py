"""
MealBridge FastAPI Application
Main entry point: lifespan, middleware, exception handlers and routers
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import uvicorn
from contextlib import asynccontextmanager
import anyio
from typing import Optional

from api.routes import health, auth, foods, meals, units
from domain.models import init_database
from adapters import fitbit_client, mongo_adapter
from app.config import StorageBackend, settings
from api.middleware import (
    ApiKeyMiddleware,
    RequestLoggingMiddleware,
    validation_exception_handler,
    http_exception_handler,
    service_exception_handler,
    general_exception_handler,
)
from app.exceptions import ServiceError

# Setup logging with configured level and format
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()), format=settings.log_format
)
_logger = logging.getLogger("mealbridge.main")


async def _init_storage() -> None:
    """Create tables or connect to Mongo, retrying while the database comes up"""
    last_exc: Optional[Exception] = None

    for attempt in range(1, settings.db_init_attempts + 1):
        try:
            if settings.storage_backend == StorageBackend.MONGO:
                await anyio.to_thread.run_sync(
                    mongo_adapter.connect, settings.mongo_uri, settings.mongo_db_name
                )
            else:
                # Run blocking init in a thread to avoid blocking the event loop
                await anyio.to_thread.run_sync(init_database)
            _logger.info("Storage initialization succeeded (%s)", settings.storage_backend.value)
            return
        except Exception as exc:
            last_exc = exc
            _logger.warning(
                "Storage init attempt %d/%d failed: %s",
                attempt,
                settings.db_init_attempts,
                exc,
            )
            if attempt < settings.db_init_attempts:
                await anyio.sleep(settings.db_init_delay_sec)

    _logger.error("Storage initialization failed after %d attempts", settings.db_init_attempts)
    raise last_exc


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup and shutdown.
    Validates required configuration and initializes storage with retries.
    """
    _logger.info(f"Starting MealBridge in {settings.environment.value} mode")

    missing = settings.missing_required()
    if missing and not settings.is_testing():
        raise RuntimeError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    await _init_storage()

    try:
        yield
    finally:
        _logger.info("Shutting down MealBridge")
        fitbit_client.close()
        if settings.storage_backend == StorageBackend.MONGO:
            mongo_adapter.close()


docs_enabled = not settings.is_production()
docs_url = f"{settings.api_prefix}/docs" if docs_enabled else None
redoc_url = f"{settings.api_prefix}/redoc" if docs_enabled else None
openapi_url = f"{settings.api_prefix}/openapi.json" if docs_enabled else None

app = FastAPI(
    title=settings.api_title,
    version=settings.app_version,
    description=settings.api_description,
    lifespan=lifespan,
    debug=settings.debug,
    openapi_url=openapi_url,
    docs_url=docs_url,
    redoc_url=redoc_url,
)


def custom_openapi():
    """OpenAPI document advertising the API key header and the public server URL"""
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    if settings.base_url:
        schema["servers"] = [{"url": settings.base_url}]
    schema.setdefault("components", {})["securitySchemes"] = {
        "apiKey": {"type": "apiKey", "name": settings.api_key_header, "in": "header"}
    }
    for path, operations in schema.get("paths", {}).items():
        if path in public_paths:
            continue
        for operation in operations.values():
            operation["security"] = [{"apiKey": []}]
    app.openapi_schema = schema
    return schema


app.openapi = custom_openapi

public_paths = [
    f"{settings.api_prefix}/health",
    f"{settings.api_prefix}/auth/start",
    f"{settings.api_prefix}/auth/callback",
]
public_prefixes = [url for url in (docs_url, redoc_url, openapi_url) if url]

# Middleware added last runs first: CORS, then logging, then the API key gate
app.add_middleware(
    ApiKeyMiddleware,
    config=settings,
    public_paths=public_paths,
    public_prefixes=public_prefixes,
)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Register exception handlers
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(ServiceError, service_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(health.router, prefix=settings.api_prefix)
app.include_router(auth.router, prefix=settings.api_prefix)
app.include_router(foods.router, prefix=settings.api_prefix)
app.include_router(meals.router, prefix=settings.api_prefix)
app.include_router(units.router, prefix=settings.api_prefix)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development(),
        log_level=settings.log_level.lower(),
    )
