"""
FastAPI application factory.

The lifespan owns the DocumentStore: it connects (with retry) before the
first request, builds the repository and service, and disconnects after the
server has drained.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import ServiceConfig
from ..database import DocumentStore
from ..exceptions import (
    DeadlineExceededError,
    DuplicateKeyError,
    InvalidArgumentError,
    InvalidIdentityError,
    NotFoundError,
    UserServiceError,
)
from ..observability import (
    HealthChecker,
    check_store,
    ping_mongodb,
    get_logger,
)
from ..repositories import UserRepository
from ..services import UserService
from .middleware import RequestContextMiddleware
from .responses import (
    CODE_BAD_REQUEST,
    CODE_CONFLICT,
    CODE_GATEWAY_TIMEOUT,
    CODE_INTERNAL_SERVER_ERROR,
    CODE_INVALID_REQUEST,
    CODE_NOT_FOUND,
    send_error,
)
from .routes import users_router, utils_router

logger = logging.getLogger(__name__)
contextual_logger = get_logger(__name__)

ERROR_STATUS = (
    (InvalidArgumentError, status.HTTP_400_BAD_REQUEST, CODE_BAD_REQUEST),
    (InvalidIdentityError, status.HTTP_400_BAD_REQUEST, CODE_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND, CODE_NOT_FOUND),
    (DuplicateKeyError, status.HTTP_409_CONFLICT, CODE_CONFLICT),
    (DeadlineExceededError, status.HTTP_504_GATEWAY_TIMEOUT, CODE_GATEWAY_TIMEOUT),
)


def error_response(exc: UserServiceError):
    """Map a service error onto an HTTP status and response code."""
    for error_type, status_code, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return send_error(status_code, exc.message, code)
    return send_error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        f"Internal error: {exc.message}",
        CODE_INTERNAL_SERVER_ERROR,
    )


async def _handle_service_error(request: Request, exc: UserServiceError):
    if isinstance(
        exc, (InvalidArgumentError, InvalidIdentityError, NotFoundError, DuplicateKeyError)
    ):
        contextual_logger.info(f"{type(exc).__name__}: {exc}")
    else:
        contextual_logger.error(f"{type(exc).__name__}: {exc}")
    return error_response(exc)


async def _handle_validation_error(request: Request, exc: RequestValidationError):
    return send_error(
        422, "Invalid request body", CODE_INVALID_REQUEST
    )


async def _handle_http_error(request: Request, exc: StarletteHTTPException):
    return send_error(exc.status_code, str(exc.detail))


async def build_user_service(config: ServiceConfig, store: DocumentStore) -> UserService:
    """Wire the users repository and service onto a connected store."""
    repository = UserRepository(store.collection(config.users_collection), timeout=config.timeout)
    if config.ensure_unique_email_index:
        await repository.ensure_indexes()
    return UserService(
        repository,
        default_page_size=config.default_page_size,
        max_page_size=config.max_page_size,
        password_rounds=config.password_rounds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    config: ServiceConfig = app.state.config
    store: DocumentStore | None = app.state.store

    if store is not None:
        await store.connect(max_retries=config.connect_retries)
        if getattr(app.state, "user_service", None) is None:
            app.state.user_service = await build_user_service(config, store)

    contextual_logger.info(
        "Starting HTTP server",
        extra={"base_path": config.base_path, "port": config.http_port},
    )
    try:
        yield
    finally:
        if store is not None:
            await store.disconnect()
        contextual_logger.info("Server stopped")


def create_app(
    config: ServiceConfig | None = None,
    store: DocumentStore | None = None,
    user_service: UserService | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Service configuration (defaults to environment variables)
        store: Document store to connect at startup; created from ``config``
            when neither ``store`` nor ``user_service`` is given
        user_service: Prebuilt service (skips building one from the store)
    """
    config = config or ServiceConfig()
    config.validate()

    if store is None and user_service is None:
        store = DocumentStore(
            config.mongo_uri,
            config.db_name,
            max_pool_size=config.max_pool_size,
            min_pool_size=config.min_pool_size,
            timeout=config.timeout,
        )

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = store
    app.state.user_service = user_service

    checker = HealthChecker(timeout=config.timeout)
    if store is not None:
        checker.register("store", partial(check_store, store))
        checker.register("mongodb", _mongodb_check(store))
    app.state.health_checker = checker

    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(UserServiceError, _handle_service_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_error)

    app.include_router(users_router, prefix=config.base_path)
    app.include_router(utils_router, prefix=config.base_path)

    @app.get("/health", include_in_schema=False)
    async def liveness() -> PlainTextResponse:
        return PlainTextResponse("OK")

    return app


def _mongodb_check(store: DocumentStore):
    async def mongodb():
        client = store.client if store.connected else None
        return await ping_mongodb(client)

    return mongodb
