"""
HTTP routes for users and service utilities.
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from ..constants import INT64_MAX
from ..observability import get_metrics_collector
from ..services import UserService
from .responses import (
    CODE_BAD_REQUEST,
    CODE_NOT_FOUND,
    CODE_SERVICE_UNAVAILABLE,
    CODE_SUCCESS,
    send_error,
    send_success,
)
from .schemas import Pagination, UserCreate, UserOut, UserPage, UserUpdate

logger = logging.getLogger(__name__)

users_router = APIRouter(prefix="/users", tags=["users"])
utils_router = APIRouter(prefix="/utils", tags=["utils"])


def get_user_service(request: Request) -> UserService:
    """Get the UserService built during startup."""
    service = getattr(request.app.state, "user_service", None)
    if service is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Service not initialized")
    return service


def parse_int(value: str | None) -> int:
    """
    Lenient query-parameter parsing.

    Anything that is not a signed 64-bit integer becomes 0, which the
    service then normalizes to its default.
    """
    try:
        number = int(value) if value is not None else 0
    except ValueError:
        return 0
    if not -INT64_MAX - 1 <= number <= INT64_MAX:
        return 0
    return number


@users_router.get("")
async def list_users(request: Request, page: str | None = None, limit: str | None = None):
    """Get a paginated list of users."""
    service = get_user_service(request)
    result = await service.list(parse_int(page), parse_int(limit))
    body = UserPage(
        items=[UserOut.from_entity(user) for user in result.items],
        pagination=Pagination(page=result.page, limit=result.limit, total=result.total),
    )
    return send_success(CODE_SUCCESS, "Users retrieved successfully", data=body)


@users_router.post("")
async def create_user(request: Request, payload: UserCreate):
    """Create a new user."""
    if not payload.email:
        return send_error(status.HTTP_400_BAD_REQUEST, "Email is required", CODE_BAD_REQUEST)

    service = get_user_service(request)
    user = await service.create(payload.to_entity())
    return send_success(
        "USER_CREATED",
        "User created successfully",
        status.HTTP_201_CREATED,
        UserOut.from_entity(user),
    )


@users_router.get("/{user_id}")
async def get_user(request: Request, user_id: str):
    """Get a user by ID."""
    user_id = user_id.strip()
    if not user_id:
        return send_error(status.HTTP_404_NOT_FOUND, "User not found", CODE_NOT_FOUND)

    service = get_user_service(request)
    user = await service.get_by_id(user_id)
    return send_success(CODE_SUCCESS, "User retrieved successfully", data=UserOut.from_entity(user))


@users_router.put("/{user_id}")
async def update_user(request: Request, user_id: str, payload: UserUpdate):
    """Update a user's name, email or password."""
    if payload.email is not None and not payload.email:
        return send_error(status.HTTP_400_BAD_REQUEST, "Email is required", CODE_BAD_REQUEST)

    service = get_user_service(request)
    user = await service.update(user_id.strip(), payload.to_changes())
    return send_success(
        "USER_UPDATED", "User updated successfully", data=UserOut.from_entity(user)
    )


@users_router.delete("/{user_id}")
async def delete_user(request: Request, user_id: str):
    """Delete a user. Deleting an unknown user also succeeds."""
    service = get_user_service(request)
    await service.delete(user_id.strip())
    return send_success("USER_DELETED", "User deleted successfully")


@utils_router.get("/health")
async def health(request: Request):
    """Service information and dependency health."""
    config = request.app.state.config
    checker = request.app.state.health_checker
    checks = await checker.run()
    data = {
        "appName": config.app_name,
        "version": config.app_version,
        "environment": config.environment,
        "uuid": config.entity_uuid,
        "health": checks,
    }
    if checks["status"] == "unhealthy":
        return send_success(
            CODE_SERVICE_UNAVAILABLE,
            "Service is unhealthy",
            status.HTTP_503_SERVICE_UNAVAILABLE,
            data,
        )
    return send_success(CODE_SUCCESS, "Service is healthy", data=data)


@utils_router.get("/metrics")
async def metrics(request: Request):
    """Per-operation call counts, failures and latency, grouped by layer."""
    return send_success(
        CODE_SUCCESS, "Metrics retrieved successfully", data=get_metrics_collector().snapshot()
    )
