"""
HTTP layer.

Usage:
    uvicorn mdb_users.api:create_app --factory
"""

from .app import create_app, lifespan
from .responses import envelope, send_error, send_success

__all__ = ["create_app", "lifespan", "envelope", "send_error", "send_success"]
