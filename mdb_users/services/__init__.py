"""
Service layer.
"""

from .users import Page, UserChanges, UserService, generate_password, hash_password

__all__ = ["Page", "UserChanges", "UserService", "generate_password", "hash_password"]
