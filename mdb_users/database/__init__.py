"""
Database layer.

Usage:
    from mdb_users.database import DocumentStore

    store = DocumentStore(mongo_uri, db_name)
    await store.connect()
"""

from .connection import DocumentStore

__all__ = ["DocumentStore"]
