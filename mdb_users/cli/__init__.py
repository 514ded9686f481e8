"""
Command line interface for MDB_USERS.
"""

from .main import cli

__all__ = ["cli"]
