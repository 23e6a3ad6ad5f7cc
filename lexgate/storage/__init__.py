# lexgate/storage/__init__.py

"""Storage module initialization.

This module provides a unified interface for control-plane database
operations, currently backed by a single SQLite connection.
"""

from .sqlite_base import (
    get_sqlite_db_connection,
    init_sqlite_db,
    close_sqlite_db_connection
)

__all__ = [
    "get_sqlite_db_connection",
    "init_sqlite_db",
    "close_sqlite_db_connection"
]
