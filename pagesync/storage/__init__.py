"""Storage layer: PostgreSQL connection pool."""

from pagesync.storage.database import Database

__all__ = ["Database"]
