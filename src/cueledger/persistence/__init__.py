"""
Persistence Layer for CueLedger

Storage port plus in-memory and SQLite adapters.
"""

from typing import Optional
import os

from .port import StoragePort
from .memory import InMemoryStore
from .database import Database, get_database, DEFAULT_DATABASE_URL
from .repository import SqlStore

MEMORY_URL = "memory://"


def open_store(database_url: Optional[str] = None) -> StoragePort:
    """Build the storage adapter named by a database URL."""
    url = database_url or os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)
    if url.startswith(MEMORY_URL):
        return InMemoryStore()
    return SqlStore(get_database(url))


__all__ = [
    "StoragePort",
    "InMemoryStore",
    "Database",
    "get_database",
    "SqlStore",
    "open_store",
    "MEMORY_URL",
]
