"""
Database Connection Layer

SQLite storage for the shop ledger with automatic schema creation.
"""

import os
import sqlite3
from contextlib import contextmanager
from typing import Optional, Generator, Any, Dict, List
from datetime import datetime, timezone
import threading
import structlog

from ..core.errors import StorageUnavailable

logger = structlog.get_logger()

DEFAULT_DATABASE_URL = "sqlite:///cueledger.db"

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Stations (tables and consoles)
CREATE TABLE IF NOT EXISTS stations (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'available',
    hourly_rate REAL NOT NULL DEFAULT 0,
    version INTEGER NOT NULL DEFAULT 0
);

-- Timed sessions
CREATE TABLE IF NOT EXISTS sessions (
    session_id TEXT PRIMARY KEY,
    station_id TEXT NOT NULL,
    station_name TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT,
    suggested_amount REAL NOT NULL DEFAULT 0,
    paid_amount REAL NOT NULL DEFAULT 0,
    balance REAL NOT NULL DEFAULT 0,
    payment_type TEXT NOT NULL DEFAULT 'pending',
    customer_name TEXT,
    payment_status TEXT NOT NULL DEFAULT 'pending',
    version INTEGER NOT NULL DEFAULT 0
);

-- Customer credits
CREATE TABLE IF NOT EXISTS credits (
    credit_id TEXT PRIMARY KEY,
    customer_name TEXT NOT NULL,
    amount REAL NOT NULL,
    status TEXT NOT NULL DEFAULT 'unpaid',
    created_at TEXT NOT NULL,
    session_id TEXT,
    paid_at TEXT,
    version INTEGER NOT NULL DEFAULT 0
);

-- Payments (append-only audit trail)
CREATE TABLE IF NOT EXISTS payments (
    payment_id TEXT PRIMARY KEY,
    date TEXT NOT NULL,
    amount REAL NOT NULL,
    method TEXT NOT NULL,
    linked_session_id TEXT
);

-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

-- Indexes for performance
CREATE INDEX IF NOT EXISTS idx_sessions_station ON sessions(station_id);
CREATE INDEX IF NOT EXISTS idx_sessions_status ON sessions(payment_status);
CREATE INDEX IF NOT EXISTS idx_credits_status ON credits(status);
CREATE INDEX IF NOT EXISTS idx_credits_session ON credits(session_id);
CREATE INDEX IF NOT EXISTS idx_payments_date ON payments(date);
"""


class Database:
    """
    SQLite connection manager.

    Usage:
        db = Database()  # Uses DATABASE_URL env or defaults to ./cueledger.db
        with db.transaction():
            db.execute("UPDATE sessions SET ...")
            db.execute("INSERT INTO credits ...")
    """

    def __init__(self, database_url: Optional[str] = None, timeout: float = 30.0):
        self.database_url = database_url or os.environ.get(
            "DATABASE_URL",
            DEFAULT_DATABASE_URL,
        )
        if not self.database_url.startswith("sqlite:///"):
            raise ValueError(f"Unsupported database URL: {self.database_url}")
        self.timeout = timeout
        self._local = threading.local()
        self._lock = threading.Lock()
        self._initialized = False

    def _get_sqlite_path(self) -> str:
        """Extract SQLite file path from URL."""
        return self.database_url[len("sqlite:///"):]

    def _connect(self) -> sqlite3.Connection:
        if getattr(self._local, "conn", None) is None:
            self._local.conn = sqlite3.connect(
                self._get_sqlite_path(),
                check_same_thread=False,
                timeout=self.timeout,
            )
            self._local.conn.row_factory = sqlite3.Row
            # Enable WAL mode for better concurrency
            self._local.conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn.execute("PRAGMA synchronous=NORMAL")
            self._local.depth = 0
        return self._local.conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Thread-local connection; commits on exit unless inside a transaction."""
        conn = self._connect()
        try:
            yield conn
            if self._local.depth == 0:
                conn.commit()
        except Exception:
            if self._local.depth == 0:
                conn.rollback()
            raise

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run several statements atomically. Nested calls join the outer one."""
        conn = self._connect()
        outermost = self._local.depth == 0
        if outermost:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                logger.error("database_begin_failed", error=str(e))
                raise StorageUnavailable(f"Could not start transaction: {e}")
        self._local.depth += 1
        try:
            yield conn
        except Exception:
            self._local.depth -= 1
            if outermost:
                conn.rollback()
                logger.warning("database_transaction_rolled_back")
            raise
        else:
            self._local.depth -= 1
            if outermost:
                try:
                    conn.commit()
                except sqlite3.Error as e:
                    conn.rollback()
                    logger.error("database_commit_failed", error=str(e))
                    raise StorageUnavailable(f"Could not commit transaction: {e}")

    def initialize(self) -> None:
        """Initialize database schema."""
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return

            try:
                with self.connection() as conn:
                    conn.executescript(SCHEMA_SQL)
                    now = datetime.now(timezone.utc).isoformat()
                    conn.execute(
                        "INSERT OR IGNORE INTO schema_version (version, applied_at) VALUES (?, ?)",
                        (SCHEMA_VERSION, now)
                    )
            except sqlite3.Error as e:
                logger.error("database_initialize_failed", error=str(e))
                raise StorageUnavailable(f"Could not initialize database: {e}")

            self._initialized = True
            logger.info("database_initialized", url=self.database_url)

    def execute(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Execute a query and return results as list of dicts."""
        try:
            with self.connection() as conn:
                cursor = conn.execute(query, params)
                if cursor.description:
                    return [dict(row) for row in cursor.fetchall()]
                return []
        except sqlite3.Error as e:
            logger.error("database_query_failed", error=str(e), query=query.split()[0])
            raise StorageUnavailable(f"Database error: {e}")

    def execute_write(self, query: str, params: tuple = ()) -> int:
        """Execute a write and return the number of affected rows."""
        try:
            with self.connection() as conn:
                return conn.execute(query, params).rowcount
        except sqlite3.Error as e:
            logger.error("database_write_failed", error=str(e), query=query.split()[0])
            raise StorageUnavailable(f"Database error: {e}")

    def close(self) -> None:
        """Close database connections."""
        if getattr(self._local, "conn", None) is not None:
            self._local.conn.close()
            self._local.conn = None


def get_database(database_url: Optional[str] = None) -> Database:
    """Open and initialize a database for the given URL."""
    db = Database(database_url)
    db.initialize()
    return db
