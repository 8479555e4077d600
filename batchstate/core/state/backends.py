"""State backend implementations for batchstate checkpoints.

This module provides the abstract StateBackend interface and concrete
implementations for storing serialized execution contexts. Backends only
deal with opaque payloads; turning a context into bytes is the job of a
ContextSerializer.
"""

import copy
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, ContextManager, Dict, Iterator, List, Optional, Tuple

import duckdb

from batchstate.logging import get_logger

logger = get_logger(__name__)

CHECKPOINT_TABLE = "batchstate_checkpoints"


class StateBackend(ABC):
    """Abstract interface for checkpoint persistence."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Get the payload for the given key.

        Args:
            key: The checkpoint key to retrieve

        Returns:
            The stored payload or None if key doesn't exist
        """

    @abstractmethod
    def set(
        self, key: str, value: bytes, timestamp: Optional[datetime] = None
    ) -> None:
        """Store the payload for the given key.

        Args:
            key: The checkpoint key to store
            value: The serialized payload
            timestamp: Optional timestamp for the operation
        """

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete the given key.

        Args:
            key: The checkpoint key to delete

        Returns:
            True if key existed and was deleted, False otherwise
        """

    @abstractmethod
    def list_keys(self, prefix: Optional[str] = None) -> List[str]:
        """List stored keys in sorted order, optionally filtered by prefix."""

    @abstractmethod
    def transaction(self) -> ContextManager[Any]:
        """Context manager for atomic transactions."""

    @abstractmethod
    def close(self) -> None:
        """Close the backend and clean up resources."""


class InMemoryStateBackend(StateBackend):
    """Dictionary-based backend for tests and local runs."""

    def __init__(self):
        self._store: Dict[str, Tuple[bytes, datetime]] = {}

    def get(self, key: str) -> Optional[bytes]:
        entry = self._store.get(key)
        return None if entry is None else entry[0]

    def set(
        self, key: str, value: bytes, timestamp: Optional[datetime] = None
    ) -> None:
        self._store[key] = (bytes(value), timestamp or datetime.now(timezone.utc))
        logger.debug(f"Set checkpoint payload for key {key}")

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def list_keys(self, prefix: Optional[str] = None) -> List[str]:
        return sorted(k for k in self._store if prefix is None or k.startswith(prefix))

    @contextmanager
    def transaction(self) -> Iterator["InMemoryStateBackend"]:
        snapshot = copy.copy(self._store)
        try:
            yield self
        except BaseException:
            self._store = snapshot
            logger.debug("Rolled back in-memory transaction due to error")
            raise

    def close(self) -> None:
        self._store.clear()


class DuckDBStateBackend(StateBackend):
    """DuckDB-based checkpoint persistence backend.

    Stores payloads as BLOBs in a single table. Uses an in-memory database
    unless a file path or an existing connection is given.
    """

    def __init__(
        self,
        connection: Optional[duckdb.DuckDBPyConnection] = None,
        database: str = ":memory:",
    ):
        """Initialize DuckDB state backend.

        Args:
            connection: Optional existing DuckDB connection. If None, creates new one.
            database: Database path used when no connection is given
        """
        self.connection = connection or duckdb.connect(database)
        self._create_state_tables()
        logger.info("DuckDB state backend initialized")

    def _create_state_tables(self) -> None:
        """Create checkpoint table if it doesn't exist."""
        self.connection.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {CHECKPOINT_TABLE} (
                key VARCHAR PRIMARY KEY,
                payload BLOB NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )
        logger.debug("Checkpoint table created successfully")

    def get(self, key: str) -> Optional[bytes]:
        try:
            result = self.connection.execute(
                f"SELECT payload FROM {CHECKPOINT_TABLE} WHERE key = ?", [key]
            ).fetchone()
        except Exception as e:
            logger.error(f"Failed to get checkpoint for key {key}: {e}")
            raise

        if result is None:
            return None
        return bytes(result[0])

    def set(
        self, key: str, value: bytes, timestamp: Optional[datetime] = None
    ) -> None:
        ts = timestamp or datetime.now(timezone.utc)
        if ts.tzinfo is not None:
            # TIMESTAMP columns hold naive UTC values
            ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
        try:
            self.connection.execute(
                f"""
                INSERT OR REPLACE INTO {CHECKPOINT_TABLE} (key, payload, updated_at)
                VALUES (?, ?, ?)
            """,
                [key, bytes(value), ts],
            )
            logger.debug(f"Set checkpoint for key {key}")
        except Exception as e:
            logger.error(f"Failed to set checkpoint for key {key}: {e}")
            raise

    def delete(self, key: str) -> bool:
        try:
            exists = self.connection.execute(
                f"SELECT 1 FROM {CHECKPOINT_TABLE} WHERE key = ?", [key]
            ).fetchone()

            if not exists:
                return False

            self.connection.execute(
                f"DELETE FROM {CHECKPOINT_TABLE} WHERE key = ?", [key]
            )
            logger.debug(f"Deleted checkpoint for key {key}")
            return True

        except Exception as e:
            logger.error(f"Failed to delete checkpoint for key {key}: {e}")
            raise

    def list_keys(self, prefix: Optional[str] = None) -> List[str]:
        if prefix is None:
            rows = self.connection.execute(
                f"SELECT key FROM {CHECKPOINT_TABLE} ORDER BY key"
            ).fetchall()
        else:
            rows = self.connection.execute(
                f"SELECT key FROM {CHECKPOINT_TABLE} "
                "WHERE starts_with(key, ?) ORDER BY key",
                [prefix],
            ).fetchall()
        return [row[0] for row in rows]

    def transaction(self) -> ContextManager[Any]:
        """Context manager for atomic transactions."""
        return DuckDBTransaction(self.connection)

    def close(self) -> None:
        """Close the backend and clean up resources."""
        if self.connection:
            self.connection.close()
            logger.info("DuckDB state backend closed")


class DuckDBTransaction:
    """Context manager for DuckDB transactions."""

    def __init__(self, connection: duckdb.DuckDBPyConnection):
        self.connection = connection

    def __enter__(self):
        """Begin transaction."""
        self.connection.execute("BEGIN TRANSACTION")
        logger.debug("Started DuckDB transaction")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """End transaction, rolling back on error."""
        if exc_type is not None:
            self.connection.execute("ROLLBACK")
            logger.debug("Rolled back DuckDB transaction due to error")
        else:
            self.connection.execute("COMMIT")
            logger.debug("Committed DuckDB transaction")
