"""Key/value slot storage backing the journal, the progress ledger and the credential."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import sqlite3
import tempfile
import threading
from pathlib import Path
from typing import Any, List, Mapping, Optional

from .schema import utc_now_iso

DEFAULT_DB_PATH = Path("data/claritymap.sqlite")
LOGGER = logging.getLogger(__name__)

DOCUMENT_SLOT = "clarityMapJournalData"
PROGRESS_SLOT = "clarityMap_progress"
CREDENTIAL_SLOT = "clarityMap_aiApiKey"
MEMORY_DB = ":memory:"


class SlotStore:
    """SQLite-backed string slots with JSON encoding and contained failures.

    Every public operation reports failure as ``False`` (or the supplied
    default) instead of raising, so callers can keep working on in-memory
    state when a write does not go through.
    """

    @staticmethod
    def _can_write(path: Path) -> bool:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        target = path if path.exists() else path.parent
        return os.access(target, os.W_OK)

    @staticmethod
    def _temp_location(source: Path) -> Path:
        digest = hashlib.sha1(source.as_posix().encode("utf-8")).hexdigest()[:12]
        directory = Path(tempfile.gettempdir()) / "claritymap" / "db" / digest
        directory.mkdir(parents=True, exist_ok=True)
        return directory / source.name

    @classmethod
    def _locate(cls, requested: Path) -> Path:
        """Pick the requested file, or a temp copy of it when it cannot be written."""
        resolved = requested.resolve()
        if cls._can_write(resolved):
            return resolved
        fallback = cls._temp_location(resolved)
        if not fallback.exists():
            if resolved.is_file() and os.access(resolved, os.R_OK):
                shutil.copy2(resolved, fallback)
            else:
                fallback.touch()
        fallback.chmod(0o600)
        if not cls._can_write(fallback):
            raise OSError(f"no writable location for {requested}")
        return fallback

    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH) -> None:
        requested_path = Path(db_path)
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None
        try:
            self.db_path = self._locate(requested_path)
            self._conn = self._open_connection()
            self._bootstrap()
        except (OSError, sqlite3.Error) as error:
            self.close()
            LOGGER.error(
                "Cannot open journal database at %s (%s); keeping data in memory only",
                requested_path,
                error,
            )
            self.db_path = Path(MEMORY_DB)
            self._conn = self._open_connection()
            self._bootstrap()
        else:
            if self.db_path != requested_path.resolve():
                LOGGER.warning(
                    "Database path %s is not writable; using fallback %s",
                    requested_path,
                    self.db_path,
                )

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "SlotStore":
        paths = config.get("paths") or {}
        db_path = paths.get("db_path")
        if db_path:
            return cls(Path(db_path))

        data_path = paths.get("data") or "data"
        return cls(Path(data_path) / "claritymap.sqlite")

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                try:
                    self._conn.close()
                finally:
                    self._conn = None

    def __enter__(self) -> "SlotStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _open_connection(self) -> sqlite3.Connection:
        # Debounced writes land on a timer thread; access is serialised by ``_lock``.
        connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
        connection.row_factory = sqlite3.Row
        return connection

    def _bootstrap(self) -> None:
        with self._lock:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS slots (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )
            self._conn.commit()

    def set(self, key: str, value: Any) -> bool:
        """JSON-encode ``value`` and store it under ``key``."""
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as error:
            LOGGER.error("Failed to serialise slot %s: %s", key, error)
            return False

        with self._lock:
            if self._conn is None:
                LOGGER.error("Slot store is closed; dropping write to %s", key)
                return False
            try:
                self._conn.execute(
                    """
                    INSERT INTO slots (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, encoded, utc_now_iso()),
                )
                self._conn.commit()
            except sqlite3.Error as error:
                LOGGER.error("Failed to write slot %s: %s", key, error)
                return False
        return True

    def get(self, key: str, default: Any = None) -> Any:
        """Return the decoded value stored under ``key`` or ``default``."""
        with self._lock:
            if self._conn is None:
                return default
            try:
                row = self._conn.execute("SELECT value FROM slots WHERE key = ?", (key,)).fetchone()
            except sqlite3.Error as error:
                LOGGER.error("Failed to read slot %s: %s", key, error)
                return default
        if row is None or not row["value"]:
            return default
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as error:
            LOGGER.error("Slot %s holds invalid JSON: %s", key, error)
            return default

    def remove(self, key: str) -> bool:
        with self._lock:
            if self._conn is None:
                return False
            try:
                self._conn.execute("DELETE FROM slots WHERE key = ?", (key,))
                self._conn.commit()
            except sqlite3.Error as error:
                LOGGER.error("Failed to remove slot %s: %s", key, error)
                return False
        return True

    def clear(self) -> bool:
        with self._lock:
            if self._conn is None:
                return False
            try:
                self._conn.execute("DELETE FROM slots")
                self._conn.commit()
            except sqlite3.Error as error:
                LOGGER.error("Failed to clear slot store: %s", error)
                return False
        return True

    def keys(self) -> List[str]:
        with self._lock:
            if self._conn is None:
                return []
            try:
                rows = self._conn.execute("SELECT key FROM slots ORDER BY key").fetchall()
            except sqlite3.Error as error:
                LOGGER.error("Failed to list slots: %s", error)
                return []
        return [row["key"] for row in rows]


__all__ = [
    "CREDENTIAL_SLOT",
    "DEFAULT_DB_PATH",
    "DOCUMENT_SLOT",
    "MEMORY_DB",
    "PROGRESS_SLOT",
    "SlotStore",
]
