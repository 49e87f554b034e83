from __future__ import annotations

import logging
import os
import sqlite3
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from shelters.env import get_state_database_path
from shelters.errors import PersistenceWriteFailed

logger = logging.getLogger(__name__)

__all__ = ["SQLiteConnectionManager", "SQLiteRecordPersistence"]


def _coerce_int(value: Any, *, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _begin_immediate(conn: sqlite3.Connection) -> None:
    conn.execute("BEGIN IMMEDIATE")


def _resolve_db_path(db_path: Optional[os.PathLike[str] | str]) -> Path:
    if db_path is not None:
        return Path(db_path)
    return get_state_database_path()


class SQLiteConnectionManager:
    """Create SQLite connections with project defaults applied."""

    __slots__ = ("_db_path", "_connection")

    def __init__(self, db_path: Optional[os.PathLike[str] | str] = None) -> None:
        self._db_path = _resolve_db_path(db_path)
        self._connection: Optional[sqlite3.Connection] = None

    @property
    def path(self) -> Path:
        return self._db_path

    def connect(self) -> sqlite3.Connection:
        if self._connection is None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            # Removal timers may fire on a host thread other than the one
            # that opened the connection; the lifecycle lock serializes use.
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._configure_connection(conn)
            self._ensure_schema(conn)
            self._connection = conn
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def _configure_connection(self, conn: sqlite3.Connection) -> None:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA busy_timeout=5000")
        conn.execute("PRAGMA foreign_keys=ON")

    def schema_version(self) -> int:
        row = self.connect().execute("SELECT version FROM schema_meta LIMIT 1").fetchone()
        return _coerce_int(row[0]) if row is not None else 0

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        with conn:
            _begin_immediate(conn)
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_meta (
                    version INTEGER NOT NULL
                )
                """
            )
            row = conn.execute("SELECT version FROM schema_meta LIMIT 1").fetchone()
            if row is None:
                conn.execute("INSERT INTO schema_meta(version) VALUES (0)")
                version = 0
            else:
                version = _coerce_int(row[0], default=0)

            migrations: Sequence[tuple[int, Callable[[sqlite3.Connection], None]]] = (
                (1, self._migrate_to_v1),
                (2, self._migrate_to_v2),
            )

            for target_version, migration in migrations:
                if version < target_version:
                    migration(conn)
                    conn.execute(
                        "UPDATE schema_meta SET version = ?",
                        (target_version,),
                    )
                    version = target_version

    def _migrate_to_v1(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS shelter_records (
                structure_id INTEGER PRIMARY KEY,
                removal_deadline REAL NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS shelter_sub_objects (
                structure_id INTEGER NOT NULL
                    REFERENCES shelter_records(structure_id) ON DELETE CASCADE,
                sub_object_id INTEGER NOT NULL,
                position INTEGER NOT NULL,
                PRIMARY KEY (structure_id, sub_object_id)
            )
            """
        )

    def _migrate_to_v2(self, conn: sqlite3.Connection) -> None:
        columns = {row[1] for row in conn.execute("PRAGMA table_info(shelter_records)").fetchall()}
        if "created_at" not in columns:
            conn.execute("ALTER TABLE shelter_records ADD COLUMN created_at REAL")
            conn.execute("UPDATE shelter_records SET created_at = removal_deadline WHERE created_at IS NULL")
        conn.execute(
            "CREATE INDEX IF NOT EXISTS shelter_records_deadline_idx ON shelter_records(removal_deadline)"
        )


class SQLiteRecordPersistence:
    """Lifecycle record persistence backed by ``shelter_records``."""

    __slots__ = ("_manager",)

    def __init__(self, manager: Optional[SQLiteConnectionManager] = None) -> None:
        self._manager = manager or SQLiteConnectionManager()

    @property
    def manager(self) -> SQLiteConnectionManager:
        return self._manager

    def load(self) -> Dict[int, Dict[str, Any]]:
        conn = self._manager.connect()
        records: Dict[int, Dict[str, Any]] = {}
        for row in conn.execute(
            "SELECT structure_id, removal_deadline, created_at FROM shelter_records ORDER BY structure_id"
        ):
            records[int(row["structure_id"])] = {
                "Interior Entities": [],
                "Removal Timer": float(row["removal_deadline"]),
                "Created At": row["created_at"],
            }
        for row in conn.execute(
            "SELECT structure_id, sub_object_id FROM shelter_sub_objects ORDER BY structure_id, position"
        ):
            payload = records.get(int(row["structure_id"]))
            if payload is not None:
                payload["Interior Entities"].append(int(row["sub_object_id"]))
        return records

    def save(self, records: Mapping[int, Mapping[str, Any]]) -> None:
        conn = self._manager.connect()
        try:
            with conn:
                _begin_immediate(conn)
                conn.execute("DELETE FROM shelter_sub_objects")
                conn.execute("DELETE FROM shelter_records")
                for structure_id, payload in records.items():
                    conn.execute(
                        "INSERT INTO shelter_records(structure_id, removal_deadline, created_at) VALUES (?, ?, ?)",
                        (int(structure_id), float(payload["Removal Timer"]), payload.get("Created At")),
                    )
                    conn.executemany(
                        "INSERT OR IGNORE INTO shelter_sub_objects(structure_id, sub_object_id, position) "
                        "VALUES (?, ?, ?)",
                        [
                            (int(structure_id), int(sub_id), index)
                            for index, sub_id in enumerate(payload.get("Interior Entities") or [])
                        ],
                    )
        except sqlite3.Error as exc:
            raise PersistenceWriteFailed(f"sqlite save failed: {exc}") from exc
        logger.debug("shelter records saved backend=sqlite count=%d", len(records))
