from __future__ import annotations

from typing import Optional

from shelters.env import get_state_backend as _get_state_backend
from shelters.interfaces import Persistence

from .json_store import JSONRecordPersistence
from .sqlite_store import SQLiteRecordPersistence

__all__ = ["Persistence", "get_persistence", "get_state_backend"]


def get_state_backend() -> str:
    return _get_state_backend()


def get_persistence(backend: Optional[str] = None) -> Persistence:
    backend = backend or get_state_backend()
    if backend == "json":
        return JSONRecordPersistence()
    if backend == "sqlite":
        return SQLiteRecordPersistence()
    raise ValueError(f"Unsupported state backend: {backend}")
