from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from shelters.env import get_records_path
from shelters.errors import PersistenceWriteFailed
from shelters.io.atomic import atomic_write_json, read_json

__all__ = ["JSONRecordPersistence", "DOCUMENT_KEY"]

LOG = logging.getLogger(__name__)

DOCUMENT_KEY = "Raidable Shelters"


class JSONRecordPersistence:
    """Lifecycle records kept in a single JSON document.

    The document shape is ``{"Raidable Shelters": {"<id>": {...}}}``; keys are
    strings on disk and integers in memory.
    """

    __slots__ = ("_path",)

    def __init__(self, path: Optional[str | Path] = None) -> None:
        self._path = Path(path) if path is not None else get_records_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Dict[int, Dict[str, Any]]:
        raw = read_json(self._path, default=None)
        if raw is None:
            return {}
        shelters = raw.get(DOCUMENT_KEY) if isinstance(raw, Mapping) else None
        if not isinstance(shelters, Mapping):
            LOG.warning("shelter records document malformed path=%s", self._path)
            return {}

        records: Dict[int, Dict[str, Any]] = {}
        for key, payload in shelters.items():
            try:
                structure_id = int(key)
            except (TypeError, ValueError):
                LOG.warning("shelter record skipped key=%r path=%s", key, self._path)
                continue
            if isinstance(payload, Mapping):
                records[structure_id] = dict(payload)
        return records

    def save(self, records: Mapping[int, Mapping[str, Any]]) -> None:
        doc = {DOCUMENT_KEY: {str(sid): dict(payload) for sid, payload in records.items()}}
        try:
            atomic_write_json(self._path, doc)
        except OSError as exc:
            raise PersistenceWriteFailed(f"could not write {self._path}: {exc}") from exc
        LOG.debug("shelter records saved backend=json count=%d", len(records))
