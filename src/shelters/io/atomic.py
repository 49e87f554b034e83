from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

LOG = logging.getLogger(__name__)


def atomic_write_json(path: str | Path, data: Any) -> None:
    """
    Write JSON atomically: tmp → fsync → replace.

    Parent directories are created as needed. The temporary file lives next to
    the destination so ``os.replace`` never crosses a filesystem boundary; a
    crash mid-write leaves the previous document intact.
    """

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(data, ensure_ascii=False, indent=2)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{p.name}.", dir=str(p.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, p)
    finally:
        if os.path.exists(tmp_name):
            try:
                os.unlink(tmp_name)
            except OSError:
                LOG.debug("could not remove temp file %s", tmp_name, exc_info=True)


def read_json(path: str | Path, default: Any = None) -> Any:
    """
    Best-effort JSON read.

    Returns ``default`` when the file is missing; a malformed document is
    logged and also yields ``default``.
    """

    p = Path(path)
    if not p.exists():
        return default
    try:
        with p.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, json.JSONDecodeError):
        LOG.error("Failed to load JSON from %s", p, exc_info=True)
        return default
