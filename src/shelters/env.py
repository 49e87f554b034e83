from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Final, Optional

from shelters import state
from shelters.util import parse_int

_LOG = logging.getLogger(__name__)

_STATE_BACKEND_ENV: Final[str] = "SHELTERS_STATE_BACKEND"
_VALID_STATE_BACKENDS: Final[frozenset[str]] = frozenset({"json", "sqlite"})
_DEFAULT_STATE_BACKEND: Final[str] = "json"
_DB_FILENAME: Final[str] = "shelters.db"
_RECORDS_FILENAME: Final[str] = "RaidableShelters.json"
_CONFIG_FILENAME: Final[tuple[str, str]] = ("config", "RaidableShelters.json")
_RNG_SEED_ENV: Final[str] = "SHELTERS_RNG_SEED"
_LOGGING_ENV: Final[str] = "SHELTERS_LOGGING"
_DEBUG_ENV: Final[str] = "SHELTERS_DEBUG"
_CONFIG_LOGGED = False


def _parse_bool(raw: Optional[str], *, default: bool = False) -> bool:
    if raw is None:
        return default
    token = raw.strip().lower()
    if token in {"1", "true", "yes", "on"}:
        return True
    if token in {"0", "false", "no", "off"}:
        return False
    return default


def get_state_backend() -> str:
    """Return the configured record backend.

    Controlled by ``SHELTERS_STATE_BACKEND``; ``"json"`` and ``"sqlite"`` are
    honoured and anything else falls back to ``"json"``.
    """

    raw = os.getenv(_STATE_BACKEND_ENV)
    if raw is None:
        backend = _DEFAULT_STATE_BACKEND
    else:
        candidate = raw.strip().lower()
        backend = candidate if candidate in _VALID_STATE_BACKENDS else _DEFAULT_STATE_BACKEND

    _log_configuration_once(backend)
    return backend


def get_state_database_path() -> Path:
    return state.state_path(_DB_FILENAME)


def get_records_path() -> Path:
    """Return the JSON file holding persisted shelter records."""

    return state.state_path(_RECORDS_FILENAME)


def get_config_path() -> Path:
    return state.state_path(*_CONFIG_FILENAME)


def get_runtime_seed() -> Optional[str]:
    """Return the configured RNG seed, if provided."""

    raw = os.getenv(_RNG_SEED_ENV)
    if raw is None:
        return None

    candidate = raw.strip()
    if not candidate:
        return None

    try:
        # ``42`` and ``0x2A`` resolve to the same seed.
        return str(parse_int(candidate))
    except ValueError:
        return candidate


def logging_enabled() -> bool:
    return _parse_bool(os.getenv(_LOGGING_ENV), default=False)


def debug_enabled() -> bool:
    return _parse_bool(os.getenv(_DEBUG_ENV), default=False)


def _log_configuration_once(backend: str) -> None:
    global _CONFIG_LOGGED

    if _CONFIG_LOGGED:
        return

    _LOG.info(
        "state backend=%s db_path=%s records=%s config=%s rng_seed=%s",
        backend,
        get_state_database_path(),
        get_records_path(),
        get_config_path(),
        get_runtime_seed(),
    )
    _CONFIG_LOGGED = True
