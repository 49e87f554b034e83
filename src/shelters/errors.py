"""Exception types raised by the shelter services.

Expected misses (no placement found, a failed object creation, a rejected
container insert, a stale record) are reported through ``None``/``False``
returns and outcome reason codes rather than exceptions.
"""

from __future__ import annotations

__all__ = ["ShelterError", "ConfigError", "PersistenceWriteFailed"]


class ShelterError(Exception):
    """Base class for shelter errors."""


class ConfigError(ShelterError):
    """Configuration is missing required tables or holds unusable ranges."""


class PersistenceWriteFailed(ShelterError):
    """A record backend could not write its document."""
