from __future__ import annotations

import hashlib

__all__ = ["parse_int", "derive_seed_value", "parse_version", "clamp"]


def parse_int(value: int | str, *, base: int = 0) -> int:
    """Parse *value* into an integer.

    Strings honour ``base`` and default to ``int(..., 0)`` auto-detection, so
    ``"0x2A"`` and ``"42"`` parse to the same value.

    Raises
    ------
    ValueError
        If *value* cannot be interpreted as an integer.
    """

    if isinstance(value, bool):
        raise ValueError(f"Unsupported type for integer parsing: {type(value)!r}")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Unsupported type for integer parsing: {type(value)!r}")
    try:
        return int(value.strip(), base)
    except ValueError as exc:
        raise ValueError(f"Invalid integer literal: {value!r}") from exc


def derive_seed_value(*parts: object, bits: int = 64) -> int:
    """Return a stable integer derived from *parts*.

    The parts are joined with ``"::"``, hashed with SHA-256 and truncated to
    ``bits`` (64 by default), which is suitable for seeding
    ``random.Random``.
    """

    joined = "::".join("" if part is None else str(part) for part in parts)
    digest = hashlib.sha256(joined.encode("utf-8")).digest()
    width = max(8, bits // 8)
    return int.from_bytes(digest[:width], "big", signed=False)


def parse_version(raw: object) -> tuple[int, ...]:
    """Return a comparable tuple for a dotted version string.

    Missing or malformed versions compare lower than any real release.
    """

    if not isinstance(raw, str) or not raw.strip():
        return (0,)
    parts: list[int] = []
    for token in raw.strip().split("."):
        try:
            parts.append(int(token))
        except ValueError:
            return (0,)
    return tuple(parts)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
