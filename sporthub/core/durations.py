"""Duration string grammar used by token lifetime settings."""

from __future__ import annotations

import re
from datetime import timedelta

_DURATION_PATTERN = re.compile(r"([0-9]+)([smhd])")
_UNIT_MILLISECONDS: dict[str, int] = {
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}


class ConfigurationError(Exception):
    """Raised when process configuration is unusable."""


def parse_duration_ms(value: str) -> int:
    """Parse `<integer><unit>` (unit in s, m, h, d) into milliseconds."""
    match = _DURATION_PATTERN.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise ConfigurationError(f"Invalid duration format: {value!r}")
    amount, unit = match.groups()
    return int(amount) * _UNIT_MILLISECONDS[unit]


def parse_duration(value: str) -> timedelta:
    """Parse a duration string into a timedelta."""
    return timedelta(milliseconds=parse_duration_ms(value))
