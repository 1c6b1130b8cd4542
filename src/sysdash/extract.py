"""Pattern-based field extraction from free-form command output."""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any


def search(pattern: str, text: str, flags: int = 0) -> str | None:
    """Return the first capture group of the first match, or None."""
    match = re.search(pattern, text, flags)
    if match is None:
        return None
    value = match.group(1)
    return value.strip() if value is not None else None


def search_int(pattern: str, text: str, flags: int = 0) -> int | None:
    """Like search(), parsed as an int. Unparseable values give None."""
    return _convert(search(pattern, text, flags), int)


def search_float(pattern: str, text: str, flags: int = 0) -> float | None:
    """Like search(), parsed as a float. Unparseable values give None."""
    return _convert(search(pattern, text, flags), float)


def _convert(value: str | None, convert: Callable[[str], Any]) -> Any:
    if value is None:
        return None
    try:
        return convert(value)
    except ValueError:
        return None


@dataclass(slots=True, frozen=True)
class Field:
    """One labeled value to pull out of command output."""

    label: str
    pattern: str
    default: Any
    convert: Callable[[str], Any] = str
    flags: int = 0

    def extract(self, text: str) -> Any:
        """Return the converted value, or the default when absent or unparseable."""
        value = _convert(search(self.pattern, text, self.flags), self.convert)
        return self.default if value is None else value


def extract_fields(text: str, fields: Iterable[Field]) -> dict[str, Any]:
    """Apply a field table to text. Each field falls back independently."""
    return {field.label: field.extract(text) for field in fields}


def clamp_percent(value: float) -> int:
    """Round and clamp a percentage to 0 - 100."""
    return max(0, min(100, round(value)))
