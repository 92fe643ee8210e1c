"""Domain errors raised by the pure core of the attendance pipeline."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class DomainError(Exception):
    """Base for every core (non-I/O) error."""


@dataclass(eq=True)
class BaseDomainError(DomainError):
    """Error enriched with context for debugging and user-facing reports.

    Attributes:
        func: name of the function that raised.
        field: offending input field, when relevant.
        value: raw value that caused the failure.
    """

    func: str
    field: str | None = None
    value: Any | None = None
    message: str | None = None

    def __str__(self) -> str:
        parts: list[str] = [self.__class__.__name__, f"func={self.func}"]
        if self.field is not None:
            parts.append(f"field={self.field}")
        if self.value is not None:
            parts.append(f"value={self.value!r}")
        if self.message:
            parts.append(f"| {self.message}")
        return " ".join(parts)


class CodecError(BaseDomainError):
    """Encoded transport text is not valid base64 or not valid UTF-8."""


class ValidationError(BaseDomainError):
    """A required caller input (student id, year, module id) is missing or malformed."""


__all__ = [
    "DomainError",
    "BaseDomainError",
    "CodecError",
    "ValidationError",
]
