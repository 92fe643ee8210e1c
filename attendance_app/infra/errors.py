"""Error model of the infra layer: cache storage and remote transport."""
from __future__ import annotations

from dataclasses import dataclass, field


class InfraError(RuntimeError):
    """Base of every infra-layer error."""

    def __str__(self) -> str:  # pragma: no cover - trivial
        return super().__str__()


@dataclass(eq=True)
class NotFoundError(InfraError):
    """A requested cache entry does not exist."""

    storage_id: str
    message: str = "cache entry not found"

    def __str__(self) -> str:
        return f"{self.message}: {self.storage_id}"


@dataclass(eq=True)
class CorruptDataError(InfraError):
    """A cache entry exists but does not hold a JSON array of records."""

    storage_id: str
    reason: str

    def __str__(self) -> str:
        return f"cache entry {self.storage_id} is unreadable: {self.reason}"


@dataclass(frozen=True)
class FetchAttempt:
    """One provider request made while resolving a dataset."""

    provider: str
    resource: str
    url: str
    status: int | None = None
    error: str | None = None

    def describe(self) -> str:
        outcome = f"HTTP {self.status}" if self.status is not None else (self.error or "no response")
        return f"{self.resource} ({self.provider}: {outcome})"


@dataclass(eq=True)
class SourceExhaustedError(InfraError):
    """Every remote provider failed at transport level."""

    attempts: list[FetchAttempt] = field(default_factory=list)

    @property
    def attempted_paths(self) -> list[str]:
        return [attempt.resource for attempt in self.attempts]

    def __str__(self) -> str:
        lines = ["Attendance data not found in any repository. Tried paths:"]
        lines.extend(f"  - {attempt.describe()}" for attempt in self.attempts)
        return "\n".join(lines)


@dataclass(eq=True)
class MalformedPayloadError(InfraError):
    """A provider answered successfully but the body is not a record array."""

    resource: str
    reason: str

    def __str__(self) -> str:
        return f"malformed payload from {self.resource}: {self.reason}"


@dataclass(eq=True)
class OperationCancelledError(InfraError):
    """The caller cancelled the acquisition before it completed."""

    message: str = "operation cancelled by caller"

    def __str__(self) -> str:
        return self.message


__all__ = [
    "InfraError",
    "NotFoundError",
    "CorruptDataError",
    "FetchAttempt",
    "SourceExhaustedError",
    "MalformedPayloadError",
    "OperationCancelledError",
]
