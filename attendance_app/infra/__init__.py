"""Infra layer: cache storage, remote transport, logging and the CLI."""

from attendance_app.infra.errors import (
    CorruptDataError,
    FetchAttempt,
    InfraError,
    MalformedPayloadError,
    NotFoundError,
    OperationCancelledError,
    SourceExhaustedError,
)

__all__ = [
    "CorruptDataError",
    "FetchAttempt",
    "InfraError",
    "MalformedPayloadError",
    "NotFoundError",
    "OperationCancelledError",
    "SourceExhaustedError",
]
