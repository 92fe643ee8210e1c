"""Stage timing and dataset context for pipeline logging.

``dataset_context`` marks which cache entry the current code path works on.
Log records pick it up through :class:`~attendance_app.infra.logging.DatasetContextFilter`,
and an exception escaping the block is tagged with it so a crash report raised
much later still names the dataset.

Example::

    >>> with dataset_context("Y1_Genetics_attendance.json"):
    ...     current_dataset()
    'Y1_Genetics_attendance.json'
    >>> current_dataset() is None
    True
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from logging import Logger
from time import perf_counter
from typing import Iterator

__all__ = ["DATASET_ATTRIBUTE", "current_dataset", "dataset_context", "dataset_of", "log_step"]

DATASET_ATTRIBUTE = "attendance_dataset"

_CURRENT_DATASET: ContextVar[str | None] = ContextVar("attendance_dataset", default=None)


def current_dataset() -> str | None:
    return _CURRENT_DATASET.get()


def dataset_of(exc: BaseException) -> str | None:
    """Dataset an exception was raised for, if it crossed a ``dataset_context``."""

    return getattr(exc, DATASET_ATTRIBUTE, None)


@contextmanager
def dataset_context(storage_id: str) -> Iterator[None]:
    token = _CURRENT_DATASET.set(storage_id)
    try:
        yield
    except Exception as exc:
        # innermost context wins
        if dataset_of(exc) is None:
            setattr(exc, DATASET_ATTRIBUTE, storage_id)
        raise
    finally:
        _CURRENT_DATASET.reset(token)


@contextmanager
def log_step(logger: Logger, step: str, *args: object) -> Iterator[None]:
    """Log start, end and duration of ``step`` at DEBUG level.

    ``args`` are %-style arguments for ``step``. Failures are logged at
    WARNING without a traceback and re-raised; the caller decides how loud
    the final report is.
    """

    label = step % args if args else step
    start = perf_counter()
    logger.debug("start: %s", label)
    try:
        yield
    except Exception as exc:
        logger.warning("%s failed after %.2fs: %s", label, perf_counter() - start, exc)
        raise
    else:
        logger.debug("done: %s (%.2fs)", label, perf_counter() - start)
