"""Logging for the attendance CLI.

The YAML file in ``config/logging.yaml`` is a plain ``dictConfig`` document.
:func:`configure_logging` applies it, moves relative log files into the log
folder and stamps every record with the run's ``session_id`` and the dataset
being processed. :func:`install_crash_reporter` writes one text file per
unhandled exception under ``<log_dir>/crashes``, naming the dataset the
failure happened on.

Example::

    >>> from pathlib import Path
    >>> run = LoggingSession(version="0.1.0", session_id="1f2e3d4c5b6a", log_dir=Path("logs"))
    >>> run.crash_dir
    PosixPath('logs/crashes')
"""
from __future__ import annotations

import logging
import logging.config
import os
import sys
import traceback
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from types import TracebackType
from typing import Any, Callable

import yaml

from attendance_app.infra.logging_ext import current_dataset, dataset_of

__all__ = [
    "DEFAULT_LOGGING_CONFIG",
    "PACKAGE_LOGGER",
    "DatasetContextFilter",
    "LoggingSession",
    "configure_logging",
    "install_crash_reporter",
    "load_logging_config",
]

DEFAULT_LOGGING_CONFIG = Path("config/logging.yaml")
PACKAGE_LOGGER = "attendance_app"
_NO_DATASET = "-"


@dataclass(frozen=True)
class LoggingSession:
    """One CLI run: its id, version and log folder."""

    version: str
    session_id: str
    log_dir: Path

    @property
    def crash_dir(self) -> Path:
        return self.log_dir / "crashes"

    def write_crash_report(self, exc: BaseException, traceback_text: str) -> Path:
        """Write a crash report for ``exc`` and return its path.

        The dataset comes from the exception itself when it left a
        ``dataset_context``, otherwise from the context still active.
        """

        dataset = dataset_of(exc) or current_dataset() or _NO_DATASET
        moment = datetime.now(timezone.utc)
        self.crash_dir.mkdir(parents=True, exist_ok=True)
        path = self.crash_dir / f"crash-{moment:%Y%m%dT%H%M%SZ}-{self.session_id[:8]}.txt"
        body = "\n".join(
            [
                f"attendance_app {self.version}",
                f"session: {self.session_id} (pid {os.getpid()})",
                f"dataset: {dataset}",
                f"at: {moment.isoformat(timespec='seconds')}",
                f"error: {type(exc).__name__}: {exc}",
                "",
                traceback_text.rstrip(),
                "",
            ]
        )
        path.write_text(body, encoding="utf-8")
        return path


class DatasetContextFilter(logging.Filter):
    """Add ``session_id`` and ``dataset`` to every record passing a handler."""

    def __init__(self, session_id: str) -> None:
        super().__init__()
        self.session_id = session_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = self.session_id
        record.dataset = current_dataset() or _NO_DATASET
        return True


def load_logging_config(config_path: str | Path, log_dir: Path) -> dict[str, Any]:
    """Read the YAML document and point relative log files into ``log_dir``.

    Raises:
        FileNotFoundError: the configuration file does not exist.
        ValueError: the YAML document is not a mapping.
    """

    path = Path(config_path)
    if not path.is_file():
        raise FileNotFoundError(f"logging config not found: {path}")
    config = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(config, dict):
        raise ValueError(f"logging config must be a mapping: {path}")

    handlers = config.get("handlers") or {}
    for handler in handlers.values() if isinstance(handlers, dict) else ():
        if isinstance(handler, dict) and handler.get("filename"):
            filename = Path(str(handler["filename"])).expanduser()
            if not filename.is_absolute():
                handler["filename"] = str(log_dir / filename.name)
    return config


def configure_logging(
    config_path: str | Path = DEFAULT_LOGGING_CONFIG,
    *,
    log_dir: str | Path,
    version: str,
    logger_name: str = PACKAGE_LOGGER,
) -> LoggingSession:
    """Apply the logging configuration for one run.

    The context filter goes on the handlers of the root logger and of
    ``logger_name``, which are the only ones the shipped configuration uses.
    """

    folder = Path(log_dir).expanduser().resolve()
    folder.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(load_logging_config(config_path, folder))

    session = LoggingSession(version=version, session_id=uuid.uuid4().hex, log_dir=folder)
    context_filter = DatasetContextFilter(session.session_id)
    for name in ("", logger_name):
        for handler in logging.getLogger(name).handlers:
            for existing in [f for f in handler.filters if isinstance(f, DatasetContextFilter)]:
                handler.removeFilter(existing)
            handler.addFilter(context_filter)
    logging.captureWarnings(True)
    return session


def install_crash_reporter(logger: logging.Logger, session: LoggingSession) -> Callable[[], None]:
    """Route unhandled exceptions to a crash report; returns the undo callable."""

    previous_hook = sys.excepthook

    def report(
        exc_type: type[BaseException],
        exc_value: BaseException,
        exc_tb: TracebackType | None,
    ) -> None:
        if not issubclass(exc_type, KeyboardInterrupt):
            text = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
            path = session.write_crash_report(exc_value, text)
            logger.critical("unhandled %s, crash report at %s", exc_type.__name__, path)
        previous_hook(exc_type, exc_value, exc_tb)

    sys.excepthook = report

    def restore() -> None:
        sys.excepthook = previous_hook

    return restore
