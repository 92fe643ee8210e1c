"""JSON file cache for attendance datasets.

One dataset per file, named ``Y{year}_{module}_attendance.json`` under the cache
root. Writes go through a temp file in the same folder and ``os.replace`` so a
reader sees either the previous content or the new content in full.

Example::

    >>> from pathlib import Path
    >>> from attendance_app.core.common.types import DatasetKey
    >>> store = LocalStore(Path("/tmp/attendance-cache"))
    >>> sid = store.path_for(DatasetKey("1", "m1"))
    >>> sid
    'Y1_m1_attendance.json'
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from datetime import timedelta
from pathlib import Path
from typing import Callable, Iterable, Sequence

from attendance_app.core.common.types import FILE_SUFFIX, Dataset, DatasetKey, DatasetRecord
from attendance_app.infra.errors import CorruptDataError, NotFoundError

logger = logging.getLogger(__name__)

StorageId = str
Clock = Callable[[], float]

__all__ = ["LocalStore", "StorageId"]


def _seconds(max_age: timedelta | float | int) -> float:
    if isinstance(max_age, timedelta):
        return max_age.total_seconds()
    return float(max_age)


def _validate_records(storage_id: str, payload: object) -> list[dict[str, object]]:
    if not isinstance(payload, list):
        raise CorruptDataError(storage_id, f"expected a JSON array, got {type(payload).__name__}")
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise CorruptDataError(storage_id, f"item {index} is not an object")
    return payload


class LocalStore:
    """Dataset cache rooted at one directory.

    ``clock`` returns the current epoch time and is injected so freshness can be
    tested without sleeping.
    """

    def __init__(self, root: Path | str, *, clock: Clock = time.time) -> None:
        self.root = Path(root)
        self._clock = clock

    def path_for(self, key: DatasetKey) -> StorageId:
        return key.file_name

    def _path(self, storage_id: StorageId) -> Path:
        return self.root / storage_id

    def exists(self, storage_id: StorageId) -> bool:
        return self._path(storage_id).is_file()

    def entries(self) -> list[StorageId]:
        """Stored dataset ids, sorted by name."""

        if not self.root.is_dir():
            return []
        return sorted(path.name for path in self.root.glob(f"*{FILE_SUFFIX}") if path.is_file())

    def stored_at(self, storage_id: StorageId) -> float | None:
        try:
            return self._path(storage_id).stat().st_mtime
        except OSError:
            return None

    def is_fresh(self, storage_id: StorageId, max_age: timedelta | float | int) -> bool:
        """True when the entry exists and is younger than ``max_age``.

        A ``max_age`` of zero or less disables the age check. Any stat failure
        counts as not fresh.
        """

        # Age comes from the file mtime, so a copy written by another process
        # on this machine is honoured as well.
        stored = self.stored_at(storage_id)
        if stored is None:
            return False
        limit = _seconds(max_age)
        if limit <= 0:
            return True
        return (self._clock() - stored) < limit

    def read(self, storage_id: StorageId) -> Dataset:
        """Load the records stored under ``storage_id``.

        Raises:
            NotFoundError: the entry does not exist.
            CorruptDataError: the file is not a JSON array of objects.
        """

        path = self._path(storage_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise NotFoundError(storage_id) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise CorruptDataError(storage_id, str(exc)) from exc
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CorruptDataError(storage_id, f"invalid JSON: {exc}") from exc
        return _validate_records(storage_id, payload)

    def write(self, storage_id: StorageId, records: Sequence[DatasetRecord]) -> None:
        """Atomically replace the entry with ``records``.

        Raises:
            OSError: the cache folder is not writable.
        """

        self.root.mkdir(parents=True, exist_ok=True)
        target = self._path(storage_id)
        payload = json.dumps([dict(record) for record in records], ensure_ascii=False)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{storage_id}.", suffix=".tmp", dir=self.root)
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_path, target)
        finally:
            tmp_path.unlink(missing_ok=True)

    def clear(self, predicate: Callable[[StorageId], bool] | None = None) -> int:
        """Delete every entry matching ``predicate`` (default: all of them).

        Failures are logged and skipped. Returns the number of deleted entries.
        """

        removed = 0
        candidates: Iterable[StorageId] = self.entries()
        for storage_id in candidates:
            if predicate is not None and not predicate(storage_id):
                continue
            try:
                self._path(storage_id).unlink()
            except OSError as exc:
                logger.warning("could not delete cache entry %s: %s", storage_id, exc)
                continue
            removed += 1
        logger.info("cleared %d cache entr%s from %s", removed, "y" if removed == 1 else "ies", self.root)
        return removed
