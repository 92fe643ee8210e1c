from __future__ import annotations

import os
import threading
from datetime import timedelta
from pathlib import Path

import pytest

from attendance_app.core.common.types import DatasetKey
from attendance_app.core.settings_loader import parse_settings_dict
from attendance_app.infra.errors import MalformedPayloadError, OperationCancelledError, SourceExhaustedError
from attendance_app.infra.local_store import LocalStore
from attendance_app.infra.logging_ext import current_dataset, dataset_of
from attendance_app.infra.pipeline import AcquisitionPipeline, build_pipeline

KEY = DatasetKey("2", "CVS")
SID = "Y2_CVS_attendance.json"
REMOTE = [{"Student ID": "1", "Status": "Pass"}]
CACHED = [{"Student ID": "1", "Status": "Fail"}]


class FakeResolver:
    """Resolver double returning canned records or raising a canned error."""

    def __init__(self, records: list[dict] | None = None, error: Exception | None = None) -> None:
        self.records = records if records is not None else REMOTE
        self.error = error
        self.calls: list[tuple[DatasetKey, threading.Event | None]] = []

    def fetch(self, key: DatasetKey, cancel_event: threading.Event | None = None) -> list[dict]:
        self.calls.append((key, cancel_event))
        if self.error is not None:
            raise self.error
        return self.records


class CountingStore(LocalStore):
    def __init__(self, root: Path, **kwargs) -> None:
        super().__init__(root, **kwargs)
        self.writes = 0

    def write(self, storage_id, records) -> None:  # type: ignore[override]
        self.writes += 1
        super().write(storage_id, records)


class FailingWriteStore(CountingStore):
    def write(self, storage_id, records) -> None:  # type: ignore[override]
        self.writes += 1
        raise PermissionError("read-only cache")


def _pipeline(store: LocalStore, resolver: FakeResolver) -> AcquisitionPipeline:
    return AcquisitionPipeline(store, resolver, max_age=timedelta(hours=24))  # type: ignore[arg-type]


def test_fresh_cache_hit_skips_remote_and_writes(tmp_path: Path) -> None:
    store = CountingStore(tmp_path)
    LocalStore(tmp_path).write(SID, CACHED)
    resolver = FakeResolver()

    assert _pipeline(store, resolver).get_dataset(KEY) == CACHED
    assert resolver.calls == []
    assert store.writes == 0


def test_miss_fetches_and_writes_once(tmp_path: Path) -> None:
    store = CountingStore(tmp_path)
    resolver = FakeResolver()
    pipeline = _pipeline(store, resolver)

    assert pipeline.get_dataset(KEY) == REMOTE
    assert store.writes == 1
    assert store.read(SID) == REMOTE
    # second call is served from the cache just written
    assert pipeline.get_dataset(KEY) == REMOTE
    assert len(resolver.calls) == 1
    assert store.writes == 1


def test_stale_cache_is_refreshed(tmp_path: Path) -> None:
    store = CountingStore(tmp_path)
    LocalStore(tmp_path).write(SID, CACHED)
    stamp = store.stored_at(SID) - 48 * 3600
    os.utime(tmp_path / SID, (stamp, stamp))

    assert _pipeline(store, FakeResolver()).get_dataset(KEY) == REMOTE
    assert store.read(SID) == REMOTE


def test_force_refresh_bypasses_fresh_cache(tmp_path: Path) -> None:
    store = CountingStore(tmp_path)
    LocalStore(tmp_path).write(SID, CACHED)
    resolver = FakeResolver()

    assert _pipeline(store, resolver).get_dataset(KEY, force_refresh=True) == REMOTE
    assert len(resolver.calls) == 1
    assert store.writes == 1


def test_write_failure_is_swallowed(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    store = FailingWriteStore(tmp_path)
    assert _pipeline(store, FakeResolver()).get_dataset(KEY) == REMOTE
    assert store.writes == 1
    assert "read-only cache" in caplog.text


@pytest.mark.parametrize(
    "error",
    [
        SourceExhaustedError([]),
        MalformedPayloadError("repo/file", "bad"),
        OperationCancelledError(),
    ],
)
def test_remote_errors_propagate_without_stale_fallback(tmp_path: Path, error: Exception) -> None:
    store = CountingStore(tmp_path)
    LocalStore(tmp_path).write(SID, CACHED)
    stamp = store.stored_at(SID) - 48 * 3600
    os.utime(tmp_path / SID, (stamp, stamp))

    with pytest.raises(type(error)) as excinfo:
        _pipeline(store, FakeResolver(error=error)).get_dataset(KEY)
    assert excinfo.value is error
    assert store.writes == 0
    assert store.read(SID) == CACHED


def test_remote_error_is_tagged_with_dataset(tmp_path: Path) -> None:
    with pytest.raises(SourceExhaustedError) as excinfo:
        _pipeline(CountingStore(tmp_path), FakeResolver(error=SourceExhaustedError([]))).get_dataset(KEY)
    assert dataset_of(excinfo.value) == SID
    assert current_dataset() is None


def test_corrupt_fresh_cache_is_treated_as_miss(tmp_path: Path) -> None:
    (tmp_path / SID).write_text("{broken", encoding="utf-8")
    store = CountingStore(tmp_path)
    assert _pipeline(store, FakeResolver()).get_dataset(KEY) == REMOTE
    assert store.read(SID) == REMOTE


def test_cancel_event_is_forwarded(tmp_path: Path) -> None:
    resolver = FakeResolver()
    cancel = threading.Event()
    _pipeline(CountingStore(tmp_path), resolver).get_dataset(KEY, cancel_event=cancel)
    assert resolver.calls == [(KEY, cancel)]


def test_available_modules_and_clear_cache(tmp_path: Path) -> None:
    store = CountingStore(tmp_path)
    pipeline = _pipeline(store, FakeResolver())
    pipeline.get_dataset(KEY)
    pipeline.get_dataset(DatasetKey("2", "CNS"))

    assert [m.id for m in pipeline.available_modules("2")][:3] == ["Blood_&_lymphatics", "Respiratory", "CVS"]
    assert pipeline.available_modules("9") == []
    assert pipeline.clear_cache() == 2
    assert store.entries() == []


def test_build_pipeline_wires_settings(tmp_path: Path) -> None:
    settings = parse_settings_dict(
        {"owner": "acme", "cache": {"directory": str(tmp_path / "cache"), "max_age_hours": 2}}
    )
    pipeline = build_pipeline(settings)
    assert pipeline.store.root == tmp_path / "cache"
    assert (tmp_path / "cache").is_dir()
    assert pipeline.max_age == 2 * 3600
    assert pipeline.resolver.owner == "acme"
