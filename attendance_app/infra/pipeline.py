"""Acquisition pipeline: local cache first, remote providers second.

``get_dataset`` returns fresh cached records without touching the network.
Otherwise it asks the resolver and writes the result back exactly once. A
failed write is logged and the fetched data is still returned. A failed fetch
propagates unchanged, tagged with the storage id it was fetching; stale cache
is never served as a fallback.
"""
from __future__ import annotations

import logging
import threading
from datetime import timedelta
from pathlib import Path
from typing import Callable

import requests

from attendance_app.core.catalog import DEFAULT_CATALOG, ModuleCatalog, ModuleDescriptor, modules_for_year
from attendance_app.core.common.types import Dataset, DatasetKey
from attendance_app.core.settings_loader import AppSettings
from attendance_app.infra.errors import CorruptDataError, NotFoundError
from attendance_app.infra.local_store import LocalStore, StorageId
from attendance_app.infra.logging_ext import dataset_context, log_step
from attendance_app.infra.remote_source import RemoteSourceResolver
from attendance_app.utils.path_utils import get_cache_directory

logger = logging.getLogger(__name__)

__all__ = ["AcquisitionPipeline", "build_pipeline"]


class AcquisitionPipeline:
    """Glue between :class:`LocalStore` and :class:`RemoteSourceResolver`."""

    def __init__(
        self,
        store: LocalStore,
        resolver: RemoteSourceResolver,
        *,
        max_age: timedelta | float = timedelta(hours=24),
        catalog: ModuleCatalog = DEFAULT_CATALOG,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.max_age = max_age
        self.catalog = catalog

    def _read_cached(self, storage_id: StorageId) -> Dataset | None:
        if not self.store.is_fresh(storage_id, self.max_age):
            return None
        try:
            return self.store.read(storage_id)
        except NotFoundError:
            # deleted between the freshness check and the read
            return None
        except CorruptDataError as exc:
            logger.warning("ignoring unreadable cache entry: %s", exc)
            return None

    def get_dataset(
        self,
        key: DatasetKey,
        *,
        force_refresh: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> Dataset:
        """Records of ``key`` from cache when fresh, otherwise from the remote.

        Raises:
            SourceExhaustedError: no provider served the dataset.
            MalformedPayloadError: a provider served an unparseable body.
            OperationCancelledError: ``cancel_event`` was set.
        """

        storage_id = self.store.path_for(key)
        with dataset_context(storage_id):
            if not force_refresh:
                cached = self._read_cached(storage_id)
                if cached is not None:
                    logger.info("cache hit for %s (%d records)", storage_id, len(cached))
                    return cached

            logger.info("cache %s for %s", "bypassed" if force_refresh else "miss", storage_id)
            with log_step(logger, "remote fetch %s", storage_id):
                records = self.resolver.fetch(key, cancel_event=cancel_event)

            try:
                self.store.write(storage_id, records)
            except OSError as exc:
                logger.warning("could not cache %s: %s", storage_id, exc)
            return records

    def available_modules(self, year: str) -> list[ModuleDescriptor]:
        return modules_for_year(year, self.catalog)

    def clear_cache(self, predicate: Callable[[StorageId], bool] | None = None) -> int:
        return self.store.clear(predicate)


def build_pipeline(
    settings: AppSettings,
    *,
    session: requests.Session | None = None,
    cache_dir: Path | None = None,
) -> AcquisitionPipeline:
    """Wire a pipeline from loaded settings."""

    store = LocalStore(get_cache_directory(cache_dir or settings.cache.directory))
    resolver = RemoteSourceResolver.from_settings(settings, session=session)
    return AcquisitionPipeline(
        store,
        resolver,
        max_age=settings.cache.max_age_seconds,
        catalog=settings.modules,
    )
