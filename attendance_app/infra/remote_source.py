"""Remote dataset resolver over the GitHub contents API.

Providers are tried strictly in order. A non-success status, a connection
error or a timeout is a transport failure: it is logged and the next provider
is tried. A provider that answers successfully with a body that cannot be
parsed stops the resolution with :class:`MalformedPayloadError`; that is a data
problem, and another repository would not fix it.

Example::

    >>> from attendance_app.core.common.types import DatasetKey
    >>> from attendance_app.core.settings_loader import AcceptMode, ProviderSettings
    >>> resolver = RemoteSourceResolver(
    ...     api_host="api.github.com", owner="acme", branch="main",
    ...     providers=[ProviderSettings("primary", "dash", AcceptMode.RAW)],
    ... )
    >>> resolver.url_for(resolver.providers[0], DatasetKey("1", "Genetics"))
    'https://api.github.com/repos/acme/dash/contents/Y1_Genetics_attendance.json?ref=main'
"""
from __future__ import annotations

import json
import logging
import threading
from typing import Callable, Mapping, Sequence

import requests

from attendance_app.core.common.codec import decode
from attendance_app.core.common.errors import CodecError
from attendance_app.core.common.types import DatasetKey
from attendance_app.core.settings_loader import AcceptMode, AppSettings, ProviderSettings
from attendance_app.infra.errors import (
    FetchAttempt,
    MalformedPayloadError,
    OperationCancelledError,
    SourceExhaustedError,
)

logger = logging.getLogger(__name__)

__all__ = ["ACCEPT_HEADERS", "RemoteSourceResolver", "TokenProvider"]

TokenProvider = Callable[[], str]

ACCEPT_HEADERS: Mapping[AcceptMode, str] = {
    AcceptMode.RAW: "application/vnd.github.v3.raw",
    AcceptMode.WRAPPED: "application/vnd.github.v3+json",
}


def _no_token() -> str:
    return ""


def _as_records(resource: str, payload: object) -> list[dict[str, object]]:
    if not isinstance(payload, list):
        raise MalformedPayloadError(resource, f"expected a JSON array, got {type(payload).__name__}")
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise MalformedPayloadError(resource, f"item {index} is not an object")
    return payload


class RemoteSourceResolver:
    """Fetch one dataset from the first provider that serves it.

    Args:
        api_host: host of the contents API, e.g. ``api.github.com``.
        owner: account owning every provider repository.
        branch: git ref passed as ``?ref=``.
        providers: repositories in fallback order.
        token_provider: returns the credential at request time; an empty
            string sends no ``Authorization`` header.
        session: HTTP session; a fresh :class:`requests.Session` by default.
        timeout: per-attempt timeout in seconds.
    """

    def __init__(
        self,
        *,
        api_host: str,
        owner: str,
        branch: str,
        providers: Sequence[ProviderSettings],
        token_provider: TokenProvider = _no_token,
        session: requests.Session | None = None,
        timeout: float = 15.0,
    ) -> None:
        if not providers:
            raise ValueError("at least one provider is required")
        self.api_host = api_host
        self.owner = owner
        self.branch = branch
        self.providers: tuple[ProviderSettings, ...] = tuple(providers)
        self._token_provider = token_provider
        self._session = session if session is not None else requests.Session()
        self.timeout = timeout

    @classmethod
    def from_settings(
        cls, settings: AppSettings, *, session: requests.Session | None = None
    ) -> "RemoteSourceResolver":
        return cls(
            api_host=settings.api_host,
            owner=settings.owner,
            branch=settings.branch,
            providers=settings.providers,
            token_provider=settings.token_provider(),
            session=session,
            timeout=settings.request_timeout_seconds,
        )

    def resource_path(self, provider: ProviderSettings, key: DatasetKey) -> str:
        return f"{provider.repo}/{key.file_name}"

    def url_for(self, provider: ProviderSettings, key: DatasetKey) -> str:
        return (
            f"https://{self.api_host}/repos/{self.owner}/{provider.repo}"
            f"/contents/{key.file_name}?ref={self.branch}"
        )

    def _headers(self, provider: ProviderSettings) -> dict[str, str]:
        headers = {"Accept": ACCEPT_HEADERS[provider.accept]}
        token = self._token_provider()
        if token:
            headers["Authorization"] = f"token {token}"
        return headers

    def _parse(self, provider: ProviderSettings, resource: str, response: requests.Response) -> list[dict[str, object]]:
        if provider.accept is AcceptMode.RAW:
            try:
                payload = json.loads(response.text)
            except ValueError as exc:
                raise MalformedPayloadError(resource, f"invalid JSON: {exc}") from exc
            return _as_records(resource, payload)

        try:
            envelope = response.json()
        except ValueError as exc:
            raise MalformedPayloadError(resource, f"invalid JSON envelope: {exc}") from exc
        content = envelope.get("content") if isinstance(envelope, dict) else None
        if not isinstance(content, str):
            raise MalformedPayloadError(resource, "envelope has no content field")
        try:
            text = decode(content.replace("\n", "").strip())
        except CodecError as exc:
            raise MalformedPayloadError(resource, str(exc)) from exc
        try:
            payload = json.loads(text)
        except ValueError as exc:
            raise MalformedPayloadError(resource, f"invalid JSON in content: {exc}") from exc
        return _as_records(resource, payload)

    def fetch(self, key: DatasetKey, cancel_event: threading.Event | None = None) -> list[dict[str, object]]:
        """Return the records of ``key`` from the first provider that serves them.

        Raises:
            OperationCancelledError: ``cancel_event`` was set before an attempt.
            MalformedPayloadError: a provider answered with an unparseable body.
            SourceExhaustedError: every provider failed at transport level.
        """

        attempts: list[FetchAttempt] = []
        for provider in self.providers:
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelledError()
            resource = self.resource_path(provider, key)
            url = self.url_for(provider, key)
            logger.info("fetching %s from provider %s", resource, provider.name)
            try:
                response = self._session.get(url, headers=self._headers(provider), timeout=self.timeout)
            except requests.RequestException as exc:
                logger.warning("provider %s unreachable for %s: %s", provider.name, resource, type(exc).__name__)
                attempts.append(FetchAttempt(provider.name, resource, url, error=type(exc).__name__))
                continue
            # only 2xx carries the file; 3xx (e.g. 304) is a miss like 4xx/5xx
            if not 200 <= response.status_code < 300:
                logger.warning("provider %s answered HTTP %s for %s", provider.name, response.status_code, resource)
                attempts.append(FetchAttempt(provider.name, resource, url, status=response.status_code))
                continue
            records = self._parse(provider, resource, response)
            logger.info("received %d records for %s from %s", len(records), resource, provider.name)
            return records
        raise SourceExhaustedError(attempts)
