from __future__ import annotations

import json
from typing import Any

import pytest
import requests

from attendance_app.core.common.codec import encode
from attendance_app.core.settings_loader import AcceptMode, ProviderSettings

PRIMARY = ProviderSettings("primary", "dash-repo", AcceptMode.RAW)
BACKUP = ProviderSettings("backup", "recorder-repo", AcceptMode.WRAPPED)


def make_record(student_id: object = "1001", **overrides: Any) -> dict[str, Any]:
    """Sample dataset row with two subjects and two sessions each.

    Example:
        >>> make_record()["Student ID"]
        '1001'
    """

    record: dict[str, Any] = {
        "Student ID": student_id,
        "Name": "Sara Ali",
        "Group": "A",
        "Total Required": 20,
        "Total Attended": 15,
        "Percentage": "75%",
        "Status": "Low Risk",
        "Sessions Needed": 1,
        "Required anatomy (Total)": 10,
        "Attended anatomy (Total)": 9,
        "anatomy S1 (Req)": 1,
        "anatomy S1 (Att)": 1,
        "anatomy S2 (Req)": 1,
        "anatomy S2 (Att)": 0,
        "Required physiology (Total)": 10,
        "Attended physiology (Total)": 6,
        "physiology S1 (Req)": 1,
        "physiology S1 (Att)": 1,
    }
    record.update(overrides)
    return record


@pytest.fixture
def sample_records() -> list[dict[str, Any]]:
    return [
        make_record("1001"),
        make_record("1002", Name="Omar Hassan", Status="Pass", Percentage="90"),
        make_record("1003", Name="Mona Adel", Status="Fail", Percentage="40"),
    ]


class FakeResponse:
    """Minimal stand-in for :class:`requests.Response`."""

    def __init__(self, status_code: int = 200, text: str = "") -> None:
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        return json.loads(self.text)


def raw_response(records: Any) -> FakeResponse:
    return FakeResponse(200, json.dumps(records))


def wrapped_response(records: Any) -> FakeResponse:
    content = encode(json.dumps(records))
    # the contents API wraps base64 at 60 columns
    chunked = "\n".join(content[i : i + 60] for i in range(0, len(content), 60))
    return FakeResponse(200, json.dumps({"encoding": "base64", "content": chunked + "\n"}))


class FakeSession:
    """Replays queued responses or exceptions in order and records every call."""

    def __init__(self, *replies: FakeResponse | Exception) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, *, headers: dict[str, str] | None = None, timeout: float | None = None) -> FakeResponse:
        self.calls.append({"url": url, "headers": dict(headers or {}), "timeout": timeout})
        if not self.replies:
            raise requests.ConnectionError("no reply queued")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply
