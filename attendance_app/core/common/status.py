"""Attendance status vocabulary with display color, icon and message.

The raw ``Status`` column of a dataset carries human labels such as
``"High Risk"``. :func:`parse_status` maps them onto the closed
:class:`StatusKind` enumeration; anything unrecognized becomes
``StatusKind.UNKNOWN`` instead of raising.

Example::

    >>> parse_status("Low Risk").color
    '#FFC107'
    >>> status_message(StatusKind.HIGH_RISK, 1)
    'Need 1 more session to reach 75%'
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

__all__ = [
    "PASS_THRESHOLD",
    "StatusKind",
    "StatusStyle",
    "STATUS_STYLES",
    "parse_status",
    "status_message",
    "subject_bar_color",
]

PASS_THRESHOLD = 75.0


class StatusKind(str, Enum):
    """Closed set of attendance statuses; values are the raw dataset labels."""

    PASS = "Pass"
    FAIL = "Fail"
    HIGH_RISK = "High Risk"
    MODERATE_RISK = "Moderate Risk"
    LOW_RISK = "Low Risk"
    NO_RISK = "No Risk"
    UNKNOWN = "Unknown"

    @property
    def color(self) -> str:
        return STATUS_STYLES[self].color

    @property
    def icon(self) -> str:
        return STATUS_STYLES[self].icon


@dataclass(frozen=True)
class StatusStyle:
    """Presentation attributes of one status."""

    color: str
    icon: str
    template: str


_NEED_MORE = "Need {count} more session{plural} to reach 75%"

STATUS_STYLES: Mapping[StatusKind, StatusStyle] = MappingProxyType(
    {
        StatusKind.PASS: StatusStyle(
            "#4CAF50", "check-circle", "You have met the attendance requirements!"
        ),
        StatusKind.FAIL: StatusStyle(
            "#F44336", "close-circle", "Below required minimum of 75%. Contact your advisor."
        ),
        StatusKind.HIGH_RISK: StatusStyle("#FF5722", "alert-circle", _NEED_MORE),
        StatusKind.MODERATE_RISK: StatusStyle("#FF9800", "alert", _NEED_MORE),
        StatusKind.LOW_RISK: StatusStyle(
            "#FFC107", "information", "Just {count} more session{plural} needed"
        ),
        StatusKind.NO_RISK: StatusStyle("#2196F3", "shield-check", "On track to meet requirements"),
        StatusKind.UNKNOWN: StatusStyle("#757575", "help-circle", "Status unavailable"),
    }
)

_BY_LABEL: Mapping[str, StatusKind] = {kind.value.casefold(): kind for kind in StatusKind}


def parse_status(raw: object) -> StatusKind:
    """Map a raw ``Status`` cell to :class:`StatusKind` (never raises)."""

    if raw is None:
        return StatusKind.UNKNOWN
    label = " ".join(str(raw).split()).casefold()
    return _BY_LABEL.get(label, StatusKind.UNKNOWN)


def status_message(kind: StatusKind, sessions_needed: int | float) -> str:
    """Human message for ``kind`` with the session count filled in."""

    count = int(sessions_needed) if float(sessions_needed).is_integer() else sessions_needed
    plural = "s" if sessions_needed > 1 else ""
    return STATUS_STYLES[kind].template.format(count=count, plural=plural)


def subject_bar_color(percentage: float) -> str:
    """Progress-bar color of a subject: pass color at or above 75%."""

    if percentage >= PASS_THRESHOLD:
        return StatusKind.PASS.color
    return StatusKind.MODERATE_RISK.color
