"""Student lookup and attendance statistics over an already-fetched dataset.

All functions here are pure: they read a record and return new frozen
structures. Missing or non-numeric figures default to ``0`` and unknown
statuses to ``StatusKind.UNKNOWN``; only a blank student id is an error.

Subject discovery keeps the compatibility rule of the published datasets: any
column whose name contains ``Required`` and ``Total)`` is scanned with
``Required <token> (Total)``. Column look-ups after discovery are
case-insensitive so ``Required Bio (Total)`` pairs with ``bio S1 (Req)``.

Example::

    >>> record = {
    ...     "Required bio (Total)": 10,
    ...     "Attended bio (Total)": 8,
    ...     "bio S1 (Req)": 1,
    ...     "bio S1 (Att)": 1,
    ... }
    >>> [(s.name, s.percentage, len(s.sessions)) for s in extract_subjects(record)]
    [('Bio', 80.0, 1)]
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable

from attendance_app.core.common.errors import ValidationError
from attendance_app.core.common.status import parse_status, status_message, subject_bar_color
from attendance_app.core.common.types import (
    AttendanceStats,
    DatasetRecord,
    SessionEntry,
    StudentReport,
    SubjectBreakdown,
)

__all__ = [
    "STUDENT_ID_COLUMN",
    "MAX_SESSIONS",
    "as_number",
    "find_student",
    "derive_stats",
    "extract_subjects",
    "discover_subject_tokens",
    "build_report",
]

STUDENT_ID_COLUMN = "Student ID"
NAME_COLUMN = "Name"
GROUP_COLUMN = "Group"
TOTAL_REQUIRED_COLUMN = "Total Required"
TOTAL_ATTENDED_COLUMN = "Total Attended"
PERCENTAGE_COLUMN = "Percentage"
STATUS_COLUMN = "Status"
SESSIONS_NEEDED_COLUMN = "Sessions Needed"

MAX_SESSIONS = 12
_SUBJECT_PATTERN = re.compile(r"Required\s+([a-z]+)\s+\(Total\)", re.IGNORECASE)


def as_number(value: Any) -> int | float:
    """Coerce a dataset cell to a number; ``0`` for blanks and garbage.

    Integral values come back as ``int`` so ``"12"`` and ``12.0`` both read 12.
    """

    if value is None or isinstance(value, bool):
        return int(value or 0)
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return 0
        try:
            number = float(text)
        except ValueError:
            return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return int(number) if number.is_integer() else number


def _scalar_text(value: Any) -> str:
    """Stringify an id-like cell; ``123.0`` becomes ``"123"``."""

    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def find_student(records: Iterable[DatasetRecord], student_id: object) -> DatasetRecord | None:
    """Return the first record whose ``Student ID`` equals ``student_id``.

    Both sides are compared as trimmed strings, so ``" 123 "``, ``123`` and
    ``"123"`` all match. ``None`` means "not in this dataset".

    Raises:
        ValidationError: if ``student_id`` is blank.
    """

    target = _scalar_text(student_id)
    if not target:
        raise ValidationError(func="find_student", field="student_id", message="student id is required")
    for record in records:
        if _scalar_text(record.get(STUDENT_ID_COLUMN)) == target:
            return record
    return None


def _percentage_text(raw: Any) -> str:
    text = _scalar_text(raw)
    if not text:
        return "0"
    if text.endswith("%"):
        text = text[:-1].strip()
    return text or "0"


def derive_stats(record: DatasetRecord) -> AttendanceStats:
    """Headline statistics of one record; never raises on missing fields."""

    raw_status = record.get(STATUS_COLUMN)
    status_label = _scalar_text(raw_status) or "Unknown"
    kind = parse_status(status_label)
    sessions_needed = as_number(record.get(SESSIONS_NEEDED_COLUMN))
    return AttendanceStats(
        total_required=as_number(record.get(TOTAL_REQUIRED_COLUMN)),
        total_attended=as_number(record.get(TOTAL_ATTENDED_COLUMN)),
        attendance_percentage=_percentage_text(record.get(PERCENTAGE_COLUMN)),
        status=kind,
        status_label=status_label,
        status_color=kind.color,
        status_icon=kind.icon,
        status_message=status_message(kind, sessions_needed),
        sessions_needed=sessions_needed,
    )


def discover_subject_tokens(record: DatasetRecord) -> list[str]:
    """Lower-cased subject tokens in first-appearance order."""

    tokens: dict[str, None] = {}
    for key in record:
        name = str(key)
        # Compatibility: the substring test runs before the pattern.
        if "Required" not in name or "Total)" not in name:
            continue
        match = _SUBJECT_PATTERN.search(name)
        if match:
            tokens.setdefault(match.group(1).lower(), None)
    return list(tokens)


class _ColumnIndex:
    """Case-insensitive view over a record's column names."""

    def __init__(self, record: DatasetRecord) -> None:
        self._record = record
        self._keys: dict[str, Any] = {}
        for key in record:
            self._keys.setdefault(str(key).casefold(), key)

    def has(self, column: str) -> bool:
        return column.casefold() in self._keys

    def number(self, column: str) -> int | float:
        key = self._keys.get(column.casefold())
        if key is None:
            return 0
        return as_number(self._record[key])


def _sessions(columns: _ColumnIndex, token: str) -> tuple[SessionEntry, ...]:
    entries: list[SessionEntry] = []
    for number in range(1, MAX_SESSIONS + 1):
        req_col = f"{token} S{number} (Req)"
        att_col = f"{token} S{number} (Att)"
        if columns.has(req_col) and columns.has(att_col):
            entries.append(
                SessionEntry(
                    number=number,
                    required=columns.number(req_col),
                    attended=columns.number(att_col),
                )
            )
    return tuple(entries)


def _display_name(token: str) -> str:
    return token[:1].upper() + token[1:]


def extract_subjects(record: DatasetRecord) -> list[SubjectBreakdown]:
    """Per-subject breakdown of ``record``.

    Subjects lacking either ``Required``/``Attended`` total are skipped
    silently; session columns are looked up for numbers 1 to 12 only.
    """

    columns = _ColumnIndex(record)
    subjects: list[SubjectBreakdown] = []
    for token in discover_subject_tokens(record):
        required_col = f"Required {token} (Total)"
        attended_col = f"Attended {token} (Total)"
        if not (columns.has(required_col) and columns.has(attended_col)):
            continue
        required = columns.number(required_col)
        attended = columns.number(attended_col)
        percentage = round(attended / required * 100, 1) if required > 0 else 0.0
        subjects.append(
            SubjectBreakdown(
                name=_display_name(token),
                required=required,
                attended=attended,
                percentage=percentage,
                sessions=_sessions(columns, token),
                bar_color=subject_bar_color(percentage),
            )
        )
    return subjects


def build_report(records: Iterable[DatasetRecord], student_id: object) -> StudentReport | None:
    """Look up ``student_id`` and derive its full report; ``None`` if absent."""

    record = find_student(records, student_id)
    if record is None:
        return None
    return StudentReport(
        student_id=_scalar_text(record.get(STUDENT_ID_COLUMN)),
        name=_scalar_text(record.get(NAME_COLUMN)),
        group=_scalar_text(record.get(GROUP_COLUMN)),
        stats=derive_stats(record),
        subjects=tuple(extract_subjects(record)),
        record=dict(record),
    )
