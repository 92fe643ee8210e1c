"""Data contracts of the attendance pipeline (core-only, no I/O).

``DatasetRecord`` stays an open mapping because subject columns are named by
convention rather than fixed; the typed structures below are derived from it
and never persisted.

Example:
    >>> key = DatasetKey("1", "Genetics")
    >>> key.file_name
    'Y1_Genetics_attendance.json'
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union

from attendance_app.core.common.errors import ValidationError
from attendance_app.core.common.status import StatusKind

__all__ = [
    "Scalar",
    "DatasetRecord",
    "Dataset",
    "DatasetKey",
    "SessionEntry",
    "SubjectBreakdown",
    "AttendanceStats",
    "StudentReport",
    "FILE_SUFFIX",
]

Scalar = Union[str, int, float, None]
DatasetRecord = Mapping[str, Any]
Dataset = Sequence[DatasetRecord]

FILE_SUFFIX = "_attendance.json"
_FORBIDDEN_MODULE_CHARS = ("/", "\\", "\x00")


@dataclass(frozen=True)
class DatasetKey:
    """Identity of one attendance dataset: (academic year, module id).

    The year must be numeric and the module id free of path separators so the
    derived file name ``Y{year}_{module}_attendance.json`` is unique per key.
    """

    academic_year: str
    module_id: str

    def __post_init__(self) -> None:
        year = str(self.academic_year or "").strip()
        module = str(self.module_id or "").strip()
        if not year:
            raise ValidationError(func="DatasetKey", field="academic_year", message="academic year is required")
        if not year.isdecimal():
            raise ValidationError(
                func="DatasetKey", field="academic_year", value=year, message="academic year must be numeric"
            )
        if not module:
            raise ValidationError(func="DatasetKey", field="module_id", message="module id is required")
        if any(ch in module for ch in _FORBIDDEN_MODULE_CHARS):
            raise ValidationError(
                func="DatasetKey", field="module_id", value=module, message="module id must not contain path separators"
            )
        object.__setattr__(self, "academic_year", year)
        object.__setattr__(self, "module_id", module)

    @property
    def stem(self) -> str:
        return f"Y{self.academic_year}_{self.module_id}"

    @property
    def file_name(self) -> str:
        return f"{self.stem}{FILE_SUFFIX}"


@dataclass(frozen=True)
class SessionEntry:
    """Attendance of one numbered session (1..12) of a subject."""

    number: int
    required: float
    attended: float


@dataclass(frozen=True)
class SubjectBreakdown:
    """Per-subject totals derived from ``Required/Attended <subject> (Total)``."""

    name: str
    required: float
    attended: float
    percentage: float
    sessions: tuple[SessionEntry, ...] = ()
    bar_color: str = ""


@dataclass(frozen=True)
class AttendanceStats:
    """Headline figures of one student's record."""

    total_required: float
    total_attended: float
    attendance_percentage: str
    status: StatusKind
    status_label: str
    status_color: str
    status_icon: str
    status_message: str
    sessions_needed: float

    @property
    def percentage_ratio(self) -> float:
        """Percentage as a 0..1 fraction for progress bars; 0.0 if unparsable."""

        try:
            value = float(self.attendance_percentage)
        except ValueError:
            return 0.0
        if math.isnan(value):
            return 0.0
        return max(0.0, min(value / 100.0, 1.0))


@dataclass(frozen=True)
class StudentReport:
    """Everything the presentation layer needs for one student."""

    student_id: str
    name: str
    group: str
    stats: AttendanceStats
    subjects: tuple[SubjectBreakdown, ...] = field(default_factory=tuple)
    record: DatasetRecord = field(default_factory=dict, repr=False)
