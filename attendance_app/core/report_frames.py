"""Tabular (pandas) views over extracted attendance structures.

These frames feed text rendering in the CLI and any notebook-style analysis;
they are derived on demand and never persisted.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import pandas as pd

from attendance_app.core.common.status import StatusKind, parse_status
from attendance_app.core.common.types import DatasetRecord, SubjectBreakdown
from attendance_app.core.extractor import STATUS_COLUMN

__all__ = [
    "SUBJECT_COLUMNS",
    "SESSION_COLUMNS",
    "DISTRIBUTION_COLUMNS",
    "subjects_frame",
    "sessions_frame",
    "status_distribution",
]

SUBJECT_COLUMNS: tuple[str, ...] = ("subject", "required", "attended", "percentage", "sessions")
SESSION_COLUMNS: tuple[str, ...] = ("session", "required", "attended")
DISTRIBUTION_COLUMNS: tuple[str, ...] = ("status", "students", "share")


def subjects_frame(subjects: Sequence[SubjectBreakdown]) -> pd.DataFrame:
    """One row per subject, in the order given.

    Example::

        >>> from attendance_app.core.common.types import SubjectBreakdown
        >>> subjects_frame([SubjectBreakdown("Bio", 10, 8, 80.0)])["percentage"].tolist()
        [80.0]
    """

    rows = [
        {
            "subject": subject.name,
            "required": subject.required,
            "attended": subject.attended,
            "percentage": float(subject.percentage),
            "sessions": len(subject.sessions),
        }
        for subject in subjects
    ]
    return pd.DataFrame(rows, columns=list(SUBJECT_COLUMNS))


def sessions_frame(subject: SubjectBreakdown) -> pd.DataFrame:
    """One row per recorded session of ``subject``."""

    rows = [
        {"session": entry.number, "required": entry.required, "attended": entry.attended}
        for entry in subject.sessions
    ]
    return pd.DataFrame(rows, columns=list(SESSION_COLUMNS))


def status_distribution(records: Iterable[DatasetRecord]) -> pd.DataFrame:
    """Count students per status across a whole dataset.

    Unrecognized or missing labels fold into ``Unknown``. Rows are sorted by
    count (descending) then :class:`StatusKind` order; ``share`` is the
    fraction of students, rounded to 3 decimals.
    """

    labels = pd.Series(
        [parse_status(record.get(STATUS_COLUMN)).value for record in records],
        dtype="string",
    )
    if labels.empty:
        return pd.DataFrame(columns=list(DISTRIBUTION_COLUMNS))

    counts = labels.value_counts()
    frame = pd.DataFrame({"status": counts.index.astype(str), "students": counts.to_numpy(dtype="int64")})
    frame["share"] = (frame["students"] / int(frame["students"].sum())).round(3)
    order = {kind.value: position for position, kind in enumerate(StatusKind)}
    frame["_order"] = frame["status"].map(order)
    frame = frame.sort_values(
        by=["students", "_order"], ascending=[False, True], kind="mergesort", ignore_index=True
    )
    return frame.drop(columns="_order")
