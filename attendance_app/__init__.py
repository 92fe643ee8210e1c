"""Attendance dashboard data pipeline: cache, remote fetch and record extraction."""

__version__ = "0.1.0"

__all__ = ["__version__"]
