"""Participant progress: records, resolution onto route geometry, logging."""

from race_route.progress.models import (
    ABANDONED,
    ACTIVE,
    COMPLETED,
    ProgressEntry,
    ProgressRecord,
    ProgressView,
)
from race_route.progress.resolver import ProgressResolver
from race_route.progress.tracker import ProgressTracker

__all__ = [
    "ABANDONED",
    "ACTIVE",
    "COMPLETED",
    "ProgressEntry",
    "ProgressRecord",
    "ProgressResolver",
    "ProgressTracker",
    "ProgressView",
]
