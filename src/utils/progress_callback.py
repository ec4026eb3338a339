"""Progress callback infrastructure for dataset loads.

This module provides:
- ProgressPhase enum for tracking load stages
- ProgressUpdate dataclass for structured progress information
- ProgressCallback type alias for progress handler functions

Usage:
    from utils.progress_callback import ProgressUpdate

    def my_progress_handler(update: ProgressUpdate) -> None:
        print(f"{update.operation}: {update.current} rows - {update.message}")

    await cache.load(path, progress_callback=my_progress_handler)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class ProgressPhase(Enum):
    """Phases of a load operation for progress tracking."""

    STARTING = "starting"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class ProgressUpdate:
    """Structured progress information for a load.

    Attributes:
        operation: Name of the operation being performed.
        phase: Current phase of the operation.
        current: Rows processed so far.
        total: Total expected rows (0 if indeterminate).
        message: Human-readable status message.
        detail: Optional additional detail string.
    """

    operation: str
    phase: ProgressPhase
    current: int
    total: int
    message: str
    detail: str | None = None


# Type alias for progress callback functions
ProgressCallback = Callable[[ProgressUpdate], None]
