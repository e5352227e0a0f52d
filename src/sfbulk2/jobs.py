"""
Bulk API 2.0 ingest job vocabulary: operations, job states and result kinds.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from .exceptions import InvalidOperationError

# ---------------------------------------------------------------------------
# Job operation
# ---------------------------------------------------------------------------


class Operation(str, Enum):
    INSERT = "insert"
    UPSERT = "upsert"
    UPDATE = "update"
    DELETE = "delete"
    QUERY = "query"
    QUERY_ALL = "queryAll"

    @classmethod
    def parse(cls, value: Union[str, "Operation", None]) -> Optional["Operation"]:
        """Return the matching Operation, None for an empty value."""
        if value is None or value == "":
            return None
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidOperationError(str(value)) from None


# ---------------------------------------------------------------------------
# Job state
# ---------------------------------------------------------------------------


class JobState(str, Enum):
    OPEN = "Open"
    UPLOAD_COMPLETE = "UploadComplete"
    IN_PROGRESS = "InProgress"
    JOB_COMPLETE = "JobComplete"
    FAILED = "Failed"
    ABORTED = "Aborted"


TERMINAL_STATES = frozenset({JobState.JOB_COMPLETE, JobState.FAILED, JobState.ABORTED})


def is_terminal(state: Optional[str]) -> bool:
    """True once the server will no longer change the job's state."""
    return state in {s.value for s in TERMINAL_STATES}


# ---------------------------------------------------------------------------
# Result collections
# ---------------------------------------------------------------------------


class ResultKind(str, Enum):
    """Result collection of a job; the value is the URL path segment."""

    SUCCESSFUL = "successfulResults"
    FAILED = "failedResults"
    UNPROCESSED = "unprocessedrecords"

    @classmethod
    def from_name(cls, name: str) -> "ResultKind":
        """Map a CLI-friendly name ('successful', 'failed', 'unprocessed') to a kind."""
        return cls[name.strip().upper()]
