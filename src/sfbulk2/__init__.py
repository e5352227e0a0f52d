from __future__ import annotations

import logging

try:  # prefer importlib.metadata, fall back on dev installs
    from importlib.metadata import PackageNotFoundError, version
except Exception:  # pragma: no cover
    version = None
    PackageNotFoundError = Exception  # type: ignore[misc]

try:
    __version__ = version("sfbulk2") if version else "0.0.0"
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

from .api import BulkAPI
from .config import BulkConfig
from .exceptions import InvalidOperationError, JobTimeoutError, MissingOptionError
from .jobs import JobState, Operation, ResultKind

__all__ = [
    "BulkAPI",
    "BulkConfig",
    "InvalidOperationError",
    "JobState",
    "JobTimeoutError",
    "MissingOptionError",
    "Operation",
    "ResultKind",
    "__version__",
]

# Keep library modules quiet unless the app configures logging:
logging.getLogger(__name__).addHandler(logging.NullHandler())
