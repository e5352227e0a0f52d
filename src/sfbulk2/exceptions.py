from __future__ import annotations


class MissingOptionError(ValueError):
    """Raised when a required client option is not supplied."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__("Missing required options: " + ", ".join(missing))


class InvalidOperationError(ValueError):
    """Raised when the job operation is not one the ingest API accepts."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Unsupported job operation: {operation!r}")


class JobTimeoutError(TimeoutError):
    """Raised when a job does not reach a terminal state before the deadline."""

    def __init__(self, job_id: str, state: str | None, timeout: float):
        self.job_id = job_id
        self.state = state
        self.timeout = timeout
        super().__init__(f"Job {job_id} still {state or 'unknown'} after {timeout:g}s")
