"""Error kinds surfaced to callers.

Each exception carries a stable ``kind`` string so a UI can tell
"server offline" from "scrape failed" from "timed out" without parsing
messages.
"""
from __future__ import annotations


class JobMergeError(Exception):
    kind = "error"

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind, "message": str(self)}


class MalformedJobError(JobMergeError, ValueError):
    kind = "malformed_input"


class MalformedResumeError(JobMergeError, ValueError):
    kind = "malformed_input"


class ServerOfflineError(JobMergeError):
    kind = "server_offline"

    def __init__(self, message: str = "Backend server is not running. Please start the server first.") -> None:
        super().__init__(message)


class ScrapeInProgressError(JobMergeError):
    kind = "conflict"

    def __init__(self, message: str = "A scrape is already in progress") -> None:
        super().__init__(message)


class ScrapeTimeoutError(JobMergeError, TimeoutError):
    kind = "timeout"

    def __init__(self, message: str = "Scraping timeout - maximum wait time exceeded") -> None:
        super().__init__(message)


class ScrapeFailedError(JobMergeError):
    kind = "scrape_failed"

    def __init__(self, message: str = "Scraping failed") -> None:
        super().__init__(message)


class UpstreamError(JobMergeError):
    """Non-2xx reply from the jobmerge server."""

    kind = "upstream_error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        return self.status_code is not None and self.status_code >= 500


class JobNotFoundError(JobMergeError, LookupError):
    kind = "not_found"
