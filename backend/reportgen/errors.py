"""Failure taxonomy for report generation.

Every failure raised while producing a report derives from
ReportGenerationError. The HTTP layer collapses them all into one generic
500 response unless detailed errors are enabled, in which case each
error's ``status_code`` and ``kind`` are exposed.
"""
from typing import Optional


class ReportGenerationError(Exception):
    """Base exception for report generation errors."""

    kind = "unknown"

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ConfigurationError(ReportGenerationError):
    """Raised when the credential or assistant identity is missing."""
    kind = "configuration"

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class NoScreenshotsError(ReportGenerationError):
    """Raised when a request carries no file parts at all."""
    kind = "no_screenshots"

    def __init__(self, message: str = "No screenshots were uploaded"):
        super().__init__(message, status_code=400)


class UploadRejectedError(ReportGenerationError):
    """Raised when an upload breaks the local size or count limits."""
    kind = "upload_rejected"

    def __init__(self, message: str):
        super().__init__(message, status_code=413)


class AssistantCallError(ReportGenerationError):
    """Raised when a remote assistant call fails for any other reason."""
    kind = "transport"

    def __init__(self, step: str, cause: Exception):
        self.step = step
        self.cause = cause
        super().__init__(f"Assistant call '{step}' failed: {cause}", status_code=502)


class UploadFailedError(ReportGenerationError):
    """Raised when pushing a screenshot to the remote file store fails."""
    kind = "upload_failed"

    def __init__(self, filename: str, field_name: str, cause: Exception):
        self.filename = filename
        self.field_name = field_name
        self.cause = cause
        super().__init__(
            f"Upload of '{filename}' (field '{field_name}') failed: {cause}",
            status_code=502,
        )


class RunFailedError(ReportGenerationError):
    """Raised when a run reaches a terminal status other than completed."""
    kind = "run_failed"

    def __init__(self, run_id: str, status: str, detail: Optional[str] = None):
        self.run_id = run_id
        self.status = status
        self.detail = detail
        message = f"Run {run_id} ended with status '{status}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, status_code=502)


class RunTimeoutError(ReportGenerationError):
    """Raised when a run does not resolve within the polling budget."""
    kind = "run_timeout"

    def __init__(self, run_id: str, attempts: int, elapsed: float):
        self.run_id = run_id
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(
            f"Run {run_id} did not finish after {attempts} status checks ({elapsed:.1f}s)",
            status_code=504,
        )


class RunCancelledError(ReportGenerationError):
    """Raised when the caller went away while a run was in flight."""
    kind = "run_cancelled"

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run {run_id} abandoned: client disconnected", status_code=499)


class NoFileReturnedError(ReportGenerationError):
    """Raised when a completed run produced no downloadable file."""
    kind = "no_file_returned"

    def __init__(self, thread_id: str, reason: str):
        self.thread_id = thread_id
        self.reason = reason
        super().__init__(f"No file returned in thread {thread_id}: {reason}", status_code=502)
