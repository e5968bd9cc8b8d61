"""Jenkins client exceptions.

Every exception carries an :class:`ErrorKind` in ``.kind`` so callers can
branch on the kind of failure without matching on the exception type.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    PROTOCOL_VIOLATION = "protocol_violation"
    TRANSPORT_FAILURE = "transport_failure"
    INTERRUPTED_WAIT = "interrupted_wait"
    API_ERROR = "api_error"
    WRITE_DISABLED = "write_disabled"


class JenkinsError(Exception):
    """Base exception for Jenkins operations."""

    kind: ErrorKind = ErrorKind.API_ERROR


class JenkinsApiError(JenkinsError):
    """Raised when the Jenkins API returns a non-success response."""

    def __init__(self, status_code: int, status_text: str, body: str = "") -> None:
        self.status_code = status_code
        self.status_text = status_text
        self.body = body
        super().__init__(f"Jenkins API Error {status_code} {status_text}: {body}")


class JenkinsAuthError(JenkinsApiError):
    """Raised on 401/403 authentication failures."""

    def __init__(self, status_code: int, body: str = "") -> None:
        status_text = "Unauthorized" if status_code == 401 else "Forbidden"
        super().__init__(status_code, status_text, body)


class JenkinsNotFoundError(JenkinsApiError):
    """Raised when a job, build or artifact does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, body: str = "") -> None:
        super().__init__(404, "Not Found", body)


class JenkinsProtocolError(JenkinsError):
    """Raised when Jenkins omits something it is contractually required to return."""

    kind = ErrorKind.PROTOCOL_VIOLATION


class JenkinsTransportError(JenkinsError):
    """Raised when the connection to Jenkins fails."""

    kind = ErrorKind.TRANSPORT_FAILURE


class JenkinsInterruptedError(JenkinsError):
    """Raised when a wait between queue polls is cut short.

    Cancelling the task that waits is not an interruption: that still raises
    ``asyncio.CancelledError``.
    """

    kind = ErrorKind.INTERRUPTED_WAIT


class JenkinsWriteDisabledError(JenkinsError):
    """Raised when a write operation is attempted in read-only mode."""

    kind = ErrorKind.WRITE_DISABLED

    def __init__(self) -> None:
        super().__init__("Write operations are disabled (JENKINS_READ_ONLY=true)")
