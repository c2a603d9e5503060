"""Exception hierarchy for broker client errors.

Every error carries an explicit ``kind`` tag so callers (and the
classification predicates below) can branch on what went wrong without
inspecting raw status codes or exception types.
"""

import copy
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Discriminator for broker client failures."""

    TRANSPORT = "transport"
    API = "api"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    OPERATION = "operation"
    CANCELLED = "cancelled"


class BossClientError(Exception):
    """Base exception for broker client errors.

    All client exceptions inherit from this class, allowing callers to
    catch any client error with a single except clause.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code if applicable, None otherwise.
        details: Additional error context as a dictionary.
        attempts: Number of physical attempts made, set once the retry
            budget has been exhausted.
    """

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.attempts: Optional[int] = None
        super().__init__(message)

    def with_context(self, context: str) -> "BossClientError":
        """Return a copy of this error with ``context`` prefixed to its message.

        The copy keeps the class, kind and payload of the original, and
        chains back to it through ``__cause__``.
        """
        wrapped = copy.copy(self)
        wrapped.message = f"{context}: {self.message}"
        wrapped.args = (wrapped.message,)
        wrapped.__cause__ = self
        return wrapped

    def __str__(self) -> str:
        return self.message


class TransportError(BossClientError):
    """The request never produced a usable HTTP response.

    Covers DNS, connect, TLS and timeout failures, malformed URLs, and
    responses with a status the client cannot interpret.
    """

    kind = ErrorKind.TRANSPORT


class APIError(BossClientError):
    """The broker answered with a structured 4xx/5xx error.

    Attributes:
        error_code: Broker error identifier (the ``error`` field).
        description: Broker-supplied description.
        sub_error_code: Optional OSB ``error_code`` field.
    """

    kind = ErrorKind.API

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        error_code: str = "",
        description: str = "",
        sub_error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message, status_code=status_code, details=details)
        self.error_code = error_code
        self.description = description
        self.sub_error_code = sub_error_code

    @classmethod
    def from_payload(
        cls,
        status_code: int,
        error_code: str,
        description: str = "",
        sub_error_code: Optional[str] = None,
    ) -> "APIError":
        """Build an APIError from the decoded broker error body."""
        message = f"{error_code}: {description}" if description else error_code
        return cls(
            message,
            status_code=status_code,
            error_code=error_code,
            description=description,
            sub_error_code=sub_error_code,
        )

    @property
    def retryable(self) -> bool:
        """Server errors (5xx) may be resolved by retrying."""
        return self.status_code is not None and self.status_code >= 500


class ValidationError(BossClientError):
    """A response payload was not well-formed JSON or YAML."""

    kind = ErrorKind.VALIDATION


class NotFoundError(BossClientError):
    """No instance or catalog entry matched the lookup."""

    kind = ErrorKind.NOT_FOUND


class OperationError(BossClientError):
    """An asynchronous broker operation failed, or ran past its deadline."""

    kind = ErrorKind.OPERATION


class CancelledError(BossClientError):
    """The caller cancelled the operation through its cancellation token."""

    kind = ErrorKind.CANCELLED


def is_not_found(err: BaseException) -> bool:
    """True if the error means the resource does not exist."""
    kind = getattr(err, "kind", None)
    if kind is ErrorKind.API:
        return err.status_code == 404 or err.error_code == "NotFound"
    return kind is ErrorKind.NOT_FOUND


def is_conflict(err: BaseException) -> bool:
    """True if the broker reported a conflict (HTTP 409)."""
    if getattr(err, "kind", None) is ErrorKind.API:
        return err.status_code == 409 or err.error_code == "Conflict"
    return False


def is_timeout(err: BaseException) -> bool:
    """True if the error indicates a timeout.

    Errors without a structured status (network-level timeouts that never
    reached HTTP) are matched on their text.
    """
    if getattr(err, "kind", None) is ErrorKind.API:
        return err.status_code == 408 or "timeout" in err.description
    return "timeout" in str(err).lower()
