# src/ledgerlink/contracts/errors.py
"""Exception hierarchy for the API client.

Every failure the client raises deliberately derives from ApiClientError.
Whether a failure aborts a multi-operation run or is recorded against a
single operation is decided by the batch layer (see batching.executor),
not by the exception type alone.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ledgerlink.contracts.enums import ClientErrorCode


@dataclass(frozen=True, slots=True)
class ServiceErrorDetail:
    """One entry of the ``errors`` list in a response envelope."""

    code: str | None
    message: str | None


class ApiClientError(Exception):
    """Base exception for all client errors.

    Attributes:
        retryable: Whether the same call might succeed if repeated later
    """

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class AuthenticationError(ApiClientError):
    """The remote rejected the supplied credentials or auth token (HTTP 401)."""

    def __init__(self, message: str = "Invalid authentication details") -> None:
        super().__init__(message)


class ServiceError(ApiClientError):
    """The remote returned a well-formed envelope carrying errors.

    Attributes:
        status: HTTP status of the response (or of the container item)
        errors: Error details reported by the remote service
    """

    def __init__(self, status: int, errors: Sequence[ServiceErrorDetail]) -> None:
        self.status = status
        self.errors: tuple[ServiceErrorDetail, ...] = tuple(errors)
        codes = ", ".join(str(error.code) for error in self.errors)
        super().__init__(f"Status code {status} and {len(self.errors)} errors returned from API ({codes})")


class RequestFailedError(ApiClientError):
    """A request failed on this side of the wire.

    Attributes:
        code: Client-side classification of the failure
    """

    def __init__(self, code: ClientErrorCode, detail: str | None = None) -> None:
        self.code = code
        message = f"Request failed: {code}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ResponseError(RequestFailedError):
    """A response was received but could not be turned into a result."""


class TransportError(RequestFailedError):
    """No usable response was obtained from the remote."""

    def __init__(self, code: ClientErrorCode, detail: str | None = None) -> None:
        super().__init__(code, detail)
        self.retryable = True


class ServiceUnavailableError(ApiClientError):
    """The remote answered 503 Service Unavailable."""

    def __init__(self, message: str = "API returned 503 Service Unavailable") -> None:
        super().__init__(message, retryable=True)


class CapacityExceededError(ServiceUnavailableError):
    """The remote refused the call because the account's request cap was hit."""

    def __init__(self, message: str = "Request limit exceeded") -> None:
        super().__init__(message)


class SessionError(ApiClientError):
    """A session could not obtain a token to issue the call with."""


class AuthenticationTimeoutError(SessionError):
    """Waited too long for another caller's authentication attempt."""

    def __init__(self, waited_seconds: float) -> None:
        super().__init__(
            f"Request could not be executed; waited too long for authentication ({waited_seconds:g}s)",
            retryable=True,
        )
        self.waited_seconds = waited_seconds


class AuthenticationBackoffError(SessionError):
    """Authentication recently failed and the retry window has not elapsed."""

    def __init__(self, retry_interval_seconds: float) -> None:
        super().__init__(
            "Request could not be executed; authentication recently failed, "
            f"retry later (attempts are made at most every {retry_interval_seconds:g}s)",
            retryable=True,
        )
        self.retry_interval_seconds = retry_interval_seconds
