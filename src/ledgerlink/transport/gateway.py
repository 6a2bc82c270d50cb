# src/ledgerlink/transport/gateway.py
"""Request shaping and per-call rate limiter hooks.

ApiGateway is the only place that turns operations into HTTP requests and
the only place that talks to the rate limiter. Every physical call goes
through ``exchange``, which paces the call, sends it, reports the quota
headers and classifies 503 responses.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from pydantic_core import to_jsonable_python

from ledgerlink.contracts.account import Account, Authorisation, UserCredentials
from ledgerlink.contracts.enums import HttpMethod
from ledgerlink.contracts.errors import CapacityExceededError, ServiceUnavailableError
from ledgerlink.contracts.operations import ServiceOperation, WriteOperation
from ledgerlink.core.rate_limit import RateLimiter
from ledgerlink.transport.messages import HttpRequest, HttpResponse, Transport

logger = structlog.get_logger(__name__)

REQUESTS_REMAINING_HEADER = "x-requests-remaining"
NEXT_THROTTLE_PERIOD_HEADER = "x-next-throttle-period"

STATUS_SERVICE_UNAVAILABLE = 503
CAPACITY_EXCEEDED_MARKER = "too many requests"

# Only these methods carry the operation's payload; other writes send {}
_ENTITY_METHODS = frozenset({HttpMethod.POST, HttpMethod.PUT})


def service_url(account: Account, operation: ServiceOperation) -> str:
    return f"{account.host}/public-api/{account.code}/{operation.service}/{operation.relative_path}"


def container_url(account: Account) -> str:
    return f"{account.host}/public-api/{account.code}/multi-message"


def container_item_uri(operation: ServiceOperation) -> str:
    return f"/{operation.service}/{operation.relative_path}"


def authentication_url(account: Account) -> str:
    return f"{account.host}/{account.code}/authorise"


def encode_payload(payload: Any) -> Any:
    """Convert a payload (dataclass, pydantic model, mapping...) to JSON-compatible data."""
    return to_jsonable_python(payload, by_alias=True)


def write_body(operation: WriteOperation) -> Any:
    """Body of a direct write call."""
    if operation.payload is not None and operation.method in _ENTITY_METHODS:
        return encode_payload(operation.payload)
    return {}


def container_item_body(operation: WriteOperation) -> Any:
    """Body of a write inside a container call."""
    if operation.payload is None:
        return {}
    return encode_payload(operation.payload)


def _parse_header_int(value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


class ApiGateway:
    """Builds requests and wraps every send in the rate limiter hooks.

    Thread-safe as long as the transport and rate limiter are.
    """

    def __init__(self, transport: Transport, rate_limiter: RateLimiter) -> None:
        self._transport = transport
        self._rate_limiter = rate_limiter

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    def operation_request(self, authorisation: Authorisation, operation: ServiceOperation) -> HttpRequest:
        body = write_body(operation) if isinstance(operation, WriteOperation) else None
        return HttpRequest(
            method=operation.method,
            url=service_url(authorisation.account, operation),
            headers=authorisation.headers,
            params=operation.params,
            json=body,
        )

    def container_request(self, authorisation: Authorisation, message: dict[str, Any]) -> HttpRequest:
        return HttpRequest(
            method=HttpMethod.POST,
            url=container_url(authorisation.account),
            headers=authorisation.headers,
            json=message,
        )

    def send_operation(self, authorisation: Authorisation, operation: ServiceOperation) -> HttpResponse:
        """Send one operation and return the raw response."""
        return self.exchange(authorisation.account, self.operation_request(authorisation, operation))

    def send_container(self, authorisation: Authorisation, message: dict[str, Any]) -> HttpResponse:
        """Send one container message and return the raw response."""
        return self.exchange(authorisation.account, self.container_request(authorisation, message))

    def exchange(self, account: Account, request: HttpRequest) -> HttpResponse:
        """Pace, send, report quota headers and classify 503.

        Raises:
            CapacityExceededError: 503 whose body reports too many requests
            ServiceUnavailableError: Any other 503
            TransportError: If no response was obtained
        """
        self._rate_limiter.before_call(account)
        response = self._transport.send(request)
        self._report_quota(account, response)
        if response.status == STATUS_SERVICE_UNAVAILABLE:
            self._raise_unavailable(account, response)
        return response

    def authenticate(
        self,
        account: Account,
        credentials: UserCredentials,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        """Send the authentication call, with app identification headers if any.

        Not paced by before_call; quota headers are still reported.
        """
        request = HttpRequest(
            method=HttpMethod.POST,
            url=authentication_url(account),
            headers=headers or {},
            json=credentials.to_wire(),
        )
        response = self._transport.send(request)
        self._report_quota(account, response)
        return response

    def _report_quota(self, account: Account, response: HttpResponse) -> None:
        remaining = _parse_header_int(response.header(REQUESTS_REMAINING_HEADER))
        period = _parse_header_int(response.header(NEXT_THROTTLE_PERIOD_HEADER))
        if remaining is None or period is None:
            return
        self._rate_limiter.after_call(account, remaining, period)

    def _raise_unavailable(self, account: Account, response: HttpResponse) -> None:
        if response.body is not None and CAPACITY_EXCEEDED_MARKER in response.body.lower():
            logger.warning("capacity_exceeded", account=account.code)
            self._rate_limiter.on_capacity_exceeded(account)
            raise CapacityExceededError()
        logger.warning("service_unavailable", account=account.code)
        raise ServiceUnavailableError()

    def close(self) -> None:
        """Release the transport and the rate limiter."""
        try:
            self._transport.close()
        finally:
            self._rate_limiter.close()
