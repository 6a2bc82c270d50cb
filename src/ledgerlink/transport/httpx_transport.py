# src/ledgerlink/transport/httpx_transport.py
"""Default Transport backed by a shared httpx.Client."""

from __future__ import annotations

from types import TracebackType

import httpx
import structlog

from ledgerlink.contracts.enums import ClientErrorCode
from ledgerlink.contracts.errors import TransportError
from ledgerlink.core.config import ClientSettings
from ledgerlink.transport.messages import HttpRequest, HttpResponse

logger = structlog.get_logger(__name__)


def _is_name_resolution_failure(exc: httpx.ConnectError) -> bool:
    # httpcore surfaces socket.gaierror text inside ConnectError
    message = str(exc).lower()
    return "name or service not known" in message or "nodename nor servname" in message or "getaddrinfo" in message


def classify_transport_error(exc: httpx.HTTPError) -> ClientErrorCode:
    """Map an httpx exception onto a ClientErrorCode.

    Order matters: the timeout subclasses are checked before the
    connection errors they share a base with.
    """
    if isinstance(exc, httpx.ConnectTimeout):
        return ClientErrorCode.CONNECTION_TIMEOUT
    if isinstance(exc, httpx.ReadTimeout):
        return ClientErrorCode.READ_TIMEOUT
    if isinstance(exc, (httpx.WriteTimeout, httpx.PoolTimeout)):
        return ClientErrorCode.SOCKET_TIMEOUT
    if isinstance(exc, httpx.RemoteProtocolError):
        return ClientErrorCode.NO_RESPONSE
    if isinstance(exc, httpx.ConnectError):
        if _is_name_resolution_failure(exc):
            return ClientErrorCode.UNKNOWN_HOST
        return ClientErrorCode.SOCKET_ERROR
    if isinstance(exc, (httpx.ReadError, httpx.WriteError, httpx.CloseError)):
        return ClientErrorCode.SOCKET_ERROR
    return ClientErrorCode.OTHER_TRANSPORT_ERROR


class HttpxTransport:
    """Transport over one pooled httpx.Client.

    httpx.Client is thread-safe; its connection pool is shared by every
    caller of the client that owns this transport.

    Example:
        transport = HttpxTransport(timeout=30.0)
        response = transport.send(HttpRequest(HttpMethod.GET, "https://host/path"))
        transport.close()
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        connect_timeout: float = 10.0,
        max_connections: int = 20,
        user_agent: str = "ledgerlink",
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize transport.

        Args:
            timeout: Read, write and pool timeout in seconds
            connect_timeout: Connection establishment timeout in seconds
            max_connections: Pool size
            user_agent: Sent as User-Agent on every request
            client: Pre-built client to use instead (its settings win)
        """
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            limits=httpx.Limits(max_connections=max_connections),
            headers={"User-Agent": user_agent},
            follow_redirects=False,
        )

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> HttpxTransport:
        return cls(
            timeout=settings.timeout_seconds,
            connect_timeout=settings.connect_timeout_seconds,
            max_connections=settings.max_connections,
            user_agent=settings.user_agent,
        )

    def send(self, request: HttpRequest) -> HttpResponse:
        """Send a request.

        Raises:
            TransportError: For any failure to obtain a response.
        """
        try:
            response = self._client.request(
                request.method.value,
                request.url,
                headers=dict(request.headers),
                params=dict(request.params) or None,
                json=request.json,
            )
        except httpx.HTTPError as e:
            code = classify_transport_error(e)
            logger.warning(
                "transport_failed",
                method=request.method.value,
                url=request.url,
                code=code.value,
                error_type=type(e).__name__,
            )
            raise TransportError(code, str(e) or type(e).__name__) from e

        body = response.text if response.content else None
        return HttpResponse(status=response.status_code, body=body, headers=dict(response.headers))

    def close(self) -> None:
        """Close the underlying httpx client and release connections."""
        self._client.close()

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
