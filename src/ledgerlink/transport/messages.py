# src/ledgerlink/transport/messages.py
"""Transport-neutral request and response values and the Transport protocol.

Everything above the transport layer deals in these types, so tests can
drive the gateway, executor and session with an in-memory transport.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

from ledgerlink.contracts.enums import HttpMethod


def _lower_headers(headers: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType({name.lower(): value for name, value in (headers or {}).items()})


@dataclass(frozen=True)
class HttpRequest:
    """One physical HTTP call.

    Attributes:
        method: HTTP method
        url: Absolute URL
        headers: Request headers (auth header included)
        params: Query string parameters
        json: JSON-compatible body, or None for no body
    """

    method: HttpMethod
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, str] = field(default_factory=dict)
    json: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", HttpMethod(self.method))
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))


@dataclass(frozen=True)
class HttpResponse:
    """Status, body text and headers of a received response.

    Header names are stored lower-cased.
    """

    status: int
    body: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _lower_headers(self.headers))

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    @property
    def is_json(self) -> bool:
        content_type = self.header("content-type")
        return content_type is not None and content_type.lower().startswith("application/json")

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300


@runtime_checkable
class Transport(Protocol):
    """Sends one physical HTTP call.

    Implementations must be safe to share between threads.
    """

    def send(self, request: HttpRequest) -> HttpResponse:
        """Send the request and return whatever response arrived.

        Non-2xx statuses are returned, not raised.

        Raises:
            TransportError: If no response could be obtained.
        """
        ...

    def close(self) -> None: ...
