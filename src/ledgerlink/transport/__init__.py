"""HTTP layer: request shaping, the default httpx transport and response parsing."""

from ledgerlink.transport.gateway import ApiGateway
from ledgerlink.transport.httpx_transport import HttpxTransport
from ledgerlink.transport.messages import HttpRequest, HttpResponse, Transport
from ledgerlink.transport.parsing import ResponseEnvelope, ResponseParser

__all__ = [
    "ApiGateway",
    "HttpRequest",
    "HttpResponse",
    "HttpxTransport",
    "ResponseEnvelope",
    "ResponseParser",
    "Transport",
]
