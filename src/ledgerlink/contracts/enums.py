# src/ledgerlink/contracts/enums.py
"""Status codes, modes and kinds shared across the client's subsystems.

Values that travel on the wire (processing mode, on-fail option, HTTP
method) use the exact spelling the remote API expects.
"""

from enum import StrEnum


class FailPolicy(StrEnum):
    """What a multi-operation submission does after a batch partially fails.

    Sent to the remote container as ``onFail`` and also honoured by the
    reconciler between batches.
    """

    STOP = "STOP"
    CONTINUE = "CONTINUE"


class ExecutionHint(StrEnum):
    """How the remote container processes the items of one batch.

    Sent as ``processingMode``. Batches themselves are always dispatched
    one after another regardless of this value.
    """

    SEQUENTIAL = "SEQUENTIAL"
    PARALLEL = "PARALLEL"


class HttpMethod(StrEnum):
    """HTTP methods understood by the service endpoints."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"


WRITE_METHODS: frozenset[HttpMethod] = frozenset({HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH, HttpMethod.DELETE})


class ClientErrorCode(StrEnum):
    """Classification of failures that happen on this side of the wire.

    Values:
        EMPTY_RESPONSE: A result was expected but the body carried none
        INVALID_RESPONSE_FORMAT: Body was not a JSON envelope
        INVALID_RESPONSE_TYPE: Envelope did not match the expected shape
        NO_RESPONSE: Server closed the connection without responding
        UNKNOWN_HOST: DNS resolution failed
        CONNECTION_TIMEOUT: Connection could not be established in time
        SOCKET_ERROR: Connection-level failure
        SOCKET_TIMEOUT: Write or pool timeout
        READ_TIMEOUT: Response was not received in time
        OTHER_TRANSPORT_ERROR: Anything else raised by the transport
    """

    EMPTY_RESPONSE = "empty_response"
    INVALID_RESPONSE_FORMAT = "invalid_response_format"
    INVALID_RESPONSE_TYPE = "invalid_response_type"
    NO_RESPONSE = "no_response"
    UNKNOWN_HOST = "unknown_host"
    CONNECTION_TIMEOUT = "connection_timeout"
    SOCKET_ERROR = "socket_error"
    SOCKET_TIMEOUT = "socket_timeout"
    READ_TIMEOUT = "read_timeout"
    OTHER_TRANSPORT_ERROR = "other_transport_error"


RESPONSE_ERROR_CODES: frozenset[ClientErrorCode] = frozenset(
    {
        ClientErrorCode.EMPTY_RESPONSE,
        ClientErrorCode.INVALID_RESPONSE_FORMAT,
        ClientErrorCode.INVALID_RESPONSE_TYPE,
    }
)


class ExpiredTokenStrategy(StrEnum):
    """Session behaviour when the remote rejects a cached token.

    REAUTHENTICATE: clear the token, authenticate once more and repeat
        the operation a single time.
    FAIL: surface the rejection to the caller immediately.
    """

    REAUTHENTICATE = "reauthenticate"
    FAIL = "fail"
