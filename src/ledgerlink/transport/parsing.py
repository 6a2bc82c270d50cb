# src/ledgerlink/transport/parsing.py
"""Turn response bodies into typed results or client errors.

Every JSON body the remote returns is an envelope:

    {"response": ..., "errors": [{"code": ..., "message": ...}], "reference": {...}}

Parsing happens in two steps. The envelope is checked first, which is
where authentication rejections, remote service errors and malformed
bodies are detected. Only then is ``response`` validated against the
caller's expected type with a pydantic TypeAdapter.
"""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ledgerlink.contracts.enums import ClientErrorCode
from ledgerlink.contracts.errors import AuthenticationError, ResponseError, ServiceError, ServiceErrorDetail
from ledgerlink.transport.messages import HttpResponse

logger = structlog.get_logger(__name__)

STATUS_UNAUTHORIZED = 401


class _ErrorItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: str | None = None
    message: str | None = None


class ResponseEnvelope(BaseModel):
    """Outer document of every JSON response."""

    model_config = ConfigDict(extra="allow", frozen=True)

    response: Any = None
    errors: list[_ErrorItem] | None = None
    reference: dict[str, Any] | None = None

    @property
    def error_details(self) -> tuple[ServiceErrorDetail, ...]:
        return tuple(ServiceErrorDetail(code=item.code, message=item.message) for item in self.errors or ())


@lru_cache(maxsize=256)
def _adapter_for(response_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(response_type)


def _decode_envelope(text: str) -> ResponseEnvelope:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ResponseError(ClientErrorCode.INVALID_RESPONSE_FORMAT, str(e)) from e
    if not isinstance(document, dict):
        raise ResponseError(
            ClientErrorCode.INVALID_RESPONSE_FORMAT,
            f"expected a JSON object, got {type(document).__name__}",
        )
    try:
        return ResponseEnvelope.model_validate(document)
    except ValidationError as e:
        raise ResponseError(ClientErrorCode.INVALID_RESPONSE_FORMAT, str(e)) from e


def _rejection_message(envelope: ResponseEnvelope) -> str | None:
    if envelope.errors:
        return envelope.errors[0].message
    if isinstance(envelope.response, (str, int, float, bool)):
        return str(envelope.response)
    return None


class ResponseParser:
    """Applies the envelope rules and validates results against expected types.

    Stateless apart from a process-wide TypeAdapter cache, so one instance
    is shared by every caller.
    """

    def parse_envelope(
        self,
        status: int,
        body: str | None,
        response_type: Any,
        *,
        authentication: bool = False,
    ) -> ResponseEnvelope | None:
        """Check an envelope for errors.

        Args:
            status: HTTP status of the response or container item
            body: Body text, None when there is no usable JSON body
            response_type: Expected result type, None when no result is expected
            authentication: True when parsing the authentication call itself;
                a 401 there is reported through the envelope's errors instead

        Returns:
            The envelope when it carries a result, None when no result was
            sent and none was expected

        Raises:
            AuthenticationError: On 401 for any call except authentication
            ServiceError: When the envelope lists errors
            ResponseError: EMPTY_RESPONSE, INVALID_RESPONSE_FORMAT or
                INVALID_RESPONSE_TYPE
        """
        if body:
            envelope = _decode_envelope(body)
            if status == STATUS_UNAUTHORIZED and not authentication:
                message = _rejection_message(envelope)
                raise AuthenticationError(message) if message else AuthenticationError()
            if envelope.errors:
                raise ServiceError(status, envelope.error_details)
            if 200 <= status < 300:
                if envelope.response is not None:
                    return envelope
            else:
                detail = envelope.response if isinstance(envelope.response, str) else json.dumps(envelope.response)
                raise ResponseError(ClientErrorCode.INVALID_RESPONSE_TYPE, detail)
        elif status == STATUS_UNAUTHORIZED and not authentication:
            raise AuthenticationError()

        if response_type is not None:
            raise ResponseError(ClientErrorCode.EMPTY_RESPONSE)
        return None

    def parse_value(self, envelope: ResponseEnvelope | None, response_type: Any) -> Any:
        """Validate the envelope's ``response`` against the expected type.

        Raises:
            ResponseError: INVALID_RESPONSE_TYPE if validation fails.
        """
        if envelope is None or response_type is None:
            return None
        try:
            return _adapter_for(response_type).validate_python(envelope.response)
        except ValidationError as e:
            logger.debug("response_type_mismatch", expected=repr(response_type), errors=e.error_count())
            raise ResponseError(ClientErrorCode.INVALID_RESPONSE_TYPE, str(e)) from e

    def parse(
        self,
        status: int,
        body: str | None,
        response_type: Any,
        *,
        authentication: bool = False,
    ) -> Any:
        """Envelope check followed by type validation."""
        envelope = self.parse_envelope(status, body, response_type, authentication=authentication)
        return self.parse_value(envelope, response_type)

    def parse_response(self, response: HttpResponse, response_type: Any, *, authentication: bool = False) -> Any:
        """Parse a direct (non-container) response.

        Bodies are only read as JSON when the content type says so.
        """
        body = response.body if response.is_json else None
        return self.parse(response.status, body, response_type, authentication=authentication)

    def parse_response_envelope(self, response: HttpResponse, response_type: Any) -> ResponseEnvelope | None:
        body = response.body if response.is_json else None
        return self.parse_envelope(response.status, body, response_type)
