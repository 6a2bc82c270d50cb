# src/ledgerlink/batching/executor.py
"""Dispatch one batch (or one lone operation) and classify the result.

Two kinds of failure are kept apart here:

- Item-level: the container call worked but one item's result is a
  remote service error or could not be parsed. Recorded as a failed
  OperationOutcome; sibling items are unaffected.
- Aborting: no usable container result at all (transport failure, 503,
  authentication rejection, malformed envelope). Raised by
  dispatch_batch, or returned as BatchAttempt.aborted by attempt_batch.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from ledgerlink.contracts.account import Authorisation
from ledgerlink.contracts.enums import ClientErrorCode, ExecutionHint, FailPolicy
from ledgerlink.contracts.errors import ApiClientError, AuthenticationError, ResponseError
from ledgerlink.contracts.operations import WriteOperation
from ledgerlink.contracts.outcomes import (
    NON_ABORTING_STATUSES,
    STATUS_MULTI_STATUS,
    STATUS_OK,
    BatchAttempt,
    BatchOutcome,
    OperationOutcome,
)
from ledgerlink.transport.gateway import ApiGateway, container_item_body, container_item_uri
from ledgerlink.transport.parsing import ResponseParser

logger = structlog.get_logger(__name__)


class ContainerItemBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: str | None = None


class ContainerItem(BaseModel):
    """One processed message in a container result."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    label: str
    status_code: int = Field(alias="statusCode")
    body: ContainerItemBody | None = None


class ContainerResult(BaseModel):
    """The ``response`` of a container call."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    processed_messages: list[ContainerItem] = Field(default_factory=list, alias="processedMessages")
    unprocessed_messages: list[str] = Field(default_factory=list, alias="unprocessedMessages")


def build_container_message(
    operations: Sequence[WriteOperation],
    fail_policy: FailPolicy,
    execution_hint: ExecutionHint,
) -> dict[str, Any]:
    """Wire body of a container call; each item is labelled with its operation id."""
    return {
        "processingMode": execution_hint.value,
        "onFail": fail_policy.value,
        "messages": [
            {
                "label": operation.id,
                "uri": container_item_uri(operation),
                "httpMethod": operation.method.value,
                "body": container_item_body(operation),
            }
            for operation in operations
        ],
    }


class BatchExecutor:
    """Sends single operations and container batches.

    Stateless; one instance is shared by every caller of a client.
    """

    def __init__(self, gateway: ApiGateway, parser: ResponseParser) -> None:
        self._gateway = gateway
        self._parser = parser

    def dispatch_single(self, authorisation: Authorisation, operation: WriteOperation) -> BatchOutcome:
        """Send one operation directly and shape the result like a container result.

        The outcome has exactly one entry and nothing unprocessed. Its status
        is 200 when the call returned 200 and the result parsed cleanly,
        207 otherwise.

        Raises:
            AuthenticationError: If the remote rejected the token
            ServiceUnavailableError: On 503 (CapacityExceededError when capped)
            TransportError: If no response was obtained
        """
        response = self._gateway.send_operation(authorisation, operation)
        try:
            value = self._parser.parse_response(response, operation.response_type)
            outcome = OperationOutcome(id=operation.id, status=response.status, value=value)
        except AuthenticationError:
            raise
        except ApiClientError as e:
            outcome = OperationOutcome(id=operation.id, status=response.status, error=e)

        status = STATUS_OK if response.status == STATUS_OK and outcome.succeeded else STATUS_MULTI_STATUS
        return BatchOutcome(status=status, outcomes={operation.id: outcome})

    def dispatch_batch(
        self,
        authorisation: Authorisation,
        operations: Sequence[WriteOperation],
        fail_policy: FailPolicy,
        execution_hint: ExecutionHint,
    ) -> BatchOutcome:
        """Send operations as one container call.

        Raises:
            ApiClientError: Any aborting failure (see module docstring)
        """
        message = build_container_message(operations, fail_policy, execution_hint)
        response = self._gateway.send_container(authorisation, message)

        envelope = self._parser.parse_response_envelope(response, ContainerResult)
        container: ContainerResult = self._parser.parse_value(envelope, ContainerResult)
        if response.status not in NON_ABORTING_STATUSES:
            raise ResponseError(
                ClientErrorCode.INVALID_RESPONSE_TYPE,
                f"container call returned status {response.status}",
            )

        by_id = {operation.id: operation for operation in operations}
        outcomes: dict[str, OperationOutcome] = {}
        for item in container.processed_messages:
            operation = by_id.get(item.label)
            if operation is None:
                logger.warning("container_item_unknown_label", label=item.label)
                continue
            outcomes[item.label] = self._item_outcome(operation, item)

        for label in container.unprocessed_messages:
            if label not in by_id:
                logger.warning("container_item_unknown_label", label=label)

        # Ids the container neither processed nor declined are unprocessed too
        unprocessed = tuple(operation.id for operation in operations if operation.id not in outcomes)
        omitted = [op_id for op_id in unprocessed if op_id not in container.unprocessed_messages]
        if omitted:
            logger.warning("container_items_omitted", ids=omitted)

        status = response.status
        if unprocessed and status == STATUS_OK:
            status = STATUS_MULTI_STATUS

        logger.debug(
            "container_completed",
            account=authorisation.account.code,
            size=len(operations),
            status=status,
            failed=sum(1 for outcome in outcomes.values() if not outcome.succeeded),
            unprocessed=len(unprocessed),
        )
        return BatchOutcome(status=status, outcomes=outcomes, unprocessed=unprocessed)

    def attempt_batch(
        self,
        authorisation: Authorisation,
        operations: Sequence[WriteOperation],
        fail_policy: FailPolicy,
        execution_hint: ExecutionHint,
    ) -> BatchAttempt:
        """dispatch_batch with aborting failures returned instead of raised."""
        try:
            return BatchAttempt.completed(self.dispatch_batch(authorisation, operations, fail_policy, execution_hint))
        except ApiClientError as e:
            return BatchAttempt.aborted(e)

    def _item_outcome(self, operation: WriteOperation, item: ContainerItem) -> OperationOutcome:
        content = item.body.content if item.body is not None else None
        try:
            value = self._parser.parse(item.status_code, content, operation.response_type)
        except ApiClientError as e:
            return OperationOutcome(id=operation.id, status=item.status_code, error=e)
        return OperationOutcome(id=operation.id, status=item.status_code, value=value)
