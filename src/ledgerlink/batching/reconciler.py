# src/ledgerlink/batching/reconciler.py
"""Run a multi-operation submission and merge its batches into one outcome.

Batches run strictly one after another. What happens after each one
depends on where it sits in the run and how it ended:

    batch 0 aborted      -> the error propagates, nothing is returned
    batch i>0 aborted    -> stop; this batch and all later ones are unprocessed
    completed, not 200   -> STOP: stop after merging; CONTINUE: carry on
    completed, 200       -> carry on

Every submitted id ends up either in the outcome map or in the unprocessed
tuple, never both and never neither.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from ledgerlink.batching.executor import BatchExecutor
from ledgerlink.batching.splitter import split_operations
from ledgerlink.contracts.account import Authorisation
from ledgerlink.contracts.enums import FailPolicy
from ledgerlink.contracts.operations import BatchRequest
from ledgerlink.contracts.outcomes import STATUS_MULTI_STATUS, STATUS_OK, AggregateOutcome, BatchOutcome, OperationOutcome

logger = structlog.get_logger(__name__)


def merge_outcomes(request: BatchRequest, batch_outcomes: Sequence[BatchOutcome]) -> AggregateOutcome:
    """Union the batch outcomes and derive unprocessed ids and overall status.

    Ids are unprocessed when no batch recorded an outcome for them: the
    remote declined them, or their batch was never attempted.
    """
    outcomes: dict[str, OperationOutcome] = {}
    for batch_outcome in batch_outcomes:
        for op_id in request.ids:
            outcome = batch_outcome.outcome(op_id)
            if outcome is not None:
                outcomes[op_id] = outcome

    unprocessed = tuple(op_id for op_id in request.ids if op_id not in outcomes)
    fully_successful = all(batch_outcome.status == STATUS_OK for batch_outcome in batch_outcomes)
    status = STATUS_OK if fully_successful and not unprocessed else STATUS_MULTI_STATUS
    return AggregateOutcome(status=status, outcomes=outcomes, unprocessed=unprocessed)


class Reconciler:
    """Executes BatchRequests through a BatchExecutor.

    Example:
        reconciler = Reconciler(executor)
        outcome = reconciler.execute(authorisation, BatchRequest(operations, FailPolicy.CONTINUE))
        for op_id in outcome.failed_ids:
            ...
    """

    def __init__(self, executor: BatchExecutor) -> None:
        self._executor = executor

    def execute(self, authorisation: Authorisation, request: BatchRequest) -> AggregateOutcome:
        """Execute all operations of the request.

        Returns:
            The aggregate outcome. With one operation this is the direct
            call's outcome; with one batch it is that batch's outcome as
            the container reported it.

        Raises:
            ApiClientError: If the only operation, or the first batch,
                failed without a usable result.
        """
        if len(request) == 0:
            return AggregateOutcome.empty()
        if len(request) == 1:
            return self._executor.dispatch_single(authorisation, request.operations[0])

        batches = split_operations(request.operations)
        log = logger.bind(account=authorisation.account.code, operations=len(request), batches=len(batches))
        completed: list[BatchOutcome] = []

        for index, batch in enumerate(batches):
            log.debug("batch_dispatched", batch_index=index, size=len(batch))
            attempt = self._executor.attempt_batch(authorisation, batch, request.fail_policy, request.execution_hint)

            if attempt.error is not None:
                if index == 0:
                    raise attempt.error
                log.warning(
                    "batch_aborted",
                    batch_index=index,
                    error_type=type(attempt.error).__name__,
                    error=str(attempt.error),
                    skipped_batches=len(batches) - index,
                )
                break

            assert attempt.outcome is not None
            completed.append(attempt.outcome)
            if attempt.outcome.status != STATUS_OK and request.fail_policy is FailPolicy.STOP:
                if index < len(batches) - 1:
                    log.info("batch_policy_stop", batch_index=index, status=attempt.outcome.status)
                break

        if len(batches) == 1 and len(completed) == 1:
            return completed[0]
        return merge_outcomes(request, completed)
