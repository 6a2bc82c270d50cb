# src/ledgerlink/contracts/outcomes.py
"""Result types for single and multi-operation submissions.

An OperationOutcome is recorded for every operation that was attempted,
successful or not. Operations that were never attempted (or that the
remote declined to process) are listed as unprocessed instead. No id
appears in both places.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ledgerlink.contracts.errors import ApiClientError, ServiceError, ServiceErrorDetail

STATUS_OK = 200
STATUS_MULTI_STATUS = 207

# Container statuses that carry per-item results rather than aborting the call
NON_ABORTING_STATUSES: frozenset[int] = frozenset({STATUS_OK, STATUS_MULTI_STATUS})


@dataclass(frozen=True, slots=True)
class OperationOutcome:
    """Result of one attempted operation.

    Attributes:
        id: Correlation label of the operation
        status: HTTP status reported for the operation
        value: Parsed result on success (None for void results)
        error: Failure recorded for the operation, None on success
    """

    id: str
    status: int
    value: Any = None
    error: ApiClientError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def service_errors(self) -> tuple[ServiceErrorDetail, ...]:
        """Remote error details, empty unless the failure was a ServiceError."""
        if isinstance(self.error, ServiceError):
            return self.error.errors
        return ()

    def result(self) -> Any:
        """Return the parsed value, raising the recorded error if the operation failed."""
        if self.error is not None:
            raise self.error
        return self.value


@dataclass(frozen=True, slots=True)
class BatchOutcome:
    """Result of one container call, or the merged result of a whole submission.

    Attributes:
        status: 200 when everything succeeded and nothing is unprocessed,
            207 otherwise
        outcomes: Id to outcome, one entry per attempted operation
        unprocessed: Ids that were not attempted, in submission order
    """

    status: int
    outcomes: Mapping[str, OperationOutcome] = field(default_factory=dict)
    unprocessed: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "outcomes", MappingProxyType(dict(self.outcomes)))
        object.__setattr__(self, "unprocessed", tuple(self.unprocessed))

    @classmethod
    def empty(cls) -> BatchOutcome:
        """Successful outcome of a submission with no operations."""
        return cls(status=STATUS_OK)

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_OK

    @property
    def failed_ids(self) -> tuple[str, ...]:
        return tuple(op_id for op_id, outcome in self.outcomes.items() if not outcome.succeeded)

    def outcome(self, operation_id: str) -> OperationOutcome | None:
        return self.outcomes.get(operation_id)

    def covers(self, ids: Iterable[str]) -> bool:
        """True if every id is either an outcome or listed as unprocessed."""
        unprocessed = set(self.unprocessed)
        return all(op_id in self.outcomes or op_id in unprocessed for op_id in ids)


# The value returned to callers of a multi-operation submission. Single-batch
# submissions return the batch outcome itself, so the two share one type.
AggregateOutcome = BatchOutcome


@dataclass(frozen=True, slots=True)
class BatchAttempt:
    """Tagged result of dispatching one batch inside the reconciliation loop.

    Exactly one of ``outcome`` and ``error`` is set. A completed attempt may
    still contain failed operations; an aborted attempt means the container
    call itself could not be completed.
    """

    outcome: BatchOutcome | None = None
    error: ApiClientError | None = None

    def __post_init__(self) -> None:
        if (self.outcome is None) == (self.error is None):
            raise ValueError("BatchAttempt requires exactly one of outcome or error")

    @classmethod
    def completed(cls, outcome: BatchOutcome) -> BatchAttempt:
        return cls(outcome=outcome)

    @classmethod
    def aborted(cls, error: ApiClientError) -> BatchAttempt:
        return cls(error=error)

    @property
    def is_aborted(self) -> bool:
        return self.error is not None
