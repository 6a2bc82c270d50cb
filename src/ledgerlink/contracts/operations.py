# src/ledgerlink/contracts/operations.py
"""Descriptions of the calls a caller can submit.

Operations are immutable value objects. They carry everything needed to
shape a request (target, payload, expected result) but no transport or
authentication state, so one operation can be reissued after a session
reauthenticates.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ledgerlink.contracts.enums import WRITE_METHODS, ExecutionHint, FailPolicy, HttpMethod

_SERVICE_PATTERN = re.compile(r"^[a-zA-Z0-9_\-]+$")


def _validate_service(service: str) -> None:
    if not service or not service.strip():
        raise ValueError("Service must be provided")
    if not _SERVICE_PATTERN.match(service):
        raise ValueError(f"Service must contain alphanumeric characters, hyphen and underscore only, got {service!r}")


def _freeze_params(params: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(params or {}))


def generate_operation_id() -> str:
    """Generate a correlation label for an operation that was not given one."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ServiceOperation:
    """Common target fields shared by every operation kind.

    Attributes:
        service: Remote service name, e.g. "order-service"
        path: Resource path within the service; a leading "/" is ignored
        method: HTTP method
        response_type: Expected result shape (anything a pydantic
            TypeAdapter accepts), or None when no result is expected
        params: Query string parameters
    """

    service: str
    path: str
    method: HttpMethod = HttpMethod.GET
    response_type: Any = None
    params: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _validate_service(self.service)
        object.__setattr__(self, "method", HttpMethod(self.method))
        object.__setattr__(self, "params", _freeze_params(self.params))

    @property
    def relative_path(self) -> str:
        return self.path.lstrip("/")


@dataclass(frozen=True)
class ReadOperation(ServiceOperation):
    """A single GET returning one resource."""

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.method != HttpMethod.GET:
            raise ValueError(f"Read operations must use GET, got {self.method}")


@dataclass(frozen=True)
class SearchOperation(ServiceOperation):
    """A GET against a search endpoint; the result is a SearchResults envelope."""

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.method != HttpMethod.GET:
            raise ValueError(f"Search operations must use GET, got {self.method}")


@dataclass(frozen=True)
class WriteOperation(ServiceOperation):
    """A create, update or delete call.

    Attributes:
        payload: Request entity; encoded to JSON by the transport layer
        id: Correlation label, unique within one submission
    """

    method: HttpMethod = HttpMethod.POST
    payload: Any = None
    id: str = field(default_factory=generate_operation_id)

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.method not in WRITE_METHODS:
            raise ValueError(f"Write operations must use one of {sorted(WRITE_METHODS)}, got {self.method}")
        if not self.id:
            raise ValueError("Write operation id must be a non-empty string")


@dataclass(frozen=True)
class BatchRequest:
    """An ordered submission of write operations executed as one unit.

    Attributes:
        operations: Operations in execution order
        fail_policy: Whether to stop after a partially failed batch
        execution_hint: Processing mode passed to the remote container

    Raises:
        ValueError: On PARALLEL with STOP, or on duplicate operation ids
    """

    operations: Sequence[WriteOperation]
    fail_policy: FailPolicy = FailPolicy.STOP
    execution_hint: ExecutionHint = ExecutionHint.SEQUENTIAL

    def __post_init__(self) -> None:
        operations = tuple(self.operations)
        object.__setattr__(self, "fail_policy", FailPolicy(self.fail_policy))
        object.__setattr__(self, "execution_hint", ExecutionHint(self.execution_hint))
        if self.execution_hint is ExecutionHint.PARALLEL and self.fail_policy is FailPolicy.STOP:
            raise ValueError("Execution hint PARALLEL cannot be used with fail policy STOP")
        seen: set[str] = set()
        for operation in operations:
            if operation.id in seen:
                raise ValueError(f"Duplicate operation id in submission: {operation.id!r}")
            seen.add(operation.id)
        object.__setattr__(self, "operations", operations)

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(operation.id for operation in self.operations)

    def __len__(self) -> int:
        return len(self.operations)
