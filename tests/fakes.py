# tests/fakes.py
"""In-memory collaborators and response builders for client tests."""

from __future__ import annotations

import json
import threading
from collections import deque
from collections.abc import Callable, Iterable
from typing import Any

from ledgerlink.contracts.account import Account
from ledgerlink.contracts.operations import WriteOperation
from ledgerlink.transport.messages import HttpRequest, HttpResponse

JSON_HEADERS = {"Content-Type": "application/json;charset=UTF-8"}


def envelope(response: Any = None, errors: list[dict[str, Any]] | None = None, reference: Any = None) -> dict[str, Any]:
    document: dict[str, Any] = {}
    if response is not None:
        document["response"] = response
    if errors is not None:
        document["errors"] = errors
    if reference is not None:
        document["reference"] = reference
    return document


def json_response(
    status: int = 200,
    response: Any = None,
    *,
    errors: list[dict[str, Any]] | None = None,
    reference: Any = None,
    headers: dict[str, str] | None = None,
) -> HttpResponse:
    """A JSON envelope response."""
    body = json.dumps(envelope(response, errors, reference))
    return HttpResponse(status=status, body=body, headers={**JSON_HEADERS, **(headers or {})})


def text_response(status: int, body: str | None = None) -> HttpResponse:
    return HttpResponse(status=status, body=body, headers={"Content-Type": "text/plain"})


def processed(label: str, status: int = 200, response: Any = None, errors: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    """One processedMessages entry; the item body is an embedded JSON envelope string."""
    return {
        "label": label,
        "statusCode": status,
        "body": {"content": json.dumps(envelope(response, errors))},
    }


def container_response(
    items: Iterable[dict[str, Any]],
    unprocessed: Iterable[str] = (),
    status: int | None = None,
) -> HttpResponse:
    """A container call response. Status defaults to 200 when every item is 2xx, else 207."""
    item_list = list(items)
    unprocessed_list = list(unprocessed)
    if status is None:
        status = 200 if all(200 <= item["statusCode"] < 300 for item in item_list) and not unprocessed_list else 207
    return json_response(
        status,
        {"processedMessages": item_list, "unprocessedMessages": unprocessed_list},
    )


def all_ok_container(operations: Iterable[WriteOperation], result: Any = 1) -> HttpResponse:
    return container_response([processed(op.id, 200, result) for op in operations])


class FakeTransport:
    """Transport answering from a queue of responses/exceptions, or a handler.

    Thread-safe; every request is recorded in order of arrival.
    """

    def __init__(
        self,
        responses: Iterable[HttpResponse | BaseException] = (),
        handler: Callable[[HttpRequest], HttpResponse] | None = None,
    ) -> None:
        self.requests: list[HttpRequest] = []
        self.closed = False
        self._queue: deque[HttpResponse | BaseException] = deque(responses)
        self._handler = handler
        self._lock = threading.Lock()

    def queue(self, *items: HttpResponse | BaseException) -> None:
        with self._lock:
            self._queue.extend(items)

    def set_handler(self, handler: Callable[[HttpRequest], HttpResponse]) -> None:
        self._handler = handler

    def send(self, request: HttpRequest) -> HttpResponse:
        with self._lock:
            self.requests.append(request)
            handler = self._handler
            item = None if handler is not None else self._queue.popleft()
        if handler is not None:
            return handler(request)
        if isinstance(item, BaseException):
            raise item
        assert item is not None
        return item

    def close(self) -> None:
        self.closed = True

    def requests_to(self, suffix: str) -> list[HttpRequest]:
        return [request for request in self.requests if request.url.endswith(suffix)]


class RecordingRateLimiter:
    """RateLimiter that records every hook invocation."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.closed = False
        self._lock = threading.Lock()

    def before_call(self, account: Account) -> None:
        with self._lock:
            self.calls.append(("before_call", account.code))

    def after_call(self, account: Account, requests_remaining: int, next_throttle_period_ms: int) -> None:
        with self._lock:
            self.calls.append(("after_call", account.code, requests_remaining, next_throttle_period_ms))

    def on_capacity_exceeded(self, account: Account) -> None:
        with self._lock:
            self.calls.append(("on_capacity_exceeded", account.code))

    def close(self) -> None:
        self.closed = True

    def hook_names(self) -> list[str]:
        return [call[0] for call in self.calls]


def write_ops(count: int, service: str = "order-service", prefix: str = "op") -> list[WriteOperation]:
    return [WriteOperation(service=service, path=f"order/{i}", payload={"n": i}, id=f"{prefix}{i}") for i in range(count)]
