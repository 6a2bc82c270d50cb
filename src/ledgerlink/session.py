# src/ledgerlink/session.py
"""Authenticated session for one account.

ApiSession caches an auth token for every thread that shares it and
authenticates lazily:

    NO_TOKEN --(first call)--> AUTHENTICATING --(success)--> HAS_TOKEN
       ^                             |                           |
       +------(failure, backoff)-----+                           |
       +------------------(token rejected by remote)-------------+

At most one authentication call is in flight per session. Callers that
arrive while it runs wait for its result instead of starting their own.
A failed attempt opens a retry window during which callers fail fast
without touching the network. Calls made with a cached token never take
a lock, so authenticated traffic is not serialized by the session.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from ledgerlink.client import ApiClient
from ledgerlink.contracts.account import (
    Account,
    AppIdentity,
    Authorisation,
    LegacyAuthorisation,
    PrivateAppIdentity,
    UserCredentials,
)
from ledgerlink.contracts.enums import ExecutionHint, ExpiredTokenStrategy, FailPolicy
from ledgerlink.contracts.errors import (
    AuthenticationBackoffError,
    AuthenticationError,
    AuthenticationTimeoutError,
)
from ledgerlink.contracts.operations import BatchRequest, ReadOperation, SearchOperation, ServiceOperation, WriteOperation
from ledgerlink.contracts.outcomes import AggregateOutcome
from ledgerlink.contracts.search import SearchResults
from ledgerlink.core.clock import DEFAULT_CLOCK, Clock, Deadline
from ledgerlink.core.single_flight import SingleFlight, SingleFlightTimeout
from ledgerlink.transport.messages import HttpResponse

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_AUTH_LOCK_WAIT_SECONDS = 15.0
DEFAULT_AUTH_RETRY_INTERVAL_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class _AuthState:
    """Token and retry window, always replaced as a unit.

    Attributes:
        token: Cached auth token, None when not authenticated
        retry_not_before: Clock reading before which no new authentication
            attempt is made, None when the last attempt did not fail
    """

    token: str | None = None
    retry_not_before: Deadline | None = None


class ApiSession:
    """Token-caching wrapper around an ApiClient for one account.

    Example:
        session = client.create_session(account, credentials=UserCredentials(email, password))

        # Shared by worker threads; the first call authenticates
        order = session.get(ReadOperation("order-service", "order/1", response_type=Order))
        outcome = session.execute_batch(writes, fail_policy=FailPolicy.CONTINUE)
    """

    def __init__(
        self,
        client: ApiClient,
        account: Account,
        *,
        credentials: UserCredentials | None = None,
        token: str | None = None,
        app: AppIdentity | None = None,
        expired_token_strategy: ExpiredTokenStrategy = ExpiredTokenStrategy.REAUTHENTICATE,
        auth_lock_wait: float = DEFAULT_AUTH_LOCK_WAIT_SECONDS,
        auth_retry_interval: float = DEFAULT_AUTH_RETRY_INTERVAL_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        """Initialize session.

        Args:
            client: Client that issues the calls
            account: Account every call is scoped to
            credentials: Used to (re)authenticate; without them the
                supplied token is used for the session's lifetime
            token: Pre-authenticated token to start with
            app: When set, tokens are staff tokens fetched on behalf of
                this app and calls carry its identification headers
            expired_token_strategy: Whether to reauthenticate once when the
                remote rejects the token (forced to FAIL without credentials)
            auth_lock_wait: Seconds a caller waits for another caller's
                authentication attempt
            auth_retry_interval: Seconds after a failed attempt during which
                callers fail fast
            clock: Time source for the retry window

        Raises:
            ValueError: If neither credentials nor a token is supplied, or a
                duration is out of range.
        """
        if credentials is None and not token:
            raise ValueError("User credentials or an auth token must be supplied")
        if auth_lock_wait <= 0:
            raise ValueError(f"auth_lock_wait must be positive, got {auth_lock_wait}")
        if auth_retry_interval < 0:
            raise ValueError(f"auth_retry_interval must be non-negative, got {auth_retry_interval}")
        if isinstance(app, PrivateAppIdentity) and app.account != account:
            raise ValueError(f"App is installed on account {app.account.code!r}, not {account.code!r}")

        self._client = client
        self._account = account
        self._credentials = credentials
        self._app = app
        self._expired_token_strategy = (
            ExpiredTokenStrategy(expired_token_strategy) if credentials is not None else ExpiredTokenStrategy.FAIL
        )
        self._auth_lock_wait = auth_lock_wait
        self._auth_retry_interval = auth_retry_interval
        self._clock = clock or DEFAULT_CLOCK

        # Read without locking; replaced whole under _state_lock
        self._state = _AuthState(token=token or None)
        self._state_lock = threading.Lock()
        self._flight: SingleFlight[str] = SingleFlight()

    @property
    def account(self) -> Account:
        return self._account

    @property
    def client(self) -> ApiClient:
        return self._client

    @property
    def expired_token_strategy(self) -> ExpiredTokenStrategy:
        return self._expired_token_strategy

    @property
    def has_token(self) -> bool:
        return self._state.token is not None

    # -- public calls -----------------------------------------------------

    def get(self, operation: ReadOperation) -> Any:
        return self._call(lambda auth: self._client.get(auth, operation))

    def search(self, operation: SearchOperation) -> SearchResults:
        return self._call(lambda auth: self._client.search(auth, operation))

    def execute(self, operation: WriteOperation) -> Any:
        return self._call(lambda auth: self._client.execute(auth, operation))

    def send(self, operation: ServiceOperation) -> HttpResponse:
        return self._call(lambda auth: self._client.send(auth, operation))

    def execute_batch(
        self,
        request: BatchRequest | Iterable[WriteOperation],
        *,
        fail_policy: FailPolicy = FailPolicy.STOP,
        execution_hint: ExecutionHint = ExecutionHint.SEQUENTIAL,
    ) -> AggregateOutcome:
        """Execute a multi-operation submission.

        Accepts a BatchRequest, or write operations plus the policy and hint
        to build one from. A token rejection can only surface from the lone
        operation or the first batch; the whole submission is then retried
        once after reauthenticating.
        """
        if not isinstance(request, BatchRequest):
            request = BatchRequest(tuple(request), fail_policy=fail_policy, execution_hint=execution_hint)
        batch_request = request
        return self._call(lambda auth: self._client.execute_batch(auth, batch_request))

    def authenticate(self) -> str:
        """Discard any cached token and authenticate now.

        Raises:
            ValueError: If the session has no credentials
            AuthenticationBackoffError: If a recent attempt failed
            AuthenticationTimeoutError: If a concurrent attempt took too long
        """
        if self._credentials is None:
            raise ValueError("Session was created without credentials and cannot authenticate")
        current = self._state.token
        if current is not None:
            self._discard_token(current)
        return self._token()

    # -- token handling ---------------------------------------------------

    def _call(self, fn: Callable[[Authorisation], T]) -> T:
        token = self._token()
        try:
            return fn(self._authorise(token))
        except AuthenticationError as e:
            if self._expired_token_strategy is not ExpiredTokenStrategy.REAUTHENTICATE:
                raise
            logger.info("token_rejected", account=self._account.code, reason=str(e))
            self._discard_token(token)

        # Exactly one retry; anything it raises reaches the caller
        token = self._token()
        return fn(self._authorise(token))

    def _token(self) -> str:
        state = self._state
        if state.token is not None:
            return state.token
        try:
            return self._flight.run(self._authenticate_once, timeout=self._auth_lock_wait)
        except SingleFlightTimeout as e:
            logger.warning("authentication_wait_timeout", account=self._account.code, waited=self._auth_lock_wait)
            raise AuthenticationTimeoutError(self._auth_lock_wait) from e

    def _authenticate_once(self) -> str:
        """Runs as the single-flight leader only."""
        assert self._credentials is not None
        state = self._state
        if state.token is not None:
            return state.token

        window = state.retry_not_before
        if window is not None and not window.passed(self._clock):
            logger.info(
                "authentication_backoff",
                account=self._account.code,
                retry_in=round(window.remaining(self._clock), 3),
            )
            raise AuthenticationBackoffError(self._auth_retry_interval)

        logger.info("authentication_started", account=self._account.code)
        try:
            token = self._fetch_token(self._credentials)
        except Exception as e:
            self._replace_state(_AuthState(retry_not_before=Deadline.after(self._clock, self._auth_retry_interval)))
            logger.warning(
                "authentication_failed",
                account=self._account.code,
                error_type=type(e).__name__,
                error=str(e),
                retry_interval=self._auth_retry_interval,
            )
            raise

        self._replace_state(_AuthState(token=token))
        logger.info("authentication_succeeded", account=self._account.code)
        return token

    def _fetch_token(self, credentials: UserCredentials) -> str:
        if self._app is None:
            return self._client.fetch_auth_token(self._account, credentials)
        return self._client.fetch_staff_token(self._app, credentials, self._account)

    def _authorise(self, token: str) -> Authorisation:
        if self._app is None:
            return LegacyAuthorisation(self._account, token)
        return self._app.staff_authorisation(self._account, token)

    def _replace_state(self, state: _AuthState) -> None:
        with self._state_lock:
            self._state = state

    def _discard_token(self, rejected: str) -> None:
        """Clear the cached token only if it is still the rejected one."""
        with self._state_lock:
            if self._state.token == rejected:
                self._state = _AuthState()
