# src/ledgerlink/client.py
"""Stateless API client.

ApiClient issues calls on behalf of an explicit Authorisation; it holds no
token of its own and can be shared across threads and accounts. Sessions
(see ledgerlink.session) add token caching and reauthentication on top.
"""

from __future__ import annotations

from types import TracebackType
from typing import TYPE_CHECKING, Any

from ledgerlink.batching.executor import BatchExecutor
from ledgerlink.batching.reconciler import Reconciler
from ledgerlink.contracts.account import (
    Account,
    AppIdentity,
    Authorisation,
    PrivateAppIdentity,
    UserCredentials,
)
from ledgerlink.contracts.operations import BatchRequest, ReadOperation, SearchOperation, ServiceOperation, WriteOperation
from ledgerlink.contracts.outcomes import AggregateOutcome
from ledgerlink.contracts.search import SearchResults
from ledgerlink.core.config import ClientSettings
from ledgerlink.core.rate_limit import NoOpRateLimiter, RateLimiter, build_rate_limiter
from ledgerlink.transport.gateway import ApiGateway
from ledgerlink.transport.httpx_transport import HttpxTransport
from ledgerlink.transport.messages import HttpResponse, Transport
from ledgerlink.transport.parsing import ResponseParser

if TYPE_CHECKING:
    from ledgerlink.core.clock import Clock
    from ledgerlink.session import ApiSession


class ApiClient:
    """Executes read, search, write and batched calls.

    Example:
        with ApiClient.from_settings(load_settings(Path("ledgerlink.yaml"))) as client:
            token = client.fetch_auth_token(account, credentials)
            auth = LegacyAuthorisation(account, token)
            order = client.get(auth, ReadOperation("order-service", "order/1", response_type=Order))
    """

    def __init__(
        self,
        transport: Transport | None = None,
        rate_limiter: RateLimiter | None = None,
        parser: ResponseParser | None = None,
        *,
        settings: ClientSettings | None = None,
    ) -> None:
        """Initialize client.

        Args:
            transport: Sends physical calls (default: HttpxTransport from settings)
            rate_limiter: Paces calls (default: NoOpRateLimiter)
            parser: Response parser (default: ResponseParser)
            settings: Defaults for the transport and for sessions
        """
        self._settings = settings or ClientSettings()
        self._gateway = ApiGateway(
            transport or HttpxTransport.from_settings(self._settings),
            rate_limiter or NoOpRateLimiter(),
        )
        self._parser = parser or ResponseParser()
        self._executor = BatchExecutor(self._gateway, self._parser)
        self._reconciler = Reconciler(self._executor)

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> ApiClient:
        """Build a client with the httpx transport and the configured rate limiter."""
        return cls(
            transport=HttpxTransport.from_settings(settings),
            rate_limiter=build_rate_limiter(settings.rate_limit),
            settings=settings,
        )

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    def fetch_auth_token(self, account: Account, credentials: UserCredentials) -> str:
        """Authenticate a user and return their auth token.

        Raises:
            ServiceError: If the credentials were rejected
            TransportError: If no response was obtained
        """
        response = self._gateway.authenticate(account, credentials)
        token: str = self._parser.parse_response(response, str, authentication=True)
        return token

    def fetch_staff_token(
        self,
        app: AppIdentity,
        credentials: UserCredentials,
        account: Account | None = None,
    ) -> str:
        """Authenticate a user on behalf of an app and return a staff token.

        A private app is bound to its own account; a public app needs the
        installing account.

        Raises:
            ValueError: If a public app is given no account, or a private
                app is given someone else's
            ServiceError: If the credentials were rejected
            TransportError: If no response was obtained
        """
        if isinstance(app, PrivateAppIdentity):
            if account is not None and account != app.account:
                raise ValueError(f"App is installed on account {app.account.code!r}, not {account.code!r}")
            account = app.account
        elif account is None:
            raise ValueError("An account is required to fetch a staff token for a public app")
        response = self._gateway.authenticate(account, credentials, headers=app.headers)
        token: str = self._parser.parse_response(response, str, authentication=True)
        return token

    def get(self, authorisation: Authorisation, operation: ReadOperation) -> Any:
        """Fetch one resource, validated against operation.response_type."""
        response = self._gateway.send_operation(authorisation, operation)
        return self._parser.parse_response(response, operation.response_type)

    def search(self, authorisation: Authorisation, operation: SearchOperation) -> SearchResults:
        """Run a search; rows are returned as the remote sent them."""
        response = self._gateway.send_operation(authorisation, operation)
        envelope = self._parser.parse_response_envelope(response, SearchResults)
        results: SearchResults = self._parser.parse_value(envelope, SearchResults)
        # Reference data travels beside the response, not inside it
        if envelope is not None and envelope.reference and not results.reference:
            results = results.model_copy(update={"reference": envelope.reference})
        return results

    def execute(self, authorisation: Authorisation, operation: WriteOperation) -> Any:
        """Send one write and return its parsed result."""
        response = self._gateway.send_operation(authorisation, operation)
        return self._parser.parse_response(response, operation.response_type)

    def execute_batch(self, authorisation: Authorisation, request: BatchRequest) -> AggregateOutcome:
        """Execute a multi-operation submission (see batching.reconciler)."""
        return self._reconciler.execute(authorisation, request)

    def send(self, authorisation: Authorisation, operation: ServiceOperation) -> HttpResponse:
        """Send an operation and return the raw response without parsing.

        Rate limiting and 503 handling still apply.
        """
        return self._gateway.send_operation(authorisation, operation)

    def create_session(
        self,
        account: Account,
        *,
        credentials: UserCredentials | None = None,
        token: str | None = None,
        app: AppIdentity | None = None,
        clock: Clock | None = None,
    ) -> ApiSession:
        """Create a session bound to this client with the configured auth timings."""
        from ledgerlink.session import ApiSession

        return ApiSession(
            self,
            account,
            credentials=credentials,
            token=token,
            app=app,
            expired_token_strategy=self._settings.expired_token_strategy,
            auth_lock_wait=self._settings.auth_lock_wait_seconds,
            auth_retry_interval=self._settings.auth_retry_interval_seconds,
            clock=clock,
        )

    def close(self) -> None:
        """Release the transport and the rate limiter."""
        self._gateway.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
