# tests/unit/test_client.py
"""Tests for the stateless ApiClient surface."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from ledgerlink.client import ApiClient
from ledgerlink.contracts.account import (
    Account,
    Authorisation,
    Datacenter,
    PrivateAppIdentity,
    PublicAppIdentity,
    UserCredentials,
)
from ledgerlink.contracts.enums import HttpMethod
from ledgerlink.contracts.errors import AuthenticationError, ServiceError
from ledgerlink.contracts.operations import BatchRequest, ReadOperation, SearchOperation, WriteOperation
from ledgerlink.core.config import ClientSettings, RateLimitSettings
from ledgerlink.core.rate_limit import ConstantWaitRateLimiter, NoOpRateLimiter
from tests.fakes import FakeTransport, RecordingRateLimiter, json_response, text_response, write_ops


class Order(BaseModel):
    id: int
    reference: str


class TestFetchAuthToken:
    """The authentication call."""

    def test_returns_token(
        self, client: ApiClient, transport: FakeTransport, account: Account, credentials: UserCredentials
    ) -> None:
        """The token is the envelope's string response."""
        transport.queue(json_response(200, "tok-123"))

        assert client.fetch_auth_token(account, credentials) == "tok-123"
        assert transport.requests[0].method is HttpMethod.POST

    def test_rejected_credentials_raise_service_error(
        self, client: ApiClient, transport: FakeTransport, account: Account, credentials: UserCredentials
    ) -> None:
        """Bad credentials surface the remote's error details."""
        transport.queue(json_response(401, errors=[{"code": "AUTH-001", "message": "Bad credentials"}]))

        with pytest.raises(ServiceError) as exc_info:
            client.fetch_auth_token(account, credentials)

        assert exc_info.value.errors[0].code == "AUTH-001"


class TestFetchStaffToken:
    """Authentication on behalf of an app."""

    def test_private_app_uses_its_own_account(
        self, client: ApiClient, transport: FakeTransport, account: Account, credentials: UserCredentials
    ) -> None:
        """The app reference header is sent with the credentials to the app's account."""
        transport.queue(json_response(200, "staff-1"))
        app = PrivateAppIdentity(account=account, app_reference="acme-sync")

        assert client.fetch_staff_token(app, credentials) == "staff-1"
        request = transport.requests[0]
        assert request.url == "https://api.example.test/acme/authorise"
        assert request.headers == {"x-app-ref": "acme-sync"}
        assert request.json == credentials.to_wire()

    def test_private_app_rejects_a_foreign_account(
        self, client: ApiClient, transport: FakeTransport, account: Account, credentials: UserCredentials
    ) -> None:
        app = PrivateAppIdentity(account=account, app_reference="acme-sync")
        other = Account(datacenter=Datacenter(name="US1", host="https://us.example.test"), code="globex")

        with pytest.raises(ValueError, match="installed on account"):
            client.fetch_staff_token(app, credentials, other)
        assert transport.requests == []

    def test_public_app_sends_developer_and_app_references(
        self, client: ApiClient, transport: FakeTransport, account: Account, credentials: UserCredentials
    ) -> None:
        transport.queue(json_response(200, "staff-2"))
        app = PublicAppIdentity(developer_reference="dev-co", app_reference="acme-sync")

        assert client.fetch_staff_token(app, credentials, account) == "staff-2"
        assert transport.requests[0].headers == {"x-dev-ref": "dev-co", "x-app-ref": "acme-sync"}

    def test_public_app_requires_an_account(
        self, client: ApiClient, transport: FakeTransport, credentials: UserCredentials
    ) -> None:
        app = PublicAppIdentity(developer_reference="dev-co", app_reference="acme-sync")

        with pytest.raises(ValueError, match="account is required"):
            client.fetch_staff_token(app, credentials)
        assert transport.requests == []

    def test_rejected_credentials_raise_service_error(
        self, client: ApiClient, transport: FakeTransport, account: Account, credentials: UserCredentials
    ) -> None:
        transport.queue(json_response(401, errors=[{"code": "AUTH-001", "message": "Bad credentials"}]))
        app = PrivateAppIdentity(account=account, app_reference="acme-sync")

        with pytest.raises(ServiceError):
            client.fetch_staff_token(app, credentials)


class TestCalls:
    """Read, search, write and raw calls."""

    def test_get_returns_typed_result(
        self, client: ApiClient, transport: FakeTransport, authorisation: Authorisation
    ) -> None:
        """get validates the result against the operation's type."""
        transport.queue(json_response(200, {"id": 7, "reference": "A-7"}))

        order = client.get(authorisation, ReadOperation(service="order-service", path="order/7", response_type=Order))

        assert order == Order(id=7, reference="A-7")

    def test_get_propagates_authentication_error(
        self, client: ApiClient, transport: FakeTransport, authorisation: Authorisation
    ) -> None:
        """A rejected token is raised for the caller (or session) to handle."""
        transport.queue(json_response(401, errors=[{"code": "GWY-001", "message": "Token expired"}]))

        with pytest.raises(AuthenticationError):
            client.get(authorisation, ReadOperation(service="order-service", path="order/7", response_type=Order))

    def test_search_merges_reference_data(
        self, client: ApiClient, transport: FakeTransport, authorisation: Authorisation
    ) -> None:
        """Reference data sent beside the response ends up on the results."""
        transport.queue(
            json_response(
                200,
                {"metadata": {"columns": [{"name": "id"}], "count": 1}, "results": [[1]]},
                reference={"currencies": {"1": "EUR"}},
            )
        )

        results = client.search(authorisation, SearchOperation(service="order-service", path="order/search"))

        assert results.rows_as_dicts() == [{"id": 1}]
        assert results.reference == {"currencies": {"1": "EUR"}}

    def test_search_keeps_inline_reference(
        self, client: ApiClient, transport: FakeTransport, authorisation: Authorisation
    ) -> None:
        """Reference data inside the response takes precedence."""
        transport.queue(
            json_response(200, {"results": [], "reference": {"inline": True}}, reference={"outer": True})
        )

        results = client.search(authorisation, SearchOperation(service="order-service", path="order/search"))

        assert results.reference == {"inline": True}

    def test_execute_sends_payload(
        self, client: ApiClient, transport: FakeTransport, authorisation: Authorisation
    ) -> None:
        """execute returns the write's parsed result."""
        transport.queue(json_response(201, 99))

        result = client.execute(
            authorisation,
            WriteOperation(service="order-service", path="order", payload={"reference": "A-8"}, response_type=int),
        )

        assert result == 99
        assert transport.requests[0].json == {"reference": "A-8"}

    def test_send_returns_raw_response(
        self,
        client: ApiClient,
        transport: FakeTransport,
        rate_limiter: RecordingRateLimiter,
        authorisation: Authorisation,
    ) -> None:
        """send skips parsing but is still rate limited."""
        transport.queue(text_response(418, "teapot"))

        response = client.send(authorisation, ReadOperation(service="order-service", path="brew"))

        assert response.status == 418
        assert response.body == "teapot"
        assert rate_limiter.hook_names() == ["before_call"]

    def test_execute_batch_delegates(
        self, client: ApiClient, transport: FakeTransport, authorisation: Authorisation
    ) -> None:
        """execute_batch runs the reconciler."""
        transport.queue(json_response(200, None))

        outcome = client.execute_batch(authorisation, BatchRequest(write_ops(1)))

        assert outcome.status == 200
        assert "op0" in outcome.outcomes


class TestLifecycle:
    """Construction and resource handling."""

    def test_defaults_to_noop_rate_limiter(self, transport: FakeTransport) -> None:
        """Pacing is opt-in."""
        client = ApiClient(transport=transport)

        assert isinstance(client._gateway.rate_limiter, NoOpRateLimiter)

    def test_from_settings_builds_configured_limiter(self) -> None:
        """Enabled rate limit settings give a constant-wait limiter."""
        settings = ClientSettings(rate_limit=RateLimitSettings(enabled=True, requests_per_minute=100))

        with ApiClient.from_settings(settings) as client:
            assert isinstance(client._gateway.rate_limiter, ConstantWaitRateLimiter)
            assert client.settings is settings

    def test_context_manager_closes_collaborators(
        self, transport: FakeTransport, rate_limiter: RecordingRateLimiter
    ) -> None:
        """Leaving the with block closes transport and limiter."""
        with ApiClient(transport=transport, rate_limiter=rate_limiter):
            pass

        assert transport.closed
        assert rate_limiter.closed

    def test_create_session_applies_settings(self, transport: FakeTransport, account: Account) -> None:
        """Session timings come from the client's settings."""
        settings = ClientSettings(expired_token_strategy="fail", auth_retry_interval_seconds=0)  # type: ignore[arg-type]
        client = ApiClient(transport=transport, settings=settings)
        transport.queue(json_response(401, errors=[{"code": "A", "message": "no"}]))
        transport.queue(json_response(401, errors=[{"code": "A", "message": "no"}]))

        session = client.create_session(account, credentials=UserCredentials(email="a@b.test", password="pw"))

        # A zero retry interval lets the second call authenticate again
        for _ in range(2):
            with pytest.raises(ServiceError):
                session.get(ReadOperation(service="order-service", path="order/1"))
        assert len(transport.requests) == 2
        assert session.expired_token_strategy.value == "fail"
