# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/

Network access is never needed: tests drive the client through
tests.fakes.FakeTransport, which records every request it is given and
answers from a queue or a handler function.
"""

import os

import pytest
from hypothesis import Phase, Verbosity, settings

from ledgerlink.client import ApiClient
from ledgerlink.contracts.account import Account, Authorisation, Datacenter, LegacyAuthorisation, UserCredentials
from ledgerlink.core.clock import MockClock
from ledgerlink.core.rate_limit import NoOpRateLimiter
from tests.fakes import FakeTransport, RecordingRateLimiter

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Account fixtures
# =============================================================================


@pytest.fixture
def datacenter() -> Datacenter:
    return Datacenter(name="EU1", host="https://api.example.test")


@pytest.fixture
def account(datacenter: Datacenter) -> Account:
    return Account(datacenter=datacenter, code="acme")


@pytest.fixture
def credentials() -> UserCredentials:
    return UserCredentials(email="ops@acme.test", password="hunter2")


@pytest.fixture
def authorisation(account: Account) -> Authorisation:
    return LegacyAuthorisation(account=account, token="token-1")


# =============================================================================
# Client fixtures
# =============================================================================


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def rate_limiter() -> RecordingRateLimiter:
    return RecordingRateLimiter()


@pytest.fixture
def client(transport: FakeTransport, rate_limiter: RecordingRateLimiter) -> ApiClient:
    return ApiClient(transport=transport, rate_limiter=rate_limiter)


@pytest.fixture
def quiet_client(transport: FakeTransport) -> ApiClient:
    return ApiClient(transport=transport, rate_limiter=NoOpRateLimiter())


@pytest.fixture
def clock() -> MockClock:
    return MockClock(start=1000.0)
