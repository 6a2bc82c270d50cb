# src/ledgerlink/contracts/account.py
"""Account identity, credentials and per-call authorisation.

Every call carries an Authorisation: the account it is scoped to and the
headers that prove the caller may act on it. Three kinds exist:

- LegacyAuthorisation: a user auth token in x-auth-token.
- PrivateAppAuthorisation: an app installed on a single account.
- PublicAppAuthorisation: an app published by a developer, usable on any
  account that installed it.

App authorisations carry either an account token (system calls) or a
staff token (calls made on behalf of a user), never both.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Protocol, runtime_checkable

AUTH_TOKEN_HEADER = "x-auth-token"
APP_HEADER = "x-app-ref"
DEV_HEADER = "x-dev-ref"
ACCOUNT_TOKEN_HEADER = "x-account-token"
STAFF_TOKEN_HEADER = "x-staff-token"

# Raw account tokens issued to public apps; these are signed before use
_UNSIGNED_ACCOUNT_TOKEN = re.compile(r"[A-Fa-f0-9]{8}-[A-Fa-f0-9]{4}-[A-Fa-f0-9]{4}-[A-Fa-f0-9]{4}-[A-Fa-f0-9]{12}")


def _require(value: str | None, message: str) -> str:
    if value is None or not value.strip():
        raise ValueError(message)
    return value


@dataclass(frozen=True, slots=True)
class Datacenter:
    """A regional deployment of the remote API.

    Attributes:
        name: Short identifier, e.g. "EU1"
        host: Base URL including scheme, without a trailing slash
    """

    name: str
    host: str

    def __post_init__(self) -> None:
        _require(self.name, "Datacenter name must be a non-empty string")
        _require(self.host, "Datacenter host must be a non-empty string")
        object.__setattr__(self, "host", self.host.rstrip("/"))


@dataclass(frozen=True, slots=True)
class Account:
    """An account on a datacenter. All service calls are scoped to one."""

    datacenter: Datacenter
    code: str

    def __post_init__(self) -> None:
        _require(self.code, "An account code must be provided")

    @property
    def host(self) -> str:
        return self.datacenter.host


@dataclass(frozen=True, slots=True)
class UserCredentials:
    """Email and password used to obtain a staff auth token.

    Values are sent exactly as given; only blank values are rejected.
    """

    email: str
    password: str = field(repr=False)

    def __post_init__(self) -> None:
        _require(self.email, "An email address must be supplied")
        _require(self.password, "A password must be supplied")

    def to_wire(self) -> dict[str, dict[str, str]]:
        """Body of the authentication request."""
        return {"apiAccountCredentials": {"emailAddress": self.email, "password": self.password}}


@runtime_checkable
class Authorisation(Protocol):
    """What a call needs to be authorised: its account and auth headers."""

    @property
    def account(self) -> Account: ...

    @property
    def headers(self) -> Mapping[str, str]: ...


def _headers(values: Mapping[str, str | None]) -> Mapping[str, str]:
    return MappingProxyType({name: value for name, value in values.items() if value is not None})


@dataclass(frozen=True, slots=True)
class LegacyAuthorisation:
    """An account paired with a user auth token."""

    account: Account
    token: str = field(repr=False)

    def __post_init__(self) -> None:
        _require(self.token, "Auth token is required")

    @property
    def headers(self) -> Mapping[str, str]:
        return MappingProxyType({AUTH_TOKEN_HEADER: self.token})


@dataclass(frozen=True, slots=True)
class PrivateAppIdentity:
    """A private app, installed on exactly one account."""

    account: Account
    app_reference: str

    def __post_init__(self) -> None:
        _require(self.app_reference, "App reference must be supplied")

    @property
    def headers(self) -> Mapping[str, str]:
        """Identification headers, also sent when fetching a staff token."""
        return MappingProxyType({APP_HEADER: self.app_reference})

    def staff_authorisation(self, account: Account, staff_token: str) -> PrivateAppAuthorisation:
        if account != self.account:
            raise ValueError(f"App is installed on account {self.account.code!r}, not {account.code!r}")
        return PrivateAppAuthorisation.staff(self, staff_token)


@dataclass(frozen=True, slots=True)
class PublicAppIdentity:
    """A developer's public app.

    Attributes:
        developer_reference: Developer identifier
        app_reference: App identifier, unique per developer
        developer_secret: Key used to sign raw account tokens (optional)
    """

    developer_reference: str
    app_reference: str
    developer_secret: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        _require(self.developer_reference, "Developer reference must be supplied")
        _require(self.app_reference, "App reference must be supplied")

    @property
    def headers(self) -> Mapping[str, str]:
        return MappingProxyType({DEV_HEADER: self.developer_reference, APP_HEADER: self.app_reference})

    def staff_authorisation(self, account: Account, staff_token: str) -> PublicAppAuthorisation:
        return PublicAppAuthorisation.staff(self, account, staff_token)

    def sign(self, account_token: str) -> str:
        """Base64 HMAC-SHA256 of the token keyed with the developer secret."""
        if not self.developer_secret or not self.developer_secret.strip():
            raise ValueError("Cannot sign account token without developer secret")
        digest = hmac.new(self.developer_secret.encode(), account_token.encode(), hashlib.sha256).digest()
        return base64.b64encode(digest).decode("ascii")


@dataclass(frozen=True, slots=True)
class PrivateAppAuthorisation:
    """Calls made by a private app. Build with system() or staff()."""

    identity: PrivateAppIdentity
    account_token: str | None = field(default=None, repr=False)
    staff_token: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if (self.account_token is None) == (self.staff_token is None):
            raise ValueError("Exactly one of account_token and staff_token is required")

    @classmethod
    def system(cls, identity: PrivateAppIdentity, account_token: str) -> PrivateAppAuthorisation:
        return cls(identity, account_token=_require(account_token, "Account token is required"))

    @classmethod
    def staff(cls, identity: PrivateAppIdentity, staff_token: str) -> PrivateAppAuthorisation:
        return cls(identity, staff_token=_require(staff_token, "Staff token is required"))

    @property
    def account(self) -> Account:
        return self.identity.account

    @property
    def headers(self) -> Mapping[str, str]:
        return _headers(
            {
                APP_HEADER: self.identity.app_reference,
                ACCOUNT_TOKEN_HEADER: self.account_token,
                STAFF_TOKEN_HEADER: self.staff_token,
            }
        )


@dataclass(frozen=True, slots=True)
class PublicAppAuthorisation:
    """Calls made by a public app on one of its installing accounts."""

    identity: PublicAppIdentity
    account: Account
    account_token: str | None = field(default=None, repr=False)
    staff_token: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if (self.account_token is None) == (self.staff_token is None):
            raise ValueError("Exactly one of account_token and staff_token is required")

    @classmethod
    def system(cls, identity: PublicAppIdentity, account: Account, account_token: str) -> PublicAppAuthorisation:
        """Authorise system calls; a raw (UUID) account token is signed first.

        Raises:
            ValueError: If the token is blank, or is raw and the identity
                has no developer secret.
        """
        _require(account_token, "Account token is required")
        if _UNSIGNED_ACCOUNT_TOKEN.fullmatch(account_token):
            account_token = identity.sign(account_token)
        return cls(identity, account, account_token=account_token)

    @classmethod
    def staff(cls, identity: PublicAppIdentity, account: Account, staff_token: str) -> PublicAppAuthorisation:
        return cls(identity, account, staff_token=_require(staff_token, "Staff token is required"))

    @property
    def headers(self) -> Mapping[str, str]:
        return _headers(
            {
                DEV_HEADER: self.identity.developer_reference,
                APP_HEADER: self.identity.app_reference,
                ACCOUNT_TOKEN_HEADER: self.account_token,
                STAFF_TOKEN_HEADER: self.staff_token,
            }
        )


AppIdentity = PrivateAppIdentity | PublicAppIdentity
