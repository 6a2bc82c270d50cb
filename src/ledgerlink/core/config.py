# src/ledgerlink/core/config.py
"""
Configuration schema and loading for the API client.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from ledgerlink.contracts.account import Datacenter, UserCredentials
from ledgerlink.contracts.enums import ExpiredTokenStrategy

_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


class CredentialsFileError(Exception):
    """Raised when a credentials file is missing or malformed."""


class RateLimitSettings(BaseModel):
    """Configuration for client-side request pacing.

    Example YAML:
        rate_limit:
          enabled: true
          requests_per_minute: 200
          max_delay_seconds: 60
    """

    model_config = {"frozen": True}

    enabled: bool = Field(default=False, description="Pace requests per account before sending")
    requests_per_minute: int = Field(default=200, gt=0, description="Requests allowed per account per minute")
    max_delay_seconds: float = Field(default=60.0, gt=0, description="Longest a call may wait for its turn")


class LoggingSettings(BaseModel):
    """Log output configuration applied by configure_logging()."""

    model_config = {"frozen": True}

    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO", description="Root log level")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v


class ClientSettings(BaseModel):
    """Top-level client configuration.

    Example YAML:
        timeout_seconds: 30
        auth_lock_wait_seconds: 15
        auth_retry_interval_seconds: 5
        expired_token_strategy: reauthenticate
        datacenters:
          EU1: https://ws-eu1.example.com
        rate_limit:
          enabled: true
        logging:
          level: DEBUG
    """

    model_config = {"frozen": True}

    timeout_seconds: float = Field(default=30.0, gt=0, description="Read/write timeout per HTTP call")
    connect_timeout_seconds: float = Field(default=10.0, gt=0, description="Connection establishment timeout")
    max_connections: int = Field(default=20, gt=0, description="Connection pool size shared by all callers")
    user_agent: str = Field(default="ledgerlink", min_length=1, description="User-Agent header value")
    auth_lock_wait_seconds: float = Field(
        default=15.0,
        gt=0,
        description="How long a caller waits for another caller's authentication attempt",
    )
    auth_retry_interval_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Minimum gap between authentication attempts after a failure",
    )
    expired_token_strategy: ExpiredTokenStrategy = Field(
        default=ExpiredTokenStrategy.REAUTHENTICATE,
        description="Session behaviour when the remote rejects a cached token",
    )
    datacenters: dict[str, str] = Field(default_factory=dict, description="Datacenter name to base URL")
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("expired_token_strategy", mode="before")
    @classmethod
    def normalize_strategy(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.lower()
        return v

    def datacenter(self, name: str) -> Datacenter:
        """Look up a configured datacenter by name.

        Raises:
            KeyError: If no datacenter with that name is configured.
        """
        if name not in self.datacenters:
            raise KeyError(f"Unknown datacenter {name!r}; configured: {sorted(self.datacenters)}")
        return Datacenter(name=name, host=self.datacenters[name])


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values."""

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            default = match.group(2)
            if default is not None:
                return default
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lower_keys(value: Any) -> Any:
    # Nested env overrides arrive as LEDGERLINK_RATE_LIMIT__ENABLED -> {"ENABLED": ...}
    if isinstance(value, dict):
        return {k.lower() if k.isupper() else k: v for k, v in value.items()}
    return value


def load_settings(config_path: Path) -> ClientSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (LEDGERLINK_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: LEDGERLINK_RATE_LIMIT__ENABLED for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated ClientSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="LEDGERLINK",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase top-level keys; drop its own bookkeeping
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    # Datacenter names are user data and keep their case
    raw_config = {k: v if k == "datacenters" else _lower_keys(v) for k, v in raw_config.items()}
    raw_config = _expand_env_vars(raw_config)

    return ClientSettings(**raw_config)


def load_credentials(path: Path) -> UserCredentials:
    """Read API credentials from a YAML file kept outside the main config.

    Expected layout:
        email: api-user@example.com
        password: ${LEDGERLINK_PASSWORD}

    Raises:
        CredentialsFileError: If the file is missing, not valid YAML, or
            lacks either field.
    """
    if not path.exists():
        raise CredentialsFileError(f"Credentials file not found: {path}")
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise CredentialsFileError(f"Invalid YAML in credentials file: {e}") from e
    if not isinstance(loaded, dict):
        raise CredentialsFileError(f"Credentials file must contain a mapping, got {type(loaded).__name__}")
    expanded = _expand_env_vars(loaded)
    try:
        return UserCredentials(email=expanded["email"], password=expanded["password"])
    except KeyError as e:
        raise CredentialsFileError(f"Credentials file is missing {e.args[0]!r}") from e
    except ValueError as e:
        raise CredentialsFileError(str(e)) from e
