"""Configuration system for pushgate.

This module implements the configuration schema using Pydantic for
validation, with support for environment variable resolution and fail-fast
validation with actionable error messages. It also loads notification batch
files for the command line entry point.
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final, override

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from pushgate.core.connection import GATEWAY_PORT
from pushgate.core.coordinator import DEFAULT_GRACE_PERIOD
from pushgate.core.notification import MAX_EXPIRY, Notification, validate_token
from pushgate.utils.sanitization import REDACTED

# Matches ${VARIABLE_NAME} syntax where VARIABLE_NAME can contain letters, digits, and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")


class GatewayConfig(BaseModel):
    """Configuration for the gateway endpoint and client credentials."""

    certificate_file: Annotated[
        Path,
        Field(description="PEM file holding the client certificate and private key"),
    ]
    passphrase: Annotated[
        str | None,
        Field(description="Passphrase of the private key, if encrypted"),
    ] = None
    sandbox: Annotated[
        bool,
        Field(description="Use the sandbox gateway instead of production"),
    ] = False
    host: Annotated[
        str | None,
        Field(description="Gateway host overriding the production/sandbox default"),
    ] = None
    port: Annotated[
        int,
        Field(ge=1, le=65535, description="Gateway port"),
    ] = GATEWAY_PORT
    connect_timeout: Annotated[
        float,
        Field(gt=0, description="TCP connect timeout in seconds"),
    ] = 10.0
    grace_period: Annotated[
        float,
        Field(gt=0, description="Seconds to wait for an error after the final frame"),
    ] = DEFAULT_GRACE_PERIOD

    @field_validator("certificate_file", mode="after")
    @classmethod
    def validate_certificate_file_exists(cls, v: Path) -> Path:
        """Validate that the certificate file exists.

        Raises:
            ValueError: If the file does not exist
        """
        if not v.is_file():
            msg = f"Certificate file does not exist: {v}"
            raise ValueError(msg)
        return v

    def read_certificate(self) -> str:
        """Return the PEM text of the certificate file."""
        return self.certificate_file.read_text(encoding="utf-8")

    @override
    def __repr__(self) -> str:
        passphrase = None if self.passphrase is None else REDACTED
        return (
            f"GatewayConfig("
            f"certificate_file={self.certificate_file!r}, "
            f"passphrase={passphrase!r}, "
            f"sandbox={self.sandbox!r}, "
            f"host={self.host!r}, "
            f"port={self.port!r}, "
            f"connect_timeout={self.connect_timeout!r}, "
            f"grace_period={self.grace_period!r})"
        )


class ApplicationConfig(BaseModel):
    """Configuration for application-level settings."""

    log_level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "INFO"
    syslog_enabled: Annotated[
        bool,
        Field(description="Enable syslog integration"),
    ] = False


class MainConfig(BaseModel):
    """Main application configuration schema.

    Top-level configuration container aggregating:
    - gateway: Endpoint selection, credentials and timing
    - application: Logging settings
    """

    gateway: Annotated[
        GatewayConfig,
        Field(description="Gateway connection configuration"),
    ]
    application: Annotated[
        ApplicationConfig,
        Field(description="Application-level configuration"),
    ] = ApplicationConfig()


class NotificationSpec(BaseModel):
    """One entry of a notification batch file."""

    tokens: Annotated[list[str], Field(min_length=1, description="Hex encoded device tokens")]
    data: Annotated[dict[str, object], Field(description="JSON payload")]
    expiry: Annotated[int, Field(ge=0, le=MAX_EXPIRY, description="Expiration date in unix seconds")] = 0
    priority: Annotated[int, Field(description="Delivery priority, 10 or 5")] = 10

    @field_validator("priority", mode="after")
    @classmethod
    def validate_priority(cls, v: int) -> int:
        if v not in (5, 10):
            msg = f"Priority must be 5 or 10, got: {v}"
            raise ValueError(msg)
        return v

    @field_validator("tokens", mode="after")
    @classmethod
    def validate_tokens(cls, v: list[str]) -> list[str]:
        return [validate_token(token) for token in v]

    def to_notification(self) -> Notification:
        return Notification(
            tokens=self.tokens,
            data=self.data,
            expiry=self.expiry,
            priority=self.priority,
        )


class EnvironmentVariableError(Exception):
    """Exception raised when environment variable resolution fails.

    Raised when a required environment variable is missing, with a message
    that names the variable but never its value.
    """


class ConfigurationError(Exception):
    """Exception raised when configuration loading or validation fails."""


def resolve_env_var(value: str) -> str:
    """Resolve environment variable references in a string value.

    Raises:
        EnvironmentVariableError: If a referenced variable is not set

    Examples:
        >>> os.environ["GATEWAY_PASSPHRASE"] = "secret_value"
        >>> resolve_env_var("${GATEWAY_PASSPHRASE}")
        'secret_value'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)

        if env_value is None:
            msg = (
                f"Required environment variable '{var_name}' is not set. "
                f"Please set this variable before starting the application."
            )
            raise EnvironmentVariableError(msg)

        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def resolve_env_vars(data: object) -> object:
    """Recursively resolve environment variables in YAML data.

    Strings are resolved, mappings and lists are walked, any other value is
    preserved as-is.

    Raises:
        EnvironmentVariableError: If a required environment variable is missing
    """
    if isinstance(data, str):
        return resolve_env_var(data)
    if isinstance(data, Mapping):
        return {key: resolve_env_vars(value) for key, value in data.items()}  # pyright: ignore[reportUnknownVariableType]  # YAML boundary
    if isinstance(data, list):
        return [resolve_env_vars(item) for item in data]  # pyright: ignore[reportUnknownVariableType]  # YAML boundary
    return data


def _load_yaml(path: Path, what: str) -> object:
    if not path.exists():
        msg = f"{what} not found: {path}\nPlease create the file at this location."
        raise ConfigurationError(msg)

    try:
        with path.open("r", encoding="utf-8") as f:
            raw_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = f"Failed to parse YAML in {what.lower()}: {path}\nYAML parsing error: {e}\nPlease check the file for syntax errors."
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read {what.lower()}: {path}\nError: {e}\nPlease check file permissions."
        raise ConfigurationError(msg) from e

    try:
        return resolve_env_vars(raw_data)
    except EnvironmentVariableError as e:
        msg = (
            f"Environment variable resolution failed in: {path}\n"
            f"{e}\n"
            f"Set the required environment variable before starting the application."
        )
        raise ConfigurationError(msg) from e


def _format_validation_error(error: ValidationError, path: Path, heading: str) -> str:
    error_lines = [heading, ""]
    for detail in error.errors():
        field_path = " → ".join(str(loc) for loc in detail["loc"])
        error_lines.append(f"  Field: {field_path}")
        error_lines.append(f"  Error: {detail['msg']}")
        error_lines.append(f"  Type: {detail['type']}")
        error_lines.append("")

    error_lines.append(f"File: {path}")
    error_lines.append("Please fix the above errors and try again.")
    return "\n".join(error_lines)


def load_main_config(config_path: Path) -> MainConfig:
    """Load and validate application configuration from a YAML file.

    Args:
        config_path: Path to configuration YAML file

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If the file cannot be loaded, references a missing
            environment variable, or fails validation
    """
    data = _load_yaml(config_path, "Configuration file")

    if not isinstance(data, dict):
        msg = (
            f"Invalid configuration file format: {config_path}\n"
            f"Expected YAML dictionary at root level, got: {type(data).__name__}\n"
            f"Configuration file must contain key-value pairs."
        )
        raise ConfigurationError(msg)

    try:
        return MainConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            _format_validation_error(e, config_path, "Configuration validation failed:")
        ) from e


def load_notifications(batch_path: Path) -> list[Notification]:
    """Load a batch of notifications from a YAML or JSON file.

    The file must contain a list of mappings with ``tokens`` and ``data``
    keys and optional ``expiry`` and ``priority``.

    Raises:
        ConfigurationError: If the file cannot be loaded or an entry is invalid
    """
    data = _load_yaml(batch_path, "Notification batch file")

    if not isinstance(data, list):
        msg = (
            f"Invalid notification batch format: {batch_path}\n"
            f"Expected a list of notifications at root level, got: {type(data).__name__}"
        )
        raise ConfigurationError(msg)

    notifications: list[Notification] = []
    for entry in data:  # pyright: ignore[reportUnknownVariableType]  # YAML boundary
        heading = f"Notification #{len(notifications)} is invalid:"
        try:
            spec = NotificationSpec.model_validate(entry)
        except ValidationError as e:
            raise ConfigurationError(_format_validation_error(e, batch_path, heading)) from e
        try:
            notifications.append(spec.to_notification())
        except ValueError as e:
            msg = f"{heading}\n  Error: {e}\n\nFile: {batch_path}"
            raise ConfigurationError(msg) from e
    return notifications
