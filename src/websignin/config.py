"""Configuration management with validation.

The provider has no provider-level configuration in the orchestration
protocol (CheckConfig/Configure are no-ops), so everything that tunes its
behavior comes from the process environment and is validated at load time.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

# The one resource kind this provider reconciles
RESOURCE_TYPE_WEB_SIGN_IN = "knapcode:index:PrepareAppForWebSignIn"

# Graph API constants
DEFAULT_GRAPH_API_HOST = "graph.microsoft.com"
GRAPH_API_VERSION = "v1.0"
SIGN_IN_AUDIENCE = "AzureADandPersonalMicrosoftAccount"
REQUESTED_ACCESS_TOKEN_VERSION = 2

# Existence polling, with documented bounds
DEFAULT_POLL_ATTEMPTS = 30
MIN_POLL_ATTEMPTS = 1
MAX_POLL_ATTEMPTS = 300

DEFAULT_POLL_INTERVAL_SECONDS = 1.0
MAX_POLL_INTERVAL_SECONDS = 60.0

# Subprocess limits
DEFAULT_AZ_CLI_PATH = "az"
DEFAULT_COMMAND_TIMEOUT_SECONDS = 120
MAX_COMMAND_TIMEOUT_SECONDS = 900

DEFAULT_PROVIDER_VERSION = "0.0.1"

# Maximum size of a descriptor or request file read from disk
MAX_DESCRIPTOR_FILE_SIZE_BYTES = 64 * 1024

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
VALID_LOG_FORMATS = ("json", "text")

# Input validation patterns
VALID_HOST_PATTERN = r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?(\.[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)+$"


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass(frozen=True)
class ProviderConfig:
    """Provider configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing mid-reconcile.
    """

    graph_api_host: str = DEFAULT_GRAPH_API_HOST
    az_cli_path: str = DEFAULT_AZ_CLI_PATH

    # Timing
    poll_attempts: int = DEFAULT_POLL_ATTEMPTS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    command_timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT_SECONDS

    # Identity and diagnostics
    provider_version: str = DEFAULT_PROVIDER_VERSION
    log_level: str = "INFO"
    log_format: str = "json"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.graph_api_host:
            errors.append("GRAPH_API_HOST is required")
        elif not re.match(VALID_HOST_PATTERN, self.graph_api_host.lower()):
            errors.append(f"GRAPH_API_HOST must be a host name: {self.graph_api_host}")

        if not self.az_cli_path:
            errors.append("AZ_CLI_PATH is required")

        if not (MIN_POLL_ATTEMPTS <= self.poll_attempts <= MAX_POLL_ATTEMPTS):
            errors.append(
                f"EXISTENCE_POLL_ATTEMPTS must be between {MIN_POLL_ATTEMPTS} "
                f"and {MAX_POLL_ATTEMPTS}"
            )

        if not (0 <= self.poll_interval_seconds <= MAX_POLL_INTERVAL_SECONDS):
            errors.append(
                f"EXISTENCE_POLL_INTERVAL must be between 0 and {MAX_POLL_INTERVAL_SECONDS} seconds"
            )

        if not (1 <= self.command_timeout_seconds <= MAX_COMMAND_TIMEOUT_SECONDS):
            errors.append(
                f"AZ_COMMAND_TIMEOUT must be between 1 and {MAX_COMMAND_TIMEOUT_SECONDS} seconds"
            )

        if not self.provider_version:
            errors.append("PROVIDER_VERSION must not be empty")

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {list(VALID_LOG_LEVELS)}: {self.log_level}")

        if self.log_format not in VALID_LOG_FORMATS:
            errors.append(
                f"LOG_FORMAT must be one of {list(VALID_LOG_FORMATS)}: {self.log_format}"
            )

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def applications_base_url(self) -> str:
        """Base URL of the Graph applications collection."""
        return f"https://{self.graph_api_host}/{GRAPH_API_VERSION}/applications"

    def application_uri(self, object_id: str) -> str:
        """Build the Graph URI addressing one application object."""
        return f"{self.applications_base_url}/{object_id}"

    @classmethod
    def from_env(cls) -> ProviderConfig:
        """Load configuration from environment variables.

        Environment Variables:
            GRAPH_API_HOST: Directory API host (default: graph.microsoft.com)
            AZ_CLI_PATH: Azure CLI executable (default: az)
            EXISTENCE_POLL_ATTEMPTS: Poll attempts before timing out (default: 30)
            EXISTENCE_POLL_INTERVAL: Seconds between poll attempts (default: 1)
            AZ_COMMAND_TIMEOUT: Timeout for one az invocation in seconds (default: 120)
            PROVIDER_VERSION: Version reported by GetPluginInfo (default: 0.0.1)
            LOG_LEVEL: Root log level (default: INFO)
            LOG_FORMAT: "json" or "text" (default: json)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_float(key: str, default: float) -> float:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return float(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be a number: {value}") from e

        return cls(
            graph_api_host=os.environ.get("GRAPH_API_HOST", DEFAULT_GRAPH_API_HOST),
            az_cli_path=os.environ.get("AZ_CLI_PATH", DEFAULT_AZ_CLI_PATH),
            poll_attempts=get_int("EXISTENCE_POLL_ATTEMPTS", DEFAULT_POLL_ATTEMPTS),
            poll_interval_seconds=get_float(
                "EXISTENCE_POLL_INTERVAL", DEFAULT_POLL_INTERVAL_SECONDS
            ),
            command_timeout_seconds=get_int(
                "AZ_COMMAND_TIMEOUT", DEFAULT_COMMAND_TIMEOUT_SECONDS
            ),
            provider_version=os.environ.get("PROVIDER_VERSION", DEFAULT_PROVIDER_VERSION),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            log_format=os.environ.get("LOG_FORMAT", "json").lower(),
        )
