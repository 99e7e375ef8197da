"""
Auth configuration for Codex login.

This module provides configuration management for the OpenAI OAuth login
flow and the credential file. Configuration can be loaded from environment
variables or provided programmatically.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from urllib.parse import urlparse

from .exceptions import ConfigurationError

# OpenAI OAuth client ID used by the Codex CLI
DEFAULT_CLIENT_ID = "app_EMoamEEZ73f0CkXaXp7hrann"
DEFAULT_ISSUER = "https://auth.openai.com"
DEFAULT_PORT = 1455
DEFAULT_CODEX_HOME = "~/.codex"
OPENAI_API_KEY_ENV_VAR = "OPENAI_API_KEY"
AUTH_FILE_NAME = "auth.json"

# Provider access tokens live for 60 minutes
DEFAULT_REFRESH_INTERVAL = timedelta(minutes=50)


def _default_codex_home() -> Path:
    return Path(DEFAULT_CODEX_HOME).expanduser()


@dataclass
class CodexAuthConfig:
    """
    Configuration for Codex authentication.

    Attributes:
        codex_home: Directory holding auth.json (default: ~/.codex)
        client_id: OAuth client ID registered with the provider
        issuer: OAuth issuer base URL (authorize and token endpoints live under it)
        port: Local callback port (0 binds any free port)
        open_browser: Whether to open the authorization URL in a browser
        refresh_interval: Refresh cached tokens once they are older than this
        api_key_env_var: Environment variable that overrides stored credentials
        request_timeout: Token endpoint timeout in seconds
    """

    codex_home: Path = field(default_factory=_default_codex_home)
    client_id: str = DEFAULT_CLIENT_ID
    issuer: str = DEFAULT_ISSUER
    port: int = DEFAULT_PORT
    open_browser: bool = True
    refresh_interval: timedelta = DEFAULT_REFRESH_INTERVAL
    api_key_env_var: str = OPENAI_API_KEY_ENV_VAR
    request_timeout: int = 30

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.codex_home = Path(self.codex_home).expanduser()

        if not self.client_id:
            raise ConfigurationError("client_id cannot be empty")

        parsed = urlparse(self.issuer)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(f"issuer must be an http(s) URL, got {self.issuer!r}")
        self.issuer = self.issuer.rstrip("/")

        if not isinstance(self.port, int) or not (0 <= self.port <= 65535):
            raise ConfigurationError(f"port must be between 0 and 65535, got {self.port}")

        if self.refresh_interval < timedelta(0):
            raise ConfigurationError("refresh_interval cannot be negative")

        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")

    @property
    def auth_file(self) -> Path:
        """Path of the persisted credentials file."""
        return self.codex_home / AUTH_FILE_NAME

    @classmethod
    def from_env(cls) -> "CodexAuthConfig":
        """
        Load configuration from environment variables.

        Optional environment variables:
            CODEX_HOME: Credentials directory (default: ~/.codex)
            CODEX_CLIENT_ID: OAuth client ID (default: Codex CLI client)
            CODEX_AUTH_ISSUER: OAuth issuer (default: https://auth.openai.com)
            CODEX_LOGIN_PORT: Callback port (default: 1455)
            CODEX_LOGIN_OPEN_BROWSER: Set to 0/false/no to only print the URL

        Returns:
            CodexAuthConfig instance

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        port_value = os.environ.get("CODEX_LOGIN_PORT", str(DEFAULT_PORT))
        try:
            port = int(port_value)
        except ValueError as e:
            raise ConfigurationError(
                f"CODEX_LOGIN_PORT must be an integer, got {port_value!r}"
            ) from e

        open_browser = os.environ.get("CODEX_LOGIN_OPEN_BROWSER", "1").strip().lower()

        return cls(
            codex_home=Path(os.environ.get("CODEX_HOME") or DEFAULT_CODEX_HOME),
            client_id=os.environ.get("CODEX_CLIENT_ID", DEFAULT_CLIENT_ID),
            issuer=os.environ.get("CODEX_AUTH_ISSUER", DEFAULT_ISSUER),
            port=port,
            open_browser=open_browser not in ("0", "false", "no", "off"),
        )
