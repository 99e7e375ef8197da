"""
Codex authentication.

This module provides the OpenAI login flow (authorization code + PKCE with a
local callback server) and the credential store that persists, caches and
refreshes credentials in auth.json.

Public API:
    CodexAuthConfig: Auth configuration management
    LoginCoordinator: High-level login interface
    CredentialStore: Credential persistence, caching and refresh
    LoginServer: One-shot OAuth callback server
    TokenExchangeClient: Token endpoint client
    TokenData / IdTokenInfo / PlanType: Token data model

Exceptions:
    CodexAuthError: Base exception
    ConfigurationError: Configuration error
    CredentialStorageError: Auth file I/O failed
    AuthFileParseError: Auth file is malformed
    IdTokenError: Identity token could not be parsed
    AuthorizationError: Authorization flow error
    TokenExchangeError / TokenRefreshError: Token endpoint call failed
    MissingTokenFieldError: Token response lacks a required field
    TokenNotAvailableError: No OAuth tokens available
"""

from .auth_server import LoginServer, LoginState, run_login_server
from .auth_storage import AuthDotJson, AuthStorage
from .authorization import build_authorization_url, build_redirect_uri
from .config import CodexAuthConfig
from .coordinator import LoginCoordinator
from .credential_store import CodexAuth, CredentialStore
from .exceptions import (
    AuthFileParseError,
    AuthorizationError,
    CodexAuthError,
    ConfigurationError,
    CredentialStorageError,
    IdTokenDecodeError,
    IdTokenError,
    IdTokenPayloadError,
    InvalidIdTokenFormatError,
    MissingTokenFieldError,
    StateMismatchError,
    TokenExchangeError,
    TokenNotAvailableError,
    TokenRefreshError,
)
from .pkce import PkceCodes, generate_pkce, generate_state
from .token_data import AuthMode, IdTokenInfo, KnownPlan, PlanType, TokenData, parse_id_token
from .token_exchange import TokenExchangeClient

__all__ = [
    # Configuration
    "CodexAuthConfig",
    # PKCE / authorization URL
    "PkceCodes",
    "generate_pkce",
    "generate_state",
    "build_authorization_url",
    "build_redirect_uri",
    # Token data
    "AuthMode",
    "KnownPlan",
    "PlanType",
    "IdTokenInfo",
    "TokenData",
    "parse_id_token",
    # Token endpoint
    "TokenExchangeClient",
    # Storage
    "AuthDotJson",
    "AuthStorage",
    "CodexAuth",
    "CredentialStore",
    # Login
    "LoginServer",
    "LoginState",
    "run_login_server",
    "LoginCoordinator",
    # Exceptions
    "CodexAuthError",
    "ConfigurationError",
    "CredentialStorageError",
    "AuthFileParseError",
    "IdTokenError",
    "InvalidIdTokenFormatError",
    "IdTokenDecodeError",
    "IdTokenPayloadError",
    "AuthorizationError",
    "StateMismatchError",
    "TokenExchangeError",
    "TokenRefreshError",
    "MissingTokenFieldError",
    "TokenNotAvailableError",
]
