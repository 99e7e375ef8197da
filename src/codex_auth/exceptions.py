"""
Exception classes for Codex authentication.

This module defines the exception hierarchy for login, token exchange and
credential storage errors, so callers can tell a corrupt auth file apart from
a network failure or a rejected authorization.
"""

from typing import Optional


class CodexAuthError(Exception):
    """Base exception for all Codex authentication errors."""

    pass


class ConfigurationError(CodexAuthError):
    """Auth configuration error (missing or invalid configuration)."""

    pass


class CredentialStorageError(CodexAuthError):
    """Reading, writing or deleting the auth file failed (file I/O error)."""

    pass


class AuthFileParseError(CredentialStorageError):
    """The auth file exists but does not contain valid credentials JSON."""

    pass


class IdTokenError(CodexAuthError):
    """The identity token could not be parsed."""

    pass


class InvalidIdTokenFormatError(IdTokenError):
    """The identity token does not have exactly three dot-separated segments."""

    pass


class IdTokenDecodeError(IdTokenError):
    """The identity token payload segment is not valid base64url."""

    pass


class IdTokenPayloadError(IdTokenError):
    """The identity token payload is not a JSON object."""

    pass


class AuthorizationError(CodexAuthError):
    """OAuth authorization flow error (provider error or rejected callback)."""

    pass


class StateMismatchError(AuthorizationError):
    """The callback state parameter does not match the login attempt."""

    pass


class TokenExchangeError(CodexAuthError):
    """Failed to exchange authorization code for tokens."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class TokenRefreshError(TokenExchangeError):
    """Failed to refresh tokens using the refresh token."""

    pass


class MissingTokenFieldError(CodexAuthError):
    """A required field is absent from the token endpoint response."""

    def __init__(self, field: str):
        super().__init__(f"Token response is missing required field '{field}'")
        self.field = field


class TokenNotAvailableError(CodexAuthError):
    """No OAuth tokens available (API key mode, or need to log in first)."""

    pass
