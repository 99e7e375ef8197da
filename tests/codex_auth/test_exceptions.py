"""Tests for Codex auth exception hierarchy."""

import pytest

from src.codex_auth.exceptions import (
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


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    @pytest.mark.parametrize(
        "exc_cls",
        [
            ConfigurationError,
            CredentialStorageError,
            AuthFileParseError,
            IdTokenError,
            AuthorizationError,
            TokenExchangeError,
            TokenRefreshError,
            MissingTokenFieldError,
            TokenNotAvailableError,
        ],
    )
    def test_all_inherit_from_base(self, exc_cls):
        assert issubclass(exc_cls, CodexAuthError)

    def test_parse_errors_are_distinct_from_io_errors(self):
        """Identity token errors are not storage errors."""
        for exc_cls in (InvalidIdTokenFormatError, IdTokenDecodeError, IdTokenPayloadError):
            assert issubclass(exc_cls, IdTokenError)
            assert not issubclass(exc_cls, CredentialStorageError)

    def test_auth_file_parse_error_is_storage_error(self):
        assert issubclass(AuthFileParseError, CredentialStorageError)

    def test_state_mismatch_is_authorization_error(self):
        assert issubclass(StateMismatchError, AuthorizationError)

    def test_refresh_error_is_exchange_error(self):
        assert issubclass(TokenRefreshError, TokenExchangeError)


class TestExceptionAttributes:
    """Tests for exception payloads."""

    def test_exchange_error_carries_response(self):
        error = TokenExchangeError("failed", status_code=401, response_body="denied")

        assert str(error) == "failed"
        assert error.status_code == 401
        assert error.response_body == "denied"

    def test_exchange_error_defaults(self):
        error = TokenRefreshError("network down")

        assert error.status_code is None
        assert error.response_body is None

    def test_missing_field_error(self):
        error = MissingTokenFieldError("refresh_token")

        assert error.field == "refresh_token"
        assert "refresh_token" in str(error)

    def test_can_catch_with_base(self):
        with pytest.raises(CodexAuthError):
            raise StateMismatchError("Invalid state parameter")
