"""
Auth file storage for Codex authentication.

This module provides file-based persistence of credentials in auth.json, in
the same format the Codex CLI uses:

    {
      "OPENAI_API_KEY": "sk-..." | null,
      "tokens": {"id_token": "<jwt>", "access_token": ..., ...} | null,
      "last_refresh": "2026-01-25T10:00:00+00:00" | null
    }

All three fields are independently optional. Writes replace the whole file
and leave it readable by the owner only.
"""

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .exceptions import AuthFileParseError, CredentialStorageError, IdTokenError
from .token_data import TokenData

logger = logging.getLogger(__name__)

API_KEY_FIELD = "OPENAI_API_KEY"
TOKEN_STRING_FIELDS = ("id_token", "access_token", "refresh_token")

_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp into an aware UTC datetime.

    Accepts a trailing "Z" and sub-microsecond fractions as written by
    other Codex clients.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(r"\1", text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class AuthDotJson:
    """
    Contents of auth.json.

    Attributes:
        openai_api_key: Stored API key, if any
        tokens: Stored OAuth token set, if any
        last_refresh: When tokens were last obtained or refreshed
    """

    openai_api_key: Optional[str] = None
    tokens: Optional[TokenData] = None
    last_refresh: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            API_KEY_FIELD: self.openai_api_key,
            "tokens": self.tokens.to_dict() if self.tokens else None,
            "last_refresh": self.last_refresh.isoformat() if self.last_refresh else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuthDotJson":
        """
        Create AuthDotJson from parsed JSON.

        Raises:
            AuthFileParseError: If a field has the wrong shape
        """
        if not isinstance(data, dict):
            raise AuthFileParseError("auth file must contain a JSON object")

        api_key = data.get(API_KEY_FIELD)
        if api_key is not None and not isinstance(api_key, str):
            raise AuthFileParseError(f"{API_KEY_FIELD} must be a string or null")

        tokens = None
        raw_tokens = data.get("tokens")
        if raw_tokens is not None:
            if not isinstance(raw_tokens, dict):
                raise AuthFileParseError("tokens must be an object or null")
            for name in TOKEN_STRING_FIELDS:
                value = raw_tokens.get(name)
                if not isinstance(value, str) or not value:
                    raise AuthFileParseError(f"tokens.{name} must be a non-empty string")
            account_id = raw_tokens.get("account_id")
            if account_id is not None and not isinstance(account_id, str):
                raise AuthFileParseError("tokens.account_id must be a string or null")
            try:
                tokens = TokenData.from_dict(raw_tokens)
            except IdTokenError as e:
                raise AuthFileParseError(f"Stored id_token is invalid: {e}") from e

        last_refresh = None
        raw_last_refresh = data.get("last_refresh")
        if raw_last_refresh is not None:
            try:
                last_refresh = parse_timestamp(raw_last_refresh)
            except (TypeError, ValueError, AttributeError) as e:
                raise AuthFileParseError(f"Invalid last_refresh timestamp: {e}") from e

        return cls(openai_api_key=api_key, tokens=tokens, last_refresh=last_refresh)


class AuthStorage:
    """
    File-based credential storage (plaintext JSON, mode 600).

    There is no cross-process locking; each write atomically replaces the
    file, so the last writer wins.
    """

    def __init__(self, auth_file: Path):
        """
        Initialize auth storage.

        Args:
            auth_file: Path to auth.json (e.g. ~/.codex/auth.json)
        """
        self.auth_file = Path(auth_file)

    def _set_secure_permissions(self) -> None:
        """Set file permissions to user-only read/write (600)."""
        if os.name != "posix":
            return
        try:
            self.auth_file.chmod(0o600)
        except OSError as e:
            logger.warning(f"Could not set secure permissions on {self.auth_file}: {e}")

    def read(self) -> Optional[AuthDotJson]:
        """
        Load credentials from file.

        Returns:
            AuthDotJson if the file exists, None otherwise

        Raises:
            AuthFileParseError: If the file is not valid credentials JSON
            CredentialStorageError: If the file cannot be read
        """
        if not self.auth_file.exists():
            logger.debug(f"No auth file found at {self.auth_file}")
            return None

        try:
            with open(self.auth_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid auth file at {self.auth_file}: {e}")
            raise AuthFileParseError(f"Invalid JSON in {self.auth_file}: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Could not read auth file: {e}")
            raise CredentialStorageError(f"Failed to read {self.auth_file}: {e}") from e

        auth = AuthDotJson.from_dict(data)
        logger.debug(f"Credentials loaded from {self.auth_file}")
        return auth

    def write(self, auth: AuthDotJson) -> None:
        """
        Save credentials to file.

        Creates the parent directory if needed, replaces the file atomically
        and restricts it to the owner (chmod 600).

        Args:
            auth: Credentials to save

        Raises:
            CredentialStorageError: If the write fails
        """
        contents = json.dumps(auth.to_dict(), indent=2)
        tmp_path = None
        try:
            self.auth_file.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.auth_file.name}.", dir=self.auth_file.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(contents)
            os.replace(tmp_path, self.auth_file)
            tmp_path = None
        except OSError as e:
            logger.error(f"Failed to save credentials: {e}")
            raise CredentialStorageError(f"Failed to write {self.auth_file}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

        self._set_secure_permissions()
        logger.info(f"Credentials saved to {self.auth_file}")

    def delete(self) -> bool:
        """
        Delete the auth file.

        Returns:
            True if file was deleted, False if file didn't exist

        Raises:
            CredentialStorageError: If the file exists but cannot be removed
        """
        try:
            self.auth_file.unlink()
        except FileNotFoundError:
            logger.debug(f"Auth file does not exist: {self.auth_file}")
            return False
        except OSError as e:
            logger.error(f"Failed to delete auth file: {e}")
            raise CredentialStorageError(f"Failed to delete {self.auth_file}: {e}") from e

        logger.info(f"Auth file deleted: {self.auth_file}")
        return True

    def exists(self) -> bool:
        return self.auth_file.exists()
