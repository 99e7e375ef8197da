"""
Credential store for Codex authentication.

This module resolves which credential is active and keeps OAuth tokens fresh:
- Environment API key override (highest priority)
- API key and/or OAuth tokens persisted in auth.json
- Lazy refresh of cached tokens once they are older than the refresh interval

The in-memory cache is shared by every caller of one CredentialStore and is
guarded by a single lock. The lock is not held while a refresh request is in
flight, so two callers that see stale tokens at the same time may both
refresh; the last one to finish writes the file.
"""

import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

from .auth_storage import AuthDotJson, AuthStorage
from .config import AUTH_FILE_NAME, DEFAULT_REFRESH_INTERVAL, OPENAI_API_KEY_ENV_VAR
from .exceptions import AuthFileParseError, TokenNotAvailableError
from .token_data import AuthMode, TokenData
from .token_exchange import TokenExchangeClient

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CodexAuth:
    """
    Resolved credential.

    Attributes:
        mode: Active auth mode
        api_key: API key (set in API_KEY mode)
        tokens: OAuth token set (set in CHATGPT mode, may also be set in API_KEY mode)
        last_refresh: When tokens were last obtained or refreshed
    """

    mode: AuthMode
    api_key: Optional[str] = None
    tokens: Optional[TokenData] = None
    last_refresh: Optional[datetime] = None

    def get_api_key(self) -> Optional[str]:
        return self.api_key if self.mode is AuthMode.API_KEY else None


def resolve_auth(auth_json: AuthDotJson) -> Optional[CodexAuth]:
    """
    Derive the active credential from auth.json contents.

    A stored API key wins when there are no tokens or when the plan is billed
    per use; otherwise stored tokens select ChatGPT mode.
    """
    tokens = auth_json.tokens
    api_key = auth_json.openai_api_key

    if api_key:
        if tokens is None or tokens.is_plan_that_should_use_api_key():
            mode = AuthMode.API_KEY
        else:
            mode = AuthMode.CHATGPT
        return CodexAuth(
            mode=mode, api_key=api_key, tokens=tokens, last_refresh=auth_json.last_refresh
        )

    if tokens is not None:
        return CodexAuth(
            mode=AuthMode.CHATGPT, tokens=tokens, last_refresh=auth_json.last_refresh
        )

    return None


class CredentialStore:
    """
    Persists, caches and refreshes credentials for one Codex home directory.

    Responsibilities:
    - Resolve the active credential (environment, then auth.json)
    - Save API keys and token sets
    - Provide API keys and fresh token sets to callers
    """

    def __init__(
        self,
        codex_home: Path,
        exchange_client: Optional[TokenExchangeClient] = None,
        refresh_interval: timedelta = DEFAULT_REFRESH_INTERVAL,
        api_key_env_var: str = OPENAI_API_KEY_ENV_VAR,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize credential store.

        Args:
            codex_home: Directory holding auth.json
            exchange_client: Client used to refresh tokens (required for refresh)
            refresh_interval: Maximum token age before a refresh is triggered
            api_key_env_var: Environment variable that overrides the file
            clock: Returns the current aware UTC time
        """
        self.codex_home = Path(codex_home)
        self.storage = AuthStorage(self.codex_home / AUTH_FILE_NAME)
        self.exchange_client = exchange_client
        self.refresh_interval = refresh_interval
        self.api_key_env_var = api_key_env_var
        self._clock = clock

        self._lock = threading.Lock()
        self._auth: Optional[CodexAuth] = None
        self._loaded = False

    def _env_auth(self) -> Optional[CodexAuth]:
        env_key = os.environ.get(self.api_key_env_var)
        if env_key:
            return CodexAuth(mode=AuthMode.API_KEY, api_key=env_key)
        return None

    @property
    def auth_file(self) -> Path:
        return self.storage.auth_file

    def load(self) -> Optional[CodexAuth]:
        """
        Resolve the active credential and refresh the in-memory cache.

        A non-empty API key in the environment always selects API key mode
        without reading the file.

        Returns:
            CodexAuth, or None if neither environment nor file has credentials

        Raises:
            AuthFileParseError: If auth.json is malformed
            CredentialStorageError: If auth.json cannot be read
        """
        auth = self._env_auth()
        if auth is not None:
            logger.debug(f"Using API key from {self.api_key_env_var}")
        else:
            auth_json = self.storage.read()
            auth = resolve_auth(auth_json) if auth_json is not None else None

        with self._lock:
            self._auth = auth
            self._loaded = True

        if auth is None:
            logger.debug("No credentials found")
        else:
            logger.debug(f"Resolved auth mode: {auth.mode.value}")
        return auth

    def login_with_api_key(self, api_key: str) -> None:
        """
        Store an API key, replacing any stored tokens.

        Args:
            api_key: OpenAI API key
        """
        auth_json = AuthDotJson(openai_api_key=api_key)
        self.storage.write(auth_json)
        with self._lock:
            self._auth = self._env_auth() or resolve_auth(auth_json)
            self._loaded = True
        logger.info("API key saved")

    def save_tokens(self, tokens: TokenData) -> None:
        """
        Store a token set, keeping any stored API key.

        Sets last_refresh to now.

        Args:
            tokens: Token set from a code exchange or refresh
        """
        try:
            auth_json = self.storage.read() or AuthDotJson()
        except AuthFileParseError as e:
            logger.warning(f"Replacing unreadable auth file: {e}")
            auth_json = AuthDotJson()

        auth_json.tokens = tokens
        auth_json.last_refresh = self._clock()
        self.storage.write(auth_json)

        with self._lock:
            self._auth = self._env_auth() or resolve_auth(auth_json)
            self._loaded = True
        logger.info("OAuth tokens saved")

    def logout(self) -> bool:
        """
        Delete stored credentials.

        Returns:
            True if auth.json existed and was deleted, False otherwise
        """
        removed = self.storage.delete()
        with self._lock:
            self._auth = None
            self._loaded = False
        return removed

    def current(self) -> Optional[CodexAuth]:
        """Cached credential, loading it on first use."""
        with self._lock:
            if self._loaded:
                return self._auth
        return self.load()

    def get_api_key(self) -> Optional[str]:
        """
        API key for outbound calls.

        Returns:
            The API key in API key mode, None in ChatGPT mode or when logged out
        """
        auth = self.current()
        return auth.get_api_key() if auth else None

    def get_auth_mode(self) -> Optional[AuthMode]:
        auth = self.current()
        return auth.mode if auth else None

    def get_token_data(self) -> TokenData:
        """
        Get a currently valid OAuth token set, refreshing if stale.

        Tokens older than the refresh interval (strictly greater) are
        refreshed. A refresh failure leaves the cached and stored tokens as
        they were.

        Returns:
            TokenData

        Raises:
            TokenNotAvailableError: In API key mode or when not logged in
            TokenRefreshError: If the refresh request fails
            MissingTokenFieldError: If the refresh response lacks a required field
        """
        if self.current() is None:
            raise TokenNotAvailableError("Not logged in. Run the login flow first.")

        with self._lock:
            auth = self._auth
            if auth is None:
                raise TokenNotAvailableError("Not logged in. Run the login flow first.")
            if auth.mode is AuthMode.API_KEY:
                raise TokenNotAvailableError("OAuth tokens are not available in API key mode")
            if auth.tokens is None:
                raise TokenNotAvailableError("No cached OAuth tokens")
            tokens = auth.tokens
            last_refresh = auth.last_refresh

        if not self._needs_refresh(last_refresh):
            return tokens

        logger.info("Cached tokens are stale, refreshing")
        if self.exchange_client is None:
            raise TokenNotAvailableError("Tokens are stale and no token client is configured")

        refreshed = tokens.with_refreshed(self.exchange_client.refresh(tokens.refresh_token))
        self.save_tokens(refreshed)
        return refreshed

    def _needs_refresh(self, last_refresh: Optional[datetime]) -> bool:
        if last_refresh is None:
            return True
        return self._clock() - last_refresh > self.refresh_interval

    def get_auth_status(self) -> Optional[str]:
        """
        Short status string for display.

        Returns:
            "api_key", "chatgpt:<email>:<plan>", or None when logged out
        """
        auth = self.current()
        if auth is None:
            return None
        if auth.mode is AuthMode.API_KEY:
            return "api_key"
        if auth.tokens is None:
            return "chatgpt:invalid"

        id_token = auth.tokens.id_token
        email = id_token.email or "chatgpt"
        plan = id_token.get_chatgpt_plan_type() or "unknown"
        return f"chatgpt:{email}:{plan}"
