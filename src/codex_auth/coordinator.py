"""
Login coordinator for high-level Codex auth operations.

This module provides the main interface for authentication in the
application. It runs the browser login flow, manages API key login and
logout, and hands out credentials to the rest of the application.
"""

import logging
import webbrowser
from typing import Optional

from .auth_server import LoginServer, LoginState, run_login_server
from .config import CodexAuthConfig
from .credential_store import CodexAuth, CredentialStore
from .token_data import TokenData
from .token_exchange import TokenExchangeClient

logger = logging.getLogger(__name__)


class LoginCoordinator:
    """
    High-level coordinator for Codex authentication.

    This is the interface the rest of the application should use. It owns
    login attempts end-to-end and exposes the two credential contracts used
    when launching the agent process: `get_api_key()` and `get_token_data()`.

    Example:
        coordinator = LoginCoordinator()
        if coordinator.run_login() is LoginState.SUCCESS:
            tokens = coordinator.get_token_data()
    """

    def __init__(
        self,
        config: Optional[CodexAuthConfig] = None,
        store: Optional[CredentialStore] = None,
        exchange_client: Optional[TokenExchangeClient] = None,
    ):
        """
        Initialize login coordinator.

        Args:
            config: Auth configuration (loads from environment if not provided)
            store: Credential store (created from config if not provided)
            exchange_client: Token endpoint client (created from config if not provided)
        """
        self.config = config or CodexAuthConfig.from_env()
        self.exchange_client = exchange_client or TokenExchangeClient(
            self.config.issuer, self.config.client_id, timeout=self.config.request_timeout
        )
        self.store = store or CredentialStore(
            self.config.codex_home,
            exchange_client=self.exchange_client,
            refresh_interval=self.config.refresh_interval,
            api_key_env_var=self.config.api_key_env_var,
        )
        self.login_server: Optional[LoginServer] = None

    def start_login(self, open_browser: Optional[bool] = None) -> LoginServer:
        """
        Start a browser login attempt without waiting for it.

        Any attempt still listening is cancelled first.

        Args:
            open_browser: Whether to open the browser (defaults to config)

        Returns:
            Running LoginServer; its `auth_url` is the page to visit

        Raises:
            AuthorizationError: If the callback port cannot be bound
        """
        self.cancel_login()

        server = run_login_server(self.config, self.store, self.exchange_client)
        self.login_server = server

        if self.config.open_browser if open_browser is None else open_browser:
            try:
                webbrowser.open(server.auth_url)
            except webbrowser.Error as e:
                logger.warning(f"Could not open browser automatically: {e}")

        return server

    def run_login(
        self, open_browser: Optional[bool] = None, timeout: Optional[float] = None
    ) -> LoginState:
        """
        Run the browser login flow and wait for it to finish.

        Args:
            open_browser: Whether to open the browser (defaults to config)
            timeout: Seconds to wait before cancelling (None waits indefinitely)

        Returns:
            Terminal LoginState
        """
        server = self.start_login(open_browser)
        state = server.block_until_done(timeout)

        if not state.is_terminal:
            logger.warning(f"Login not completed within {timeout} seconds, cancelling")
            server.cancel()
            state = server.block_until_done()

        if state is LoginState.SUCCESS:
            logger.info("Login complete. Tokens saved successfully.")
        elif state is LoginState.FAILURE:
            logger.error(f"Login failed: {server.error}")
        return state

    def cancel_login(self) -> None:
        """Cancel the current login attempt, if any, and wait for its port to close."""
        server = self.login_server
        if server is None or server.thread is None:
            return
        if not server.login_state.is_terminal:
            server.cancel()
        server.block_until_done()

    def login_with_api_key(self, api_key: str) -> None:
        self.store.login_with_api_key(api_key)

    def logout(self) -> bool:
        """
        Delete stored credentials.

        Note: This does NOT revoke tokens at the provider. It only deletes
        the local auth file.
        """
        return self.store.logout()

    def load(self) -> Optional[CodexAuth]:
        return self.store.load()

    def get_auth_status(self) -> Optional[str]:
        return self.store.get_auth_status()

    def get_api_key(self) -> Optional[str]:
        return self.store.get_api_key()

    def get_token_data(self) -> TokenData:
        """
        Get a valid OAuth token set, refreshing it if stale.

        Raises:
            TokenNotAvailableError: In API key mode or when not logged in
        """
        return self.store.get_token_data()
