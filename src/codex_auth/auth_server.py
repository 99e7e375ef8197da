"""
OAuth callback server for Codex login.

This module provides the local HTTP server that receives the provider's
redirect during the authorization-code + PKCE flow. The server binds to the
loopback interface for a single login attempt, exchanges the code for tokens,
saves them and stops.

States:
    LISTENING -> SUCCESS | FAILURE   (decided by callback requests)
    LISTENING -> CANCELLED           (cancel() called by the owner)

IMPORTANT: One server per port. Concurrent login attempts on the same port
are not supported.
"""

import html
import logging
import threading
from enum import Enum
from typing import Optional

from flask import Flask, Response, request
from werkzeug.serving import BaseWSGIServer, make_server

from .authorization import CALLBACK_PATH, build_authorization_url, build_redirect_uri
from .config import CodexAuthConfig
from .credential_store import CredentialStore
from .exceptions import AuthorizationError, CodexAuthError, StateMismatchError
from .pkce import PkceCodes, generate_pkce, generate_state
from .token_exchange import TokenExchangeClient

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"
POLL_INTERVAL = 0.5

PAGE_STYLE = "font-family: Arial, sans-serif; max-width: 600px; margin: 50px auto; padding: 20px;"


class LoginState(Enum):
    """Lifecycle of one login attempt."""

    LISTENING = "listening"
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not LoginState.LISTENING


def _page(title: str, heading: str, body: str, color: str) -> str:
    return f"""<html>
    <head><title>{title}</title></head>
    <body style="{PAGE_STYLE}">
        <h1 style="color: {color};">{heading}</h1>
        {body}
    </body>
    </html>"""


def _waiting_page() -> Response:
    return Response(
        _page(
            "Codex Authentication",
            "Codex Authentication",
            "<p>Waiting for authentication...</p>",
            "#333",
        ),
        status=200,
        content_type="text/html",
    )


def _failure_page(message: str, status: int) -> Response:
    return Response(
        _page(
            "Authentication Failed",
            "Authentication Failed",
            f"<p>{html.escape(message)}</p>"
            '<p style="margin-top: 30px; color: #666;">You can close this window.</p>',
            "#d32f2f",
        ),
        status=status,
        content_type="text/html",
    )


def _success_page() -> Response:
    return Response(
        _page(
            "Authentication Successful",
            "Authentication Successful!",
            "<p>You can now close this window and return to Codex.</p>",
            "#4caf50",
        ),
        status=200,
        content_type="text/html",
    )


class LoginServer:
    """
    One-shot local callback server for a single login attempt.

    The server:
    1. Generates PKCE codes and the state value for this attempt
    2. Binds 127.0.0.1:{port} and builds the authorization URL
    3. Serves requests on a background thread until a terminal state
    4. Exchanges the authorization code and saves tokens on success

    Security:
    - Binds to loopback only
    - Rejects callbacks whose state does not match before any exchange
    - Single-use (stops after the first terminal callback)
    """

    def __init__(
        self,
        config: CodexAuthConfig,
        store: CredentialStore,
        exchange_client: Optional[TokenExchangeClient] = None,
    ):
        """
        Initialize callback server.

        Args:
            config: Auth configuration (issuer, client ID, port)
            store: Credential store that receives the tokens
            exchange_client: Token endpoint client (created from config if not provided)
        """
        self.config = config
        self.store = store
        self.exchange_client = exchange_client or TokenExchangeClient(
            config.issuer, config.client_id, timeout=config.request_timeout
        )

        self.pkce: PkceCodes = generate_pkce()
        self.state: str = generate_state()
        self.port: int = config.port

        self.login_state = LoginState.LISTENING
        self.error: Optional[CodexAuthError] = None

        self.app = Flask(__name__)
        self.app.logger.setLevel(logging.WARNING)
        self.app.add_url_rule("/", "root", self._handle_request, methods=["GET"])
        self.app.add_url_rule("/<path:path>", "any", self._handle_request, methods=["GET"])

        self.server: Optional[BaseWSGIServer] = None
        self.thread: Optional[threading.Thread] = None
        self._shutdown_flag = threading.Event()
        self._done = threading.Event()
        self._state_lock = threading.Lock()

    @property
    def redirect_uri(self) -> str:
        return build_redirect_uri(self.port)

    @property
    def auth_url(self) -> str:
        """Authorization URL the user must open in a browser."""
        return build_authorization_url(
            self.config.issuer,
            self.config.client_id,
            self.redirect_uri,
            self.state,
            self.pkce.code_challenge,
        )

    @property
    def cancelled(self) -> bool:
        return self._shutdown_flag.is_set()

    def _finish(self, state: LoginState, error: Optional[CodexAuthError] = None) -> None:
        with self._state_lock:
            if self.login_state.is_terminal:
                return
            self.login_state = state
            self.error = error
        logger.info(f"Login attempt finished: {state.value}")

    def _handle_request(self, path: str = "") -> Response:
        """Apply one incoming request to the login state machine."""
        if self.login_state.is_terminal:
            return _waiting_page()

        if request.path != CALLBACK_PATH:
            return _waiting_page()

        logger.info("Received OAuth callback")

        error = request.args.get("error")
        if error:
            description = request.args.get("error_description")
            message = f"Error: {error}" + (f" - {description}" if description else "")
            logger.error(f"OAuth error: {message}")
            self._finish(LoginState.FAILURE, AuthorizationError(message))
            return _failure_page(message, 400)

        if request.args.get("state") != self.state:
            logger.error("OAuth callback state does not match login attempt")
            self._finish(LoginState.FAILURE, StateMismatchError("Invalid state parameter"))
            return _failure_page("Invalid state parameter", 400)

        code = request.args.get("code")
        if not code:
            return _waiting_page()

        try:
            tokens = self.exchange_client.exchange(code, self.pkce, self.redirect_uri)
            self.store.save_tokens(tokens)
        except CodexAuthError as e:
            logger.error(f"Failed to complete login: {e}")
            self._finish(LoginState.FAILURE, e)
            return _failure_page(f"Error: {e}", 500)
        except Exception as e:
            logger.exception("Unexpected error while completing login")
            self._finish(LoginState.FAILURE, AuthorizationError(f"Failed to complete login: {e}"))
            return _failure_page(f"Error: {e}", 500)

        self._finish(LoginState.SUCCESS)
        return _success_page()

    def start(self) -> None:
        """
        Bind the callback port and serve requests on a background thread.

        Raises:
            AuthorizationError: If the port cannot be bound
        """
        try:
            self.server = make_server(LOOPBACK_HOST, self.config.port, self.app, threaded=False)
        except (OSError, SystemExit) as e:
            raise AuthorizationError(
                f"Could not bind login server to {LOOPBACK_HOST}:{self.config.port}: {e}"
            ) from e

        self.server.timeout = POLL_INTERVAL
        self.port = self.server.server_port

        logger.info(f"Starting OAuth callback server on {LOOPBACK_HOST}:{self.port}")

        self.thread = threading.Thread(target=self._serve, name="codex-login-server", daemon=True)
        self.thread.start()

    def _serve(self) -> None:
        assert self.server is not None
        try:
            while not self._shutdown_flag.is_set() and not self.login_state.is_terminal:
                self.server.handle_request()
        except Exception as e:
            logger.error(f"Login server error: {e}")
            self._finish(LoginState.FAILURE, AuthorizationError(f"Login server error: {e}"))
        finally:
            if self._shutdown_flag.is_set():
                self._finish(LoginState.CANCELLED)
            self.server.server_close()
            self._done.set()
            logger.info("OAuth callback server stopped")

    def cancel(self) -> None:
        """
        Cancel the attempt.

        Sets the shared flag; the accept loop notices it within one poll
        interval and the thread exits without answering further requests.
        """
        if not self.login_state.is_terminal:
            logger.info("Cancelling login attempt")
        self._shutdown_flag.set()

    def block_until_done(self, timeout: Optional[float] = None) -> LoginState:
        """
        Wait for the server thread to exit.

        Args:
            timeout: Maximum seconds to wait (None waits indefinitely)

        Returns:
            Current LoginState (LISTENING if the timeout expired first)
        """
        if self.thread is None:
            raise AuthorizationError("Login server was not started")
        self._done.wait(timeout)
        return self.login_state


def run_login_server(
    config: CodexAuthConfig,
    store: CredentialStore,
    exchange_client: Optional[TokenExchangeClient] = None,
) -> LoginServer:
    """
    Create and start a login server.

    Returns:
        Running LoginServer; open `auth_url` in a browser to continue
    """
    server = LoginServer(config, store, exchange_client)
    server.start()
    return server
