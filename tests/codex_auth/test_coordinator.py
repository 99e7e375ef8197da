"""Tests for the login coordinator."""

from unittest import mock

import pytest

from src.codex_auth.auth_server import LoginServer, LoginState
from src.codex_auth.config import CodexAuthConfig
from src.codex_auth.coordinator import LoginCoordinator
from src.codex_auth.credential_store import CredentialStore
from src.codex_auth.exceptions import TokenNotAvailableError
from src.codex_auth.token_exchange import TokenExchangeClient


class TestLoginCoordinator:
    """Tests for LoginCoordinator class."""

    @pytest.fixture
    def config(self, tmp_path):
        return CodexAuthConfig(codex_home=tmp_path, port=0, open_browser=True)

    @pytest.fixture
    def exchange_client(self, plus_tokens):
        client = mock.Mock()
        client.exchange.return_value = plus_tokens
        return client

    @pytest.fixture
    def coordinator(self, config, exchange_client):
        return LoginCoordinator(config, exchange_client=exchange_client)

    def test_initialization_builds_store(self, config):
        coordinator = LoginCoordinator(config)

        assert isinstance(coordinator.exchange_client, TokenExchangeClient)
        assert isinstance(coordinator.store, CredentialStore)
        assert coordinator.store.exchange_client is coordinator.exchange_client
        assert coordinator.store.auth_file == config.auth_file

    def test_initialization_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CODEX_HOME", str(tmp_path))

        coordinator = LoginCoordinator()

        assert coordinator.config.codex_home == tmp_path

    @mock.patch("src.codex_auth.coordinator.webbrowser")
    def test_start_login_opens_browser(self, mock_browser, coordinator):
        server = coordinator.start_login()
        try:
            assert isinstance(server, LoginServer)
            assert coordinator.login_server is server
            mock_browser.open.assert_called_once_with(server.auth_url)
        finally:
            coordinator.cancel_login()

    @mock.patch("src.codex_auth.coordinator.webbrowser")
    def test_start_login_without_browser(self, mock_browser, coordinator):
        coordinator.start_login(open_browser=False)
        try:
            mock_browser.open.assert_not_called()
        finally:
            coordinator.cancel_login()

    @mock.patch("src.codex_auth.coordinator.webbrowser")
    def test_browser_failure_is_not_fatal(self, mock_browser, coordinator):
        mock_browser.Error = Exception
        mock_browser.open.side_effect = Exception("no display")

        server = coordinator.start_login()
        try:
            assert server.login_state is LoginState.LISTENING
        finally:
            coordinator.cancel_login()

    @mock.patch("src.codex_auth.coordinator.webbrowser")
    def test_start_login_cancels_previous_attempt(self, mock_browser, coordinator):
        first = coordinator.start_login()
        second = coordinator.start_login()
        try:
            assert first.login_state is LoginState.CANCELLED
            assert second.login_state is LoginState.LISTENING
        finally:
            coordinator.cancel_login()

    @mock.patch("src.codex_auth.coordinator.webbrowser")
    def test_run_login_timeout_cancels(self, mock_browser, coordinator):
        state = coordinator.run_login(timeout=0.2)

        assert state is LoginState.CANCELLED
        assert not coordinator.login_server.thread.is_alive()

    @mock.patch("src.codex_auth.coordinator.webbrowser")
    def test_run_login_success(self, mock_browser, coordinator, plus_tokens):
        """run_login returns SUCCESS once the callback arrives."""

        def complete_in_browser(url):
            server = coordinator.login_server
            with server.app.test_client() as client:
                client.get(f"/callback?code=auth_code&state={server.state}")

        mock_browser.open.side_effect = complete_in_browser

        state = coordinator.run_login(timeout=5)

        assert state is LoginState.SUCCESS
        assert coordinator.get_token_data() == plus_tokens
        assert coordinator.get_auth_status() == "chatgpt:a@b.com:Plus"

    def test_api_key_login_and_logout(self, coordinator):
        coordinator.login_with_api_key("sk-test-key")

        assert coordinator.get_api_key() == "sk-test-key"
        assert coordinator.get_auth_status() == "api_key"
        with pytest.raises(TokenNotAvailableError):
            coordinator.get_token_data()

        assert coordinator.logout() is True
        assert coordinator.load() is None
        assert coordinator.logout() is False

    def test_cancel_login_without_attempt(self, coordinator):
        coordinator.cancel_login()
        assert coordinator.login_server is None
