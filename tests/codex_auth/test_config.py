"""Tests for Codex auth configuration."""

from datetime import timedelta
from pathlib import Path

import pytest

from src.codex_auth.config import (
    DEFAULT_CLIENT_ID,
    DEFAULT_ISSUER,
    DEFAULT_PORT,
    CodexAuthConfig,
)
from src.codex_auth.exceptions import ConfigurationError


class TestCodexAuthConfig:
    """Tests for CodexAuthConfig dataclass."""

    def test_defaults(self):
        config = CodexAuthConfig()

        assert config.codex_home == Path("~/.codex").expanduser()
        assert config.client_id == DEFAULT_CLIENT_ID
        assert config.issuer == "https://auth.openai.com"
        assert config.port == 1455
        assert config.open_browser is True
        assert config.refresh_interval == timedelta(minutes=50)
        assert config.api_key_env_var == "OPENAI_API_KEY"

    def test_auth_file(self, tmp_path):
        assert CodexAuthConfig(codex_home=tmp_path).auth_file == tmp_path / "auth.json"

    def test_codex_home_accepts_string(self, tmp_path):
        assert CodexAuthConfig(codex_home=str(tmp_path)).codex_home == tmp_path

    def test_issuer_trailing_slash_stripped(self):
        assert CodexAuthConfig(issuer="https://issuer.test/").issuer == "https://issuer.test"

    def test_empty_client_id_raises(self):
        with pytest.raises(ConfigurationError, match="client_id cannot be empty"):
            CodexAuthConfig(client_id="")

    @pytest.mark.parametrize("issuer", ["auth.openai.com", "ftp://x", ""])
    def test_invalid_issuer_raises(self, issuer):
        with pytest.raises(ConfigurationError, match="issuer"):
            CodexAuthConfig(issuer=issuer)

    @pytest.mark.parametrize("port", [-1, 65536])
    def test_invalid_port_raises(self, port):
        with pytest.raises(ConfigurationError, match="port must be between"):
            CodexAuthConfig(port=port)

    def test_port_zero_allowed(self):
        assert CodexAuthConfig(port=0).port == 0

    def test_negative_refresh_interval_raises(self):
        with pytest.raises(ConfigurationError, match="refresh_interval"):
            CodexAuthConfig(refresh_interval=timedelta(seconds=-1))


class TestFromEnv:
    """Tests for CodexAuthConfig.from_env."""

    def test_defaults_without_env(self):
        config = CodexAuthConfig.from_env()

        assert config.client_id == DEFAULT_CLIENT_ID
        assert config.issuer == DEFAULT_ISSUER
        assert config.port == DEFAULT_PORT
        assert config.open_browser is True

    def test_reads_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CODEX_HOME", str(tmp_path))
        monkeypatch.setenv("CODEX_CLIENT_ID", "custom_client")
        monkeypatch.setenv("CODEX_AUTH_ISSUER", "http://localhost:8080")
        monkeypatch.setenv("CODEX_LOGIN_PORT", "9999")
        monkeypatch.setenv("CODEX_LOGIN_OPEN_BROWSER", "false")

        config = CodexAuthConfig.from_env()

        assert config.codex_home == tmp_path
        assert config.client_id == "custom_client"
        assert config.issuer == "http://localhost:8080"
        assert config.port == 9999
        assert config.open_browser is False

    def test_invalid_port_raises(self, monkeypatch):
        monkeypatch.setenv("CODEX_LOGIN_PORT", "not-a-port")

        with pytest.raises(ConfigurationError, match="CODEX_LOGIN_PORT"):
            CodexAuthConfig.from_env()
