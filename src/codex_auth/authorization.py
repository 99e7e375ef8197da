"""
Authorization URL construction for the OpenAI OAuth login flow.
"""

import logging
from urllib.parse import urlencode, urlparse

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/callback"
SCOPE = "openid email"


def build_redirect_uri(port: int) -> str:
    """Loopback redirect URI for the given callback port."""
    return f"http://127.0.0.1:{port}{CALLBACK_PATH}"


def build_authorization_url(
    issuer: str,
    client_id: str,
    redirect_uri: str,
    state: str,
    code_challenge: str,
) -> str:
    """
    Generate the provider authorization URL.

    Args:
        issuer: OAuth issuer base URL (e.g. https://auth.openai.com)
        client_id: OAuth client ID
        redirect_uri: Local callback URI
        state: Anti-CSRF state value for this attempt
        code_challenge: PKCE S256 challenge

    Returns:
        Complete authorization URL with query parameters

    Raises:
        ConfigurationError: If the issuer is not a well-formed http(s) URL
    """
    parsed = urlparse(issuer)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"Invalid issuer URL: {issuer!r}")

    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": SCOPE,
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
    }
    url = f"{issuer.rstrip('/')}/authorize?{urlencode(params)}"
    logger.debug(f"Generated authorization URL for client {client_id}")
    return url
