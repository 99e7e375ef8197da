"""
Token endpoint client for the OpenAI OAuth provider.

This module exchanges authorization codes and refresh tokens for token sets:
- Authorization code + PKCE verifier -> id/access/refresh tokens
- Refresh token -> new id/access tokens (refresh token may be rotated)

Neither operation retries; a failed call aborts that exchange or refresh.
"""

import logging
from typing import Optional

import requests

from .exceptions import MissingTokenFieldError, TokenExchangeError, TokenRefreshError
from .pkce import PkceCodes
from .token_data import TokenData, parse_id_token

logger = logging.getLogger(__name__)


class TokenExchangeClient:
    """
    Calls `{issuer}/token` with form-encoded grant requests.

    Responsibilities:
    - Exchange authorization codes for tokens (authorization_code grant)
    - Refresh tokens (refresh_token grant)
    - Validate required response fields and parse the identity token
    """

    def __init__(self, issuer: str, client_id: str, timeout: int = 30):
        """
        Initialize token exchange client.

        Args:
            issuer: OAuth issuer base URL
            client_id: OAuth client ID
            timeout: Request timeout in seconds
        """
        self.issuer = issuer.rstrip("/")
        self.client_id = client_id
        self.timeout = timeout

    @property
    def token_url(self) -> str:
        return f"{self.issuer}/token"

    def exchange(self, code: str, pkce: PkceCodes, redirect_uri: str) -> TokenData:
        """
        Exchange an authorization code for tokens.

        Args:
            code: Authorization code received on the callback
            pkce: PKCE pair whose challenge was sent with the authorization request
            redirect_uri: Redirect URI used in the authorization request

        Returns:
            TokenData with id, access and refresh tokens

        Raises:
            TokenExchangeError: On transport failure, non-2xx status or non-JSON body
            MissingTokenFieldError: If access_token, id_token or refresh_token is absent
            IdTokenError: If the identity token cannot be parsed
        """
        logger.info("Exchanging authorization code for tokens")

        data = self._post(
            {
                "grant_type": "authorization_code",
                "client_id": self.client_id,
                "code": code,
                "redirect_uri": redirect_uri,
                "code_verifier": pkce.code_verifier,
            },
            TokenExchangeError,
        )

        token_data = self._build_token_data(data, fallback_refresh_token=None)
        logger.info("Successfully exchanged authorization code for tokens")
        return token_data

    def refresh(self, refresh_token: str) -> TokenData:
        """
        Obtain a new token set using a refresh token.

        Args:
            refresh_token: Current refresh token

        Returns:
            TokenData with new tokens; keeps `refresh_token` when the
            provider does not return a rotated one

        Raises:
            TokenRefreshError: On transport failure, non-2xx status or non-JSON body
            MissingTokenFieldError: If access_token or id_token is absent
            IdTokenError: If the identity token cannot be parsed
        """
        logger.info("Refreshing OAuth tokens")

        data = self._post(
            {
                "grant_type": "refresh_token",
                "client_id": self.client_id,
                "refresh_token": refresh_token,
            },
            TokenRefreshError,
        )

        token_data = self._build_token_data(data, fallback_refresh_token=refresh_token)
        logger.info("Successfully refreshed tokens")
        return token_data

    def _post(self, form: dict, error_cls: type[TokenExchangeError]) -> dict:
        grant = form["grant_type"]
        try:
            response = requests.post(
                self.token_url,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                data=form,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Network error during {grant} request: {e}")
            raise error_cls(f"Network error contacting token endpoint: {e}") from e

        if not 200 <= response.status_code < 300:
            body = response.text
            logger.error(f"Token endpoint returned {response.status_code} for {grant}")
            raise error_cls(
                f"Token endpoint returned {response.status_code}: {body}",
                status_code=response.status_code,
                response_body=body,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise error_cls(
                f"Invalid JSON from token endpoint: {e}",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

        if not isinstance(data, dict):
            raise error_cls(
                "Token endpoint response is not a JSON object",
                status_code=response.status_code,
                response_body=response.text,
            )
        return data

    @staticmethod
    def _build_token_data(data: dict, fallback_refresh_token: Optional[str]) -> TokenData:
        access_token = _require(data, "access_token")
        id_token = parse_id_token(_require(data, "id_token"))

        if fallback_refresh_token is None:
            refresh_token = _require(data, "refresh_token")
        else:
            refresh_token = data.get("refresh_token")
            if not isinstance(refresh_token, str) or not refresh_token:
                refresh_token = fallback_refresh_token

        return TokenData(
            id_token=id_token,
            access_token=access_token,
            refresh_token=refresh_token,
            account_id=data.get("account_id"),
        )


def _require(data: dict, field: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value:
        raise MissingTokenFieldError(field)
    return value
