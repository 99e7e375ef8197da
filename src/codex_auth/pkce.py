"""PKCE verifier/challenge and anti-CSRF state generation."""

import base64
import hashlib
import secrets
from dataclasses import dataclass

VERIFIER_BYTES = 64
STATE_BYTES = 32


def _b64url_nopad(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


@dataclass(frozen=True)
class PkceCodes:
    """
    PKCE pair for one login attempt.

    Attributes:
        code_verifier: Secret sent only to the token endpoint
        code_challenge: S256 challenge sent with the authorization request
    """

    code_verifier: str
    code_challenge: str

    @classmethod
    def from_verifier(cls, code_verifier: str) -> "PkceCodes":
        """Build the pair from an existing verifier."""
        digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
        return cls(code_verifier=code_verifier, code_challenge=_b64url_nopad(digest))


def generate_pkce() -> PkceCodes:
    """
    Generate a fresh PKCE pair.

    The verifier is 64 random bytes, base64url-encoded without padding
    (86 characters, inside the 43..128 range required by RFC 7636).

    Returns:
        PkceCodes with verifier and S256 challenge
    """
    return PkceCodes.from_verifier(_b64url_nopad(secrets.token_bytes(VERIFIER_BYTES)))


def generate_state() -> str:
    """Generate an unguessable OAuth state value (32 random bytes, base64url)."""
    return _b64url_nopad(secrets.token_bytes(STATE_BYTES))
