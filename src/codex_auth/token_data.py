"""
Token data model for Codex authentication.

This module holds the OAuth token set, the claims parsed out of the identity
token, and the auth mode derived from them. The identity token is stored in
auth.json as its raw JWT string and parsed again whenever it is loaded.
"""

import base64
import binascii
import json
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional

from .exceptions import (
    IdTokenDecodeError,
    IdTokenPayloadError,
    InvalidIdTokenFormatError,
)

AUTH_CLAIM = "https://api.openai.com/auth"


class AuthMode(Enum):
    """How requests to the API are authorized."""

    API_KEY = "api_key"
    CHATGPT = "chatgpt"


class KnownPlan(Enum):
    """ChatGPT subscription plans the application knows about."""

    FREE = "free"
    PLUS = "plus"
    PRO = "pro"
    BUSINESS = "business"
    ENTERPRISE = "enterprise"
    EDU = "edu"


@dataclass(frozen=True)
class PlanType:
    """
    Subscription plan claim.

    Either one of the known plans or an unknown plan name kept verbatim, so
    that new plans added by the provider do not break parsing.

    Attributes:
        raw: Claim value as sent by the provider
        known: Matching KnownPlan, or None for an unknown plan
    """

    raw: str
    known: Optional[KnownPlan] = None

    @classmethod
    def parse(cls, value: str) -> "PlanType":
        try:
            return cls(raw=value, known=KnownPlan(value))
        except ValueError:
            return cls(raw=value)

    @property
    def is_known(self) -> bool:
        return self.known is not None

    @property
    def display_name(self) -> str:
        """Capitalised name for known plans (e.g. "Plus"), raw value otherwise."""
        if self.known is not None:
            return self.known.value.capitalize()
        return self.raw

    def should_use_api_key(self) -> bool:
        """Enterprise plans are billed per use through an API key."""
        return self.known is KnownPlan.ENTERPRISE


@dataclass(frozen=True)
class IdTokenInfo:
    """
    Flat subset of the identity token claims.

    Attributes:
        email: Account email, if present
        chatgpt_plan_type: Subscription plan, if present
        raw_jwt: Original compact token (what gets written back to disk)
    """

    email: Optional[str]
    chatgpt_plan_type: Optional[PlanType]
    raw_jwt: str

    def get_chatgpt_plan_type(self) -> Optional[str]:
        if self.chatgpt_plan_type is None:
            return None
        return self.chatgpt_plan_type.display_name


def _decode_segment(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    try:
        return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise IdTokenDecodeError(f"Failed to decode base64: {e}") from e


def parse_id_token(jwt: str) -> IdTokenInfo:
    """
    Parse the identity token without verifying its signature.

    Args:
        jwt: Compact JWT (header.payload.signature)

    Returns:
        IdTokenInfo with email and plan claims

    Raises:
        InvalidIdTokenFormatError: If the token does not have three segments
        IdTokenDecodeError: If the payload is not valid base64url
        IdTokenPayloadError: If the payload is not a JSON object
    """
    parts = jwt.split(".")
    if len(parts) != 3:
        raise InvalidIdTokenFormatError(
            f"Invalid JWT format: expected 3 segments, got {len(parts)}"
        )

    payload_bytes = _decode_segment(parts[1])
    try:
        payload = json.loads(payload_bytes)
    except ValueError as e:
        raise IdTokenPayloadError(f"Failed to parse JSON: {e}") from e

    if not isinstance(payload, dict):
        raise IdTokenPayloadError("JWT payload is not a JSON object")

    email = payload.get("email")
    if not isinstance(email, str):
        email = None

    plan_type = None
    auth_claims = payload.get(AUTH_CLAIM)
    if isinstance(auth_claims, dict):
        plan_value = auth_claims.get("chatgpt_plan_type")
        if isinstance(plan_value, str):
            plan_type = PlanType.parse(plan_value)

    return IdTokenInfo(email=email, chatgpt_plan_type=plan_type, raw_jwt=jwt)


@dataclass(frozen=True)
class TokenData:
    """
    OAuth token set.

    Attributes:
        id_token: Parsed identity token
        access_token: Token used to authorize API calls
        refresh_token: Long-lived token for obtaining new access tokens
        account_id: ChatGPT account ID, if known
    """

    id_token: IdTokenInfo
    access_token: str
    refresh_token: str
    account_id: Optional[str] = None

    def is_plan_that_should_use_api_key(self) -> bool:
        """
        True when requests should be billed through the API key.

        A token set with no plan claim counts as metered as well.
        """
        plan = self.id_token.chatgpt_plan_type
        return plan is None or plan.should_use_api_key()

    def with_refreshed(self, other: "TokenData") -> "TokenData":
        """Return `other`, keeping this set's account_id if `other` has none."""
        if other.account_id is None and self.account_id is not None:
            return replace(other, account_id=self.account_id)
        return other

    def to_dict(self) -> dict:
        """
        Convert to dictionary for JSON serialization.

        The identity token is written as its raw JWT string.
        """
        return {
            "id_token": self.id_token.raw_jwt,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "account_id": self.account_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenData":
        """
        Create TokenData from its serialized form.

        Raises:
            KeyError: If required fields are missing
            IdTokenError: If the stored identity token cannot be parsed
        """
        return cls(
            id_token=parse_id_token(data["id_token"]),
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            account_id=data.get("account_id"),
        )
