"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, no I/O). Stores and services do the
work; these types only own shape and the small derivations that belong to
the shape itself (camelCase payload mapping, derived booleans).

Two representations of the same identity live here:
  Account -- the persisted row, with raw verification timestamps.
  Claims  -- the signed snapshot carried in the session token, with derived
             booleans instead of timestamps and `mobile_number` instead of
             `phone`.
SessionView is the public projection of the two. It never carries a raw
timestamp.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

AGENT_ROLE = "AGENT"
DEFAULT_ROLE = "USER"


class VerificationChannel(str, Enum):
    email = "email"
    mobile = "mobile"


class LoginType(str, Enum):
    password = "password"  # noqa: S105 -- enum label, not a secret
    otp = "otp"


class LookupField(str, Enum):
    """Account column an identifier is matched against."""

    email = "email"
    phone = "phone"
    username = "username"


@dataclass
class Account:
    """Identity row owned by the persistent store.

    Any of email/phone/username may be None; `id` is the only guaranteed key.
    hashed_password is None for accounts that only ever sign in with a code.
    Verification timestamps are ISO-8601 UTC strings, None until the channel
    has been proven at least once. Nothing clears them automatically.
    """

    id: str | None = None
    email: str | None = None
    phone: str | None = None
    username: str | None = None
    name: str | None = None
    hashed_password: str | None = None
    role: str = DEFAULT_ROLE
    company_name: str | None = None
    avatar_url: str | None = None
    email_verified_at: str | None = None
    mobile_verified_at: str | None = None
    created_at: str | None = None


# ---------------------------------------------------------------------------
# Credentials -- tagged union validated before dispatch
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PasswordCredential:
    identifier: str
    secret: str

    @property
    def login_type(self) -> LoginType:
        return LoginType.password


@dataclass(frozen=True)
class OtpCredential:
    """A one-time-code login.

    `code` is the digits the user typed; `access_token` is the proof issued by
    the OTP widget after it verified the code out-of-band. At least one is set.
    """

    identifier: str
    code: str | None = None
    access_token: str | None = None

    @property
    def login_type(self) -> LoginType:
        return LoginType.otp


Credential = Union[PasswordCredential, OtpCredential]


# ---------------------------------------------------------------------------
# Session token claims
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Claims:
    """Snapshot of identity attributes carried inside the signed session token.

    Frozen: a refresh builds a new Claims object rather than mutating this one,
    so a reader never observes a half-updated claim set.
    """

    sub: str | None = None
    email: str | None = None
    name: str | None = None
    role: str | None = None
    username: str | None = None
    mobile_number: str | None = None
    is_email_verified: bool = False
    is_mobile_verified: bool = False
    is_agent: bool = False
    company_name: str | None = None
    avatar_url: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Return the JWT body (camelCase keys, `sub` as the subject claim)."""
        return {
            "sub": self.sub,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "username": self.username,
            "mobileNumber": self.mobile_number,
            "isEmailVerified": self.is_email_verified,
            "isMobileVerified": self.is_mobile_verified,
            "isAgent": self.is_agent,
            "companyName": self.company_name,
            "avatarUrl": self.avatar_url,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Claims:
        """Build Claims from a decoded JWT body. Unknown keys (exp, iat) are ignored."""
        return cls(
            sub=payload.get("sub"),
            email=payload.get("email"),
            name=payload.get("name"),
            role=payload.get("role"),
            username=payload.get("username"),
            mobile_number=payload.get("mobileNumber"),
            is_email_verified=bool(payload.get("isEmailVerified", False)),
            is_mobile_verified=bool(payload.get("isMobileVerified", False)),
            is_agent=bool(payload.get("isAgent", False)),
            company_name=payload.get("companyName"),
            avatar_url=payload.get("avatarUrl"),
        )


# ---------------------------------------------------------------------------
# Session projection
# ---------------------------------------------------------------------------


@dataclass
class SessionShell:
    """What the transport layer knows about a session before projection."""

    name: str | None = None
    email: str | None = None
    image: str | None = None
    expires: str | None = None


@dataclass(frozen=True)
class SessionView:
    """Public identity object returned to clients. Never persisted."""

    id: str
    email: str | None = None
    name: str | None = None
    role: str | None = None
    image: str | None = None
    username: str | None = None
    mobile_number: str | None = None
    is_email_verified: bool = False
    is_mobile_verified: bool = False
    is_agent: bool = False
    company_name: str | None = None
    image_link: str | None = None
    expires: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stable public JSON shape."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "image": self.image,
            "username": self.username,
            "mobileNumber": self.mobile_number,
            "isEmailVerified": self.is_email_verified,
            "isMobileVerified": self.is_mobile_verified,
            "isAgent": self.is_agent,
            "companyName": self.company_name,
            "imageLink": self.image_link,
        }


# ---------------------------------------------------------------------------
# OTP gateway
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GatewayResult:
    """Outcome of an access-token verification at the OTP gateway.

    success=False covers every rejection the gateway reports. Transport
    failures are not represented here; they raise GatewayError.
    """

    success: bool
    identifier: str | None = None
    channel: VerificationChannel | None = None
    message: str = ""
