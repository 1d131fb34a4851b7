"""
API request and response models for the Grihome auth REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Public identity fields are camelCase on the wire (mobileNumber, isAgent, ...)
to keep the JSON shape clients already consume; the Python attribute names
stay snake_case.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import LoginType, SessionView, VerificationChannel

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    Every field is optional at the schema level. Missing credentials must be
    rejected with the same 401 as wrong credentials, not with a 422 that
    tells the caller which part was missing.
    """

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    identifier: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)
    otp: Optional[str] = Field(default=None, max_length=16)
    token: Optional[str] = Field(default=None, max_length=4096, description="OTP widget access token")
    login_type: LoginType = Field(default=LoginType.password, alias="loginType")


class CheckVerificationRequest(BaseModel):
    """Request body for POST /api/v1/auth/check-verification."""

    model_config = ConfigDict(str_strip_whitespace=True)

    type: VerificationChannel
    value: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class SessionUserResponse(BaseModel):
    """The public identity object."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    image: Optional[str] = None
    username: Optional[str] = None
    mobile_number: Optional[str] = None
    is_email_verified: bool = False
    is_mobile_verified: bool = False
    is_agent: bool = False
    company_name: Optional[str] = None
    image_link: Optional[str] = None

    @classmethod
    def from_view(cls, view: SessionView) -> "SessionUserResponse":
        return cls(**view.to_dict())


class SessionResponse(BaseModel):
    """Response for GET/POST /api/v1/auth/session. Empty object when signed out."""

    model_config = ConfigDict(frozen=True)

    user: Optional[SessionUserResponse] = None
    expires: Optional[str] = None


class LoginResponse(BaseModel):
    """Response for a successful POST /api/v1/auth/login."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: SessionUserResponse


class CheckVerificationResponse(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    can_send_otp: bool = Field(alias="canSendOTP")
    message: str


class VerificationStatusResponse(BaseModel):
    """Raw verification timestamps for the signed-in account.

    is_verified is true once either channel has been proven; message says what
    to do when it is not.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    email_verified: Optional[str] = None
    mobile_verified: Optional[str] = None
    is_verified: bool = False
    message: Optional[str] = None


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
