"""Authentication-related schemas and the authenticated actor."""

from pydantic import BaseModel, ConfigDict, Field


class Actor(BaseModel):
    """Already-verified caller handed to services by the auth layer."""

    id: str
    role: str
    partner_id: str | None = None
    phone: str | None = None

    model_config = ConfigDict(frozen=True)


class OtpRequest(BaseModel):
    """Payload for requesting a one-time login code."""

    phone: str = Field(min_length=6, max_length=32)


class OtpVerifyRequest(BaseModel):
    """Payload for exchanging a one-time code for a token."""

    phone: str = Field(min_length=6, max_length=32)
    code: str = Field(min_length=4, max_length=12)
    name: str | None = None
    # Only used when the phone signs up for the first time.
    role: str | None = None


class TokenResponse(BaseModel):
    """JWT response payload."""

    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: str
    partner_id: str | None = None


class AuthUserResponse(BaseModel):
    """User response for auth endpoints."""

    id: str
    name: str | None = None
    phone: str
    role: str
    is_verified: bool

    model_config = ConfigDict(from_attributes=True)


class OtpIssuedResponse(BaseModel):
    """Acknowledgement of an issued code; ``dev_code`` is only filled outside production."""

    phone: str
    expires_in_seconds: int
    dev_code: str | None = None
