"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from pydantic import BaseModel, ConfigDict, Field

# Base64 text of a public key, including line breaks
MAX_PUBLIC_KEY_LENGTH = 64 * 1024


class RegisterRequest(BaseModel):
    """
    Registration form.

    Either ``phone`` alone (request a code) or ``code`` together with
    ``publickey`` (complete registration).
    """

    model_config = ConfigDict(extra="ignore")

    phone: str | None = Field(None, max_length=64, description="Phone number, international format")
    code: str | None = Field(None, max_length=32, description="Verification code received by SMS")
    publickey: str | None = Field(
        None,
        max_length=MAX_PUBLIC_KEY_LENGTH,
        description="Base64-encoded OpenPGP public key with a user id on this domain",
    )


class CodeSentResponse(BaseModel):
    """Response after a verification code was sent."""

    instructions: str
    sender_identity: str


class SignedKeyResponse(BaseModel):
    """Response after successful registration."""

    form_type: str
    public_key: str = Field(..., description="Base64-encoded public key signed by the server")


class StatisticsResponse(BaseModel):
    """Registration counters since process start."""

    registration_attempts: int
    registered_users: int
    invalid_registrations: int


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
