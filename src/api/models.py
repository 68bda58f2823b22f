"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Field aliases keep the camelCase names used by the web client.
"""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, Field

OtpCode = Annotated[
    str,
    Field(min_length=4, max_length=4, pattern=r"^\d{4}$", description="4-digit one-time code"),
]


class RegisterRequest(BaseModel):
    """Request model for user registration."""

    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128, description="User password (min 8 characters)")
    confirm_password: str = Field(..., alias="confirmPassword", max_length=128)


class RegisterResponse(BaseModel):
    """Response model for successful registration."""

    message: str
    email: str
    expires_in_seconds: int


class OtpRequest(BaseModel):
    """Request model for verifying an account addressed in the path."""

    otp: OtpCode


class VerifyEmailRequest(BaseModel):
    """Request model for verifying an account by email."""

    email: EmailStr
    otp: OtpCode


class EmailRequest(BaseModel):
    """Request model for operations keyed by email only."""

    email: EmailStr


class LoginRequest(BaseModel):
    """Request model for password login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class OtpLoginRequest(BaseModel):
    """Request model for login with a verification code."""

    email: EmailStr
    otp: OtpCode


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(..., alias="refreshToken", min_length=1)


class LoginResponse(BaseModel):
    """Response model for an authenticated session."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    refresh_token: str | None = Field(default=None, alias="refreshToken")
    token_type: str = Field(default="bearer", alias="tokenType")
    expires_at: datetime = Field(..., alias="expiresAt")
    user_id: int = Field(..., alias="userId")
    email: str
    username: str


class VerificationRequiredResponse(BaseModel):
    """Response model when login needs an OTP first."""

    error: str = "OTP_REQUIRED"
    message: str = "Account not verified. OTP sent to email."


class PasswordResetConfirmation(BaseModel):
    """Request model for completing a password reset."""

    model_config = ConfigDict(populate_by_name=True)

    otp: OtpCode
    new_password: str = Field(..., alias="newPassword", min_length=8, max_length=128)


class UpdateUsernameRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)


class AccountResponse(BaseModel):
    """Public view of an account."""

    id: int
    username: str
    email: str


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str
    detail: str
