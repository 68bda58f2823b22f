"""
Domain exceptions - Semantic error types for the account lifecycle.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Every exception carries an ErrorKind so the transport layer can map
failures to responses without inspecting messages.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of account lifecycle failures."""

    VALIDATION = "validation_error"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    NO_OTP = "no_otp"
    OTP_EXPIRED = "otp_expired"
    INVALID_OTP = "invalid_otp"
    INVALID_OR_EXPIRED_CODE = "invalid_or_expired_code"
    ALREADY_VERIFIED = "already_verified"
    ALREADY_ACTIVE = "already_active"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"


class AccountError(Exception):
    """Base class for account domain errors."""

    kind: ErrorKind = ErrorKind.VALIDATION
    default_message: str = "Account operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidInput(AccountError):
    """Required input missing or malformed."""

    kind = ErrorKind.VALIDATION
    default_message = "Invalid input"


class AccountConflict(AccountError):
    """Uniqueness or concurrent-update violation."""

    kind = ErrorKind.CONFLICT
    default_message = "Account conflict"


class EmailTaken(AccountConflict):
    """Email is already registered to another account."""

    default_message = "Email already exists"


class UsernameTaken(AccountConflict):
    """Username is already registered to another account."""

    default_message = "Username already taken"


class StaleAccount(AccountConflict):
    """Account changed between read and write."""

    default_message = "Account was modified concurrently"


class AccountNotFound(AccountError):
    kind = ErrorKind.NOT_FOUND
    default_message = "User not found"


class InvalidCredentials(AccountError):
    """Unknown email or wrong password (deliberately indistinguishable)."""

    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid email or password"


class NoOtpPending(AccountError):
    kind = ErrorKind.NO_OTP
    default_message = "No OTP set for user"


class OtpExpired(AccountError):
    kind = ErrorKind.OTP_EXPIRED
    default_message = "OTP expired"


class InvalidOtp(AccountError):
    kind = ErrorKind.INVALID_OTP
    default_message = "Invalid OTP"


class InvalidOrExpiredResetCode(AccountError):
    """Reset code unknown, mismatched, or expired (not distinguished)."""

    kind = ErrorKind.INVALID_OR_EXPIRED_CODE
    default_message = "Invalid or expired OTP"


class AlreadyVerified(AccountError):
    kind = ErrorKind.ALREADY_VERIFIED
    default_message = "User already active"


class AlreadyActive(AccountError):
    kind = ErrorKind.ALREADY_ACTIVE
    default_message = "User already active, use password login"


class Unauthorized(AccountError):
    """Session token missing, malformed, expired, or revoked."""

    kind = ErrorKind.UNAUTHORIZED
    default_message = "Not authenticated"


class ResendTooSoon(AccountError):
    kind = ErrorKind.RATE_LIMITED
    default_message = "OTP was sent recently, try again later"


class StoreUnavailable(AccountError):
    """Account store could not be reached."""

    kind = ErrorKind.UNAVAILABLE
    default_message = "Account store unavailable"
