"""
Domain layer - Business logic free of web and storage framework imports.

This package contains the account lifecycle: the verification state
machine, one-time codes and session tokens. It defines its own port
interfaces for infrastructure abstraction, ensuring hexagonal
architecture decoupling.

The one third-party import is python-jose, confined to tokens.py for
signing session tokens.
"""

from .accounts import AccountService
from .exceptions import (
    AccountConflict,
    AccountError,
    AccountNotFound,
    AlreadyActive,
    AlreadyVerified,
    EmailTaken,
    ErrorKind,
    InvalidCredentials,
    InvalidInput,
    InvalidOrExpiredResetCode,
    InvalidOtp,
    NoOtpPending,
    OtpExpired,
    ResendTooSoon,
    StaleAccount,
    StoreUnavailable,
    Unauthorized,
    UsernameTaken,
)
from .models import Account, AccountSummary, IssuedToken, LoginResult, PendingCode, TokenClaims
from .otp import OtpEngine
from .ports import (
    AccountRepository,
    EmailSender,
    LoginStatus,
    OtpCheck,
    OtpSlot,
    PasswordHasher,
    RevocationStore,
    TokenStatus,
    TokenType,
    UnverifiedLoginPolicy,
)
from .tokens import TokenIssuer, TokenVerification

__all__ = [
    "Account",
    "AccountConflict",
    "AccountError",
    "AccountNotFound",
    "AccountRepository",
    "AccountService",
    "AccountSummary",
    "AlreadyActive",
    "AlreadyVerified",
    "EmailSender",
    "EmailTaken",
    "ErrorKind",
    "InvalidCredentials",
    "InvalidInput",
    "InvalidOrExpiredResetCode",
    "InvalidOtp",
    "IssuedToken",
    "LoginResult",
    "LoginStatus",
    "NoOtpPending",
    "OtpCheck",
    "OtpEngine",
    "OtpExpired",
    "OtpSlot",
    "PasswordHasher",
    "PendingCode",
    "ResendTooSoon",
    "RevocationStore",
    "StaleAccount",
    "StoreUnavailable",
    "TokenClaims",
    "TokenIssuer",
    "TokenStatus",
    "TokenType",
    "TokenVerification",
    "Unauthorized",
    "UnverifiedLoginPolicy",
    "UsernameTaken",
]
