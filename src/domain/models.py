"""
Domain models - Account record and derived session values.

Expiry of pending codes is derived from issued_at and a validity window,
never stored. The version counter is bumped by the repository on every
save and used for compare-and-swap updates.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from .ports import LoginStatus, TokenType


def utcnow() -> datetime:
    """Default clock: timezone-aware current UTC time."""
    return datetime.now(UTC)


@dataclass
class PendingCode:
    """A one-time code outstanding in an account slot."""

    code: str
    issued_at: datetime

    def expires_at(self, window: timedelta) -> datetime:
        return self.issued_at + window

    def is_expired(self, now: datetime, window: timedelta) -> bool:
        """Expired strictly after issued_at + window."""
        return now > self.expires_at(window)


@dataclass
class Account:
    """
    The sole persisted entity.

    State is derived from fields:
    - Unverified: verified is False (pending_otp normally set)
    - Active: verified is True (pending_otp always None)
    - Deleted: absence from the repository
    """

    username: str
    email: str
    password_hash: str
    id: int | None = None
    verified: bool = False
    pending_otp: PendingCode | None = None
    pending_reset: PendingCode | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    version: int = 0

    def summary(self) -> "AccountSummary":
        return AccountSummary(id=self.id, username=self.username, email=self.email)


@dataclass(frozen=True)
class AccountSummary:
    """Public projection of an account (no hash, no pending codes)."""

    id: int | None
    username: str
    email: str


@dataclass(frozen=True)
class IssuedToken:
    """A freshly signed session token."""

    token: str
    token_id: str
    session_id: str
    token_type: TokenType
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class TokenClaims:
    """Identity claims decoded from a session token."""

    account_id: int
    email: str
    username: str
    token_id: str
    session_id: str
    token_type: TokenType
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class LoginResult:
    """
    Outcome of a login attempt.

    AUTHENTICATED carries the session tokens. VERIFICATION_REQUIRED is a
    distinguished non-error outcome: the password was correct but the
    account still has to prove control of its email.
    """

    status: LoginStatus
    account_id: int | None
    email: str
    username: str
    token: str | None = None
    refresh_token: str | None = None
    expires_at: datetime | None = None
