"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, plus the result enums shared by domain and
adapters. Adapters implement these protocols structurally.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import Account


class OtpSlot(str, Enum):
    """Which pending-code slot of an account an operation targets."""

    VERIFICATION = "verification"
    RESET = "reset"


class OtpCheck(Enum):
    """
    Result of validating a supplied code against a slot.

    Only OK leaves the slot untouched; EXPIRED clears it as a side effect.
    """

    OK = "ok"
    EXPIRED = "expired"
    MISMATCH = "mismatch"
    ABSENT = "absent"


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenStatus(Enum):
    """Result of verifying a presented session token."""

    VALID = "valid"
    INVALID = "invalid"
    EXPIRED = "expired"
    REVOKED = "revoked"


class LoginStatus(str, Enum):
    AUTHENTICATED = "authenticated"
    VERIFICATION_REQUIRED = "verification_required"


class UnverifiedLoginPolicy(str, Enum):
    """
    How a correct-password login on an unverified account is answered.

    ISSUE_OTP: return VERIFICATION_REQUIRED and email a code if none is live.
    REJECT: fail with InvalidCredentials.
    """

    ISSUE_OTP = "issue_otp"
    REJECT = "reject"


class AccountRepository(Protocol):
    """Port interface for account persistence."""

    def find_by_id(self, account_id: int) -> "Account | None": ...

    def find_by_username(self, username: str) -> "Account | None": ...

    def find_by_email(self, email: str) -> "Account | None": ...

    def find_by_pending_reset_code(self, code: str) -> "Account | None":
        """
        Find the account holding a reset code.

        When several accounts hold the same code (only possible once the
        older ones have expired), the most recently issued one is returned.
        """
        ...

    def save(self, account: "Account") -> "Account":
        """
        Insert (id is None) or update the account atomically.

        Assigns id on insert, bumps version and updated_at on the passed
        object. Updates are compare-and-swap on version.

        Raises:
            EmailTaken / UsernameTaken: uniqueness violated
            StaleAccount: stored version differs from account.version
            StoreUnavailable: store could not be reached
        """
        ...

    def delete_by_id(self, account_id: int) -> bool:
        """Delete an account. Returns False if no such account."""
        ...

    def find_all(self) -> "list[Account]": ...


class PasswordHasher(Protocol):
    """Port interface for one-way password hashing."""

    def hash(self, password: str) -> str: ...

    def verify(self, password: str, password_hash: str | None) -> bool:
        """
        Check a password against a stored hash.

        A None hash must still cost a full comparison and return False,
        so callers can equalize timing for unknown accounts.
        """
        ...


class EmailSender(Protocol):
    """Port interface for email delivery (fire-and-forget)."""

    def send(self, address: str, subject: str, body: str) -> None:
        """
        Deliver a message to address.

        Args:
            address: Recipient email address
            subject: Message subject line
            body: Plain-text body
        """
        ...


class RevocationStore(Protocol):
    """Port interface for the set of revoked token ids and session ids."""

    def add(self, token_id: str, expires_at: datetime) -> None: ...

    def contains(self, token_id: str) -> bool: ...
