"""
One-time code engine - Issue, validate and expire numeric codes.

Both the email-verification OTP and the password-reset code are handled
here, each in its own account slot with its own validity window.

Slot lifecycle:
    empty   --issue-->     pending
    pending --issue-->     pending (new code, unconditional overwrite)
    pending --validate-->  empty   (only when expired)
    pending --caller-->    empty   (after a successful OK validation)

Expiry is derived from issued_at; an expired code that is still stored
is reported as EXPIRED exactly once and then cleared.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .exceptions import StoreUnavailable
from .models import Account, PendingCode, utcnow
from .ports import AccountRepository, OtpCheck, OtpSlot

logger = logging.getLogger(__name__)

# Codes are drawn from 1000-9999 so they never carry a leading zero.
CODE_MIN = 1000
CODE_MAX = 9999

# Attempts at finding a reset code no other account currently holds.
MAX_RESET_CODE_ATTEMPTS = 10


@dataclass
class OtpEngine:
    """
    Domain service for one-time codes.

    Persistence goes through the repository so that issue() and an
    expiring validate() are each a single atomic save.
    """

    repository: AccountRepository
    verification_window: timedelta = timedelta(minutes=10)
    reset_window: timedelta = timedelta(minutes=10)
    clock: Callable[[], datetime] = field(default=utcnow)

    def generate(self) -> str:
        """
        Generate a cryptographically secure 4-digit code.

        Uses secrets module for unpredictability.
        Returns string for exact comparison with user input.
        """
        return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))

    def window(self, slot: OtpSlot) -> timedelta:
        if slot is OtpSlot.RESET:
            return self.reset_window
        return self.verification_window

    def mint(self, account: Account, slot: OtpSlot) -> str:
        """
        Place a fresh code into slot without persisting.

        Used when the caller saves the account itself, e.g. registration
        where creating the account and its first code is one insert.
        """
        code = self._fresh_code(account, slot)
        self._set(account, slot, PendingCode(code=code, issued_at=self.clock()))
        return code

    def issue(self, account: Account, slot: OtpSlot) -> str:
        """
        Place a fresh code into slot and persist the account.

        Overwrites any code already pending in that slot.

        Returns:
            The code, for delivery by the caller

        Raises:
            StoreUnavailable: No reset code free of other live holders
        """
        code = self.mint(account, slot)
        self.repository.save(account)
        logger.info("Issued %s code for account %s", slot.value, account.id)
        return code

    def current(self, account: Account, slot: OtpSlot) -> PendingCode | None:
        """Return the pending code in slot if present and unexpired."""
        pending = self._get(account, slot)
        if pending is None or pending.is_expired(self.clock(), self.window(slot)):
            return None
        return pending

    def validate(self, account: Account, slot: OtpSlot, supplied_code: str) -> OtpCheck:
        """
        Compare a supplied code with the code pending in slot.

        Check order:
        1. ABSENT if the slot is empty
        2. EXPIRED if now > issued_at + window (slot cleared and persisted)
        3. MISMATCH if codes differ (constant-time compare, input stripped)
        4. OK otherwise; clearing the slot is left to the caller

        Returns:
            OtpCheck describing the outcome
        """
        pending = self._get(account, slot)
        if pending is None:
            return OtpCheck.ABSENT

        if pending.is_expired(self.clock(), self.window(slot)):
            self._set(account, slot, None)
            self.repository.save(account)
            logger.info("Expired %s code cleared for account %s", slot.value, account.id)
            return OtpCheck.EXPIRED

        supplied = (supplied_code or "").strip()
        if not secrets.compare_digest(pending.code.encode(), supplied.encode()):
            return OtpCheck.MISMATCH

        return OtpCheck.OK

    def _fresh_code(self, account: Account, slot: OtpSlot) -> str:
        """
        Generate a code for slot.

        Reset codes double as lookup keys, so avoid codes another account
        still holds unexpired.

        Raises:
            StoreUnavailable: every attempt hit another account's live code
        """
        code = self.generate()
        if slot is not OtpSlot.RESET:
            return code

        for _ in range(MAX_RESET_CODE_ATTEMPTS):
            holder = self.repository.find_by_pending_reset_code(code)
            if (
                holder is None
                or holder.id == account.id
                or self.current(holder, OtpSlot.RESET) is None
            ):
                return code
            code = self.generate()

        logger.warning("Could not find an unused reset code after %d attempts", MAX_RESET_CODE_ATTEMPTS)
        raise StoreUnavailable("No unused reset code available")

    @staticmethod
    def _get(account: Account, slot: OtpSlot) -> PendingCode | None:
        if slot is OtpSlot.RESET:
            return account.pending_reset
        return account.pending_otp

    @staticmethod
    def _set(account: Account, slot: OtpSlot, pending: PendingCode | None) -> None:
        if slot is OtpSlot.RESET:
            account.pending_reset = pending
        else:
            account.pending_otp = pending
