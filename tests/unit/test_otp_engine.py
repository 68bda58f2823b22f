"""
Unit tests for OtpEngine.

Tests verify:
- Code generation format and randomness
- Issue overwrites and persists
- Validation outcomes (ABSENT, EXPIRED, MISMATCH, OK)
- Expiry boundary is deterministic and clears the slot
- Reset codes avoid collisions with other live reset codes
"""

import re
from datetime import timedelta
from unittest.mock import Mock

import pytest

from src.domain.exceptions import StoreUnavailable
from src.domain.models import Account, PendingCode
from src.domain.otp import MAX_RESET_CODE_ATTEMPTS, OtpEngine
from src.domain.ports import OtpCheck, OtpSlot


@pytest.fixture
def account(repository) -> Account:
    account = Account(username="alice", email="a@x.com", password_hash="hash")
    repository.save(account)
    return account


class TestGenerate:
    """Tests for code generation."""

    def test_code_is_4_digits(self, otp_engine: OtpEngine) -> None:
        """Generated code is exactly 4 digits."""
        code = otp_engine.generate()
        assert re.match(r"^\d{4}$", code)

    def test_code_in_range(self, otp_engine: OtpEngine) -> None:
        """Codes fall within 1000-9999 (no leading zero)."""
        for _ in range(200):
            assert 1000 <= int(otp_engine.generate()) <= 9999

    def test_codes_vary(self, otp_engine: OtpEngine) -> None:
        """Codes are not always the same (randomness check)."""
        codes = {otp_engine.generate() for _ in range(20)}
        assert len(codes) >= 2


class TestIssue:
    """Tests for issue() and mint()."""

    def test_issue_sets_slot_and_persists(self, otp_engine, repository, account, clock) -> None:
        """Issued code is stored with the current time."""
        code = otp_engine.issue(account, OtpSlot.VERIFICATION)

        stored = repository.find_by_id(account.id)
        assert stored.pending_otp == PendingCode(code=code, issued_at=clock())
        assert stored.pending_reset is None

    def test_issue_reset_slot_is_independent(self, otp_engine, repository, account) -> None:
        """Issuing a reset code leaves the verification slot alone."""
        otp_code = otp_engine.issue(account, OtpSlot.VERIFICATION)
        reset_code = otp_engine.issue(account, OtpSlot.RESET)

        stored = repository.find_by_id(account.id)
        assert stored.pending_otp.code == otp_code
        assert stored.pending_reset.code == reset_code

    def test_issue_overwrites_existing_code(self, otp_engine, repository, account, clock) -> None:
        """A second issue replaces the first code unconditionally."""
        otp_engine.issue(account, OtpSlot.VERIFICATION)
        clock.advance(10)
        second = otp_engine.issue(account, OtpSlot.VERIFICATION)

        stored = repository.find_by_id(account.id)
        assert stored.pending_otp.code == second
        assert stored.pending_otp.issued_at == clock()

    def test_mint_does_not_persist(self, clock) -> None:
        """mint() only changes the in-memory account."""
        repo = Mock()
        engine = OtpEngine(repository=repo, clock=clock)
        account = Account(username="bob", email="b@x.com", password_hash="hash")

        code = engine.mint(account, OtpSlot.VERIFICATION)

        assert account.pending_otp.code == code
        repo.save.assert_not_called()


class TestValidate:
    """Tests for validate() outcomes."""

    def test_absent_when_slot_empty(self, otp_engine, account) -> None:
        assert otp_engine.validate(account, OtpSlot.VERIFICATION, "1234") is OtpCheck.ABSENT

    def test_ok_for_correct_code(self, otp_engine, account) -> None:
        code = otp_engine.issue(account, OtpSlot.VERIFICATION)
        assert otp_engine.validate(account, OtpSlot.VERIFICATION, code) is OtpCheck.OK

    def test_ok_does_not_clear_slot(self, otp_engine, account) -> None:
        """Clearing after OK is the caller's job."""
        code = otp_engine.issue(account, OtpSlot.VERIFICATION)
        otp_engine.validate(account, OtpSlot.VERIFICATION, code)
        assert account.pending_otp is not None

    def test_supplied_code_is_trimmed(self, otp_engine, account) -> None:
        code = otp_engine.issue(account, OtpSlot.VERIFICATION)
        assert otp_engine.validate(account, OtpSlot.VERIFICATION, f"  {code}\n") is OtpCheck.OK

    def test_mismatch_for_wrong_code(self, otp_engine, account) -> None:
        code = otp_engine.issue(account, OtpSlot.VERIFICATION)
        wrong = "1000" if code != "1000" else "1001"
        assert otp_engine.validate(account, OtpSlot.VERIFICATION, wrong) is OtpCheck.MISMATCH

    def test_mismatch_keeps_slot(self, otp_engine, account) -> None:
        code = otp_engine.issue(account, OtpSlot.VERIFICATION)
        otp_engine.validate(account, OtpSlot.VERIFICATION, "not-it")
        assert account.pending_otp.code == code

    def test_non_ascii_input_is_mismatch(self, otp_engine, account) -> None:
        otp_engine.issue(account, OtpSlot.VERIFICATION)
        assert otp_engine.validate(account, OtpSlot.VERIFICATION, "١٢٣٤") is OtpCheck.MISMATCH

    def test_wrong_slot_is_absent(self, otp_engine, account) -> None:
        """A verification code cannot be used as a reset code."""
        code = otp_engine.issue(account, OtpSlot.VERIFICATION)
        assert otp_engine.validate(account, OtpSlot.RESET, code) is OtpCheck.ABSENT


class TestExpiry:
    """Tests for the fixed validity window (300 seconds in fixtures)."""

    def test_ok_one_second_after_issue(self, otp_engine, account, clock) -> None:
        code = otp_engine.issue(account, OtpSlot.VERIFICATION)
        clock.advance(1)
        assert otp_engine.validate(account, OtpSlot.VERIFICATION, code) is OtpCheck.OK

    def test_ok_exactly_at_window_end(self, otp_engine, account, clock) -> None:
        """Expiry is strictly after issued_at + window."""
        code = otp_engine.issue(account, OtpSlot.VERIFICATION)
        clock.advance(300)
        assert otp_engine.validate(account, OtpSlot.VERIFICATION, code) is OtpCheck.OK

    def test_expired_after_window(self, otp_engine, account, clock) -> None:
        code = otp_engine.issue(account, OtpSlot.VERIFICATION)
        clock.advance(301)
        assert otp_engine.validate(account, OtpSlot.VERIFICATION, code) is OtpCheck.EXPIRED

    def test_expiry_clears_and_persists_slot(self, otp_engine, repository, account, clock) -> None:
        code = otp_engine.issue(account, OtpSlot.VERIFICATION)
        clock.advance(301)
        otp_engine.validate(account, OtpSlot.VERIFICATION, code)

        assert account.pending_otp is None
        assert repository.find_by_id(account.id).pending_otp is None

    def test_expired_code_reported_once_then_absent(self, otp_engine, account, clock) -> None:
        code = otp_engine.issue(account, OtpSlot.VERIFICATION)
        clock.advance(301)
        assert otp_engine.validate(account, OtpSlot.VERIFICATION, code) is OtpCheck.EXPIRED
        assert otp_engine.validate(account, OtpSlot.VERIFICATION, code) is OtpCheck.ABSENT

    def test_expired_even_with_wrong_code(self, otp_engine, account, clock) -> None:
        """Expiry is checked before the code comparison."""
        otp_engine.issue(account, OtpSlot.VERIFICATION)
        clock.advance(301)
        assert otp_engine.validate(account, OtpSlot.VERIFICATION, "0000") is OtpCheck.EXPIRED

    def test_windows_are_per_slot(self, repository, clock) -> None:
        engine = OtpEngine(
            repository=repository,
            verification_window=timedelta(seconds=60),
            reset_window=timedelta(seconds=600),
            clock=clock,
        )
        account = Account(username="carol", email="c@x.com", password_hash="hash")
        repository.save(account)
        otp_code = engine.issue(account, OtpSlot.VERIFICATION)
        reset_code = engine.issue(account, OtpSlot.RESET)

        clock.advance(120)

        assert engine.validate(account, OtpSlot.VERIFICATION, otp_code) is OtpCheck.EXPIRED
        assert engine.validate(account, OtpSlot.RESET, reset_code) is OtpCheck.OK

    def test_current_ignores_expired_code(self, otp_engine, account, clock) -> None:
        otp_engine.issue(account, OtpSlot.VERIFICATION)
        assert otp_engine.current(account, OtpSlot.VERIFICATION) is not None
        clock.advance(301)
        assert otp_engine.current(account, OtpSlot.VERIFICATION) is None


class TestResetCodeCollisions:
    """Reset codes are lookup keys, so live duplicates are avoided."""

    def test_reset_code_skips_code_held_by_other_account(self, repository, clock) -> None:
        engine = OtpEngine(repository=repository, clock=clock)
        holder = Account(username="holder", email="h@x.com", password_hash="hash")
        holder.pending_reset = PendingCode(code="4321", issued_at=clock())
        repository.save(holder)
        other = Account(username="other", email="o@x.com", password_hash="hash")
        repository.save(other)

        engine.generate = Mock(side_effect=["4321", "4321", "5555"])
        code = engine.issue(other, OtpSlot.RESET)

        assert code == "5555"

    def test_reset_code_may_reuse_expired_code(self, repository, clock) -> None:
        engine = OtpEngine(repository=repository, reset_window=timedelta(seconds=60), clock=clock)
        holder = Account(username="holder", email="h@x.com", password_hash="hash")
        holder.pending_reset = PendingCode(code="4321", issued_at=clock())
        repository.save(holder)
        other = Account(username="other", email="o@x.com", password_hash="hash")
        repository.save(other)
        clock.advance(120)

        engine.generate = Mock(return_value="4321")
        code = engine.issue(other, OtpSlot.RESET)

        assert code == "4321"
        assert repository.find_by_pending_reset_code("4321").id == other.id

    def test_reset_code_exhaustion_raises_instead_of_sharing(self, repository, clock) -> None:
        engine = OtpEngine(repository=repository, clock=clock)
        holder = Account(username="holder", email="h@x.com", password_hash="hash")
        holder.pending_reset = PendingCode(code="4321", issued_at=clock())
        repository.save(holder)
        other = Account(username="other", email="o@x.com", password_hash="hash")
        repository.save(other)

        engine.generate = Mock(return_value="4321")
        with pytest.raises(StoreUnavailable):
            engine.issue(other, OtpSlot.RESET)

        assert repository.find_by_email("o@x.com").pending_reset is None
        assert repository.find_by_pending_reset_code("4321").id == holder.id
        assert engine.generate.call_count == MAX_RESET_CODE_ATTEMPTS + 1
