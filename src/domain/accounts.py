"""
Account lifecycle domain service - Verification state machine.

This module contains the core business logic for registration, email
verification, login, password reset and account administration.

Account State Machine
=====================

States:
- UNVERIFIED: Initial state after registration (pending_otp issued)
- ACTIVE: verified is True after a successful OTP check
- DELETED: Account removed by an administrator (absence, not a stored state)

Valid Transitions:
    UNVERIFIED -> ACTIVE    (verify_email or login_with_otp with correct code)
    UNVERIFIED -> DELETED   (delete_account)
    ACTIVE     -> DELETED   (delete_account)

ACTIVE is never reverted to UNVERIFIED. Concurrent verifications are
settled by the repository's compare-and-swap save: the loser reloads and
observes the account already verified.

Session tokens are only issued to ACTIVE accounts.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta

from .exceptions import (
    AccountNotFound,
    AlreadyActive,
    AlreadyVerified,
    EmailTaken,
    InvalidCredentials,
    InvalidInput,
    InvalidOrExpiredResetCode,
    InvalidOtp,
    NoOtpPending,
    OtpExpired,
    ResendTooSoon,
    StaleAccount,
    Unauthorized,
    UsernameTaken,
)
from .models import Account, AccountSummary, LoginResult, TokenClaims
from .otp import OtpEngine
from .ports import (
    AccountRepository,
    EmailSender,
    LoginStatus,
    OtpCheck,
    OtpSlot,
    PasswordHasher,
    TokenType,
    UnverifiedLoginPolicy,
)
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)


@dataclass
class AccountService:
    """
    Domain service for the account lifecycle.

    Orchestrates validation, password hashing, code issuance, session
    tokens and notifications. Every mutation is a single repository save.
    """

    repository: AccountRepository
    password_hasher: PasswordHasher
    email_sender: EmailSender
    otp: OtpEngine
    tokens: TokenIssuer
    unverified_login_policy: UnverifiedLoginPolicy = UnverifiedLoginPolicy.ISSUE_OTP
    resend_cooldown: timedelta = timedelta(0)

    # ---------------------------------------------------------------
    # Registration and verification
    # ---------------------------------------------------------------

    def register(self, username: str, email: str, password: str, confirm_password: str) -> None:
        """
        Register a new, unverified account and email it a verification code.

        Args:
            username: Desired username (stripped, case-sensitive)
            email: Email address (will be normalized)
            password: Plaintext password (will be hashed)
            confirm_password: Must equal password

        Raises:
            InvalidInput: A field is missing or passwords differ
            EmailTaken: Email already registered
            UsernameTaken: Username already registered
        """
        if not all(value and value.strip() for value in (username, email, password, confirm_password)):
            raise InvalidInput("All fields are required")
        if password != confirm_password:
            raise InvalidInput("Passwords do not match")

        username = username.strip()
        normalized_email = self._normalize_email(email)

        # Both checks run before any write
        email_taken = self.repository.find_by_email(normalized_email) is not None
        username_taken = self.repository.find_by_username(username) is not None
        if email_taken:
            raise EmailTaken()
        if username_taken:
            raise UsernameTaken()

        account = Account(
            username=username,
            email=normalized_email,
            password_hash=self.password_hasher.hash(password),
        )
        code = self.otp.mint(account, OtpSlot.VERIFICATION)
        self.repository.save(account)
        logger.info("Registered account %s", account.id)

        self._notify(
            normalized_email,
            "Verify your email",
            f"Your OTP is: {code}",
        )

    def verify_email(self, identifier: str, code: str) -> None:
        """
        Activate an account with its verification code.

        Args:
            identifier: Account id (digits) or email address
            code: Verification code from the email

        Raises:
            AccountNotFound, AlreadyVerified, NoOtpPending, OtpExpired, InvalidOtp
        """
        account = self._resolve_identifier(identifier)
        if account is None:
            raise AccountNotFound()
        if account.verified:
            raise AlreadyVerified()

        self._check_verification_code(account, code)
        with self._first_activation(account, AlreadyVerified):
            self._activate(account)

        logger.info("Verified account %s", account.id)
        self._notify(account.email, "Welcome", "Your account is now active.")

    def resend_otp(self, email: str) -> None:
        """
        Replace the pending verification code with a fresh one and email it.

        Raises:
            AccountNotFound, AlreadyVerified, ResendTooSoon
        """
        account = self.repository.find_by_email(self._normalize_email(email))
        if account is None:
            raise AccountNotFound()
        if account.verified:
            raise AlreadyVerified()

        if self.resend_cooldown > timedelta(0):
            pending = account.pending_otp
            if pending is not None and self.otp.clock() < pending.issued_at + self.resend_cooldown:
                raise ResendTooSoon()

        code = self.otp.issue(account, OtpSlot.VERIFICATION)
        self._notify(account.email, "OTP Notification", f"Your OTP is: {code}")

    # ---------------------------------------------------------------
    # Login and sessions
    # ---------------------------------------------------------------

    def login(self, email: str, password: str) -> LoginResult:
        """
        Authenticate with email and password.

        Unknown email and wrong password raise the same InvalidCredentials,
        and both run a full bcrypt comparison.

        Returns:
            AUTHENTICATED result with tokens for verified accounts, or
            VERIFICATION_REQUIRED for unverified ones (ISSUE_OTP policy)

        Raises:
            InvalidCredentials: Unknown email, wrong password, or unverified
                account under the REJECT policy
        """
        if not email or not password:
            raise InvalidCredentials()

        account = self.repository.find_by_email(self._normalize_email(email))
        if account is None:
            self.password_hasher.verify(password, None)
            raise InvalidCredentials()
        if not self.password_hasher.verify(password, account.password_hash):
            logger.info("Failed login for account %s", account.id)
            raise InvalidCredentials()

        if not account.verified:
            return self._unverified_login(account)

        logger.info("Login for account %s", account.id)
        return self._session(account)

    def login_with_otp(self, email: str, code: str) -> LoginResult:
        """
        Verify an unverified account and open a session in one step.

        Raises:
            AccountNotFound, AlreadyActive, NoOtpPending, OtpExpired, InvalidOtp
        """
        account = self.repository.find_by_email(self._normalize_email(email))
        if account is None:
            raise AccountNotFound()
        if account.verified:
            raise AlreadyActive()

        self._check_verification_code(account, code)
        with self._first_activation(account, AlreadyActive):
            self._activate(account)

        logger.info("Verified account %s via OTP login", account.id)
        self._notify(account.email, "Welcome", "Your account is now active.")
        return self._session(account)

    def refresh(self, refresh_token: str) -> LoginResult:
        """
        Exchange a refresh token for a new access token.

        Raises:
            Unauthorized: Token invalid, or account gone or unverified
        """
        claims = self.tokens.authenticate(refresh_token, TokenType.REFRESH)
        account = self._token_account(claims)

        access = self.tokens.issue(account, session_id=claims.session_id)
        return LoginResult(
            status=LoginStatus.AUTHENTICATED,
            account_id=account.id,
            email=account.email,
            username=account.username,
            token=access.token,
            refresh_token=refresh_token,
            expires_at=access.expires_at,
        )

    def logout(self, token: str) -> None:
        """Revoke a session token and every other token of its session."""
        if not token:
            raise InvalidInput("Token required")
        self.tokens.revoke(token)

    def profile(self, token: str) -> AccountSummary:
        """Return the account behind a presented access token."""
        return self._authenticated_account(token).summary()

    # ---------------------------------------------------------------
    # Password reset
    # ---------------------------------------------------------------

    def request_password_reset(self, email: str) -> None:
        """
        Issue a reset code and email it.

        Unknown emails are accepted silently so responses do not reveal
        which addresses are registered.

        Raises:
            InvalidInput: Email blank
            StoreUnavailable: No reset code free of other live holders
        """
        if not email or not email.strip():
            raise InvalidInput("Email required")

        account = self.repository.find_by_email(self._normalize_email(email))
        if account is None:
            logger.info("Password reset requested for unknown email")
            return

        code = self.otp.issue(account, OtpSlot.RESET)
        self._notify(
            account.email,
            "Password Reset",
            f"To reset your password use this code: {code}",
        )

    def reset_password(self, code: str, new_password: str) -> None:
        """
        Replace the password of the account holding code.

        Raises:
            InvalidInput: Code or password missing
            InvalidOrExpiredResetCode: No account holds a live matching code
        """
        if not code or not code.strip() or not new_password:
            raise InvalidInput("OTP and new password required")

        account = self.repository.find_by_pending_reset_code(code.strip())
        if account is None:
            raise InvalidOrExpiredResetCode()
        if self.otp.validate(account, OtpSlot.RESET, code) is not OtpCheck.OK:
            raise InvalidOrExpiredResetCode()

        account.password_hash = self.password_hasher.hash(new_password)
        account.pending_reset = None
        self.repository.save(account)
        logger.info("Password reset for account %s", account.id)

        self._notify(account.email, "Password Reset Successful", "Your password has been reset.")

    # ---------------------------------------------------------------
    # Account administration
    # ---------------------------------------------------------------

    def update_username(self, token: str, new_username: str) -> AccountSummary:
        """
        Change the username of the account identified by token.

        Identity comes from the verified token only, never from a
        client-supplied id.

        Raises:
            Unauthorized: Token invalid or account unverified
            InvalidInput: Username blank
            UsernameTaken: Username held by another account
        """
        account = self._authenticated_account(token)
        if not new_username or not new_username.strip():
            raise InvalidInput("Username required")

        new_username = new_username.strip()
        holder = self.repository.find_by_username(new_username)
        if holder is not None and holder.id != account.id:
            raise UsernameTaken()

        account.username = new_username
        self.repository.save(account)
        logger.info("Username updated for account %s", account.id)
        return account.summary()

    def delete_account(self, account_id: int) -> None:
        """
        Delete an account.

        Raises:
            AccountNotFound: No account with that id
        """
        if not self.repository.delete_by_id(account_id):
            raise AccountNotFound()
        logger.info("Deleted account %s", account_id)

    def list_accounts(self) -> list[AccountSummary]:
        return [account.summary() for account in self.repository.find_all()]

    # ---------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------

    def _resolve_identifier(self, identifier: str) -> Account | None:
        """
        Look up an account by id or email.

        All-digit identifiers are tried as an id first, then as an email.
        """
        identifier = (identifier or "").strip()
        if not identifier:
            raise InvalidInput("User id or email required")

        if identifier.isdigit():
            account = self.repository.find_by_id(int(identifier))
            if account is not None:
                return account
        return self.repository.find_by_email(self._normalize_email(identifier))

    def _check_verification_code(self, account: Account, code: str) -> None:
        if not code or not code.strip():
            raise InvalidInput("OTP is required")

        result = self.otp.validate(account, OtpSlot.VERIFICATION, code)
        if result is OtpCheck.ABSENT:
            raise NoOtpPending()
        if result is OtpCheck.EXPIRED:
            raise OtpExpired()
        if result is OtpCheck.MISMATCH:
            raise InvalidOtp()

    def _activate(self, account: Account) -> None:
        account.verified = True
        account.pending_otp = None
        self.repository.save(account)

    @contextmanager
    def _first_activation(self, account: Account, already: type[Exception]) -> Iterator[None]:
        """
        Turn a lost activation race into the matching idempotency error.

        If the save is stale and the stored account is now verified, the
        other request won; anything else propagates.
        """
        try:
            yield
        except StaleAccount:
            current = self.repository.find_by_id(account.id)
            if current is not None and current.verified:
                raise already() from None
            raise

    def _unverified_login(self, account: Account) -> LoginResult:
        if self.unverified_login_policy is UnverifiedLoginPolicy.REJECT:
            logger.info("Rejected login for unverified account %s", account.id)
            raise InvalidCredentials()

        if self.otp.current(account, OtpSlot.VERIFICATION) is None:
            code = self.otp.issue(account, OtpSlot.VERIFICATION)
            self._notify(account.email, "OTP Notification", f"Your OTP is: {code}")

        logger.info("Login requires verification for account %s", account.id)
        return LoginResult(
            status=LoginStatus.VERIFICATION_REQUIRED,
            account_id=account.id,
            email=account.email,
            username=account.username,
        )

    def _session(self, account: Account) -> LoginResult:
        access = self.tokens.issue(account)
        refresh = self.tokens.issue(account, TokenType.REFRESH, access.session_id)
        return LoginResult(
            status=LoginStatus.AUTHENTICATED,
            account_id=account.id,
            email=account.email,
            username=account.username,
            token=access.token,
            refresh_token=refresh.token,
            expires_at=access.expires_at,
        )

    def _authenticated_account(self, token: str) -> Account:
        return self._token_account(self.tokens.authenticate(token))

    def _token_account(self, claims: TokenClaims) -> Account:
        """
        Load the account a token was issued to.

        Both the id and the email must still match, so a token outlives
        neither its account nor a later account reusing the email.
        """
        account = self.repository.find_by_id(claims.account_id)
        if account is None or account.email != claims.email or not account.verified:
            raise Unauthorized()
        return account

    def _notify(self, address: str, subject: str, body: str) -> None:
        """Send an email; delivery failures are logged, never raised."""
        try:
            self.email_sender.send(address, subject, body)
        except Exception:
            logger.exception("Failed to send '%s' email", subject)

    def _normalize_email(self, email: str) -> str:
        """
        Normalize email address for consistent storage and lookup.

        Applies: strip whitespace + lowercase
        """
        return email.strip().lower()
