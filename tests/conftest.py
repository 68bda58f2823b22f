"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for deterministic expiry
- In-memory adapters (repository, revocation store, recording email sender)
- Fully wired OtpEngine, TokenIssuer and AccountService
"""

import re
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from src.adapters.hashing.bcrypt_hasher import BcryptPasswordHasher
from src.adapters.repository.memory import InMemoryAccountRepository
from src.adapters.revocation.memory import InMemoryRevocationStore
from src.domain.accounts import AccountService
from src.domain.otp import OtpEngine
from src.domain.tokens import TokenIssuer

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"
OTP_WINDOW_SECONDS = 300


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingEmailSender:
    """EmailSender that keeps every message in memory."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str, str]] = []
        self._lock = threading.Lock()

    def send(self, address: str, subject: str, body: str) -> None:
        with self._lock:
            self.messages.append((address, subject, body))

    def to(self, address: str) -> list[tuple[str, str, str]]:
        return [m for m in self.messages if m[0] == address]

    def last_code(self, address: str) -> str:
        """Return the last 4-digit code mailed to address."""
        for _, _, body in reversed(self.to(address)):
            match = re.search(r"\b(\d{4})\b", body)
            if match:
                return match.group(1)
        raise AssertionError(f"No code sent to {address}")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def hasher() -> BcryptPasswordHasher:
    """Low-cost hasher keeps the suite fast; production cost is validated in settings."""
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def outbox() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def revocations(clock: FakeClock) -> InMemoryRevocationStore:
    return InMemoryRevocationStore(clock=clock)


@pytest.fixture
def otp_engine(repository: InMemoryAccountRepository, clock: FakeClock) -> OtpEngine:
    return OtpEngine(
        repository=repository,
        verification_window=timedelta(seconds=OTP_WINDOW_SECONDS),
        reset_window=timedelta(seconds=OTP_WINDOW_SECONDS),
        clock=clock,
    )


@pytest.fixture
def token_issuer(revocations: InMemoryRevocationStore, clock: FakeClock) -> TokenIssuer:
    return TokenIssuer(secret_key=TEST_SECRET, revocations=revocations, clock=clock)


@pytest.fixture
def service(
    repository: InMemoryAccountRepository,
    hasher: BcryptPasswordHasher,
    outbox: RecordingEmailSender,
    otp_engine: OtpEngine,
    token_issuer: TokenIssuer,
) -> AccountService:
    return AccountService(
        repository=repository,
        password_hasher=hasher,
        email_sender=outbox,
        otp=otp_engine,
        tokens=token_issuer,
    )


@pytest.fixture
def register_verified(
    service: AccountService, outbox: RecordingEmailSender
) -> Callable[..., None]:
    """Return a helper that registers and verifies an account."""

    def _register(username: str = "alice", email: str = "a@x.com", password: str = "P@ssw0rd1") -> None:
        service.register(username, email, password, password)
        service.verify_email(email, outbox.last_code(email))

    return _register
