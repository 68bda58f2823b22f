"""
Shared fixtures for adversarial tests.

Attacks run against the fully wired AccountService over the in-memory
repository, whose lock-guarded compare-and-swap save gives the same
atomicity guarantees as the PostgreSQL adapter's conditional UPDATE.
"""

from collections.abc import Callable

import pytest

from src.domain.accounts import AccountService

PASSWORD = "P@ssw0rd1"


@pytest.fixture
def pending_account(service: AccountService, outbox) -> Callable[..., str]:
    """Return a helper that registers an unverified account and returns its code."""

    def _register(username: str = "victim", email: str = "victim@example.com") -> str:
        service.register(username, email, PASSWORD, PASSWORD)
        return outbox.last_code(email)

    return _register
