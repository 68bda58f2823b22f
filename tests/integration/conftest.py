"""
Fixtures for full-application tests.

The application runs its real lifespan with in-memory storage; the
password hasher is swapped for a low-cost one and mail is recorded
synchronously so tests can read the codes.
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from src.adapters.hashing.bcrypt_hasher import BcryptPasswordHasher
from src.api.main import app
from src.config.settings import get_settings

from tests.conftest import TEST_SECRET, RecordingEmailSender


@pytest.fixture
def mailbox() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def api(monkeypatch: pytest.MonkeyPatch, mailbox: RecordingEmailSender) -> Generator[TestClient, None, None]:
    """TestClient over the real app, backed by in-memory storage."""
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("JWT_SECRET_KEY", TEST_SECRET)
    monkeypatch.setenv("EMAIL_BACKEND", "console")
    get_settings.cache_clear()

    with TestClient(app) as client:
        background_sender = app.state.email_sender
        app.state.email_sender = mailbox
        app.state.password_hasher = BcryptPasswordHasher(rounds=4)
        try:
            yield client
        finally:
            app.state.email_sender = background_sender

    get_settings.cache_clear()
