"""
Background email sender adapter - Fire-and-forget delivery.

Wraps another EmailSender and hands each message to a worker thread so
the calling request never waits on, or fails because of, mail delivery.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor

from src.domain.ports import EmailSender

logger = logging.getLogger(__name__)


class BackgroundEmailSender:
    """
    Implements EmailSender protocol by delegating on a thread pool.

    Failures of the wrapped sender are logged and absorbed.
    """

    def __init__(self, delegate: EmailSender, max_workers: int = 2) -> None:
        self._delegate = delegate
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="email")

    def send(self, address: str, subject: str, body: str) -> Future:
        """Queue a message for delivery and return immediately."""
        return self._executor.submit(self._deliver, address, subject, body)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _deliver(self, address: str, subject: str, body: str) -> None:
        try:
            self._delegate.send(address, subject, body)
        except Exception:
            logger.exception("Email delivery failed: %s", subject)
