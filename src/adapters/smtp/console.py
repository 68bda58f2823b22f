"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging messages to stdout for local development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints codes to stdout.
    """

    def send(self, address: str, subject: str, body: str) -> None:
        """
        Log the message to console (simulates email delivery).

        The message is logged at INFO level to be visible in container logs.

        Args:
            address: Recipient email address (normalized by domain layer)
            subject: Message subject
            body: Message body, including any one-time code
        """
        logger.info("[EMAIL] To: %s Subject: %s Body: %s", address, subject, body)
