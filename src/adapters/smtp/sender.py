"""
SMTP email sender adapter - Implements EmailSender protocol.

Delivers plain-text messages through a configured SMTP relay, with
optional STARTTLS and login. Delivery errors are raised as
EmailDeliveryError; wrap the sender in BackgroundEmailSender to make
delivery fire-and-forget.
"""

import smtplib
from email.message import EmailMessage


class EmailDeliveryError(Exception):
    """Raised when an email could not be delivered."""


class SmtpEmailSender:
    """
    Implements EmailSender protocol via smtplib.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout

    def build_message(self, address: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self._sender
        message["To"] = address
        message.set_content(body)
        return message

    def send(self, address: str, subject: str, body: str) -> None:
        """
        Send a message through the SMTP server.

        Raises:
            EmailDeliveryError: Connection or protocol failure
        """
        message = self.build_message(address, subject, body)
        try:
            with smtplib.SMTP(host=self._host, port=self._port, timeout=self._timeout) as smtp:
                if self._use_tls:
                    smtp.starttls()
                if self._username and self._password:
                    smtp.login(self._username, self._password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(f"Failed to send email to {address}") from exc
