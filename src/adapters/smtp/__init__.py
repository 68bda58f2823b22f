"""Email sender adapters."""

from .background import BackgroundEmailSender
from .console import ConsoleEmailSender
from .sender import EmailDeliveryError, SmtpEmailSender

__all__ = ["BackgroundEmailSender", "ConsoleEmailSender", "EmailDeliveryError", "SmtpEmailSender"]
