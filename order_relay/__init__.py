"""Order approval relay package initialisation."""

from .config import AppSettings, get_settings  # noqa: F401
from .logging_config import configure_logging  # noqa: F401
from .mailer import MailDeliveryError, SmtpMailer  # noqa: F401
from .slack_client import SlackClient  # noqa: F401

__all__ = [
    "AppSettings",
    "get_settings",
    "configure_logging",
    "MailDeliveryError",
    "SmtpMailer",
    "SlackClient",
]
