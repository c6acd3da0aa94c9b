"""Mail transport adapter layer - abstracts over mail delivery providers."""

from courier.adapters.mail.base import AbstractMailTransport
from courier.adapters.mail.factory import create_mail_transport
from courier.adapters.mail.resend_client import ResendMailTransport

__all__ = [
    "AbstractMailTransport",
    "ResendMailTransport",
    "create_mail_transport",
]
