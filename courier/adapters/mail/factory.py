"""Factory pattern for creating mail transport instances."""

from courier.adapters.mail.base import AbstractMailTransport
from courier.adapters.mail.resend_client import ResendMailTransport
from courier.core.config import MailSettings, settings
from courier.core.errors import ConfigurationError


def create_mail_transport(mail_settings: MailSettings | None = None) -> AbstractMailTransport:
    """Instantiate the mail transport named by the configuration.

    Args:
        mail_settings: Optional mail settings; defaults to global settings.

    Returns:
        AbstractMailTransport: Configured transport.

    Raises:
        ConfigurationError: If the provider is unknown or lacks its API key.
    """
    cfg = mail_settings or settings.mail
    provider = cfg.provider.lower()

    if provider == "resend":
        if not cfg.api_key:
            raise ConfigurationError(
                code="mail_missing_api_key",
                message="Resend provider requires MAIL_API_KEY environment variable",
                details={"provider": provider},
            )
        return ResendMailTransport(api_key=cfg.api_key, from_email=cfg.from_email)

    raise ConfigurationError(
        code="mail_unknown_provider",
        message=f"Unknown mail provider: '{provider}'. Supported providers: resend",
        details={"provider": provider},
    )
