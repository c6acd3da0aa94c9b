"""Resend mail transport adapter."""

import logging
from typing import Any

import resend

from courier.adapters.mail.base import AbstractMailTransport
from courier.schemas.email import DispatchResult, OutboundEmail

logger = logging.getLogger(__name__)


class ResendMailTransport(AbstractMailTransport):
    """Transport sending through the Resend HTTP API.

    Uses the official Resend Python SDK. The SDK reads its key from module
    state, so the key is (re)applied before every call.
    """

    def __init__(self, api_key: str, from_email: str) -> None:
        """Initialize the Resend transport.

        Args:
            api_key: Resend API key.
            from_email: Sender address for every message.
        """
        self.api_key = api_key
        self.from_email = from_email

    def _build_params(self, message: OutboundEmail) -> dict[str, Any]:
        params: dict[str, Any] = {
            "from": self.from_email,
            "to": list(message.recipients),
            "subject": message.subject,
        }
        if message.html_body:
            params["html"] = message.html_body
        if message.text_body:
            params["text"] = message.text_body
        return params

    def send(self, message: OutboundEmail) -> DispatchResult:
        resend.api_key = self.api_key
        try:
            response = resend.Emails.send(self._build_params(message))
        except Exception as exc:
            return DispatchResult(success=False, error=f"Resend API error: {exc}")

        # The SDK returns a dict today; older releases returned an object.
        if isinstance(response, dict):
            email_id = response.get("id")
        else:
            email_id = getattr(response, "id", None)

        if not email_id:
            logger.error(
                "mail.invalid_response",
                extra={"response_type": type(response).__name__},
            )
            return DispatchResult(success=False, error="Resend returned no message id")

        return DispatchResult(success=True, message_id=str(email_id))
