"""Tests for the Resend transport and the mail transport factory."""

from unittest.mock import patch

import pytest

from courier.adapters.mail.factory import create_mail_transport
from courier.adapters.mail.resend_client import ResendMailTransport
from courier.core.config import MailSettings
from courier.core.errors import ConfigurationError
from courier.schemas.email import OutboundEmail

SEND_PATH = "courier.adapters.mail.resend_client.resend.Emails.send"


@pytest.fixture
def outbound() -> OutboundEmail:
    return OutboundEmail(
        recipients=["jane@example.com", "ops@example.com"],
        subject="Weekly digest",
        html_body="<h1>Digest</h1>",
        text_body=None,
    )


@pytest.fixture
def resend_transport() -> ResendMailTransport:
    return ResendMailTransport(api_key="re_test_key", from_email="noreply@example.com")


class TestResendMailTransport:
    def test_successful_send_returns_message_id(self, resend_transport, outbound) -> None:
        with patch(SEND_PATH, return_value={"id": "email_123"}) as send:
            result = resend_transport.send(outbound)

        assert result.success is True
        assert result.message_id == "email_123"
        send.assert_called_once_with(
            {
                "from": "noreply@example.com",
                "to": ["jane@example.com", "ops@example.com"],
                "subject": "Weekly digest",
                "html": "<h1>Digest</h1>",
            }
        )

    def test_text_only_message_omits_html(self, resend_transport) -> None:
        message = OutboundEmail(recipients=["a@example.com"], subject="Hi", text_body="Plain")

        with patch(SEND_PATH, return_value={"id": "email_1"}) as send:
            resend_transport.send(message)

        params = send.call_args.args[0]
        assert params["text"] == "Plain"
        assert "html" not in params

    def test_sdk_exception_becomes_failed_result(self, resend_transport, outbound) -> None:
        with patch(SEND_PATH, side_effect=RuntimeError("invalid api key")):
            result = resend_transport.send(outbound)

        assert result.success is False
        assert result.error == "Resend API error: invalid api key"
        assert result.message_id is None

    def test_response_without_id_is_a_failure(self, resend_transport, outbound) -> None:
        with patch(SEND_PATH, return_value={}):
            result = resend_transport.send(outbound)

        assert result.success is False
        assert result.error == "Resend returned no message id"


class TestCreateMailTransport:
    def test_builds_resend_transport(self) -> None:
        transport = create_mail_transport(MailSettings(api_key="re_key", from_email="me@example.com"))

        assert isinstance(transport, ResendMailTransport)
        assert transport.from_email == "me@example.com"

    def test_missing_api_key(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            create_mail_transport(MailSettings(api_key=None))

        assert exc_info.value.code == "mail_missing_api_key"

    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            create_mail_transport(MailSettings(provider="carrier-pigeon", api_key="k"))

        assert exc_info.value.code == "mail_unknown_provider"
