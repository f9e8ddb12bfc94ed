# tests/test_whatsapp_client.py
"""
Tests for the WhatsApp Cloud API client
"""

import hashlib
import hmac
from unittest.mock import MagicMock, patch

import pytest

from irshad_admin.utils.whatsapp_client import (
    WhatsAppClient,
    WhatsAppError,
    WhatsAppNotConfigured,
    extract_message_id,
    format_phone_for_whatsapp,
    is_valid_phone_number,
    verify_webhook_signature,
)


def _response(ok=True, status_code=200, payload=None):
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    return response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def wa_client(session):
    return WhatsAppClient(phone_number_id="555123", access_token="token-abc", session=session)


class TestPhoneFormatting:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("(612) 555-0111", "16125550111"),
            ("+1 612 555 0111", "16125550111"),
            ("+44 20 7946 0958", "442079460958"),
        ],
    )
    def test_format(self, raw, expected):
        assert format_phone_for_whatsapp(raw) == expected

    def test_rejects_short_numbers(self):
        with pytest.raises(ValueError, match="Invalid phone number format"):
            format_phone_for_whatsapp("555-0111")

    def test_is_valid(self):
        assert is_valid_phone_number("612-555-0111") is True
        assert is_valid_phone_number("1234567890123456") is False
        assert is_valid_phone_number(None) is False


class TestSendTemplate:
    def test_posts_template_body(self, wa_client, session):
        session.post.return_value = _response(payload={"messages": [{"id": "wamid.X"}]})

        response = wa_client.send_template(
            "16125550111", "dugsi_payment_link", body_params=["Amina"], button_params=["cs_1"]
        )

        assert extract_message_id(response) == "wamid.X"
        url = session.post.call_args.args[0]
        kwargs = session.post.call_args.kwargs
        assert url == "https://graph.facebook.com/v21.0/555123/messages"
        assert kwargs["headers"]["Authorization"] == "Bearer token-abc"
        assert kwargs["timeout"] == 10.0
        template = kwargs["json"]["template"]
        assert kwargs["json"]["to"] == "16125550111"
        assert template["name"] == "dugsi_payment_link"
        assert template["components"][0] == {"type": "body", "parameters": [{"type": "text", "text": "Amina"}]}
        assert template["components"][1]["sub_type"] == "url"

    def test_no_components_when_no_params(self, wa_client, session):
        session.post.return_value = _response(payload={"messages": []})
        response = wa_client.send_template("16125550111", "hello_world")
        assert "components" not in session.post.call_args.kwargs["json"]["template"]
        assert extract_message_id(response) is None

    def test_error_response_raises(self, wa_client, session):
        session.post.return_value = _response(
            ok=False, status_code=400, payload={"error": {"message": "Invalid parameter"}}
        )
        with pytest.raises(WhatsAppError, match="400"):
            wa_client.send_template("16125550111", "dugsi_payment_link")

    def test_default_session_is_requests(self):
        with patch("irshad_admin.utils.whatsapp_client.requests.Session") as mock_session:
            WhatsAppClient(phone_number_id="1", access_token="t")
        mock_session.assert_called_once_with()


class TestFromConfig:
    def test_builds_from_mapping(self):
        client = WhatsAppClient.from_app_config(
            {
                "WHATSAPP_PHONE_NUMBER_ID": "42",
                "WHATSAPP_ACCESS_TOKEN": "tok",
                "WHATSAPP_API_VERSION": "v20.0",
                "WHATSAPP_API_BASE_URL": "https://graph.example.com/",
            },
            session=MagicMock(),
        )
        assert client.messages_url == "https://graph.example.com/v20.0/42/messages"

    def test_missing_credentials(self):
        with pytest.raises(WhatsAppNotConfigured):
            WhatsAppClient.from_app_config({"WHATSAPP_PHONE_NUMBER_ID": "42"})


class TestWebhookSignature:
    def test_valid_signature(self):
        body = b'{"entry": []}'
        digest = hmac.new(b"secret", body, hashlib.sha256).hexdigest()
        assert verify_webhook_signature(body, f"sha256={digest}", "secret") is True
        assert verify_webhook_signature(body.decode(), f"sha256={digest}", "secret") is True

    def test_invalid_signature(self):
        assert verify_webhook_signature(b"{}", "sha256=deadbeef", "secret") is False
        assert verify_webhook_signature(b"{}", None, "secret") is False
        assert verify_webhook_signature(b"{}", "sha256=deadbeef", None) is False
