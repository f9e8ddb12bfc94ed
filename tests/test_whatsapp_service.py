# tests/test_whatsapp_service.py
"""
Tests for WhatsApp sends, duplicate protection and delivery webhooks
"""

from datetime import date
from unittest.mock import MagicMock

import pytest

from irshad_admin.models import MessageStatus, Program, WhatsAppMessage, db
from irshad_admin.services.whatsapp_service import (
    INVALID_PHONE_ERROR,
    INVALID_URL_ERROR,
    WhatsAppService,
    duplicate_error,
    format_long_date,
)
from irshad_admin.utils.whatsapp_client import WhatsAppClient, WhatsAppError

CHECKOUT_URL = "https://checkout.stripe.com/c/pay/cs_test_a1B2c3#fid"


@pytest.fixture
def api_client():
    """Stub API client returning a fresh message id per call"""
    mock_client = MagicMock(spec=WhatsAppClient)
    counter = iter(range(1, 1000))
    mock_client.send_template.side_effect = lambda *args, **kwargs: {
        "messages": [{"id": f"wamid.{next(counter)}"}]
    }
    return mock_client


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def service(api_client, sleep):
    return WhatsAppService(client=api_client, sleep_fn=sleep)


def send_link(service, **overrides):
    kwargs = {
        "phone": "(612) 555-0111",
        "parent_name": "Amina Hassan",
        "amount": 16000,
        "child_count": 2,
        "payment_url": CHECKOUT_URL,
    }
    kwargs.update(overrides)
    return service.send_payment_link(**kwargs)


class TestPaymentLink:
    """send_payment_link"""

    def test_sends_template_and_logs(self, service, api_client):
        result = send_link(service, family_id="fam-1")

        assert result.success is True
        assert result.wa_message_id == "wamid.1"
        api_client.send_template.assert_called_once_with(
            "16125550111",
            "dugsi_payment_link",
            body_params=["Amina", "$160.00", "2"],
            button_params=["cs_test_a1B2c3"],
        )
        message = db.session.query(WhatsAppMessage).one()
        assert message.status == MessageStatus.SENT
        assert message.message_type == "payment_link"
        assert message.family_id == "fam-1"
        assert message.message_metadata["payment_url"] == CHECKOUT_URL

    def test_mahad_template(self, service, api_client):
        send_link(service, program="mahad_program")
        assert api_client.send_template.call_args.args[1] == "mahad_payment_link"

    def test_invalid_phone(self, service, api_client):
        result = send_link(service, phone="555-0111")
        assert result.error == INVALID_PHONE_ERROR
        api_client.send_template.assert_not_called()

    def test_invalid_url(self, service, api_client):
        result = send_link(service, payment_url="https://example.com/pay")
        assert result.error == INVALID_URL_ERROR
        api_client.send_template.assert_not_called()

    def test_duplicate_blocked_before_api_call(self, service, api_client):
        assert send_link(service).success is True
        second = send_link(service, phone="612.555.0111")

        assert second.success is False
        assert second.error == "Message already sent within the last hour"
        assert api_client.send_template.call_count == 1

    def test_duplicate_error_names_configured_window(self, app, service, monkeypatch):
        monkeypatch.setitem(app.config, "WHATSAPP_DUPLICATE_WINDOW_HOURS", 24)
        send_link(service)

        assert send_link(service).error == "Message already sent within the last 24 hours"
        assert duplicate_error(0.5) == "Message already sent within the last 0.5 hours"

    def test_failed_send_is_logged_and_not_a_duplicate(self, service, api_client):
        api_client.send_template.side_effect = [
            WhatsAppError("WhatsApp API error: 500 - boom"),
            {"messages": [{"id": "wamid.retry"}]},
        ]
        first = send_link(service)
        assert first.success is False

        failed = db.session.query(WhatsAppMessage).one()
        assert failed.status == MessageStatus.FAILED
        assert "boom" in failed.failure_reason

        assert send_link(service).wa_message_id == "wamid.retry"


def test_payment_confirmation(service, api_client):
    result = service.send_payment_confirmation(
        phone="6125550111",
        parent_name="Amina Hassan",
        amount=16000,
        next_payment_date=date(2025, 3, 5),
        student_names=["Ali", "Hodan"],
        program=Program.DUGSI_PROGRAM,
    )
    assert result.success is True
    assert api_client.send_template.call_args.kwargs["body_params"] == ["Amina", "$160.00", "Ali, Hodan", "Mar 5, 2025"]
    assert format_long_date(date(2025, 11, 21)) == "Nov 21, 2025"


def test_payment_reminder(service, api_client):
    result = service.send_payment_reminder(
        phone="6125550111",
        parent_name="Amina Hassan",
        amount=16000,
        due_date=date(2025, 1, 14),
        billing_url="https://irshad.center/billing/account-123",
        family_id="fam-1",
    )

    assert result.success is True
    api_client.send_template.assert_called_once_with(
        "16125550111",
        "dugsi_payment_reminder",
        body_params=["Amina", "$160.00", "Jan 14, 2025"],
        button_params=["account-123"],
    )
    message = db.session.query(WhatsAppMessage).one()
    assert message.message_type == "reminder"
    assert message.message_metadata["due_date"] == "2025-01-14"


def test_payment_reminder_is_duplicate_protected(service, api_client):
    kwargs = {
        "phone": "6125550111",
        "parent_name": "Amina Hassan",
        "amount": 16000,
        "due_date": date(2025, 1, 14),
        "billing_url": "https://irshad.center/billing/account-123",
        "program": Program.MAHAD_PROGRAM,
    }
    assert service.send_payment_reminder(**kwargs).success is True
    assert service.send_payment_reminder(**kwargs).success is False
    assert api_client.send_template.call_args.args[1] == "mahad_payment_reminder"


class TestBulkAnnouncement:
    def test_sends_each_and_pauses(self, service, api_client, sleep):
        recipients = [
            {"phone": "6125550111", "person_id": None},
            {"phone": "bad"},
            {"phone": "+44 20 7946 0958"},
        ]
        result = service.send_bulk_announcement(recipients, "No class this Sunday")

        assert result.to_dict()["total"] == 3
        assert result.sent == 2
        assert result.failed == 1
        assert result.results[1] == {
            "phone": "bad",
            "success": False,
            "wa_message_id": None,
            "error": INVALID_PHONE_ERROR,
        }
        assert sleep.call_count == 2
        assert api_client.send_template.call_args_list[1].args[0] == "442079460958"

    def test_single_recipient_does_not_pause(self, service, sleep):
        service.send_bulk_announcement([{"phone": "6125550111"}], "Eid mubarak")
        sleep.assert_not_called()


class TestStatusWebhook:
    def test_records_delivery_failures(self, service):
        send_link(service)
        payload = {
            "entry": [
                {
                    "changes": [
                        {
                            "value": {
                                "statuses": [
                                    {"id": "wamid.1", "status": "failed", "errors": [{"title": "Undeliverable"}]},
                                    {"id": "wamid.unknown", "status": "failed"},
                                    {"id": "wamid.1", "status": "delivered"},
                                ]
                            }
                        }
                    ]
                }
            ]
        }
        assert service.handle_status_webhook(payload) == 1
        message = db.session.query(WhatsAppMessage).one()
        assert message.status == MessageStatus.FAILED
        assert message.failure_reason == "Undeliverable"

    def test_empty_payload(self, service):
        assert service.handle_status_webhook({}) == 0


def test_default_client_comes_from_config(app):
    client = WhatsAppService().client
    assert client.messages_url == "https://graph.facebook.com/v21.0/1234567890/messages"
