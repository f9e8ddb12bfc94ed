"""
Outbound WhatsApp notifications for parents and students.

Every attempt is logged as a WhatsAppMessage, sent or failed. Sending the
same template to the same number twice inside the duplicate window is
refused before the API is called.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from irshad_admin.models import MessageStatus, Program, WhatsAppMessage, db
from irshad_admin.models.base import utcnow
from irshad_admin.utils.tuition import format_rate
from irshad_admin.utils.whatsapp_client import (
    WhatsAppClient,
    WhatsAppError,
    extract_message_id,
    format_phone_for_whatsapp,
    is_valid_phone_number,
)

PAYMENT_LINK_TEMPLATES = {
    Program.MAHAD_PROGRAM: "mahad_payment_link",
    Program.DUGSI_PROGRAM: "dugsi_payment_link",
}
PAYMENT_CONFIRMED_TEMPLATES = {
    Program.MAHAD_PROGRAM: "mahad_payment_confirmed",
    Program.DUGSI_PROGRAM: "dugsi_payment_confirmed",
}
PAYMENT_REMINDER_TEMPLATES = {
    Program.MAHAD_PROGRAM: "mahad_payment_reminder",
    Program.DUGSI_PROGRAM: "dugsi_payment_reminder",
}
CLASS_ANNOUNCEMENT_TEMPLATE = "dugsi_class_announcement"
CHECKOUT_SESSION_PATTERN = re.compile(r"cs_[a-zA-Z0-9_]+")

INVALID_PHONE_ERROR = "Invalid phone number format"
INVALID_URL_ERROR = "Invalid payment URL format"


@dataclass
class SendResult:
    success: bool
    wa_message_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "wa_message_id": self.wa_message_id, "error": self.error}


@dataclass
class BulkSendResult:
    total: int = 0
    sent: int = 0
    failed: int = 0
    results: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "sent": self.sent, "failed": self.failed, "results": self.results}


def duplicate_error(hours: float) -> str:
    if hours == 1:
        return "Message already sent within the last hour"
    return f"Message already sent within the last {hours:g} hours"


def format_long_date(value: date) -> str:
    """e.g. "Mar 5, 2025" """
    return f"{value:%b} {value.day}, {value.year}"


def _coerce_program(program) -> Program:
    return program if isinstance(program, Program) else Program(str(program).upper())


class WhatsAppService:
    """Template sends with duplicate protection and a persistent message log."""

    def __init__(
        self,
        session: Session | None = None,
        client: WhatsAppClient | None = None,
        sleep_fn: Callable[[float], None] = time.sleep,
    ):
        self.session = session or db.session
        self._client = client
        self.sleep = sleep_fn

    @property
    def client(self) -> WhatsAppClient:
        if self._client is None:
            self._client = WhatsAppClient.from_app_config()
        return self._client

    @staticmethod
    def duplicate_window_hours() -> float:
        return current_app.config.get("WHATSAPP_DUPLICATE_WINDOW_HOURS", 1)

    def has_recent_message(self, phone: str, template_name: str, hours: float | None = None) -> bool:
        if hours is None:
            hours = self.duplicate_window_hours()
        since = utcnow() - timedelta(hours=hours)
        return (
            self.session.query(WhatsAppMessage.id)
            .filter(
                WhatsAppMessage.phone_number == phone,
                WhatsAppMessage.template_name == template_name,
                WhatsAppMessage.status == MessageStatus.SENT,
                WhatsAppMessage.created_at >= since,
            )
            .first()
            is not None
        )

    def _log(self, **fields) -> WhatsAppMessage:
        message = WhatsAppMessage(**fields)
        try:
            self.session.add(message)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Error logging WhatsApp message to {fields.get('phone_number')}: {str(e)}")
            raise
        return message

    def _send(
        self,
        phone: str,
        template_name: str,
        *,
        body_params: list[str],
        button_params: list[str] = (),
        message_type: str,
        log_fields: dict[str, Any],
    ) -> SendResult:
        try:
            response = self.client.send_template(
                phone, template_name, body_params=body_params, button_params=list(button_params)
            )
        except (WhatsAppError, OSError) as e:
            current_app.logger.error(f"Failed to send WhatsApp {template_name} to {phone}: {str(e)}")
            self._log(
                phone_number=phone,
                template_name=template_name,
                message_type=message_type,
                status=MessageStatus.FAILED,
                failed_at=utcnow(),
                failure_reason=str(e),
                **log_fields,
            )
            return SendResult(False, error=str(e))

        wa_message_id = extract_message_id(response)
        self._log(
            wa_message_id=wa_message_id,
            phone_number=phone,
            template_name=template_name,
            message_type=message_type,
            status=MessageStatus.SENT,
            **log_fields,
        )
        current_app.logger.info(f"WhatsApp {template_name} sent to {phone} ({wa_message_id})")
        return SendResult(True, wa_message_id=wa_message_id)

    def _guard(self, phone: str, template_name: str) -> tuple[str | None, SendResult | None]:
        if not is_valid_phone_number(phone):
            current_app.logger.warning(f"Invalid phone number for WhatsApp: {phone}")
            return None, SendResult(False, error=INVALID_PHONE_ERROR)
        formatted = format_phone_for_whatsapp(phone)
        hours = self.duplicate_window_hours()
        if self.has_recent_message(formatted, template_name, hours):
            current_app.logger.warning(f"Duplicate WhatsApp message blocked: {template_name} to {formatted}")
            return formatted, SendResult(False, error=duplicate_error(hours))
        return formatted, None

    def send_payment_link(
        self,
        *,
        phone: str,
        parent_name: str,
        amount: int,
        child_count: int,
        payment_url: str,
        program=Program.DUGSI_PROGRAM,
        person_id: int | None = None,
        family_id: str | None = None,
    ) -> SendResult:
        """Send a Stripe checkout link; the template button carries the session id."""
        program = _coerce_program(program)
        template_name = PAYMENT_LINK_TEMPLATES[program]
        formatted, refused = self._guard(phone, template_name)
        if refused:
            return refused

        match = CHECKOUT_SESSION_PATTERN.search(payment_url or "")
        if not match:
            current_app.logger.warning(f"Invalid Stripe checkout URL, no session id found: {payment_url}")
            return SendResult(False, error=INVALID_URL_ERROR)

        first_name = (parent_name or "").split(" ")[0] or parent_name
        return self._send(
            formatted,
            template_name,
            body_params=[first_name, format_rate(amount), str(child_count)],
            button_params=[match.group(0)],
            message_type="payment_link",
            log_fields={
                "program": program,
                "recipient_type": "parent",
                "person_id": person_id,
                "family_id": family_id,
                "message_metadata": {
                    "parent_name": parent_name,
                    "amount": amount,
                    "child_count": child_count,
                    "payment_url": payment_url,
                },
            },
        )

    def send_payment_confirmation(
        self,
        *,
        phone: str,
        parent_name: str,
        amount: int,
        next_payment_date: date,
        student_names: list[str],
        program=Program.DUGSI_PROGRAM,
        person_id: int | None = None,
        family_id: str | None = None,
    ) -> SendResult:
        program = _coerce_program(program)
        template_name = PAYMENT_CONFIRMED_TEMPLATES[program]
        formatted, refused = self._guard(phone, template_name)
        if refused:
            return refused
        first_name = (parent_name or "").split(" ")[0] or parent_name
        return self._send(
            formatted,
            template_name,
            body_params=[first_name, format_rate(amount), ", ".join(student_names), format_long_date(next_payment_date)],
            message_type="payment_confirmation",
            log_fields={
                "program": program,
                "recipient_type": "parent",
                "person_id": person_id,
                "family_id": family_id,
                "message_metadata": {"amount": amount, "student_names": student_names},
            },
        )

    def send_payment_reminder(
        self,
        *,
        phone: str,
        parent_name: str,
        amount: int,
        due_date: date,
        billing_url: str,
        program=Program.DUGSI_PROGRAM,
        person_id: int | None = None,
        family_id: str | None = None,
    ) -> SendResult:
        """Remind a parent of an upcoming payment; the button links to their billing page."""
        program = _coerce_program(program)
        template_name = PAYMENT_REMINDER_TEMPLATES[program]
        formatted, refused = self._guard(phone, template_name)
        if refused:
            return refused

        first_name = (parent_name or "").split(" ")[0] or parent_name
        url_suffix = (billing_url or "").rstrip("/").split("/")[-1]
        return self._send(
            formatted,
            template_name,
            body_params=[first_name, format_rate(amount), format_long_date(due_date)],
            button_params=[url_suffix] if url_suffix else [],
            message_type="reminder",
            log_fields={
                "program": program,
                "recipient_type": "parent",
                "person_id": person_id,
                "family_id": family_id,
                "message_metadata": {
                    "parent_name": parent_name,
                    "amount": amount,
                    "due_date": due_date.isoformat(),
                    "billing_url": billing_url,
                },
            },
        )

    def send_class_announcement(
        self,
        *,
        phone: str,
        message: str,
        program=Program.DUGSI_PROGRAM,
        recipient_type: str = "parent",
        person_id: int | None = None,
        family_id: str | None = None,
    ) -> SendResult:
        if not is_valid_phone_number(phone):
            return SendResult(False, error=INVALID_PHONE_ERROR)
        return self._send(
            format_phone_for_whatsapp(phone),
            CLASS_ANNOUNCEMENT_TEMPLATE,
            body_params=[message],
            message_type="announcement",
            log_fields={
                "program": _coerce_program(program),
                "recipient_type": recipient_type,
                "person_id": person_id,
                "family_id": family_id,
                "message_metadata": {"message": message},
            },
        )

    def send_bulk_announcement(
        self,
        recipients: Iterable[dict[str, Any]],
        message: str,
        program=Program.DUGSI_PROGRAM,
        recipient_type: str = "parent",
    ) -> BulkSendResult:
        """Send one announcement per recipient, one at a time, pausing between sends."""
        delay = current_app.config.get("WHATSAPP_BULK_DELAY_SECONDS", 0.1)
        recipients = list(recipients)
        result = BulkSendResult()
        for index, recipient in enumerate(recipients):
            outcome = self.send_class_announcement(
                phone=recipient.get("phone"),
                message=message,
                program=program,
                recipient_type=recipient_type,
                person_id=recipient.get("person_id"),
                family_id=recipient.get("family_id"),
            )
            result.total += 1
            if outcome.success:
                result.sent += 1
            else:
                result.failed += 1
            result.results.append({"phone": recipient.get("phone"), **outcome.to_dict()})
            if index < len(recipients) - 1:
                self.sleep(delay)

        current_app.logger.info(
            f"Bulk announcement completed: {result.sent}/{result.total} sent, {result.failed} failed"
        )
        return result

    def handle_status_webhook(self, payload: dict[str, Any]) -> int:
        """Record delivery failures reported by Meta; returns the number of messages updated."""
        updated = 0
        for entry in payload.get("entry") or []:
            for change in entry.get("changes") or []:
                for status in (change.get("value") or {}).get("statuses") or []:
                    if status.get("status") != "failed":
                        continue
                    message = (
                        self.session.query(WhatsAppMessage).filter_by(wa_message_id=status.get("id")).first()
                    )
                    if message is None:
                        continue
                    errors = status.get("errors") or [{}]
                    message.status = MessageStatus.FAILED
                    message.failed_at = utcnow()
                    message.failure_reason = errors[0].get("message") or errors[0].get("title") or "Delivery failed"
                    updated += 1
        if updated:
            try:
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                current_app.logger.error(f"Error recording WhatsApp delivery failures: {str(e)}")
                raise
        return updated
