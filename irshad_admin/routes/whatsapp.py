# irshad_admin/routes/whatsapp.py

"""
WhatsApp send endpoints and the Meta webhook
"""

from flask import current_app, request

from irshad_admin.forms import AnnouncementForm, PaymentLinkForm, PaymentReminderForm
from irshad_admin.services.whatsapp_service import WhatsAppService
from irshad_admin.utils.action_result import ActionResult, FieldValidationError, handle_action_error
from irshad_admin.utils.whatsapp_client import verify_webhook_signature

from .helpers import json_body, validated_form


def register_whatsapp_routes(app):
    """Register WhatsApp routes"""

    @app.route("/api/whatsapp/payment-link", methods=["POST"])
    def send_whatsapp_payment_link():
        try:
            form = validated_form(PaymentLinkForm)
            result = WhatsAppService().send_payment_link(**form.provided_data())
            if not result.success:
                return ActionResult.fail(result.error).to_response()
            return ActionResult.ok(result.to_dict()).to_response()
        except Exception as e:
            return handle_action_error(e, "sending WhatsApp payment link").to_response()

    @app.route("/api/whatsapp/payment-reminder", methods=["POST"])
    def send_whatsapp_payment_reminder():
        try:
            form = validated_form(PaymentReminderForm)
            result = WhatsAppService().send_payment_reminder(**form.provided_data())
            if not result.success:
                return ActionResult.fail(result.error).to_response()
            return ActionResult.ok(result.to_dict()).to_response()
        except Exception as e:
            return handle_action_error(e, "sending WhatsApp payment reminder").to_response()

    @app.route("/api/whatsapp/announcements", methods=["POST"])
    def send_whatsapp_announcement():
        try:
            payload = json_body()
            form = validated_form(AnnouncementForm, payload)
            recipients = payload.get("recipients")
            if not isinstance(recipients, list) or not recipients:
                raise FieldValidationError({"recipients": ["At least one recipient is required."]})
            data = form.provided_data()
            result = WhatsAppService().send_bulk_announcement(
                [r for r in recipients if isinstance(r, dict)],
                data["message"],
                program=data.get("program") or "DUGSI_PROGRAM",
                recipient_type=data.get("recipient_type") or "parent",
            )
            return ActionResult.ok(result.to_dict()).to_response()
        except Exception as e:
            return handle_action_error(e, "sending WhatsApp announcement").to_response()

    @app.route("/webhooks/whatsapp", methods=["GET"])
    def verify_whatsapp_webhook():
        """Meta subscription handshake"""
        token = current_app.config.get("WHATSAPP_VERIFY_TOKEN")
        if (
            request.args.get("hub.mode") == "subscribe"
            and token
            and request.args.get("hub.verify_token") == token
        ):
            return request.args.get("hub.challenge", ""), 200
        return ActionResult.fail("Verification failed", status_code=403).to_response()

    @app.route("/webhooks/whatsapp", methods=["POST"])
    def whatsapp_webhook():
        payload = request.get_data()
        if not verify_webhook_signature(
            payload, request.headers.get("X-Hub-Signature-256"), current_app.config.get("WHATSAPP_APP_SECRET")
        ):
            current_app.logger.warning("Rejected WhatsApp webhook with invalid signature")
            return ActionResult.fail("Invalid signature", status_code=401).to_response()
        try:
            updated = WhatsAppService().handle_status_webhook(request.get_json(silent=True) or {})
            return ActionResult.ok({"updated": updated}).to_response()
        except Exception as e:
            return handle_action_error(e, "processing WhatsApp webhook").to_response()
