"""
WhatsApp Cloud API client.

Business-initiated messages must use pre-approved templates; the client only
knows how to send those. Phone numbers travel in E.164 form without the
leading ``+``.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
from typing import Any, Mapping, Sequence

import requests
from flask import current_app

_NON_DIGITS = re.compile(r"\D")


class WhatsAppError(RuntimeError):
    """Raised when the WhatsApp API rejects a request."""


class WhatsAppNotConfigured(WhatsAppError):
    """Raised when credentials are missing from the app config."""


def format_phone_for_whatsapp(phone: str) -> str:
    """
    Reduce a phone number to the digits WhatsApp expects.

    Ten digits are treated as a US number and get the ``1`` country code;
    11 to 15 digits are assumed to already carry one.
    """
    digits = _NON_DIGITS.sub("", phone or "")
    if len(digits) == 10:
        return f"1{digits}"
    if 11 <= len(digits) <= 15:
        return digits
    raise ValueError(f"Invalid phone number format: {phone}")


def is_valid_phone_number(phone: str | None) -> bool:
    digits = _NON_DIGITS.sub("", phone or "")
    return 10 <= len(digits) <= 15


def verify_webhook_signature(payload: bytes | str, signature: str | None, app_secret: str | None) -> bool:
    """Check an ``X-Hub-Signature-256`` header against the raw request body."""
    if not signature or not app_secret:
        return False
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    digest = hmac.new(app_secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(f"sha256={digest}", signature)


class WhatsAppClient:
    """Send template messages through the Graph API."""

    def __init__(
        self,
        *,
        phone_number_id: str,
        access_token: str,
        api_version: str = "v21.0",
        base_url: str = "https://graph.facebook.com",
        session: requests.Session | None = None,
        timeout: float = 10.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self.phone_number_id = phone_number_id
        self.api_version = api_version
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._auth_headers = {"Authorization": f"Bearer {access_token}"}

    @classmethod
    def from_app_config(cls, config: Mapping[str, Any] | None = None, **kwargs) -> "WhatsAppClient":
        config = config if config is not None else current_app.config
        phone_number_id = config.get("WHATSAPP_PHONE_NUMBER_ID")
        access_token = config.get("WHATSAPP_ACCESS_TOKEN")
        if not phone_number_id or not access_token:
            raise WhatsAppNotConfigured(
                "WhatsApp is not configured: WHATSAPP_PHONE_NUMBER_ID and WHATSAPP_ACCESS_TOKEN are required"
            )
        return cls(
            phone_number_id=phone_number_id,
            access_token=access_token,
            api_version=config.get("WHATSAPP_API_VERSION") or "v21.0",
            base_url=config.get("WHATSAPP_API_BASE_URL") or "https://graph.facebook.com",
            **kwargs,
        )

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/{self.api_version}/{self.phone_number_id}/messages"

    def _post(self, body: Mapping[str, Any]) -> dict:
        response = self.session.post(
            self.messages_url,
            headers={**self._auth_headers, "Content-Type": "application/json"},
            json=body,
            timeout=self.timeout,
        )
        if not response.ok:
            try:
                error_data = response.json()
            except ValueError:
                error_data = response.text
            self.logger.error(
                f"WhatsApp API request failed: {response.status_code}",
                extra={"status_code": response.status_code, "error_data": error_data},
            )
            raise WhatsAppError(f"WhatsApp API error: {response.status_code} - {error_data}")
        return response.json()

    def send_template(
        self,
        to: str,
        template_name: str,
        *,
        language_code: str = "en",
        body_params: Sequence[str] = (),
        button_params: Sequence[str] = (),
    ) -> dict:
        components = []
        if body_params:
            components.append(
                {"type": "body", "parameters": [{"type": "text", "text": p} for p in body_params]}
            )
        if button_params:
            components.append(
                {
                    "type": "button",
                    "sub_type": "url",
                    "index": 0,
                    "parameters": [{"type": "text", "text": p} for p in button_params],
                }
            )
        template: dict[str, Any] = {"name": template_name, "language": {"code": language_code}}
        if components:
            template["components"] = components
        return self._post(
            {
                "messaging_product": "whatsapp",
                "recipient_type": "individual",
                "to": to,
                "type": "template",
                "template": template,
            }
        )


def extract_message_id(response: Mapping[str, Any]) -> str | None:
    messages = response.get("messages") or []
    return messages[0].get("id") if messages else None
