# irshad_admin/utils/stripe_client.py
"""
Thin access layer over the two Stripe accounts (Mahad and Dugsi).

Every call passes the account's API key explicitly so the module-level
``stripe.api_key`` is never shared between accounts.
"""

from __future__ import annotations

from datetime import datetime, timezone

import stripe
from flask import current_app

from irshad_admin.models.enums import AccountType

_KEY_SETTINGS = {
    AccountType.MAHAD: ("STRIPE_SECRET_KEY_MAHAD", "STRIPE_WEBHOOK_SECRET_MAHAD"),
    AccountType.DUGSI: ("STRIPE_SECRET_KEY_DUGSI", "STRIPE_WEBHOOK_SECRET_DUGSI"),
}


def coerce_account_type(account_type) -> AccountType:
    if isinstance(account_type, AccountType):
        return account_type
    return AccountType(str(account_type).upper())


def get_api_key(account_type) -> str:
    setting = _KEY_SETTINGS[coerce_account_type(account_type)][0]
    api_key = current_app.config.get(setting)
    if not api_key:
        raise ValueError(f"{setting} is not configured")
    return api_key


def get_webhook_secret(account_type) -> str:
    setting = _KEY_SETTINGS[coerce_account_type(account_type)][1]
    secret = current_app.config.get(setting)
    if not secret:
        raise ValueError(f"{setting} is not configured")
    return secret


def retrieve_subscription(subscription_id: str, account_type):
    return stripe.Subscription.retrieve(subscription_id, api_key=get_api_key(account_type))


def cancel_subscription(subscription_id: str, account_type):
    current_app.logger.info(f"Canceling Stripe subscription {subscription_id}")
    return stripe.Subscription.cancel(subscription_id, api_key=get_api_key(account_type))


def construct_webhook_event(payload: bytes, signature: str, account_type):
    """Verify the Stripe-Signature header and parse the event."""
    return stripe.Webhook.construct_event(payload, signature, get_webhook_secret(account_type))


def from_timestamp(value) -> datetime | None:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def extract_subscription_fields(subscription) -> dict:
    """
    Pull the fields mirrored locally out of a Stripe subscription payload.

    Newer API versions carry the billing period on the first item rather
    than on the subscription itself; both locations are honored.
    """
    items = (subscription.get("items") or {}).get("data") or []
    first_item = items[0] if items else {}
    price = first_item.get("price") or {}
    recurring = price.get("recurring") or {}
    customer = subscription.get("customer")
    if isinstance(customer, dict):
        customer = customer.get("id")

    period_start = subscription.get("current_period_start") or first_item.get("current_period_start")
    period_end = subscription.get("current_period_end") or first_item.get("current_period_end")

    return {
        "stripe_subscription_id": subscription.get("id"),
        "stripe_customer_id": customer,
        "status": subscription.get("status"),
        "amount": price.get("unit_amount") or 0,
        "currency": price.get("currency") or "usd",
        "interval": recurring.get("interval") or "month",
        "current_period_start": from_timestamp(period_start),
        "current_period_end": from_timestamp(period_end),
    }
