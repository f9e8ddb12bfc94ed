# irshad_admin/routes/billing.py

"""
Stripe subscription endpoints and webhooks
"""

import stripe
from flask import current_app, request

from irshad_admin.forms import LinkSubscriptionForm, ValidateSubscriptionForm
from irshad_admin.models import AccountType
from irshad_admin.services.subscription_service import SubscriptionService, calculate_split_amounts
from irshad_admin.utils.action_result import ActionResult, handle_action_error

from .helpers import id_list, json_body, validated_form
from .serializers import serialize_subscription


def register_billing_routes(app):
    """Register billing routes"""

    @app.route("/api/billing/subscriptions/validate", methods=["POST"])
    def validate_subscription():
        try:
            form = validated_form(ValidateSubscriptionForm)
            data = form.provided_data()
            fields = SubscriptionService().validate_stripe_subscription(
                data["subscription_id"], data.get("account_type") or AccountType.DUGSI
            )
            for key in ("current_period_start", "current_period_end"):
                if fields.get(key):
                    fields[key] = fields[key].isoformat()
            return ActionResult.ok(fields).to_response()
        except Exception as e:
            return handle_action_error(e, "validating subscription").to_response()

    @app.route("/api/dugsi/subscriptions/link", methods=["POST"])
    def link_dugsi_subscription():
        try:
            form = validated_form(LinkSubscriptionForm)
            result = SubscriptionService().link_dugsi_subscription(form.parent_email.data, form.subscription_id.data)
            return ActionResult.ok(result).to_response()
        except Exception as e:
            return handle_action_error(e, "linking Dugsi subscription").to_response()

    @app.route("/api/billing/subscriptions/<subscription_id>/profiles", methods=["POST"])
    def link_subscription_to_profiles(subscription_id):
        try:
            payload = json_body()
            account_type = AccountType(str(payload.get("account_type") or "DUGSI").upper())
            result = SubscriptionService().link_subscription_to_profiles(
                subscription_id, id_list(payload, "profile_ids"), account_type=account_type
            )
            return ActionResult.ok(result).to_response()
        except Exception as e:
            return handle_action_error(e, f"linking subscription {subscription_id}").to_response()

    @app.route("/api/billing/profiles/<int:profile_id>/subscription", methods=["DELETE"])
    def unlink_subscription(profile_id):
        try:
            result = SubscriptionService().unlink_subscription(profile_id, request.args.get("subscription_id"))
            return ActionResult.ok(result).to_response()
        except Exception as e:
            return handle_action_error(e, f"unlinking subscription from {profile_id}").to_response()

    @app.route("/api/billing/subscriptions/<subscription_id>/cancel", methods=["POST"])
    def cancel_subscription(subscription_id):
        try:
            subscription = SubscriptionService().cancel_subscription(subscription_id)
            return ActionResult.ok(serialize_subscription(subscription)).to_response()
        except Exception as e:
            return handle_action_error(e, f"canceling subscription {subscription_id}").to_response()

    @app.route("/api/dugsi/payment-status", methods=["GET"])
    def get_payment_status():
        try:
            email = (request.args.get("email") or "").strip()
            if not email:
                return ActionResult.fail("email is required").to_response()
            return ActionResult.ok(SubscriptionService().get_payment_status(email)).to_response()
        except Exception as e:
            return handle_action_error(e, "loading payment status").to_response()

    @app.route("/api/billing/split", methods=["GET"])
    def split_amounts():
        try:
            total = request.args.get("total", type=int)
            count = request.args.get("count", type=int)
            if total is None or count is None:
                return ActionResult.fail("total and count are required integers").to_response()
            return ActionResult.ok(calculate_split_amounts(total, count)).to_response()
        except Exception as e:
            return handle_action_error(e, "splitting amounts").to_response()

    @app.route("/webhooks/stripe/<account>", methods=["POST"])
    def stripe_webhook(account):
        """Stripe delivers events per account; signature failures answer 400 so Stripe retries."""
        try:
            account_type = AccountType(account.upper())
        except ValueError:
            return ActionResult.fail("Unknown Stripe account", status_code=404).to_response()
        try:
            result = SubscriptionService().process_webhook(
                request.get_data(), request.headers.get("Stripe-Signature"), account_type
            )
            return ActionResult.ok(result).to_response()
        except stripe.SignatureVerificationError as e:
            current_app.logger.warning(f"Stripe webhook signature check failed for {account_type.value}: {str(e)}")
            return ActionResult.fail("Invalid signature").to_response()
        except Exception as e:
            current_app.logger.warning(f"Stripe webhook for {account_type.value} rejected: {str(e)}")
            return handle_action_error(e, f"processing {account_type.value} Stripe webhook").to_response()
