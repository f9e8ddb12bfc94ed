"""
Linking Stripe subscriptions to the program profiles they pay for.

A subscription belongs to one payer (BillingAccount) and is split across one
or more profiles through BillingAssignment rows. Stripe remains the source of
truth for status and amounts; the local rows are refreshed on link and on
webhook delivery.
"""

from __future__ import annotations

from typing import Any, Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from irshad_admin.models import (
    AccountType,
    BillingAccount,
    BillingAssignment,
    ContactType,
    Person,
    Program,
    ProgramProfile,
    Subscription,
    SubscriptionStatus,
    db,
)
from irshad_admin.models.base import utcnow
from irshad_admin.utils import stripe_client
from irshad_admin.utils.action_result import NotFoundError
from irshad_admin.utils.normalization import normalize_email

SUBSCRIPTION_PREFIX = "sub_"
HANDLED_EVENTS = ("customer.subscription.updated", "customer.subscription.deleted")
PAID_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)


def calculate_split_amounts(total: int, count: int) -> list[int]:
    """
    Split ``total`` cents across ``count`` profiles.

    Every share gets the floored base amount; the remainder goes to the last
    share so the parts always add up to the total.
    """
    if count <= 0:
        raise ValueError("Count must be positive")
    base = total // count
    amounts = [base] * count
    amounts[-1] += total - base * count
    return amounts


def _coerce_status(value) -> SubscriptionStatus:
    if isinstance(value, SubscriptionStatus):
        return value
    try:
        return SubscriptionStatus(str(value).lower())
    except ValueError:
        return SubscriptionStatus.INCOMPLETE


class SubscriptionService:
    """Service for subscription validation, linking and webhook sync."""

    def __init__(self, session: Session | None = None):
        self.session = session or db.session

    # ------------------------------------------------------------- validation

    def validate_stripe_subscription(self, subscription_id: str, account_type=AccountType.DUGSI) -> dict[str, Any]:
        """Check the id format and fetch the subscription details from Stripe."""
        subscription_id = (subscription_id or "").strip()
        if not subscription_id.startswith(SUBSCRIPTION_PREFIX):
            raise ValueError('Invalid subscription ID format. Must start with "sub_"')
        subscription = stripe_client.retrieve_subscription(subscription_id, account_type)
        return stripe_client.extract_subscription_fields(subscription)

    # ---------------------------------------------------------------- upserts

    def _get_or_create_account(self, person: Person, account_type: AccountType, customer_id: str | None) -> BillingAccount:
        account = (
            self.session.query(BillingAccount)
            .filter_by(person_id=person.id, account_type=account_type)
            .first()
        )
        if account is None:
            account = BillingAccount(person_id=person.id, account_type=account_type)
            self.session.add(account)
        if customer_id:
            if account_type == AccountType.MAHAD:
                account.stripe_customer_id_mahad = customer_id
            else:
                account.stripe_customer_id_dugsi = customer_id
        self.session.flush()
        return account

    def _apply_fields(self, subscription: Subscription, fields: dict[str, Any]) -> None:
        subscription.status = _coerce_status(fields.get("status"))
        subscription.stripe_customer_id = fields.get("stripe_customer_id") or subscription.stripe_customer_id
        subscription.amount = fields.get("amount") or 0
        subscription.currency = fields.get("currency") or "usd"
        subscription.interval = fields.get("interval") or "month"
        subscription.current_period_start = fields.get("current_period_start")
        subscription.current_period_end = fields.get("current_period_end")
        if subscription.status in PAID_STATUSES and subscription.current_period_end:
            subscription.paid_until = subscription.current_period_end

    def _upsert_subscription(
        self, account: BillingAccount, account_type: AccountType, fields: dict[str, Any]
    ) -> Subscription:
        subscription = self.find_subscription(fields["stripe_subscription_id"])
        if subscription is None:
            subscription = Subscription(
                billing_account=account,
                stripe_account_type=account_type,
                stripe_subscription_id=fields["stripe_subscription_id"],
            )
            self.session.add(subscription)
        self._apply_fields(subscription, fields)
        return subscription

    def find_subscription(self, stripe_subscription_id: str) -> Subscription | None:
        return (
            self.session.query(Subscription)
            .filter_by(stripe_subscription_id=stripe_subscription_id)
            .first()
        )

    # ---------------------------------------------------------------- linking

    @staticmethod
    def _default_payer(profile: ProgramProfile) -> Person:
        guardians = profile.person.get_active_guardians()
        return guardians[0] if guardians else profile.person

    def link_subscription_to_profiles(
        self,
        subscription_id: str,
        profile_ids: Iterable[int],
        *,
        account_type=AccountType.DUGSI,
        payer: Person | None = None,
    ) -> dict[str, int]:
        """
        Attach a Stripe subscription to profiles, splitting its amount evenly.

        Profiles already actively assigned to this subscription are skipped.
        """
        account_type = stripe_client.coerce_account_type(account_type)
        profile_ids = list(dict.fromkeys(profile_ids))
        if not profile_ids:
            raise ValueError("At least one student is required")
        profiles = (
            self.session.query(ProgramProfile).filter(ProgramProfile.id.in_(profile_ids)).all()
        )
        if len(profiles) != len(profile_ids):
            raise NotFoundError("One or more students were not found")
        profiles.sort(key=lambda p: profile_ids.index(p.id))

        fields = self.validate_stripe_subscription(subscription_id, account_type)
        try:
            account = self._get_or_create_account(
                payer or self._default_payer(profiles[0]), account_type, fields.get("stripe_customer_id")
            )
            subscription = self._upsert_subscription(account, account_type, fields)
            self.session.flush()

            already = {a.program_profile_id for a in subscription.get_active_assignments()}
            pending = [p for p in profiles if p.id not in already]
            if pending:
                for profile, amount in zip(pending, calculate_split_amounts(subscription.amount, len(pending))):
                    self.session.add(
                        BillingAssignment(
                            subscription=subscription,
                            program_profile=profile,
                            amount=amount,
                            percentage=round(100 / len(pending), 2),
                        )
                    )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Error linking subscription {subscription_id}: {str(e)}")
            raise

        current_app.logger.info(
            f"Linked subscription {subscription_id} to {len(pending)} profile(s), skipped {len(already & set(profile_ids))}"
        )
        return {"linked": len(pending), "skipped": len(profiles) - len(pending)}

    def _parent_and_profiles(self, parent_email: str | None) -> tuple[Person, list[ProgramProfile]]:
        email = normalize_email(parent_email)
        parent = Person.find_by_contact(ContactType.EMAIL, email) if email else None
        if parent is None:
            raise NotFoundError("Parent not found with this email address")
        children = [
            p
            for dependent in parent.get_active_dependents()
            for p in dependent.program_profiles
            if p.program == Program.DUGSI_PROGRAM
        ]
        if not children:
            raise NotFoundError("No Dugsi registrations found for this email")

        family_ids = {p.family_reference_id for p in children if p.family_reference_id}
        profiles = {p.id: p for p in children}
        for family_id in family_ids:
            for member in ProgramProfile.find_by_family(family_id):
                profiles.setdefault(member.id, member)
        ordered = sorted(profiles.values(), key=lambda p: p.id)
        return parent, ordered

    def link_dugsi_subscription(self, parent_email: str | None, subscription_id: str) -> dict[str, int]:
        """Link a Dugsi subscription to every child of the parent's family."""
        if not normalize_email(parent_email):
            raise ValueError("Parent email is required to link subscription.")
        parent, profiles = self._parent_and_profiles(parent_email)
        result = self.link_subscription_to_profiles(
            subscription_id, [p.id for p in profiles], account_type=AccountType.DUGSI, payer=parent
        )
        return {"updated": result["linked"]}

    def unlink_subscription(self, profile_id: int, stripe_subscription_id: str | None = None) -> dict[str, int]:
        """Deactivate a profile's active assignments, optionally for one subscription only."""
        profile = self.session.get(ProgramProfile, profile_id)
        if profile is None:
            raise NotFoundError("Student not found")
        assignments = [
            a
            for a in profile.get_active_assignments()
            if stripe_subscription_id is None
            or a.subscription.stripe_subscription_id == stripe_subscription_id
        ]
        try:
            now = utcnow()
            for assignment in assignments:
                assignment.deactivate(now)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Error unlinking subscription from profile {profile_id}: {str(e)}")
            raise
        return {"unlinked": len(assignments)}

    # ----------------------------------------------------------------- status

    def get_payment_status(self, parent_email: str) -> dict[str, Any]:
        """Payment summary for the Dugsi family of a parent."""
        email = normalize_email(parent_email)
        parent = Person.find_by_contact(ContactType.EMAIL, email) if email else None
        if parent is None:
            raise NotFoundError("Family not found")
        parent, profiles = self._parent_and_profiles(email)

        assignment = next(
            (a for p in profiles for a in p.get_active_assignments()), None
        )
        subscription = assignment.subscription if assignment else None
        account = (
            self.session.query(BillingAccount)
            .filter_by(person_id=parent.id, account_type=AccountType.DUGSI)
            .first()
        )
        return {
            "family_email": email,
            "student_count": len(profiles),
            "has_payment_method": bool(account and account.payment_method_captured),
            "has_subscription": subscription is not None and subscription.is_live,
            "stripe_customer_id": account.stripe_customer_id_dugsi if account else None,
            "subscription_id": subscription.stripe_subscription_id if subscription else None,
            "subscription_status": subscription.status.value if subscription else None,
            "paid_until": subscription.paid_until.isoformat() if subscription and subscription.paid_until else None,
            "current_period_start": (
                subscription.current_period_start.isoformat()
                if subscription and subscription.current_period_start
                else None
            ),
            "current_period_end": (
                subscription.current_period_end.isoformat()
                if subscription and subscription.current_period_end
                else None
            ),
            "students": [{"id": p.id, "name": p.person.name} for p in profiles],
            "family_reference_id": profiles[0].family_reference_id,
        }

    # ------------------------------------------------------------ cancelation

    def _close(self, subscription: Subscription) -> None:
        subscription.status = SubscriptionStatus.CANCELED
        now = utcnow()
        for assignment in subscription.get_active_assignments():
            assignment.deactivate(now)

    def cancel_subscription(self, stripe_subscription_id: str) -> Subscription:
        """Cancel in Stripe, then mirror the cancelation locally."""
        subscription = self.find_subscription(stripe_subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription not found")
        if not subscription.is_live:
            raise ValueError("Subscription is already canceled")
        stripe_client.cancel_subscription(stripe_subscription_id, subscription.stripe_account_type)
        try:
            self._close(subscription)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Error recording cancelation of {stripe_subscription_id}: {str(e)}")
            raise
        return subscription

    # --------------------------------------------------------------- webhooks

    def process_webhook(self, payload: bytes, signature: str | None, account_type) -> dict[str, Any]:
        """Verify a raw Stripe webhook delivery and apply it."""
        if not signature:
            raise ValueError("Missing Stripe-Signature header")
        event = stripe_client.construct_webhook_event(payload, signature, account_type)
        return self.handle_webhook_event(event)

    def handle_webhook_event(self, event) -> dict[str, Any]:
        event_type = event.get("type")
        if event_type not in HANDLED_EVENTS:
            current_app.logger.debug(f"Ignoring Stripe event {event_type}")
            return {"handled": False, "event_type": event_type}

        fields = stripe_client.extract_subscription_fields(event["data"]["object"])
        subscription = self.find_subscription(fields["stripe_subscription_id"])
        if subscription is None:
            current_app.logger.warning(
                f"Stripe event {event_type} for unknown subscription {fields['stripe_subscription_id']}"
            )
            return {"handled": False, "event_type": event_type}

        try:
            if event_type == "customer.subscription.deleted":
                self._close(subscription)
            else:
                self._apply_fields(subscription, fields)
                if not subscription.is_live:
                    self._close(subscription)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Error applying Stripe event {event_type}: {str(e)}")
            raise

        current_app.logger.info(
            f"Applied {event_type} to {subscription.stripe_subscription_id} ({subscription.status.value})"
        )
        return {"handled": True, "event_type": event_type}
