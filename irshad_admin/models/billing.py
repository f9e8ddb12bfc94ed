# irshad_admin/models/billing.py
"""
Stripe-backed billing models
"""

from sqlalchemy import Enum, Index

from .base import BaseModel, db, utcnow
from .enums import AccountType, SubscriptionStatus


class BillingAccount(BaseModel):
    """Payer record linking a person to their Stripe customers"""

    __tablename__ = "billing_accounts"

    id = db.Column(db.Integer, primary_key=True)
    person_id = db.Column(
        db.Integer, db.ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_type = db.Column(Enum(AccountType, name="account_type_enum"), nullable=False)
    stripe_customer_id_mahad = db.Column(db.String(100), nullable=True, unique=True)
    stripe_customer_id_dugsi = db.Column(db.String(100), nullable=True, unique=True)
    payment_method_captured = db.Column(db.Boolean, default=False, nullable=False)
    payment_method_captured_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Relationships
    person = db.relationship("Person", back_populates="billing_accounts")
    subscriptions = db.relationship(
        "Subscription", back_populates="billing_account", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.UniqueConstraint("person_id", "account_type", name="_person_account_type_uc"),
    )

    def __repr__(self):
        return f"<BillingAccount {self.person_id} ({self.account_type.value})>"

    def customer_id_for(self, account_type):
        if account_type == AccountType.MAHAD:
            return self.stripe_customer_id_mahad
        return self.stripe_customer_id_dugsi


class Subscription(BaseModel):
    """Local mirror of a Stripe subscription"""

    __tablename__ = "subscriptions"

    id = db.Column(db.Integer, primary_key=True)
    billing_account_id = db.Column(
        db.Integer, db.ForeignKey("billing_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stripe_account_type = db.Column(Enum(AccountType, name="account_type_enum"), nullable=False)
    stripe_subscription_id = db.Column(db.String(100), unique=True, nullable=False)
    stripe_customer_id = db.Column(db.String(100), nullable=True, index=True)
    status = db.Column(
        Enum(SubscriptionStatus, name="subscription_status_enum"),
        default=SubscriptionStatus.INCOMPLETE,
        nullable=False,
        index=True,
    )
    amount = db.Column(db.Integer, nullable=False, default=0)  # cents
    currency = db.Column(db.String(3), default="usd", nullable=False)
    interval = db.Column(db.String(20), default="month", nullable=False)
    current_period_start = db.Column(db.DateTime(timezone=True), nullable=True)
    current_period_end = db.Column(db.DateTime(timezone=True), nullable=True)
    paid_until = db.Column(db.DateTime(timezone=True), nullable=True)

    # Relationships
    billing_account = db.relationship("BillingAccount", back_populates="subscriptions")
    assignments = db.relationship(
        "BillingAssignment", back_populates="subscription", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Subscription {self.stripe_subscription_id} ({self.status.value})>"

    @property
    def is_live(self):
        """Whether Stripe will still bill this subscription"""
        return self.status not in (
            SubscriptionStatus.CANCELED,
            SubscriptionStatus.INCOMPLETE_EXPIRED,
        )

    def get_active_assignments(self):
        return [a for a in self.assignments if a.is_active]


class BillingAssignment(BaseModel):
    """Many-to-many link between a subscription and the profiles it pays for"""

    __tablename__ = "billing_assignments"

    id = db.Column(db.Integer, primary_key=True)
    subscription_id = db.Column(
        db.Integer, db.ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    program_profile_id = db.Column(
        db.Integer,
        db.ForeignKey("program_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount = db.Column(db.Integer, nullable=False, default=0)  # cents
    percentage = db.Column(db.Float, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    start_date = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Relationships
    subscription = db.relationship("Subscription", back_populates="assignments")
    program_profile = db.relationship("ProgramProfile", back_populates="billing_assignments")

    __table_args__ = (Index("idx_assignment_sub_profile", "subscription_id", "program_profile_id"),)

    def __repr__(self):
        return f"<BillingAssignment {self.subscription_id} -> {self.program_profile_id}>"

    def deactivate(self, when=None):
        self.is_active = False
        self.end_date = when or utcnow()
