# irshad_admin/forms/billing.py
"""
Forms for Stripe subscription linking
"""

from wtforms import EmailField, StringField
from wtforms.validators import DataRequired, Length, Optional

from irshad_admin.models import AccountType

from .base import JsonForm, one_of


class LinkSubscriptionForm(JsonForm):
    """Link a subscription to a parent's Dugsi family"""

    # presence is checked by the service so its message is returned
    parent_email = EmailField("Parent Email", validators=[Optional()])
    subscription_id = StringField(
        "Subscription ID",
        validators=[
            DataRequired(message="Subscription ID is required."),
            Length(max=100, message="Subscription ID must be less than 100 characters."),
        ],
    )


class ValidateSubscriptionForm(JsonForm):
    enum_fields = {"account_type": AccountType}

    subscription_id = StringField(
        "Subscription ID", validators=[DataRequired(message="Subscription ID is required.")]
    )
    account_type = StringField(
        "Account", validators=[Optional(), one_of(AccountType, "account type")], default=AccountType.DUGSI.value
    )
