# irshad_admin/forms/whatsapp.py
"""
Forms for WhatsApp sends
"""

from wtforms import DateField, IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional, URL

from irshad_admin.models import Program

from .base import JsonForm, one_of


class PaymentLinkForm(JsonForm):
    enum_fields = {"program": Program}

    phone = StringField("Phone", validators=[DataRequired(message="Phone is required.")])
    parent_name = StringField("Parent Name", validators=[DataRequired(message="Parent name is required."), Length(max=200)])
    amount = IntegerField(
        "Amount (cents)",
        validators=[InputRequired(message="Amount is required."), NumberRange(min=1, message="Amount must be positive.")],
    )
    child_count = IntegerField(
        "Children",
        validators=[InputRequired(message="Child count is required."), NumberRange(min=1, message="Child count must be at least 1.")],
    )
    payment_url = StringField(
        "Payment URL", validators=[DataRequired(message="Payment URL is required."), URL(message="Invalid URL.")]
    )
    program = StringField("Program", validators=[Optional(), one_of(Program, "program")])
    person_id = IntegerField("Person", validators=[Optional()])
    family_id = StringField("Family", validators=[Optional(), Length(max=64)])


class AnnouncementForm(JsonForm):
    enum_fields = {"program": Program}

    message = TextAreaField(
        "Message",
        validators=[
            DataRequired(message="Message is required."),
            Length(max=1024, message="Message must be less than 1024 characters."),
        ],
    )
    program = StringField("Program", validators=[Optional(), one_of(Program, "program")])
    recipient_type = StringField("Recipient Type", validators=[Optional(), Length(max=30)])


class PaymentReminderForm(JsonForm):
    enum_fields = {"program": Program}

    phone = StringField("Phone", validators=[DataRequired(message="Phone is required.")])
    parent_name = StringField("Parent Name", validators=[DataRequired(message="Parent name is required."), Length(max=200)])
    amount = IntegerField(
        "Amount (cents)",
        validators=[InputRequired(message="Amount is required."), NumberRange(min=1, message="Amount must be positive.")],
    )
    due_date = DateField("Due Date", validators=[DataRequired(message="Due date is required.")], format="%Y-%m-%d")
    billing_url = StringField(
        "Billing URL", validators=[DataRequired(message="Billing URL is required."), URL(message="Invalid URL.")]
    )
    program = StringField("Program", validators=[Optional(), one_of(Program, "program")])
    person_id = IntegerField("Person", validators=[Optional()])
    family_id = StringField("Family", validators=[Optional(), Length(max=64)])
