# irshad_admin/forms/enrollment.py
"""
Forms for enrollment status changes
"""

from wtforms import DateTimeField, IntegerField, StringField
from wtforms.validators import DataRequired, Length, Optional

from irshad_admin.models import EnrollmentStatus

from .base import JsonForm, one_of


class EnrollmentStatusForm(JsonForm):
    """Move an enrollment to a new status"""

    enum_fields = {"status": EnrollmentStatus}

    status = StringField(
        "Status", validators=[DataRequired(message="Status is required."), one_of(EnrollmentStatus, "status")]
    )
    reason = StringField("Reason", validators=[Optional(), Length(max=500)])
    end_date = DateTimeField("End Date", validators=[Optional()], format="%Y-%m-%dT%H:%M:%S")


class ReEnrollForm(JsonForm):
    batch_id = IntegerField("Batch", validators=[Optional()])
