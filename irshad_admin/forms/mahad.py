# irshad_admin/forms/mahad.py
"""
Forms for Mahad students and batches
"""

from wtforms import DateField, EmailField, IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, NumberRange, Optional, ValidationError

from irshad_admin.models import (
    EducationLevel,
    Gender,
    GradeLevel,
    GraduationStatus,
    PaymentFrequency,
    StudentBillingType,
)

from .base import JsonForm, one_of

PROFILE_ENUMS = {
    "gender": Gender,
    "education_level": EducationLevel,
    "grade_level": GradeLevel,
    "graduation_status": GraduationStatus,
    "payment_frequency": PaymentFrequency,
    "billing_type": StudentBillingType,
}


class StudentFieldsMixin:
    email = EmailField(
        "Email",
        validators=[
            Optional(),
            Email(message="Please enter a valid email address."),
            Length(max=255, message="Email must be less than 255 characters."),
        ],
    )
    phone = StringField(
        "Phone", validators=[Optional(), Length(max=30, message="Phone must be less than 30 characters.")]
    )
    date_of_birth = DateField("Date of Birth", validators=[Optional()], format="%Y-%m-%d")
    batch_id = IntegerField("Batch", validators=[Optional()])
    gender = StringField("Gender", validators=[Optional(), one_of(Gender, "gender")])
    education_level = StringField(
        "Education Level", validators=[Optional(), one_of(EducationLevel, "education level")]
    )
    grade_level = StringField("Grade Level", validators=[Optional(), one_of(GradeLevel, "grade level")])
    school_name = StringField(
        "School", validators=[Optional(), Length(max=200, message="School name must be less than 200 characters.")]
    )
    health_info = TextAreaField("Health Information", validators=[Optional(), Length(max=2000)])
    graduation_status = StringField(
        "Graduation Status", validators=[Optional(), one_of(GraduationStatus, "graduation status")]
    )
    payment_frequency = StringField(
        "Payment Frequency", validators=[Optional(), one_of(PaymentFrequency, "payment frequency")]
    )
    billing_type = StringField("Billing Type", validators=[Optional(), one_of(StudentBillingType, "billing type")])
    monthly_rate = IntegerField(
        "Monthly Rate (dollars)",
        validators=[Optional(), NumberRange(min=0, max=10000, message="Monthly rate must be between 0 and 10000.")],
    )

    def validate_date_of_birth(self, field):
        from datetime import date

        if field.data and field.data > date.today():
            raise ValidationError("Date of birth cannot be in the future.")


class CreateStudentForm(StudentFieldsMixin, JsonForm):
    """Form for registering a Mahad student"""

    enum_fields = PROFILE_ENUMS

    name = StringField(
        "Full Name",
        validators=[
            DataRequired(message="Name is required."),
            Length(min=2, max=200, message="Name must be between 2 and 200 characters."),
        ],
    )

    def validate(self, extra_validators=None):
        if not super().validate(extra_validators=extra_validators):
            return False
        if not (self.email.data or self.phone.data):
            self.email.errors.append("An email or phone number is required.")
            return False
        return True


class UpdateStudentForm(StudentFieldsMixin, JsonForm):
    """Partial update of a Mahad student"""

    enum_fields = PROFILE_ENUMS

    name = StringField(
        "Full Name",
        validators=[Optional(), Length(min=2, max=200, message="Name must be between 2 and 200 characters.")],
    )


class BatchForm(JsonForm):
    """Form for creating or editing a batch"""

    name = StringField(
        "Batch Name",
        validators=[
            DataRequired(message="Batch name is required."),
            Length(max=100, message="Batch name must be less than 100 characters."),
        ],
    )
    start_date = DateField("Start Date", validators=[Optional()], format="%Y-%m-%d")
    end_date = DateField("End Date", validators=[Optional()], format="%Y-%m-%d")

    def validate_end_date(self, field):
        if field.data and self.start_date.data and field.data < self.start_date.data:
            raise ValidationError("End date must be on or after the start date.")


class UpdateBatchForm(BatchForm):
    name = StringField(
        "Batch Name",
        validators=[Optional(), Length(max=100, message="Batch name must be less than 100 characters.")],
    )
