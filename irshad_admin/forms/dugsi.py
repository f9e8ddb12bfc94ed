# irshad_admin/forms/dugsi.py
"""
Forms for Dugsi family registration and household edits
"""

from wtforms import DateField, EmailField, IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Email, InputRequired, Length, Optional

from irshad_admin.models import EducationLevel, Gender, GradeLevel

from .base import JsonForm, one_of


def _name_field(label, required=True):
    validators = [DataRequired(message=f"{label} is required.")] if required else [Optional()]
    validators.append(Length(max=100, message=f"{label} must be less than 100 characters."))
    return StringField(label, validators=validators)


class ParentForm(JsonForm):
    """One parent in a family registration"""

    first_name = _name_field("First name")
    last_name = _name_field("Last name")
    email = EmailField(
        "Email", validators=[Optional(), Email(message="Please enter a valid email address.")]
    )
    phone = StringField("Phone", validators=[Optional(), Length(max=30)])


class ChildForm(JsonForm):
    """One child in a family registration"""

    enum_fields = {"gender": Gender, "education_level": EducationLevel, "grade_level": GradeLevel}

    first_name = _name_field("First name")
    last_name = _name_field("Last name")
    date_of_birth = DateField("Date of Birth", validators=[Optional()], format="%Y-%m-%d")
    gender = StringField("Gender", validators=[Optional(), one_of(Gender, "gender")])
    education_level = StringField(
        "Education Level", validators=[Optional(), one_of(EducationLevel, "education level")]
    )
    grade_level = StringField("Grade Level", validators=[Optional(), one_of(GradeLevel, "grade level")])
    school_name = StringField("School", validators=[Optional(), Length(max=200)])
    health_info = TextAreaField("Health Information", validators=[Optional(), Length(max=2000)])


class UpdateChildForm(ChildForm):
    first_name = _name_field("First name", required=False)
    last_name = _name_field("Last name", required=False)


class UpdateParentForm(JsonForm):
    parent_number = IntegerField(
        "Parent",
        validators=[InputRequired(message="Parent number is required."), AnyOf([1, 2], message="Parent must be 1 or 2.")],
    )
    first_name = _name_field("First name")
    last_name = _name_field("Last name")
    phone = StringField("Phone", validators=[DataRequired(message="Phone is required."), Length(max=30)])


class SecondParentForm(JsonForm):
    first_name = _name_field("First name")
    last_name = _name_field("Last name")
    email = EmailField(
        "Email",
        validators=[
            DataRequired(message="Email is required."),
            Email(message="Please enter a valid email address."),
        ],
    )
    phone = StringField("Phone", validators=[DataRequired(message="Phone is required."), Length(max=30)])


class WithdrawChildForm(JsonForm):
    reason = StringField("Reason", validators=[Optional(), Length(max=500)])
