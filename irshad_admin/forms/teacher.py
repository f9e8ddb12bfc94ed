"""
Forms for teachers and their student assignments
"""

from wtforms import EmailField, IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, InputRequired, Length, Optional

from irshad_admin.models import Shift

from .base import JsonForm, one_of


class TeacherForm(JsonForm):
    """New teacher, either an existing person or a new one by name"""

    person_id = IntegerField("Person", validators=[Optional()])
    name = StringField(
        "Full Name",
        validators=[Optional(), Length(min=2, max=200, message="Name must be between 2 and 200 characters.")],
    )
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

    def validate(self, extra_validators=None):
        if not super().validate(extra_validators=extra_validators):
            return False
        if self.person_id.data is None and not (self.name.data or "").strip():
            self.name.errors.append("A name or an existing person is required.")
            return False
        return True


class AssignTeacherForm(JsonForm):
    enum_fields = {"shift": Shift}

    program_profile_id = IntegerField("Student", validators=[InputRequired(message="Student is required.")])
    shift = StringField("Shift", validators=[DataRequired(message="Shift is required."), one_of(Shift, "shift")])
    notes = TextAreaField("Notes", validators=[Optional(), Length(max=2000)])


class ReassignTeacherForm(JsonForm):
    teacher_id = IntegerField("Teacher", validators=[InputRequired(message="Teacher is required.")])
