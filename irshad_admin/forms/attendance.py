# irshad_admin/forms/attendance.py
"""
Forms for teacher check-in, classes and attendance sessions
"""

from wtforms import DateField, FloatField, IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional

from irshad_admin.models import Shift

from .base import JsonForm, one_of


def _coordinate(label, bound, required):
    validators = [InputRequired(message=f"{label} is required.")] if required else [Optional()]
    validators.append(NumberRange(min=-bound, max=bound, message=f"{label} must be between -{bound} and {bound}."))
    return FloatField(label, validators=validators)


class ClockInForm(JsonForm):
    enum_fields = {"shift": Shift}

    teacher_id = IntegerField("Teacher", validators=[InputRequired(message="Teacher is required.")])
    shift = StringField("Shift", validators=[DataRequired(message="Shift is required."), one_of(Shift, "shift")])
    lat = _coordinate("Latitude", 90, required=True)
    lng = _coordinate("Longitude", 180, required=True)


class ClockOutForm(JsonForm):
    lat = _coordinate("Latitude", 90, required=False)
    lng = _coordinate("Longitude", 180, required=False)


class AdminClockInForm(JsonForm):
    enum_fields = {"shift": Shift}

    teacher_id = IntegerField("Teacher", validators=[InputRequired(message="Teacher is required.")])
    shift = StringField("Shift", validators=[DataRequired(message="Shift is required."), one_of(Shift, "shift")])
    reason = StringField(
        "Reason",
        validators=[
            DataRequired(message="A reason is required for manual check-in"),
            Length(min=3, max=500, message="Reason must be between 3 and 500 characters."),
        ],
    )


class ClassForm(JsonForm):
    enum_fields = {"shift": Shift}

    name = StringField(
        "Class Name", validators=[DataRequired(message="Class name is required."), Length(max=100)]
    )
    shift = StringField("Shift", validators=[DataRequired(message="Shift is required."), one_of(Shift, "shift")])
    teacher_id = IntegerField("Teacher", validators=[Optional()])
    description = TextAreaField("Description", validators=[Optional(), Length(max=2000)])


class SessionForm(JsonForm):
    class_id = IntegerField("Class", validators=[InputRequired(message="Class is required.")])
    date = DateField("Date", validators=[DataRequired(message="Date is required.")], format="%Y-%m-%d")
    notes = TextAreaField("Notes", validators=[Optional(), Length(max=2000)])
