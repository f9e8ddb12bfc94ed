# irshad_admin/forms/base.py
"""
Shared helpers for JSON API forms
"""

from flask_wtf import FlaskForm
from wtforms.validators import AnyOf


def enum_choices(enum_cls):
    """Valid string values of an enum"""
    return [member.value for member in enum_cls]


def one_of(enum_cls, label):
    return AnyOf(enum_choices(enum_cls), message=f"Invalid {label}.")


class JsonForm(FlaskForm):
    """
    Base form for JSON request bodies.

    Flask-WTF wraps a JSON body as form data, so the same validators apply.
    CSRF is off because these endpoints are not served to a browser form.
    """

    class Meta:
        csrf = False

    # field name -> Enum class, converted in provided_data()
    enum_fields = {}

    def provided_data(self, exclude=()):
        """
        Values of the fields present in the request, enums converted.

        Absent fields are left out so partial updates only touch what was sent.
        """
        data = {}
        for name, field in self._fields.items():
            if name in exclude or not field.raw_data:
                continue
            value = field.data
            if isinstance(value, str):
                value = value.strip()
                if value == "":
                    value = None
            if value is not None and name in self.enum_fields:
                value = self.enum_fields[name](value)
            data[name] = value
        return data
