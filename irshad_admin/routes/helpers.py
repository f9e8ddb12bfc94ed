# irshad_admin/routes/helpers.py
"""
Request parsing shared by the JSON endpoints
"""

from flask import request
from werkzeug.datastructures import MultiDict

from irshad_admin.utils.action_result import FieldValidationError


def json_body():
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def build_form(form_cls, payload=None):
    """
    Bind a form to a JSON object.

    Scalars are passed as strings so WTForms coerces them the same way it
    would posted form values; nulls, lists and objects are not form data.
    """
    payload = json_body() if payload is None else payload
    formdata = MultiDict()
    for key, value in payload.items():
        if value is None or isinstance(value, (list, dict)):
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        formdata.add(key, str(value))
    return form_cls(formdata=formdata)


def validated_form(form_cls, payload=None):
    """Build and validate a form, raising FieldValidationError with its errors"""
    form = build_form(form_cls, payload)
    if not form.validate():
        raise FieldValidationError(form.errors)
    return form


def id_list(payload, key):
    """Integer ids from a JSON list, rejecting anything else"""
    values = payload.get(key)
    if not isinstance(values, list) or not values:
        raise FieldValidationError({key: [f"{key} must be a non-empty list of ids."]})
    try:
        return [int(v) for v in values]
    except (TypeError, ValueError):
        raise FieldValidationError({key: [f"{key} must contain only integer ids."]}) from None


def flag(payload, key, default=False):
    value = payload.get(key, default)
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def arg_flag(key, default=False):
    value = request.args.get(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")
