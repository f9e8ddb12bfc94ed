# irshad_admin/routes/dugsi.py

"""
Dugsi family registration and household endpoints
"""

from flask import request

from irshad_admin.forms import (
    ChildForm,
    ParentForm,
    SecondParentForm,
    UpdateChildForm,
    UpdateParentForm,
    WithdrawChildForm,
)
from irshad_admin.models import EnrollmentStatus, ProgramProfile
from irshad_admin.services.family_service import DugsiFamilyService
from irshad_admin.utils.action_result import ActionResult, FieldValidationError, handle_action_error
from irshad_admin.utils.tuition import get_rate_breakdown, get_rate_tier_description

from .helpers import arg_flag, json_body, validated_form
from .serializers import serialize_person, serialize_profile


def _nested_forms(payload, key, form_cls, label):
    items = payload.get(key)
    if not isinstance(items, list) or not items:
        raise FieldValidationError({key: [f"At least one {label} is required."]})
    forms, errors = [], {}
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            errors[f"{key}.{index}"] = ["Must be an object."]
            continue
        try:
            forms.append(validated_form(form_cls, item))
        except FieldValidationError as e:
            for field, messages in e.errors.items():
                errors[f"{key}.{index}.{field}"] = messages
    if errors:
        raise FieldValidationError(errors)
    return [form.provided_data() for form in forms]


def register_dugsi_routes(app):
    """Register Dugsi routes"""

    @app.route("/api/dugsi/registrations", methods=["GET"])
    def list_dugsi_registrations():
        try:
            service = DugsiFamilyService()
            profiles = service.list_registrations(include_withdrawn=arg_flag("include_withdrawn", True))
            return ActionResult.ok(
                [serialize_profile(p, include_guardians=True) for p in profiles]
            ).to_response()
        except Exception as e:
            return handle_action_error(e, "listing Dugsi registrations").to_response()

    @app.route("/api/dugsi/families", methods=["POST"])
    def register_dugsi_family():
        try:
            payload = json_body()
            parents = _nested_forms(payload, "parents", ParentForm, "parent")
            children = _nested_forms(payload, "children", ChildForm, "child")
            registration = DugsiFamilyService().register_dugsi_family(parents, children)
            return ActionResult.ok(
                {
                    "family_reference_id": registration.family_reference_id,
                    "monthly_rate": registration.monthly_rate,
                    "students": [serialize_profile(p) for p in registration.profiles],
                    "parents": [serialize_person(g) for g in registration.guardians],
                },
                status_code=201,
            ).to_response()
        except Exception as e:
            return handle_action_error(e, "registering Dugsi family").to_response()

    @app.route("/api/dugsi/students/<int:profile_id>/family", methods=["GET"])
    def get_dugsi_family(profile_id):
        try:
            service = DugsiFamilyService()
            members = service.get_family_members(profile_id)
            if not members["children"]:
                return ActionResult.fail("Student not found", status_code=404).to_response()
            count = sum(
                1
                for p in members["children"]
                if p.status in (EnrollmentStatus.REGISTERED, EnrollmentStatus.ENROLLED)
            )
            return ActionResult.ok(
                {
                    "children": [serialize_profile(p) for p in members["children"]],
                    "guardians": [serialize_person(g) for g in members["guardians"]],
                    "monthly_rate": service.get_family_rate(profile_id),
                    "rate_breakdown": get_rate_breakdown(count).to_dict(),
                    "rate_description": get_rate_tier_description(count),
                }
            ).to_response()
        except Exception as e:
            return handle_action_error(e, f"loading family of student {profile_id}").to_response()

    @app.route("/api/dugsi/students/<int:profile_id>/parents", methods=["PATCH"])
    def update_dugsi_parent(profile_id):
        try:
            form = validated_form(UpdateParentForm)
            result = DugsiFamilyService().update_parent_info(
                profile_id, form.parent_number.data, form.first_name.data, form.last_name.data, form.phone.data
            )
            return ActionResult.ok(result).to_response()
        except Exception as e:
            return handle_action_error(e, f"updating parent of student {profile_id}").to_response()

    @app.route("/api/dugsi/students/<int:profile_id>/parents", methods=["POST"])
    def add_dugsi_second_parent(profile_id):
        try:
            form = validated_form(SecondParentForm)
            result = DugsiFamilyService().add_second_parent(
                profile_id, form.first_name.data, form.last_name.data, form.email.data, form.phone.data
            )
            return ActionResult.ok(result, status_code=201).to_response()
        except Exception as e:
            return handle_action_error(e, f"adding second parent for student {profile_id}").to_response()

    @app.route("/api/dugsi/students/<int:profile_id>", methods=["PATCH"])
    def update_dugsi_child(profile_id):
        try:
            form = validated_form(UpdateChildForm)
            profile = DugsiFamilyService().update_child_info(profile_id, **form.provided_data())
            return ActionResult.ok(serialize_profile(profile)).to_response()
        except Exception as e:
            return handle_action_error(e, f"updating child {profile_id}").to_response()

    @app.route("/api/dugsi/students/<int:profile_id>/siblings", methods=["POST"])
    def add_dugsi_child(profile_id):
        try:
            form = validated_form(ChildForm)
            profile = DugsiFamilyService().add_child_to_family(profile_id, form.provided_data())
            return ActionResult.ok(serialize_profile(profile), status_code=201).to_response()
        except Exception as e:
            return handle_action_error(e, f"adding child to family of {profile_id}").to_response()

    @app.route("/api/dugsi/students/<int:profile_id>/withdraw", methods=["POST"])
    def withdraw_dugsi_child(profile_id):
        try:
            form = validated_form(WithdrawChildForm)
            profile = DugsiFamilyService().withdraw_child(profile_id, form.reason.data)
            return ActionResult.ok(serialize_profile(profile)).to_response()
        except Exception as e:
            return handle_action_error(e, f"withdrawing child {profile_id}").to_response()

    @app.route("/api/dugsi/students/<int:profile_id>/family", methods=["DELETE"])
    def delete_dugsi_family(profile_id):
        try:
            service = DugsiFamilyService()
            if arg_flag("preview"):
                return ActionResult.ok(service.get_delete_family_preview(profile_id)).to_response()
            result = service.delete_dugsi_family(profile_id)
            data = result.to_dict()
            data["message"] = result.message
            return ActionResult.ok(data).to_response()
        except Exception as e:
            return handle_action_error(e, f"deleting family of student {profile_id}").to_response()

    @app.route("/api/dugsi/families/by-reference", methods=["GET"])
    def get_dugsi_family_by_reference():
        try:
            reference = (request.args.get("family_reference_id") or "").strip()
            if not reference:
                return ActionResult.fail("family_reference_id is required").to_response()
            profiles = ProgramProfile.find_by_family(reference)
            return ActionResult.ok([serialize_profile(p, include_guardians=True) for p in profiles]).to_response()
        except Exception as e:
            return handle_action_error(e, "loading family by reference").to_response()
