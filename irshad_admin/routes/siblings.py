# irshad_admin/routes/siblings.py

"""
Sibling relationship and duplicate resolution endpoints
"""

from flask import request

from irshad_admin.models import Program
from irshad_admin.services.duplicate_service import DuplicateService
from irshad_admin.services.sibling_service import SiblingService
from irshad_admin.utils.action_result import ActionResult, handle_action_error

from .helpers import flag, id_list, json_body
from .serializers import serialize_person, serialize_profile


def register_sibling_routes(app):
    """Register sibling and duplicate routes"""

    @app.route("/api/persons/<int:person_id>/siblings", methods=["GET"])
    def get_siblings(person_id):
        try:
            siblings = SiblingService().get_siblings(person_id)
            return ActionResult.ok([serialize_person(p) for p in siblings]).to_response()
        except Exception as e:
            return handle_action_error(e, f"loading siblings of {person_id}").to_response()

    @app.route("/api/persons/<int:person_id>/siblings", methods=["POST"])
    def link_siblings(person_id):
        try:
            payload = json_body()
            sibling_ids = id_list(payload, "sibling_ids")
            result = SiblingService().link_siblings(person_id, sibling_ids, verified_by=payload.get("verified_by"))
            return ActionResult.ok(result).to_response()
        except Exception as e:
            return handle_action_error(e, f"linking siblings for {person_id}").to_response()

    @app.route("/api/persons/<int:person_id>/siblings/<int:sibling_id>", methods=["DELETE"])
    def unlink_siblings(person_id, sibling_id):
        try:
            if not SiblingService().unlink_siblings(person_id, sibling_id):
                return ActionResult.fail("Sibling relationship not found", status_code=404).to_response()
            return ActionResult.ok({"unlinked": True}).to_response()
        except Exception as e:
            return handle_action_error(e, f"unlinking {person_id} and {sibling_id}").to_response()

    @app.route("/api/persons/<int:person_id>/potential-siblings", methods=["GET"])
    def detect_potential_siblings(person_id):
        try:
            candidates = SiblingService().detect_potential_siblings(person_id)
            return ActionResult.ok([c.to_dict() for c in candidates]).to_response()
        except Exception as e:
            return handle_action_error(e, f"detecting siblings for {person_id}").to_response()

    # Duplicates ----------------------------------------------------------------

    @app.route("/api/duplicates/check", methods=["POST"])
    def check_duplicate():
        try:
            payload = json_body()
            program = Program(str(payload.get("program") or Program.MAHAD_PROGRAM.value).upper())
            check = DuplicateService().check_duplicate(
                email=payload.get("email"), phone=payload.get("phone"), program=program
            )
            return ActionResult.ok(check.to_dict()).to_response()
        except Exception as e:
            return handle_action_error(e, "checking duplicates").to_response()

    @app.route("/api/duplicates", methods=["GET"])
    def find_duplicate_groups():
        try:
            program = Program(request.args.get("program", Program.MAHAD_PROGRAM.value).upper())
            groups = DuplicateService().find_duplicate_groups(program)
            return ActionResult.ok([[serialize_profile(p) for p in group] for group in groups]).to_response()
        except Exception as e:
            return handle_action_error(e, "finding duplicate groups").to_response()

    @app.route("/api/duplicates/resolve", methods=["POST"])
    def resolve_duplicates():
        try:
            payload = json_body()
            keep_id = payload.get("keep_id")
            if not isinstance(keep_id, int):
                return ActionResult.invalid({"keep_id": ["keep_id is required."]}).to_response()
            resolution = DuplicateService().resolve_duplicates(
                keep_id, id_list(payload, "delete_ids"), merge_data=flag(payload, "merge_data")
            )
            data = resolution.to_dict()
            if not resolution.success:
                return ActionResult(
                    success=False,
                    data=data,
                    error=f"Failed to resolve {len(resolution.failed_ids)} duplicate record(s)",
                    status_code=207,
                ).to_response()
            return ActionResult.ok(data).to_response()
        except Exception as e:
            return handle_action_error(e, "resolving duplicates").to_response()

    @app.route("/api/duplicates/resolve-groups", methods=["POST"])
    def resolve_duplicate_groups():
        try:
            groups = json_body().get("groups")
            if not isinstance(groups, list) or not groups:
                return ActionResult.invalid({"groups": ["groups must be a non-empty list."]}).to_response()
            return ActionResult.ok(DuplicateService().resolve_duplicate_groups(groups)).to_response()
        except Exception as e:
            return handle_action_error(e, "resolving duplicate groups").to_response()

    @app.route("/api/profiles/search", methods=["GET"])
    def search_profiles_by_contact():
        try:
            value = (request.args.get("contact") or "").strip()
            if not value:
                return ActionResult.fail("contact is required").to_response()
            program = request.args.get("program")
            profiles = DuplicateService().search_profiles_by_contact(
                value, Program(program.upper()) if program else None
            )
            return ActionResult.ok([serialize_profile(p) for p in profiles]).to_response()
        except Exception as e:
            return handle_action_error(e, "searching profiles by contact").to_response()
