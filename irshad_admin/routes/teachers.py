# irshad_admin/routes/teachers.py

"""
Teacher and Dugsi student assignment endpoints
"""

from flask import request

from irshad_admin.forms import AssignTeacherForm, ReassignTeacherForm, TeacherForm
from irshad_admin.services.teacher_service import TeacherService
from irshad_admin.utils.action_result import ActionResult, FieldValidationError, handle_action_error

from .helpers import arg_flag, json_body, validated_form
from .serializers import serialize_teacher, serialize_teacher_assignment


def _shifts(payload):
    shifts = payload.get("shifts", [])
    if not isinstance(shifts, list):
        raise FieldValidationError({"shifts": ["shifts must be a list."]})
    return shifts


def register_teacher_routes(app):
    """Register teacher routes"""

    @app.route("/api/teachers", methods=["GET"])
    def list_teachers():
        try:
            teachers = TeacherService().list_teachers(
                request.args.get("shift"), include_inactive=arg_flag("include_inactive")
            )
            return ActionResult.ok([serialize_teacher(t) for t in teachers]).to_response()
        except Exception as e:
            return handle_action_error(e, "listing teachers").to_response()

    @app.route("/api/teachers", methods=["POST"])
    def create_teacher():
        try:
            payload = json_body()
            data = validated_form(TeacherForm, payload).provided_data()
            teacher = TeacherService().create_teacher(
                data.get("name"),
                person_id=data.get("person_id"),
                email=data.get("email"),
                phone=data.get("phone"),
                shifts=_shifts(payload),
            )
            return ActionResult.ok(serialize_teacher(teacher), status_code=201).to_response()
        except Exception as e:
            return handle_action_error(e, "creating teacher").to_response()

    @app.route("/api/teachers/<int:teacher_id>", methods=["GET"])
    def get_teacher(teacher_id):
        try:
            service = TeacherService()
            data = serialize_teacher(service.get_teacher(teacher_id, include_inactive=True))
            data["assignments"] = [serialize_teacher_assignment(a) for a in service.get_teacher_assignments(teacher_id)]
            return ActionResult.ok(data).to_response()
        except Exception as e:
            return handle_action_error(e, f"loading teacher {teacher_id}").to_response()

    @app.route("/api/teachers/<int:teacher_id>/shifts", methods=["PUT"])
    def update_teacher_shifts(teacher_id):
        try:
            teacher = TeacherService().update_shifts(teacher_id, _shifts(json_body()))
            return ActionResult.ok(serialize_teacher(teacher)).to_response()
        except Exception as e:
            return handle_action_error(e, f"updating shifts of teacher {teacher_id}").to_response()

    @app.route("/api/teachers/<int:teacher_id>", methods=["DELETE"])
    def delete_teacher(teacher_id):
        try:
            ended = TeacherService().delete_teacher(teacher_id)
            return ActionResult.ok({"deleted": True, "assignments_ended": ended}).to_response()
        except Exception as e:
            return handle_action_error(e, f"deleting teacher {teacher_id}").to_response()

    # Assignments ---------------------------------------------------------------

    @app.route("/api/teachers/<int:teacher_id>/assignments", methods=["POST"])
    def assign_teacher_to_student(teacher_id):
        try:
            data = validated_form(AssignTeacherForm).provided_data()
            assignment = TeacherService().assign_teacher_to_student(
                teacher_id, data["program_profile_id"], data["shift"], notes=data.get("notes")
            )
            return ActionResult.ok(serialize_teacher_assignment(assignment), status_code=201).to_response()
        except Exception as e:
            return handle_action_error(e, f"assigning students to teacher {teacher_id}").to_response()

    @app.route("/api/teachers/<int:teacher_id>/assignments/bulk", methods=["POST"])
    def bulk_assign_students(teacher_id):
        try:
            assignments = json_body().get("assignments")
            if not isinstance(assignments, list) or not assignments:
                raise FieldValidationError({"assignments": ["assignments must be a non-empty list."]})
            if not all(isinstance(item, dict) for item in assignments):
                raise FieldValidationError({"assignments": ["Each assignment must be an object."]})
            result = TeacherService().bulk_assign_students(teacher_id, assignments)
            return ActionResult.ok(result.to_dict()).to_response()
        except Exception as e:
            return handle_action_error(e, f"bulk assigning students to teacher {teacher_id}").to_response()

    @app.route("/api/teacher-assignments/<int:assignment_id>/reassign", methods=["POST"])
    def reassign_student(assignment_id):
        try:
            data = validated_form(ReassignTeacherForm).provided_data()
            assignment = TeacherService().reassign_student(assignment_id, data["teacher_id"])
            return ActionResult.ok(serialize_teacher_assignment(assignment), status_code=201).to_response()
        except Exception as e:
            return handle_action_error(e, f"reassigning assignment {assignment_id}").to_response()

    @app.route("/api/teacher-assignments/<int:assignment_id>", methods=["DELETE"])
    def remove_teacher_assignment(assignment_id):
        try:
            assignment = TeacherService().remove_teacher_assignment(assignment_id)
            return ActionResult.ok(serialize_teacher_assignment(assignment)).to_response()
        except Exception as e:
            return handle_action_error(e, f"removing assignment {assignment_id}").to_response()
