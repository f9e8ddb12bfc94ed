# irshad_admin/routes/mahad.py

"""
Mahad student and batch endpoints
"""

from flask import request

from irshad_admin.forms import BatchForm, CreateStudentForm, UpdateBatchForm, UpdateStudentForm
from irshad_admin.models import EnrollmentStatus
from irshad_admin.services.mahad_service import MahadService
from irshad_admin.utils.action_result import ActionResult, handle_action_error

from .helpers import arg_flag, id_list, json_body, validated_form
from .serializers import serialize_batch, serialize_enrollment, serialize_profile


def register_mahad_routes(app):
    """Register Mahad routes"""

    @app.route("/api/mahad/students", methods=["GET"])
    def list_mahad_students():
        try:
            status = request.args.get("status")
            students = MahadService().list_students(
                batch_id=request.args.get("batch_id", type=int),
                status=EnrollmentStatus(status.upper()) if status else None,
                search=request.args.get("q"),
                include_withdrawn=arg_flag("include_withdrawn"),
            )
            return ActionResult.ok([serialize_profile(s) for s in students]).to_response()
        except Exception as e:
            return handle_action_error(e, "listing Mahad students").to_response()

    @app.route("/api/mahad/students", methods=["POST"])
    def create_mahad_student():
        try:
            form = validated_form(CreateStudentForm)
            data = form.provided_data()
            profile = MahadService().create_student(**data)
            return ActionResult.ok(serialize_profile(profile), status_code=201).to_response()
        except Exception as e:
            return handle_action_error(e, "creating Mahad student").to_response()

    @app.route("/api/mahad/students/<int:profile_id>", methods=["GET"])
    def get_mahad_student(profile_id):
        try:
            profile = MahadService().get_student(profile_id)
            data = serialize_profile(profile)
            data["enrollments"] = [serialize_enrollment(e) for e in profile.enrollments]
            return ActionResult.ok(data).to_response()
        except Exception as e:
            return handle_action_error(e, f"loading Mahad student {profile_id}").to_response()

    @app.route("/api/mahad/students/<int:profile_id>", methods=["PATCH"])
    def update_mahad_student(profile_id):
        try:
            form = validated_form(UpdateStudentForm)
            profile = MahadService().update_student(profile_id, **form.provided_data(exclude=("batch_id",)))
            return ActionResult.ok(serialize_profile(profile)).to_response()
        except Exception as e:
            return handle_action_error(e, f"updating Mahad student {profile_id}").to_response()

    @app.route("/api/mahad/students/<int:profile_id>", methods=["DELETE"])
    def delete_mahad_student(profile_id):
        try:
            profile = MahadService().delete_student(profile_id)
            return ActionResult.ok(serialize_profile(profile)).to_response()
        except Exception as e:
            return handle_action_error(e, f"deleting Mahad student {profile_id}").to_response()

    @app.route("/api/mahad/students/<int:profile_id>/withdraw-from-batch", methods=["POST"])
    def withdraw_mahad_student_from_batch(profile_id):
        try:
            enrollment = MahadService().withdraw_student_from_batch(profile_id, json_body().get("reason"))
            return ActionResult.ok(serialize_enrollment(enrollment)).to_response()
        except Exception as e:
            return handle_action_error(e, f"withdrawing student {profile_id} from batch").to_response()

    # Batches -------------------------------------------------------------------

    @app.route("/api/mahad/batches", methods=["GET"])
    def list_batches():
        try:
            rows = MahadService().list_batches()
            return ActionResult.ok(
                [serialize_batch(row["batch"], row["student_count"]) for row in rows]
            ).to_response()
        except Exception as e:
            return handle_action_error(e, "listing batches").to_response()

    @app.route("/api/mahad/batches", methods=["POST"])
    def create_batch():
        try:
            form = validated_form(BatchForm)
            batch = MahadService().create_batch(form.name.data, form.start_date.data, form.end_date.data)
            return ActionResult.ok(serialize_batch(batch, 0), status_code=201).to_response()
        except Exception as e:
            return handle_action_error(e, "creating batch").to_response()

    @app.route("/api/mahad/batches/<int:batch_id>", methods=["PATCH"])
    def update_batch(batch_id):
        try:
            form = validated_form(UpdateBatchForm)
            batch = MahadService().update_batch(batch_id, **form.provided_data())
            return ActionResult.ok(serialize_batch(batch)).to_response()
        except Exception as e:
            return handle_action_error(e, f"updating batch {batch_id}").to_response()

    @app.route("/api/mahad/batches/<int:batch_id>", methods=["DELETE"])
    def delete_batch(batch_id):
        try:
            MahadService().delete_batch(batch_id)
            return ActionResult.ok({"deleted": batch_id}).to_response()
        except Exception as e:
            return handle_action_error(e, f"deleting batch {batch_id}").to_response()

    @app.route("/api/mahad/batches/<int:batch_id>/assign", methods=["POST"])
    def assign_students_to_batch(batch_id):
        try:
            student_ids = id_list(json_body(), "student_ids")
            result = MahadService().assign_students_to_batch(batch_id, student_ids)
            return ActionResult.ok(result.assignment_dict()).to_response()
        except Exception as e:
            return handle_action_error(e, f"assigning students to batch {batch_id}").to_response()

    @app.route("/api/mahad/batches/<int:batch_id>/transfer", methods=["POST"])
    def transfer_students_to_batch(batch_id):
        try:
            student_ids = id_list(json_body(), "student_ids")
            result = MahadService().transfer_students_to_batch(batch_id, student_ids)
            return ActionResult.ok(result.transfer_dict()).to_response()
        except Exception as e:
            return handle_action_error(e, f"transferring students to batch {batch_id}").to_response()
