# irshad_admin/routes/enrollment.py

"""
Enrollment status endpoints
"""

from irshad_admin.forms import EnrollmentStatusForm, ReEnrollForm
from irshad_admin.services.enrollment_service import UNSET, EnrollmentService
from irshad_admin.utils.action_result import ActionResult, handle_action_error

from .helpers import json_body, validated_form
from .serializers import serialize_enrollment


def register_enrollment_routes(app):
    """Register enrollment routes"""

    @app.route("/api/enrollments/<int:enrollment_id>", methods=["GET"])
    def get_enrollment(enrollment_id):
        try:
            enrollment = EnrollmentService().get_enrollment(enrollment_id)
            return ActionResult.ok(serialize_enrollment(enrollment)).to_response()
        except Exception as e:
            return handle_action_error(e, f"loading enrollment {enrollment_id}").to_response()

    @app.route("/api/enrollments/<int:enrollment_id>/status", methods=["POST"])
    def update_enrollment_status(enrollment_id):
        try:
            payload = json_body()
            form = validated_form(EnrollmentStatusForm, payload)
            data = form.provided_data()
            # an explicit null clears the end date; absence leaves the default rule
            end_date = data.get("end_date") if "end_date" in payload else UNSET
            enrollment = EnrollmentService().update_enrollment_status(
                enrollment_id, data["status"], reason=data.get("reason"), end_date=end_date
            )
            return ActionResult.ok(serialize_enrollment(enrollment)).to_response()
        except Exception as e:
            return handle_action_error(e, f"updating enrollment {enrollment_id}").to_response()

    @app.route("/api/profiles/<int:profile_id>/enrollments", methods=["GET"])
    def get_enrollment_history(profile_id):
        try:
            history = EnrollmentService().get_enrollment_history(profile_id)
            return ActionResult.ok([serialize_enrollment(e) for e in history]).to_response()
        except Exception as e:
            return handle_action_error(e, f"loading enrollment history for {profile_id}").to_response()

    @app.route("/api/profiles/<int:profile_id>/re-enroll", methods=["POST"])
    def re_enroll_student(profile_id):
        try:
            form = validated_form(ReEnrollForm)
            enrollment = EnrollmentService().re_enroll_student(profile_id, batch_id=form.batch_id.data)
            return ActionResult.ok(serialize_enrollment(enrollment), status_code=201).to_response()
        except Exception as e:
            return handle_action_error(e, f"re-enrolling profile {profile_id}").to_response()
