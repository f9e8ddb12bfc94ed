# irshad_admin/routes/attendance.py

"""
Teacher check-in, class and attendance session endpoints
"""

from datetime import date

from flask import request

from irshad_admin.forms import AdminClockInForm, ClassForm, ClockInForm, ClockOutForm, SessionForm
from irshad_admin.models import Shift
from irshad_admin.services.attendance_service import AttendanceService
from irshad_admin.services.checkin_service import CheckInService, get_check_in_window_status
from irshad_admin.utils.action_result import ActionResult, FieldValidationError, handle_action_error

from .helpers import json_body, validated_form
from .serializers import serialize_check_in, serialize_class, serialize_session


def _shift_arg(required=True):
    value = request.args.get("shift")
    if not value:
        if required:
            raise FieldValidationError({"shift": ["Shift is required."]})
        return None
    return Shift(value.upper())


def register_attendance_routes(app):
    """Register check-in and attendance routes"""

    # Check-in ------------------------------------------------------------------

    @app.route("/api/checkins/window", methods=["GET"])
    def check_in_window():
        try:
            status = get_check_in_window_status(_shift_arg())
            return ActionResult.ok(
                {
                    "can_check_in": status.can_check_in,
                    "reason": status.reason,
                    "window_opens_at": status.window_opens_at.isoformat() if status.window_opens_at else None,
                    "window_closed_at": status.window_closed_at.isoformat() if status.window_closed_at else None,
                }
            ).to_response()
        except Exception as e:
            return handle_action_error(e, "checking check-in window").to_response()

    @app.route("/api/checkins", methods=["GET"])
    def list_check_ins():
        try:
            on = request.args.get("date")
            check_ins = CheckInService().list_check_ins(
                date.fromisoformat(on) if on else date.today(), _shift_arg(required=False)
            )
            return ActionResult.ok([serialize_check_in(c) for c in check_ins]).to_response()
        except Exception as e:
            return handle_action_error(e, "listing check-ins").to_response()

    @app.route("/api/checkins", methods=["POST"])
    def clock_in():
        try:
            form = validated_form(ClockInForm)
            data = form.provided_data()
            check_in = CheckInService().clock_in(data["teacher_id"], data["shift"], data["lat"], data["lng"])
            return ActionResult.ok(serialize_check_in(check_in), status_code=201).to_response()
        except Exception as e:
            return handle_action_error(e, "clocking in").to_response()

    @app.route("/api/checkins/manual", methods=["POST"])
    def admin_clock_in():
        try:
            form = validated_form(AdminClockInForm)
            data = form.provided_data()
            check_in = CheckInService().admin_clock_in(data["teacher_id"], data["shift"], data["reason"])
            return ActionResult.ok(serialize_check_in(check_in), status_code=201).to_response()
        except Exception as e:
            return handle_action_error(e, "recording manual check-in").to_response()

    @app.route("/api/checkins/<int:check_in_id>/clock-out", methods=["POST"])
    def clock_out(check_in_id):
        try:
            form = validated_form(ClockOutForm)
            check_in = CheckInService().clock_out(check_in_id, form.lat.data, form.lng.data)
            return ActionResult.ok(serialize_check_in(check_in)).to_response()
        except Exception as e:
            return handle_action_error(e, f"clocking out {check_in_id}").to_response()

    @app.route("/api/checkins/no-shows", methods=["GET"])
    def no_show_teachers():
        try:
            return ActionResult.ok(CheckInService().get_no_show_teachers(_shift_arg())).to_response()
        except Exception as e:
            return handle_action_error(e, "listing no-show teachers").to_response()

    # Classes and sessions ------------------------------------------------------

    @app.route("/api/attendance/classes", methods=["GET"])
    def list_classes():
        try:
            classes = AttendanceService().list_classes()
            return ActionResult.ok([serialize_class(c) for c in classes]).to_response()
        except Exception as e:
            return handle_action_error(e, "listing classes").to_response()

    @app.route("/api/attendance/classes", methods=["POST"])
    def create_class():
        try:
            form = validated_form(ClassForm)
            data = form.provided_data()
            attendance_class = AttendanceService().create_class(
                data["name"], data["shift"], data.get("teacher_id"), data.get("description")
            )
            return ActionResult.ok(serialize_class(attendance_class), status_code=201).to_response()
        except Exception as e:
            return handle_action_error(e, "creating class").to_response()

    @app.route("/api/attendance/sessions", methods=["GET"])
    def list_sessions():
        try:
            on = request.args.get("date")
            sessions = AttendanceService().list_sessions(
                class_id=request.args.get("class_id", type=int), on=date.fromisoformat(on) if on else None
            )
            return ActionResult.ok([serialize_session(s) for s in sessions]).to_response()
        except Exception as e:
            return handle_action_error(e, "listing sessions").to_response()

    @app.route("/api/attendance/sessions", methods=["POST"])
    def create_attendance_session():
        try:
            form = validated_form(SessionForm)
            attendance_session = AttendanceService().create_attendance_session(
                form.class_id.data, form.date.data, form.notes.data or None
            )
            return ActionResult.ok(serialize_session(attendance_session), status_code=201).to_response()
        except Exception as e:
            return handle_action_error(e, "creating attendance session").to_response()

    @app.route("/api/attendance/sessions/<int:session_id>", methods=["GET"])
    def get_attendance_session(session_id):
        try:
            attendance_session = AttendanceService().get_session(session_id)
            return ActionResult.ok(serialize_session(attendance_session, include_records=True)).to_response()
        except Exception as e:
            return handle_action_error(e, f"loading session {session_id}").to_response()

    @app.route("/api/attendance/sessions/<int:session_id>/records", methods=["POST"])
    def mark_attendance(session_id):
        try:
            records = json_body().get("records")
            if not isinstance(records, list) or not records:
                raise FieldValidationError({"records": ["At least one attendance record is required."]})
            for index, record in enumerate(records):
                if not isinstance(record, dict) or "program_profile_id" not in record or "status" not in record:
                    raise FieldValidationError(
                        {f"records.{index}": ["program_profile_id and status are required."]}
                    )
            return ActionResult.ok(AttendanceService().mark_attendance(session_id, records)).to_response()
        except Exception as e:
            return handle_action_error(e, f"marking attendance for session {session_id}").to_response()

    @app.route("/api/attendance/sessions/<int:session_id>/close", methods=["POST"])
    def close_attendance_session(session_id):
        try:
            attendance_session = AttendanceService().close_session(session_id)
            return ActionResult.ok(serialize_session(attendance_session)).to_response()
        except Exception as e:
            return handle_action_error(e, f"closing session {session_id}").to_response()

    @app.route("/api/attendance/sessions/<int:session_id>", methods=["DELETE"])
    def delete_attendance_session(session_id):
        try:
            AttendanceService().delete_attendance_session(session_id)
            return ActionResult.ok({"deleted": session_id}).to_response()
        except Exception as e:
            return handle_action_error(e, f"deleting session {session_id}").to_response()

    @app.route("/api/attendance/students/<int:profile_id>/summary", methods=["GET"])
    def student_attendance_summary(profile_id):
        try:
            return ActionResult.ok(AttendanceService().get_student_attendance_summary(profile_id)).to_response()
        except Exception as e:
            return handle_action_error(e, f"summarizing attendance for {profile_id}").to_response()
