# tests/test_enrollment_service.py
"""
Tests for enrollment status transitions and re-enrollment
"""

from datetime import datetime, timezone

import pytest

from irshad_admin.models import EnrollmentStatus, Program
from irshad_admin.services.enrollment_service import (
    DUGSI_BATCH_ERROR,
    EnrollmentService,
    validate_transition,
)
from irshad_admin.utils.action_result import NotFoundError


class TestValidateTransition:
    """Allowed status moves"""

    @pytest.mark.parametrize(
        "current,new",
        [
            (EnrollmentStatus.REGISTERED, EnrollmentStatus.ENROLLED),
            (EnrollmentStatus.ENROLLED, EnrollmentStatus.COMPLETED),
            (EnrollmentStatus.ON_LEAVE, EnrollmentStatus.ENROLLED),
            (EnrollmentStatus.SUSPENDED, EnrollmentStatus.WITHDRAWN),
        ],
    )
    def test_allowed(self, current, new):
        validate_transition(current, new)

    def test_same_state_is_allowed(self):
        validate_transition(EnrollmentStatus.WITHDRAWN, EnrollmentStatus.WITHDRAWN)

    def test_terminal_state(self):
        with pytest.raises(ValueError, match="WITHDRAWN is a terminal state"):
            validate_transition(EnrollmentStatus.WITHDRAWN, EnrollmentStatus.ENROLLED)

    def test_lists_allowed_targets(self):
        with pytest.raises(ValueError) as exc_info:
            validate_transition(EnrollmentStatus.REGISTERED, EnrollmentStatus.COMPLETED)
        assert "ENROLLED, ON_LEAVE, WITHDRAWN" in str(exc_info.value)


class TestEnrollmentService:
    """EnrollmentService against the database"""

    def test_update_status(self, mahad_student):
        service = EnrollmentService()
        enrollment = mahad_student.get_active_enrollment()

        updated = service.update_enrollment_status(enrollment.id, "on_leave", reason="Travel")

        assert updated.status == EnrollmentStatus.ON_LEAVE
        assert updated.reason == "Travel"
        assert updated.end_date is None

    def test_withdraw_stamps_end_date(self, mahad_student):
        service = EnrollmentService()
        enrollment = mahad_student.get_active_enrollment()

        updated = service.update_enrollment_status(enrollment.id, EnrollmentStatus.WITHDRAWN)

        assert updated.end_date is not None
        assert service.get_active_enrollment(mahad_student.id) is None

    def test_explicit_end_date_wins(self, mahad_student):
        service = EnrollmentService()
        enrollment = mahad_student.get_active_enrollment()
        end = datetime(2025, 1, 31, tzinfo=timezone.utc)

        updated = service.update_enrollment_status(enrollment.id, EnrollmentStatus.COMPLETED, end_date=end)

        assert updated.end_date.date() == end.date()

    def test_invalid_transition_leaves_row_untouched(self, mahad_student):
        service = EnrollmentService()
        enrollment = mahad_student.get_active_enrollment()
        service.update_enrollment_status(enrollment.id, EnrollmentStatus.WITHDRAWN)

        with pytest.raises(ValueError):
            service.update_enrollment_status(enrollment.id, EnrollmentStatus.ENROLLED)
        assert service.get_enrollment(enrollment.id).status == EnrollmentStatus.WITHDRAWN

    def test_unknown_status(self, mahad_student):
        enrollment = mahad_student.get_active_enrollment()
        with pytest.raises(ValueError, match="Unknown enrollment status"):
            EnrollmentService().update_enrollment_status(enrollment.id, "GRADUATED")

    def test_missing_enrollment(self):
        with pytest.raises(NotFoundError, match="Enrollment not found: 999"):
            EnrollmentService().get_enrollment(999)

    def test_re_enroll_requires_no_active_enrollment(self, mahad_student):
        service = EnrollmentService()
        with pytest.raises(ValueError, match="already has an active enrollment"):
            service.re_enroll_student(mahad_student.id)

    def test_re_enroll_creates_new_row(self, mahad_student):
        service = EnrollmentService()
        old = mahad_student.get_active_enrollment()
        service.update_enrollment_status(old.id, EnrollmentStatus.WITHDRAWN)

        new = service.re_enroll_student(mahad_student.id)

        assert new.id != old.id
        assert new.status == EnrollmentStatus.REGISTERED
        assert len(service.get_enrollment_history(mahad_student.id)) == 2

    def test_completed_stamps_end_date(self, mahad_student):
        service = EnrollmentService()
        enrollment = mahad_student.get_active_enrollment()

        updated = service.update_enrollment_status(enrollment.id, EnrollmentStatus.COMPLETED)

        assert updated.end_date is not None
        assert service.get_active_enrollment(mahad_student.id) is None

    def test_explicit_null_end_date_still_closes_terminal_status(self, mahad_student):
        service = EnrollmentService()
        enrollment = mahad_student.get_active_enrollment()

        updated = service.update_enrollment_status(enrollment.id, EnrollmentStatus.COMPLETED, end_date=None)

        assert updated.end_date is not None

    def test_re_enroll_after_completion(self, mahad_student):
        service = EnrollmentService()
        completed = mahad_student.get_active_enrollment()
        service.update_enrollment_status(completed.id, EnrollmentStatus.COMPLETED)

        new = service.re_enroll_student(mahad_student.id)

        assert new.status == EnrollmentStatus.REGISTERED
        assert service.get_enrollment(completed.id).status == EnrollmentStatus.COMPLETED

    def test_close_only_ends_terminal_rows(self, mahad_student):
        service = EnrollmentService()
        enrollment = mahad_student.get_active_enrollment()
        enrollment.status = EnrollmentStatus.COMPLETED

        service.close(enrollment, reason="Moving on")

        assert enrollment.status == EnrollmentStatus.COMPLETED
        assert enrollment.end_date is not None

    def test_dugsi_enrollment_cannot_have_batch(self, dugsi_family, batch):
        profile = dugsi_family.profiles[0]
        with pytest.raises(ValueError) as exc_info:
            EnrollmentService().create_enrollment(profile.id, batch_id=batch.id)
        assert str(exc_info.value) == DUGSI_BATCH_ERROR

    def test_enrollments_by_program(self, mahad_student, dugsi_family, batch):
        service = EnrollmentService()
        mahad = service.get_enrollments_by_program(Program.MAHAD_PROGRAM)
        dugsi = service.get_enrollments_by_program(Program.DUGSI_PROGRAM)

        assert [e.program_profile_id for e in mahad] == [mahad_student.id]
        assert len(dugsi) == 2
        assert len(service.get_enrollments_by_program(Program.MAHAD_PROGRAM, batch_id=batch.id)) == 1
