# tests/test_attendance_service.py
"""
Tests for weekend classes, sessions and attendance marks
"""

from datetime import date

import pytest

from irshad_admin.models import AttendanceRecord, AttendanceStatus, Shift, db
from irshad_admin.services.attendance_service import AttendanceService, is_weekend, session_is_closed
from irshad_admin.utils.action_result import NotFoundError

SATURDAY = date(2025, 3, 8)
SUNDAY = date(2025, 3, 9)
MONDAY = date(2025, 3, 10)


@pytest.fixture
def quran_class(teacher):
    return AttendanceService().create_class("Quran A", "morning", teacher_id=teacher.id)


@pytest.fixture
def saturday_session(quran_class):
    return AttendanceService().create_attendance_session(quran_class.id, SATURDAY)


class TestClasses:
    def test_create_class(self, quran_class, teacher):
        assert quran_class.shift == Shift.MORNING
        assert quran_class.teacher_id == teacher.id
        assert AttendanceService().list_classes() == [quran_class]

    def test_duplicate_name(self, quran_class):
        with pytest.raises(ValueError, match='A class named "Quran A" already exists'):
            AttendanceService().create_class("Quran A", Shift.AFTERNOON)

    def test_unknown_teacher(self, app):
        with pytest.raises(NotFoundError, match="Teacher not found"):
            AttendanceService().create_class("Quran B", Shift.MORNING, teacher_id=999)

    def test_assign_teacher(self, quran_class):
        updated = AttendanceService().assign_teacher(quran_class.id, None)
        assert updated.teacher_id is None


class TestSessions:
    """Session creation and closing rules"""

    def test_weekend_only(self, quran_class):
        with pytest.raises(ValueError, match="only be created on weekends"):
            AttendanceService().create_attendance_session(quran_class.id, MONDAY)

    def test_requires_teacher(self, app):
        attendance_class = AttendanceService().create_class("Quran C", Shift.AFTERNOON)
        with pytest.raises(ValueError, match="No active teacher assigned"):
            AttendanceService().create_attendance_session(attendance_class.id, SATURDAY)

    def test_one_session_per_class_and_date(self, saturday_session, quran_class):
        with pytest.raises(ValueError, match="already exists for this class on this date"):
            AttendanceService().create_attendance_session(quran_class.id, SATURDAY)
        assert AttendanceService().create_attendance_session(quran_class.id, SUNDAY).id != saturday_session.id

    def test_session_closes_after_weekend(self, saturday_session):
        assert is_weekend(SATURDAY) and is_weekend(SUNDAY) and not is_weekend(MONDAY)
        assert session_is_closed(saturday_session, today=SUNDAY) is False
        assert session_is_closed(saturday_session, today=MONDAY) is True

    def test_list_sessions(self, saturday_session, quran_class):
        service = AttendanceService()
        assert service.list_sessions(class_id=quran_class.id) == [saturday_session]
        assert service.list_sessions(on=SUNDAY) == []


class TestMarking:
    """mark_attendance upserts"""

    def test_mark_and_update(self, saturday_session, dugsi_family):
        service = AttendanceService()
        first, second = dugsi_family.profiles
        result = service.mark_attendance(
            saturday_session.id,
            [
                {
                    "program_profile_id": first.id,
                    "status": "present",
                    "lesson_completed": True,
                    "surah_name": "Al-Mulk",
                    "ayat_from": 1,
                    "ayat_to": 10,
                },
                {"program_profile_id": second.id, "status": AttendanceStatus.ABSENT},
            ],
            today=SATURDAY,
        )
        assert result == {"record_count": 2}

        service.mark_attendance(
            saturday_session.id, [{"program_profile_id": first.id, "status": "LATE"}], today=SUNDAY
        )

        records = db.session.query(AttendanceRecord).filter_by(session_id=saturday_session.id).all()
        assert len(records) == 2
        updated = next(r for r in records if r.program_profile_id == first.id)
        assert updated.status == AttendanceStatus.LATE
        assert updated.lesson_completed is False
        assert updated.surah_name is None

    def test_only_dugsi_students(self, saturday_session, mahad_student):
        with pytest.raises(NotFoundError, match=f"Student not found: {mahad_student.id}"):
            AttendanceService().mark_attendance(
                saturday_session.id,
                [{"program_profile_id": mahad_student.id, "status": "PRESENT"}],
                today=SATURDAY,
            )

    def test_invalid_status_rolls_back(self, saturday_session, dugsi_family):
        with pytest.raises(ValueError):
            AttendanceService().mark_attendance(
                saturday_session.id,
                [{"program_profile_id": dugsi_family.profiles[0].id, "status": "SLEEPING"}],
                today=SATURDAY,
            )
        assert db.session.query(AttendanceRecord).count() == 0

    def test_closed_sessions_reject_marks(self, saturday_session, dugsi_family):
        service = AttendanceService()
        records = [{"program_profile_id": dugsi_family.profiles[0].id, "status": "PRESENT"}]
        with pytest.raises(ValueError, match="Cannot modify a closed session"):
            service.mark_attendance(saturday_session.id, records, today=MONDAY)

        service.close_session(saturday_session.id)
        with pytest.raises(ValueError, match="Cannot modify a closed session"):
            service.mark_attendance(saturday_session.id, records, today=SATURDAY)

    def test_delete_session_removes_records(self, saturday_session, dugsi_family):
        service = AttendanceService()
        service.mark_attendance(
            saturday_session.id,
            [{"program_profile_id": dugsi_family.profiles[0].id, "status": "PRESENT"}],
            today=SATURDAY,
        )
        service.delete_attendance_session(saturday_session.id)
        assert db.session.query(AttendanceRecord).count() == 0
        with pytest.raises(NotFoundError):
            service.get_session(saturday_session.id)


def test_student_summary(quran_class, dugsi_family):
    service = AttendanceService()
    profile_id = dugsi_family.profiles[0].id
    saturday = service.create_attendance_session(quran_class.id, SATURDAY)
    sunday = service.create_attendance_session(quran_class.id, SUNDAY)
    service.mark_attendance(saturday.id, [{"program_profile_id": profile_id, "status": "LATE"}], today=SATURDAY)
    service.mark_attendance(sunday.id, [{"program_profile_id": profile_id, "status": "ABSENT"}], today=SUNDAY)

    summary = service.get_student_attendance_summary(profile_id)

    assert summary["total"] == 2
    assert summary["counts"]["LATE"] == 1
    assert summary["counts"]["ABSENT"] == 1
    assert summary["attendance_rate"] == 0.5
    assert service.get_student_attendance_summary(dugsi_family.profiles[1].id)["attendance_rate"] is None
