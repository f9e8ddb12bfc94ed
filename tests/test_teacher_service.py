# tests/test_teacher_service.py
"""
Tests for teacher records and Dugsi student assignments
"""

import pytest

from irshad_admin.models import Person, Shift, Teacher
from irshad_admin.services.teacher_service import REASSIGNED_NOTE, TeacherService
from irshad_admin.utils.action_result import NotFoundError


@pytest.fixture
def second_teacher(app):
    return TeacherService().create_teacher(
        "Ustadha Khadra", email="khadra@example.com", shifts=["MORNING", "AFTERNOON"]
    )


class TestTeachers:
    """Creating, listing and deleting teachers"""

    def test_create_new_person(self):
        teacher = TeacherService().create_teacher("Ustadh Bilal", phone="612-555-0190", shifts=["afternoon"])

        assert teacher.person.name == "Ustadh Bilal"
        assert teacher.person.get_primary_phone() == "6125550190"
        assert teacher.get_shifts() == [Shift.AFTERNOON]

    def test_promote_existing_person(self, mahad_student):
        teacher = TeacherService().create_teacher(person_id=mahad_student.person_id)

        assert teacher.person_id == mahad_student.person_id
        assert Person.query.count() == 1

    def test_reuses_person_with_same_email(self, mahad_student):
        teacher = TeacherService().create_teacher("Someone Else", email="YUSUF@example.com")
        assert teacher.person_id == mahad_student.person_id

    def test_already_a_teacher(self, teacher):
        with pytest.raises(ValueError, match="Ustadh Ibrahim is already a teacher"):
            TeacherService().create_teacher(person_id=teacher.person_id)

    def test_name_required_for_new_person(self):
        with pytest.raises(ValueError, match="Teacher name is required"):
            TeacherService().create_teacher("  ")

    def test_unknown_person(self):
        with pytest.raises(NotFoundError, match="Person not found"):
            TeacherService().create_teacher(person_id=999)

    def test_unknown_shift(self):
        with pytest.raises(ValueError, match="Unknown shift: EVENING"):
            TeacherService().create_teacher("Ustadh Bilal", shifts=["evening"])
        assert Teacher.query.count() == 0

    def test_list_sorted_and_filtered_by_shift(self, teacher, second_teacher):
        service = TeacherService()

        assert [t.person.name for t in service.list_teachers()] == ["Ustadh Ibrahim", "Ustadha Khadra"]
        assert service.list_teachers(Shift.AFTERNOON) == [second_teacher]

    def test_delete_is_soft_and_ends_assignments(self, teacher, dugsi_family):
        service = TeacherService()
        assignment = service.assign_teacher_to_student(teacher.id, dugsi_family.profiles[0].id, Shift.MORNING)

        ended = service.delete_teacher(teacher.id)

        assert ended == 1
        assert teacher.is_active is False
        assert assignment.is_active is False
        assert assignment.end_date is not None
        assert service.list_teachers() == []
        assert service.list_teachers(include_inactive=True) == [teacher]
        with pytest.raises(NotFoundError):
            service.get_teacher(teacher.id)

    def test_recreating_deleted_teacher_reactivates(self, teacher):
        service = TeacherService()
        service.delete_teacher(teacher.id)

        again = service.create_teacher(person_id=teacher.person_id, shifts=["AFTERNOON"])

        assert again.id == teacher.id
        assert again.is_active is True
        assert again.get_shifts() == [Shift.AFTERNOON]


class TestAssignments:
    """Assigning Dugsi students to teachers"""

    def test_assign(self, teacher, dugsi_family):
        child = dugsi_family.profiles[0]
        assignment = TeacherService().assign_teacher_to_student(teacher.id, child.id, "morning", notes="New student")

        assert assignment.shift == Shift.MORNING
        assert assignment.is_active is True
        assert assignment.notes == "New student"
        assert child.teacher_assignments == [assignment]

    def test_duplicate_active_assignment_rejected(self, teacher, second_teacher, dugsi_family):
        service = TeacherService()
        child = dugsi_family.profiles[0]
        service.assign_teacher_to_student(teacher.id, child.id, Shift.MORNING)

        with pytest.raises(ValueError, match="already has an active MORNING shift assignment"):
            service.assign_teacher_to_student(second_teacher.id, child.id, Shift.MORNING)

    def test_other_shift_is_separate(self, teacher, second_teacher, dugsi_family):
        service = TeacherService()
        child = dugsi_family.profiles[0]
        service.assign_teacher_to_student(teacher.id, child.id, Shift.MORNING)

        afternoon = service.assign_teacher_to_student(second_teacher.id, child.id, Shift.AFTERNOON)

        assert afternoon.is_active is True

    def test_shift_required(self, teacher, dugsi_family):
        with pytest.raises(ValueError, match="Shift is required"):
            TeacherService().assign_teacher_to_student(teacher.id, dugsi_family.profiles[0].id, None)

    def test_teacher_must_work_the_shift(self, teacher, dugsi_family):
        with pytest.raises(ValueError, match="does not work the AFTERNOON shift"):
            TeacherService().assign_teacher_to_student(teacher.id, dugsi_family.profiles[0].id, Shift.AFTERNOON)

    def test_only_dugsi_students(self, teacher, mahad_student):
        with pytest.raises(ValueError, match="Only Dugsi students are assigned to teachers"):
            TeacherService().assign_teacher_to_student(teacher.id, mahad_student.id, Shift.MORNING)

    def test_unknown_profile(self, teacher):
        with pytest.raises(NotFoundError, match="Program profile not found"):
            TeacherService().assign_teacher_to_student(teacher.id, 999, Shift.MORNING)

    def test_reassign(self, teacher, second_teacher, dugsi_family):
        service = TeacherService()
        old = service.assign_teacher_to_student(teacher.id, dugsi_family.profiles[0].id, Shift.MORNING)

        new = service.reassign_student(old.id, second_teacher.id)

        assert old.is_active is False
        assert old.end_date is not None
        assert new.teacher_id == second_teacher.id
        assert new.shift == Shift.MORNING
        assert new.notes == REASSIGNED_NOTE

    def test_failed_reassign_keeps_old_assignment(self, teacher, dugsi_family):
        service = TeacherService()
        old = service.assign_teacher_to_student(teacher.id, dugsi_family.profiles[0].id, Shift.MORNING)

        with pytest.raises(NotFoundError, match="Teacher not found"):
            service.reassign_student(old.id, 999)

        assert service.get_assignment(old.id).is_active is True

    def test_remove(self, teacher, dugsi_family):
        service = TeacherService()
        assignment = service.assign_teacher_to_student(teacher.id, dugsi_family.profiles[0].id, Shift.MORNING)

        removed = service.remove_teacher_assignment(assignment.id)

        assert removed.is_active is False
        assert service.get_teacher_assignments(teacher.id) == []
        assert service.get_teacher_assignments(teacher.id, include_inactive=True) == [assignment]

    def test_remove_missing(self):
        with pytest.raises(NotFoundError, match="Assignment not found"):
            TeacherService().remove_teacher_assignment(999)

    def test_bulk_assign_collects_failures(self, teacher, dugsi_family, mahad_student):
        first, second = dugsi_family.profiles

        result = TeacherService().bulk_assign_students(
            teacher.id,
            [
                {"program_profile_id": first.id, "shift": "MORNING"},
                {"program_profile_id": first.id, "shift": "MORNING"},
                {"program_profile_id": mahad_student.id, "shift": "MORNING"},
                {"program_profile_id": second.id, "shift": "MORNING"},
            ],
        )

        payload = result.to_dict()
        assert payload["created"] == 2
        assert payload["skipped"] == 2
        assert [e["program_profile_id"] for e in payload["errors"]] == [first.id, mahad_student.id]
        assert len(TeacherService().get_teacher_assignments(teacher.id)) == 2

    def test_withdrawn_child_loses_assignment(self, teacher, dugsi_family):
        from irshad_admin.services.family_service import DugsiFamilyService

        child = dugsi_family.profiles[0]
        assignment = TeacherService().assign_teacher_to_student(teacher.id, child.id, Shift.MORNING)

        DugsiFamilyService().withdraw_child(child.id)

        assert assignment.is_active is False
        assert assignment.end_date is not None
