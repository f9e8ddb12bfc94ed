# tests/test_duplicate_service.py
"""
Tests for duplicate detection and soft-merge resolution
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from irshad_admin.models import EnrollmentStatus, Program
from irshad_admin.services.duplicate_service import DUPLICATE_RESOLVED_REASON, DuplicateService
from irshad_admin.services.enrollment_service import EnrollmentService
from irshad_admin.services.mahad_service import MahadService


@pytest.fixture
def near_duplicate(app):
    """Same student registered again without contact details and a typo in the name"""
    return MahadService().create_student(name="Yusuf Abdii")


class TestCheckDuplicate:
    """Registration-time duplicate checks"""

    def test_no_contact_details(self, mahad_student):
        check = DuplicateService().check_duplicate(program=Program.MAHAD_PROGRAM)
        assert check.is_duplicate is False
        assert check.existing_person is None

    def test_email_match_is_case_insensitive(self, mahad_student):
        check = DuplicateService().check_duplicate(email=" Yusuf@Example.com ", program=Program.MAHAD_PROGRAM)
        assert check.is_duplicate is True
        assert check.duplicate_field == "email"
        assert check.has_active_profile is True
        assert check.active_profile.id == mahad_student.id

    def test_phone_match_ignores_formatting(self, mahad_student):
        check = DuplicateService().check_duplicate(phone="612.555.0101", program=Program.MAHAD_PROGRAM)
        assert check.duplicate_field == "phone"

    def test_both_fields(self, mahad_student):
        check = DuplicateService().check_duplicate(
            email="yusuf@example.com", phone="6125550101", program=Program.MAHAD_PROGRAM
        )
        assert check.duplicate_field == "both"

    def test_other_program_has_no_active_profile(self, mahad_student):
        check = DuplicateService().check_duplicate(email="yusuf@example.com", program=Program.DUGSI_PROGRAM)
        assert check.is_duplicate is True
        assert check.has_active_profile is False
        assert check.to_dict()["active_profile"] is None

    def test_withdrawn_student_is_not_active(self, mahad_student):
        MahadService().delete_student(mahad_student.id)
        check = DuplicateService().check_duplicate(email="yusuf@example.com", program=Program.MAHAD_PROGRAM)
        assert check.is_duplicate is True
        assert check.has_active_profile is False


class TestFindDuplicateGroups:
    def test_groups_similar_names(self, mahad_student, near_duplicate):
        MahadService().create_student(name="Fartun Ali")

        groups = DuplicateService().find_duplicate_groups()

        assert len(groups) == 1
        assert [p.id for p in groups[0]] == [mahad_student.id, near_duplicate.id]

    def test_withdrawn_profiles_are_ignored(self, mahad_student, near_duplicate):
        MahadService().delete_student(near_duplicate.id)
        assert DuplicateService().find_duplicate_groups() == []


class TestResolveDuplicates:
    """Soft-merge resolution"""

    def test_requires_records(self, mahad_student):
        with pytest.raises(ValueError, match="No duplicate records selected"):
            DuplicateService().resolve_duplicates(mahad_student.id, [])

    def test_cannot_delete_kept_record(self, mahad_student):
        with pytest.raises(ValueError, match="Cannot delete the record you want to keep"):
            DuplicateService().resolve_duplicates(mahad_student.id, [mahad_student.id])

    def test_keep_must_exist(self, mahad_student):
        with pytest.raises(ValueError, match="Student record to keep not found"):
            DuplicateService().resolve_duplicates(999, [mahad_student.id])

    def test_reports_missing_records(self, mahad_student):
        with pytest.raises(ValueError, match="Some duplicate records not found: 998, 999"):
            DuplicateService().resolve_duplicates(mahad_student.id, [998, 999])

    def test_withdraws_discarded_records(self, mahad_student, near_duplicate):
        result = DuplicateService().resolve_duplicates(mahad_student.id, [near_duplicate.id])

        assert result.success is True
        assert result.resolved_ids == [near_duplicate.id]
        assert near_duplicate.status == EnrollmentStatus.WITHDRAWN
        closed = near_duplicate.enrollments[0]
        assert closed.status == EnrollmentStatus.WITHDRAWN
        assert closed.reason == DUPLICATE_RESOLVED_REASON
        assert mahad_student.status == EnrollmentStatus.ENROLLED

    def test_one_failed_record_does_not_stop_the_rest(self, mahad_student, near_duplicate):
        third = MahadService().create_student(name="Yusef Abdi")
        withdraw_all = EnrollmentService.withdraw_all

        def fail_for_near_duplicate(service, profile, reason=None):
            if profile.id == near_duplicate.id:
                raise OperationalError("UPDATE enrollments", {}, Exception("database is locked"))
            return withdraw_all(service, profile, reason=reason)

        with patch.object(EnrollmentService, "withdraw_all", autospec=True, side_effect=fail_for_near_duplicate):
            result = DuplicateService().resolve_duplicates(mahad_student.id, [near_duplicate.id, third.id])

        assert result.success is False
        assert result.resolved_ids == [third.id]
        assert result.failed_ids == [near_duplicate.id]
        assert "database is locked" in result.to_dict()["errors"][str(near_duplicate.id)]
        assert third.status == EnrollmentStatus.WITHDRAWN
        assert near_duplicate.status == EnrollmentStatus.REGISTERED
        assert near_duplicate.get_active_enrollment() is not None

    def test_resolve_groups_collects_failures(self, mahad_student, near_duplicate):
        outcome = DuplicateService().resolve_duplicate_groups(
            [
                {"keep_id": mahad_student.id, "delete_ids": [near_duplicate.id]},
                {"keep_id": mahad_student.id, "delete_ids": []},
            ]
        )
        assert outcome["resolved_count"] == 1
        assert outcome["failed_groups"] == [
            {"keep_id": mahad_student.id, "error": "No duplicate records selected for deletion"}
        ]


class TestSearchByContact:
    def test_own_contact(self, mahad_student):
        assert DuplicateService().search_profiles_by_contact("YUSUF@example.com") == [mahad_student]

    def test_guardian_contact_finds_children(self, dugsi_family):
        profiles = DuplicateService().search_profiles_by_contact("(612) 555-0111", Program.DUGSI_PROGRAM)
        assert {p.id for p in profiles} == {p.id for p in dugsi_family.profiles}

    def test_unknown_or_blank(self, mahad_student):
        service = DuplicateService()
        assert service.search_profiles_by_contact("nobody@example.com") == []
        assert service.search_profiles_by_contact("") == []
