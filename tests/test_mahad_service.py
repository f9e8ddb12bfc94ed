# tests/test_mahad_service.py
"""
Tests for Mahad student records and batch membership
"""

import pytest

from irshad_admin.models import (
    EnrollmentStatus,
    GraduationStatus,
    PaymentFrequency,
    StudentBillingType,
    db,
)
from irshad_admin.services.enrollment_service import EnrollmentService
from irshad_admin.services.mahad_service import MahadService
from irshad_admin.utils.action_result import NotFoundError


@pytest.fixture
def spring_batch():
    return MahadService().create_batch("Spring 2025")


class TestMahadStudents:
    """Student create/update/delete"""

    def test_create_student_enrolls_in_batch(self, mahad_student, batch):
        person = mahad_student.person
        assert person.get_primary_email() == "yusuf@example.com"
        assert person.get_primary_phone() == "6125550101"
        assert mahad_student.status == EnrollmentStatus.ENROLLED
        assert mahad_student.get_active_enrollment().batch_id == batch.id

    def test_create_student_without_batch_is_registered(self):
        profile = MahadService().create_student(name="Sagal Warsame", email="sagal@example.com")
        assert profile.status == EnrollmentStatus.REGISTERED
        assert profile.get_active_enrollment().batch_id is None

    def test_duplicate_email_rejected(self, mahad_student):
        with pytest.raises(ValueError, match="with this email is already registered"):
            MahadService().create_student(name="Someone Else", email="YUSUF@example.com")

    def test_unknown_batch(self):
        with pytest.raises(NotFoundError, match="Batch not found"):
            MahadService().create_student(name="Sagal Warsame", batch_id=42)

    def test_billing_fields_set_rate(self):
        profile = MahadService().create_student(
            name="Sagal Warsame",
            graduation_status=GraduationStatus.GRADUATE,
            payment_frequency=PaymentFrequency.MONTHLY,
            billing_type=StudentBillingType.FULL_TIME,
        )
        assert profile.monthly_rate == 95
        assert profile.custom_rate is False

    def test_explicit_rate_is_custom(self, mahad_student):
        profile = MahadService().update_student(mahad_student.id, monthly_rate=60)
        assert profile.monthly_rate == 60
        assert profile.custom_rate is True

    def test_update_contact(self, mahad_student):
        MahadService().update_student(mahad_student.id, name="Yusuf  Abdi Ali", phone="612 555 0199")
        assert mahad_student.person.name == "Yusuf Abdi Ali"
        assert mahad_student.person.get_primary_phone() == "6125550199"

    def test_delete_is_soft(self, mahad_student):
        service = MahadService()
        service.delete_student(mahad_student.id)

        assert mahad_student.status == EnrollmentStatus.WITHDRAWN
        assert mahad_student.get_active_enrollment() is None
        assert service.list_students() == []
        assert service.list_students(include_withdrawn=True) == [mahad_student]

    def test_list_students_filters(self, mahad_student, batch, spring_batch):
        service = MahadService()
        assert service.list_students(batch_id=batch.id) == [mahad_student]
        assert service.list_students(batch_id=spring_batch.id) == []
        assert service.list_students(search="yusuf") == [mahad_student]


class TestBatches:
    """Batch CRUD"""

    def test_duplicate_batch_name(self, batch):
        with pytest.raises(ValueError, match='A batch named "fall 2024" already exists'):
            MahadService().create_batch("fall 2024")

    def test_blank_name(self):
        with pytest.raises(ValueError, match="Batch name is required"):
            MahadService().create_batch("   ")

    def test_list_batches_counts_active_students(self, mahad_student, batch, spring_batch):
        rows = {row["batch"].id: row["student_count"] for row in MahadService().list_batches()}
        assert rows == {batch.id: 1, spring_batch.id: 0}

    def test_cannot_delete_batch_with_students(self, mahad_student, batch):
        with pytest.raises(ValueError, match=r"Cannot delete batch with 1 active student\(s\)"):
            MahadService().delete_batch(batch.id)

    def test_delete_empty_batch(self, spring_batch):
        service = MahadService()
        service.delete_batch(spring_batch.id)
        with pytest.raises(NotFoundError):
            service.get_batch(spring_batch.id)

    def test_update_batch(self, batch):
        updated = MahadService().update_batch(batch.id, name="Fall 2024 Cohort")
        assert updated.name == "Fall 2024 Cohort"


class TestBatchMovements:
    """Bulk assignment and transfer"""

    def test_assign_reports_per_student(self, mahad_student, spring_batch):
        result = MahadService().assign_students_to_batch(spring_batch.id, [mahad_student.id, 999])

        payload = result.assignment_dict()
        assert payload["assigned_count"] == 1
        assert payload["failed_assignments"] == [{"student_id": 999, "error": "Student not found"}]
        assert mahad_student.get_active_enrollment().batch_id == spring_batch.id

    def test_assign_to_current_batch_is_noop(self, mahad_student, batch):
        before = len(mahad_student.enrollments)
        result = MahadService().assign_students_to_batch(batch.id, [mahad_student.id])
        assert result.assignment_dict()["assigned_count"] == 1
        assert len(mahad_student.enrollments) == before

    def test_transfer(self, mahad_student, spring_batch):
        result = MahadService().transfer_students_to_batch(spring_batch.id, [mahad_student.id])
        assert result.transfer_dict() == {"transferred_count": 1, "failed_transfers": []}
        withdrawn = [e for e in mahad_student.enrollments if e.status == EnrollmentStatus.WITHDRAWN]
        assert len(withdrawn) == 1

    def test_transfer_into_same_batch_fails(self, mahad_student, batch):
        result = MahadService().transfer_students_to_batch(batch.id, [mahad_student.id])
        assert result.transfer_dict()["failed_transfers"] == [
            {"student_id": mahad_student.id, "error": "Student is already in this batch"}
        ]

    def test_transfer_without_enrollment_fails(self, mahad_student, spring_batch):
        service = MahadService()
        service.delete_student(mahad_student.id)
        result = service.transfer_students_to_batch(spring_batch.id, [mahad_student.id])
        assert result.failures[0]["error"] == "No active enrollment found"

    def test_withdraw_from_batch(self, mahad_student):
        service = MahadService()
        enrollment = service.withdraw_student_from_batch(mahad_student.id)

        assert enrollment.batch_id is None
        assert mahad_student.status == EnrollmentStatus.REGISTERED
        with pytest.raises(ValueError, match="not assigned to a batch"):
            service.withdraw_student_from_batch(mahad_student.id)

    def test_assign_after_completion(self, mahad_student, spring_batch):
        enrollments = EnrollmentService()
        completed = mahad_student.get_active_enrollment()
        enrollments.update_enrollment_status(completed.id, EnrollmentStatus.COMPLETED)

        result = MahadService().assign_students_to_batch(spring_batch.id, [mahad_student.id])

        assert result.assignment_dict() == {"assigned_count": 1, "failed_assignments": []}
        assert completed.status == EnrollmentStatus.COMPLETED
        assert enrollments.get_active_enrollment(mahad_student.id).batch_id == spring_batch.id

    def test_open_completed_row_is_closed_on_transfer(self, mahad_student, spring_batch):
        completed = mahad_student.get_active_enrollment()
        completed.status = EnrollmentStatus.COMPLETED
        db.session.commit()

        result = MahadService().transfer_students_to_batch(spring_batch.id, [mahad_student.id])

        assert result.transfer_dict() == {"transferred_count": 1, "failed_transfers": []}
        assert completed.status == EnrollmentStatus.COMPLETED
        assert completed.end_date is not None
        assert mahad_student.get_active_enrollment().batch_id == spring_batch.id

    def test_withdraw_from_batch_closes_open_completed_row(self, mahad_student):
        completed = mahad_student.get_active_enrollment()
        completed.status = EnrollmentStatus.COMPLETED
        db.session.commit()

        enrollment = MahadService().withdraw_student_from_batch(mahad_student.id)

        assert completed.end_date is not None
        assert enrollment.status == EnrollmentStatus.REGISTERED
