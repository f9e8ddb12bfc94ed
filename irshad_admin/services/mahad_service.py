"""
Mahad students and cohorts (batches).

Mahad "delete" is a soft delete: enrollments are withdrawn and the profile is
marked WITHDRAWN so billing history stays auditable. Bulk batch moves are
best-effort: each student is committed on its own and failures are reported
per student instead of aborting the whole request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from irshad_admin.models import (
    Batch,
    ContactPoint,
    ContactType,
    Enrollment,
    EnrollmentStatus,
    Person,
    Program,
    ProgramProfile,
    db,
)
from irshad_admin.services.duplicate_service import DuplicateService
from irshad_admin.services.enrollment_service import EnrollmentService
from irshad_admin.utils.action_result import NotFoundError
from irshad_admin.utils.tuition import calculate_mahad_rate

PROFILE_FIELDS = (
    "gender",
    "education_level",
    "grade_level",
    "school_name",
    "health_info",
    "graduation_status",
    "payment_frequency",
    "billing_type",
)


@dataclass
class BatchAssignmentResult:
    """Outcome of a bulk assign or transfer."""

    succeeded: list[int] = field(default_factory=list)
    failures: list[dict[str, Any]] = field(default_factory=list)

    def assignment_dict(self) -> dict:
        return {"assigned_count": len(self.succeeded), "failed_assignments": self.failures}

    def transfer_dict(self) -> dict:
        return {"transferred_count": len(self.succeeded), "failed_transfers": self.failures}


class MahadService:
    """Service for Mahad student records and batch membership."""

    def __init__(self, session: Session | None = None):
        self.session = session or db.session
        self.enrollments = EnrollmentService(self.session)

    # --------------------------------------------------------------- students

    def get_student(self, profile_id: int) -> ProgramProfile:
        profile = self.session.get(ProgramProfile, profile_id)
        if profile is None or profile.program != Program.MAHAD_PROGRAM:
            raise NotFoundError("Student not found")
        return profile

    def list_students(
        self,
        *,
        batch_id: int | None = None,
        status: EnrollmentStatus | None = None,
        search: str | None = None,
        include_withdrawn: bool = False,
    ) -> list[ProgramProfile]:
        query = (
            self.session.query(ProgramProfile)
            .join(Person, ProgramProfile.person_id == Person.id)
            .options(
                joinedload(ProgramProfile.person).joinedload(Person.contact_points),
                joinedload(ProgramProfile.enrollments).joinedload(Enrollment.batch),
            )
            .filter(ProgramProfile.program == Program.MAHAD_PROGRAM)
        )
        if status is not None:
            query = query.filter(ProgramProfile.status == status)
        elif not include_withdrawn:
            query = query.filter(ProgramProfile.status != EnrollmentStatus.WITHDRAWN)
        if batch_id is not None:
            query = query.filter(
                ProgramProfile.enrollments.any(
                    (Enrollment.batch_id == batch_id) & Enrollment.end_date.is_(None)
                    & (Enrollment.status != EnrollmentStatus.WITHDRAWN)
                )
            )
        if search:
            query = query.filter(Person.name.ilike(f"%{search.strip()}%"))
        return query.order_by(Person.name).all()

    def create_student(
        self,
        *,
        name: str,
        email: str | None = None,
        phone: str | None = None,
        date_of_birth: date | None = None,
        batch_id: int | None = None,
        **profile_fields,
    ) -> ProgramProfile:
        """
        Register a Mahad student in one transaction: person (reused when the
        email or phone already belongs to someone), primary contact points,
        profile and an opening enrollment.
        """
        check = DuplicateService(self.session).check_duplicate(
            email=email, phone=phone, program=Program.MAHAD_PROGRAM
        )
        if check.has_active_profile:
            raise ValueError(
                f"A Mahad student with this {check.duplicate_field} is already registered"
            )
        if batch_id is not None and self.session.get(Batch, batch_id) is None:
            raise NotFoundError("Batch not found")

        try:
            person = check.existing_person
            if person is None:
                person = Person(name=name, date_of_birth=date_of_birth)
                self.session.add(person)
                self.session.flush()
            elif date_of_birth and not person.date_of_birth:
                person.date_of_birth = date_of_birth

            if email:
                ContactPoint.set_primary(person.id, ContactType.EMAIL, email)
            if phone:
                ContactPoint.set_primary(person.id, ContactType.PHONE, phone)

            profile = person.get_profile(Program.MAHAD_PROGRAM)
            if profile is None:
                profile = ProgramProfile(person=person, program=Program.MAHAD_PROGRAM)
                self.session.add(profile)
            self._apply_profile_fields(profile, profile_fields)
            profile.status = EnrollmentStatus.ENROLLED if batch_id else EnrollmentStatus.REGISTERED

            self.enrollments.build_enrollment(profile, batch_id=batch_id, status=profile.status)
            self.session.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.session.rollback()
            current_app.logger.error(f"Error creating Mahad student {name}: {str(e)}")
            raise

        current_app.logger.info(f"Created Mahad student profile {profile.id} for person {person.id}")
        return profile

    def update_student(self, profile_id: int, **fields) -> ProgramProfile:
        profile = self.get_student(profile_id)
        person = profile.person
        try:
            if "name" in fields and fields["name"]:
                person.name = fields.pop("name")
            if "date_of_birth" in fields:
                person.date_of_birth = fields.pop("date_of_birth")
            email = fields.pop("email", None)
            phone = fields.pop("phone", None)
            if email:
                ContactPoint.set_primary(person.id, ContactType.EMAIL, email)
            if phone:
                ContactPoint.set_primary(person.id, ContactType.PHONE, phone)
            self._apply_profile_fields(profile, fields)
            self.session.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.session.rollback()
            current_app.logger.error(f"Error updating Mahad student {profile_id}: {str(e)}")
            raise
        return profile

    def delete_student(self, profile_id: int) -> ProgramProfile:
        """Soft delete: withdraw open enrollments and mark the profile WITHDRAWN."""
        profile = self.get_student(profile_id)
        try:
            withdrawn = self.enrollments.withdraw_all(profile, reason="Student deleted")
            profile.status = EnrollmentStatus.WITHDRAWN
            self.session.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.session.rollback()
            current_app.logger.error(f"Error deleting Mahad student {profile_id}: {str(e)}")
            raise
        current_app.logger.info(
            f"Soft-deleted Mahad student {profile_id}, withdrew {withdrawn} enrollment(s)"
        )
        return profile

    def _apply_profile_fields(self, profile: ProgramProfile, fields: dict) -> None:
        for key in PROFILE_FIELDS:
            if key in fields:
                setattr(profile, key, fields[key])
        if "monthly_rate" in fields and fields["monthly_rate"] is not None:
            profile.monthly_rate = int(fields["monthly_rate"])
            profile.custom_rate = True
        elif not profile.custom_rate and profile.billing_type is not None:
            profile.monthly_rate = calculate_mahad_rate(
                profile.graduation_status, profile.payment_frequency, profile.billing_type
            ) // 100

    # ---------------------------------------------------------------- batches

    def get_batch(self, batch_id: int) -> Batch:
        batch = self.session.get(Batch, batch_id)
        if batch is None:
            raise NotFoundError("Batch not found")
        return batch

    def list_batches(self) -> list[dict]:
        """Batches with their active student counts, newest first."""
        counts = dict(
            self.session.query(Enrollment.batch_id, func.count(Enrollment.id))
            .filter(Enrollment.batch_id.isnot(None), *Enrollment.active_filter())
            .group_by(Enrollment.batch_id)
            .all()
        )
        batches = self.session.query(Batch).order_by(Batch.start_date.desc(), Batch.name).all()
        return [{"batch": batch, "student_count": counts.get(batch.id, 0)} for batch in batches]

    def create_batch(self, name: str, start_date: date | None = None, end_date: date | None = None) -> Batch:
        name = (name or "").strip()
        if not name:
            raise ValueError("Batch name is required")
        if self.session.query(Batch).filter(func.lower(Batch.name) == name.lower()).first():
            raise ValueError(f'A batch named "{name}" already exists')
        batch = Batch(name=name, start_date=start_date, end_date=end_date)
        self.session.add(batch)
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Error creating batch {name}: {str(e)}")
            raise
        current_app.logger.info(f"Created batch {batch.id} ({batch.name})")
        return batch

    def update_batch(self, batch_id: int, **fields) -> Batch:
        batch = self.get_batch(batch_id)
        for key in ("name", "start_date", "end_date"):
            if key in fields:
                setattr(batch, key, fields[key])
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Error updating batch {batch_id}: {str(e)}")
            raise
        return batch

    def delete_batch(self, batch_id: int) -> None:
        batch = self.get_batch(batch_id)
        active = len(batch.get_active_enrollments())
        if active:
            raise ValueError(f"Cannot delete batch with {active} active student(s)")
        for enrollment in list(batch.enrollments):
            enrollment.batch_id = None
        self.session.delete(batch)
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Error deleting batch {batch_id}: {str(e)}")
            raise

    # -------------------------------------------------------- batch movements

    def assign_students_to_batch(self, batch_id: int, profile_ids: Iterable[int]) -> BatchAssignmentResult:
        """
        Put each student into ``batch_id``. Students already active in the
        batch count as assigned; anyone else has their current enrollment
        closed and a new ENROLLED one opened.
        """
        batch = self.get_batch(batch_id)
        result = BatchAssignmentResult()
        for profile_id in profile_ids:
            try:
                profile = self.get_student(profile_id)
                active = self.enrollments.get_active_enrollment(profile.id)
                if active is not None and active.batch_id == batch.id:
                    result.succeeded.append(profile_id)
                    continue
                if active is not None:
                    self.enrollments.close(active, reason=f"Assigned to batch {batch.name}")
                self.enrollments.build_enrollment(
                    profile, batch_id=batch.id, status=EnrollmentStatus.ENROLLED
                )
                profile.status = EnrollmentStatus.ENROLLED
                self.session.commit()
                result.succeeded.append(profile_id)
            except (SQLAlchemyError, ValueError) as e:
                self.session.rollback()
                current_app.logger.warning(f"Failed to assign student {profile_id} to batch {batch_id}: {e}")
                result.failures.append({"student_id": profile_id, "error": str(e)})
        current_app.logger.info(
            f"Batch {batch_id} assignment: {len(result.succeeded)} assigned, {len(result.failures)} failed"
        )
        return result

    def transfer_students_to_batch(self, batch_id: int, profile_ids: Iterable[int]) -> BatchAssignmentResult:
        """Move students with an active enrollment into another batch."""
        batch = self.get_batch(batch_id)
        result = BatchAssignmentResult()
        for profile_id in profile_ids:
            try:
                profile = self.get_student(profile_id)
                active = self.enrollments.get_active_enrollment(profile.id)
                if active is None:
                    raise ValueError("No active enrollment found")
                if active.batch_id == batch.id:
                    raise ValueError("Student is already in this batch")
                self.enrollments.close(active, reason=f"Transferred to batch {batch.name}")
                self.enrollments.build_enrollment(
                    profile, batch_id=batch.id, status=EnrollmentStatus.ENROLLED
                )
                profile.status = EnrollmentStatus.ENROLLED
                self.session.commit()
                result.succeeded.append(profile_id)
            except (SQLAlchemyError, ValueError) as e:
                self.session.rollback()
                current_app.logger.warning(f"Failed to transfer student {profile_id} to batch {batch_id}: {e}")
                result.failures.append({"student_id": profile_id, "error": str(e)})
        return result

    def withdraw_student_from_batch(self, profile_id: int, reason: str | None = None) -> Enrollment:
        """Withdraw the batch enrollment and leave the student REGISTERED without a batch."""
        profile = self.get_student(profile_id)
        active = self.enrollments.get_active_enrollment(profile.id)
        if active is None or active.batch_id is None:
            raise ValueError("Student is not assigned to a batch")
        try:
            self.enrollments.close(active, reason=reason or "Removed from batch")
            enrollment = self.enrollments.build_enrollment(profile, status=EnrollmentStatus.REGISTERED)
            profile.status = EnrollmentStatus.REGISTERED
            self.session.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.session.rollback()
            current_app.logger.error(f"Error withdrawing student {profile_id} from batch: {str(e)}")
            raise
        return enrollment
