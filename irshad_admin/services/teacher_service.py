"""
Teachers and their Dugsi student assignments.

A teacher is a role on an existing person. Dugsi children are assigned to a
teacher per shift; a child holds at most one active assignment per shift.
Removing an assignment or a teacher only deactivates rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from irshad_admin.models import (
    ContactPoint,
    ContactType,
    Person,
    Program,
    ProgramProfile,
    Shift,
    Teacher,
    TeacherAssignment,
    db,
)
from irshad_admin.models.base import utcnow
from irshad_admin.services.duplicate_service import DuplicateService
from irshad_admin.utils.action_result import NotFoundError

REASSIGNED_NOTE = "Reassigned from previous teacher"


def _coerce_shift(shift) -> Shift:
    if isinstance(shift, Shift):
        return shift
    if not shift:
        raise ValueError("Shift is required for Dugsi program assignments")
    try:
        return Shift(str(shift).upper())
    except ValueError:
        raise ValueError(f"Unknown shift: {shift}") from None


@dataclass
class BulkAssignmentResult:
    created: list[TeacherAssignment] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "created": len(self.created),
            "skipped": len(self.errors),
            "errors": self.errors,
        }


class TeacherService:
    """Service for teacher records and student assignments"""

    def __init__(self, session: Session | None = None):
        self.session = session or db.session

    # --------------------------------------------------------------- teachers

    def get_teacher(self, teacher_id: int, *, include_inactive: bool = False) -> Teacher:
        teacher = self.session.get(Teacher, teacher_id)
        if teacher is None or (not teacher.is_active and not include_inactive):
            raise NotFoundError("Teacher not found")
        return teacher

    def list_teachers(self, shift=None, *, include_inactive: bool = False) -> list[Teacher]:
        """Teachers ordered by name, optionally only those working ``shift``."""
        query = (
            self.session.query(Teacher)
            .join(Person, Teacher.person_id == Person.id)
            .options(joinedload(Teacher.person))
        )
        if not include_inactive:
            query = query.filter(Teacher.is_active.is_(True))
        teachers = query.order_by(func.lower(Person.name)).all()
        if shift is None:
            return teachers
        shift = _coerce_shift(shift)
        return [t for t in teachers if shift in t.get_shifts()]

    def create_teacher(
        self,
        name: str | None = None,
        *,
        person_id: int | None = None,
        email: str | None = None,
        phone: str | None = None,
        shifts: Iterable = (),
    ) -> Teacher:
        """
        Give a person the teacher role.

        ``person_id`` promotes an existing person. Otherwise a person sharing
        the email or phone is reused, and a new one is created from ``name``
        when nobody matches. A deactivated teacher is reactivated.
        """
        if person_id is not None:
            person = self.session.get(Person, person_id)
            if person is None:
                raise NotFoundError("Person not found")
        else:
            person = DuplicateService(self.session).find_person_by_contact(email, phone)
            if person is None:
                if not name or not name.strip():
                    raise ValueError("Teacher name is required")
                person = Person(name=name.strip())
                self.session.add(person)

        teacher = person.teacher
        if teacher is not None and teacher.is_active:
            raise ValueError(f"{person.name} is already a teacher (id {teacher.id}).")

        try:
            self.session.flush()
            if email:
                ContactPoint.set_primary(person.id, ContactType.EMAIL, email)
            if phone:
                ContactPoint.set_primary(person.id, ContactType.PHONE, phone)
            if teacher is None:
                teacher = Teacher(person=person)
                self.session.add(teacher)
            teacher.is_active = True
            teacher.set_shifts([_coerce_shift(s) for s in shifts])
            self.session.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.session.rollback()
            current_app.logger.error(f"Error creating teacher for {person.name}: {str(e)}")
            raise
        current_app.logger.info(f"Person {person.id} promoted to teacher {teacher.id}")
        return teacher

    def update_shifts(self, teacher_id: int, shifts: Iterable) -> Teacher:
        teacher = self.get_teacher(teacher_id)
        teacher.set_shifts([_coerce_shift(s) for s in shifts])
        self._commit(f"updating shifts of teacher {teacher_id}")
        return teacher

    def delete_teacher(self, teacher_id: int) -> int:
        """Deactivate a teacher and end their active assignments; returns how many ended."""
        teacher = self.get_teacher(teacher_id)
        now = utcnow()
        ended = 0
        for assignment in teacher.assignments:
            if assignment.is_active:
                assignment.deactivate(now)
                ended += 1
        teacher.is_active = False
        self._commit(f"deleting teacher {teacher_id}")
        current_app.logger.info(f"Teacher {teacher_id} deactivated, {ended} assignment(s) ended")
        return ended

    # ------------------------------------------------------------ assignments

    def get_assignment(self, assignment_id: int) -> TeacherAssignment:
        assignment = self.session.get(TeacherAssignment, assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")
        return assignment

    def get_teacher_assignments(self, teacher_id: int, *, include_inactive: bool = False) -> list[TeacherAssignment]:
        self.get_teacher(teacher_id, include_inactive=True)
        query = (
            self.session.query(TeacherAssignment)
            .options(joinedload(TeacherAssignment.program_profile).joinedload(ProgramProfile.person))
            .filter(TeacherAssignment.teacher_id == teacher_id)
        )
        if not include_inactive:
            query = query.filter(TeacherAssignment.is_active.is_(True))
        return query.order_by(TeacherAssignment.shift, TeacherAssignment.id).all()

    def assign_teacher_to_student(
        self, teacher_id: int, program_profile_id: int, shift, *, notes: str | None = None
    ) -> TeacherAssignment:
        assignment = self._build_assignment(teacher_id, program_profile_id, shift, notes=notes)
        self._commit(f"assigning teacher {teacher_id} to profile {program_profile_id}")
        current_app.logger.info(
            f"Teacher {teacher_id} assigned to profile {program_profile_id} ({assignment.shift.value})"
        )
        return assignment

    def reassign_student(self, assignment_id: int, new_teacher_id: int) -> TeacherAssignment:
        """End an assignment and give the same student and shift to another teacher."""
        old = self.get_assignment(assignment_id)
        if not old.is_active:
            raise ValueError("Assignment is no longer active")
        old_teacher_id = old.teacher_id
        try:
            old.deactivate()
            new = self._build_assignment(
                new_teacher_id, old.program_profile_id, old.shift, notes=REASSIGNED_NOTE
            )
            self.session.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.session.rollback()
            current_app.logger.error(f"Error reassigning assignment {assignment_id}: {str(e)}")
            raise
        current_app.logger.info(
            f"Profile {new.program_profile_id} moved from teacher {old_teacher_id} to {new_teacher_id}"
        )
        return new

    def remove_teacher_assignment(self, assignment_id: int) -> TeacherAssignment:
        assignment = self.get_assignment(assignment_id)
        if assignment.is_active:
            assignment.deactivate()
            self._commit(f"removing assignment {assignment_id}")
            current_app.logger.info(f"Teacher assignment {assignment_id} removed")
        return assignment

    def bulk_assign_students(self, teacher_id: int, assignments: Iterable[dict]) -> BulkAssignmentResult:
        """
        Assign several students to one teacher. Each row commits on its own;
        failures are collected per profile and the rest still go through.
        """
        self.get_teacher(teacher_id)
        result = BulkAssignmentResult()
        for item in assignments:
            profile_id = item.get("program_profile_id")
            try:
                assignment = self._build_assignment(teacher_id, profile_id, item.get("shift"))
                self.session.commit()
                result.created.append(assignment)
            except (SQLAlchemyError, ValueError) as e:
                self.session.rollback()
                result.errors.append({"program_profile_id": profile_id, "error": str(e)})
        current_app.logger.info(
            f"Bulk assignment to teacher {teacher_id}: {len(result.created)} created, {len(result.errors)} skipped"
        )
        return result

    # ---------------------------------------------------------------- helpers

    def _build_assignment(self, teacher_id, program_profile_id, shift, *, notes=None) -> TeacherAssignment:
        teacher = self.get_teacher(teacher_id)
        profile = self.session.get(ProgramProfile, program_profile_id) if program_profile_id else None
        if profile is None:
            raise NotFoundError("Program profile not found")
        if profile.program != Program.DUGSI_PROGRAM:
            raise ValueError("Only Dugsi students are assigned to teachers")
        shift = _coerce_shift(shift)
        worked = teacher.get_shifts()
        if worked and shift not in worked:
            raise ValueError(f"Teacher does not work the {shift.value} shift")

        existing = (
            self.session.query(TeacherAssignment)
            .filter_by(program_profile_id=profile.id, shift=shift, is_active=True)
            .first()
        )
        if existing is not None:
            raise ValueError(f"Student already has an active {shift.value} shift assignment")

        assignment = TeacherAssignment(teacher=teacher, program_profile=profile, shift=shift, notes=notes)
        self.session.add(assignment)
        return assignment

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Database error {action}: {str(e)}")
            raise
