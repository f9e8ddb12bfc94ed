"""
Enrollment lifecycle: creation, validated status transitions and re-enrollment.

An enrollment is "active" while its status is not WITHDRAWN and it has no end
date. Withdrawn and completed enrollments are terminal and always carry an end
date; returning students get a new enrollment row instead of reviving the old
one.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from irshad_admin.models import Enrollment, EnrollmentStatus, Program, ProgramProfile, db
from irshad_admin.models.base import utcnow
from irshad_admin.utils.action_result import NotFoundError

UNSET = object()

ALLOWED_TRANSITIONS: dict[EnrollmentStatus, frozenset[EnrollmentStatus]] = {
    EnrollmentStatus.REGISTERED: frozenset(
        {EnrollmentStatus.ENROLLED, EnrollmentStatus.ON_LEAVE, EnrollmentStatus.WITHDRAWN}
    ),
    EnrollmentStatus.ENROLLED: frozenset(
        {
            EnrollmentStatus.ON_LEAVE,
            EnrollmentStatus.SUSPENDED,
            EnrollmentStatus.WITHDRAWN,
            EnrollmentStatus.COMPLETED,
        }
    ),
    EnrollmentStatus.ON_LEAVE: frozenset({EnrollmentStatus.ENROLLED, EnrollmentStatus.WITHDRAWN}),
    EnrollmentStatus.SUSPENDED: frozenset({EnrollmentStatus.ENROLLED, EnrollmentStatus.WITHDRAWN}),
    EnrollmentStatus.WITHDRAWN: frozenset(),
    EnrollmentStatus.COMPLETED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

DUGSI_BATCH_ERROR = (
    "Dugsi enrollments cannot have a batchId. "
    "Dugsi students are assigned to teachers, not batches."
)

_STATUS_ORDER = list(EnrollmentStatus)


def _coerce_status(status) -> EnrollmentStatus:
    if isinstance(status, EnrollmentStatus):
        return status
    try:
        return EnrollmentStatus(str(status).upper())
    except ValueError:
        raise ValueError(f"Unknown enrollment status: {status}") from None


def validate_transition(current: EnrollmentStatus, new: EnrollmentStatus) -> None:
    """Raise ValueError when ``current -> new`` is not an allowed transition."""

    if current == new:
        return
    allowed = ALLOWED_TRANSITIONS.get(current, frozenset())
    if new in allowed:
        return
    if not allowed:
        raise ValueError(
            f"Invalid status transition from {current.value} to {new.value}. "
            f"{current.value} is a terminal state; re-enroll the student instead."
        )
    options = ", ".join(s.value for s in sorted(allowed, key=_STATUS_ORDER.index))
    raise ValueError(
        f"Invalid status transition from {current.value} to {new.value}. "
        f"This enrollment can only transition to: {options}"
    )


class EnrollmentService:
    """Service for enrollment reads and validated mutations."""

    def __init__(self, session: Session | None = None):
        self.session = session or db.session

    # ------------------------------------------------------------------ reads

    def get_enrollment(self, enrollment_id: int) -> Enrollment:
        enrollment = self.session.get(Enrollment, enrollment_id)
        if enrollment is None:
            raise NotFoundError(f"Enrollment not found: {enrollment_id}")
        return enrollment

    def get_active_enrollment(self, program_profile_id: int) -> Enrollment | None:
        return (
            self.session.query(Enrollment)
            .filter(Enrollment.program_profile_id == program_profile_id, *Enrollment.active_filter())
            .order_by(Enrollment.start_date.desc(), Enrollment.id.desc())
            .first()
        )

    def get_enrollments_by_program(self, program: Program, *, batch_id: int | None = None) -> list[Enrollment]:
        """Active enrollments for a program, optionally narrowed to one batch."""
        query = (
            self.session.query(Enrollment)
            .join(ProgramProfile, Enrollment.program_profile_id == ProgramProfile.id)
            .options(joinedload(Enrollment.program_profile).joinedload(ProgramProfile.person))
            .filter(ProgramProfile.program == program, *Enrollment.active_filter())
        )
        if batch_id is not None:
            query = query.filter(Enrollment.batch_id == batch_id)
        return query.order_by(Enrollment.start_date.desc()).all()

    def get_enrollment_history(self, program_profile_id: int) -> list[Enrollment]:
        return (
            self.session.query(Enrollment)
            .filter(Enrollment.program_profile_id == program_profile_id)
            .order_by(Enrollment.start_date.desc(), Enrollment.id.desc())
            .all()
        )

    # -------------------------------------------------------------- mutations

    def build_enrollment(
        self,
        profile: ProgramProfile,
        *,
        batch_id: int | None = None,
        status=EnrollmentStatus.REGISTERED,
        start_date: datetime | None = None,
        reason: str | None = None,
        notes: str | None = None,
    ) -> Enrollment:
        """Validate and stage a new enrollment without committing."""
        if profile.program == Program.DUGSI_PROGRAM and batch_id is not None:
            raise ValueError(DUGSI_BATCH_ERROR)
        enrollment = Enrollment(
            program_profile=profile,
            batch_id=batch_id,
            status=_coerce_status(status),
            start_date=start_date or utcnow(),
            reason=reason,
            notes=notes,
        )
        self.session.add(enrollment)
        return enrollment

    def withdraw(self, enrollment: Enrollment, *, reason: str | None = None, end_date=None) -> Enrollment:
        """Stage a withdrawal of an open enrollment without committing."""
        validate_transition(enrollment.status, EnrollmentStatus.WITHDRAWN)
        enrollment.status = EnrollmentStatus.WITHDRAWN
        enrollment.end_date = end_date or utcnow()
        if reason:
            enrollment.reason = reason
        return enrollment

    def close(self, enrollment: Enrollment, *, reason: str | None = None) -> Enrollment:
        """
        Stage the end of an open enrollment before the student moves on.

        Terminal rows left without an end date are only closed; anything
        else is withdrawn.
        """
        if enrollment.status in TERMINAL_STATUSES:
            enrollment.end_date = enrollment.end_date or utcnow()
            return enrollment
        return self.withdraw(enrollment, reason=reason)

    def create_enrollment(
        self,
        program_profile_id: int,
        *,
        batch_id: int | None = None,
        status=EnrollmentStatus.REGISTERED,
        start_date: datetime | None = None,
        reason: str | None = None,
        notes: str | None = None,
    ) -> Enrollment:
        profile = self.session.get(ProgramProfile, program_profile_id)
        if profile is None:
            raise NotFoundError(f"Program profile not found: {program_profile_id}")
        enrollment = self.build_enrollment(
            profile,
            batch_id=batch_id,
            status=status,
            start_date=start_date,
            reason=reason,
            notes=notes,
        )
        self._commit(f"creating enrollment for profile {program_profile_id}")
        current_app.logger.info(
            f"Created {enrollment.status.value} enrollment {enrollment.id} for profile {program_profile_id}"
        )
        return enrollment

    def update_enrollment_status(
        self,
        enrollment_id: int,
        status,
        *,
        reason: str | None = None,
        end_date=UNSET,
    ) -> Enrollment:
        """
        Move an enrollment to ``status``.

        The transition is checked against ALLOWED_TRANSITIONS before anything
        is written. An explicit ``end_date`` wins; otherwise moving into a
        terminal status stamps the current time and other moves leave it
        alone. A terminal enrollment is never left open-ended.
        """
        new_status = _coerce_status(status)
        enrollment = self.get_enrollment(enrollment_id)
        validate_transition(enrollment.status, new_status)

        previous = enrollment.status
        enrollment.status = new_status
        if reason is not None:
            enrollment.reason = reason
        if end_date is not UNSET:
            enrollment.end_date = end_date
        if new_status in TERMINAL_STATUSES and enrollment.end_date is None:
            enrollment.end_date = utcnow()

        self._commit(f"updating enrollment {enrollment_id}")
        current_app.logger.info(
            f"Enrollment {enrollment_id} moved from {previous.value} to {new_status.value}"
        )
        return enrollment

    def re_enroll_student(self, program_profile_id: int, *, batch_id: int | None = None) -> Enrollment:
        """Open a fresh REGISTERED enrollment for a returning student."""
        active = self.get_active_enrollment(program_profile_id)
        if active is not None:
            raise ValueError("Student already has an active enrollment")
        return self.create_enrollment(
            program_profile_id, batch_id=batch_id, status=EnrollmentStatus.REGISTERED
        )

    def withdraw_all(self, profile: ProgramProfile, *, reason: str | None = None) -> int:
        """Stage withdrawal of every open enrollment of a profile; returns the count."""
        count = 0
        for enrollment in self._open_enrollments(profile.enrollments):
            if enrollment.status in TERMINAL_STATUSES:
                self.close(enrollment)
                continue
            self.withdraw(enrollment, reason=reason)
            count += 1
        return count

    @staticmethod
    def _open_enrollments(enrollments: Iterable[Enrollment]) -> list[Enrollment]:
        return [e for e in enrollments if e.status != EnrollmentStatus.WITHDRAWN and e.end_date is None]

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Database error {action}: {str(e)}")
            raise
