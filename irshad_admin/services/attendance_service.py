"""
Dugsi weekend classes, attendance sessions and attendance marks.

Sessions only exist on Saturdays and Sundays, one per class and date. A
session is effectively closed once it is explicitly closed or the weekend it
belongs to has ended; closed sessions reject further marks.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Iterable

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from irshad_admin.models import (
    AttendanceClass,
    AttendanceRecord,
    AttendanceSession,
    AttendanceStatus,
    Program,
    ProgramProfile,
    Shift,
    Teacher,
    db,
)
from irshad_admin.models.base import utcnow
from irshad_admin.utils.action_result import NotFoundError

SATURDAY = 5
SUNDAY = 6
RECORD_FIELDS = ("lesson_completed", "surah_name", "ayat_from", "ayat_to", "lesson_notes", "notes")


def is_weekend(day: date) -> bool:
    return day.weekday() in (SATURDAY, SUNDAY)


def session_is_closed(session: AttendanceSession, today: date | None = None) -> bool:
    """Closed explicitly, or the session's weekend (through Sunday) is over."""
    if session.is_closed:
        return True
    sunday = session.date + timedelta(days=1) if session.date.weekday() == SATURDAY else session.date
    return (today or date.today()) > sunday


class AttendanceService:
    """Service for class setup and weekend attendance."""

    def __init__(self, session: Session | None = None):
        self.session = session or db.session

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Database error {action}: {str(e)}")
            raise

    # ---------------------------------------------------------------- classes

    def list_classes(self, *, include_inactive: bool = False) -> list[AttendanceClass]:
        query = self.session.query(AttendanceClass)
        if not include_inactive:
            query = query.filter(AttendanceClass.is_active.is_(True))
        return query.order_by(AttendanceClass.shift, AttendanceClass.name).all()

    def get_class(self, class_id: int) -> AttendanceClass:
        attendance_class = self.session.get(AttendanceClass, class_id)
        if attendance_class is None:
            raise NotFoundError("Class not found")
        return attendance_class

    def create_class(self, name: str, shift, teacher_id: int | None = None, description: str | None = None) -> AttendanceClass:
        name = (name or "").strip()
        if not name:
            raise ValueError("Class name is required")
        if self.session.query(AttendanceClass).filter_by(name=name).first():
            raise ValueError(f'A class named "{name}" already exists')
        if teacher_id is not None and self.session.get(Teacher, teacher_id) is None:
            raise NotFoundError("Teacher not found")
        attendance_class = AttendanceClass(
            name=name,
            shift=shift if isinstance(shift, Shift) else Shift(str(shift).upper()),
            teacher_id=teacher_id,
            description=description,
        )
        self.session.add(attendance_class)
        self._commit(f"creating class {name}")
        current_app.logger.info(f"Created class {name} ({attendance_class.shift.value})")
        return attendance_class

    def assign_teacher(self, class_id: int, teacher_id: int | None) -> AttendanceClass:
        attendance_class = self.get_class(class_id)
        if teacher_id is not None and self.session.get(Teacher, teacher_id) is None:
            raise NotFoundError("Teacher not found")
        attendance_class.teacher_id = teacher_id
        self._commit(f"assigning teacher to class {class_id}")
        return attendance_class

    # --------------------------------------------------------------- sessions

    def get_session(self, session_id: int) -> AttendanceSession:
        attendance_session = self.session.get(AttendanceSession, session_id)
        if attendance_session is None:
            raise NotFoundError("Session not found")
        return attendance_session

    def list_sessions(self, *, class_id: int | None = None, on: date | None = None) -> list[AttendanceSession]:
        query = self.session.query(AttendanceSession)
        if class_id is not None:
            query = query.filter(AttendanceSession.class_id == class_id)
        if on is not None:
            query = query.filter(AttendanceSession.date == on)
        return query.order_by(AttendanceSession.date.desc(), AttendanceSession.id).all()

    def create_attendance_session(self, class_id: int, on: date, notes: str | None = None) -> AttendanceSession:
        if not is_weekend(on):
            raise ValueError("Dugsi sessions can only be created on weekends (Saturday or Sunday)")
        attendance_class = self.get_class(class_id)
        teacher = attendance_class.teacher
        if teacher is None or not teacher.is_active:
            raise ValueError("No active teacher assigned to this class")

        attendance_session = AttendanceSession(
            date=on, class_id=class_id, teacher_id=teacher.id, notes=notes
        )
        try:
            self.session.add(attendance_session)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ValueError("A session already exists for this class on this date") from None
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Database error creating session for class {class_id}: {str(e)}")
            raise

        current_app.logger.info(
            f"Attendance session {attendance_session.id} created for class {class_id} on {on.isoformat()}"
        )
        return attendance_session

    def close_session(self, session_id: int) -> AttendanceSession:
        attendance_session = self.get_session(session_id)
        attendance_session.is_closed = True
        self._commit(f"closing session {session_id}")
        return attendance_session

    def mark_attendance(
        self, session_id: int, records: Iterable[dict[str, Any]], today: date | None = None
    ) -> dict[str, int]:
        """
        Upsert one record per student for a session.

        Each record needs ``program_profile_id`` and ``status``; lesson fields
        not supplied are reset to their defaults on update.
        """
        attendance_session = self.get_session(session_id)
        if session_is_closed(attendance_session, today):
            raise ValueError("Cannot modify a closed session")

        records = list(records)
        existing = {r.program_profile_id: r for r in attendance_session.records}
        profile_ids = {int(r["program_profile_id"]) for r in records}
        found = {
            pid
            for (pid,) in self.session.query(ProgramProfile.id)
            .filter(ProgramProfile.id.in_(list(profile_ids)), ProgramProfile.program == Program.DUGSI_PROGRAM)
            .all()
        }
        missing = profile_ids - found
        if missing:
            raise NotFoundError(f"Student not found: {min(missing)}")

        try:
            now = utcnow()
            for data in records:
                profile_id = int(data["program_profile_id"])
                status = data["status"]
                record = existing.get(profile_id)
                if record is None:
                    record = AttendanceRecord(session=attendance_session, program_profile_id=profile_id)
                    self.session.add(record)
                    existing[profile_id] = record
                record.status = status if isinstance(status, AttendanceStatus) else AttendanceStatus(str(status).upper())
                record.lesson_completed = bool(data.get("lesson_completed", False))
                for key in RECORD_FIELDS[1:]:
                    setattr(record, key, data.get(key))
                record.marked_at = now
            self.session.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.session.rollback()
            current_app.logger.error(f"Error marking attendance for session {session_id}: {str(e)}")
            raise

        current_app.logger.info(f"Marked attendance for {len(records)} students in session {session_id}")
        return {"record_count": len(records)}

    def delete_attendance_session(self, session_id: int) -> None:
        attendance_session = self.get_session(session_id)
        class_id, on = attendance_session.class_id, attendance_session.date
        self.session.delete(attendance_session)
        self._commit(f"deleting session {session_id}")
        current_app.logger.info(f"Attendance session {session_id} deleted (class {class_id}, {on.isoformat()})")

    def get_student_attendance_summary(self, profile_id: int) -> dict[str, Any]:
        """Counts of each attendance status for one student."""
        records = self.session.query(AttendanceRecord).filter_by(program_profile_id=profile_id).all()
        counts = {status.value: 0 for status in AttendanceStatus}
        for record in records:
            counts[record.status.value] += 1
        attended = counts["PRESENT"] + counts["LATE"]
        total = len(records)
        return {
            "total": total,
            "counts": counts,
            "attendance_rate": round(attended / total, 4) if total else None,
        }
