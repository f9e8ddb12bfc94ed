"""
Teacher clock-in and clock-out for Dugsi weekend shifts.

Times are wall-clock times at the center (naive datetimes). Check-ins are
accepted from 15 minutes before a shift starts until an hour after; arriving
more than five minutes after the start marks the check-in late. A check-in
outside the geofence is still recorded but flagged invalid.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from irshad_admin.models import Shift, Teacher, TeacherCheckIn, db
from irshad_admin.utils.action_result import NotFoundError
from irshad_admin.utils.geolocation import is_within_geofence

SHIFT_START_TIMES = {
    Shift.MORNING: time(8, 30),
    Shift.AFTERNOON: time(14, 0),
}
WINDOW_MINUTES_BEFORE = 15
WINDOW_MINUTES_AFTER = 60
LATE_GRACE_PERIOD_MINUTES = 5
NO_SHOW_THRESHOLD_MINUTES = 15
MAX_SHIFT_HOURS = 12
AUTO_CLOCK_OUT_NOTE = "Auto clock-out: exceeded maximum shift duration"


@dataclass
class CheckInWindowStatus:
    can_check_in: bool
    reason: str | None = None  # too_early, too_late
    window_opens_at: datetime | None = None
    window_closed_at: datetime | None = None


def _coerce_shift(shift) -> Shift:
    if isinstance(shift, Shift):
        return shift
    try:
        return Shift(str(shift).upper())
    except ValueError:
        raise ValueError(f"Unknown shift: {shift}") from None


def get_shift_start(shift: Shift, on: datetime) -> datetime:
    return datetime.combine(on.date(), SHIFT_START_TIMES[shift])


def is_late_for_shift(shift: Shift, clock_in_time: datetime) -> bool:
    grace_end = get_shift_start(shift, clock_in_time) + timedelta(minutes=LATE_GRACE_PERIOD_MINUTES)
    return clock_in_time > grace_end


def get_check_in_window_status(shift, now: datetime | None = None) -> CheckInWindowStatus:
    shift = _coerce_shift(shift)
    now = now or datetime.now()
    start = get_shift_start(shift, now)
    opens = start - timedelta(minutes=WINDOW_MINUTES_BEFORE)
    closes = start + timedelta(minutes=WINDOW_MINUTES_AFTER)
    if now < opens:
        return CheckInWindowStatus(False, "too_early", window_opens_at=opens)
    if now > closes:
        return CheckInWindowStatus(False, "too_late", window_closed_at=closes)
    return CheckInWindowStatus(True)


class CheckInService:
    """Service for teacher attendance at the center."""

    def __init__(self, session: Session | None = None):
        self.session = session or db.session

    def _center(self):
        return (current_app.config["CENTER_LAT"], current_app.config["CENTER_LNG"])

    def _get_teacher(self, teacher_id: int) -> Teacher:
        teacher = self.session.get(Teacher, teacher_id)
        if teacher is None or not teacher.is_active:
            raise NotFoundError("Teacher not found")
        return teacher

    def _existing(self, teacher_id: int, on: date, shift: Shift) -> TeacherCheckIn | None:
        return (
            self.session.query(TeacherCheckIn)
            .filter_by(teacher_id=teacher_id, date=on, shift=shift)
            .first()
        )

    def _save(self, check_in: TeacherCheckIn, action: str) -> TeacherCheckIn:
        try:
            self.session.add(check_in)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Database error {action}: {str(e)}")
            raise
        return check_in

    def clock_in(self, teacher_id: int, shift, lat: float, lng: float, now: datetime | None = None) -> TeacherCheckIn:
        shift = _coerce_shift(shift)
        teacher = self._get_teacher(teacher_id)
        shifts = teacher.get_shifts()
        if not shifts:
            raise ValueError("Teacher has no assigned shifts")
        if shift not in shifts:
            raise ValueError(f"Teacher is not assigned to the {shift.value.lower()} shift")

        now = now or datetime.now()
        window = get_check_in_window_status(shift, now)
        if not window.can_check_in:
            if window.reason == "too_early":
                raise ValueError(f"Check-in window opens at {window.window_opens_at:%H:%M}")
            raise ValueError("Check-in window has closed for this shift")

        if self._existing(teacher_id, now.date(), shift) is not None:
            raise ValueError("Already clocked in for this shift today")

        valid = is_within_geofence((lat, lng), self._center(), current_app.config["GEOFENCE_RADIUS_METERS"])
        check_in = TeacherCheckIn(
            teacher_id=teacher_id,
            date=now.date(),
            shift=shift,
            clock_in_time=now,
            clock_in_lat=lat,
            clock_in_lng=lng,
            clock_in_valid=valid,
            is_late=is_late_for_shift(shift, now),
        )
        self._save(check_in, f"clocking in teacher {teacher_id}")
        current_app.logger.info(
            f"Teacher {teacher_id} clocked in for {shift.value} (valid={valid}, late={check_in.is_late})"
        )
        return check_in

    def admin_clock_in(self, teacher_id: int, shift, reason: str, now: datetime | None = None) -> TeacherCheckIn:
        """Manual check-in recorded by an admin; never location-valid."""
        if not reason or len(reason.strip()) < 3:
            raise ValueError("A reason is required for manual check-in")
        shift = _coerce_shift(shift)
        teacher = self._get_teacher(teacher_id)
        if shift not in teacher.get_shifts():
            raise ValueError("Teacher is not assigned to this shift")
        now = now or datetime.now()
        if self._existing(teacher_id, now.date(), shift) is not None:
            raise ValueError("Already has a check-in for this shift today")

        check_in = TeacherCheckIn(
            teacher_id=teacher_id,
            date=now.date(),
            shift=shift,
            clock_in_time=now,
            clock_in_valid=False,
            is_late=is_late_for_shift(shift, now),
            notes=f"Manual check-in: {reason.strip()}",
        )
        self._save(check_in, f"recording manual check-in for teacher {teacher_id}")
        current_app.logger.info(f"Admin manual check-in for teacher {teacher_id} ({shift.value})")
        return check_in

    def clock_out(
        self, check_in_id: int, lat: float | None = None, lng: float | None = None, now: datetime | None = None
    ) -> TeacherCheckIn:
        check_in = self.session.get(TeacherCheckIn, check_in_id)
        if check_in is None:
            raise NotFoundError("Check-in record not found")
        if check_in.clock_out_time is not None:
            raise ValueError("Already clocked out")
        check_in.clock_out_time = now or datetime.now()
        if lat is not None:
            check_in.clock_out_lat = lat
        if lng is not None:
            check_in.clock_out_lng = lng
        self._save(check_in, f"clocking out check-in {check_in_id}")
        current_app.logger.info(f"Check-in {check_in_id} clocked out")
        return check_in

    def auto_clock_out_stale_check_ins(self, now: datetime | None = None) -> int:
        """Close check-ins left open past the maximum shift length."""
        cutoff = (now or datetime.now()) - timedelta(hours=MAX_SHIFT_HOURS)
        stale = (
            self.session.query(TeacherCheckIn)
            .filter(TeacherCheckIn.clock_out_time.is_(None), TeacherCheckIn.clock_in_time < cutoff)
            .all()
        )
        if not stale:
            return 0
        try:
            for check_in in stale:
                check_in.clock_out_time = check_in.clock_in_time + timedelta(hours=MAX_SHIFT_HOURS)
                check_in.notes = AUTO_CLOCK_OUT_NOTE
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Database error during auto clock-out: {str(e)}")
            raise
        current_app.logger.info(f"Auto-clocked out {len(stale)} stale check-in(s)")
        return len(stale)

    def get_no_show_teachers(self, shift, now: datetime | None = None) -> list[dict]:
        """Active teachers of a shift with no check-in once the no-show threshold passes."""
        shift = _coerce_shift(shift)
        now = now or datetime.now()
        start = get_shift_start(shift, now)
        if now < start + timedelta(minutes=NO_SHOW_THRESHOLD_MINUTES):
            return []
        teachers = [
            t for t in self.session.query(Teacher).filter_by(is_active=True).all() if shift in t.get_shifts()
        ]
        checked_in = {
            teacher_id
            for (teacher_id,) in self.session.query(TeacherCheckIn.teacher_id)
            .filter_by(date=now.date(), shift=shift)
            .all()
        }
        return [
            {
                "teacher_id": t.id,
                "teacher_name": t.person.name,
                "shift": shift.value,
                "shift_start_time": start.isoformat(),
            }
            for t in teachers
            if t.id not in checked_in
        ]

    def list_check_ins(self, on: date, shift=None) -> list[TeacherCheckIn]:
        query = self.session.query(TeacherCheckIn).filter(TeacherCheckIn.date == on)
        if shift is not None:
            query = query.filter(TeacherCheckIn.shift == _coerce_shift(shift))
        return query.order_by(TeacherCheckIn.clock_in_time).all()
