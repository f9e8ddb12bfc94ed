# irshad_admin/models/attendance.py
"""
Dugsi weekend classes and attendance tracking
"""

from sqlalchemy import Enum, Index

from .base import BaseModel, db, utcnow
from .enums import AttendanceStatus, Shift


class AttendanceClass(BaseModel):
    """A Dugsi class taught on weekends in one shift"""

    __tablename__ = "attendance_classes"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    shift = db.Column(Enum(Shift, name="shift_enum"), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey("teachers.id"), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    teacher = db.relationship("Teacher")
    sessions = db.relationship(
        "AttendanceSession", back_populates="attendance_class", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<AttendanceClass {self.name} ({self.shift.value})>"


class AttendanceSession(BaseModel):
    """One class meeting on one date"""

    __tablename__ = "attendance_sessions"

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    class_id = db.Column(
        db.Integer, db.ForeignKey("attendance_classes.id", ondelete="CASCADE"), nullable=False
    )
    teacher_id = db.Column(db.Integer, db.ForeignKey("teachers.id"), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    is_closed = db.Column(db.Boolean, default=False, nullable=False)

    attendance_class = db.relationship("AttendanceClass", back_populates="sessions")
    teacher = db.relationship("Teacher")
    records = db.relationship(
        "AttendanceRecord", back_populates="session", cascade="all, delete-orphan"
    )

    __table_args__ = (db.UniqueConstraint("date", "class_id", name="_session_date_class_uc"),)

    def __repr__(self):
        return f"<AttendanceSession {self.class_id} {self.date}>"


class AttendanceRecord(BaseModel):
    """Attendance mark and lesson progress for one student in a session"""

    __tablename__ = "attendance_records"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(
        db.Integer, db.ForeignKey("attendance_sessions.id", ondelete="CASCADE"), nullable=False
    )
    program_profile_id = db.Column(
        db.Integer, db.ForeignKey("program_profiles.id", ondelete="CASCADE"), nullable=False
    )
    status = db.Column(Enum(AttendanceStatus, name="attendance_status_enum"), nullable=False)
    lesson_completed = db.Column(db.Boolean, default=False, nullable=False)
    surah_name = db.Column(db.String(100), nullable=True)
    ayat_from = db.Column(db.Integer, nullable=True)
    ayat_to = db.Column(db.Integer, nullable=True)
    lesson_notes = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    marked_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    session = db.relationship("AttendanceSession", back_populates="records")
    program_profile = db.relationship("ProgramProfile", back_populates="attendance_records")

    __table_args__ = (
        db.UniqueConstraint("session_id", "program_profile_id", name="_session_profile_uc"),
        Index("idx_attendance_profile_status", "program_profile_id", "status"),
    )

    def __repr__(self):
        return f"<AttendanceRecord {self.session_id}/{self.program_profile_id} ({self.status.value})>"
