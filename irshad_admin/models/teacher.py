# irshad_admin/models/teacher.py
"""
Teacher role, student assignments and shift check-ins
"""

from sqlalchemy import Enum, Index

from .base import BaseModel, db, utcnow
from .enums import Shift


class Teacher(BaseModel):
    """Teacher role attached to a person"""

    __tablename__ = "teachers"

    id = db.Column(db.Integer, primary_key=True)
    person_id = db.Column(
        db.Integer, db.ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    # Comma-separated Shift values the teacher works in Dugsi
    shifts = db.Column(db.String(50), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Relationships
    person = db.relationship("Person", back_populates="teacher")
    assignments = db.relationship(
        "TeacherAssignment", back_populates="teacher", cascade="all, delete-orphan"
    )
    check_ins = db.relationship(
        "TeacherCheckIn", back_populates="teacher", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Teacher {self.person_id}>"

    def get_shifts(self):
        """Parse stored shifts into Shift members"""
        if not self.shifts:
            return []
        return [Shift(s.strip()) for s in self.shifts.split(",") if s.strip()]

    def set_shifts(self, shifts):
        values = []
        for shift in shifts:
            shift = Shift(shift) if isinstance(shift, str) else shift
            if shift.value not in values:
                values.append(shift.value)
        self.shifts = ",".join(values) or None


class TeacherAssignment(BaseModel):
    """Dugsi student assigned to a teacher for a shift"""

    __tablename__ = "teacher_assignments"

    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(
        db.Integer, db.ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    program_profile_id = db.Column(
        db.Integer,
        db.ForeignKey("program_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    shift = db.Column(Enum(Shift, name="shift_enum"), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    start_date = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Relationships
    teacher = db.relationship("Teacher", back_populates="assignments")
    program_profile = db.relationship("ProgramProfile", back_populates="teacher_assignments")

    def __repr__(self):
        return f"<TeacherAssignment {self.teacher_id} -> {self.program_profile_id} ({self.shift.value})>"

    def deactivate(self, when=None):
        self.is_active = False
        self.end_date = when or utcnow()


class TeacherCheckIn(BaseModel):
    """Clock-in/clock-out record for one teacher, date and shift"""

    __tablename__ = "teacher_check_ins"

    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(
        db.Integer, db.ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = db.Column(db.Date, nullable=False, index=True)
    shift = db.Column(Enum(Shift, name="shift_enum"), nullable=False)
    # Wall-clock times at the center
    clock_in_time = db.Column(db.DateTime, nullable=False)
    clock_in_lat = db.Column(db.Float, nullable=True)
    clock_in_lng = db.Column(db.Float, nullable=True)
    clock_in_valid = db.Column(db.Boolean, default=False, nullable=False)
    clock_out_time = db.Column(db.DateTime, nullable=True)
    clock_out_lat = db.Column(db.Float, nullable=True)
    clock_out_lng = db.Column(db.Float, nullable=True)
    is_late = db.Column(db.Boolean, default=False, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    teacher = db.relationship("Teacher", back_populates="check_ins")

    __table_args__ = (
        db.UniqueConstraint("teacher_id", "date", "shift", name="_teacher_date_shift_uc"),
        Index("idx_checkin_open", "clock_out_time"),
    )

    def __repr__(self):
        return f"<TeacherCheckIn {self.teacher_id} {self.date} ({self.shift.value})>"
