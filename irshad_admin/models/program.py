# irshad_admin/models/program.py
"""
Program participation models: profiles, batches and enrollments
"""

from flask import current_app
from sqlalchemy import Enum, Index
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import validates

from .base import BaseModel, db, utcnow
from .enums import (
    EducationLevel,
    EnrollmentStatus,
    Gender,
    GradeLevel,
    GraduationStatus,
    PaymentFrequency,
    Program,
    StudentBillingType,
)


class ProgramProfile(BaseModel):
    """A person's participation record within one program"""

    __tablename__ = "program_profiles"

    id = db.Column(db.Integer, primary_key=True)
    person_id = db.Column(
        db.Integer, db.ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    program = db.Column(Enum(Program, name="program_enum"), nullable=False, index=True)
    status = db.Column(
        Enum(EnrollmentStatus, name="enrollment_status_enum"),
        default=EnrollmentStatus.REGISTERED,
        nullable=False,
        index=True,
    )
    monthly_rate = db.Column(db.Integer, default=150, nullable=False)
    custom_rate = db.Column(db.Boolean, default=False, nullable=False)

    # Academic fields
    gender = db.Column(Enum(Gender, name="gender_enum"), nullable=True)
    education_level = db.Column(Enum(EducationLevel, name="education_level_enum"), nullable=True)
    grade_level = db.Column(Enum(GradeLevel, name="grade_level_enum"), nullable=True)
    school_name = db.Column(db.String(200), nullable=True)
    health_info = db.Column(db.Text, nullable=True)

    # Mahad tuition tier
    graduation_status = db.Column(
        Enum(GraduationStatus, name="graduation_status_enum"), nullable=True
    )
    payment_frequency = db.Column(
        Enum(PaymentFrequency, name="payment_frequency_enum"), nullable=True
    )
    billing_type = db.Column(
        Enum(StudentBillingType, name="student_billing_type_enum"), nullable=True
    )

    # Dugsi household grouping
    family_reference_id = db.Column(db.String(64), nullable=True, index=True)

    # Relationships
    person = db.relationship("Person", back_populates="program_profiles")
    enrollments = db.relationship(
        "Enrollment",
        back_populates="program_profile",
        cascade="all, delete-orphan",
        order_by="Enrollment.start_date",
    )
    billing_assignments = db.relationship(
        "BillingAssignment", back_populates="program_profile", cascade="all, delete-orphan"
    )
    teacher_assignments = db.relationship(
        "TeacherAssignment", back_populates="program_profile", cascade="all, delete-orphan"
    )
    attendance_records = db.relationship(
        "AttendanceRecord", back_populates="program_profile", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.UniqueConstraint("person_id", "program", name="_person_program_uc"),
        Index("idx_profile_program_status", "program", "status"),
    )

    def __repr__(self):
        return f"<ProgramProfile {self.person_id} ({self.program.value})>"

    @property
    def is_dugsi(self):
        return self.program == Program.DUGSI_PROGRAM

    @property
    def is_mahad(self):
        return self.program == Program.MAHAD_PROGRAM

    def get_active_enrollment(self):
        """Most recent enrollment that is not withdrawn and has no end date"""
        active = [e for e in self.enrollments if e.is_active]
        return active[-1] if active else None

    def get_active_assignments(self):
        return [a for a in self.billing_assignments if a.is_active]

    @staticmethod
    def find_by_id(profile_id, program=None):
        """Find a profile by id, optionally restricted to one program"""
        try:
            profile = db.session.get(ProgramProfile, profile_id)
        except SQLAlchemyError as e:
            current_app.logger.error(f"Database error finding program profile {profile_id}: {str(e)}")
            raise
        if profile is None or (program is not None and profile.program != program):
            return None
        return profile

    @staticmethod
    def find_by_family(family_reference_id, program=Program.DUGSI_PROGRAM):
        return (
            ProgramProfile.query.filter_by(family_reference_id=family_reference_id, program=program)
            .order_by(ProgramProfile.created_at, ProgramProfile.id)
            .all()
        )


class Batch(BaseModel):
    """Mahad cohort"""

    __tablename__ = "batches"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)

    enrollments = db.relationship("Enrollment", back_populates="batch")

    def __repr__(self):
        return f"<Batch {self.name}>"

    @validates("end_date")
    def validate_end_date(self, key, value):
        if value and self.start_date and value < self.start_date:
            raise ValueError("Batch end date cannot be before its start date")
        return value

    def get_active_enrollments(self):
        return [e for e in self.enrollments if e.is_active]


class Enrollment(BaseModel):
    """Time-bounded status record of a profile, optionally tied to a batch"""

    __tablename__ = "enrollments"

    id = db.Column(db.Integer, primary_key=True)
    program_profile_id = db.Column(
        db.Integer,
        db.ForeignKey("program_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    batch_id = db.Column(db.Integer, db.ForeignKey("batches.id"), nullable=True, index=True)
    status = db.Column(
        Enum(EnrollmentStatus, name="enrollment_status_enum"),
        default=EnrollmentStatus.REGISTERED,
        nullable=False,
        index=True,
    )
    start_date = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)
    reason = db.Column(db.String(500), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Relationships
    program_profile = db.relationship("ProgramProfile", back_populates="enrollments")
    batch = db.relationship("Batch", back_populates="enrollments")

    __table_args__ = (Index("idx_enrollment_profile_status", "program_profile_id", "status"),)

    def __repr__(self):
        return f"<Enrollment {self.program_profile_id} ({self.status.value})>"

    @property
    def is_active(self):
        return self.status != EnrollmentStatus.WITHDRAWN and self.end_date is None

    @staticmethod
    def active_filter():
        """SQL criteria matching the active enrollment convention"""
        return (Enrollment.status != EnrollmentStatus.WITHDRAWN, Enrollment.end_date.is_(None))
