# irshad_admin/models/__init__.py
"""
Database models package
"""

from .attendance import AttendanceClass, AttendanceRecord, AttendanceSession
from .base import BaseModel, db
from .billing import BillingAccount, BillingAssignment, Subscription
from .enums import (
    AccountType,
    AttendanceStatus,
    ContactType,
    EducationLevel,
    EnrollmentStatus,
    Gender,
    GradeLevel,
    GraduationStatus,
    GuardianRole,
    MessageStatus,
    PaymentFrequency,
    Program,
    Shift,
    SiblingDetectionMethod,
    StudentBillingType,
    SubscriptionStatus,
    VerificationStatus,
)
from .messaging import WhatsAppMessage
from .person import ContactPoint, GuardianRelationship, Person, SiblingRelationship
from .program import Batch, Enrollment, ProgramProfile
from .teacher import Teacher, TeacherAssignment, TeacherCheckIn

__all__ = [
    "db",
    "BaseModel",
    # Person models
    "Person",
    "ContactPoint",
    "GuardianRelationship",
    "SiblingRelationship",
    # Program models
    "ProgramProfile",
    "Batch",
    "Enrollment",
    # Billing models
    "BillingAccount",
    "Subscription",
    "BillingAssignment",
    # Teaching and attendance
    "Teacher",
    "TeacherAssignment",
    "TeacherCheckIn",
    "AttendanceClass",
    "AttendanceSession",
    "AttendanceRecord",
    # Messaging
    "WhatsAppMessage",
    # Enums
    "AccountType",
    "AttendanceStatus",
    "ContactType",
    "EducationLevel",
    "EnrollmentStatus",
    "Gender",
    "GradeLevel",
    "GraduationStatus",
    "GuardianRole",
    "MessageStatus",
    "PaymentFrequency",
    "Program",
    "Shift",
    "SiblingDetectionMethod",
    "StudentBillingType",
    "SubscriptionStatus",
    "VerificationStatus",
]
