# irshad_admin/models/enums.py
"""
Enums shared by person, program, billing and messaging models.
"""

from enum import Enum as PyEnum


class Program(PyEnum):
    """Educational programs a person can hold a profile in"""

    MAHAD_PROGRAM = "MAHAD_PROGRAM"
    DUGSI_PROGRAM = "DUGSI_PROGRAM"


class EnrollmentStatus(PyEnum):
    """Lifecycle states for enrollments and program profiles"""

    REGISTERED = "REGISTERED"
    ENROLLED = "ENROLLED"
    ON_LEAVE = "ON_LEAVE"
    WITHDRAWN = "WITHDRAWN"
    COMPLETED = "COMPLETED"
    SUSPENDED = "SUSPENDED"


class ContactType(PyEnum):
    """Contact point channel"""

    EMAIL = "EMAIL"
    PHONE = "PHONE"
    WHATSAPP = "WHATSAPP"
    OTHER = "OTHER"


class VerificationStatus(PyEnum):
    """Verification state of a contact point"""

    UNVERIFIED = "UNVERIFIED"
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    INVALID = "INVALID"


class Gender(PyEnum):
    """Gender"""

    MALE = "MALE"
    FEMALE = "FEMALE"


class EducationLevel(PyEnum):
    """Highest education level reached"""

    ELEMENTARY = "ELEMENTARY"
    MIDDLE_SCHOOL = "MIDDLE_SCHOOL"
    HIGH_SCHOOL = "HIGH_SCHOOL"
    COLLEGE = "COLLEGE"
    POST_GRAD = "POST_GRAD"


class GradeLevel(PyEnum):
    """School grade (college years for Mahad, K-12 for Dugsi)"""

    KINDERGARTEN = "KINDERGARTEN"
    GRADE_1 = "GRADE_1"
    GRADE_2 = "GRADE_2"
    GRADE_3 = "GRADE_3"
    GRADE_4 = "GRADE_4"
    GRADE_5 = "GRADE_5"
    GRADE_6 = "GRADE_6"
    GRADE_7 = "GRADE_7"
    GRADE_8 = "GRADE_8"
    GRADE_9 = "GRADE_9"
    GRADE_10 = "GRADE_10"
    GRADE_11 = "GRADE_11"
    GRADE_12 = "GRADE_12"
    FRESHMAN = "FRESHMAN"
    SOPHOMORE = "SOPHOMORE"
    JUNIOR = "JUNIOR"
    SENIOR = "SENIOR"


class GraduationStatus(PyEnum):
    """Mahad tuition tier"""

    NON_GRADUATE = "NON_GRADUATE"
    GRADUATE = "GRADUATE"


class PaymentFrequency(PyEnum):
    """How often a Mahad student is billed"""

    MONTHLY = "MONTHLY"
    BI_MONTHLY = "BI_MONTHLY"


class StudentBillingType(PyEnum):
    """Mahad billing arrangement"""

    FULL_TIME = "FULL_TIME"
    FULL_TIME_SCHOLARSHIP = "FULL_TIME_SCHOLARSHIP"
    PART_TIME = "PART_TIME"
    EXEMPT = "EXEMPT"


class GuardianRole(PyEnum):
    """Role of a guardian toward a dependent"""

    PARENT = "PARENT"
    GUARDIAN = "GUARDIAN"
    SPONSOR = "SPONSOR"
    DONOR = "DONOR"


class SiblingDetectionMethod(PyEnum):
    """How a sibling relationship was established"""

    MANUAL = "MANUAL"
    GUARDIAN_MATCH = "GUARDIAN_MATCH"
    NAME_MATCH = "NAME_MATCH"
    CONTACT_MATCH = "CONTACT_MATCH"


class AccountType(PyEnum):
    """Billing account / Stripe account owner"""

    MAHAD = "MAHAD"
    DUGSI = "DUGSI"


class SubscriptionStatus(PyEnum):
    """Mirror of Stripe subscription statuses"""

    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    PAUSED = "paused"


class Shift(PyEnum):
    """Teaching shift"""

    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"


class AttendanceStatus(PyEnum):
    """Attendance mark for a student in a session"""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    EXCUSED = "EXCUSED"


class MessageStatus(PyEnum):
    """Outbound WhatsApp message outcome"""

    SENT = "sent"
    FAILED = "failed"
