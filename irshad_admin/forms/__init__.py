# irshad_admin/forms/__init__.py
"""
WTForms package
"""

from .attendance import AdminClockInForm, ClassForm, ClockInForm, ClockOutForm, SessionForm
from .billing import LinkSubscriptionForm, ValidateSubscriptionForm
from .dugsi import ChildForm, ParentForm, SecondParentForm, UpdateChildForm, UpdateParentForm, WithdrawChildForm
from .enrollment import EnrollmentStatusForm, ReEnrollForm
from .mahad import BatchForm, CreateStudentForm, UpdateBatchForm, UpdateStudentForm
from .teacher import AssignTeacherForm, ReassignTeacherForm, TeacherForm
from .whatsapp import AnnouncementForm, PaymentLinkForm, PaymentReminderForm

__all__ = [
    "AdminClockInForm",
    "AnnouncementForm",
    "AssignTeacherForm",
    "BatchForm",
    "ChildForm",
    "ClassForm",
    "ClockInForm",
    "ClockOutForm",
    "CreateStudentForm",
    "EnrollmentStatusForm",
    "LinkSubscriptionForm",
    "ParentForm",
    "PaymentLinkForm",
    "PaymentReminderForm",
    "ReEnrollForm",
    "ReassignTeacherForm",
    "SecondParentForm",
    "SessionForm",
    "TeacherForm",
    "UpdateBatchForm",
    "UpdateChildForm",
    "UpdateParentForm",
    "UpdateStudentForm",
    "ValidateSubscriptionForm",
    "WithdrawChildForm",
]
