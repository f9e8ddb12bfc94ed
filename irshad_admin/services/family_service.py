"""
Dugsi family operations.

A Dugsi family is the set of child profiles sharing a family_reference_id.
Families registered before references existed are grouped by a shared
guardian email or phone instead. Dugsi "delete" is a hard delete of the
profiles; any live Stripe subscription paying for them is cancelled once,
however many siblings it covers.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable

import stripe
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from irshad_admin.models import (
    ContactPoint,
    ContactType,
    EnrollmentStatus,
    GuardianRelationship,
    GuardianRole,
    Person,
    Program,
    ProgramProfile,
    Subscription,
    SubscriptionStatus,
    db,
)
from irshad_admin.models.base import utcnow
from irshad_admin.services.duplicate_service import DuplicateService
from irshad_admin.services.enrollment_service import EnrollmentService
from irshad_admin.utils.action_result import NotFoundError
from irshad_admin.utils.normalization import normalize_email, normalize_phone
from irshad_admin.utils.stripe_client import cancel_subscription as cancel_stripe_subscription
from irshad_admin.utils.tuition import calculate_dugsi_rate

CHILD_PROFILE_FIELDS = ("gender", "education_level", "grade_level", "school_name", "health_info")
ACTIVE_CHILD_STATUSES = (EnrollmentStatus.REGISTERED, EnrollmentStatus.ENROLLED)


@dataclass
class FamilyRegistration:
    family_reference_id: str
    profiles: list[ProgramProfile] = field(default_factory=list)
    guardians: list[Person] = field(default_factory=list)

    @property
    def monthly_rate(self) -> int:
        return calculate_dugsi_rate(len(self.profiles))


@dataclass
class FamilyDeletion:
    students_deleted: int = 0
    subscriptions_canceled: int = 0
    cancellation_failures: list[dict[str, str]] = field(default_factory=list)

    @property
    def message(self) -> str:
        noun = "student" if self.students_deleted == 1 else "students"
        text = f"Successfully deleted {self.students_deleted} {noun}"
        if self.subscriptions_canceled:
            sub_noun = "subscription" if self.subscriptions_canceled == 1 else "subscriptions"
            text += f", {self.subscriptions_canceled} {sub_noun} canceled"
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "students_deleted": self.students_deleted,
            "subscriptions_canceled": self.subscriptions_canceled,
            "cancellation_failures": self.cancellation_failures,
        }


def _full_name(first_name: str | None, last_name: str | None) -> str:
    return f"{(first_name or '').strip()} {(last_name or '').strip()}".strip()


class DugsiFamilyService:
    """Service for Dugsi registrations and household-level changes."""

    def __init__(self, session: Session | None = None):
        self.session = session or db.session
        self.enrollments = EnrollmentService(self.session)

    def get_student(self, profile_id: int, message: str = "Student not found") -> ProgramProfile:
        profile = self.session.get(ProgramProfile, profile_id)
        if profile is None or profile.program != Program.DUGSI_PROGRAM:
            raise NotFoundError(message)
        return profile

    @staticmethod
    def get_guardians(profile: ProgramProfile) -> list[Person]:
        links = sorted(
            (link for link in profile.person.dependent_links if link.is_active),
            key=lambda link: link.id,
        )
        return [link.guardian for link in links]

    # ------------------------------------------------------------------ reads

    def list_registrations(self, *, include_withdrawn: bool = True) -> list[ProgramProfile]:
        query = self.session.query(ProgramProfile).filter(
            ProgramProfile.program == Program.DUGSI_PROGRAM
        )
        if not include_withdrawn:
            query = query.filter(ProgramProfile.status != EnrollmentStatus.WITHDRAWN)
        return query.order_by(ProgramProfile.created_at.desc(), ProgramProfile.id.desc()).all()

    def get_family_profiles(self, profile_id: int) -> list[ProgramProfile]:
        """
        Every Dugsi profile in the student's household, oldest first.

        Uses family_reference_id when present; otherwise falls back to other
        children whose active guardians share an email or phone with this
        child's guardians.
        """
        profile = self.session.get(ProgramProfile, profile_id)
        if profile is None or profile.program != Program.DUGSI_PROGRAM:
            return []
        if profile.family_reference_id:
            return ProgramProfile.find_by_family(profile.family_reference_id)

        contact_values = {
            cp.value
            for guardian in self.get_guardians(profile)
            for cp in guardian.contact_points
            if cp.is_active and cp.type in (ContactType.EMAIL, ContactType.PHONE, ContactType.WHATSAPP)
        }
        if not contact_values:
            return [profile]

        guardian_ids = [
            pid
            for (pid,) in self.session.query(ContactPoint.person_id)
            .filter(ContactPoint.value.in_(list(contact_values)), ContactPoint.is_active.is_(True))
            .distinct()
            .all()
        ]
        dependent_ids = [
            did
            for (did,) in self.session.query(GuardianRelationship.dependent_id)
            .filter(
                GuardianRelationship.guardian_id.in_(guardian_ids),
                GuardianRelationship.is_active.is_(True),
            )
            .distinct()
            .all()
        ]
        profiles = (
            self.session.query(ProgramProfile)
            .filter(
                ProgramProfile.person_id.in_(dependent_ids),
                ProgramProfile.program == Program.DUGSI_PROGRAM,
            )
            .order_by(ProgramProfile.created_at, ProgramProfile.id)
            .all()
        )
        return profiles or [profile]

    def get_family_members(self, profile_id: int) -> dict[str, Any]:
        """Children and active guardians of the student's household."""
        profiles = self.get_family_profiles(profile_id)
        guardians: dict[int, Person] = {}
        for member in profiles:
            for guardian in self.get_guardians(member):
                guardians.setdefault(guardian.id, guardian)
        return {"children": profiles, "guardians": list(guardians.values())}

    def get_family_rate(self, profile_id: int) -> int:
        """Calculated monthly family rate in cents for the active children."""
        active = [p for p in self.get_family_profiles(profile_id) if p.status in ACTIVE_CHILD_STATUSES]
        return calculate_dugsi_rate(len(active))

    # ----------------------------------------------------------- registration

    def _find_or_create_guardian(self, parent: dict) -> Person:
        email = normalize_email(parent.get("email"))
        phone = normalize_phone(parent.get("phone"))
        person = DuplicateService(self.session).find_person_by_contact(email, phone)
        if person is None:
            name = parent.get("name") or _full_name(parent.get("first_name"), parent.get("last_name"))
            person = Person(name=name)
            self.session.add(person)
            self.session.flush()
        if email:
            ContactPoint.set_primary(person.id, ContactType.EMAIL, email)
        if phone:
            ContactPoint.set_primary(person.id, ContactType.PHONE, phone)
        return person

    def _link_guardians(self, guardians: Iterable[Person], child: Person) -> None:
        for guardian in guardians:
            exists = (
                self.session.query(GuardianRelationship)
                .filter_by(guardian_id=guardian.id, dependent_id=child.id, role=GuardianRole.PARENT)
                .first()
            )
            if exists is None:
                self.session.add(
                    GuardianRelationship(
                        guardian_id=guardian.id, dependent_id=child.id, role=GuardianRole.PARENT
                    )
                )
            else:
                exists.is_active = True

    def _create_child(self, child: dict, family_reference_id: str, guardians: list[Person]) -> ProgramProfile:
        name = child.get("name") or _full_name(child.get("first_name"), child.get("last_name"))
        person = Person(name=name, date_of_birth=child.get("date_of_birth"))
        self.session.add(person)
        self.session.flush()
        self._link_guardians(guardians, person)
        profile = ProgramProfile(
            person=person,
            program=Program.DUGSI_PROGRAM,
            family_reference_id=family_reference_id,
            status=EnrollmentStatus.REGISTERED,
        )
        for key in CHILD_PROFILE_FIELDS:
            if child.get(key) is not None:
                setattr(profile, key, child[key])
        self.session.add(profile)
        self.enrollments.build_enrollment(profile, status=EnrollmentStatus.REGISTERED)
        return profile

    def register_dugsi_family(self, parents: list[dict], children: list[dict]) -> FamilyRegistration:
        """
        Register a household: up to two parents and one or more children in a
        single transaction under a new family reference.
        """
        if not parents:
            raise ValueError("At least one parent is required")
        if len(parents) > 2:
            raise ValueError("A family can have at most two parents")
        if not children:
            raise ValueError("At least one child is required")
        if not normalize_email(parents[0].get("email")):
            raise ValueError("Parent email is required")

        registration = FamilyRegistration(family_reference_id=uuid.uuid4().hex)
        try:
            registration.guardians = [self._find_or_create_guardian(p) for p in parents]
            for child in children:
                registration.profiles.append(
                    self._create_child(child, registration.family_reference_id, registration.guardians)
                )
            self.session.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.session.rollback()
            current_app.logger.error(f"Error registering Dugsi family: {str(e)}")
            raise

        current_app.logger.info(
            f"Registered Dugsi family {registration.family_reference_id} "
            f"with {len(registration.profiles)} child(ren)"
        )
        return registration

    # ---------------------------------------------------------- family edits

    def update_parent_info(
        self, profile_id: int, parent_number: int, first_name: str, last_name: str, phone: str
    ) -> dict[str, int]:
        profile = self.get_student(profile_id)
        guardians = self.get_guardians(profile)
        if parent_number not in (1, 2) or len(guardians) < parent_number:
            raise NotFoundError(f"Parent {parent_number} not found")
        guardian = guardians[parent_number - 1]
        try:
            guardian.name = _full_name(first_name, last_name)
            existing = next(
                (
                    cp
                    for cp in guardian.contact_points
                    if cp.type in (ContactType.PHONE, ContactType.WHATSAPP) and cp.is_active
                ),
                None,
            )
            if existing is not None:
                existing.value = phone
            else:
                ContactPoint.set_primary(guardian.id, ContactType.PHONE, phone)
            self.session.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.session.rollback()
            current_app.logger.error(f"Error updating parent {parent_number} for student {profile_id}: {str(e)}")
            raise
        return {"updated": 1}

    def add_second_parent(
        self, profile_id: int, first_name: str, last_name: str, email: str, phone: str
    ) -> dict[str, int]:
        """Attach a second guardian to every child in the family."""
        profile = self.get_student(profile_id)
        if len(self.get_guardians(profile)) >= 2:
            raise ValueError("Second parent already exists")
        try:
            guardian = self._find_or_create_guardian(
                {"first_name": first_name, "last_name": last_name, "email": email, "phone": phone}
            )
            children = [p.person for p in self.get_family_profiles(profile_id)]
            for child in children:
                self._link_guardians([guardian], child)
            self.session.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.session.rollback()
            current_app.logger.error(f"Error adding second parent for student {profile_id}: {str(e)}")
            raise
        return {"updated": len(children)}

    def update_child_info(self, profile_id: int, **fields) -> ProgramProfile:
        profile = self.get_student(profile_id)
        person = profile.person
        try:
            first_name = fields.pop("first_name", None)
            last_name = fields.pop("last_name", None)
            if first_name or last_name:
                person.name = _full_name(first_name or person.first_name, last_name or person.last_name)
            if "date_of_birth" in fields:
                person.date_of_birth = fields.pop("date_of_birth")
            for key in CHILD_PROFILE_FIELDS:
                if key in fields:
                    value = fields[key]
                    setattr(profile, key, value or None if key == "school_name" else value)
            self.session.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.session.rollback()
            current_app.logger.error(f"Error updating child {profile_id}: {str(e)}")
            raise
        return profile

    def add_child_to_family(self, existing_profile_id: int, child: dict) -> ProgramProfile:
        existing = self.get_student(existing_profile_id, "Existing student not found")
        if not existing.family_reference_id:
            raise NotFoundError("Family reference ID not found")
        guardians = self.get_guardians(existing)
        if not guardians:
            raise NotFoundError("No guardians found for existing student")
        try:
            profile = self._create_child(child, existing.family_reference_id, guardians)
            self.session.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.session.rollback()
            current_app.logger.error(f"Error adding child to family {existing.family_reference_id}: {str(e)}")
            raise
        current_app.logger.info(f"Added child profile {profile.id} to family {existing.family_reference_id}")
        return profile

    def withdraw_child(self, profile_id: int, reason: str | None = None) -> ProgramProfile:
        """Withdraw one child, closing their enrollment and billing assignments."""
        profile = self.get_student(profile_id)
        if profile.status == EnrollmentStatus.WITHDRAWN:
            raise ValueError("Student is already withdrawn")
        try:
            self.enrollments.withdraw_all(profile, reason=reason or "Withdrawn")
            now = utcnow()
            for assignment in profile.get_active_assignments():
                assignment.deactivate(now)
            for assignment in profile.teacher_assignments:
                if assignment.is_active:
                    assignment.deactivate(now)
            profile.status = EnrollmentStatus.WITHDRAWN
            self.session.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.session.rollback()
            current_app.logger.error(f"Error withdrawing child {profile_id}: {str(e)}")
            raise
        return profile

    # --------------------------------------------------------------- deletion

    def _profiles_to_delete(self, profile: ProgramProfile) -> list[ProgramProfile]:
        if not profile.family_reference_id:
            return [profile]
        return ProgramProfile.find_by_family(profile.family_reference_id)

    def get_delete_family_preview(self, profile_id: int) -> dict[str, Any]:
        profile = self.get_student(profile_id, "Student not found or not in Dugsi program")
        profiles = self._profiles_to_delete(profile)
        guardians = self.get_guardians(profile)
        parent_email = guardians[0].get_primary_email() if guardians else None
        return {
            "count": len(profiles),
            "students": [
                {"id": p.id, "name": p.person.name, "parent_email": parent_email} for p in profiles
            ],
        }

    def delete_dugsi_family(self, profile_id: int) -> FamilyDeletion:
        """
        Hard-delete a student, or the whole family when the student has a
        family reference.

        Live subscriptions attached to any of the deleted profiles are
        cancelled in Stripe once each before the rows are removed. A failed
        cancellation is logged and reported but does not stop the deletion.
        """
        profile = self.get_student(profile_id, "Student not found or not in Dugsi program")
        profiles = self._profiles_to_delete(profile)

        subscriptions: dict[str, Subscription] = {}
        for member in profiles:
            for assignment in member.billing_assignments:
                subscription = assignment.subscription
                if subscription is not None and subscription.is_live:
                    subscriptions.setdefault(subscription.stripe_subscription_id, subscription)

        result = FamilyDeletion()
        for stripe_id, subscription in subscriptions.items():
            try:
                cancel_stripe_subscription(stripe_id, subscription.stripe_account_type)
            except (stripe.StripeError, ValueError) as e:
                current_app.logger.warning(
                    f"Subscription cancellation failed during family deletion for {stripe_id}: {e}"
                )
                result.cancellation_failures.append({"stripe_subscription_id": stripe_id, "error": str(e)})
                continue
            subscription.status = SubscriptionStatus.CANCELED
            result.subscriptions_canceled += 1

        try:
            for member in profiles:
                self.session.delete(member)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Error deleting Dugsi family for student {profile_id}: {str(e)}")
            raise

        result.students_deleted = len(profiles)
        current_app.logger.info(result.message)
        return result
