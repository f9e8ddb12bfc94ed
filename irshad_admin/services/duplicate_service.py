"""
Duplicate detection and resolution for student registrations.

Detection answers "does this email/phone already belong to someone in this
program?". Resolution is a soft merge: the records being discarded are
withdrawn and their billing assignments deactivated, while the kept record is
left untouched. Each discarded record is processed in its own transaction so
one failure never rolls back the others.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from flask import current_app
from rapidfuzz.distance import JaroWinkler
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from irshad_admin.models import (
    ContactPoint,
    ContactType,
    EnrollmentStatus,
    Person,
    Program,
    ProgramProfile,
    db,
)
from irshad_admin.models.base import utcnow
from irshad_admin.services.enrollment_service import EnrollmentService
from irshad_admin.utils.normalization import normalize_email, normalize_phone

DUPLICATE_RESOLVED_REASON = "Duplicate resolved"
NAME_MATCH_THRESHOLD = 0.95
PHONE_TYPES = (ContactType.PHONE, ContactType.WHATSAPP)


@dataclass
class DuplicateCheck:
    is_duplicate: bool = False
    duplicate_field: str | None = None
    existing_person: Person | None = None
    has_active_profile: bool = False
    active_profile: ProgramProfile | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_duplicate": self.is_duplicate,
            "duplicate_field": self.duplicate_field,
            "existing_person_id": self.existing_person.id if self.existing_person else None,
            "has_active_profile": self.has_active_profile,
            "active_profile": (
                {
                    "id": self.active_profile.id,
                    "program": self.active_profile.program.value,
                    "enrollment_count": len(self.active_profile.enrollments),
                    "created_at": self.active_profile.created_at.isoformat(),
                }
                if self.active_profile
                else None
            ),
        }


@dataclass
class DuplicateResolution:
    """Per-record outcome of a duplicate resolution."""

    keep_id: int
    resolved_ids: list[int] = field(default_factory=list)
    failed_ids: list[int] = field(default_factory=list)
    errors: dict[int, str] = field(default_factory=dict)
    merge_data: bool = False

    @property
    def success(self) -> bool:
        return not self.failed_ids

    def to_dict(self) -> dict[str, Any]:
        return {
            "keep_id": self.keep_id,
            "resolved_ids": self.resolved_ids,
            "failed_ids": self.failed_ids,
            "errors": {str(k): v for k, v in self.errors.items()},
        }


class DuplicateService:
    """Service for finding and resolving duplicate student records."""

    def __init__(self, session: Session | None = None):
        self.session = session or db.session

    # -------------------------------------------------------------- detection

    def find_person_by_contact(self, email: str | None, phone: str | None) -> Person | None:
        """Look up by email first, then by phone/WhatsApp number."""
        email = normalize_email(email)
        if email:
            person = Person.find_by_contact(ContactType.EMAIL, email)
            if person is not None:
                return person
        phone = normalize_phone(phone)
        if phone:
            point = (
                self.session.query(ContactPoint)
                .filter(
                    ContactPoint.type.in_(PHONE_TYPES),
                    ContactPoint.value == phone,
                    ContactPoint.is_active.is_(True),
                )
                .order_by(ContactPoint.is_primary.desc(), ContactPoint.id)
                .first()
            )
            if point is not None:
                return point.person
        return None

    def check_duplicate(self, *, email: str | None = None, phone: str | None = None, program: Program) -> DuplicateCheck:
        if not email and not phone:
            return DuplicateCheck()

        person = self.find_person_by_contact(email, phone)
        if person is None:
            return DuplicateCheck()

        active_profile = next(
            (
                profile
                for profile in person.program_profiles
                if profile.program == program and any(e.is_active for e in profile.enrollments)
            ),
            None,
        )
        duplicate_field = self._determine_duplicate_field(person, email, phone)
        current_app.logger.info(
            f"Duplicate check matched person {person.id} on {duplicate_field} "
            f"(active {program.value} profile: {bool(active_profile)})"
        )
        return DuplicateCheck(
            is_duplicate=True,
            duplicate_field=duplicate_field,
            existing_person=person,
            has_active_profile=active_profile is not None,
            active_profile=active_profile,
        )

    @staticmethod
    def _determine_duplicate_field(person: Person, email: str | None, phone: str | None) -> str:
        email = normalize_email(email)
        phone = normalize_phone(phone)
        email_matches = bool(email) and any(
            cp.type == ContactType.EMAIL and cp.value == email for cp in person.contact_points
        )
        phone_matches = bool(phone) and any(
            cp.type in PHONE_TYPES and cp.value == phone for cp in person.contact_points
        )
        if email_matches and phone_matches:
            return "both"
        if phone_matches:
            return "phone"
        return "email"

    def find_duplicate_groups(self, program: Program = Program.MAHAD_PROGRAM) -> list[list[ProgramProfile]]:
        """
        Group non-withdrawn profiles of a program that look like the same
        student: shared email or phone between their persons, or near-identical
        names. Only groups of two or more are returned, oldest profile first.
        """
        profiles = (
            self.session.query(ProgramProfile)
            .options(joinedload(ProgramProfile.person).joinedload(Person.contact_points))
            .filter(
                ProgramProfile.program == program,
                ProgramProfile.status != EnrollmentStatus.WITHDRAWN,
            )
            .order_by(ProgramProfile.created_at, ProgramProfile.id)
            .all()
        )

        parent = {p.id: p.id for p in profiles}

        def find(x):
            while parent[x] != x:
                parent[x] = parent[parent[x]]
                x = parent[x]
            return x

        def union(a, b):
            root_a, root_b = find(a), find(b)
            if root_a != root_b:
                parent[max(root_a, root_b)] = min(root_a, root_b)

        seen_keys: dict[tuple, int] = {}
        for profile in profiles:
            for cp in profile.person.contact_points:
                if not cp.is_active or cp.type not in (ContactType.EMAIL, *PHONE_TYPES):
                    continue
                key = ("email" if cp.type == ContactType.EMAIL else "phone", cp.value)
                if key in seen_keys:
                    union(seen_keys[key], profile.id)
                else:
                    seen_keys[key] = profile.id

        for i, first in enumerate(profiles):
            for second in profiles[i + 1 :]:
                score = JaroWinkler.normalized_similarity(
                    first.person.name.lower(), second.person.name.lower()
                )
                if score >= NAME_MATCH_THRESHOLD:
                    union(first.id, second.id)

        groups: dict[int, list[ProgramProfile]] = {}
        for profile in profiles:
            groups.setdefault(find(profile.id), []).append(profile)
        return [group for group in groups.values() if len(group) > 1]

    # ------------------------------------------------------------- resolution

    def resolve_duplicates(
        self, keep_id: int, delete_ids: Iterable[int], merge_data: bool = False
    ) -> DuplicateResolution:
        """
        Soft-merge ``delete_ids`` into ``keep_id``.

        Validation failures raise ValueError before anything is written. After
        that, each discarded record is withdrawn in its own transaction and
        failures are collected rather than raised.
        """
        delete_ids = [int(i) for i in (delete_ids or [])]
        if not delete_ids:
            raise ValueError("No duplicate records selected for deletion")
        if keep_id in delete_ids:
            raise ValueError("Cannot delete the record you want to keep")

        keep = self.session.get(ProgramProfile, keep_id)
        if keep is None or keep.program != Program.MAHAD_PROGRAM:
            raise ValueError("Student record to keep not found")

        found = {
            p.id: p
            for p in self.session.query(ProgramProfile)
            .filter(ProgramProfile.id.in_(delete_ids), ProgramProfile.program == Program.MAHAD_PROGRAM)
            .all()
        }
        missing = [i for i in delete_ids if i not in found]
        if missing:
            raise ValueError(f"Some duplicate records not found: {', '.join(str(i) for i in missing)}")

        if merge_data:
            # TODO: copy missing contact points and academic fields onto the kept profile
            current_app.logger.info(f"merge_data requested for keep {keep_id}; records are withdrawn only")

        enrollments = EnrollmentService(self.session)
        result = DuplicateResolution(keep_id=keep_id, merge_data=merge_data)
        for profile_id in delete_ids:
            profile = found[profile_id]
            try:
                enrollments.withdraw_all(profile, reason=DUPLICATE_RESOLVED_REASON)
                now = utcnow()
                for assignment in profile.get_active_assignments():
                    assignment.deactivate(now)
                profile.status = EnrollmentStatus.WITHDRAWN
                self.session.commit()
                result.resolved_ids.append(profile_id)
            except (SQLAlchemyError, ValueError) as e:
                self.session.rollback()
                current_app.logger.error(f"Failed to resolve duplicate {profile_id} (keep {keep_id}): {str(e)}")
                result.failed_ids.append(profile_id)
                result.errors[profile_id] = str(e)

        current_app.logger.info(
            f"Resolved duplicates for {keep_id}: {len(result.resolved_ids)} withdrawn, "
            f"{len(result.failed_ids)} failed"
        )
        return result

    def resolve_duplicate_groups(self, groups: Iterable[dict]) -> dict[str, Any]:
        """Resolve several ``{"keep_id", "delete_ids"}`` groups, collecting per-group failures."""
        resolved_count = 0
        failed_groups = []
        for group in groups:
            keep_id = group.get("keep_id")
            try:
                outcome = self.resolve_duplicates(keep_id, group.get("delete_ids") or [])
            except ValueError as e:
                failed_groups.append({"keep_id": keep_id, "error": str(e)})
                continue
            if outcome.failed_ids:
                failed_groups.append(
                    {"keep_id": keep_id, "error": f"Failed to resolve: {', '.join(map(str, outcome.failed_ids))}"}
                )
            else:
                resolved_count += 1
        return {"resolved_count": resolved_count, "failed_groups": failed_groups}

    def search_profiles_by_contact(self, value: str, program: Program | None = None) -> list[ProgramProfile]:
        """Profiles whose person, or an active guardian of that person, owns the contact value."""
        from irshad_admin.models import GuardianRelationship

        email = normalize_email(value) if "@" in (value or "") else None
        phone = None if email else normalize_phone(value)
        if not email and not phone:
            return []
        contact_filter = (
            (ContactPoint.type == ContactType.EMAIL) & (ContactPoint.value == email)
            if email
            else ContactPoint.type.in_(PHONE_TYPES) & (ContactPoint.value == phone)
        )
        person_ids = {
            pid for (pid,) in self.session.query(ContactPoint.person_id).filter(contact_filter).all()
        }
        if not person_ids:
            return []
        dependent_ids = {
            did
            for (did,) in self.session.query(GuardianRelationship.dependent_id)
            .filter(
                GuardianRelationship.guardian_id.in_(list(person_ids)),
                GuardianRelationship.is_active.is_(True),
            )
            .all()
        }
        query = self.session.query(ProgramProfile).filter(
            or_(
                ProgramProfile.person_id.in_(list(person_ids)),
                ProgramProfile.person_id.in_(list(dependent_ids)),
            )
        )
        if program is not None:
            query = query.filter(ProgramProfile.program == program)
        return query.order_by(ProgramProfile.id).all()
