"""
Sibling relationships: manual linking and heuristic detection.

Pairs are stored once with person1_id < person2_id. Removing a link only
deactivates it; linking the same pair again reactivates the row as MANUAL.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from irshad_admin.models import (
    ContactPoint,
    GuardianRelationship,
    Person,
    SiblingDetectionMethod,
    SiblingRelationship,
    db,
)
from irshad_admin.models.base import utcnow
from irshad_admin.utils.action_result import NotFoundError

GUARDIAN_MATCH_CONFIDENCE = 0.9
CONTACT_MATCH_CONFIDENCE = 0.8
NAME_MATCH_CONFIDENCE = 0.5
NAME_AND_AGE_MATCH_CONFIDENCE = 0.7
SIMILAR_AGE_YEARS = 5
DAYS_PER_YEAR = 365


@dataclass
class PotentialSibling:
    person: Person
    method: SiblingDetectionMethod
    confidence: float
    reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "person_id": self.person.id,
            "name": self.person.name,
            "method": self.method.value,
            "confidence": self.confidence,
            "reasons": self.reasons,
        }


def calculate_confidence_score(
    method: SiblingDetectionMethod,
    *,
    shared_guardians: int | None = None,
    name_match: bool = False,
    age_similarity: float | None = None,
    shared_contacts: int | None = None,
) -> float:
    """Score a detection method and its evidence, clamped to [0, 1]."""

    score = 0.0
    if method == SiblingDetectionMethod.GUARDIAN_MATCH:
        score = 0.95 if shared_guardians and shared_guardians > 1 else 0.9
    elif method == SiblingDetectionMethod.CONTACT_MATCH:
        score = min(0.7 + (shared_contacts or 0) * 0.1, 0.95)
    elif method == SiblingDetectionMethod.NAME_MATCH:
        score = 0.6 if name_match else 0.5
        if age_similarity is not None and age_similarity < SIMILAR_AGE_YEARS:
            score += 0.2
        score = min(score, 0.9)
    elif method == SiblingDetectionMethod.MANUAL:
        score = 1.0
    return round(min(max(score, 0.0), 1.0), 4)


class SiblingService:
    """Service for sibling links between persons."""

    def __init__(self, session: Session | None = None):
        self.session = session or db.session

    def _get_person(self, person_id: int) -> Person:
        person = self.session.get(Person, person_id)
        if person is None:
            raise NotFoundError("Person not found")
        return person

    def _find_pair(self, person_a_id: int, person_b_id: int) -> SiblingRelationship | None:
        first, second = SiblingRelationship.sorted_pair(person_a_id, person_b_id)
        return (
            self.session.query(SiblingRelationship)
            .filter_by(person1_id=first, person2_id=second)
            .first()
        )

    # ------------------------------------------------------------------ reads

    def get_siblings(self, person_id: int) -> list[Person]:
        links = (
            self.session.query(SiblingRelationship)
            .filter(
                or_(
                    SiblingRelationship.person1_id == person_id,
                    SiblingRelationship.person2_id == person_id,
                ),
                SiblingRelationship.is_active.is_(True),
            )
            .all()
        )
        sibling_ids = [link.other_person_id(person_id) for link in links]
        if not sibling_ids:
            return []
        return self.session.query(Person).filter(Person.id.in_(sibling_ids)).order_by(Person.name).all()

    def are_siblings(self, person_a_id: int, person_b_id: int) -> bool:
        if person_a_id == person_b_id:
            return False
        link = self._find_pair(person_a_id, person_b_id)
        return bool(link and link.is_active)

    # -------------------------------------------------------------- mutations

    def create_sibling_relationship(
        self,
        person_a_id: int,
        person_b_id: int,
        method: SiblingDetectionMethod = SiblingDetectionMethod.MANUAL,
        *,
        confidence: float | None = None,
        verified_by: str | None = None,
        notes: str | None = None,
    ) -> SiblingRelationship:
        if person_a_id == person_b_id:
            raise ValueError("Cannot create sibling relationship with self")
        first, second = SiblingRelationship.sorted_pair(person_a_id, person_b_id)
        if confidence is None and method == SiblingDetectionMethod.MANUAL:
            confidence = 1.0
        link = SiblingRelationship(
            person1_id=first,
            person2_id=second,
            detection_method=method,
            confidence=confidence,
            verified_by=verified_by,
            verified_at=utcnow() if verified_by else None,
            notes=notes,
            is_active=True,
        )
        self.session.add(link)
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Error creating sibling link {first}-{second}: {str(e)}")
            raise
        return link

    def link_siblings(
        self, person_id: int, sibling_ids: Iterable[int], *, verified_by: str | None = None
    ) -> dict[str, Any]:
        """
        Link ``person_id`` with each of ``sibling_ids`` manually.

        Already-active pairs are skipped, inactive pairs are reactivated and
        unknown persons are reported in ``failures``.
        """
        self._get_person(person_id)
        added = 0
        failures = []
        for sibling_id in sibling_ids:
            try:
                if sibling_id == person_id:
                    raise ValueError("Cannot create sibling relationship with self")
                if self.session.get(Person, sibling_id) is None:
                    raise ValueError("Person not found")
                existing = self._find_pair(person_id, sibling_id)
                if existing is not None and existing.is_active:
                    continue
                if existing is not None:
                    existing.is_active = True
                    existing.detection_method = SiblingDetectionMethod.MANUAL
                    existing.confidence = 1.0
                    existing.verified_by = verified_by
                    existing.verified_at = utcnow() if verified_by else None
                    self.session.commit()
                else:
                    self.create_sibling_relationship(
                        person_id, sibling_id, SiblingDetectionMethod.MANUAL, verified_by=verified_by
                    )
                added += 1
            except (SQLAlchemyError, ValueError) as e:
                self.session.rollback()
                failures.append({"sibling_id": sibling_id, "error": str(e)})
        current_app.logger.info(f"Linked {added} sibling(s) to person {person_id}, {len(failures)} failed")
        return {"added": added, "failed": len(failures), "failures": failures}

    def unlink_siblings(self, person_a_id: int, person_b_id: int) -> bool:
        link = self._find_pair(person_a_id, person_b_id)
        if link is None or not link.is_active:
            return False
        link.is_active = False
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Error unlinking siblings {person_a_id}-{person_b_id}: {str(e)}")
            raise
        return True

    # -------------------------------------------------------------- detection

    def _related_ids(self, person_id: int) -> set[int]:
        """Persons already paired with ``person_id`` (active or not)."""
        rows = (
            self.session.query(SiblingRelationship)
            .filter(
                or_(
                    SiblingRelationship.person1_id == person_id,
                    SiblingRelationship.person2_id == person_id,
                )
            )
            .all()
        )
        return {row.other_person_id(person_id) for row in rows}

    def detect_potential_siblings(self, person_id: int) -> list[PotentialSibling]:
        """
        Suggest siblings for a person, highest confidence first.

        - GUARDIAN_MATCH: another dependent of one of the person's guardians
        - NAME_MATCH: name contains the person's last name; boosted when birth
          dates are under five years apart
        - CONTACT_MATCH: shares an email or phone value

        Pairs that already have a relationship row are never suggested, and
        each candidate appears once under its strongest evidence.
        """
        person = self._get_person(person_id)
        excluded = self._related_ids(person_id) | {person_id}
        found: dict[int, PotentialSibling] = {}

        def offer(candidate: PotentialSibling):
            current = found.get(candidate.person.id)
            if current is None or candidate.confidence > current.confidence:
                found[candidate.person.id] = candidate

        guardian_ids = [link.guardian_id for link in person.dependent_links if link.is_active]
        if guardian_ids:
            rows = (
                self.session.query(GuardianRelationship)
                .filter(
                    GuardianRelationship.guardian_id.in_(guardian_ids),
                    GuardianRelationship.dependent_id != person_id,
                    GuardianRelationship.is_active.is_(True),
                )
                .all()
            )
            for row in rows:
                if row.dependent_id in excluded:
                    continue
                offer(
                    PotentialSibling(
                        person=row.dependent,
                        method=SiblingDetectionMethod.GUARDIAN_MATCH,
                        confidence=GUARDIAN_MATCH_CONFIDENCE,
                        reasons=[f"Shared guardian: {row.guardian.name}"],
                    )
                )

        name_parts = person.name.split()
        if len(name_parts) >= 2:
            last_name = name_parts[-1]
            matches = (
                self.session.query(Person)
                .filter(Person.id != person_id, func.lower(Person.name).contains(last_name.lower()))
                .all()
            )
            for match in matches:
                if match.id in excluded:
                    continue
                confidence = NAME_MATCH_CONFIDENCE
                reasons = [f"Shared last name: {last_name}"]
                if person.date_of_birth and match.date_of_birth:
                    years = abs((person.date_of_birth - match.date_of_birth).days) / DAYS_PER_YEAR
                    if years < SIMILAR_AGE_YEARS:
                        confidence = NAME_AND_AGE_MATCH_CONFIDENCE
                        reasons.append(f"Similar age ({round(years)} years apart)")
                offer(
                    PotentialSibling(
                        person=match,
                        method=SiblingDetectionMethod.NAME_MATCH,
                        confidence=confidence,
                        reasons=reasons,
                    )
                )

        values = [cp.value for cp in person.contact_points]
        if values:
            matches = (
                self.session.query(ContactPoint)
                .filter(ContactPoint.value.in_(values), ContactPoint.person_id != person_id)
                .all()
            )
            for match in matches:
                if match.person_id in excluded:
                    continue
                offer(
                    PotentialSibling(
                        person=match.person,
                        method=SiblingDetectionMethod.CONTACT_MATCH,
                        confidence=CONTACT_MATCH_CONFIDENCE,
                        reasons=[f"Shared {match.type.value.lower()}: {match.value}"],
                    )
                )

        return sorted(found.values(), key=lambda s: (-s.confidence, s.person.id))
