# irshad_admin/models/person/relationships.py
"""
Family link models: guardian-dependent and sibling relationships
"""

from sqlalchemy import Enum, Index
from sqlalchemy.orm import validates

from ..base import BaseModel, db, utcnow
from ..enums import GuardianRole, SiblingDetectionMethod


class GuardianRelationship(BaseModel):
    """Directed link from a guardian (parent, sponsor) to a dependent"""

    __tablename__ = "guardian_relationships"

    id = db.Column(db.Integer, primary_key=True)
    guardian_id = db.Column(
        db.Integer, db.ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    dependent_id = db.Column(
        db.Integer, db.ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role = db.Column(
        Enum(GuardianRole, name="guardian_role_enum"), default=GuardianRole.PARENT, nullable=False
    )
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    start_date = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Relationships
    guardian = db.relationship(
        "Person", foreign_keys=[guardian_id], back_populates="guardian_links"
    )
    dependent = db.relationship(
        "Person", foreign_keys=[dependent_id], back_populates="dependent_links"
    )

    __table_args__ = (
        db.UniqueConstraint("guardian_id", "dependent_id", "role", name="_guardian_dependent_role_uc"),
    )

    def __repr__(self):
        return f"<GuardianRelationship {self.guardian_id} -> {self.dependent_id} ({self.role.value})>"

    @validates("dependent_id")
    def validate_dependent(self, key, value):
        if value is not None and value == self.guardian_id:
            raise ValueError("A person cannot be their own guardian")
        return value


class SiblingRelationship(BaseModel):
    """
    Symmetric sibling link stored once per pair with person1_id < person2_id.
    Soft-removed through is_active and reactivated on re-link.
    """

    __tablename__ = "sibling_relationships"

    id = db.Column(db.Integer, primary_key=True)
    person1_id = db.Column(
        db.Integer, db.ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    person2_id = db.Column(
        db.Integer, db.ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    detection_method = db.Column(
        Enum(SiblingDetectionMethod, name="sibling_detection_method_enum"),
        default=SiblingDetectionMethod.MANUAL,
        nullable=False,
    )
    confidence = db.Column(db.Float, nullable=True)
    verified_by = db.Column(db.String(200), nullable=True)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    # Relationships
    person1 = db.relationship("Person", foreign_keys=[person1_id])
    person2 = db.relationship("Person", foreign_keys=[person2_id])

    __table_args__ = (
        db.UniqueConstraint("person1_id", "person2_id", name="_sibling_pair_uc"),
        db.CheckConstraint("person1_id < person2_id", name="ck_sibling_pair_sorted"),
        Index("idx_sibling_active", "is_active"),
    )

    def __repr__(self):
        return f"<SiblingRelationship {self.person1_id} <-> {self.person2_id}>"

    @staticmethod
    def sorted_pair(person_a_id, person_b_id):
        """Return the pair in storage order"""
        return (person_a_id, person_b_id) if person_a_id < person_b_id else (person_b_id, person_a_id)

    @validates("confidence")
    def validate_confidence(self, key, value):
        if value is not None and not 0.0 <= value <= 1.0:
            raise ValueError("Confidence must be between 0 and 1")
        return value

    def other_person_id(self, person_id):
        return self.person2_id if self.person1_id == person_id else self.person1_id
