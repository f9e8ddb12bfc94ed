# irshad_admin/models/person/base.py
"""
Person model: the canonical identity shared by students, parents and teachers.
"""

from datetime import date

from flask import current_app
from sqlalchemy import Index
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import validates

from ..base import BaseModel, db
from ..enums import ContactType


class Person(BaseModel):
    """
    Canonical identity record. Exists independently of any role; program
    participation, guardianship and teaching hang off it.
    """

    __tablename__ = "persons"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    date_of_birth = db.Column(db.Date, nullable=True)

    # Relationships
    contact_points = db.relationship(
        "ContactPoint", back_populates="person", cascade="all, delete-orphan"
    )
    program_profiles = db.relationship(
        "ProgramProfile", back_populates="person", cascade="all, delete-orphan"
    )
    guardian_links = db.relationship(
        "GuardianRelationship",
        foreign_keys="GuardianRelationship.guardian_id",
        back_populates="guardian",
        cascade="all, delete-orphan",
    )
    dependent_links = db.relationship(
        "GuardianRelationship",
        foreign_keys="GuardianRelationship.dependent_id",
        back_populates="dependent",
        cascade="all, delete-orphan",
    )
    billing_accounts = db.relationship(
        "BillingAccount", back_populates="person", cascade="all, delete-orphan"
    )
    teacher = db.relationship(
        "Teacher", back_populates="person", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_person_name_dob", "name", "date_of_birth"),)

    def __repr__(self):
        return f"<Person {self.name}>"

    @validates("date_of_birth")
    def validate_date_of_birth(self, key, value):
        """Validate date of birth is not in the future"""
        if value and value > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return value

    @validates("name")
    def validate_name(self, key, value):
        value = " ".join((value or "").split())
        if not value:
            raise ValueError("Name is required")
        return value

    @property
    def first_name(self):
        return self.name.split(" ", 1)[0] if self.name else ""

    @property
    def last_name(self):
        parts = self.name.split(" ", 1) if self.name else []
        return parts[1] if len(parts) > 1 else ""

    def get_contact(self, contact_type, primary_only=False):
        """Return the primary active contact value of a type, falling back to any active one"""
        active = [c for c in self.contact_points if c.type == contact_type and c.is_active]
        primary = next((c for c in active if c.is_primary), None)
        if primary or primary_only:
            return primary.value if primary else None
        return active[0].value if active else None

    def get_primary_email(self):
        """Get primary email address"""
        return self.get_contact(ContactType.EMAIL)

    def get_primary_phone(self):
        """Get primary phone number (digits)"""
        return self.get_contact(ContactType.PHONE) or self.get_contact(ContactType.WHATSAPP)

    def get_profile(self, program):
        return next((p for p in self.program_profiles if p.program == program), None)

    def get_active_guardians(self):
        """Get guardians linked to this person through active relationships"""
        return [link.guardian for link in self.dependent_links if link.is_active]

    def get_active_dependents(self):
        return [link.dependent for link in self.guardian_links if link.is_active]

    def calculate_age(self, today=None):
        """Calculate age in whole years from date of birth"""
        if not self.date_of_birth:
            return None
        today = today or date.today()
        dob = self.date_of_birth
        return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))

    @staticmethod
    def find_by_contact(contact_type, value):
        """Find the person owning an active contact point with the given normalized value"""
        from .info import ContactPoint

        try:
            point = (
                ContactPoint.query.filter_by(type=contact_type, value=value, is_active=True)
                .order_by(ContactPoint.is_primary.desc(), ContactPoint.id)
                .first()
            )
            return point.person if point else None
        except SQLAlchemyError as e:
            current_app.logger.error(
                f"Database error finding person by {contact_type.value} contact: {str(e)}"
            )
            return None
