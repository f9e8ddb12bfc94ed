# irshad_admin/models/person/info.py
"""
Contact point model: email, phone and WhatsApp entries owned by a person
"""

from flask import current_app
from sqlalchemy import Enum, Index
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import validates

from ...utils.normalization import normalize_email, normalize_phone
from ..base import BaseModel, db
from ..enums import ContactType, VerificationStatus


class ContactPoint(BaseModel):
    """Email/phone/WhatsApp entry for a person"""

    __tablename__ = "contact_points"

    id = db.Column(db.Integer, primary_key=True)
    person_id = db.Column(
        db.Integer, db.ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = db.Column(Enum(ContactType, name="contact_type_enum"), nullable=False)
    value = db.Column(db.String(255), nullable=False)
    is_primary = db.Column(db.Boolean, default=False, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    verification_status = db.Column(
        Enum(VerificationStatus, name="verification_status_enum"),
        default=VerificationStatus.UNVERIFIED,
        nullable=False,
    )

    # Relationships
    person = db.relationship("Person", back_populates="contact_points")

    # Constraints
    __table_args__ = (
        Index("idx_contact_point_type_value", "type", "value"),
        db.UniqueConstraint("person_id", "type", "value", name="_person_contact_point_uc"),
    )

    def __init__(self, **kwargs):
        # type must be known before value is normalized
        contact_type = kwargs.pop("type", None)
        if contact_type is not None:
            self.type = contact_type
        super().__init__(**kwargs)

    def __repr__(self):
        return f"<ContactPoint {self.type.value}: {self.value}>"

    @validates("value")
    def validate_value(self, key, value):
        """Normalize the stored value for its channel"""
        if self.type == ContactType.EMAIL:
            normalized = normalize_email(value)
            if not normalized or "@" not in normalized:
                raise ValueError(f"Invalid email format: {value}")
            return normalized
        if self.type in (ContactType.PHONE, ContactType.WHATSAPP):
            normalized = normalize_phone(value)
            if not normalized:
                raise ValueError(f"Invalid phone number: {value}")
            return normalized
        return (value or "").strip()

    @staticmethod
    def ensure_single_primary(person_id, contact_type, exclude_id=None):
        """Ensure only one primary active contact point per person and type"""
        try:
            query = ContactPoint.query.filter_by(
                person_id=person_id, type=contact_type, is_primary=True
            )
            if exclude_id:
                query = query.filter(ContactPoint.id != exclude_id)
            for point in query.all():
                point.is_primary = False
            db.session.flush()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(
                f"Error ensuring single primary {contact_type.value} for person {person_id}: {str(e)}"
            )
            raise

    @staticmethod
    def set_primary(person_id, contact_type, value):
        """
        Make ``value`` the primary contact of its type for a person, creating
        the contact point when missing. Flushes but does not commit.
        """
        point = ContactPoint(person_id=person_id, type=contact_type, value=value)
        existing = ContactPoint.query.filter_by(
            person_id=person_id, type=contact_type, value=point.value
        ).first()
        if existing:
            point = existing
        else:
            db.session.add(point)
            db.session.flush()
        point.is_primary = True
        point.is_active = True
        ContactPoint.ensure_single_primary(person_id, contact_type, exclude_id=point.id)
        return point
