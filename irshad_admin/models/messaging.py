# irshad_admin/models/messaging.py
"""
Outbound WhatsApp message log
"""

from sqlalchemy import Enum, Index

from .base import BaseModel, db
from .enums import MessageStatus, Program


class WhatsAppMessage(BaseModel):
    """One outbound template message and its delivery outcome"""

    __tablename__ = "whatsapp_messages"

    id = db.Column(db.Integer, primary_key=True)
    wa_message_id = db.Column(db.String(128), nullable=True, unique=True)
    phone_number = db.Column(db.String(20), nullable=False)
    template_name = db.Column(db.String(100), nullable=False)
    program = db.Column(Enum(Program, name="program_enum"), nullable=True)
    recipient_type = db.Column(db.String(30), nullable=True)  # parent, student, teacher
    person_id = db.Column(db.Integer, db.ForeignKey("persons.id", ondelete="SET NULL"), nullable=True)
    family_id = db.Column(db.String(64), nullable=True)
    message_type = db.Column(db.String(50), nullable=True)  # payment_link, reminder, announcement
    status = db.Column(
        Enum(MessageStatus, name="message_status_enum"), nullable=False, default=MessageStatus.SENT
    )
    failed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    failure_reason = db.Column(db.Text, nullable=True)
    message_metadata = db.Column(db.JSON, nullable=True)

    person = db.relationship("Person")

    __table_args__ = (
        Index("idx_wa_phone_template_created", "phone_number", "template_name", "created_at"),
    )

    def __repr__(self):
        return f"<WhatsAppMessage {self.template_name} -> {self.phone_number} ({self.status.value})>"
