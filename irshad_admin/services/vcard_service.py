"""
vCard 3.0 contact exports for phone address books.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from flask import current_app
from sqlalchemy.orm import Session

from irshad_admin.models import Batch, db
from irshad_admin.services.family_service import DugsiFamilyService
from irshad_admin.services.mahad_service import MahadService

CRLF = "\r\n"
_NON_DIGITS = re.compile(r"\D")


@dataclass
class VCardContact:
    first_name: str
    last_name: str
    full_name: str
    email: str | None = None
    phone: str | None = None
    organization: str | None = None
    note: str | None = None


def escape_vcard_value(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def format_phone_for_vcard(phone: str | None) -> str | None:
    """
    E.164 form for address books.

    Ten digits are US numbers; eleven digits starting with 1 already carry the
    country code. Anything else keeps its digits behind a ``+``.
    """
    digits = _NON_DIGITS.sub("", phone or "")
    if not digits:
        return None
    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"


def generate_vcard(contact: VCardContact) -> str:
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"N:{escape_vcard_value(contact.last_name)};{escape_vcard_value(contact.first_name)};;;",
        f"FN:{escape_vcard_value(contact.full_name)}",
    ]
    if contact.phone:
        lines.append(f"TEL;TYPE=CELL:{contact.phone}")
    if contact.email:
        lines.append(f"EMAIL:{escape_vcard_value(contact.email)}")
    if contact.organization:
        lines.append(f"ORG:{escape_vcard_value(contact.organization)}")
    if contact.note:
        lines.append(f"NOTE:{escape_vcard_value(contact.note)}")
    lines.append("END:VCARD")
    return CRLF.join(lines)


def generate_vcard_file(contacts: Iterable[VCardContact]) -> str:
    return CRLF.join(generate_vcard(c) for c in contacts)


def _slug(value: str) -> str:
    return re.sub(r"\s+", "-", value.strip().lower())


class VCardExportService:
    """Build vCard exports from student and parent contacts."""

    def __init__(self, session: Session | None = None):
        self.session = session or db.session

    @property
    def organization(self) -> str:
        return current_app.config.get("ORG_NAME", "Irshad Center")

    def export_mahad_students(self, batch_id: int | None = None, today: date | None = None) -> dict:
        """One card per active Mahad student with a phone or email; the batch name is appended to the display name."""
        batch_name = None
        if batch_id is not None:
            batch = self.session.get(Batch, batch_id)
            batch_name = batch.name if batch else None

        contacts, skipped = [], 0
        for profile in MahadService(self.session).list_students(batch_id=batch_id):
            person = profile.person
            email = person.get_primary_email()
            phone = format_phone_for_vcard(person.get_primary_phone())
            if not email and not phone:
                skipped += 1
                continue
            active = profile.get_active_enrollment()
            suffix = (active.batch.name if active and active.batch else None) or batch_name or ""
            display = f"{person.name} {suffix}".strip()
            contacts.append(
                VCardContact(
                    first_name=display,
                    last_name="",
                    full_name=display,
                    email=email,
                    phone=phone,
                    organization=self.organization,
                )
            )

        day = (today or date.today()).isoformat()
        filename = (
            f"mahad-{_slug(batch_name)}-contacts-{day}.vcf" if batch_name else f"mahad-all-contacts-{day}.vcf"
        )
        return {
            "content": generate_vcard_file(contacts),
            "filename": filename,
            "exported": len(contacts),
            "skipped": skipped,
        }

    def export_dugsi_parents(self, today: date | None = None) -> dict:
        """One card per distinct parent, deduplicated by email then phone, noting their children."""
        families: dict[str, list] = {}
        family_service = DugsiFamilyService(self.session)
        for profile in family_service.list_registrations(include_withdrawn=False):
            guardians = family_service.get_guardians(profile)
            key = (
                profile.family_reference_id
                or (guardians[0].get_primary_email() if guardians else None)
                or (guardians[0].get_primary_phone() if guardians else None)
                or f"profile-{profile.id}"
            )
            families.setdefault(key, []).append((profile, guardians))

        contacts, skipped, seen = [], 0, set()
        for members in families.values():
            children = ", ".join(profile.person.name for profile, _ in members)
            for guardian in members[0][1]:
                email = guardian.get_primary_email()
                phone = format_phone_for_vcard(guardian.get_primary_phone())
                if not email and not phone:
                    skipped += 1
                    continue
                key = email or phone
                if key in seen:
                    skipped += 1
                    continue
                seen.add(key)
                contacts.append(
                    VCardContact(
                        first_name=guardian.first_name,
                        last_name=guardian.last_name,
                        full_name=guardian.name or "Dugsi Parent",
                        email=email,
                        phone=phone,
                        organization=self.organization,
                        note=f"Children: {children}",
                    )
                )

        day = (today or date.today()).isoformat()
        return {
            "content": generate_vcard_file(contacts),
            "filename": f"dugsi-parent-contacts-{day}.vcf",
            "exported": len(contacts),
            "skipped": skipped,
        }
