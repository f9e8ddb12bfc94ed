# tests/test_vcard_service.py
"""
Tests for vCard contact exports
"""

from datetime import date

from irshad_admin.services.family_service import DugsiFamilyService
from irshad_admin.services.mahad_service import MahadService
from irshad_admin.services.vcard_service import (
    VCardContact,
    VCardExportService,
    escape_vcard_value,
    format_phone_for_vcard,
    generate_vcard,
)

TODAY = date(2025, 3, 8)


class TestFormatting:
    def test_escape(self):
        assert escape_vcard_value("a;b,c\\d\ne") == "a\\;b\\,c\\\\d\\ne"

    def test_phone(self):
        assert format_phone_for_vcard("(612) 555-0101") == "+16125550101"
        assert format_phone_for_vcard("16125550101") == "+16125550101"
        assert format_phone_for_vcard("44 20 7946 0958") == "+442079460958"
        assert format_phone_for_vcard("n/a") is None
        assert format_phone_for_vcard(None) is None

    def test_card_layout(self):
        card = generate_vcard(
            VCardContact(
                first_name="Amina",
                last_name="Hassan",
                full_name="Amina Hassan",
                email="amina@example.com",
                phone="+16125550111",
                organization="Irshad Center",
                note="Children: Ali, Hodan",
            )
        )
        lines = card.split("\r\n")
        assert lines[:4] == ["BEGIN:VCARD", "VERSION:3.0", "N:Hassan;Amina;;;", "FN:Amina Hassan"]
        assert "TEL;TYPE=CELL:+16125550111" in lines
        assert "NOTE:Children: Ali\\, Hodan" in lines
        assert lines[-1] == "END:VCARD"


class TestExports:
    def test_mahad_students(self, mahad_student, batch):
        MahadService().create_student(name="No Contact")

        export = VCardExportService().export_mahad_students(today=TODAY)

        assert export["exported"] == 1
        assert export["skipped"] == 1
        assert export["filename"] == "mahad-all-contacts-2025-03-08.vcf"
        assert "FN:Yusuf Abdi Fall 2024" in export["content"]
        assert "TEL;TYPE=CELL:+16125550101" in export["content"]
        assert "ORG:Irshad Center" in export["content"]

    def test_mahad_batch_filename(self, mahad_student, batch):
        export = VCardExportService().export_mahad_students(batch_id=batch.id, today=TODAY)
        assert export["filename"] == "mahad-fall-2024-contacts-2025-03-08.vcf"

    def test_dugsi_parents_one_card_each(self, dugsi_family):
        export = VCardExportService().export_dugsi_parents(today=TODAY)

        assert export["exported"] == 2
        assert export["content"].count("BEGIN:VCARD") == 2
        assert "NOTE:Children: " in export["content"]
        assert "Ali Hassan" in export["content"] and "Hodan Hassan" in export["content"]
        assert export["filename"] == "dugsi-parent-contacts-2025-03-08.vcf"

    def test_parent_shared_across_families_is_exported_once(self, dugsi_family):
        DugsiFamilyService().register_dugsi_family(
            parents=[{"name": "Amina Hassan", "email": "amina@example.com"}],
            children=[{"name": "Zakariye Hassan"}],
        )
        export = VCardExportService().export_dugsi_parents(today=TODAY)
        assert export["exported"] == 2
        assert export["skipped"] == 1
