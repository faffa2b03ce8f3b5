"""
Tests for PDF rendering
"""
from datetime import date
from decimal import Decimal

import pytest
from PIL import Image as PILImage

from kzinvoice.utils.pdf_generator import format_date_ru, format_number_ru, generate_invoice_pdf


@pytest.fixture
def invoice_data(sample_supplier, sample_buyer):
    return {
        "invoice_number": "15",
        "invoice_date": date(2025, 12, 15),
        "contract": "Договор № 3",
        "supplier": sample_supplier,
        "buyer": sample_buyer,
        "items": [
            {"name": "Услуга", "quantity": Decimal("2"), "unit": "час", "price": Decimal("150000"), "total": Decimal("300000")},
        ],
        "total_amount": Decimal("300000"),
        "total_amount_words": "триста тысяч тенге",
    }


@pytest.fixture
def image_path(tmp_path):
    path = tmp_path / "stamp.png"
    PILImage.new("RGB", (40, 40), "blue").save(path)
    return str(path)


class TestFormatting:
    """Tests for number and date helpers"""

    def test_format_number(self):
        assert format_number_ru(Decimal("300250.5")) == "300 250,50"
        assert format_number_ru("abc") == ""

    def test_format_date(self):
        assert format_date_ru(date(2025, 1, 5)) == "05.01.2025"
        assert format_date_ru("2025-12-15") == "15.12.2025"
        assert format_date_ru(None) == ""


class TestGenerateInvoicePdf:
    """Tests for generate_invoice_pdf"""

    def test_returns_pdf_bytes(self, invoice_data):
        assert generate_invoice_pdf(invoice_data).startswith(b"%PDF")

    def test_words_computed_when_missing(self, invoice_data):
        invoice_data["total_amount_words"] = ""
        assert generate_invoice_pdf(invoice_data).startswith(b"%PDF")

    def test_writes_file(self, invoice_data, tmp_path):
        target = tmp_path / "invoice.pdf"
        assert generate_invoice_pdf(invoice_data, output_path=str(target)) == str(target)
        assert target.read_bytes().startswith(b"%PDF")

    def test_with_signature_and_stamp(self, invoice_data, image_path):
        invoice_data["signature"] = {
            "signature_path": image_path,
            "signature_width": 200,
            "signature_height": 70,
            "signature_position": "right",
            "stamp_path": image_path,
            "stamp_size": 100,
            "stamp_position": "left",
        }
        assert generate_invoice_pdf(invoice_data).startswith(b"%PDF")

    def test_missing_images_are_skipped(self, invoice_data, tmp_path):
        invoice_data["signature"] = {
            "signature_path": str(tmp_path / "nope.png"),
            "stamp_path": str(tmp_path / "nope.png"),
        }
        assert generate_invoice_pdf(invoice_data).startswith(b"%PDF")

    def test_markup_characters_in_user_text(self, invoice_data):
        invoice_data["supplier"]["name"] = 'ТОО "A & <B>"'
        invoice_data["supplier"]["bank"] = "Bank </para> &amp"
        invoice_data["buyer"]["address"] = "ул. <Абая> & 5"
        invoice_data["items"][0]["name"] = "Услуга <b>без закрытия"
        invoice_data["items"][0]["unit"] = "<шт>"
        invoice_data["contract"] = "Договор <№ 3> & Ко"
        invoice_data["invoice_number"] = "15<"
        assert generate_invoice_pdf(invoice_data).startswith(b"%PDF")
