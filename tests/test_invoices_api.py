"""
Tests for the HTTP API
"""
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image as PILImage

from kzinvoice.models import Invoice


def _create_invoice(client, payload):
    response = client.post("/api/invoices/", json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


class TestAmountInWordsEndpoint:
    """Tests for the live preview endpoint"""

    def test_words_for_amount(self, client):
        response = client.get("/api/amount-in-words?amount=2000")
        assert response.status_code == 200
        assert response.get_json()["words"] == "две тысячи тенге"

    def test_comma_decimal_separator(self, client):
        response = client.get("/api/amount-in-words?amount=150,5")
        assert response.get_json()["words"] == "сто пятьдесят тенге 50 тиын"

    def test_huge_amount(self, client):
        response = client.get("/api/amount-in-words?amount=1e30")
        assert response.status_code == 200
        assert response.get_json()["words"].endswith("тенге")

    @pytest.mark.parametrize("query", ["", "?amount=abc", "?amount=nan", "?amount=1e400"])
    def test_invalid_amount(self, client, query):
        response = client.get(f"/api/amount-in-words{query}")
        assert response.status_code == 400
        assert "error" in response.get_json()


class TestInvoices:
    """Tests for invoice creation and editing"""

    def test_create_invoice_stores_total_in_words(self, client, sample_invoice):
        invoice = _create_invoice(client, sample_invoice)
        assert invoice["total_amount"] == 300250.5
        assert invoice["total_amount_words"] == "триста тысяч двести пятьдесят тенге 50 тиын"
        assert invoice["contract"] == "Без договора"
        assert invoice["status"] == "draft"
        assert [item["total"] for item in invoice["items"]] == [300000.0, 250.5]

    def test_create_invoice_with_existing_parties(self, client, sample_supplier, sample_buyer):
        supplier = client.post("/api/suppliers", json=sample_supplier).get_json()
        buyer = client.post("/api/buyers", json=sample_buyer).get_json()
        invoice = _create_invoice(
            client,
            {
                "invoice_number": "7",
                "supplier_id": supplier["id"],
                "buyer_id": buyer["id"],
                "items": [{"name": "Аренда", "quantity": 1, "price": 1000}],
            },
        )
        assert invoice["supplier"]["id"] == supplier["id"]
        assert invoice["total_amount_words"] == "одна тысяча тенге"

    def test_empty_invoice_is_zero(self, client, sample_invoice):
        sample_invoice["items"] = []
        invoice = _create_invoice(client, sample_invoice)
        assert invoice["total_amount_words"] == "ноль тенге"

    def test_missing_number(self, client, sample_invoice):
        del sample_invoice["invoice_number"]
        response = client.post("/api/invoices/", json=sample_invoice)
        assert response.status_code == 400

    def test_unknown_supplier(self, client, sample_buyer):
        response = client.post(
            "/api/invoices/",
            json={"invoice_number": "1", "supplier_id": 999, "buyer": sample_buyer},
        )
        assert response.status_code == 404

    def test_item_without_name_rolls_back(self, client, sample_invoice):
        sample_invoice["items"] = [{"quantity": 1, "price": 10}]
        response = client.post("/api/invoices/", json=sample_invoice)
        assert response.status_code == 400
        assert client.get("/api/invoices/").get_json() == []
        assert client.get("/api/suppliers").get_json() == []

    def test_negative_price_rejected(self, client, sample_invoice):
        sample_invoice["items"] = [{"name": "Скидка", "quantity": 1, "price": -5}]
        response = client.post("/api/invoices/", json=sample_invoice)
        assert response.status_code == 400

    @pytest.mark.parametrize("field, value", [("quantity", "NaN"), ("quantity", "Infinity"), ("price", "-Infinity")])
    def test_non_finite_item_values_rejected(self, client, sample_invoice, field, value):
        item = {"name": "Услуга", "quantity": 1, "price": 100}
        item[field] = value
        sample_invoice["items"] = [item]
        response = client.post("/api/invoices/", json=sample_invoice)
        assert response.status_code == 400
        assert "finite" in response.get_json()["error"]
        assert client.get("/api/invoices/").get_json() == []

    def test_add_non_finite_item_rejected(self, client, sample_invoice):
        invoice = _create_invoice(client, sample_invoice)
        response = client.post(
            f"/api/invoices/{invoice['id']}/items",
            json={"name": "Доставка", "quantity": "NaN", "price": 10},
        )
        assert response.status_code == 400
        refreshed = client.get(f"/api/invoices/{invoice['id']}").get_json()
        assert len(refreshed["items"]) == 2

    def test_add_and_delete_item_refreshes_words(self, client, sample_invoice):
        sample_invoice["items"] = [{"name": "Услуга", "quantity": 1, "price": 1000}]
        invoice = _create_invoice(client, sample_invoice)

        response = client.post(
            f"/api/invoices/{invoice['id']}/items",
            json={"name": "Доставка", "quantity": 1, "price": 1000},
        )
        assert response.status_code == 201
        item_id = response.get_json()["id"]
        refreshed = client.get(f"/api/invoices/{invoice['id']}").get_json()
        assert refreshed["total_amount_words"] == "две тысячи тенге"

        response = client.delete(f"/api/invoice-items/{item_id}")
        assert response.status_code == 200
        refreshed = client.get(f"/api/invoices/{invoice['id']}").get_json()
        assert refreshed["total_amount_words"] == "одна тысяча тенге"
        assert len(refreshed["items"]) == 1

    def test_failed_delete_rolls_back(self, client, sample_invoice, monkeypatch):
        invoice = _create_invoice(client, sample_invoice)
        item_id = invoice["items"][0]["id"]

        def broken_recalculate(self):
            raise RuntimeError("recalculation failed")

        monkeypatch.setattr(Invoice, "recalculate_totals", broken_recalculate)
        with pytest.raises(RuntimeError):
            client.delete(f"/api/invoice-items/{item_id}")
        monkeypatch.undo()

        refreshed = client.get(f"/api/invoices/{invoice['id']}").get_json()
        assert len(refreshed["items"]) == 2
        assert refreshed["total_amount_words"] == invoice["total_amount_words"]

    def test_copy_invoice(self, client, sample_invoice):
        invoice = _create_invoice(client, sample_invoice)
        response = client.post(f"/api/invoices/{invoice['id']}/copy")
        assert response.status_code == 201
        copy = response.get_json()
        assert copy["id"] != invoice["id"]
        assert copy["invoice_number"].startswith("15-копия-")
        assert copy["total_amount_words"] == invoice["total_amount_words"]
        assert len(copy["items"]) == 2
        assert len(client.get("/api/invoices/").get_json()) == 2

    def test_get_missing_invoice(self, client):
        assert client.get("/api/invoices/42").status_code == 404

    def test_pdf(self, client, sample_invoice):
        invoice = _create_invoice(client, sample_invoice)
        response = client.get(f"/api/invoices/{invoice['id']}/pdf")
        assert response.status_code == 200
        assert response.mimetype == "application/pdf"
        assert response.data.startswith(b"%PDF")


class TestParties:
    """Tests for suppliers and buyers"""

    def test_supplier_requires_bank_details(self, client, sample_supplier):
        del sample_supplier["iik"]
        response = client.post("/api/suppliers", json=sample_supplier)
        assert response.status_code == 400
        assert "iik" in response.get_json()["error"]

    def test_update_supplier(self, client, sample_supplier):
        supplier = client.post("/api/suppliers", json=sample_supplier).get_json()
        response = client.put(f"/api/suppliers/{supplier['id']}", json={"bank": 'АО "Halyk Bank"'})
        assert response.status_code == 200
        assert response.get_json()["bank"] == 'АО "Halyk Bank"'

    def test_update_supplier_rejects_empty_required(self, client, sample_supplier):
        supplier = client.post("/api/suppliers", json=sample_supplier).get_json()
        response = client.put(f"/api/suppliers/{supplier['id']}", json={"name": ""})
        assert response.status_code == 400

    def test_list_buyers(self, client, sample_buyer):
        client.post("/api/buyers", json=sample_buyer)
        buyers = client.get("/api/buyers").get_json()
        assert [buyer["name"] for buyer in buyers] == [sample_buyer["name"]]


class TestSignatureSettings:
    """Tests for signature and stamp placement settings"""

    def test_empty_by_default(self, client):
        assert client.get("/api/signature-settings/").get_json() == {}

    def test_upsert_keeps_single_row(self, client):
        client.post("/api/signature-settings/", json={"signature_position": "center"})
        response = client.post("/api/signature-settings/", json={"stamp_size": 120})
        settings = response.get_json()
        assert settings["signature_position"] == "center"
        assert settings["stamp_size"] == 120
        assert settings["stamp_position"] == "left"
        assert settings["signature_width"] == 200

    def test_invalid_position(self, client):
        response = client.post("/api/signature-settings/", json={"stamp_position": "top"})
        assert response.status_code == 400

    def test_invalid_size(self, client):
        response = client.post("/api/signature-settings/", json={"signature_width": 0})
        assert response.status_code == 400


class TestImageUpload:
    """Tests for signature and stamp uploads"""

    @staticmethod
    def _png_bytes():
        buffer = BytesIO()
        PILImage.new("RGB", (40, 20), "blue").save(buffer, format="PNG")
        buffer.seek(0)
        return buffer

    def test_upload_stores_file_and_path(self, client, app):
        response = client.post(
            "/api/signature-settings/upload/stamp",
            data={"file": (self._png_bytes(), "../../печать.png")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 201
        stored = Path(response.get_json()["stamp_path"])
        assert stored.is_file()
        assert stored.parent == Path(app.config["UPLOAD_DIR"])
        assert stored.name.startswith("stamp-")
        assert client.get("/api/signature-settings/").get_json()["stamp_path"] == str(stored)

    def test_uploaded_images_render_in_pdf(self, client, sample_invoice):
        for kind in ("signature", "stamp"):
            client.post(
                f"/api/signature-settings/upload/{kind}",
                data={"file": (self._png_bytes(), f"{kind}.png")},
                content_type="multipart/form-data",
            )
        invoice = _create_invoice(client, sample_invoice)
        response = client.get(f"/api/invoices/{invoice['id']}/pdf")
        assert response.status_code == 200
        assert response.data.startswith(b"%PDF")

    def test_unknown_kind(self, client):
        response = client.post(
            "/api/signature-settings/upload/logo",
            data={"file": (self._png_bytes(), "logo.png")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400

    def test_rejects_non_image_extension(self, client):
        response = client.post(
            "/api/signature-settings/upload/signature",
            data={"file": (BytesIO(b"#!/bin/sh"), "run.sh")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400

    def test_missing_file(self, client):
        response = client.post(
            "/api/signature-settings/upload/signature",
            data={},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400
