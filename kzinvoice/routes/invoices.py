from __future__ import annotations

import logging
import time
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file
from sqlalchemy.orm import joinedload

from kzinvoice.database import db
from kzinvoice.models import DEFAULT_CONTRACT, Buyer, Invoice, InvoiceItem, InvoiceStatus, SignatureSettings, Supplier
from kzinvoice.routes.parties import build_buyer, build_supplier
from kzinvoice.utils.number_to_words import amount_to_words
from kzinvoice.utils.pdf_generator import generate_invoice_pdf

logger = logging.getLogger(__name__)

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api")


# ------------ helpers ------------
def _error(message: str, status_code: int = 400):
    return jsonify({"error": message}), status_code


def _parse_date(value):
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _parse_status(value) -> InvoiceStatus | None:
    if value is None:
        return None
    if isinstance(value, InvoiceStatus):
        return value
    value_str = str(value).lower()
    for status in InvoiceStatus:
        if status.value == value_str:
            return status
    return None


def _decimal_to_float(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _safe_decimal(value, default: Decimal = Decimal("0")) -> Decimal:
    if value is None:
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def _serialize_item(item: InvoiceItem) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "quantity": _decimal_to_float(item.quantity),
        "unit": item.unit,
        "price": _decimal_to_float(item.price),
        "total": _decimal_to_float(item.total),
        "sort_order": item.sort_order,
    }


def _serialize_invoice_summary(invoice: Invoice) -> dict:
    return {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "invoice_date": invoice.invoice_date.isoformat() if invoice.invoice_date else None,
        "supplier_name": invoice.supplier.name if invoice.supplier else None,
        "buyer_name": invoice.buyer.name if invoice.buyer else None,
        "status": invoice.status.value if invoice.status else None,
        "total_amount": _decimal_to_float(invoice.total_amount),
        "total_amount_words": invoice.total_amount_words,
        "created_at": invoice.created_at.isoformat() if invoice.created_at else None,
    }


def _serialize_invoice_full(invoice: Invoice) -> dict:
    data = _serialize_invoice_summary(invoice)
    data.update(
        {
            "contract": invoice.contract,
            "supplier": invoice.supplier.as_dict() if invoice.supplier else None,
            "buyer": invoice.buyer.as_dict() if invoice.buyer else None,
            "items": [_serialize_item(item) for item in sorted(invoice.items, key=lambda i: i.sort_order or 0)],
            "updated_at": invoice.updated_at.isoformat() if invoice.updated_at else None,
        }
    )
    return data


def _resolve_supplier(payload: dict) -> Supplier:
    if isinstance(payload.get("supplier"), dict):
        supplier = build_supplier(payload["supplier"])
        db.session.add(supplier)
        return supplier
    supplier = db.session.get(Supplier, payload.get("supplier_id")) if payload.get("supplier_id") else None
    if supplier is None:
        raise LookupError("Supplier not found.")
    return supplier


def _resolve_buyer(payload: dict) -> Buyer:
    if isinstance(payload.get("buyer"), dict):
        buyer = build_buyer(payload["buyer"])
        db.session.add(buyer)
        return buyer
    buyer = db.session.get(Buyer, payload.get("buyer_id")) if payload.get("buyer_id") else None
    if buyer is None:
        raise LookupError("Buyer not found.")
    return buyer


def _append_item(invoice: Invoice, item: dict, sort_order: int) -> InvoiceItem:
    name = item.get("name")
    if not name:
        raise ValueError("Item name is required.")
    quantity = _safe_decimal(item.get("quantity"), Decimal("1"))
    price = _safe_decimal(item.get("price"), Decimal("0"))
    if not (quantity.is_finite() and price.is_finite()):
        raise ValueError("Quantity and price must be finite numbers.")
    if quantity < 0 or price < 0:
        raise ValueError("Quantity and price must be non-negative.")
    return invoice.add_item(
        name=name,
        quantity=quantity,
        unit=item.get("unit") or "шт",
        price=price,
        sort_order=sort_order,
    )


def _hydrate_items(invoice: Invoice, items_payload: list[dict]):
    if not isinstance(items_payload, list):
        raise ValueError("Items must be a list.")
    for idx, item in enumerate(items_payload):
        _append_item(invoice, item, idx)


def _invoice_to_pdf_payload(invoice: Invoice) -> dict:
    signature = SignatureSettings.get_singleton()
    items = [
        {
            "name": item.name,
            "quantity": item.quantity,
            "unit": item.unit,
            "price": item.price,
            "total": item.total,
        }
        for item in invoice.items
    ]
    return {
        "invoice_number": invoice.invoice_number,
        "invoice_date": invoice.invoice_date,
        "contract": invoice.contract,
        "supplier": invoice.supplier.as_dict() if invoice.supplier else {},
        "buyer": invoice.buyer.as_dict() if invoice.buyer else {},
        "items": items,
        "total_amount": invoice.total_amount,
        "total_amount_words": invoice.total_amount_words or amount_to_words(invoice.total_amount or 0),
        "signature": signature.as_dict() if signature else None,
    }


# ------------ routes ------------
@invoices_bp.get("/amount-in-words")
def amount_in_words():
    raw = request.args.get("amount")
    if raw is None:
        return _error("Missing required parameter: amount.")
    try:
        words = amount_to_words(raw.replace(",", "."))
    except ValueError as exc:
        return _error(str(exc))
    return jsonify({"amount": raw, "words": words})


@invoices_bp.get("/invoices/")
def list_invoices():
    invoices = (
        Invoice.query.options(joinedload(Invoice.supplier), joinedload(Invoice.buyer))
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .all()
    )
    return jsonify([_serialize_invoice_summary(inv) for inv in invoices])


@invoices_bp.get("/invoices/<int:invoice_id>")
def get_invoice(invoice_id: int):
    invoice = db.get_or_404(Invoice, invoice_id)
    return jsonify(_serialize_invoice_full(invoice))


@invoices_bp.post("/invoices/")
def create_invoice():
    payload = request.get_json(force=True) or {}
    if not payload.get("invoice_number"):
        return _error("Missing required fields: invoice_number.")

    invoice_date_raw = payload.get("invoice_date")
    invoice_date = _parse_date(invoice_date_raw)
    if invoice_date_raw and invoice_date is None:
        return _error("Invalid invoice_date. Use ISO format (YYYY-MM-DD).")

    status_param = payload.get("status")
    status = _parse_status(status_param) if status_param else InvoiceStatus.DRAFT
    if status_param and status is None:
        return _error("Invalid status. Allowed: draft, sent, paid.")

    try:
        invoice = Invoice(
            invoice_number=str(payload["invoice_number"]),
            invoice_date=invoice_date or date.today(),
            contract=payload.get("contract") or DEFAULT_CONTRACT,
            status=status,
            supplier=_resolve_supplier(payload),
            buyer=_resolve_buyer(payload),
        )
        db.session.add(invoice)
        _hydrate_items(invoice, payload.get("items") or [])
        invoice.recalculate_totals()
        db.session.commit()
    except LookupError as exc:
        db.session.rollback()
        return _error(str(exc), 404)
    except ValueError as exc:
        db.session.rollback()
        return _error(str(exc))
    except Exception:
        db.session.rollback()
        raise

    logger.info("Created invoice %s (%s)", invoice.invoice_number, invoice.total_amount_words)
    return jsonify(_serialize_invoice_full(invoice)), 201


@invoices_bp.post("/invoices/<int:invoice_id>/items")
def add_invoice_item(invoice_id: int):
    invoice = db.get_or_404(Invoice, invoice_id)
    payload = request.get_json(force=True) or {}
    try:
        item = _append_item(invoice, payload, len(invoice.items))
        invoice.recalculate_totals()
        db.session.commit()
    except ValueError as exc:
        db.session.rollback()
        return _error(str(exc))
    except Exception:
        db.session.rollback()
        raise

    return jsonify(_serialize_item(item)), 201


@invoices_bp.delete("/invoice-items/<int:item_id>")
def delete_invoice_item(item_id: int):
    item = db.get_or_404(InvoiceItem, item_id)
    invoice = item.invoice
    try:
        invoice.items.remove(item)
        invoice.recalculate_totals()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify({"deleted": True, "id": item_id})


@invoices_bp.post("/invoices/<int:invoice_id>/copy")
def copy_invoice(invoice_id: int):
    original = db.get_or_404(Invoice, invoice_id)

    duplicate = Invoice(
        invoice_number=f"{original.invoice_number}-копия-{int(time.time() * 1000)}",
        invoice_date=original.invoice_date,
        contract=original.contract,
        status=InvoiceStatus.DRAFT,
        supplier=original.supplier,
        buyer=original.buyer,
    )
    for item in original.items:
        duplicate.add_item(
            name=item.name,
            quantity=item.quantity,
            unit=item.unit,
            price=item.price,
            sort_order=item.sort_order,
        )
    duplicate.recalculate_totals()

    db.session.add(duplicate)
    db.session.commit()
    logger.info("Copied invoice %s to %s", original.invoice_number, duplicate.invoice_number)
    return jsonify(_serialize_invoice_full(duplicate)), 201


@invoices_bp.get("/invoices/<int:invoice_id>/pdf")
def invoice_pdf(invoice_id: int):
    invoice = db.get_or_404(Invoice, invoice_id)
    pdf_bytes = generate_invoice_pdf(
        _invoice_to_pdf_payload(invoice),
        font_path=current_app.config.get("PDF_FONT_PATH"),
    )
    logger.info("Rendered PDF for invoice %s (%d bytes)", invoice.invoice_number, len(pdf_bytes))
    return send_file(
        BytesIO(pdf_bytes),
        mimetype="application/pdf",
        download_name=f"invoice-{invoice.id}.pdf",
    )
