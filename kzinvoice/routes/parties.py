from __future__ import annotations

from flask import Blueprint, jsonify, request

from kzinvoice.database import db
from kzinvoice.models import Buyer, Supplier

parties_bp = Blueprint("parties", __name__, url_prefix="/api")

SUPPLIER_REQUIRED = ["name", "bin", "address", "bank", "bik", "iik"]
SUPPLIER_FIELDS = SUPPLIER_REQUIRED + ["kbe", "payment_code"]
BUYER_REQUIRED = ["name", "bin", "address"]


# ------------- helpers -------------
def _error(message: str, status_code: int = 400):
    return jsonify({"error": message}), status_code


def _validate_required(payload: dict, keys: list[str]) -> list[str]:
    return [key for key in keys if not payload.get(key)]


def build_supplier(payload: dict) -> Supplier:
    """Create an unsaved supplier from a payload, raising ValueError on missing fields."""
    missing = _validate_required(payload, SUPPLIER_REQUIRED)
    if missing:
        raise ValueError(f"Missing supplier fields: {', '.join(missing)}.")
    return Supplier(**{key: payload.get(key) for key in SUPPLIER_FIELDS})


def build_buyer(payload: dict) -> Buyer:
    """Create an unsaved buyer from a payload, raising ValueError on missing fields."""
    missing = _validate_required(payload, BUYER_REQUIRED)
    if missing:
        raise ValueError(f"Missing buyer fields: {', '.join(missing)}.")
    return Buyer(**{key: payload.get(key) for key in BUYER_REQUIRED})


# ------------- suppliers -------------
@parties_bp.get("/suppliers")
def list_suppliers():
    suppliers = Supplier.query.order_by(Supplier.name.asc()).all()
    return jsonify([supplier.as_dict() for supplier in suppliers])


@parties_bp.post("/suppliers")
def create_supplier():
    payload = request.get_json(force=True) or {}
    try:
        supplier = build_supplier(payload)
    except ValueError as exc:
        return _error(str(exc))

    db.session.add(supplier)
    db.session.commit()
    return jsonify(supplier.as_dict()), 201


@parties_bp.put("/suppliers/<int:supplier_id>")
def update_supplier(supplier_id: int):
    supplier = db.get_or_404(Supplier, supplier_id)
    payload = request.get_json(force=True) or {}

    for key in SUPPLIER_FIELDS:
        if key not in payload:
            continue
        if key in SUPPLIER_REQUIRED and not payload.get(key):
            return _error(f"{key} cannot be empty.")
        setattr(supplier, key, payload.get(key))

    db.session.commit()
    return jsonify(supplier.as_dict())


# ------------- buyers -------------
@parties_bp.get("/buyers")
def list_buyers():
    buyers = Buyer.query.order_by(Buyer.name.asc()).all()
    return jsonify([buyer.as_dict() for buyer in buyers])


@parties_bp.post("/buyers")
def create_buyer():
    payload = request.get_json(force=True) or {}
    try:
        buyer = build_buyer(payload)
    except ValueError as exc:
        return _error(str(exc))

    db.session.add(buyer)
    db.session.commit()
    return jsonify(buyer.as_dict()), 201
