from __future__ import annotations

import logging
import time
from pathlib import Path

from flask import Blueprint, current_app, jsonify, request

from kzinvoice.database import db
from kzinvoice.models import ImagePosition, SignatureSettings

logger = logging.getLogger(__name__)

signature_bp = Blueprint("signature", __name__, url_prefix="/api/signature-settings")

SIZE_FIELDS = ["signature_width", "signature_height", "stamp_size"]
PATH_FIELDS = ["signature_path", "stamp_path"]
POSITION_FIELDS = ["signature_position", "stamp_position"]
UPLOAD_KINDS = {"signature": "signature_path", "stamp": "stamp_path"}
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}


def _error(message: str, status_code: int = 400):
    return jsonify({"error": message}), status_code


def _parse_position(value) -> ImagePosition | None:
    if isinstance(value, ImagePosition):
        return value
    value_str = str(value).strip().lower()
    for position in ImagePosition:
        if position.value == value_str:
            return position
    return None


def _parse_size(value) -> int | None:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


@signature_bp.get("/")
def get_signature_settings():
    settings = SignatureSettings.get_singleton()
    if not settings:
        return jsonify({})
    return jsonify(settings.as_dict())


@signature_bp.post("/")
def upsert_signature_settings():
    payload = request.get_json(force=True) or {}

    settings = SignatureSettings.get_singleton()
    if settings is None:
        settings = SignatureSettings()
        db.session.add(settings)

    for key in PATH_FIELDS:
        if key in payload:
            setattr(settings, key, payload.get(key) or None)

    for key in SIZE_FIELDS:
        if key in payload:
            size = _parse_size(payload.get(key))
            if size is None:
                db.session.rollback()
                return _error(f"{key} must be a positive integer.")
            setattr(settings, key, size)

    for key in POSITION_FIELDS:
        if key in payload:
            position = _parse_position(payload.get(key))
            if position is None:
                db.session.rollback()
                return _error(f"Invalid {key}. Allowed: left, center, right.")
            setattr(settings, key, position)

    db.session.commit()
    return jsonify(settings.as_dict())


@signature_bp.post("/upload/<kind>")
def upload_image(kind: str):
    """Store a signature or stamp image under UPLOAD_DIR and remember its path."""
    field = UPLOAD_KINDS.get(kind)
    if field is None:
        return _error("Invalid upload type. Allowed: signature, stamp.")

    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return _error("No file uploaded.")

    # Stored under a generated name; only the extension of the client name is kept.
    extension = Path(upload.filename).suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        return _error("Only PNG and JPEG images are allowed.")

    upload_dir = Path(current_app.config["UPLOAD_DIR"])
    upload_dir.mkdir(parents=True, exist_ok=True)
    target = upload_dir / f"{kind}-{int(time.time() * 1000)}{extension}"
    upload.save(target)

    settings = SignatureSettings.get_singleton()
    if settings is None:
        settings = SignatureSettings()
        db.session.add(settings)
    setattr(settings, field, str(target))
    db.session.commit()

    logger.info("Stored %s image at %s", kind, target)
    return jsonify(settings.as_dict()), 201
