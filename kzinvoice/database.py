from __future__ import annotations

from pathlib import Path

from flask import Flask
from flask_sqlalchemy import SQLAlchemy

# Single shared SQLAlchemy instance for the app.
db = SQLAlchemy()


def init_db(app: Flask, *, create_all: bool = True) -> SQLAlchemy:
    """Initialize the SQLAlchemy extension and optionally create tables."""
    uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if uri.startswith("sqlite:///") and ":memory:" not in uri:
        Path(uri.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)
    db.init_app(app)
    if create_all:
        with app.app_context():
            db.create_all()
    return db

