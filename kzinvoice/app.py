from __future__ import annotations

from typing import Mapping

from flask import Flask, jsonify
from flask_cors import CORS

from kzinvoice.config import get_settings
from kzinvoice.database import init_db
from kzinvoice.logging_config import setup_logger
from kzinvoice.routes.invoices import invoices_bp
from kzinvoice.routes.parties import parties_bp
from kzinvoice.routes.signature import signature_bp


def create_app(overrides: Mapping | None = None) -> Flask:
    app = Flask(__name__)

    app.config.update(get_settings().to_flask_config())
    if overrides:
        app.config.update(overrides)

    setup_logger("kzinvoice", app.config["LOG_LEVEL"])

    init_db(app)
    CORS(app)

    app.register_blueprint(parties_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(signature_bp)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
