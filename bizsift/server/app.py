"""HTTP endpoint exposing single-business website lookups."""

import logging
from typing import Any, Dict

from flask import Flask, jsonify, request

from bizsift.enrichment.handler import EnrichmentHandler


logger = logging.getLogger(__name__)


def create_app(handler: EnrichmentHandler) -> Flask:
    """
    Build the enrichment service around ``handler``.

    Routes:
        GET  /healthz     liveness probe
        POST /api/enrich  ``{company_name, location, company_type?}`` ->
                          ``{websiteUrl, confidence}``
    """
    app = Flask(__name__)

    @app.get("/healthz")
    def healthcheck() -> Any:
        return jsonify({"status": "ok"}), 200

    @app.post("/api/enrich")
    def enrich() -> Any:
        payload: Dict[str, Any] = request.get_json(silent=True) or {}

        company_name = str(payload.get("company_name") or "").strip()
        location = str(payload.get("location") or "").strip()
        if not company_name or not location:
            return jsonify({"error": "Missing company_name or location"}), 400

        company_type = payload.get("company_type") or None

        try:
            result = handler.lookup(company_name, location, company_type)
        except Exception:
            logger.exception(f"[Error] Failed to search for {company_name}")
            return jsonify({"error": "Failed to fetch data"}), 500

        if result.error:
            return jsonify({"error": result.error}), 502

        return jsonify({"websiteUrl": result.url, "confidence": result.confidence}), 200

    return app
