#!/usr/bin/env python3
"""
SME Carbon Metrics: JSON API
=============================
Flask app that runs the engine on a posted batch and returns the report:
- GET  /api/health    engine configuration summary
- POST /api/metrics   body: [transactions] or {"transactions": [...]}

Usage:
    python3 web/app.py
    Then POST to http://localhost:5001/api/metrics
"""
from flask import Flask, jsonify, request

from carbon.config import load_config
from carbon.engine import CarbonEngine
from carbon.errors import CarbonEngineError, ConfigurationError

app = Flask(__name__)


def get_engine() -> CarbonEngine:
    """Build the engine from the environment on first use, then reuse it."""
    engine = app.config.get("CARBON_ENGINE")
    if engine is None:
        engine = CarbonEngine(load_config())
        app.config["CARBON_ENGINE"] = engine
    return engine


@app.errorhandler(ConfigurationError)
def handle_configuration_error(e):
    return jsonify({"error": "configuration", "message": str(e)}), 500


@app.errorhandler(CarbonEngineError)
def handle_engine_error(e):
    return jsonify({"error": "engine", "message": str(e)}), 400


# ─── Routes ───

@app.route("/api/health")
def api_health():
    config = get_engine().config
    return jsonify({
        "status": "ok",
        "baselineTonnes": float(config.baseline_tonnes),
        "refundPolicy": config.refund_policy.value,
        "financingThreshold": config.financing_threshold,
    })


@app.route("/api/metrics", methods=["POST"])
def api_metrics():
    """Calculate a MetricsReport for the posted batch."""
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        payload = payload.get("transactions")
    if not isinstance(payload, list):
        return jsonify({
            "error": "bad_request",
            "message": "Body must be a JSON list of transactions or {\"transactions\": [...]}",
        }), 400

    report = get_engine().calculate(payload)
    return jsonify(report.to_dict())


if __name__ == "__main__":
    print("\n  SME Carbon Metrics API")
    print("  Open: http://localhost:5001/api/health\n")
    app.run(debug=True, port=5001)
