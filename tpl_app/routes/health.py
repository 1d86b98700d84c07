# tpl_app/routes/health.py
"""
Health check and Prometheus metrics endpoints.
"""

from flask import Response, current_app, jsonify
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from tpl_app.catalog import get_catalog_service, get_store


def register_health_routes(app):
    """Register health and metrics routes"""

    @app.route(app.config.get("HEALTH_CHECK_ENDPOINT", "/health"), methods=["GET"])
    def health_check():
        store = get_store()
        service = get_catalog_service()
        if store is None or store.closed or service is None:
            return jsonify({"status": "degraded", "store": "unavailable"}), 503

        last_sync = current_app.extensions["catalog"].get("last_sync")
        return jsonify(
            {
                "status": "ok",
                "store": store.path,
                "active_machines": service.count_active_machines(),
                "last_sync": last_sync,
            }
        )

    if app.config.get("MONITORING_ENABLED", False):

        @app.route(app.config.get("METRICS_ENDPOINT", "/metrics"), methods=["GET"])
        def metrics():
            return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)
