# tpl_app/routes/api.py
"""
JSON API consumed by the league front end.
"""

from flask import current_app, jsonify

from tpl_app.catalog import get_catalog_service


def _image_options():
    return {
        "base_url": current_app.config["OPDB_IMAGE_BASE_URL"],
        "placeholder_url": current_app.config["MACHINE_PLACEHOLDER_IMAGE_URL"],
    }


def _store_unavailable():
    current_app.logger.warning("Catalog API called before the store was attached")
    return jsonify({"error": "Machine catalog is not available"}), 503


def register_api_routes(app):
    """Register API routes"""

    @app.route("/api/machines/active", methods=["GET"])
    def api_active_machines():
        """
        Active machines sorted by name, each with its feature string and
        backglass image URL.
        """
        service = get_catalog_service()
        if service is None:
            return _store_unavailable()

        image_options = _image_options()
        results = []
        for machine in sorted(service.get_all_active_machines(), key=lambda m: m.name):
            payload = machine.to_dict(**image_options)
            payload["features"] = service.get_features(machine.features_id) if machine.features_id is not None else ""
            results.append(payload)

        current_app.logger.debug(f"Returning {len(results)} active machines")
        return jsonify({"machines": results, "count": len(results)})

    @app.route("/api/features/<int:feature_set_id>", methods=["GET"])
    def api_features(feature_set_id):
        service = get_catalog_service()
        if service is None:
            return _store_unavailable()

        features = service.get_features(feature_set_id)
        if not features:
            return jsonify({"error": f"Feature set {feature_set_id} not found"}), 404
        return jsonify({"id": feature_set_id, "features": features, "tags": features.split(",")})
