# Overview: Flask API route for the sales dashboard.

from flask import Blueprint, jsonify, current_app

from ..services import dashboard_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
def dashboard():
    try:
        data = dashboard_service.build_dashboard()
    except Exception:
        current_app.logger.exception("Failed to build dashboard")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(data)
