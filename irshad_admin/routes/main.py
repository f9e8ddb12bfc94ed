# irshad_admin/routes/main.py

"""
Health and app-level error handlers
"""

from flask import current_app, jsonify
from sqlalchemy import text

from irshad_admin.models import db
from irshad_admin.utils.action_result import GENERIC_ERROR_MESSAGE, ActionResult


def register_main_routes(app):
    """Register health check and JSON error handlers"""

    @app.route("/health", methods=["GET"])
    def health():
        try:
            db.session.execute(text("SELECT 1"))
            return jsonify({"status": "ok", "database": "ok"}), 200
        except Exception as e:
            current_app.logger.error(f"Health check failed: {str(e)}", exc_info=True)
            return jsonify({"status": "error", "database": "unavailable"}), 503

    @app.errorhandler(404)
    def not_found_error(error):
        return ActionResult.fail("Not found", status_code=404).to_response()

    @app.errorhandler(405)
    def method_not_allowed(error):
        return ActionResult.fail("Method not allowed", status_code=405).to_response()

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        current_app.logger.error(f"Internal server error: {error}")
        return ActionResult.fail(GENERIC_ERROR_MESSAGE, status_code=500).to_response()
