# irshad_admin/routes/export.py

"""
Contact export endpoints
"""

from flask import Response, request

from irshad_admin.services.vcard_service import VCardExportService
from irshad_admin.utils.action_result import ActionResult, handle_action_error


def _vcard_response(export):
    if request.args.get("format") == "json":
        return ActionResult.ok(export).to_response()
    response = Response(export["content"], mimetype="text/vcard")
    response.headers["Content-Disposition"] = f'attachment; filename="{export["filename"]}"'
    response.headers["X-Exported-Count"] = str(export["exported"])
    response.headers["X-Skipped-Count"] = str(export["skipped"])
    return response


def register_export_routes(app):
    """Register export routes"""

    @app.route("/api/mahad/export/vcard", methods=["GET"])
    def export_mahad_vcard():
        try:
            export = VCardExportService().export_mahad_students(request.args.get("batch_id", type=int))
            return _vcard_response(export)
        except Exception as e:
            return handle_action_error(e, "exporting Mahad contacts").to_response()

    @app.route("/api/dugsi/export/vcard", methods=["GET"])
    def export_dugsi_vcard():
        try:
            return _vcard_response(VCardExportService().export_dugsi_parents())
        except Exception as e:
            return handle_action_error(e, "exporting Dugsi contacts").to_response()
