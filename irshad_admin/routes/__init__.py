# irshad_admin/routes/__init__.py
"""
Application routes package
"""

from .attendance import register_attendance_routes
from .billing import register_billing_routes
from .dugsi import register_dugsi_routes
from .enrollment import register_enrollment_routes
from .export import register_export_routes
from .mahad import register_mahad_routes
from .main import register_main_routes
from .siblings import register_sibling_routes
from .teachers import register_teacher_routes
from .whatsapp import register_whatsapp_routes


def init_routes(app):
    """Initialize all application routes"""
    register_main_routes(app)
    register_mahad_routes(app)
    register_dugsi_routes(app)
    register_enrollment_routes(app)
    register_sibling_routes(app)
    register_billing_routes(app)
    register_whatsapp_routes(app)
    register_teacher_routes(app)
    register_attendance_routes(app)
    register_export_routes(app)
