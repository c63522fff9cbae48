# Overview: Flask API routes for the administrator overview.

from flask import Blueprint, jsonify

from ..decorators import require_auth, require_admin
from ..services import reporting_service


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/overview")
@require_auth
@require_admin
def overview_route():
    """Every store with its owner and totals."""
    stores = reporting_service.admin_overview()
    return jsonify({"items": stores, "count": len(stores)})
