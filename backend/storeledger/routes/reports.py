# Overview: Flask API routes for store reports; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_store_owner
from ..errors import LedgerError
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/stores/<int:store_id>/reports")


@reports_bp.get("/summary")
@require_auth
@require_store_owner
def summary_route(store_id: int):
    try:
        return jsonify(reporting_service.store_summary(store_id))
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@reports_bp.get("/products")
@require_auth
@require_store_owner
def products_route(store_id: int):
    items = reporting_service.product_performance(store_id)
    return jsonify({"items": items, "count": len(items)})


@reports_bp.get("/sales")
@require_auth
@require_store_owner
def sales_route(store_id: int):
    """
    Query params:
    - group_by: day | week | month (default day)
    - start / end: inclusive ISO dates (optional)
    """
    try:
        report = reporting_service.sales_timeseries(
            store_id,
            group_by=request.args.get("group_by", "day"),
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
        return jsonify(report)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
