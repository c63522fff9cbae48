# Overview: Flask API routes for sold records; parses input and returns JSON responses.

"""
Sold record routes (record / edit / delete a day's sales of a product).

Every mutation answers with the sold record and the product as they stand
after the ledger replay, so the caller never has to refetch aggregates.
"""
from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_store_owner
from ..errors import LedgerError, ValidationError
from ..models import SoldRecord
from ..services import sold_service
from ..time_utils import parse_iso_date
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_sold

SOLD_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "category_id", "total_sold_out", "sold_on"},
    required_on_create={"product_id", "total_sold_out", "sold_on"},
)

SOLD_EDIT_POLICY = ModelValidationPolicy(
    writable_fields={"category_id", "total_sold_out", "sold_on"},
)

solds_bp = Blueprint("solds", __name__, url_prefix="/api/stores/<int:store_id>/solds")


def _date_arg(name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")


@solds_bp.get("")
@require_auth
@require_store_owner
def list_solds_route(store_id: int):
    """
    Query params:
    - product_id: int (optional)
    - start / end: inclusive ISO dates (optional)
    - page / per_page: pagination (optional)
    """
    try:
        result = sold_service.list_sales(
            store_id,
            product_id=request.args.get("product_id", type=int),
            start=_date_arg("start"),
            end=_date_arg("end"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@solds_bp.post("")
@require_auth
@require_store_owner
def record_sold_route(store_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=SoldRecord, payload=payload, policy=SOLD_CREATE_POLICY, partial=False)
        enforce_rules_sold(patch)
        sold = sold_service.record_sale(
            store_id,
            patch["product_id"],
            total_sold_out=patch["total_sold_out"],
            sold_on=patch["sold_on"],
            category_id=patch.get("category_id"),
        )
        return jsonify({"sold": sold.to_dict(), "product": sold.product.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@solds_bp.get("/<int:sold_id>")
@require_auth
@require_store_owner
def get_sold_route(store_id: int, sold_id: int):
    try:
        sold = sold_service.get_sale(store_id, sold_id)
        return jsonify({"sold": sold.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@solds_bp.put("/<int:sold_id>")
@require_auth
@require_store_owner
def edit_sold_route(store_id: int, sold_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=SoldRecord, payload=payload, policy=SOLD_EDIT_POLICY, partial=True)
        enforce_rules_sold(patch)
        sold = sold_service.edit_sale(
            store_id,
            sold_id,
            total_sold_out=patch.get("total_sold_out"),
            category_id=patch.get("category_id"),
            sold_on=patch.get("sold_on"),
        )
        return jsonify({"sold": sold.to_dict(), "product": sold.product.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to edit sale")
        return jsonify({"error": "Internal server error"}), 500


@solds_bp.delete("/<int:sold_id>")
@require_auth
@require_store_owner
def delete_sold_route(store_id: int, sold_id: int):
    try:
        product = sold_service.delete_sale(store_id, sold_id)
        return jsonify({"ok": True, "sold_id": sold_id, "product": product.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500
