# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product management routes, scoped to one owned store.

Derived fields (remain/sold out/income/profit) are never writable here;
they come back recalculated on every response.
"""
from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_store_owner
from ..errors import LedgerError
from ..models import Product
from ..services import products_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_product

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "category_id",
        "price_cents",
        "capital_cents",
        "quantity",
        "tax_bps",
        "created_at",
    },
    required_on_create={"name", "category_id", "price_cents", "quantity"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/stores/<int:store_id>/products")


def _arg_flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in {"1", "true", "yes", "on"}


@products_bp.get("")
@require_auth
@require_store_owner
def list_products_route(store_id: int):
    """
    List products of the store.

    Query params:
    - category_id: int (optional)
    - in_stock: bool (optional) - only products with remain_quantity > 0
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    result = products_service.list_products(
        store_id,
        category_id=request.args.get("category_id", type=int),
        in_stock_only=_arg_flag("in_stock"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return jsonify(result)


@products_bp.post("")
@require_auth
@require_store_owner
def create_product_route(store_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        product = products_service.create_product(store_id, patch=patch)
        return jsonify({"product": product.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_auth
@require_store_owner
def get_product_route(store_id: int, product_id: int):
    try:
        product = products_service.get_product(store_id, product_id)
        return jsonify({"product": product.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.put("/<int:product_id>")
@require_auth
@require_store_owner
def update_product_route(store_id: int, product_id: int):
    """
    Edit product statics. Any change to price, capital, tax or quantity
    replays the sold ledger before the response is built.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        product = products_service.update_product(store_id, product_id, patch=patch)
        return jsonify({"product": product.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_store_owner
def delete_product_route(store_id: int, product_id: int):
    try:
        products_service.delete_product(store_id, product_id)
        return jsonify({"ok": True})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/recalculate")
@require_auth
@require_store_owner
def recalculate_product_route(store_id: int, product_id: int):
    try:
        product = products_service.recalculate_product(product_id, store_id=store_id)
        return jsonify({"product": product.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to recalculate product")
        return jsonify({"error": "Internal server error"}), 500
