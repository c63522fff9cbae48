# Overview: Flask API routes for categories; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_store_owner
from ..errors import LedgerError
from ..services import category_service


categories_bp = Blueprint("categories", __name__, url_prefix="/api/stores/<int:store_id>/categories")


@categories_bp.get("")
@require_auth
@require_store_owner
def list_categories_route(store_id: int):
    categories = category_service.list_categories(store_id)
    return jsonify({"items": [c.to_dict() for c in categories], "count": len(categories)})


@categories_bp.post("")
@require_auth
@require_store_owner
def create_category_route(store_id: int):
    data = request.get_json(silent=True) or {}
    try:
        category = category_service.create_category(store_id, data.get("name"))
        return jsonify({"category": category.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.get("/<int:category_id>")
@require_auth
@require_store_owner
def get_category_route(store_id: int, category_id: int):
    try:
        category = category_service.get_category(store_id, category_id)
        return jsonify({"category": category.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@categories_bp.put("/<int:category_id>")
@require_auth
@require_store_owner
def update_category_route(store_id: int, category_id: int):
    data = request.get_json(silent=True) or {}
    try:
        category = category_service.update_category(store_id, category_id, name=data.get("name"))
        return jsonify({"category": category.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_store_owner
def delete_category_route(store_id: int, category_id: int):
    try:
        category_service.delete_category(store_id, category_id)
        return jsonify({"ok": True})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return jsonify({"error": "Internal server error"}), 500
