# Overview: Flask API routes for stores; parses input and returns JSON responses.

"""
Store management routes.

A store is the tenant boundary: listing shows only the caller's stores and
every /<store_id> route requires ownership (404 unknown, 403 not yours).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_store_owner
from ..errors import LedgerError
from ..services import store_service


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


@stores_bp.get("")
@require_auth
def list_stores_route():
    stores = store_service.list_stores_for_user(g.current_user.id)
    return jsonify({"items": [s.to_dict() for s in stores], "count": len(stores)})


@stores_bp.post("")
@require_auth
def create_store_route():
    data = request.get_json(silent=True) or {}
    try:
        store = store_service.create_store(g.current_user.id, data.get("name"))
        return jsonify({"store": store.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create store")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.get("/<int:store_id>")
@require_auth
@require_store_owner
def get_store_route(store_id: int):
    return jsonify({"store": g.store.to_dict()})


@stores_bp.put("/<int:store_id>")
@require_auth
@require_store_owner
def update_store_route(store_id: int):
    data = request.get_json(silent=True) or {}
    try:
        store = store_service.update_store(store_id, name=data.get("name"))
        return jsonify({"store": store.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update store")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.delete("/<int:store_id>")
@require_auth
@require_store_owner
def delete_store_route(store_id: int):
    try:
        store_service.delete_store(store_id)
        return jsonify({"ok": True})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete store")
        return jsonify({"error": "Internal server error"}), 500
