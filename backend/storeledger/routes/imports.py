# Overview: Flask API routes for bulk imports; parses input and returns JSON responses.

"""
Import Routes

Each endpoint accepts either a JSON body ({"rows": [...]} or a bare list)
or a multipart upload of a CSV, JSON, or Excel (.xlsx) file.
"""

import csv
import io
import json

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_store_owner
from ..errors import LedgerError, ValidationError
from ..services import import_service


imports_bp = Blueprint("imports", __name__, url_prefix="/api/stores/<int:store_id>/imports")


def _rows_from_upload(file) -> list:
    filename = file.filename or ""
    ext = filename.split(".")[-1].lower()

    if ext == "csv":
        stream = io.StringIO(file.stream.read().decode("utf-8-sig"))
        reader = csv.DictReader(stream)
        return [row for row in reader]
    if ext == "json":
        rows = json.load(file.stream)
        if isinstance(rows, dict):
            rows = rows.get("rows", [])
        return rows
    if ext in {"xlsx", "xlsm", "xltx", "xltm"}:
        from openpyxl import load_workbook
        wb = load_workbook(file.stream, data_only=True)
        sheet = wb.active
        data = list(sheet.values)
        if not data:
            return []
        headers = [str(h).strip() if h is not None else "" for h in data[0]]
        return [
            {headers[i]: row[i] for i in range(len(headers))}
            for row in data[1:]
            if any(cell not in (None, "") for cell in row)
        ]
    raise ValidationError("Unsupported file format", details={"filename": filename})


def _request_rows() -> list:
    if "file" in request.files:
        try:
            return _rows_from_upload(request.files["file"])
        except LedgerError:
            raise
        except Exception:
            current_app.logger.exception("Failed to parse upload")
            raise ValidationError("Failed to parse upload")

    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        payload = payload.get("rows")
    if not isinstance(payload, list):
        raise ValidationError("rows must be a list")
    return payload


@imports_bp.post("/solds")
@require_auth
@require_store_owner
def import_solds_route(store_id: int):
    """
    Bulk sale import. Rows duplicating an existing (product, category, day)
    are skipped and reported; any other bad row rejects the whole file.
    """
    try:
        result = import_service.import_sales(store_id, _request_rows())
        return jsonify(result.to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to import sold records")
        return jsonify({"error": "Internal server error"}), 500


@imports_bp.post("/products")
@require_auth
@require_store_owner
def import_products_route(store_id: int):
    try:
        result = import_service.import_products(store_id, _request_rows())
        return jsonify(result), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to import products")
        return jsonify({"error": "Internal server error"}), 500


@imports_bp.post("/categories")
@require_auth
@require_store_owner
def import_categories_route(store_id: int):
    try:
        result = import_service.import_categories(store_id, _request_rows())
        return jsonify(result), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to import categories")
        return jsonify({"error": "Internal server error"}), 500
