from flask import Blueprint, jsonify, request, current_app
from app.errors import PortalError, ValidationError
from app.extensions import db
from app.services.activity_service import (
    get_consumption_entry,
    list_consumption_entries,
    update_consumption_entry,
)
from app.utils.auth_utils import admin_required
from app.utils.serializers import consumption_to_dict, page_to_dict
from app.utils.validators import parse_pagination

admin_consumption_bp = Blueprint(
    "admin_consumption", __name__, url_prefix="/api/admin/consumption-entries"
)


@admin_consumption_bp.route("", methods=["GET"])
@admin_required
def get_consumption_entries():
    """
    GET /api/admin/consumption-entries - Paginated consumption entries, newest first
    ---
    tags:
      - Admin Consumption
    parameters:
      - name: page
        in: query
        type: integer
        required: false
      - name: per_page
        in: query
        type: integer
        required: false
    responses:
      200:
        description: Entries joined with the owning client's email and name
    """
    try:
        page, per_page = parse_pagination(
            request.args, current_app.config.get("ENTRIES_PER_PAGE", 15)
        )
        entries, total = list_consumption_entries(page=page, per_page=per_page)
        return jsonify(
            page_to_dict(
                [consumption_to_dict(e, include_client=True) for e in entries],
                total,
                page,
                per_page,
                "entries",
            )
        ), 200

    except PortalError as e:
        return e.to_response()

    except Exception as e:
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "Failed to fetch consumption entries",
                    "details": str(e),
                }
            ),
            500,
        )


@admin_consumption_bp.route("/<entry_id>", methods=["GET"])
@admin_required
def get_consumption_entry_detail(entry_id):
    try:
        entry = get_consumption_entry(entry_id)
        return jsonify(
            {"status": "success", "entry": consumption_to_dict(entry, include_client=True)}
        ), 200
    except PortalError as e:
        return e.to_response()
    except Exception as e:
        return jsonify({"status": "error", "message": str(e)}), 500


@admin_consumption_bp.route("/<entry_id>", methods=["PUT"])
@admin_required
def edit_consumption_entry(entry_id):
    """
    PUT /api/admin/consumption-entries/<entry_id> - Correct liters or transaction date
    ---
    tags:
      - Admin Consumption
    parameters:
      - name: entry_id
        in: path
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            liters_consumed:
              type: number
            transaction_date:
              type: string
              format: date-time
    responses:
      200:
        description: Entry updated
      400:
        description: Liters not greater than 0 or bad date
      404:
        description: Entry not found
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not data:
            raise ValidationError("Request body must be a non-empty JSON object")

        entry = update_consumption_entry(
            entry_id,
            liters=data.get("liters_consumed"),
            transaction_date=data.get("transaction_date"),
        )
        return jsonify(
            {
                "status": "success",
                "message": "Consumption entry updated",
                "entry": consumption_to_dict(entry, include_client=True),
            }
        ), 200

    except PortalError as e:
        db.session.rollback()
        return e.to_response()

    except Exception as e:
        db.session.rollback()
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "Failed to update consumption entry",
                    "details": str(e),
                }
            ),
            500,
        )
