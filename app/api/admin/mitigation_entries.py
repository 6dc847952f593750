# Admin review of mitigation entries
from flask import Blueprint, jsonify, request, current_app, g
from app.errors import PortalError, ValidationError
from app.extensions import db
from app.services.activity_service import (
    delete_evidence_image,
    get_mitigation_entry,
    list_mitigation_entries,
)
from app.services.review_service import update_mitigation_entry
from app.utils.auth_utils import admin_required
from app.utils.serializers import mitigation_to_dict, page_to_dict
from app.utils.validators import parse_pagination

admin_mitigation_bp = Blueprint(
    "admin_mitigation", __name__, url_prefix="/api/admin/mitigation-entries"
)


@admin_mitigation_bp.route("", methods=["GET"])
@admin_required
def get_mitigation_entries():
    """
    GET /api/admin/mitigation-entries - Mitigation entries awaiting or past review

    ---
    tags:
      - Admin Mitigation
    summary: Paginated mitigation entries, newest first
    parameters:
      - name: status
        in: query
        type: string
        enum: [pending, approved, rejected]
        required: false
        description: Filter by review status (default all)
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
      400:
        description: Unknown status or invalid pagination
    """
    try:
        page, per_page = parse_pagination(
            request.args, current_app.config.get("ENTRIES_PER_PAGE", 15)
        )
        status_filter = (request.args.get("status") or "").strip().lower() or None

        entries, total = list_mitigation_entries(
            status=status_filter, page=page, per_page=per_page
        )
        return jsonify(
            page_to_dict(
                [mitigation_to_dict(e, include_client=True) for e in entries],
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
                    "message": "Failed to fetch mitigation entries",
                    "details": str(e),
                }
            ),
            500,
        )


@admin_mitigation_bp.route("/<entry_id>", methods=["GET"])
@admin_required
def get_mitigation_entry_detail(entry_id):
    """
    GET /api/admin/mitigation-entries/<entry_id>
    ---
    tags:
      - Admin Mitigation
    responses:
      200:
        description: Entry with client fields, images and status history
      404:
        description: Entry not found
    """
    try:
        entry = get_mitigation_entry(entry_id)
        return jsonify(
            {
                "status": "success",
                "entry": mitigation_to_dict(
                    entry, include_client=True, include_history=True
                ),
            }
        ), 200
    except PortalError as e:
        return e.to_response()
    except Exception as e:
        return jsonify({"status": "error", "message": str(e)}), 500


@admin_mitigation_bp.route("/<entry_id>", methods=["PUT"])
@admin_required
def update_mitigation_entry_route(entry_id):
    """
    PUT /api/admin/mitigation-entries/<entry_id> - Review decision and/or kg correction
    ---
    tags:
      - Admin Mitigation
    summary: Approve, reject or re-open an entry, or overwrite its kilograms
    description: Approved and rejected entries go back to pending before taking the other outcome
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
            status:
              type: string
              enum: [pending, approved, rejected]
            mitigated_plastic_kg:
              type: number
    responses:
      200:
        description: Entry updated
      400:
        description: Nothing to update, unknown status or kg not greater than 0
      404:
        description: Entry not found
      409:
        description: Transition not allowed from the current status
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")

        entry = update_mitigation_entry(
            entry_id,
            kg=data.get("mitigated_plastic_kg"),
            status=data.get("status"),
            changed_by=g.admin.email,
        )
        return jsonify(
            {
                "status": "success",
                "message": "Mitigation entry updated",
                "entry": mitigation_to_dict(
                    entry, include_client=True, include_history=True
                ),
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
                    "message": "Failed to update mitigation entry",
                    "details": str(e),
                }
            ),
            500,
        )


@admin_mitigation_bp.route("/images/<image_id>", methods=["DELETE"])
@admin_required
def delete_mitigation_image(image_id):
    """
    DELETE /api/admin/mitigation-entries/images/<image_id>
    Removes the stored file first, then the image record.
    ---
    tags:
      - Admin Mitigation
    responses:
      200:
        description: Image deleted
      404:
        description: Image not found
      500:
        description: File deleted but record kept (partial_failure)
      502:
        description: Storage refused the delete; nothing changed
    """
    try:
        delete_evidence_image(image_id)
        return jsonify({"status": "success", "message": "Image deleted"}), 200

    except PortalError as e:
        return e.to_response()

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Deleting image {image_id} failed: {e}")
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "Failed to delete image",
                    "details": str(e),
                }
            ),
            500,
        )
