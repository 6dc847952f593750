from flask import Blueprint, request, jsonify, current_app, g
from ...errors import PortalError
from ...extensions import db
from ...services.activity_service import (
    ImageUpload,
    client_consumption_history,
    client_mitigation_history,
    submit_consumption,
    submit_mitigation,
)
from ...utils.auth_utils import client_required
from ...utils.serializers import consumption_to_dict, mitigation_to_dict

client_activity_bp = Blueprint(
    "client_activity", __name__, url_prefix="/api/client/activity"
)


@client_activity_bp.route("/mitigation", methods=["POST"])
@client_required
def create_mitigation_entry():
    """
    Log a plastic mitigation activity with optional photo evidence
    ---
    tags:
      - Client Activity
    consumes:
      - multipart/form-data
    parameters:
      - in: formData
        name: mitigated_plastic_kg
        type: number
        required: true
        description: Kilograms of plastic processed, greater than 0
      - in: formData
        name: images
        type: file
        required: false
        description: Evidence photos (repeat the field for several files)
    responses:
      201:
        description: Entry created with status pending
        schema:
          $ref: '#/definitions/MitigationEntry'
      400:
        description: mitigated_plastic_kg missing or not greater than 0
      500:
        description: Entry saved but its images were not recorded (partial_failure)
      502:
        description: Image upload failed; nothing was saved
      503:
        description: Storage or database temporarily unavailable
    """
    try:
        kg = request.form.get("mitigated_plastic_kg")
        if kg is None and request.is_json:
            kg = (request.get_json(silent=True) or {}).get("mitigated_plastic_kg")

        images = [
            ImageUpload(
                filename=f.filename,
                data=f.read(),
                content_type=f.mimetype or "application/octet-stream",
            )
            for f in request.files.getlist("images")
            if f and f.filename
        ]

        entry = submit_mitigation(g.identity.id, kg, images)
        return jsonify({
            "status": "success",
            "message": "Mitigation entry submitted for review",
            "entry": mitigation_to_dict(entry)
        }), 201

    except PortalError as e:
        return e.to_response()

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Mitigation submission failed for {g.identity.id}: {e}")
        return jsonify({
            "status": "error",
            "message": "Failed to submit mitigation entry",
            "details": str(e)
        }), 500


@client_activity_bp.route("/consumption", methods=["POST"])
@client_required
def create_consumption_entry():
    """
    Log Petgas fuel consumption
    ---
    tags:
      - Client Activity
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [liters_consumed]
          properties:
            liters_consumed:
              type: number
            transaction_date:
              type: string
              format: date-time
              description: Defaults to the submission time
    responses:
      201:
        description: Entry created
      400:
        description: Invalid amount or date
    """
    try:
        data = request.get_json(silent=True) or request.form.to_dict()
        entry = submit_consumption(
            g.identity.id,
            data.get("liters_consumed"),
            transaction_date=data.get("transaction_date"),
        )
        return jsonify({
            "status": "success",
            "message": "Consumption entry recorded",
            "entry": consumption_to_dict(entry)
        }), 201

    except PortalError as e:
        return e.to_response()

    except Exception as e:
        db.session.rollback()
        return jsonify({
            "status": "error",
            "message": "Failed to record consumption entry",
            "details": str(e)
        }), 500


@client_activity_bp.route("/mitigation", methods=["GET"])
@client_required
def list_my_mitigation_entries():
    """
    The signed-in client's mitigation entries, newest first
    ---
    tags:
      - Client Activity
    responses:
      200:
        description: List of entries with status and image URLs
    """
    try:
        entries = client_mitigation_history(g.identity.id)
        return jsonify({
            "status": "success",
            "entries": [mitigation_to_dict(e) for e in entries]
        }), 200
    except Exception as e:
        return jsonify({"status": "error", "message": str(e)}), 500


@client_activity_bp.route("/consumption", methods=["GET"])
@client_required
def list_my_consumption_entries():
    """The signed-in client's consumption entries, newest transaction first."""
    try:
        entries = client_consumption_history(g.identity.id)
        return jsonify({
            "status": "success",
            "entries": [consumption_to_dict(e) for e in entries]
        }), 200
    except Exception as e:
        return jsonify({"status": "error", "message": str(e)}), 500
