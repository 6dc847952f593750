from flask import Blueprint, request, jsonify, current_app, g
from ...errors import PortalError, ValidationError
from ...extensions import db
from ...services import activity_service, profile_service
from ...utils.auth_utils import client_required
from ...utils.serializers import (
    client_reward_to_dict,
    client_to_dict,
    mitigation_to_dict,
    reward_to_dict,
)

client_profile_bp = Blueprint("client_profile", __name__, url_prefix="/api/client")


@client_profile_bp.route("/profile", methods=["GET"])
@client_required
def get_profile():
    """
    Get the signed-in client's profile
    ---
    tags:
      - Client Profile
    responses:
      200:
        description: Profile found
        schema:
          type: object
          properties:
            status:
              type: string
              example: success
            client:
              $ref: '#/definitions/Client'
      401:
        description: Missing or invalid session
      404:
        description: No profile yet; call /api/client/session first
    """
    try:
        client = profile_service.get_client(g.identity.id)
        return jsonify({"status": "success", "client": client_to_dict(client)}), 200
    except PortalError as e:
        return e.to_response()
    except Exception as e:
        return jsonify({"status": "error", "message": str(e)}), 500


@client_profile_bp.route("/profile", methods=["PUT"])
@client_required
def edit_profile():
    """
    Edit the signed-in client's name and wallet addresses
    ---
    tags:
      - Client Profile
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            full_name:
              type: string
              description: Display name (optional)
            solana_wallet:
              type: string
              description: Solana wallet address (optional)
            bnb_wallet:
              type: string
              description: BNB wallet address (optional)
    responses:
      200:
        description: Profile updated
      400:
        description: Immutable or unknown field, or no profile exists
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not data:
            raise ValidationError("Request body must be a non-empty JSON object")

        client = profile_service.update_profile(g.identity.id, data)
        return jsonify({
            "status": "success",
            "message": "Profile updated successfully",
            "client": client_to_dict(client)
        }), 200

    except PortalError as e:
        db.session.rollback()
        return e.to_response()

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Profile update failed for {g.identity.id}: {e}")
        return jsonify({
            "status": "error",
            "message": "Failed to update profile",
            "details": str(e)
        }), 500


@client_profile_bp.route("/dashboard", methods=["GET"])
@client_required
def get_dashboard():
    """
    GET /api/client/dashboard
    Purpose: Everything the client dashboard shows in one call.

    Behavior:
    - PGC balance and lifetime kg mitigated / liters consumed
    - Mitigation history, newest first, with status and image URLs
    - Obtained rewards, newest first, and catalog rewards not yet obtained
    ---
    tags:
      - Client Profile
    responses:
      200:
        description: Dashboard data
      404:
        description: No profile yet
    """
    try:
        data = activity_service.client_dashboard(g.identity.id)
        client = data["client"]
        return jsonify({
            "status": "success",
            "client": client_to_dict(client),
            "pgc_balance": float(client.pgc_balance or 0),
            "total_mitigated_kg": float(data["total_mitigated_kg"] or 0),
            "total_consumed_liters": float(data["total_consumed_liters"] or 0),
            "mitigation_history": [mitigation_to_dict(e) for e in data["mitigation_history"]],
            "obtained_rewards": [client_reward_to_dict(cr) for cr in data["obtained_rewards"]],
            "available_rewards": [reward_to_dict(r) for r in data["available_rewards"]],
        }), 200

    except PortalError as e:
        return e.to_response()

    except Exception as e:
        return jsonify({
            "status": "error",
            "message": "Failed to load dashboard",
            "details": str(e)
        }), 500
