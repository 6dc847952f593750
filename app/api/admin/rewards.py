# Reward catalog and awarding
from flask import Blueprint, jsonify, request, current_app, g
from app.errors import PortalError, ValidationError
from app.extensions import db
from app.services import reward_service
from app.utils.auth_utils import admin_required
from app.utils.serializers import client_reward_to_dict, reward_to_dict

admin_rewards_bp = Blueprint("admin_rewards", __name__, url_prefix="/api/admin")


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        raise ValidationError("Request body must be a non-empty JSON object")
    return data


@admin_rewards_bp.route("/rewards", methods=["GET"])
@admin_required
def get_rewards():
    """
    GET /api/admin/rewards - Reward catalog, newest first
    ---
    tags:
      - Admin Rewards
    responses:
      200:
        description: List of reward definitions
        schema:
          type: object
          properties:
            status:
              type: string
              example: success
            rewards:
              type: array
              items:
                $ref: '#/definitions/Reward'
    """
    try:
        rewards = reward_service.list_rewards()
        return jsonify(
            {"status": "success", "rewards": [reward_to_dict(r) for r in rewards]}
        ), 200
    except Exception as e:
        return jsonify({"status": "error", "message": str(e)}), 500


@admin_rewards_bp.route("/rewards/<reward_id>", methods=["GET"])
@admin_required
def get_reward(reward_id):
    try:
        reward = reward_service.get_reward(reward_id)
        return jsonify({"status": "success", "reward": reward_to_dict(reward)}), 200
    except PortalError as e:
        return e.to_response()
    except Exception as e:
        return jsonify({"status": "error", "message": str(e)}), 500


@admin_rewards_bp.route("/rewards", methods=["POST"])
@admin_required
def create_reward():
    """
    POST /api/admin/rewards - Add a reward to the catalog
    ---
    tags:
      - Admin Rewards
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [name, pgc_amount]
          properties:
            name:
              type: string
            description:
              type: string
            pgc_amount:
              type: number
              description: Points credited when awarded, greater than 0
            criteria_plastic_kg:
              type: number
              description: Optional qualifying kilograms (informational)
            criteria_petgas_liters:
              type: number
              description: Optional qualifying liters (informational)
    responses:
      201:
        description: Reward created
      400:
        description: Missing name, or amount/threshold not greater than 0
    """
    try:
        reward = reward_service.create_reward(_json_body())
        return jsonify(
            {
                "status": "success",
                "message": "Reward created",
                "reward": reward_to_dict(reward),
            }
        ), 201

    except PortalError as e:
        db.session.rollback()
        return e.to_response()

    except Exception as e:
        db.session.rollback()
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "Failed to create reward",
                    "details": str(e),
                }
            ),
            500,
        )


@admin_rewards_bp.route("/rewards/<reward_id>", methods=["PUT"])
@admin_required
def edit_reward(reward_id):
    """
    PUT /api/admin/rewards/<reward_id> - Edit a reward definition
    Rewards already awarded keep the points they were granted with.
    ---
    tags:
      - Admin Rewards
    responses:
      200:
        description: Reward updated
      400:
        description: Invalid field
      404:
        description: Reward not found
    """
    try:
        reward = reward_service.update_reward(reward_id, _json_body())
        return jsonify(
            {
                "status": "success",
                "message": "Reward updated",
                "reward": reward_to_dict(reward),
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
                    "message": "Failed to update reward",
                    "details": str(e),
                }
            ),
            500,
        )


@admin_rewards_bp.route("/rewards/<reward_id>", methods=["DELETE"])
@admin_required
def delete_reward(reward_id):
    """
    DELETE /api/admin/rewards/<reward_id>
    ---
    tags:
      - Admin Rewards
    responses:
      200:
        description: Reward deleted
      404:
        description: Reward not found
      409:
        description: Reward has been awarded to at least one client
    """
    try:
        reward_service.delete_reward(reward_id)
        return jsonify({"status": "success", "message": "Reward deleted"}), 200

    except PortalError as e:
        db.session.rollback()
        return e.to_response()

    except Exception as e:
        db.session.rollback()
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "Failed to delete reward",
                    "details": str(e),
                }
            ),
            500,
        )


@admin_rewards_bp.route("/clients/<client_id>/rewards", methods=["POST"])
@admin_required
def assign_reward(client_id):
    """
    POST /api/admin/clients/<client_id>/rewards - Award a reward to a client

    The ledger row and the balance credit are committed together.
    ---
    tags:
      - Admin Rewards
    parameters:
      - name: client_id
        in: path
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [reward_id]
          properties:
            reward_id:
              type: string
            notes:
              type: string
    responses:
      201:
        description: Reward awarded; balance increased by its pgc_amount
      400:
        description: reward_id missing
      404:
        description: Client or reward not found
      503:
        description: Database unavailable; nothing was written
    """
    try:
        data = _json_body()
        reward_id = data.get("reward_id")
        if not reward_id:
            raise ValidationError("reward_id is required")

        ledger_entry = reward_service.assign_reward(
            client_id,
            reward_id,
            notes=data.get("notes"),
            awarded_by=g.admin.email,
        )
        balance = reward_service.balance_report(client_id)["pgc_balance"]
        return jsonify(
            {
                "status": "success",
                "message": "Reward assigned",
                "client_reward": client_reward_to_dict(ledger_entry),
                "pgc_balance": balance,
            }
        ), 201

    except PortalError as e:
        return e.to_response()

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Assigning reward to {client_id} failed: {e}")
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "Failed to assign reward",
                    "details": str(e),
                }
            ),
            500,
        )


@admin_rewards_bp.route("/clients/<client_id>/rewards/<ledger_entry_id>", methods=["DELETE"])
@admin_required
def revoke_reward(client_id, ledger_entry_id):
    """
    DELETE /api/admin/clients/<client_id>/rewards/<ledger_entry_id> - Revoke an awarded reward
    ---
    tags:
      - Admin Rewards
    responses:
      200:
        description: Reward revoked; balance decreased by the awarded amount, never below 0
      404:
        description: Ledger entry not found for this client
    """
    try:
        reward_service.revoke_reward(client_id, ledger_entry_id)
        balance = reward_service.balance_report(client_id)["pgc_balance"]
        return jsonify(
            {
                "status": "success",
                "message": "Reward revoked",
                "pgc_balance": balance,
            }
        ), 200

    except PortalError as e:
        return e.to_response()

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(
            f"Revoking ledger entry {ledger_entry_id} from {client_id} failed: {e}"
        )
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "Failed to revoke reward",
                    "details": str(e),
                }
            ),
            500,
        )
