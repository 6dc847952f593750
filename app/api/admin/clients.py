# Admin client management
from flask import Blueprint, jsonify, request, current_app
from app.errors import PortalError, ValidationError
from app.extensions import db
from app.services import activity_service, profile_service, reward_service
from app.utils.auth_utils import admin_required
from app.utils.serializers import (
    client_reward_to_dict,
    client_to_dict,
    consumption_to_dict,
    mitigation_to_dict,
    page_to_dict,
)
from app.utils.validators import parse_pagination

admin_clients_bp = Blueprint("admin_clients", __name__, url_prefix="/api/admin/clients")


@admin_clients_bp.route("", methods=["GET"])
@admin_required
def list_clients():
    """
    GET /api/admin/clients - List clients, newest first

    ---
    tags:
      - Admin Clients
    summary: Paginated client list with optional search
    parameters:
      - name: q
        in: query
        type: string
        required: false
        description: Case-insensitive match on email or full name
      - name: page
        in: query
        type: integer
        required: false
        description: 1-based page number (default 1)
      - name: per_page
        in: query
        type: integer
        required: false
        description: Page size (default 15)
    responses:
      200:
        description: Page of clients with total_count and total_pages
      400:
        description: Invalid pagination parameters
    """
    try:
        page, per_page = parse_pagination(
            request.args, current_app.config.get("ENTRIES_PER_PAGE", 15)
        )
        clients, total = profile_service.list_clients(
            search=request.args.get("q"), page=page, per_page=per_page
        )
        return jsonify(
            page_to_dict(
                [client_to_dict(c) for c in clients], total, page, per_page, "clients"
            )
        ), 200

    except PortalError as e:
        return e.to_response()

    except Exception as e:
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "Failed to fetch clients",
                    "details": str(e),
                }
            ),
            500,
        )


@admin_clients_bp.route("/<client_id>", methods=["GET"])
@admin_required
def get_client(client_id):
    """
    GET /api/admin/clients/<client_id> - One client with their activity and rewards
    ---
    tags:
      - Admin Clients
    parameters:
      - name: client_id
        in: path
        type: string
        required: true
    responses:
      200:
        description: Client with mitigation history, consumption history and obtained rewards
      404:
        description: Client not found
    """
    try:
        client = profile_service.get_client(client_id)
        return jsonify(
            {
                "status": "success",
                "client": client_to_dict(client),
                "mitigation_entries": [
                    mitigation_to_dict(e)
                    for e in activity_service.client_mitigation_history(client_id)
                ],
                "consumption_entries": [
                    consumption_to_dict(e)
                    for e in activity_service.client_consumption_history(client_id)
                ],
                "rewards": [
                    client_reward_to_dict(cr)
                    for cr in activity_service.client_rewards(client_id)
                ],
            }
        ), 200

    except PortalError as e:
        return e.to_response()

    except Exception as e:
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "Failed to fetch client",
                    "details": str(e),
                }
            ),
            500,
        )


@admin_clients_bp.route("/<client_id>", methods=["PUT"])
@admin_required
def edit_client(client_id):
    """
    PUT /api/admin/clients/<client_id> - Edit a client's profile and PGC balance
    ---
    tags:
      - Admin Clients
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
          properties:
            full_name:
              type: string
            solana_wallet:
              type: string
            bnb_wallet:
              type: string
            pgc_balance:
              type: number
              description: Non-negative
    responses:
      200:
        description: Client updated
      400:
        description: Invalid, unknown or immutable field
      404:
        description: Client not found
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not data:
            raise ValidationError("Request body must be a non-empty JSON object")

        client = profile_service.admin_update_client(client_id, data)
        return jsonify(
            {
                "status": "success",
                "message": "Client updated successfully",
                "client": client_to_dict(client),
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
                    "message": "Failed to update client",
                    "details": str(e),
                }
            ),
            500,
        )


@admin_clients_bp.route("/<client_id>", methods=["DELETE"])
@admin_required
def delete_client(client_id):
    """
    DELETE /api/admin/clients/<client_id> - Delete a client and everything they own

    Entries, evidence images, status history and reward ledger rows are
    removed with the client, then the stored evidence files.
    ---
    tags:
      - Admin Clients
    parameters:
      - name: client_id
        in: path
        type: string
        required: true
    responses:
      200:
        description: Client deleted
      404:
        description: Client not found
      500:
        description: Client deleted but some files remain in storage (partial_failure)
    """
    try:
        profile_service.delete_client(client_id)
        return jsonify(
            {"status": "success", "message": f"Client {client_id} deleted"}
        ), 200

    except PortalError as e:
        return e.to_response()

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Deleting client {client_id} failed: {e}")
        return (
            jsonify(
                {
                    "status": "error",
                    "message": "Failed to delete client",
                    "details": str(e),
                }
            ),
            500,
        )


@admin_clients_bp.route("/<client_id>/balance", methods=["GET"])
@admin_required
def get_client_balance(client_id):
    """
    GET /api/admin/clients/<client_id>/balance - Cached balance against the reward ledger
    ---
    tags:
      - Admin Clients
    responses:
      200:
        description: pgc_balance, ledger_total, rewards_held and in_sync
      404:
        description: Client not found
    """
    try:
        report = reward_service.balance_report(client_id)
        return jsonify({"status": "success", **report}), 200
    except PortalError as e:
        return e.to_response()
    except Exception as e:
        return jsonify({"status": "error", "message": str(e)}), 500
