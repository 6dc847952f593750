from flask import Blueprint, request, jsonify, current_app, g
from ..errors import PortalError
from ..extensions import db
from ..services.profile_service import get_or_create_profile
from ..utils.auth_utils import admin_required, client_required, issue_admin_token
from ..utils.serializers import client_to_dict
import bcrypt

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@auth_bp.route("/admin/auth/login", methods=["POST"])
def admin_login():
    """
    POST /api/admin/auth/login
    ---
    tags:
      - Auth
    summary: Sign in to the admin panel
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [email, password]
          properties:
            email:
              type: string
            password:
              type: string
    responses:
      200:
        description: Login successful, returns a bearer token valid for one hour
      400:
        description: Email and password required
      401:
        description: Invalid credentials
    """
    try:
        data = request.get_json(silent=True) or {}
        email = (data.get("email") or "").strip().lower()
        password = data.get("password")

        if not email or not password:
            return jsonify({
                "status": "error",
                "message": "Email and password required"
            }), 400

        admin_email = (current_app.config.get("ADMIN_EMAIL") or "").strip().lower()
        stored_hash = current_app.config.get("ADMIN_PASSWORD_HASH")
        if not admin_email or not stored_hash:
            current_app.logger.error("Admin login attempted but no admin account is configured")
            return jsonify({
                "status": "error",
                "message": "Invalid credentials"
            }), 401

        if isinstance(stored_hash, str):
            stored_hash = stored_hash.encode("utf-8")

        if email != admin_email or not bcrypt.checkpw(password.encode("utf-8"), stored_hash):
            return jsonify({
                "status": "error",
                "message": "Invalid credentials"
            }), 401

        token = issue_admin_token(admin_email)
        return jsonify({
            "status": "success",
            "message": "Login successful",
            "token": token
        }), 200

    except Exception as e:
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


@auth_bp.route("/admin/auth/logout", methods=["POST"])
@admin_required
def admin_logout():
    """
    POST /api/admin/auth/logout
    Tokens are stateless; the panel discards its copy.
    ---
    tags:
      - Auth
    responses:
      200:
        description: Signed out
      401:
        description: Missing or invalid token
    """
    return jsonify({"status": "success", "message": "Signed out"}), 200


@auth_bp.route("/client/session", methods=["GET"])
@client_required
def client_session():
    """
    GET /api/client/session
    Purpose: Resolve the signed-in client, creating their profile on first login.
    ---
    tags:
      - Auth
    responses:
      200:
        description: The client's profile
        schema:
          $ref: '#/definitions/Client'
      401:
        description: Missing, expired or invalid session
      409:
        description: Email already linked to a different identity
    """
    try:
        client = get_or_create_profile(g.identity)
        return jsonify({"status": "success", "client": client_to_dict(client)}), 200

    except PortalError as e:
        return e.to_response()

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Session lookup failed for {g.identity.id}: {e}")
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


@auth_bp.route("/client/logout", methods=["POST"])
@client_required
def client_logout():
    """
    POST /api/client/logout
    ---
    tags:
      - Auth
    responses:
      200:
        description: Signed out
    """
    return jsonify({"status": "success", "message": "Signed out"}), 200
