import datetime
from collections import namedtuple
from functools import wraps

import jwt
from flask import current_app, g, jsonify, request

# What the core needs from either identity provider
Identity = namedtuple("Identity", ["id", "email", "full_name"])


def _bearer_token():
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


def _unauthorized(message):
    return jsonify({"status": "error", "message": message}), 401


def decode_client_token(token):
    """Verify an access token issued by the client identity provider."""
    secret = current_app.config.get("SUPABASE_JWT_SECRET")
    if not secret:
        raise jwt.InvalidTokenError("Client identity provider secret is not configured")

    payload = jwt.decode(
        token,
        secret,
        algorithms=["HS256"],
        audience=current_app.config.get("SUPABASE_JWT_AUDIENCE", "authenticated"),
    )
    subject = payload.get("sub")
    email = payload.get("email")
    if not subject or not email:
        raise jwt.InvalidTokenError("Token is missing subject or email")

    metadata = payload.get("user_metadata") or {}
    return Identity(id=subject, email=email, full_name=metadata.get("full_name"))


def issue_admin_token(email):
    payload = {
        "sub": email,
        "email": email,
        "role": "ADMIN",
        "exp": datetime.datetime.now(datetime.timezone.utc)
        + datetime.timedelta(hours=current_app.config.get("ADMIN_TOKEN_HOURS", 1)),
    }
    return jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm="HS256")


def decode_admin_token(token):
    payload = jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=["HS256"])
    if payload.get("role") != "ADMIN":
        raise jwt.InvalidTokenError("Not an admin token")
    return Identity(id=payload.get("sub"), email=payload.get("email"), full_name=None)


def client_required(view):
    """Reject the request unless it carries a valid client access token."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return _unauthorized("Missing bearer token")
        try:
            g.identity = decode_client_token(token)
        except jwt.ExpiredSignatureError:
            return _unauthorized("Session expired")
        except jwt.InvalidTokenError as e:
            current_app.logger.info(f"Rejected client token: {e}")
            return _unauthorized("Invalid session")
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return _unauthorized("Missing bearer token")
        try:
            g.admin = decode_admin_token(token)
        except jwt.ExpiredSignatureError:
            return _unauthorized("Session expired")
        except jwt.InvalidTokenError as e:
            current_app.logger.info(f"Rejected admin token: {e}")
            return _unauthorized("Invalid session")
        return view(*args, **kwargs)

    return wrapper
