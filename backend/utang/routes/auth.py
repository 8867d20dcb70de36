# Overview: Flask API routes for sign-up, sign-in, sign-out and session lookup.

"""
Authentication API routes

Tokens are returned once, at sign-up or sign-in, and must be sent back as
`Authorization: Bearer <token>` on every protected request.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..services import auth_service, session_service
from ..validation import ConflictError, ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, session, token: str | None = None) -> dict:
    payload = {"user": user.to_dict(), "session": session.to_dict()}
    if token is not None:
        payload["token"] = token
    return payload


@auth_bp.post("/sign-up")
def sign_up_route():
    """Create an account and sign it in."""
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            image=data.get("image"),
        )
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return jsonify(_session_payload(user, session, token)), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to sign up user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/sign-in")
def sign_in_route():
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400
        if not isinstance(email, str) or not isinstance(password, str):
            return jsonify({"error": "email and password must be strings"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return jsonify(_session_payload(user, session, token)), 200

    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to sign in user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/sign-out")
@require_auth
def sign_out_route():
    """Revoke the bearer token used for this request."""
    try:
        session_service.revoke_session(session_service.bearer_token(request.headers))
        return jsonify({"message": "Signed out"}), 200
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to sign out user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/session")
@require_auth
def session_route():
    context = g.session_context
    return jsonify(_session_payload(context.user, context.session)), 200
