# Overview: Request decorators for session loading and resource-name routing.

from functools import wraps

from flask import g, jsonify, request

from .services import session_service
from .services.resource_registry import ResourceKind, is_allowed_resource


def _load_session_context() -> None:
    """
    Resolve the bearer token once per request.

    Sets the following Flask g attributes:
    - g.session_context: SessionContext or None
    - g.current_user: the authenticated User or None
    - g.user_id: the authenticated user's id or None
    """
    context = session_service.get_session(request.headers)
    g.session_context = context
    g.current_user = context.user if context else None
    g.user_id = context.user_id if context else None


def known_resource(f):
    """
    Reject unknown resource names with 404 before anything else runs.

    The view receives `kind` (a ResourceKind) instead of the raw `resource`
    path segment.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        resource = kwargs.pop("resource")
        if not is_allowed_resource(resource):
            return jsonify({"error": "Unknown resource"}), 404
        kwargs["kind"] = ResourceKind(resource)
        return f(*args, **kwargs)

    return decorated_function


def load_session(f):
    """Attach session context if a valid token is present; never rejects."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        _load_session_context()
        return f(*args, **kwargs)

    return decorated_function


def require_auth(f):
    """
    Require a valid bearer token.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired, idle or revoked token
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        _load_session_context()
        if g.session_context is None:
            return jsonify({"error": "Authentication required"}), 401
        return f(*args, **kwargs)

    return decorated_function
