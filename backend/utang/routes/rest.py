# Overview: Generic REST routes over every registered resource kind.

"""
Generic resource API routes

    GET    /api/<resource>        list (x-total-count header)
    POST   /api/<resource>        create
    GET    /api/<resource>/<id>   read one
    PATCH  /api/<resource>/<id>   update (PUT is an alias)
    DELETE /api/<resource>/<id>   delete

Unknown resource names are rejected with 404 before any other work.
All service-layer faults are mapped to a JSON {"error": ...} response here.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import known_resource, load_session, require_auth
from ..extensions import db
from ..services import resource_service
from ..services.access_service import AccessDeniedError, AuthenticationRequiredError, verify_access
from ..services.resource_registry import ResourceKind
from ..services.storage import RecordNotFoundError
from ..validation import ConflictError, ValidationError


rest_bp = Blueprint("rest", __name__, url_prefix="/api")


def _json_body():
    """Parsed JSON body; an empty body is {}, a malformed one is a ValidationError."""
    if not request.get_data(cache=True):
        return {}
    body = request.get_json(silent=True, force=True)
    if body is None:
        raise ValidationError("Malformed JSON body")
    return body


def _server_error(message: str, exc: Exception):
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify({"error": str(exc) or "Internal server error"}), 500


@rest_bp.get("/<resource>")
@known_resource
@require_auth
def list_route(kind: ResourceKind):
    try:
        data, total = resource_service.list_resources(kind, request.args, g.user_id)
    except AuthenticationRequiredError as e:
        return jsonify({"error": str(e)}), 401
    except Exception as e:
        return _server_error(f"Failed to list {kind.value}", e)

    response = jsonify(data)
    response.headers["x-total-count"] = str(total)
    return response, 200


@rest_bp.post("/<resource>")
@known_resource
@require_auth
def create_route(kind: ResourceKind):
    try:
        created = resource_service.create_resource(kind, _json_body(), g.user_id)
        return jsonify(created), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthenticationRequiredError as e:
        return jsonify({"error": str(e)}), 401
    except AccessDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception as e:
        return _server_error(f"Failed to create {kind.value}", e)


@rest_bp.get("/<resource>/<record_id>")
@known_resource
@load_session
def get_route(kind: ResourceKind, record_id: str):
    try:
        return jsonify(resource_service.get_resource(kind, record_id, g.user_id)), 200
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except AccessDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except Exception as e:
        return _server_error(f"Failed to load {kind.value}", e)


@rest_bp.route("/<resource>/<record_id>", methods=["PATCH", "PUT"])
@known_resource
@load_session
def update_route(kind: ResourceKind, record_id: str):
    try:
        # Verify user has access before update
        if not verify_access(kind, record_id, g.user_id):
            return jsonify({"error": "Forbidden"}), 403

        updated = resource_service.update_resource(kind, record_id, _json_body(), g.user_id)
        return jsonify(updated), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AccessDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception as e:
        return _server_error(f"Failed to update {kind.value}", e)


@rest_bp.delete("/<resource>/<record_id>")
@known_resource
@load_session
def delete_route(kind: ResourceKind, record_id: str):
    try:
        # Verify user has access before delete
        if not verify_access(kind, record_id, g.user_id):
            return jsonify({"error": "Forbidden"}), 403

        return jsonify(resource_service.delete_resource(kind, record_id)), 200
    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception as e:
        return _server_error(f"Failed to delete {kind.value}", e)
