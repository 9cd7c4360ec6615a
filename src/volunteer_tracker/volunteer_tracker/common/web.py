"""Helpers shared by the Flask controllers."""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import DomainError
from ..users.model import Actor

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    "invalid-argument": 400,
    "failed-precondition": 400,
    "unauthenticated": 401,
    "permission-denied": 403,
    "not-found": 404,
    "already-exists": 409,
    "internal": 500,
}


def current_actor() -> Optional[Actor]:
    """Actor for the logged-in session user, or None."""
    user_id = session.get("user_id")
    role = session.get("role")
    if user_id is None or not role:
        return None
    try:
        return Actor(actor_id=str(user_id), role=Role(role))
    except ValueError:
        return None


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def error_response(code: str, message: str):
    return jsonify({"success": False, "code": code, "message": message}), STATUS_BY_CODE.get(code, 500)


def api_view(view):
    """Turn domain errors into JSON error bodies with the matching HTTP status."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            logger.warning("%s %s rejected (%s): %s", request.method, request.path, e.code, e)
            return error_response(e.code, str(e))
        except Exception:
            logger.exception("%s %s failed", request.method, request.path)
            return error_response("internal", "Internal error")

    return wrapper
