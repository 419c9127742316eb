from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from functools import wraps
from typing import Any, Optional

from flask import Flask, g, jsonify, request, session

from .datetime_utils import parse_iso_date
from .validators import require_positive_int, require_role
from ..core.enums import Role
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    SessionAlreadyClosed,
    UpstreamUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Who is calling, as placed in the Flask session by the identity provider."""

    user_id: int
    role: Role
    department_id: Optional[int] = None


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session or "role" not in session:
            return jsonify({"code": "UNAUTHENTICATED", "message": "Login required"}), 401
        g.actor = Actor(
            user_id=int(session["user_id"]),
            role=require_role(session.get("role")),
            department_id=int(session["department_id"]) if session.get("department_id") else None,
        )
        return view(*args, **kwargs)

    return wrapper


def current_actor() -> Actor:
    return g.actor


def json_body() -> dict:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def pick(body: dict, camel: str, snake: str, default: Any = None) -> Any:
    if camel in body:
        return body[camel]
    return body.get(snake, default)


def optional_int_arg(name: str) -> Optional[int]:
    raw = (request.args.get(name) or "").strip()
    return require_positive_int(raw, name) if raw else None


def optional_date_arg(name: str) -> Optional[date]:
    raw = (request.args.get(name) or "").strip()
    return parse_iso_date(raw) if raw else None


def _status_for(e: DomainError) -> int:
    if isinstance(e, NotFoundError):
        return 404
    if isinstance(e, ConflictError):
        return 409
    if isinstance(e, AuthorizationError):
        return 403
    if isinstance(e, UpstreamUnavailableError):
        return 503
    return 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        status = _status_for(e)
        body = {"code": e.code, "message": str(e)}
        if isinstance(e, SessionAlreadyClosed) and e.aggregate is not None:
            body["aggregate"] = e.aggregate.to_dict()
        if getattr(e, "student_ids", None):
            body["studentIds"] = e.student_ids
        if status >= 500:
            logger.warning("%s %s -> %s: %s", request.method, request.path, status, e)
        return jsonify(body), status

    @app.errorhandler(404)
    def handle_not_found(_e):
        return jsonify({"code": "NOT_FOUND", "message": "Not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(_e):
        return jsonify({"code": "METHOD_NOT_ALLOWED", "message": "Method not allowed"}), 405
