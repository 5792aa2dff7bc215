from __future__ import annotations

from datetime import date
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.exceptions import DomainError, ValidationError
from ..users.model import SessionUser
from .logging_config import get_logger
from .validators import require_date

logger = get_logger(__name__)


def current_user() -> Optional[SessionUser]:
    return SessionUser.from_session(session.get("user"))


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if current_user() is None:
            return jsonify({"success": False, "message": "Unauthenticated."}), 401
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        user = current_user()
        if user is None:
            return jsonify({"success": False, "message": "Unauthenticated."}), 401
        if not user.is_admin:
            return jsonify({"success": False, "message": "This action is unauthorized."}), 403
        return view(*args, **kwargs)

    return wrapper


def error_response(e: DomainError):
    body: dict[str, Any] = {"success": False, "message": str(e)}
    errors = getattr(e, "errors", None)
    if errors:
        body["errors"] = errors
    return jsonify(body), e.status_code


def register_error_handlers(app) -> None:
    """Domain errors become their JSON status; anything unexpected is logged and becomes a 500."""

    @app.errorhandler(DomainError)
    def _domain_error(e: DomainError):
        return error_response(e)

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error")
        return jsonify({"success": False, "message": "An unexpected error occurred."}), 500


def payload() -> dict:
    """JSON body, falling back to form data."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def arg_date(name: str) -> Optional[date]:
    value = (request.args.get(name) or "").strip()
    if not value:
        return None
    return require_date(value, name.replace("_", " "))


def arg_int(name: str, default: Optional[int] = None) -> Optional[int]:
    value = (request.args.get(name) or "").strip()
    return int(value) if value.isdigit() else default


def id_list(value: Any) -> list[int]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [v for v in value.split(",") if v.strip()]
    try:
        return [int(v) for v in value]
    except (TypeError, ValueError):
        raise ValidationError("The selected ids must be whole numbers.")
