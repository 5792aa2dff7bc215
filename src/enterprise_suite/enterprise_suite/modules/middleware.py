from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import current_app, g, jsonify, request

from ..common.logging_config import get_logger
from ..common.web import current_user

logger = get_logger(__name__)

EXTENSION_KEY = "module_permissions"


def _denied(access_type: str, access_path: str):
    return (
        jsonify(
            {
                "success": False,
                "message": f"You do not have permission to access this {access_type}.",
                "access_type": access_type,
                "access_path": access_path,
            }
        ),
        403,
    )


def module_required(module: str, sub_module: Optional[str] = None, component: Optional[str] = None):
    """Guard a view behind the module registry.

    The tenant hook stores the tenant's subscribed module codes on
    ``g.subscribed_modules``; when it is absent no subscription gating applies.
    """

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user is None:
                return jsonify({"success": False, "message": "Authentication required."}), 401

            service = current_app.extensions[EXTENSION_KEY]
            subscribed = getattr(g, "subscribed_modules", None)

            if component:
                allowed = service.user_can_access_component(user, module, sub_module, component, subscribed)
                access_type = "component"
                access_path = "/".join(p for p in (module, sub_module, component) if p)
            elif sub_module:
                allowed = service.user_can_access_sub_module(user, module, sub_module, subscribed)
                access_type = "sub-module"
                access_path = f"{module}/{sub_module}"
            else:
                allowed = service.user_can_access_module(user, module, subscribed)
                access_type = "module"
                access_path = module

            if not allowed:
                logger.warning(
                    "Module access denied user=%s %s=%s url=%s",
                    user.user_id,
                    access_type,
                    access_path,
                    request.path,
                )
                return _denied(access_type, access_path)
            return view(*args, **kwargs)

        return wrapper

    return decorator
