from __future__ import annotations

from datetime import timedelta

from flask import Flask, g, jsonify, session

from ..common.logging_config import get_logger
from ..common.web import admin_required, current_user, error_response, login_required, payload
from ..core.enums import Role
from ..core.exceptions import DomainError, ValidationError

logger = get_logger(__name__)


def register(app: Flask, container) -> None:
    def _auth_service():
        # platform admins sign in on the central domain, employees on their tenant domain
        if getattr(g, "tenant", None) is None:
            return container.central_auth_service
        return container.auth_service

    @app.route("/api/login", methods=["POST"], endpoint="login")
    def login():
        data = payload()
        try:
            s_user = _auth_service().authenticate(data.get("email", ""), data.get("password", ""))
        except DomainError as e:
            return error_response(e)

        session.clear()
        session.permanent = bool(data.get("remember"))
        app.permanent_session_lifetime = timedelta(days=7)
        session["user"] = s_user.to_session()
        session["tenant_id"] = g.tenant.id if getattr(g, "tenant", None) else None
        logger.info("User %s logged in", s_user.user_id)
        return jsonify({"success": True, "message": "Logged in successfully.", "user": session["user"]})

    @app.route("/api/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"success": True, "message": "Logged out successfully."})

    @app.route("/api/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        return jsonify({"user": current_user().to_session()})

    @app.route("/api/users", methods=["GET"], endpoint="users_index")
    @admin_required
    def users_index():
        users = container.user_service.list_active()
        return jsonify(
            {
                "users": [
                    {
                        "id": u.user_id,
                        "name": u.name,
                        "email": u.email,
                        "role": u.role.value,
                        "department_id": u.department_id,
                    }
                    for u in users
                ]
            }
        )

    @app.route("/api/users", methods=["POST"], endpoint="users_store")
    @admin_required
    def users_store():
        data = payload()
        try:
            try:
                role = Role(data.get("role") or Role.EMPLOYEE.value)
            except ValueError:
                raise ValidationError("The selected role is invalid.")
            user_id = container.user_service.create_user(
                current_user=current_user(),
                name=data.get("name"),
                email=data.get("email"),
                password=data.get("password"),
                role=role,
                department_id=data.get("department_id"),
                designation_id=data.get("designation_id"),
                permissions=data.get("permissions") or (),
            )
            return jsonify({"success": True, "message": "User created successfully.", "id": user_id}), 201
        except DomainError as e:
            return error_response(e)
