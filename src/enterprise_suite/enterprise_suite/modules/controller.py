from __future__ import annotations

from flask import Flask, g, jsonify

from ..common.web import current_user, error_response, login_required, payload
from ..core.exceptions import DomainError, ValidationError
from .middleware import module_required


def register(app: Flask, container) -> None:
    service = container.module_permission_service
    admin_modules = module_required("ADMIN", "MODULES")

    def _subscribed():
        return getattr(g, "subscribed_modules", None)

    @app.route("/api/navigation", methods=["GET"], endpoint="modules_navigation")
    @login_required
    def modules_navigation():
        tenant = getattr(g, "tenant", None)
        nav = service.navigation_for_user(
            current_user(), _subscribed(), tenant_id=tenant.id if tenant else None
        )
        return jsonify({"navigation": nav})

    @app.route("/api/modules", methods=["GET"], endpoint="modules_index")
    @login_required
    @admin_modules
    def modules_index():
        return jsonify({"modules": service.get_structure(), "statistics": service.statistics()})

    @app.route("/api/modules/<code>/requirements", methods=["GET"], endpoint="modules_requirements")
    @login_required
    @admin_modules
    def modules_requirements(code: str):
        requirements = service.requirements_for(code)
        if not requirements:
            return jsonify({"success": False, "message": "Module not found."}), 404
        return jsonify(requirements)

    @app.route("/api/modules", methods=["POST"], endpoint="modules_upsert")
    @login_required
    @module_required("ADMIN", "MODULES", "CREATE_MODULE_BTN")
    def modules_upsert():
        try:
            module_id = service.create_or_update_module(payload())
            return jsonify({"success": True, "message": "Module saved successfully.", "id": module_id})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/modules/<int:module_id>/sub-modules", methods=["POST"], endpoint="modules_sub_upsert")
    @login_required
    @module_required("ADMIN", "MODULES", "EDIT_MODULE_BTN")
    def modules_sub_upsert(module_id: int):
        try:
            sub_module_id = service.create_or_update_sub_module(module_id, payload())
            return jsonify({"success": True, "message": "Sub-module saved successfully.", "id": sub_module_id})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/modules/<int:module_id>/components", methods=["POST"], endpoint="modules_component_upsert")
    @login_required
    @module_required("ADMIN", "MODULES", "EDIT_MODULE_BTN")
    def modules_component_upsert(module_id: int):
        data = payload()
        try:
            sub_module_id = data.get("sub_module_id")
            component_id = service.create_or_update_component(
                module_id, int(sub_module_id) if sub_module_id else None, data
            )
            return jsonify({"success": True, "message": "Component saved successfully.", "id": component_id})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/modules/permissions/<level>/<int:entity_id>", methods=["PUT"], endpoint="modules_sync_permissions")
    @login_required
    @module_required("ADMIN", "MODULES", "EDIT_MODULE_BTN")
    def modules_sync_permissions(level: str, entity_id: int):
        sync = {
            "module": service.sync_module_permissions,
            "sub-module": service.sync_sub_module_permissions,
            "component": service.sync_component_permissions,
        }.get(level)
        if sync is None:
            return jsonify({"success": False, "message": "Unknown level."}), 404
        try:
            permissions = payload().get("permissions")
            if not isinstance(permissions, list):
                raise ValidationError("The permissions field must be a list.")
            count = sync(entity_id, permissions)
            return jsonify({"success": True, "message": "Permissions synced successfully.", "count": count})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/modules/requirements/<int:requirement_id>", methods=["DELETE"], endpoint="modules_remove_requirement")
    @login_required
    @module_required("ADMIN", "MODULES", "DELETE_MODULE_BTN")
    def modules_remove_requirement(requirement_id: int):
        if not service.remove_requirement(requirement_id):
            return jsonify({"success": False, "message": "Requirement not found."}), 404
        return jsonify({"success": True, "message": "Requirement removed successfully."})

    @app.route("/api/modules/cache", methods=["DELETE"], endpoint="modules_clear_cache")
    @login_required
    @admin_modules
    def modules_clear_cache():
        service.clear_cache()
        return jsonify({"success": True, "message": "Module cache cleared."})
