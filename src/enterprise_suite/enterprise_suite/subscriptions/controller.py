from __future__ import annotations

from flask import Flask, g, jsonify

from ..common.web import admin_required, error_response, login_required, payload
from ..core.exceptions import DomainError, ValidationError


def register(app: Flask, container) -> None:
    service = container.subscription_service
    subscriptions = container.subscriptions_repo

    @app.route("/api/plans", methods=["GET"], endpoint="plans_public")
    def plans_public():
        return jsonify(
            {
                "plans": service.list_plans(active_only=True),
                "modules": [m.to_dict() for m in service.list_modules(active_only=True)],
            }
        )

    @app.route("/api/subscription", methods=["GET"], endpoint="subscription_current")
    @login_required
    def subscription_current():
        tenant = getattr(g, "tenant", None)
        if tenant is None:
            return jsonify({"success": False, "message": "No tenant for this domain."}), 404
        sub = subscriptions.latest_subscription(tenant.id)
        if sub is None:
            return jsonify({"subscription": None})
        now = container.clock()
        body = sub.to_dict()
        body.update(
            {
                "is_on_trial": sub.is_on_trial(now),
                "is_expired": sub.is_expired(now),
                "days_until_expiry": sub.days_until_expiry(now),
            }
        )
        return jsonify({"subscription": body})

    @app.route("/api/admin/plans", methods=["GET"], endpoint="admin_plans_index")
    @admin_required
    def admin_plans_index():
        return jsonify({"plans": service.list_plans(), "stats": service.stats()})

    @app.route("/api/admin/plans", methods=["POST"], endpoint="admin_plans_store")
    @admin_required
    def admin_plans_store():
        try:
            plan = service.create_plan(payload())
            return jsonify({"success": True, "message": "Plan created successfully.", "plan": plan.to_dict()}), 201
        except DomainError as e:
            return error_response(e)

    @app.route("/api/admin/plans/<int:plan_id>", methods=["PUT"], endpoint="admin_plans_update")
    @admin_required
    def admin_plans_update(plan_id: int):
        try:
            plan = service.update_plan(plan_id, payload())
            return jsonify({"success": True, "message": "Plan updated successfully.", "plan": plan.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/admin/plans/<int:plan_id>", methods=["DELETE"], endpoint="admin_plans_delete")
    @admin_required
    def admin_plans_delete(plan_id: int):
        try:
            service.delete_plan(plan_id)
            return jsonify({"success": True, "message": "Plan deleted successfully."})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/admin/plans/<int:plan_id>/modules", methods=["PUT"], endpoint="admin_plans_modules")
    @admin_required
    def admin_plans_modules(plan_id: int):
        try:
            modules = payload().get("modules")
            if not isinstance(modules, list):
                raise ValidationError("The modules field must be a list.")
            count = service.set_plan_modules(plan_id, modules)
            return jsonify({"success": True, "message": "Plan modules updated successfully.", "count": count})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/admin/billable-modules", methods=["GET"], endpoint="admin_modules_index")
    @admin_required
    def admin_modules_index():
        return jsonify({"modules": [m.to_dict() for m in service.list_modules()]})

    @app.route("/api/admin/billable-modules", methods=["POST"], endpoint="admin_modules_store")
    @admin_required
    def admin_modules_store():
        try:
            module = service.create_module(payload())
            return jsonify({"success": True, "message": "Module created successfully.", "module": module.to_dict()}), 201
        except DomainError as e:
            return error_response(e)

    @app.route("/api/admin/billable-modules/<int:module_id>", methods=["PUT"], endpoint="admin_modules_update")
    @admin_required
    def admin_modules_update(module_id: int):
        try:
            module = service.update_module(module_id, payload())
            return jsonify({"success": True, "message": "Module updated successfully.", "module": module.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/admin/billable-modules/<int:module_id>", methods=["DELETE"], endpoint="admin_modules_delete")
    @admin_required
    def admin_modules_delete(module_id: int):
        try:
            service.delete_module(module_id)
            return jsonify({"success": True, "message": "Module deleted successfully."})
        except DomainError as e:
            return error_response(e)
