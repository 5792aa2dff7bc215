from __future__ import annotations

from flask import Flask, g, jsonify, request, session

from ..common.logging_config import bind_tenant, get_logger, unbind_tenant
from ..common.web import error_response, payload
from ..core.exceptions import DomainError

logger = get_logger(__name__)


def install_tenant_hooks(app: Flask, container) -> None:
    """Resolve the tenant from the host and bind its database for the request."""
    resolver = container.tenant_resolver
    router = container.tenant_router
    subscriptions = container.subscription_service

    @app.before_request
    def _bind_tenant():
        g.tenant = None
        try:
            tenant = resolver.resolve(request.host)
        except DomainError as e:
            return error_response(e)
        if session.get("user") and session.get("tenant_id") != (tenant.id if tenant else None):
            # a session minted on another domain is not valid here
            session.clear()
        if tenant is None:
            return None
        g.tenant = tenant
        g.subscribed_modules = subscriptions.tenant_module_codes(tenant.id)
        g._tenant_db_token = router.bind(tenant.database)
        g._tenant_log_token = bind_tenant(tenant.id)
        return None

    @app.teardown_request
    def _unbind_tenant(exc):
        db_token = g.pop("_tenant_db_token", None)
        if db_token is not None:
            router.unbind(db_token)
        log_token = g.pop("_tenant_log_token", None)
        if log_token is not None:
            unbind_tenant(log_token)


def register(app: Flask, container) -> None:
    service = container.registration_service

    @app.route("/api/register/check-slug", methods=["GET"], endpoint="register_check_slug")
    def register_check_slug():
        return jsonify(service.check_slug_availability(request.args.get("slug")))

    @app.route("/api/register", methods=["POST"], endpoint="register_tenant")
    def register_tenant():
        data = payload()
        try:
            result = service.register(data)
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("Tenant registration failed")
            return (
                jsonify(
                    {
                        "success": False,
                        "message": "There was an error creating your account. Please try again or contact support.",
                    }
                ),
                500,
            )
        return (
            jsonify(
                {
                    "success": True,
                    "message": "Your company account has been created successfully!",
                    "tenant": result.tenant.to_dict(),
                    "subscription_id": result.subscription_id,
                    "total_amount": result.total_amount,
                }
            ),
            201,
        )
