from __future__ import annotations

from io import BytesIO

from flask import Flask, jsonify, request, send_file

from ..common.web import current_user, error_response, login_required, payload
from ..core.exceptions import DomainError
from ..modules.middleware import module_required
from .qr import registration_qr_png


def register(app: Flask, container) -> None:
    service = container.event_service
    events_guard = module_required("EVENTS", "EVENT_LIST")
    registrations_guard = module_required("EVENTS", "REGISTRATIONS")

    # ---- admin: events ----

    @app.route("/api/events", methods=["GET"], endpoint="events_index")
    @login_required
    @events_guard
    def events_index():
        return jsonify({"events": [e.to_dict() for e in service.list_events()]})

    @app.route("/api/events", methods=["POST"], endpoint="events_store")
    @login_required
    @module_required("EVENTS", "EVENT_LIST", "CREATE_EVENT_BTN")
    def events_store():
        try:
            event = service.create(payload(), current_user=current_user())
            return jsonify({"success": True, "message": "Event created successfully.", "event": event.to_dict()}), 201
        except DomainError as e:
            return error_response(e)

    @app.route("/api/events/<int:event_id>", methods=["GET"], endpoint="events_show")
    @login_required
    @events_guard
    def events_show(event_id: int):
        try:
            return jsonify({"event": service.details(event_id)})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/events/<int:event_id>", methods=["PUT"], endpoint="events_update")
    @login_required
    @module_required("EVENTS", "EVENT_LIST", "EDIT_EVENT_BTN")
    def events_update(event_id: int):
        try:
            event = service.update(event_id, payload(), current_user=current_user())
            return jsonify({"success": True, "message": "Event updated successfully.", "event": event.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/events/<int:event_id>", methods=["DELETE"], endpoint="events_destroy")
    @login_required
    @module_required("EVENTS", "EVENT_LIST", "DELETE_EVENT_BTN")
    def events_destroy(event_id: int):
        try:
            service.delete(event_id, current_user=current_user())
            return jsonify({"success": True, "message": "Event deleted successfully."})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/events/<int:event_id>/publish", methods=["POST"], endpoint="events_publish")
    @login_required
    @module_required("EVENTS", "EVENT_LIST", "PUBLISH_EVENT_BTN")
    def events_publish(event_id: int):
        try:
            if payload().get("published", True) in (False, "0", "false"):
                event = service.unpublish(event_id, current_user=current_user())
                message = "Event unpublished successfully."
            else:
                event = service.publish(event_id, current_user=current_user())
                message = "Event published successfully."
            return jsonify({"success": True, "message": message, "event": event.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/events/<int:event_id>/sub-events", methods=["POST"], endpoint="events_sub_event_store")
    @login_required
    @module_required("EVENTS", "EVENT_LIST", "EDIT_EVENT_BTN")
    def events_sub_event_store(event_id: int):
        try:
            sub = service.save_sub_event(event_id, payload(), current_user=current_user())
            return jsonify({"success": True, "sub_event": sub.to_dict()}), 201
        except DomainError as e:
            return error_response(e)

    @app.route(
        "/api/events/<int:event_id>/sub-events/<int:sub_event_id>",
        methods=["PUT"],
        endpoint="events_sub_event_update",
    )
    @login_required
    @module_required("EVENTS", "EVENT_LIST", "EDIT_EVENT_BTN")
    def events_sub_event_update(event_id: int, sub_event_id: int):
        try:
            sub = service.save_sub_event(event_id, payload(), current_user=current_user(), sub_event_id=sub_event_id)
            return jsonify({"success": True, "sub_event": sub.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route(
        "/api/events/<int:event_id>/sub-events/<int:sub_event_id>",
        methods=["DELETE"],
        endpoint="events_sub_event_destroy",
    )
    @login_required
    @module_required("EVENTS", "EVENT_LIST", "EDIT_EVENT_BTN")
    def events_sub_event_destroy(event_id: int, sub_event_id: int):
        try:
            service.delete_sub_event(event_id, sub_event_id, current_user=current_user())
            return jsonify({"success": True, "message": "Sub-event deleted successfully."})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/events/<int:event_id>/custom-fields", methods=["PUT"], endpoint="events_custom_fields")
    @login_required
    @module_required("EVENTS", "EVENT_LIST", "EDIT_EVENT_BTN")
    def events_custom_fields(event_id: int):
        try:
            fields = service.replace_custom_fields(event_id, payload().get("fields") or [], current_user=current_user())
            return jsonify({"success": True, "custom_fields": [f.to_dict() for f in fields]})
        except DomainError as e:
            return error_response(e)

    # ---- admin: registrations ----

    @app.route("/api/events/<int:event_id>/registrations", methods=["GET"], endpoint="events_registrations")
    @login_required
    @registrations_guard
    def events_registrations(event_id: int):
        try:
            rows = service.registrations(event_id, status=request.args.get("status") or None)
            return jsonify({"registrations": [r.to_dict() for r in rows], "statistics": service.statistics(event_id)})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/registrations/<int:registration_id>/approve", methods=["POST"], endpoint="registrations_approve")
    @login_required
    @module_required("EVENTS", "REGISTRATIONS", "APPROVE_REGISTRATION_BTN")
    def registrations_approve(registration_id: int):
        try:
            reg = service.approve(registration_id, current_user=current_user())
            return jsonify({"success": True, "message": "Registration approved.", "registration": reg.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/registrations/<int:registration_id>/reject", methods=["POST"], endpoint="registrations_reject")
    @login_required
    @module_required("EVENTS", "REGISTRATIONS", "REJECT_REGISTRATION_BTN")
    def registrations_reject(registration_id: int):
        try:
            reg = service.reject(registration_id, reason=payload().get("reason"), current_user=current_user())
            return jsonify({"success": True, "message": "Registration rejected.", "registration": reg.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route(
        "/api/registrations/<int:registration_id>/verify-payment",
        methods=["POST"],
        endpoint="registrations_verify_payment",
    )
    @login_required
    @module_required("EVENTS", "REGISTRATIONS", "VERIFY_PAYMENT_BTN")
    def registrations_verify_payment(registration_id: int):
        try:
            reg = service.verify_payment(registration_id, current_user=current_user())
            return jsonify({"success": True, "message": "Payment verified.", "registration": reg.to_dict()})
        except DomainError as e:
            return error_response(e)

    # ---- public ----

    @app.route("/api/public/events", methods=["GET"], endpoint="public_events_index")
    def public_events_index():
        return jsonify({"events": [e.to_dict() for e in service.list_events(published_only=True)]})

    @app.route("/api/public/events/<slug>", methods=["GET"], endpoint="public_events_show")
    def public_events_show(slug: str):
        try:
            event = service.get_by_slug(slug)
            if not event.is_published:
                return jsonify({"success": False, "message": "Event not found."}), 404
            return jsonify({"event": service.details(event.id)})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/public/events/<slug>/register", methods=["POST"], endpoint="public_events_register")
    def public_events_register(slug: str):
        try:
            event = service.get_by_slug(slug)
            reg = service.register(event.id, payload())
            return jsonify(
                {
                    "success": True,
                    "message": "Registration submitted successfully.",
                    "token": reg.token,
                    "registration": reg.to_dict(),
                }
            ), 201
        except DomainError as e:
            return error_response(e)

    @app.route("/api/public/registrations/<token>", methods=["GET"], endpoint="public_registration_lookup")
    def public_registration_lookup(token: str):
        try:
            reg = service.lookup(token)
            return jsonify({"registration": reg.to_dict(), "event": service.get(reg.event_id).to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/public/registrations/<token>/cancel", methods=["POST"], endpoint="public_registration_cancel")
    def public_registration_cancel(token: str):
        try:
            reg = service.cancel(token)
            return jsonify({"success": True, "message": "Registration cancelled.", "registration": reg.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/public/registrations/<token>/qr", methods=["GET"], endpoint="public_registration_qr")
    def public_registration_qr(token: str):
        try:
            reg = service.lookup(token)
        except DomainError as e:
            return error_response(e)
        return send_file(BytesIO(registration_qr_png(reg.token)), mimetype="image/png")
