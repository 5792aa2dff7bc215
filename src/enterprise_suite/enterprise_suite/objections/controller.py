from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import arg_int, current_user, error_response, id_list, login_required, payload
from ..core.exceptions import DomainError
from ..modules.middleware import module_required
from .chainage import parse_location_to_meters


def register(app: Flask, container) -> None:
    service = container.objection_service
    guard = module_required("PPM", "DAILY_WORKS")

    def _log_dict(log) -> dict:
        return {
            "from_status": log.from_status.value if log.from_status else None,
            "from_status_label": log.from_status_label,
            "to_status": log.to_status.value,
            "to_status_label": log.to_status_label,
            "notes": log.notes,
            "changed_by": log.changed_by,
            "changed_at": log.changed_at.isoformat() if log.changed_at else None,
        }

    @app.route("/api/objections", methods=["GET"], endpoint="objections_index")
    @login_required
    @guard
    def objections_index():
        filters = {
            "status": request.args.get("status") or None,
            "category": request.args.get("category") or None,
            "search": request.args.get("search") or "",
        }
        return jsonify(service.paginate(filters=filters, page=arg_int("page", 1)))

    @app.route("/api/objections", methods=["POST"], endpoint="objections_store")
    @login_required
    @guard
    def objections_store():
        try:
            objection = service.create(data=payload(), current_user=current_user())
            return jsonify({"success": True, "message": "Objection created successfully.", "objection": objection.to_dict()}), 201
        except DomainError as e:
            return error_response(e)

    @app.route("/api/objections/<int:objection_id>", methods=["GET"], endpoint="objections_show")
    @login_required
    @guard
    def objections_show(objection_id: int):
        try:
            objection = service.get(objection_id)
            data = objection.to_dict()
            data["daily_work_ids"] = list(container.objections_repo.list_attached_daily_work_ids(objection_id))
            return jsonify({"objection": data})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/objections/<int:objection_id>", methods=["PUT"], endpoint="objections_update")
    @login_required
    @guard
    def objections_update(objection_id: int):
        try:
            objection = service.update(objection_id, data=payload(), current_user=current_user())
            return jsonify({"success": True, "message": "Objection updated successfully.", "objection": objection.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/objections/<int:objection_id>", methods=["DELETE"], endpoint="objections_delete")
    @login_required
    @guard
    def objections_delete(objection_id: int):
        try:
            return jsonify({"success": True, "message": service.delete(objection_id, current_user=current_user())})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/objections/<int:objection_id>/<action>", methods=["POST"], endpoint="objections_transition")
    @login_required
    @guard
    def objections_transition(objection_id: int, action: str):
        handlers = {
            "submit": service.submit,
            "review": service.start_review,
            "resolve": service.resolve,
            "reject": service.reject,
        }
        handler = handlers.get(action)
        if handler is None:
            return jsonify({"success": False, "message": "Unknown action."}), 404
        try:
            objection = handler(objection_id, current_user=current_user(), notes=payload().get("notes"))
            return jsonify(
                {
                    "success": True,
                    "message": f"Objection status changed to {objection.status_label}.",
                    "objection": objection.to_dict(),
                }
            )
        except DomainError as e:
            return error_response(e)

    @app.route("/api/objections/<int:objection_id>/rfis", methods=["POST"], endpoint="objections_attach")
    @login_required
    @guard
    def objections_attach(objection_id: int):
        data = payload()
        try:
            count = service.attach_to_rfis(
                objection_id,
                rfi_ids=id_list(data.get("daily_work_ids")),
                current_user=current_user(),
                notes=data.get("notes"),
            )
            return jsonify({"success": True, "message": f"{count} RFI(s) attached successfully.", "attached": count})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/objections/<int:objection_id>/rfis", methods=["DELETE"], endpoint="objections_detach")
    @login_required
    @guard
    def objections_detach(objection_id: int):
        try:
            count = service.detach_from_rfis(objection_id, rfi_ids=id_list(payload().get("daily_work_ids")))
            return jsonify({"success": True, "message": f"{count} RFI(s) detached successfully.", "detached": count})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/objections/<int:objection_id>/suggestions", methods=["GET"], endpoint="objections_suggest")
    @login_required
    @guard
    def objections_suggest(objection_id: int):
        try:
            suggestions = service.suggest_affected_rfis(objection_id, limit=arg_int("limit", 100))
            return jsonify({"suggestions": suggestions, "count": len(suggestions)})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/objections/<int:objection_id>/logs", methods=["GET"], endpoint="objections_logs")
    @login_required
    @guard
    def objections_logs(objection_id: int):
        try:
            return jsonify({"logs": [_log_dict(log) for log in service.status_logs(objection_id)]})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/daily-works/<int:work_id>/objections", methods=["GET"], endpoint="daily_work_objections")
    @login_required
    @guard
    def daily_work_objections(work_id: int):
        objections = service.objections_for_rfi(work_id)
        return jsonify(
            {
                "objections": [o.to_dict() for o in objections],
                "active_count": sum(1 for o in objections if o.is_active),
            }
        )

    @app.route("/api/chainages/parse", methods=["GET"], endpoint="chainages_parse")
    @login_required
    def chainages_parse():
        return jsonify(parse_location_to_meters(request.args.get("location")).as_dict())
