from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import arg_int, current_user, error_response, login_required, payload
from ..core.exceptions import DomainError
from ..modules.middleware import module_required
from .validators.base import PunchContext


def register(app: Flask, container) -> None:
    service = container.attendance_service
    guard = module_required("SELF_SERVICE", "MY_ATTENDANCE")

    @app.route("/api/attendance/types", methods=["GET"], endpoint="attendance_types")
    @login_required
    @guard
    def attendance_types():
        return jsonify({"types": [t.to_dict() for t in service.list_types()]})

    @app.route("/api/attendance/validate", methods=["POST"], endpoint="attendance_validate")
    @login_required
    @guard
    def attendance_validate():
        data = payload()
        try:
            ctx = PunchContext.from_payload(data, now=container.clock(), ip=request.remote_addr)
            outcome = service.check(int(data.get("attendance_type_id") or 0), ctx)
            return jsonify(outcome.to_dict()), outcome.status_code
        except DomainError as e:
            return error_response(e)

    @app.route("/api/attendance/punch", methods=["POST"], endpoint="attendance_punch")
    @login_required
    @module_required("SELF_SERVICE", "MY_ATTENDANCE", "PUNCH_ACTION")
    def attendance_punch():
        data = payload()
        try:
            result = service.punch(
                current_user(),
                int(data.get("attendance_type_id") or 0),
                data,
                ip=request.remote_addr,
            )
            return jsonify({"success": True, **result})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @login_required
    @guard
    def attendance_today():
        record = service.today(current_user().user_id)
        return jsonify({"record": record.to_dict() if record else None})

    @app.route("/api/attendance/history", methods=["GET"], endpoint="attendance_history")
    @login_required
    @guard
    def attendance_history():
        rows = service.history(current_user().user_id, limit=arg_int("limit", 15))
        return jsonify({"records": [r.to_dict() for r in rows]})
