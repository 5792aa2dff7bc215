from __future__ import annotations

from io import BytesIO

from flask import Flask, jsonify, request, send_file

from ..common.web import arg_date, arg_int, current_user, error_response, id_list, login_required, payload
from ..core.exceptions import DomainError, ValidationError
from ..modules.middleware import module_required
from .export import export_leave_summary


def register(app: Flask, container) -> None:
    service = container.leave_service
    query = container.leave_query_service
    bulk = container.bulk_leave_validator
    own_leaves = module_required("SELF_SERVICE", "MY_LEAVES")
    hr_leaves = module_required("HRM", "LEAVES")

    @app.route("/api/leaves", methods=["GET"], endpoint="leaves_index")
    @login_required
    @own_leaves
    def leaves_index():
        filters = {
            "user_id": arg_int("user_id"),
            "admin_view": request.args.get("admin_view") in ("1", "true"),
            "year": arg_int("year"),
            "month": request.args.get("month") or None,
            "employee": request.args.get("employee") or None,
            "status": request.args.getlist("status") or None,
            "leave_type": request.args.getlist("leave_type") or None,
            "department": request.args.getlist("department") or None,
        }
        user = current_user()
        result = query.filter(filters=filters, current_user=user, page=arg_int("page", 1), per_page=arg_int("perPage", 30))
        result["leave_types"] = [s.to_dict() for s in container.leaves_repo.list_settings()]
        result["balances"] = query.balances(filters["user_id"] or user.user_id, filters["year"])
        return jsonify(result)

    @app.route("/api/leaves", methods=["POST"], endpoint="leaves_apply")
    @login_required
    @module_required("SELF_SERVICE", "MY_LEAVES", "CREATE_LEAVE_BTN")
    def leaves_apply():
        data = payload()
        try:
            leave = service.apply(
                leave_type_id=data.get("leave_type_id") or 0,
                from_date=data.get("from_date"),
                to_date=data.get("to_date"),
                reason=data.get("reason"),
                user_id=data.get("user_id"),
                current_user=current_user(),
            )
            return jsonify({"success": True, "message": "Leave application submitted successfully.", "leave": leave.to_dict()}), 201
        except DomainError as e:
            return error_response(e)

    @app.route("/api/leaves/<int:leave_id>", methods=["DELETE"], endpoint="leaves_delete")
    @login_required
    @own_leaves
    def leaves_delete(leave_id: int):
        try:
            service.delete(leave_id, current_user=current_user())
            return jsonify({"success": True, "message": "Leave deleted successfully."})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/leaves/<int:leave_id>/approve", methods=["POST"], endpoint="leaves_approve")
    @login_required
    @hr_leaves
    def leaves_approve(leave_id: int):
        try:
            leave = service.approve(leave_id, current_user=current_user(), comments=payload().get("comments"))
            return jsonify({"success": True, "message": "Leave approved successfully.", "leave": leave.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/leaves/<int:leave_id>/reject", methods=["POST"], endpoint="leaves_reject")
    @login_required
    @hr_leaves
    def leaves_reject(leave_id: int):
        try:
            leave = service.reject(leave_id, reason=payload().get("reason"), current_user=current_user())
            return jsonify({"success": True, "message": "Leave rejected successfully.", "leave": leave.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/leaves/bulk-approve", methods=["POST"], endpoint="leaves_bulk_approve")
    @login_required
    @hr_leaves
    def leaves_bulk_approve():
        result = service.bulk_approve(id_list(payload().get("leave_ids")), current_user=current_user())
        return jsonify({"success": True, **result})

    @app.route("/api/leaves/bulk-reject", methods=["POST"], endpoint="leaves_bulk_reject")
    @login_required
    @hr_leaves
    def leaves_bulk_reject():
        data = payload()
        try:
            result = service.bulk_reject(id_list(data.get("leave_ids")), reason=data.get("reason"), current_user=current_user())
            return jsonify({"success": True, **result})
        except DomainError as e:
            return error_response(e)

    def _bulk_args(data: dict) -> tuple[int, list, int]:
        dates = data.get("dates")
        if not isinstance(dates, list) or not dates:
            raise ValidationError("Please select at least one date.")
        user = current_user()
        user_id = int(data.get("user_id") or user.user_id)
        if user_id != user.user_id and not user.is_admin:
            raise ValidationError("You can only apply leave for yourself.")
        return user_id, dates, int(data.get("leave_type_id") or 0)

    @app.route("/api/leaves/bulk/validate", methods=["POST"], endpoint="leaves_bulk_validate")
    @login_required
    @own_leaves
    def leaves_bulk_validate():
        try:
            user_id, dates, leave_type_id = _bulk_args(payload())
            return jsonify({"success": True, **bulk.validate(user_id, dates, leave_type_id)})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/leaves/bulk", methods=["POST"], endpoint="leaves_bulk_create")
    @login_required
    @module_required("SELF_SERVICE", "MY_LEAVES", "CREATE_LEAVE_BTN")
    def leaves_bulk_create():
        data = payload()
        try:
            user_id, dates, leave_type_id = _bulk_args(data)
            result = bulk.bulk_create(
                service,
                user_id=user_id,
                dates=dates,
                leave_type_id=leave_type_id,
                reason=data.get("reason"),
                current_user=current_user(),
            )
            return jsonify({"success": True, "message": "Leave requests created successfully.", **result}), 201
        except DomainError as e:
            return error_response(e)

    @app.route("/api/leaves/statistics", methods=["GET"], endpoint="leaves_statistics")
    @login_required
    @module_required("HRM", "LEAVES", "ANALYTICS_LEAVE_BTN")
    def leaves_statistics():
        return jsonify(query.statistics(arg_int("year")))

    @app.route("/api/leaves/export", methods=["GET"], endpoint="leaves_export")
    @login_required
    @hr_leaves
    def leaves_export():
        year = arg_int("year")
        rows = query.summary(year, department_id=arg_int("department"))
        return send_file(
            BytesIO(export_leave_summary(rows)),
            mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            as_attachment=True,
            download_name=f"leave_summary_{year or container.clock().year}.xlsx",
        )

    @app.route("/api/holidays", methods=["GET"], endpoint="holidays_index")
    @login_required
    def holidays_index():
        today = container.clock().date()
        try:
            start = arg_date("start_date") or today.replace(month=1, day=1)
            end = arg_date("end_date") or today.replace(month=12, day=31)
            dates = query.holiday_dates(start, end)
        except DomainError as e:
            return error_response(e)
        return jsonify({"holidays": [d.isoformat() for d in dates]})
