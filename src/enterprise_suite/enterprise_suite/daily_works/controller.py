from __future__ import annotations

from datetime import date
from io import BytesIO

from flask import Flask, jsonify, request, send_file

from ..common.logging_config import get_logger
from ..common.validators import require_date
from ..common.web import arg_date, arg_int, current_user, error_response, id_list, login_required, payload
from ..core.exceptions import DomainError
from ..modules.middleware import module_required
from .export import export_daily_works
from .summary_service import overall_metrics

logger = get_logger(__name__)


def register(app: Flask, container) -> None:
    service = container.daily_work_service
    ppm = module_required("PPM", "DAILY_WORKS")

    def _filters() -> dict:
        return {
            "status": request.args.get("status") or None,
            "incharge": arg_int("incharge"),
            "type": request.args.get("type") or None,
            "start_date": arg_date("start_date"),
            "end_date": arg_date("end_date"),
            "search": request.args.get("search") or "",
            "only_objected": request.args.get("only_objected") in ("1", "true"),
        }

    @app.route("/api/daily-works", methods=["GET"], endpoint="daily_works_index")
    @login_required
    @ppm
    def daily_works_index():
        try:
            result = service.paginate(
                filters=_filters(),
                current_user=current_user(),
                page=arg_int("page", 1),
                per_page=arg_int("perPage", 30),
            )
            return jsonify(result)
        except DomainError as e:
            return error_response(e)

    @app.route("/api/daily-works", methods=["POST"], endpoint="daily_works_add")
    @login_required
    @ppm
    def daily_works_add():
        try:
            work = service.create(data=payload(), current_user=current_user())
            return jsonify({"success": True, "message": "Daily work added successfully", "daily_work": work.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/daily-works/<int:work_id>", methods=["PUT", "POST"], endpoint="daily_works_update")
    @login_required
    @ppm
    def daily_works_update(work_id: int):
        try:
            work = service.update(work_id, data=payload(), current_user=current_user())
            return jsonify({"success": True, "message": "Daily work updated successfully", "daily_work": work.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/daily-works/<int:work_id>", methods=["DELETE"], endpoint="daily_works_delete")
    @login_required
    @ppm
    def daily_works_delete(work_id: int):
        try:
            message = service.delete(work_id, current_user=current_user())
            return jsonify({"success": True, "message": message})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/daily-works/<int:work_id>/status", methods=["POST"], endpoint="daily_works_status")
    @login_required
    @ppm
    def daily_works_status(work_id: int):
        data = payload()
        try:
            work = service.update_status(
                work_id,
                status=data.get("status") or "",
                inspection_result=data.get("inspection_result"),
                current_user=current_user(),
            )
            return jsonify({"success": True, "message": "Status updated successfully", "daily_work": work.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/daily-works/<int:work_id>/inspection-details", methods=["POST"], endpoint="daily_works_details")
    @login_required
    @ppm
    def daily_works_details(work_id: int):
        try:
            work = service.update_inspection_details(
                work_id, details=payload().get("inspection_details"), current_user=current_user()
            )
            return jsonify({"success": True, "message": "Inspection details updated successfully", "daily_work": work.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/daily-works/<int:work_id>/assignment", methods=["POST"], endpoint="daily_works_assign")
    @login_required
    @ppm
    def daily_works_assign(work_id: int):
        data = payload()
        try:
            work = service.update_assignment(
                work_id,
                incharge=data.get("incharge"),
                assigned=data.get("assigned"),
                current_user=current_user(),
            )
            return jsonify({"success": True, "message": "Assignment updated successfully", "daily_work": work.to_dict()})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/daily-works/<int:work_id>/submission-time", methods=["POST"], endpoint="daily_works_submission")
    @login_required
    @ppm
    def daily_works_submission(work_id: int):
        data = payload()
        try:
            result = service.update_submission_time(
                work_id,
                submission_date=data.get("rfi_submission_date") or data.get("submission_date"),
                current_user=current_user(),
                override_confirmed=bool(data.get("override_confirmed")),
                override_reason=data.get("override_reason"),
            )
        except DomainError as e:
            return error_response(e)
        return jsonify(result), (200 if result["success"] else 422)

    @app.route("/api/daily-works/bulk-submit", methods=["POST"], endpoint="daily_works_bulk_submit")
    @login_required
    @ppm
    def daily_works_bulk_submit():
        data = payload()
        try:
            result = service.bulk_submit(
                daily_work_ids=id_list(data.get("daily_work_ids")),
                submission_date=data.get("submission_date"),
                current_user=current_user(),
                skip_objected=bool(data.get("skip_objected")),
                override_objected=bool(data.get("override_objected")),
                override_reason=data.get("override_reason"),
            )
        except DomainError as e:
            return error_response(e)
        return jsonify(result), (422 if result.get("requires_decision") else 200)

    @app.route("/api/daily-works/import", methods=["POST"], endpoint="daily_works_import")
    @login_required
    @module_required("PPM", "DAILY_WORKS", "IMPORT_DAILY_WORK_BTN")
    def daily_works_import():
        upload = request.files.get("file")
        if upload is None:
            return jsonify({"success": False, "message": "The file field is required."}), 422
        try:
            results = container.daily_work_import_service.import_workbook(upload.stream, current_user=current_user())
            return jsonify({"success": True, "message": "Import completed successfully.", "results": results})
        except DomainError as e:
            return error_response(e)

    @app.route("/api/daily-works/export", methods=["GET"], endpoint="daily_works_export")
    @login_required
    @module_required("PPM", "DAILY_WORKS", "EXPORT_DAILY_WORK_BTN")
    def daily_works_export():
        result = service.paginate(filters=_filters(), current_user=current_user(), page=1, per_page=10000)
        works = container.daily_works_repo.get_many([row["id"] for row in result["data"]])
        content = export_daily_works(works)
        return send_file(
            BytesIO(content),
            mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            as_attachment=True,
            download_name=f"daily_works_{date.today():%Y%m%d}.xlsx",
        )

    @app.route("/api/daily-work-summaries", methods=["GET"], endpoint="daily_work_summaries")
    @login_required
    @module_required("PPM", "DAILY_WORKS")
    def daily_work_summaries():
        end = arg_date("end_date") or date.today()
        start = arg_date("start_date") or end.replace(day=1)
        summaries = container.daily_work_summaries_repo.list_between(start, end)
        return jsonify(
            {
                "summaries": container.daily_work_summary_service.list_between(start, end),
                "metrics": overall_metrics(summaries),
            }
        )

    @app.route("/api/daily-work-summaries/refresh", methods=["POST"], endpoint="daily_work_summaries_refresh")
    @login_required
    @module_required("PPM", "DAILY_WORKS")
    def daily_work_summaries_refresh():
        data = payload()
        try:
            start = require_date(data.get("start_date"), "start date")
            end = require_date(data.get("end_date") or data.get("start_date"), "end date")
        except DomainError as e:
            return error_response(e)
        count = container.daily_work_summary_service.refresh_range(start, end)
        return jsonify({"success": True, "message": f"{count} summaries refreshed.", "count": count})
