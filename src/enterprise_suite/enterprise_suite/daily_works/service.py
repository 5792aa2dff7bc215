from __future__ import annotations

import math
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.logging_config import get_logger
from ..common.validators import require_date
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import DailyWorkStatus, InspectionResult
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..objections.model import RfiSubmissionOverrideLog
from ..objections.repository import ObjectionRepository
from ..users.model import SessionUser
from .jurisdiction import JurisdictionMatcher
from .model import DailyWork
from .repository import DailyWorkRepository
from .validation import DailyWorkValidator

logger = get_logger(__name__)

VIEW_PERMISSION = "daily-works.view"


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def resubmission_label(count: int, on_date: date) -> str:
    """``2nd Resubmission on 5th March 2025``"""
    return f"{ordinal(count)} Resubmission on {ordinal(on_date.day)} {on_date:%B %Y}"


class DailyWorkService:
    """Use cases around daily works (RFIs)."""

    def __init__(
        self,
        works: DailyWorkRepository,
        objections: ObjectionRepository,
        jurisdictions: JurisdictionMatcher,
        *,
        validator: Optional[DailyWorkValidator] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._works = works
        self._objections = objections
        self._jurisdictions = jurisdictions
        self._validator = validator or DailyWorkValidator()
        self._clock = clock

    def get(self, work_id: int) -> DailyWork:
        work = self._works.get(work_id)
        if not work:
            raise NotFoundError("Daily work not found.")
        return work

    def create(self, *, data: dict, current_user: SessionUser) -> DailyWork:
        values = self._validator.validate(data)
        if self._works.find_by_number(values["number"], work_date=values["date"]):
            raise ValidationError("A daily work with the same RFI number already exists on this date.")

        self._jurisdictions.assign_incharge(values)
        values["status"] = DailyWorkStatus.NEW
        work_id = self._works.create(values)
        logger.info("Daily work %s (%s) created by %s", work_id, values["number"], current_user.user_id)
        return self.get(work_id)

    def update(self, work_id: int, *, data: dict, current_user: SessionUser) -> DailyWork:
        existing = self.get(work_id)
        values = self._validator.validate(data, for_update=True)
        if self._works.find_by_number(values["number"], work_date=values["date"], exclude_id=work_id):
            raise ValidationError("A daily work with the same RFI number already exists on this date.")

        if values["location"] != existing.location:
            self._jurisdictions.assign_incharge(values)

        if values["number"] != existing.number and existing.inspection_result in (
            InspectionResult.FAIL,
            InspectionResult.REJECTED,
        ):
            count = existing.resubmission_count + 1
            values["resubmission_count"] = count
            values["resubmission_date"] = resubmission_label(count, self._clock().date())

        self._works.update(work_id, values)
        logger.info("Daily work %s updated by %s", work_id, current_user.user_id)
        return self.get(work_id)

    def delete(self, work_id: int, *, current_user: SessionUser) -> str:
        work = self.get(work_id)
        if not current_user.is_admin:
            raise AuthorizationError("You do not have permission to delete daily works.")
        self._works.soft_delete(work_id)
        logger.info("Daily work %s deleted by %s", work_id, current_user.user_id)
        return f"Daily work '{work.number}' deleted successfully"

    def paginate(
        self,
        *,
        filters: dict,
        current_user: SessionUser,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> dict:
        filters = dict(filters)
        search = (filters.pop("search", None) or "").strip()
        if search:
            filters["search_words"] = search.split()
        if not current_user.is_admin:
            filters["involved_user"] = current_user.user_id

        page = max(1, int(page))
        per_page = max(1, int(per_page))
        rows, total = self._works.search(filters=filters, limit=per_page, offset=(page - 1) * per_page)
        return {
            "data": [w.to_dict() for w in rows],
            "total": total,
            "page": page,
            "per_page": per_page,
            "last_page": max(1, math.ceil(total / per_page)),
        }

    def update_status(
        self,
        work_id: int,
        *,
        status: str,
        inspection_result: Optional[str] = None,
        current_user: SessionUser,
    ) -> DailyWork:
        work = self.get(work_id)
        try:
            new_status = DailyWorkStatus(status)
        except ValueError:
            raise ValidationError(
                "Status must be one of: " + ", ".join(s.value for s in DailyWorkStatus) + "."
            )

        changes: dict = {"status": new_status}
        if inspection_result:
            try:
                changes["inspection_result"] = InspectionResult(inspection_result)
            except ValueError:
                raise ValidationError("The selected inspection result is invalid.")

        now = self._clock()
        if new_status == DailyWorkStatus.COMPLETED:
            if not work.completion_time:
                changes["completion_time"] = now
            if not work.rfi_submission_date:
                changes["rfi_submission_date"] = now.date()
        elif new_status == DailyWorkStatus.NEW:
            changes["completion_time"] = None
            changes["rfi_submission_date"] = None
            changes["inspection_result"] = None

        self._works.update(work_id, changes)
        logger.info("Daily work %s status %s -> %s by %s", work_id, work.status.value, new_status.value, current_user.user_id)
        return self.get(work_id)

    def update_inspection_details(self, work_id: int, *, details: Optional[str], current_user: SessionUser) -> DailyWork:
        self.get(work_id)
        details = (details or "").strip() or None
        if details and len(details) > 1000:
            raise ValidationError("Inspection details cannot exceed 1000 characters.")
        self._works.update(work_id, {"inspection_details": details})
        return self.get(work_id)

    def update_assignment(
        self,
        work_id: int,
        *,
        incharge: Optional[int] = None,
        assigned: Optional[int] = None,
        current_user: SessionUser,
    ) -> DailyWork:
        self.get(work_id)
        if not current_user.is_admin:
            raise AuthorizationError("You do not have permission to reassign daily works.")
        changes = {}
        if incharge is not None:
            changes["incharge"] = int(incharge)
        if assigned is not None:
            changes["assigned"] = int(assigned)
        if changes:
            self._works.update(work_id, changes)
        return self.get(work_id)

    def _can_update_submission(self, work: DailyWork, user: SessionUser) -> bool:
        if not user.has_permission(VIEW_PERMISSION):
            return False
        if user.is_admin:
            return True
        return user.user_id in (work.incharge, work.assigned)

    def update_submission_time(
        self,
        work_id: int,
        *,
        submission_date,
        current_user: SessionUser,
        override_confirmed: bool = False,
        override_reason: Optional[str] = None,
    ) -> dict:
        """Set the RFI submission date.

        With active objections attached the caller must confirm and give a
        reason; the override is logged.
        """
        work = self.get(work_id)
        if not self._can_update_submission(work, current_user):
            raise AuthorizationError("You do not have permission to update this RFI.")
        new_date = require_date(submission_date, "submission date")

        active = [o for o in self._objections.list_for_daily_work(work_id) if o.is_active]
        override_logged = False
        if active:
            if not override_confirmed:
                return {
                    "success": False,
                    "requires_confirmation": True,
                    "active_objections_count": len(active),
                    "message": (
                        f"This RFI has {len(active)} active objection(s). Changing the submission date may "
                        "affect approvals, records, or claims. Please confirm to proceed."
                    ),
                    "objections": [o.to_dict() for o in active],
                }
            reason = (override_reason or "").strip()
            if not reason:
                raise ValidationError("A reason is required when overriding an RFI with active objections.")
            self._log_override(work, new_date, len(active), reason, current_user)
            override_logged = True

        self._works.update(work_id, {"rfi_submission_date": new_date})
        return {
            "success": True,
            "message": "RFI submission date updated successfully",
            "override_logged": override_logged,
            "daily_work": self.get(work_id).to_dict(),
        }

    def _log_override(
        self, work: DailyWork, new_date: date, active_count: int, reason: str, user: SessionUser
    ) -> None:
        self._objections.add_override_log(
            RfiSubmissionOverrideLog(
                daily_work_id=work.id,
                old_submission_date=work.rfi_submission_date,
                new_submission_date=new_date,
                active_objections_count=active_count,
                override_reason=reason,
                overridden_by=user.user_id,
                created_at=self._clock(),
            )
        )
        logger.warning(
            "RFI %s submission overridden with %s active objection(s) by %s",
            work.number,
            active_count,
            user.user_id,
        )

    def bulk_submit(
        self,
        *,
        daily_work_ids: Sequence[int],
        submission_date,
        current_user: SessionUser,
        skip_objected: bool = False,
        override_objected: bool = False,
        override_reason: Optional[str] = None,
    ) -> dict:
        if not daily_work_ids:
            raise ValidationError("Select at least one daily work.")
        new_date = require_date(submission_date, "submission date")
        if override_objected and not (override_reason or "").strip():
            raise ValidationError("A reason is required when overriding RFIs with active objections.")

        works = list(self._works.get_many(daily_work_ids))
        found_ids = {w.id for w in works}
        missing_ids = [int(i) for i in daily_work_ids if int(i) not in found_ids]
        counts = self._objections.active_counts_for_daily_works([w.id for w in works])
        objected = [w for w in works if counts.get(w.id, 0) > 0]
        clean = [w for w in works if counts.get(w.id, 0) == 0]

        if objected and not skip_objected and not override_objected:
            return {
                "success": False,
                "requires_decision": True,
                "total_count": len(works),
                "objected_count": len(objected),
                "clean_count": len(clean),
                "objected_works": [
                    {
                        "id": w.id,
                        "number": w.number,
                        "location": w.location,
                        "active_objections_count": counts[w.id],
                    }
                    for w in objected
                ],
                "message": "Some RFIs have active objections. Please choose to skip them or override with a reason.",
            }

        submitted: list[dict] = []
        skipped: list[dict] = []
        failed: list[dict] = [{"id": i, "number": None, "reason": "Not found"} for i in missing_ids]

        def _submit(work: DailyWork) -> bool:
            if not self._can_update_submission(work, current_user):
                failed.append({"id": work.id, "number": work.number, "reason": "Permission denied"})
                return False
            self._works.update(work.id, {"rfi_submission_date": new_date})
            submitted.append({"id": work.id, "number": work.number})
            return True

        for work in clean:
            _submit(work)

        for work in objected:
            if override_objected:
                if self._can_update_submission(work, current_user):
                    self._log_override(
                        work, new_date, counts[work.id], override_reason.strip() + " (Bulk submission)", current_user
                    )
                _submit(work)
            else:
                skipped.append(
                    {"id": work.id, "number": work.number, "active_objections_count": counts[work.id]}
                )

        parts = []
        if submitted:
            parts.append(f"{len(submitted)} RFI(s) submitted successfully")
        if skipped:
            parts.append(f"{len(skipped)} RFI(s) skipped (have objections)")
        if failed:
            parts.append(f"{len(failed)} RFI(s) failed")

        return {
            "success": bool(submitted),
            "message": ", ".join(parts) + "." if parts else "No RFIs were submitted.",
            "submitted": submitted,
            "skipped": skipped,
            "failed": failed,
            "submitted_count": len(submitted),
            "skipped_count": len(skipped),
            "failed_count": len(failed),
        }
