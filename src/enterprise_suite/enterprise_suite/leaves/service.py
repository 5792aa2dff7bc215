from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Iterable, Optional

from ..common.datetime_utils import now_local
from ..common.logging_config import get_logger
from ..common.validators import require_date, require_max_length, require_non_empty
from ..core.enums import LeaveStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import SessionUser
from ..users.repository import UserRepository
from .model import Leave, count_days
from .query_service import COUNTED_STATUSES, LeaveQueryService
from .repository import LeaveRepository

logger = get_logger(__name__)


class LeaveService:
    """Leave applications and their approval workflow."""

    def __init__(
        self,
        leaves: LeaveRepository,
        users: UserRepository,
        query: LeaveQueryService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._leaves = leaves
        self._users = users
        self._query = query
        self._clock = clock

    def get(self, leave_id: int) -> Leave:
        leave = self._leaves.get(leave_id)
        if not leave:
            raise NotFoundError("Leave not found.")
        return leave

    def _approval_chain(self, user_id: int) -> list[dict]:
        user = self._users.get_by_id(user_id)
        if not user or not user.department_id:
            return []
        department = self._users.get_department(user.department_id)
        if not department or not department.manager_id or department.manager_id == user_id:
            return []
        return [{"level": 1, "approver_id": department.manager_id, "status": "pending", "acted_at": None, "comments": None}]

    def apply(
        self,
        *,
        leave_type_id: int,
        from_date: date | str,
        to_date: date | str,
        reason: Optional[str],
        current_user: SessionUser,
        user_id: Optional[int] = None,
    ) -> Leave:
        user_id = int(user_id or current_user.user_id)
        if user_id != current_user.user_id and not current_user.is_admin:
            raise AuthorizationError("You can only apply leave for yourself.")

        start = require_date(from_date, "from date")
        end = require_date(to_date, "to date")
        if end < start:
            raise ValidationError("The to date must be a date after or equal to from date.")
        reason = require_max_length(require_non_empty(reason, "reason"), "reason", 1000)

        setting = self._leaves.get_setting(int(leave_type_id))
        if not setting:
            raise ValidationError("The selected leave type is invalid.")

        if self._leaves.overlapping(user_id, start, end, statuses=COUNTED_STATUSES):
            raise ValidationError("Leave dates overlap with an existing leave request.")

        days = count_days(start, end)
        remaining = self._query.remaining_days(user_id, setting, start.year)
        if days > remaining:
            raise ValidationError(
                f"Insufficient {setting.type} balance: {days} day(s) requested, {remaining:g} remaining."
            )

        now = self._clock()
        if setting.auto_approve or not setting.requires_approval:
            leave = Leave(
                id=0,
                user_id=user_id,
                leave_type_id=setting.id,
                from_date=start,
                to_date=end,
                no_of_days=days,
                reason=reason,
                status=LeaveStatus.APPROVED,
                approved_by=current_user.user_id,
                approved_at=now,
                submitted_at=now,
            )
        else:
            chain = self._approval_chain(user_id)
            leave = Leave(
                id=0,
                user_id=user_id,
                leave_type_id=setting.id,
                from_date=start,
                to_date=end,
                no_of_days=days,
                reason=reason,
                status=LeaveStatus.NEW,
                approval_chain=tuple(chain),
                current_approval_level=1 if chain else 0,
                submitted_at=now,
            )

        leave_id = self._leaves.create(leave)
        logger.info(
            "Leave applied id=%s user=%s type=%s days=%s status=%s",
            leave_id,
            user_id,
            setting.type,
            days,
            leave.status.value,
        )
        return self.get(leave_id)

    def _can_act(self, leave: Leave, user: SessionUser) -> bool:
        if user.is_admin or user.has_permission("leaves.approve"):
            return True
        for step in leave.approval_chain:
            if step.get("level") == leave.current_approval_level and step.get("approver_id") == user.user_id:
                return True
        return False

    def _mark_step(self, leave: Leave, *, status: str, user: SessionUser, comments: Optional[str]) -> list[dict]:
        chain = [dict(step) for step in leave.approval_chain]
        for step in chain:
            if step.get("level") == leave.current_approval_level:
                step.update(status=status, acted_by=user.user_id, acted_at=self._clock().isoformat(), comments=comments)
        return chain

    def approve(self, leave_id: int, *, current_user: SessionUser, comments: Optional[str] = None) -> Leave:
        leave = self.get(leave_id)
        if not leave.is_open:
            raise ValidationError("Only pending leave requests can be approved.")
        if not self._can_act(leave, current_user):
            raise AuthorizationError("You are not allowed to approve this leave request.")

        chain = self._mark_step(leave, status="approved", user=current_user, comments=comments)
        levels = [step.get("level", 0) for step in chain]
        if leave.current_approval_level and leave.current_approval_level < max(levels, default=0):
            self._leaves.update(
                leave.id,
                {
                    "status": LeaveStatus.PENDING,
                    "approval_chain": chain,
                    "current_approval_level": leave.current_approval_level + 1,
                },
            )
        else:
            self._leaves.update(
                leave.id,
                {
                    "status": LeaveStatus.APPROVED,
                    "approval_chain": chain,
                    "approved_by": current_user.user_id,
                    "approved_at": self._clock(),
                },
            )
        logger.info("Leave approved id=%s by=%s", leave.id, current_user.user_id)
        return self.get(leave.id)

    def reject(self, leave_id: int, *, reason: Optional[str], current_user: SessionUser) -> Leave:
        leave = self.get(leave_id)
        reason = require_non_empty(reason, "rejection reason")
        if not leave.is_open:
            raise ValidationError("Only pending leave requests can be rejected.")
        if not self._can_act(leave, current_user):
            raise AuthorizationError("You are not allowed to reject this leave request.")

        self._leaves.update(
            leave.id,
            {
                "status": LeaveStatus.REJECTED,
                "approval_chain": self._mark_step(leave, status="rejected", user=current_user, comments=reason),
                "rejection_reason": reason,
                "rejected_by": current_user.user_id,
            },
        )
        logger.info("Leave rejected id=%s by=%s", leave.id, current_user.user_id)
        return self.get(leave.id)

    def _bulk(self, leave_ids: Iterable[int], action: Callable[[int], Leave]) -> dict:
        succeeded: list[int] = []
        failed: list[dict] = []
        for leave_id in leave_ids:
            try:
                action(int(leave_id))
                succeeded.append(int(leave_id))
            except (ValidationError, AuthorizationError, NotFoundError) as e:
                failed.append({"id": int(leave_id), "message": str(e)})
        return {"succeeded": succeeded, "failed": failed, "success_count": len(succeeded), "failed_count": len(failed)}

    def bulk_approve(self, leave_ids: Iterable[int], *, current_user: SessionUser) -> dict:
        return self._bulk(leave_ids, lambda i: self.approve(i, current_user=current_user))

    def bulk_reject(self, leave_ids: Iterable[int], *, reason: Optional[str], current_user: SessionUser) -> dict:
        require_non_empty(reason, "rejection reason")
        return self._bulk(leave_ids, lambda i: self.reject(i, reason=reason, current_user=current_user))

    def delete(self, leave_id: int, *, current_user: SessionUser) -> None:
        leave = self.get(leave_id)
        if not current_user.is_admin:
            if leave.user_id != current_user.user_id:
                raise AuthorizationError("You can only delete your own leave requests.")
            if not leave.is_open:
                raise ValidationError("Only pending leave requests can be deleted.")
        self._leaves.delete(leave.id)
        logger.info("Leave deleted id=%s by=%s", leave.id, current_user.user_id)
