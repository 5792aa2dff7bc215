from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from ..common.datetime_utils import iter_days
from ..core.enums import AccrualType, LeaveStatus


@dataclass(frozen=True)
class LeaveSetting:
    """A leave type with its yearly entitlement and approval rules."""

    id: int
    type: str
    days: int
    eligibility: Optional[str] = None
    carry_forward: bool = False
    earned_leave: bool = False
    is_earned: bool = False
    requires_approval: bool = True
    auto_approve: bool = False
    special_conditions: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "days": self.days,
            "eligibility": self.eligibility,
            "carry_forward": self.carry_forward,
            "earned_leave": self.earned_leave,
            "is_earned": self.is_earned,
            "requires_approval": self.requires_approval,
            "auto_approve": self.auto_approve,
            "special_conditions": self.special_conditions,
        }


@dataclass(frozen=True)
class Leave:
    id: int
    user_id: int
    leave_type_id: int
    from_date: date
    to_date: date
    no_of_days: int
    reason: str
    status: LeaveStatus = LeaveStatus.NEW
    approval_chain: tuple[dict[str, Any], ...] = ()
    current_approval_level: int = 0
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    rejected_by: Optional[int] = None
    submitted_at: Optional[datetime] = None
    leave_type: Optional[str] = None
    employee_name: Optional[str] = None
    department_id: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.status in (LeaveStatus.NEW, LeaveStatus.PENDING)

    def overlaps(self, start: date, end: date) -> bool:
        return self.from_date <= end and self.to_date >= start

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "employee_name": self.employee_name,
            "leave_type_id": self.leave_type_id,
            "leave_type": self.leave_type,
            "from_date": self.from_date.isoformat(),
            "to_date": self.to_date.isoformat(),
            "no_of_days": self.no_of_days,
            "reason": self.reason,
            "status": self.status.value,
            "approval_chain": list(self.approval_chain),
            "current_approval_level": self.current_approval_level,
            "approved_by": self.approved_by,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "rejection_reason": self.rejection_reason,
            "rejected_by": self.rejected_by,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
        }


def count_days(from_date: date, to_date: date) -> int:
    return (to_date - from_date).days + 1


@dataclass(frozen=True)
class LeaveCarryForward:
    user_id: int
    leave_type_id: int
    year: int
    carried_days: float
    used_days: float = 0.0
    expiry_date: Optional[date] = None
    is_expired: bool = False


@dataclass(frozen=True)
class LeaveAccrual:
    user_id: int
    leave_type_id: int
    accrual_date: date
    accrued_days: float
    balance_after: float
    accrual_type: AccrualType = AccrualType.MONTHLY
    notes: Optional[str] = None


@dataclass(frozen=True)
class Holiday:
    id: int
    title: str
    from_date: date
    to_date: date
    is_active: bool = True
    description: Optional[str] = None

    def dates(self) -> list[date]:
        return list(iter_days(self.from_date, self.to_date))


@dataclass
class BulkDateResult:
    date: str
    status: str = "ok"
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def conflict(self, message: str) -> None:
        self.status = "conflict"
        self.errors.append(message)

    def warn(self, message: str) -> None:
        if self.status == "ok":
            self.status = "warning"
        self.warnings.append(message)

    def to_dict(self) -> dict:
        return {"date": self.date, "status": self.status, "errors": self.errors, "warnings": self.warnings}
