from __future__ import annotations

from datetime import date

from ..common.logging_config import get_logger
from ..core.enums import AccrualType
from ..users.repository import UserRepository
from .model import LeaveAccrual, LeaveCarryForward
from .query_service import LeaveQueryService
from .repository import LeaveRepository

logger = get_logger(__name__)


def reset_annual(leaves: LeaveRepository, users: UserRepository, query: LeaveQueryService, year: int) -> dict:
    """Open ``year``: carry unused days of carry-forward types and expire the previous carry-over.

    The carried amount is capped at the type's yearly entitlement.
    """
    previous = year - 1
    carried = 0
    for setting in leaves.list_settings():
        if not setting.carry_forward:
            continue
        for user in users.list_active():
            unused = query.remaining_days(user.user_id, setting, previous)
            amount = min(unused, float(setting.days))
            if amount <= 0:
                continue
            leaves.save_carry_forward(
                LeaveCarryForward(
                    user_id=user.user_id,
                    leave_type_id=setting.id,
                    year=year,
                    carried_days=amount,
                    expiry_date=date(year, 12, 31),
                )
            )
            carried += 1
    expired = leaves.expire_carry_forwards(previous)
    logger.info("Annual leave reset year=%s carried=%s expired=%s", year, carried, expired)
    return {"year": year, "carried": carried, "expired": expired}


def accrue_monthly(leaves: LeaveRepository, users: UserRepository, on_date: date) -> dict:
    """Credit one twelfth of the yearly days of every earned leave type."""
    created = skipped = 0
    for setting in leaves.list_settings():
        if not setting.is_earned:
            continue
        credit = round(setting.days / 12, 2)
        for user in users.list_active():
            if user.date_of_joining and user.date_of_joining > on_date:
                continue
            balance = leaves.accrued_days(user.user_id, setting.id, on_date.year) + credit
            added = leaves.add_accrual(
                LeaveAccrual(
                    user_id=user.user_id,
                    leave_type_id=setting.id,
                    accrual_date=on_date,
                    accrued_days=credit,
                    balance_after=round(balance, 2),
                    accrual_type=AccrualType.MONTHLY,
                    notes=f"Monthly accrual for {on_date:%B %Y}",
                )
            )
            if added:
                created += 1
            else:
                skipped += 1
    logger.info("Monthly leave accrual date=%s created=%s skipped=%s", on_date, created, skipped)
    return {"date": on_date.isoformat(), "created": created, "skipped": skipped}
