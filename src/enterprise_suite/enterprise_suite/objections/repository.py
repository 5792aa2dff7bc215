from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ObjectionCategory, ObjectionStatus
from .model import ObjectionChainage, ObjectionStatusLog, RfiObjection, RfiSubmissionOverrideLog


class ObjectionRepository(Protocol):
    def create(
        self,
        *,
        title: str,
        category: Optional[ObjectionCategory],
        description: str,
        reason: str,
        status: ObjectionStatus,
        chainage_from: Optional[str],
        chainage_to: Optional[str],
        created_by: int,
    ) -> int:
        raise NotImplementedError

    def get(self, objection_id: int) -> Optional[RfiObjection]:
        raise NotImplementedError

    def update_fields(self, *, objection_id: int, fields: dict, updated_by: int) -> bool:
        raise NotImplementedError

    def set_status(
        self,
        *,
        objection_id: int,
        status: ObjectionStatus,
        updated_by: int,
        resolved_by: Optional[int] = None,
        resolved_at: Optional[datetime] = None,
        resolution_notes: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError

    def soft_delete(self, objection_id: int) -> bool:
        raise NotImplementedError

    def replace_chainages(self, *, objection_id: int, entries: Sequence[ObjectionChainage]) -> None:
        raise NotImplementedError

    def add_status_log(self, log: ObjectionStatusLog) -> int:
        raise NotImplementedError

    def list_status_logs(self, objection_id: int) -> Sequence[ObjectionStatusLog]:
        raise NotImplementedError

    def attach_daily_works(
        self,
        *,
        objection_id: int,
        daily_work_ids: Sequence[int],
        attached_by: int,
        attached_at: datetime,
        notes: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def detach_daily_works(self, *, objection_id: int, daily_work_ids: Sequence[int]) -> int:
        raise NotImplementedError

    def list_attached_daily_work_ids(self, objection_id: int) -> Sequence[int]:
        raise NotImplementedError

    def list_for_daily_work(self, daily_work_id: int) -> Sequence[RfiObjection]:
        raise NotImplementedError

    def active_counts_for_daily_works(self, daily_work_ids: Sequence[int]) -> dict[int, int]:
        raise NotImplementedError

    def add_override_log(self, log: RfiSubmissionOverrideLog) -> int:
        raise NotImplementedError

    def search(self, *, filters: dict, limit: int, offset: int) -> tuple[Sequence[RfiObjection], int]:
        raise NotImplementedError

    def count_active(self) -> int:
        raise NotImplementedError
