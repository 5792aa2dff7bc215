from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import DailyWork, DailyWorkSummary, Jurisdiction


class DailyWorkRepository(Protocol):
    def create(self, data: dict) -> int:
        raise NotImplementedError

    def get(self, work_id: int) -> Optional[DailyWork]:
        raise NotImplementedError

    def get_many(self, work_ids: Sequence[int]) -> Sequence[DailyWork]:
        raise NotImplementedError

    def find_by_number(
        self, number: str, *, work_date: Optional[date] = None, exclude_id: Optional[int] = None
    ) -> Optional[DailyWork]:
        raise NotImplementedError

    def update(self, work_id: int, data: dict) -> bool:
        raise NotImplementedError

    def soft_delete(self, work_id: int) -> bool:
        raise NotImplementedError

    def search(
        self,
        *,
        filters: dict,
        limit: int,
        offset: int,
    ) -> tuple[Sequence[DailyWork], int]:
        raise NotImplementedError

    def list_with_location(self) -> Sequence[DailyWork]:
        raise NotImplementedError

    def list_for_date(self, work_date: date, *, incharge: Optional[int] = None) -> Sequence[DailyWork]:
        raise NotImplementedError


class JurisdictionRepository(Protocol):
    def list_all(self) -> Sequence[Jurisdiction]:
        raise NotImplementedError


class DailyWorkSummaryRepository(Protocol):
    def upsert(self, summary: DailyWorkSummary) -> None:
        raise NotImplementedError

    def delete(self, *, summary_date: date, incharge: int) -> None:
        raise NotImplementedError

    def list_between(self, start: date, end: date) -> Sequence[DailyWorkSummary]:
        raise NotImplementedError
