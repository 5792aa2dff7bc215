from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import ACTIVE_OBJECTION_STATUSES, ChainageEntryType, ObjectionCategory, ObjectionStatus
from .chainage import does_objection_match_rfi, format_meters, parse_chainage_to_meters


@dataclass(frozen=True)
class ObjectionChainage:
    chainage: str
    chainage_meters: int
    entry_type: ChainageEntryType
    id: Optional[int] = None
    objection_id: Optional[int] = None

    @classmethod
    def from_string(cls, chainage: str, entry_type: ChainageEntryType = ChainageEntryType.SPECIFIC) -> Optional["ObjectionChainage"]:
        meters = parse_chainage_to_meters(chainage)
        if meters is None:
            return None
        return cls(chainage=chainage.strip().upper(), chainage_meters=meters, entry_type=entry_type)

    @property
    def normalized_chainage(self) -> str:
        return format_meters(self.chainage_meters)

    @property
    def is_specific(self) -> bool:
        return self.entry_type == ChainageEntryType.SPECIFIC


def build_chainage_entries(
    specific: list[str],
    range_from: Optional[str],
    range_to: Optional[str],
) -> list[ObjectionChainage]:
    """Turn raw chainage inputs into entries; unparseable ones are dropped.

    A range is only kept when both ends parse.
    """
    entries: list[ObjectionChainage] = []
    seen: set[tuple[str, ChainageEntryType]] = set()
    for raw in specific:
        if not raw or not raw.strip():
            continue
        entry = ObjectionChainage.from_string(raw)
        if entry and (entry.chainage, entry.entry_type) not in seen:
            seen.add((entry.chainage, entry.entry_type))
            entries.append(entry)

    if range_from and range_to:
        start = ObjectionChainage.from_string(range_from, ChainageEntryType.RANGE_START)
        end = ObjectionChainage.from_string(range_to, ChainageEntryType.RANGE_END)
        if start and end:
            entries.extend([start, end])
    return entries


@dataclass(frozen=True)
class RfiObjection:
    id: int
    title: str
    category: Optional[ObjectionCategory]
    description: str
    reason: str
    status: ObjectionStatus
    created_by: int
    chainage_from: Optional[str] = None
    chainage_to: Optional[str] = None
    resolution_notes: Optional[str] = None
    resolved_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    chainages: tuple[ObjectionChainage, ...] = field(default_factory=tuple)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_OBJECTION_STATUSES

    @property
    def status_label(self) -> str:
        return self.status.label

    @property
    def category_label(self) -> Optional[str]:
        return self.category.label if self.category else None

    @property
    def specific_meters(self) -> list[int]:
        return [c.chainage_meters for c in self.chainages if c.is_specific]

    @property
    def range_meters(self) -> tuple[Optional[int], Optional[int]]:
        start = next((c.chainage_meters for c in self.chainages if c.entry_type == ChainageEntryType.RANGE_START), None)
        end = next((c.chainage_meters for c in self.chainages if c.entry_type == ChainageEntryType.RANGE_END), None)
        return start, end

    @property
    def has_chainages(self) -> bool:
        return bool(self.chainages)

    def effective_range(self) -> tuple[Optional[int], Optional[int]]:
        """Range from chainage entries, falling back to the legacy from/to columns."""
        start, end = self.range_meters
        if start is None or end is None:
            start = parse_chainage_to_meters(self.chainage_from)
            end = parse_chainage_to_meters(self.chainage_to)
        return start, end

    def matches_rfi_location(self, location: Optional[str]) -> bool:
        start, end = self.effective_range()
        return does_objection_match_rfi(self.specific_meters, start, end, location)

    @property
    def chainage_summary(self) -> Optional[str]:
        specific = [c.chainage for c in self.chainages if c.is_specific]
        start = next((c.chainage for c in self.chainages if c.entry_type == ChainageEntryType.RANGE_START), None)
        end = next((c.chainage for c in self.chainages if c.entry_type == ChainageEntryType.RANGE_END), None)
        parts = list(specific)
        if start and end:
            parts.append(f"{start} - {end}")
        elif self.chainage_from and self.chainage_to:
            parts.append(f"{self.chainage_from} - {self.chainage_to}")
        return ", ".join(parts) if parts else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category.value if self.category else None,
            "category_label": self.category_label,
            "description": self.description,
            "reason": self.reason,
            "status": self.status.value,
            "status_label": self.status_label,
            "chainage_summary": self.chainage_summary,
            "specific_chainages": [c.chainage for c in self.chainages if c.is_specific],
            "resolution_notes": self.resolution_notes,
            "resolved_by": self.resolved_by,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class ObjectionStatusLog:
    objection_id: int
    from_status: Optional[ObjectionStatus]
    to_status: ObjectionStatus
    changed_by: int
    changed_at: datetime
    notes: Optional[str] = None
    id: Optional[int] = None

    @property
    def from_status_label(self) -> Optional[str]:
        return self.from_status.label if self.from_status else None

    @property
    def to_status_label(self) -> str:
        return self.to_status.label


@dataclass(frozen=True)
class RfiSubmissionOverrideLog:
    daily_work_id: int
    old_submission_date: Optional[date]
    new_submission_date: date
    active_objections_count: int
    override_reason: str
    overridden_by: int
    created_at: datetime
    user_acknowledged: bool = True
    id: Optional[int] = None
