from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional


@dataclass(frozen=True)
class AttendanceType:
    """How punches are validated: polygon, wifi/IP, route or QR code."""

    id: int
    name: str
    slug: str
    config: dict[str, Any] = field(default_factory=dict)
    is_active: bool = True
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "config": self.config,
            "is_active": self.is_active,
            "description": self.description,
        }


@dataclass(frozen=True)
class AttendanceRecord:
    id: int
    user_id: int
    date: date
    punchin: datetime
    punchout: Optional[datetime] = None
    attendance_type_id: Optional[int] = None
    punchin_location: Optional[dict] = None
    punchout_location: Optional[dict] = None

    @property
    def is_open(self) -> bool:
        return self.punchout is None

    def worked_minutes(self) -> int:
        if self.punchout is None:
            return 0
        return int((self.punchout - self.punchin).total_seconds() // 60)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "date": self.date.isoformat(),
            "punchin": self.punchin.isoformat(),
            "punchout": self.punchout.isoformat() if self.punchout else None,
            "attendance_type_id": self.attendance_type_id,
            "punchin_location": self.punchin_location,
            "punchout_location": self.punchout_location,
            "worked_minutes": self.worked_minutes(),
        }


@dataclass(frozen=True)
class Notification:
    user_id: int
    type: str
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
