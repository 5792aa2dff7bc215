from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..model import AttendanceType


@dataclass(frozen=True)
class ValidationOutcome:
    ok: bool
    message: str
    status_code: int = 200

    @classmethod
    def success(cls, message: str) -> "ValidationOutcome":
        return cls(True, message, 200)

    @classmethod
    def failure(cls, message: str, status_code: int = 422) -> "ValidationOutcome":
        return cls(False, message, status_code)

    def to_dict(self) -> dict:
        return {"success": self.ok, "message": self.message}


@dataclass(frozen=True)
class PunchContext:
    """What the device sent with a punch."""

    now: datetime
    lat: Optional[float] = None
    lng: Optional[float] = None
    ip: Optional[str] = None
    code: Optional[str] = None

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None

    @classmethod
    def from_payload(cls, payload: dict, *, now: datetime, ip: Optional[str] = None) -> "PunchContext":
        return cls(
            now=now,
            lat=_coordinate(payload.get("lat")),
            lng=_coordinate(payload.get("lng")),
            ip=payload.get("ip") or ip,
            code=(payload.get("qr_code") or payload.get("code") or None),
        )


def _coordinate(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def active_entries(config: dict, key: str) -> list[dict]:
    return [e for e in (config.get(key) or []) if isinstance(e, dict) and e.get("is_active", True)]


class AttendanceValidator(ABC):
    """Strategy: decide whether a punch is allowed for one attendance type."""

    @abstractmethod
    def validate(self, attendance_type: AttendanceType, ctx: PunchContext) -> ValidationOutcome:
        raise NotImplementedError
