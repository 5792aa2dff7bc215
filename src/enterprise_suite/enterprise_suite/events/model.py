from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Optional

from ..core.enums import CustomFieldType, Gender, RegistrationStatus

# Registrations that hold a seat.
SEAT_STATUSES = (RegistrationStatus.PENDING, RegistrationStatus.APPROVED)


@dataclass(frozen=True)
class Event:
    id: int
    title: str
    slug: str
    venue: str
    event_date: date
    event_time: time
    description: Optional[str] = None
    registration_deadline: Optional[datetime] = None
    max_participants: Optional[int] = None
    is_published: bool = False
    is_registration_open: bool = True
    organizer_name: Optional[str] = None
    organizer_email: Optional[str] = None
    organizer_phone: Optional[str] = None

    def is_past_deadline(self, now: datetime) -> bool:
        return self.registration_deadline is not None and now > self.registration_deadline

    def accepts_registrations(self, now: datetime) -> bool:
        return self.is_published and self.is_registration_open and not self.is_past_deadline(now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "venue": self.venue,
            "event_date": self.event_date.isoformat(),
            "event_time": self.event_time.strftime("%H:%M"),
            "description": self.description,
            "registration_deadline": self.registration_deadline.isoformat() if self.registration_deadline else None,
            "max_participants": self.max_participants,
            "is_published": self.is_published,
            "is_registration_open": self.is_registration_open,
            "organizer_name": self.organizer_name,
            "organizer_email": self.organizer_email,
            "organizer_phone": self.organizer_phone,
        }


@dataclass(frozen=True)
class SubEvent:
    id: int
    event_id: int
    title: str
    max_participants: Optional[int] = None
    joining_fee: float = 0.0
    display_order: int = 0
    is_active: bool = True
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "title": self.title,
            "description": self.description,
            "max_participants": self.max_participants,
            "joining_fee": self.joining_fee,
            "display_order": self.display_order,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class CustomField:
    id: int
    event_id: int
    field_name: str
    field_label: str
    field_type: CustomFieldType = CustomFieldType.TEXT
    is_required: bool = False
    options: tuple[str, ...] = ()
    display_order: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "field_name": self.field_name,
            "field_label": self.field_label,
            "field_type": self.field_type.value,
            "is_required": self.is_required,
            "options": list(self.options),
            "display_order": self.display_order,
        }


@dataclass(frozen=True)
class EventRegistration:
    id: int
    event_id: int
    token: str
    full_name: str
    email: str
    phone: str
    gender: Optional[Gender] = None
    payment_verified: bool = False
    status: RegistrationStatus = RegistrationStatus.PENDING
    rejection_reason: Optional[str] = None
    custom_fields: dict[str, Any] = field(default_factory=dict)
    sub_event_ids: tuple[int, ...] = ()
    qr_code: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "token": self.token,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "gender": self.gender.value if self.gender else None,
            "payment_verified": self.payment_verified,
            "status": self.status.value,
            "rejection_reason": self.rejection_reason,
            "custom_fields": self.custom_fields,
            "sub_event_ids": list(self.sub_event_ids),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class ActivityLog:
    action: str
    model_type: str
    model_id: Optional[int]
    event_id: Optional[int] = None
    user_id: Optional[int] = None
    old_values: Optional[dict] = None
    new_values: Optional[dict] = None
