from __future__ import annotations

import re
import secrets
from dataclasses import replace
from datetime import datetime, time
from typing import Any, Callable, Optional

from ..common.datetime_utils import now_local
from ..common.logging_config import get_logger
from ..common.validators import (
    is_email,
    require_date,
    require_email,
    require_max_length,
    require_non_empty,
)
from ..core.enums import CustomFieldType, Gender, RegistrationStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..users.model import SessionUser
from .model import SEAT_STATUSES, ActivityLog, CustomField, Event, EventRegistration, SubEvent
from .repository import EventRepository

logger = get_logger(__name__)

TOKEN_LENGTH = 32

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    return _SLUG_STRIP.sub("-", value.lower()).strip("-") or "event"


def _parse_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    text = (str(value or "")).strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValidationError("The event time must be in the format H:i.")


def _parse_deadline(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError("The registration deadline is not a valid date.")


def _optional_positive_int(value: Any, field_name: str) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"The {field_name} must be an integer.")
    if number < 1:
        raise ValidationError(f"The {field_name} must be at least 1.")
    return number


def validate_custom_fields(fields: list[CustomField], values: dict) -> dict:
    """Check submitted answers against the event's custom fields.

    Returns the cleaned answers keyed by field name; raises ValidationError
    with a per-field ``errors`` dict when anything is wrong.
    """
    errors: dict[str, str] = {}
    cleaned: dict[str, Any] = {}
    for f in fields:
        raw = values.get(f.field_name)
        empty = raw is None or raw == "" or raw == []
        if empty:
            if f.is_required:
                errors[f.field_name] = f"The {f.field_label} field is required."
            continue

        if f.field_type == CustomFieldType.EMAIL and not is_email(raw):
            errors[f.field_name] = f"The {f.field_label} must be a valid email address."
        elif f.field_type == CustomFieldType.NUMBER:
            try:
                raw = float(raw)
            except (TypeError, ValueError):
                errors[f.field_name] = f"The {f.field_label} must be a number."
        elif f.field_type == CustomFieldType.DATE:
            try:
                raw = require_date(raw, f.field_label).isoformat()
            except ValidationError:
                errors[f.field_name] = f"The {f.field_label} is not a valid date."
        elif f.field_type in (CustomFieldType.SELECT, CustomFieldType.RADIO):
            if f.options and str(raw) not in f.options:
                errors[f.field_name] = f"The selected {f.field_label} is invalid."
        elif f.field_type == CustomFieldType.CHECKBOX:
            chosen = raw if isinstance(raw, list) else [raw]
            chosen = [str(c) for c in chosen]
            if f.options and not set(chosen) <= set(f.options):
                errors[f.field_name] = f"The selected {f.field_label} is invalid."
            raw = chosen
        cleaned[f.field_name] = raw

    if errors:
        err = ValidationError("The registration form has errors.")
        err.errors = errors
        raise err
    return cleaned


class EventService:
    """Event administration and public registration."""

    def __init__(self, events: EventRepository, *, clock: Callable[[], datetime] = now_local):
        self._events = events
        self._clock = clock

    # ---- events ----

    def list_events(self, *, published_only: bool = False) -> list[Event]:
        return list(self._events.list_events(published_only=published_only))

    def get(self, event_id: int) -> Event:
        event = self._events.get(int(event_id))
        if not event:
            raise NotFoundError("Event not found.")
        return event

    def get_by_slug(self, slug: str) -> Event:
        event = self._events.get_by_slug(slug)
        if not event:
            raise NotFoundError("Event not found.")
        return event

    def details(self, event_id: int) -> dict:
        event = self.get(event_id)
        return {
            **event.to_dict(),
            "sub_events": [s.to_dict() for s in self._events.sub_events(event.id)],
            "custom_fields": [f.to_dict() for f in self._events.custom_fields(event.id)],
        }

    def _unique_slug(self, title: str, *, exclude_id: Optional[int] = None) -> str:
        base = slugify(title)
        slug = base
        n = 2
        while self._events.slug_exists(slug, exclude_id=exclude_id):
            slug = f"{base}-{n}"
            n += 1
        return slug

    def _clean_event(self, data: dict, *, partial: bool = False) -> dict:
        cleaned: dict[str, Any] = {}
        if not partial or "title" in data:
            cleaned["title"] = require_max_length(require_non_empty(data.get("title"), "title"), "title", 255)
        if not partial or "venue" in data:
            cleaned["venue"] = require_max_length(require_non_empty(data.get("venue"), "venue"), "venue", 255)
        if not partial or "event_date" in data:
            cleaned["event_date"] = require_date(data.get("event_date"), "event date")
        if not partial or "event_time" in data:
            cleaned["event_time"] = _parse_time(data.get("event_time"))
        if "description" in data:
            cleaned["description"] = data.get("description") or None
        if "registration_deadline" in data:
            cleaned["registration_deadline"] = _parse_deadline(data.get("registration_deadline"))
        if "max_participants" in data:
            cleaned["max_participants"] = _optional_positive_int(data.get("max_participants"), "max participants")
        if "is_registration_open" in data:
            cleaned["is_registration_open"] = bool(data.get("is_registration_open"))
        for key in ("organizer_name", "organizer_phone"):
            if key in data:
                cleaned[key] = data.get(key) or None
        if data.get("organizer_email"):
            cleaned["organizer_email"] = require_email(data.get("organizer_email"), "organizer email")

        deadline = cleaned.get("registration_deadline")
        event_date = cleaned.get("event_date")
        if deadline and event_date and deadline.date() > event_date:
            raise ValidationError("The registration deadline must be on or before the event date.")
        return cleaned

    def _log(self, user: Optional[SessionUser], action: str, model_type: str, model_id: Optional[int], *,
             event_id: Optional[int], old: Optional[dict] = None, new: Optional[dict] = None) -> None:
        self._events.add_activity(
            ActivityLog(
                action=action,
                model_type=model_type,
                model_id=model_id,
                event_id=event_id,
                user_id=user.user_id if user else None,
                old_values=old,
                new_values=new,
            )
        )

    def create(self, data: dict, *, current_user: SessionUser) -> Event:
        cleaned = self._clean_event(data)
        cleaned["slug"] = self._unique_slug(data.get("slug") or cleaned["title"])
        cleaned["is_published"] = False
        cleaned.setdefault("is_registration_open", True)
        cleaned["created_by"] = current_user.user_id
        cleaned["updated_by"] = current_user.user_id
        event_id = self._events.create(cleaned)
        event = self.get(event_id)
        self._log(current_user, "created", "Event", event_id, event_id=event_id, new=event.to_dict())
        logger.info("Event %s created by user %s", event.slug, current_user.user_id)
        return event

    def update(self, event_id: int, data: dict, *, current_user: SessionUser) -> Event:
        before = self.get(event_id)
        cleaned = self._clean_event(data, partial=True)
        if "title" in cleaned and cleaned["title"] != before.title:
            cleaned["slug"] = self._unique_slug(cleaned["title"], exclude_id=before.id)
        deadline = cleaned.get("registration_deadline", before.registration_deadline)
        event_date = cleaned.get("event_date", before.event_date)
        if deadline and deadline.date() > event_date:
            raise ValidationError("The registration deadline must be on or before the event date.")
        cleaned["updated_by"] = current_user.user_id
        self._events.update(before.id, cleaned)
        after = self.get(before.id)
        self._log(current_user, "updated", "Event", before.id, event_id=before.id, old=before.to_dict(), new=after.to_dict())
        return after

    def _set_published(self, event_id: int, published: bool, current_user: SessionUser) -> Event:
        before = self.get(event_id)
        if published and not before.title:
            raise ValidationError("The event cannot be published without a title.")
        self._events.update(before.id, {"is_published": published, "updated_by": current_user.user_id})
        after = replace(before, is_published=published)
        self._log(
            current_user,
            "published" if published else "unpublished",
            "Event",
            before.id,
            event_id=before.id,
            old={"is_published": before.is_published},
            new={"is_published": published},
        )
        return after

    def publish(self, event_id: int, *, current_user: SessionUser) -> Event:
        return self._set_published(event_id, True, current_user)

    def unpublish(self, event_id: int, *, current_user: SessionUser) -> Event:
        return self._set_published(event_id, False, current_user)

    def delete(self, event_id: int, *, current_user: SessionUser) -> None:
        event = self.get(event_id)
        self._events.soft_delete(event.id)
        self._log(current_user, "deleted", "Event", event.id, event_id=event.id, old=event.to_dict())
        logger.info("Event %s deleted by user %s", event.slug, current_user.user_id)

    # ---- sub-events and custom fields ----

    def save_sub_event(
        self,
        event_id: int,
        data: dict,
        *,
        current_user: SessionUser,
        sub_event_id: Optional[int] = None,
    ) -> SubEvent:
        event = self.get(event_id)
        existing = {s.id: s for s in self._events.sub_events(event.id)}
        if sub_event_id is not None and int(sub_event_id) not in existing:
            raise NotFoundError("Sub-event not found.")
        cleaned = {
            "title": require_max_length(require_non_empty(data.get("title"), "title"), "title", 255),
            "description": data.get("description") or None,
            "max_participants": _optional_positive_int(data.get("max_participants"), "max participants"),
            "display_order": int(data.get("display_order") or 0),
            "is_active": bool(data.get("is_active", True)),
        }
        try:
            cleaned["joining_fee"] = float(data.get("joining_fee") or 0)
        except (TypeError, ValueError):
            raise ValidationError("The joining fee must be a number.")
        if cleaned["joining_fee"] < 0:
            raise ValidationError("The joining fee must be at least 0.")

        saved_id = self._events.save_sub_event(event.id, cleaned, sub_event_id=sub_event_id)
        old = existing[int(sub_event_id)].to_dict() if sub_event_id is not None else None
        self._log(current_user, "updated" if old else "created", "SubEvent", saved_id, event_id=event.id, old=old, new=cleaned)
        return next(s for s in self._events.sub_events(event.id) if s.id == saved_id)

    def delete_sub_event(self, event_id: int, sub_event_id: int, *, current_user: SessionUser) -> None:
        event = self.get(event_id)
        existing = {s.id: s for s in self._events.sub_events(event.id)}
        sub = existing.get(int(sub_event_id))
        if not sub:
            raise NotFoundError("Sub-event not found.")
        if self._events.count_registrations(event.id, statuses=SEAT_STATUSES, sub_event_id=sub.id):
            raise ConflictError("Cannot delete a sub-event that has active registrations.")
        self._events.delete_sub_event(sub.id)
        self._log(current_user, "deleted", "SubEvent", sub.id, event_id=event.id, old=sub.to_dict())

    def replace_custom_fields(self, event_id: int, fields: list[dict], *, current_user: SessionUser) -> list[CustomField]:
        event = self.get(event_id)
        cleaned: list[dict] = []
        seen: set[str] = set()
        for order, f in enumerate(fields or []):
            label = require_non_empty(f.get("field_label"), "field label")
            name = f.get("field_name") or slugify(label).replace("-", "_")
            if name in seen:
                raise ValidationError(f"Duplicate custom field name: {name}.")
            seen.add(name)
            try:
                field_type = CustomFieldType(f.get("field_type") or CustomFieldType.TEXT.value)
            except ValueError:
                raise ValidationError("The selected field type is invalid.")
            options = [str(o) for o in (f.get("options") or [])]
            if field_type in (CustomFieldType.SELECT, CustomFieldType.RADIO, CustomFieldType.CHECKBOX) and not options:
                raise ValidationError(f"The {label} field needs at least one option.")
            cleaned.append(
                {
                    "field_name": name,
                    "field_label": label,
                    "field_type": field_type.value,
                    "options": options,
                    "is_required": bool(f.get("is_required")),
                    "display_order": int(f.get("display_order", order)),
                }
            )
        old = [c.to_dict() for c in self._events.custom_fields(event.id)]
        self._events.replace_custom_fields(event.id, cleaned)
        self._log(current_user, "updated", "CustomFields", None, event_id=event.id, old={"fields": old}, new={"fields": cleaned})
        return list(self._events.custom_fields(event.id))

    # ---- registrations ----

    def register(self, event_id: int, data: dict) -> EventRegistration:
        event = self.get(event_id)
        now = self._clock()
        if not event.is_published:
            raise NotFoundError("Event not found.")
        if not event.is_registration_open:
            raise ValidationError("Registration is closed for this event.")
        if event.is_past_deadline(now):
            raise ValidationError("The registration deadline has passed.")

        full_name = require_max_length(require_non_empty(data.get("full_name"), "full name"), "full name", 255)
        email = require_email(data.get("email"))
        phone = require_max_length(require_non_empty(data.get("phone"), "phone"), "phone", 20)
        gender = None
        if data.get("gender"):
            try:
                gender = Gender(data["gender"])
            except ValueError:
                raise ValidationError("The selected gender is invalid.")

        if event.max_participants is not None:
            taken = self._events.count_registrations(event.id, statuses=SEAT_STATUSES)
            if taken >= event.max_participants:
                raise ConflictError("This event is full.")

        active_subs = {s.id: s for s in self._events.sub_events(event.id) if s.is_active}
        chosen = sorted({int(i) for i in (data.get("sub_event_ids") or [])})
        if active_subs and not chosen:
            raise ValidationError("Please select at least one sub-event.")
        for sub_id in chosen:
            sub = active_subs.get(sub_id)
            if not sub:
                raise ValidationError("The selected sub-event is invalid.")
            if sub.max_participants is not None:
                taken = self._events.count_registrations(event.id, statuses=SEAT_STATUSES, sub_event_id=sub.id)
                if taken >= sub.max_participants:
                    raise ConflictError(f"{sub.title} is full.")

        if self._events.email_registered(event.id, email):
            raise ConflictError("This email is already registered for this event.")

        answers = validate_custom_fields(list(self._events.custom_fields(event.id)), data.get("custom_fields") or {})

        token = secrets.token_urlsafe(TOKEN_LENGTH)[:TOKEN_LENGTH]
        registration = EventRegistration(
            id=0,
            event_id=event.id,
            token=token,
            full_name=full_name,
            email=email,
            phone=phone,
            gender=gender,
            status=RegistrationStatus.PENDING,
            custom_fields=answers,
            sub_event_ids=tuple(chosen),
            created_at=now,
        )
        seat_limits: dict[Optional[int], int] = {}
        if event.max_participants is not None:
            seat_limits[None] = event.max_participants
        for sub_id in chosen:
            if active_subs[sub_id].max_participants is not None:
                seat_limits[sub_id] = active_subs[sub_id].max_participants
        registration_id = self._events.create_registration(registration, seat_limits=seat_limits)
        if registration_id is None:
            raise ConflictError("This event is full.")
        logger.info("Registration %s created for event %s", registration_id, event.slug)
        return replace(registration, id=registration_id)

    def get_registration(self, registration_id: int) -> EventRegistration:
        registration = self._events.get_registration(int(registration_id))
        if not registration:
            raise NotFoundError("Registration not found.")
        return registration

    def lookup(self, token: str) -> EventRegistration:
        registration = self._events.get_registration_by_token((token or "").strip())
        if not registration:
            raise NotFoundError("Registration not found.")
        return registration

    def registrations(self, event_id: int, *, status: Optional[str] = None) -> list[EventRegistration]:
        event = self.get(event_id)
        wanted = None
        if status:
            try:
                wanted = RegistrationStatus(status)
            except ValueError:
                raise ValidationError("The selected status is invalid.")
        return list(self._events.registrations(event.id, status=wanted))

    def _transition(
        self,
        registration_id: int,
        *,
        action: str,
        changes: dict,
        current_user: Optional[SessionUser],
        allowed_from: tuple[RegistrationStatus, ...],
    ) -> EventRegistration:
        before = self.get_registration(registration_id)
        if before.status not in allowed_from:
            raise ConflictError(f"A {before.status.value} registration cannot be {action}.")
        self._events.update_registration(before.id, changes)
        after = self.get_registration(before.id)
        self._log(
            current_user,
            action,
            "EventRegistration",
            before.id,
            event_id=before.event_id,
            old={k: getattr(getattr(before, k), "value", getattr(before, k)) for k in ("status", "rejection_reason", "payment_verified")},
            new={k: getattr(v, "value", v) for k, v in changes.items() if not isinstance(v, datetime)},
        )
        return after

    def approve(self, registration_id: int, *, current_user: SessionUser) -> EventRegistration:
        return self._transition(
            registration_id,
            action="approved",
            changes={"status": RegistrationStatus.APPROVED, "rejection_reason": None},
            current_user=current_user,
            allowed_from=(RegistrationStatus.PENDING, RegistrationStatus.REJECTED),
        )

    def reject(self, registration_id: int, *, reason: Optional[str], current_user: SessionUser) -> EventRegistration:
        reason = require_max_length(require_non_empty(reason, "rejection reason"), "rejection reason", 500)
        return self._transition(
            registration_id,
            action="rejected",
            changes={"status": RegistrationStatus.REJECTED, "rejection_reason": reason},
            current_user=current_user,
            allowed_from=(RegistrationStatus.PENDING, RegistrationStatus.APPROVED),
        )

    def cancel(self, token: str) -> EventRegistration:
        registration = self.lookup(token)
        return self._transition(
            registration.id,
            action="cancelled",
            changes={"status": RegistrationStatus.CANCELLED},
            current_user=None,
            allowed_from=(RegistrationStatus.PENDING, RegistrationStatus.APPROVED),
        )

    def verify_payment(self, registration_id: int, *, current_user: SessionUser) -> EventRegistration:
        registration = self.get_registration(registration_id)
        if registration.payment_verified:
            raise ConflictError("Payment is already verified.")
        return self._transition(
            registration.id,
            action="payment_verified",
            changes={
                "payment_verified": True,
                "payment_verified_at": self._clock(),
                "payment_verified_by": current_user.user_id,
            },
            current_user=current_user,
            allowed_from=(RegistrationStatus.PENDING, RegistrationStatus.APPROVED),
        )

    def statistics(self, event_id: int) -> dict:
        event = self.get(event_id)
        rows = list(self._events.registrations(event.id))
        by_status = {s.value: 0 for s in RegistrationStatus}
        for r in rows:
            by_status[r.status.value] += 1
        seats = by_status[RegistrationStatus.PENDING.value] + by_status[RegistrationStatus.APPROVED.value]

        sub_events = []
        for sub in self._events.sub_events(event.id):
            taken = self._events.count_registrations(event.id, statuses=SEAT_STATUSES, sub_event_id=sub.id)
            sub_events.append(
                {
                    "id": sub.id,
                    "title": sub.title,
                    "registrations": taken,
                    "max_participants": sub.max_participants,
                    "available": None if sub.max_participants is None else max(sub.max_participants - taken, 0),
                }
            )
        return {
            "event_id": event.id,
            "total": len(rows),
            "by_status": by_status,
            "payment_verified": sum(1 for r in rows if r.payment_verified),
            "seats_taken": seats,
            "available": None if event.max_participants is None else max(event.max_participants - seats, 0),
            "sub_events": sub_events,
        }
