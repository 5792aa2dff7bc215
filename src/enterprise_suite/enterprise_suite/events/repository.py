from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import RegistrationStatus
from .model import ActivityLog, CustomField, Event, EventRegistration, SubEvent


class EventRepository(Protocol):
    def list_events(self, *, published_only: bool = False) -> Sequence[Event]:
        raise NotImplementedError

    def get(self, event_id: int) -> Optional[Event]:
        raise NotImplementedError

    def get_by_slug(self, slug: str) -> Optional[Event]:
        raise NotImplementedError

    def slug_exists(self, slug: str, *, exclude_id: Optional[int] = None) -> bool:
        raise NotImplementedError

    def create(self, data: dict) -> int:
        raise NotImplementedError

    def update(self, event_id: int, data: dict) -> bool:
        raise NotImplementedError

    def soft_delete(self, event_id: int) -> bool:
        raise NotImplementedError

    def sub_events(self, event_id: int) -> Sequence[SubEvent]:
        raise NotImplementedError

    def save_sub_event(self, event_id: int, data: dict, *, sub_event_id: Optional[int] = None) -> int:
        raise NotImplementedError

    def delete_sub_event(self, sub_event_id: int) -> bool:
        raise NotImplementedError

    def custom_fields(self, event_id: int) -> Sequence[CustomField]:
        raise NotImplementedError

    def replace_custom_fields(self, event_id: int, fields: Sequence[dict]) -> None:
        raise NotImplementedError

    def count_registrations(
        self,
        event_id: int,
        *,
        statuses: Sequence[RegistrationStatus],
        sub_event_id: Optional[int] = None,
    ) -> int:
        raise NotImplementedError

    def email_registered(self, event_id: int, email: str) -> bool:
        """True when a non-cancelled registration already uses the email."""
        raise NotImplementedError

    def create_registration(
        self, registration: EventRegistration, *, seat_limits: Optional[Mapping[Optional[int], int]] = None
    ) -> Optional[int]:
        """Insert unless a seat limit (``None`` key for the event, sub-event ids otherwise) is already reached.

        Returns ``None`` when full. Limits are re-checked under a lock on the event.
        """
        raise NotImplementedError

    def get_registration(self, registration_id: int) -> Optional[EventRegistration]:
        raise NotImplementedError

    def get_registration_by_token(self, token: str) -> Optional[EventRegistration]:
        raise NotImplementedError

    def update_registration(self, registration_id: int, data: dict) -> bool:
        raise NotImplementedError

    def registrations(self, event_id: int, *, status: Optional[RegistrationStatus] = None) -> Sequence[EventRegistration]:
        raise NotImplementedError

    def add_activity(self, entry: ActivityLog) -> None:
        raise NotImplementedError
