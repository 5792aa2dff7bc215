from dataclasses import replace

from src.enterprise_suite.enterprise_suite.core.enums import CustomFieldType, RegistrationStatus
from src.enterprise_suite.enterprise_suite.events.model import SEAT_STATUSES, CustomField, Event, SubEvent


class FakeEventRepo:
    def __init__(self):
        self.events = {}
        self.deleted = set()
        self.subs = {}
        self.fields = {}
        self.regs = {}
        self.activity = []

    def list_events(self, *, published_only=False):
        return [e for e in self.events.values() if e.is_published or not published_only]

    def get(self, event_id):
        return None if event_id in self.deleted else self.events.get(event_id)

    def get_by_slug(self, slug):
        return next((e for e in self.events.values() if e.slug == slug), None)

    def slug_exists(self, slug, *, exclude_id=None):
        return any(e.slug == slug and e.id != exclude_id for e in self.events.values())

    def create(self, data):
        event_id = len(self.events) + 1
        fields = {k: v for k, v in data.items() if k not in ("created_by", "updated_by")}
        self.events[event_id] = Event(id=event_id, **fields)
        return event_id

    def update(self, event_id, data):
        fields = {k: v for k, v in data.items() if k not in ("created_by", "updated_by")}
        self.events[event_id] = replace(self.events[event_id], **fields)
        return True

    def soft_delete(self, event_id):
        self.deleted.add(event_id)
        return True

    def sub_events(self, event_id):
        return [s for s in self.subs.values() if s.event_id == event_id]

    def save_sub_event(self, event_id, data, *, sub_event_id=None):
        sub_id = sub_event_id or len(self.subs) + 1
        self.subs[sub_id] = SubEvent(id=sub_id, event_id=event_id, **data)
        return sub_id

    def delete_sub_event(self, sub_event_id):
        return self.subs.pop(sub_event_id, None) is not None

    def custom_fields(self, event_id):
        return self.fields.get(event_id, [])

    def replace_custom_fields(self, event_id, fields):
        self.fields[event_id] = [
            CustomField(
                id=i + 1,
                event_id=event_id,
                field_name=f["field_name"],
                field_label=f["field_label"],
                field_type=CustomFieldType(f["field_type"]),
                is_required=f["is_required"],
                options=tuple(f["options"]),
                display_order=f["display_order"],
            )
            for i, f in enumerate(fields)
        ]

    def count_registrations(self, event_id, *, statuses, sub_event_id=None):
        return sum(
            1
            for r in self.regs.values()
            if r.event_id == event_id
            and r.status in statuses
            and (sub_event_id is None or sub_event_id in r.sub_event_ids)
        )

    def email_registered(self, event_id, email):
        return any(
            r.event_id == event_id and r.email == email and r.status != RegistrationStatus.CANCELLED
            for r in self.regs.values()
        )

    def create_registration(self, registration, *, seat_limits=None):
        for sub_event_id, limit in (seat_limits or {}).items():
            taken = sum(
                1
                for r in self.regs.values()
                if r.event_id == registration.event_id
                and r.status in SEAT_STATUSES
                and (sub_event_id is None or sub_event_id in r.sub_event_ids)
            )
            if taken >= limit:
                return None
        reg_id = len(self.regs) + 1
        self.regs[reg_id] = replace(registration, id=reg_id)
        return reg_id

    def get_registration(self, registration_id):
        return self.regs.get(registration_id)

    def get_registration_by_token(self, token):
        return next((r for r in self.regs.values() if r.token == token), None)

    def update_registration(self, registration_id, data):
        fields = {k: v for k, v in data.items() if not k.startswith("payment_verified_")}
        self.regs[registration_id] = replace(self.regs[registration_id], **fields)
        return True

    def registrations(self, event_id, *, status=None):
        return [r for r in self.regs.values() if r.event_id == event_id and (status is None or r.status == status)]

    def add_activity(self, entry):
        self.activity.append(entry)
