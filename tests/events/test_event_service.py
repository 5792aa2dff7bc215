from datetime import datetime

import pytest

from src.enterprise_suite.enterprise_suite.core.enums import RegistrationStatus, Role
from src.enterprise_suite.enterprise_suite.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.enterprise_suite.enterprise_suite.events.service import EventService, slugify
from src.enterprise_suite.enterprise_suite.users.model import SessionUser

from tests.events.event_fakes import FakeEventRepo

NOW = datetime(2026, 4, 1, 10, 0)
ADMIN = SessionUser(user_id=1, name="Admin", email="a@example.com", role=Role.ADMIN)


def _event_data(**overrides):
    data = {
        "title": "Sports Day 2026",
        "venue": "Main Ground",
        "event_date": "2026-05-10",
        "event_time": "09:30",
        "registration_deadline": "2026-05-01T18:00",
        "max_participants": 2,
    }
    data.update(overrides)
    return data


def _published(repo=None, **overrides):
    repo = repo or FakeEventRepo()
    svc = EventService(repo, clock=lambda: NOW)
    event = svc.create(_event_data(**overrides), current_user=ADMIN)
    svc.publish(event.id, current_user=ADMIN)
    return svc, repo, event


def _registrant(email="p@example.com", **overrides):
    data = {"full_name": "Pat", "email": email, "phone": "0123456789"}
    data.update(overrides)
    return data


def test_slugify():
    assert slugify("Sports Day 2026!") == "sports-day-2026"
    assert slugify("!!!") == "event"


def test_create_makes_unique_unpublished_event():
    repo = FakeEventRepo()
    svc = EventService(repo, clock=lambda: NOW)
    first = svc.create(_event_data(), current_user=ADMIN)
    second = svc.create(_event_data(), current_user=ADMIN)

    assert (first.slug, second.slug) == ("sports-day-2026", "sports-day-2026-2")
    assert first.is_published is False
    assert repo.activity[0].action == "created"


def test_deadline_must_not_follow_event_date():
    svc = EventService(FakeEventRepo(), clock=lambda: NOW)
    with pytest.raises(ValidationError):
        svc.create(_event_data(registration_deadline="2026-05-11T09:00"), current_user=ADMIN)
    with pytest.raises(ValidationError):
        svc.create(_event_data(event_time="9.30am"), current_user=ADMIN)


def test_registration_requires_published_open_event():
    repo = FakeEventRepo()
    svc = EventService(repo, clock=lambda: NOW)
    event = svc.create(_event_data(), current_user=ADMIN)
    with pytest.raises(NotFoundError):
        svc.register(event.id, _registrant())

    svc.publish(event.id, current_user=ADMIN)
    late = EventService(repo, clock=lambda: datetime(2026, 5, 2))
    with pytest.raises(ValidationError, match="deadline"):
        late.register(event.id, _registrant())


def test_capacity_and_duplicate_email():
    svc, _, event = _published()
    reg = svc.register(event.id, _registrant())
    assert reg.status == RegistrationStatus.PENDING
    assert len(reg.token) == 32

    with pytest.raises(ConflictError, match="already registered"):
        svc.register(event.id, _registrant())
    svc.register(event.id, _registrant("q@example.com"))
    with pytest.raises(ConflictError, match="full"):
        svc.register(event.id, _registrant("r@example.com"))


def test_sub_event_selection_and_capacity():
    svc, _, event = _published(max_participants="")
    sub = svc.save_sub_event(event.id, {"title": "100m", "max_participants": 1}, current_user=ADMIN)

    with pytest.raises(ValidationError, match="at least one"):
        svc.register(event.id, _registrant())
    svc.register(event.id, _registrant(sub_event_ids=[sub.id]))
    with pytest.raises(ConflictError, match="100m is full"):
        svc.register(event.id, _registrant("q@example.com", sub_event_ids=[sub.id]))

    with pytest.raises(ConflictError):
        svc.delete_sub_event(event.id, sub.id, current_user=ADMIN)


def test_custom_fields_are_validated_on_registration():
    svc, _, event = _published()
    svc.replace_custom_fields(
        event.id,
        [
            {"field_label": "T-Shirt Size", "field_type": "select", "options": ["S", "M"], "is_required": True},
            {"field_label": "Age", "field_type": "number"},
        ],
        current_user=ADMIN,
    )
    with pytest.raises(ValidationError) as info:
        svc.register(event.id, _registrant(custom_fields={"t_shirt_size": "XL", "age": "old"}))
    assert set(info.value.errors) == {"t_shirt_size", "age"}

    reg = svc.register(event.id, _registrant(custom_fields={"t_shirt_size": "M", "age": "30"}))
    assert reg.custom_fields == {"t_shirt_size": "M", "age": 30.0}


def test_choice_fields_need_options():
    svc, _, event = _published()
    with pytest.raises(ValidationError):
        svc.replace_custom_fields(event.id, [{"field_label": "Size", "field_type": "radio"}], current_user=ADMIN)


def test_review_transitions_and_cancel_by_token():
    svc, repo, event = _published()
    reg = svc.register(event.id, _registrant())

    rejected = svc.reject(reg.id, reason="Incomplete", current_user=ADMIN)
    assert rejected.rejection_reason == "Incomplete"
    approved = svc.approve(reg.id, current_user=ADMIN)
    assert approved.status == RegistrationStatus.APPROVED
    assert approved.rejection_reason is None

    paid = svc.verify_payment(reg.id, current_user=ADMIN)
    assert paid.payment_verified is True
    with pytest.raises(ConflictError):
        svc.verify_payment(reg.id, current_user=ADMIN)

    cancelled = svc.cancel(reg.token)
    assert cancelled.status == RegistrationStatus.CANCELLED
    with pytest.raises(ConflictError):
        svc.approve(reg.id, current_user=ADMIN)
    assert repo.activity[-1].user_id is None


def test_statistics_count_seats():
    svc, _, event = _published()
    first = svc.register(event.id, _registrant())
    svc.register(event.id, _registrant("q@example.com"))
    svc.cancel(first.token)

    stats = svc.statistics(event.id)
    assert stats["by_status"]["cancelled"] == 1
    assert stats["seats_taken"] == 1
    assert stats["available"] == 1


class StaleCountRepo(FakeEventRepo):
    """Seat counts read before the insert miss a registration that landed concurrently."""

    def count_registrations(self, event_id, *, statuses, sub_event_id=None):
        return 0


def test_seat_limit_is_rechecked_when_the_registration_is_stored():
    svc, repo, event = _published(StaleCountRepo(), max_participants=1)
    svc.register(event.id, _registrant())

    with pytest.raises(ConflictError, match="full"):
        svc.register(event.id, _registrant("q@example.com"))
    assert len(repo.regs) == 1
