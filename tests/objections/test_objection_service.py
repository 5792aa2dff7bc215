from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

import pytest

from src.enterprise_suite.enterprise_suite.core.enums import (
    DailyWorkStatus,
    DailyWorkType,
    ObjectionStatus,
    Role,
)
from src.enterprise_suite.enterprise_suite.core.exceptions import AuthorizationError, ValidationError
from src.enterprise_suite.enterprise_suite.daily_works.model import DailyWork
from src.enterprise_suite.enterprise_suite.objections.model import RfiObjection
from src.enterprise_suite.enterprise_suite.objections.service import ObjectionService
from src.enterprise_suite.enterprise_suite.users.model import SessionUser

NOW = datetime(2026, 3, 10, 9, 0, 0)

ADMIN = SessionUser(user_id=1, name="Admin", email="admin@example.com", role=Role.ADMIN)
ENGINEER = SessionUser(user_id=2, name="Engineer", email="eng@example.com", role=Role.EMPLOYEE)
OTHER = SessionUser(user_id=3, name="Other", email="other@example.com", role=Role.EMPLOYEE)


class FakeObjectionsRepo:
    def __init__(self):
        self._next_id = 1
        self.rows: dict[int, RfiObjection] = {}
        self.deleted: set[int] = set()
        self.logs = []
        self.attached: dict[int, set[int]] = {}

    def create(self, *, title, category, description, reason, status, chainage_from, chainage_to, created_by):
        oid = self._next_id
        self._next_id += 1
        self.rows[oid] = RfiObjection(
            id=oid,
            title=title,
            category=category,
            description=description,
            reason=reason,
            status=status,
            created_by=created_by,
            chainage_from=chainage_from,
            chainage_to=chainage_to,
            created_at=NOW,
        )
        return oid

    def get(self, objection_id):
        if objection_id in self.deleted:
            return None
        return self.rows.get(int(objection_id))

    def update_fields(self, *, objection_id, fields, updated_by):
        self.rows[objection_id] = replace(self.rows[objection_id], updated_by=updated_by, **fields)
        return True

    def set_status(
        self, *, objection_id, status, updated_by, resolved_by=None, resolved_at=None, resolution_notes=None
    ):
        row = self.rows[objection_id]
        self.rows[objection_id] = replace(
            row,
            status=status,
            updated_by=updated_by,
            resolved_by=resolved_by or row.resolved_by,
            resolved_at=resolved_at or row.resolved_at,
            resolution_notes=resolution_notes or row.resolution_notes,
        )
        return True

    def soft_delete(self, objection_id):
        self.deleted.add(objection_id)
        return True

    def replace_chainages(self, *, objection_id, entries):
        self.rows[objection_id] = replace(self.rows[objection_id], chainages=tuple(entries))

    def add_status_log(self, log):
        self.logs.append(log)
        return len(self.logs)

    def list_status_logs(self, objection_id):
        return [log for log in self.logs if log.objection_id == objection_id]

    def attach_daily_works(self, *, objection_id, daily_work_ids, attached_by, attached_at, notes=None):
        current = self.attached.setdefault(objection_id, set())
        new = set(daily_work_ids) - current
        current.update(new)
        return len(new)

    def detach_daily_works(self, *, objection_id, daily_work_ids):
        current = self.attached.setdefault(objection_id, set())
        gone = current & set(daily_work_ids)
        current.difference_update(gone)
        return len(gone)

    def list_attached_daily_work_ids(self, objection_id):
        return sorted(self.attached.get(objection_id, ()))

    def active_counts_for_daily_works(self, daily_work_ids):
        out = {}
        for oid, works in self.attached.items():
            obj = self.get(oid)
            if obj is None or not obj.is_active:
                continue
            for wid in works:
                if wid in daily_work_ids:
                    out[wid] = out.get(wid, 0) + 1
        return out


class FakeWorksRepo:
    def __init__(self, works):
        self.works = {w.id: w for w in works}

    def get_many(self, ids):
        return [self.works[i] for i in ids if i in self.works]

    def list_with_location(self):
        return list(self.works.values())


def _work(work_id, location):
    return DailyWork(
        id=work_id,
        date=date(2026, 3, 1),
        number=f"RFI-{work_id:03d}",
        status=DailyWorkStatus.NEW,
        type=DailyWorkType.EMBANKMENT,
        description="Layer compaction",
        location=location,
    )


def _service(works=()):
    repo = FakeObjectionsRepo()
    return ObjectionService(repo, FakeWorksRepo(works), clock=lambda: NOW), repo


def _payload(**overrides):
    data = {
        "title": "Drainage clash",
        "description": "Culvert conflicts with drain",
        "reason": "Drawing revision pending",
        "category": "design_conflict",
    }
    data.update(overrides)
    return data


def test_create_draft_with_chainages():
    svc, repo = _service()
    obj = svc.create(
        data=_payload(specific_chainages="K35+897, K36+100", chainage_from="K40+000", chainage_to="K41+000"),
        current_user=ENGINEER,
    )

    assert obj.status == ObjectionStatus.DRAFT
    assert obj.specific_meters == [35897, 36100]
    assert obj.range_meters == (40000, 41000)
    assert [(log.from_status, log.to_status, log.notes) for log in svc.status_logs(obj.id)] == [
        (None, ObjectionStatus.DRAFT, "Objection created")
    ]
    assert repo.logs[0].from_status_label is None


def test_create_with_submitted_status_logs_transition():
    svc, repo = _service()
    obj = svc.create(data=_payload(status="submitted"), current_user=ENGINEER)

    assert obj.status == ObjectionStatus.SUBMITTED
    assert [(log.from_status, log.to_status) for log in repo.logs] == [
        (None, ObjectionStatus.DRAFT),
        (ObjectionStatus.DRAFT, ObjectionStatus.SUBMITTED),
    ]


def test_create_requires_reason_and_valid_category():
    svc, _ = _service()
    with pytest.raises(ValidationError):
        svc.create(data=_payload(reason="  "), current_user=ENGINEER)
    with pytest.raises(ValidationError):
        svc.create(data=_payload(category="weather"), current_user=ENGINEER)


def test_review_flow_requires_admin_and_resolution_notes():
    svc, repo = _service()
    obj = svc.create(data=_payload(status="submitted"), current_user=ENGINEER)

    with pytest.raises(AuthorizationError):
        svc.start_review(obj.id, current_user=ENGINEER)

    svc.start_review(obj.id, current_user=ADMIN)
    with pytest.raises(ValidationError):
        svc.resolve(obj.id, current_user=ADMIN, notes="")

    resolved = svc.resolve(obj.id, current_user=ADMIN, notes="Drawing updated")
    assert resolved.status == ObjectionStatus.RESOLVED
    assert resolved.resolved_by == ADMIN.user_id
    assert resolved.resolved_at == NOW
    assert len(repo.logs) == 4


def test_invalid_transition_is_rejected():
    svc, _ = _service()
    obj = svc.create(data=_payload(), current_user=ENGINEER)
    with pytest.raises(ValidationError):
        svc.resolve(obj.id, current_user=ADMIN, notes="too early")


def test_only_owner_or_admin_may_edit_and_only_drafts_deleted():
    svc, _ = _service()
    obj = svc.create(data=_payload(), current_user=ENGINEER)

    with pytest.raises(AuthorizationError):
        svc.update(obj.id, data=_payload(title="Changed"), current_user=OTHER)
    updated = svc.update(obj.id, data=_payload(title="Changed"), current_user=ENGINEER)
    assert updated.title == "Changed"

    svc.submit(obj.id, current_user=ENGINEER)
    with pytest.raises(ValidationError):
        svc.delete(obj.id, current_user=ADMIN)


def test_resolved_objection_cannot_be_edited():
    svc, _ = _service()
    obj = svc.create(data=_payload(status="submitted"), current_user=ENGINEER)
    svc.reject(obj.id, current_user=ADMIN, notes="Not applicable")
    with pytest.raises(ValidationError):
        svc.update(obj.id, data=_payload(), current_user=ADMIN)


def test_attach_rejects_unknown_rfis():
    svc, _ = _service([_work(1, "K35+897")])
    obj = svc.create(data=_payload(), current_user=ENGINEER)

    with pytest.raises(ValidationError):
        svc.attach_to_rfis(obj.id, rfi_ids=[1, 99], current_user=ENGINEER)
    assert svc.attach_to_rfis(obj.id, rfi_ids=[1, 1], current_user=ENGINEER) == 1
    assert svc.active_count_for_rfi(1) == 1


def test_suggest_affected_rfis_skips_attached_and_non_matching():
    works = [_work(1, "K35+897"), _work(2, "K35+800 - K36+000"), _work(3, "K50+000"), _work(4, "K35+897")]
    svc, _ = _service(works)
    obj = svc.create(data=_payload(specific_chainages=["K35+897"]), current_user=ENGINEER)
    svc.attach_to_rfis(obj.id, rfi_ids=[4], current_user=ENGINEER)

    suggested = svc.suggest_affected_rfis(obj.id)
    assert [s["id"] for s in suggested] == [1, 2]


def test_suggest_without_chainages_returns_nothing():
    svc, _ = _service([_work(1, "K35+897")])
    obj = svc.create(data=_payload(), current_user=ENGINEER)
    assert svc.suggest_affected_rfis(obj.id) == []


def test_create_with_unknown_rfi_leaves_no_objection_behind():
    svc, repo = _service([_work(1, "K35+897")])
    with pytest.raises(ValidationError, match="999"):
        svc.create(data=_payload(daily_work_ids=[1, 999]), current_user=ENGINEER)

    assert repo.rows == {}
    assert repo.logs == []


def test_create_discards_objection_when_linking_fails():
    svc, repo = _service([_work(1, "K35+897")])

    def broken_attach(**kwargs):
        raise RuntimeError("connection lost")

    repo.attach_daily_works = broken_attach
    with pytest.raises(RuntimeError):
        svc.create(data=_payload(daily_work_ids=[1]), current_user=ENGINEER)

    assert repo.deleted == {1}
    assert repo.get(1) is None


def test_partial_update_keeps_omitted_fields_and_chainages():
    svc, _ = _service()
    obj = svc.create(
        data=_payload(specific_chainages="K35+897", chainage_from="K40+000", chainage_to="K41+000"),
        current_user=ENGINEER,
    )

    updated = svc.update(obj.id, data={"title": "Renamed"}, current_user=ENGINEER)
    assert updated.title == "Renamed"
    assert updated.reason == "Drawing revision pending"
    assert updated.chainage_from == "K40+000"
    assert updated.range_meters == (40000, 41000)

    moved = svc.update(obj.id, data={"chainage_to": "K42+000"}, current_user=ENGINEER)
    assert moved.chainage_from == "K40+000"
    assert moved.range_meters == (40000, 42000)
    assert moved.specific_meters == [35897]

    with pytest.raises(ValidationError):
        svc.update(obj.id, data={"reason": " "}, current_user=ENGINEER)
