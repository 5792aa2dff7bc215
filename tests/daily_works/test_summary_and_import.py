from __future__ import annotations

from datetime import date, datetime

import pytest

from src.enterprise_suite.enterprise_suite.core.enums import DailyWorkStatus, DailyWorkType, Role, WorkSide
from src.enterprise_suite.enterprise_suite.core.exceptions import ValidationError
from src.enterprise_suite.enterprise_suite.daily_works.import_service import DailyWorkImportService
from src.enterprise_suite.enterprise_suite.daily_works.jurisdiction import JurisdictionMatcher
from src.enterprise_suite.enterprise_suite.daily_works.model import DailyWork, Jurisdiction
from src.enterprise_suite.enterprise_suite.daily_works.summary_service import (
    DailyWorkSummaryService,
    overall_metrics,
    summarize,
)
from src.enterprise_suite.enterprise_suite.users.model import SessionUser

from tests.daily_works.daily_work_fakes import FakeSummariesRepo, FakeWorksRepo

DAY = date(2025, 3, 1)
USER = SessionUser(user_id=1, name="Admin", email="a@example.com", role=Role.ADMIN)
JURISDICTIONS = [Jurisdiction(id=1, location="All", start_chainage="K0", end_chainage="K40", incharge=10, assigned=11)]


def _work(work_id, work_type, *, status=DailyWorkStatus.NEW, incharge=10, resubmissions=0, submitted=None, day=DAY):
    return DailyWork(
        id=work_id,
        date=day,
        number=f"RFI-{work_id}",
        status=status,
        type=work_type,
        description="x",
        location="K01",
        incharge=incharge,
        resubmission_count=resubmissions,
        rfi_submission_date=submitted,
    )


def test_summarize_counts_types_and_progress():
    works = [
        _work(1, DailyWorkType.EMBANKMENT, status=DailyWorkStatus.COMPLETED, submitted=DAY),
        _work(2, DailyWorkType.EMBANKMENT, resubmissions=1),
        _work(3, DailyWorkType.PAVEMENT),
    ]
    s = summarize(DAY, 10, works)

    assert (s.totalDailyWorks, s.embankment, s.structure, s.pavement) == (3, 2, 0, 1)
    assert (s.completed, s.pending, s.resubmissions, s.rfiSubmissions) == (1, 2, 1, 1)


def test_generate_for_writes_one_summary_per_incharge():
    works = FakeWorksRepo([_work(1, DailyWorkType.STRUCTURE), _work(2, DailyWorkType.PAVEMENT, incharge=20)])
    summaries = FakeSummariesRepo()
    svc = DailyWorkSummaryService(works, summaries)

    out = svc.generate_for(DAY)
    assert [s.incharge for s in out] == [10, 20]
    assert set(summaries.rows) == {(DAY, 10), (DAY, 20)}


def test_generate_for_drops_summary_when_incharge_has_no_work():
    summaries = FakeSummariesRepo()
    svc = DailyWorkSummaryService(FakeWorksRepo([_work(1, DailyWorkType.STRUCTURE)]), summaries)
    svc.generate_for(DAY)

    svc = DailyWorkSummaryService(FakeWorksRepo(), summaries)
    assert svc.generate_for(DAY, incharge=10) == []
    assert summaries.rows == {}


def test_overall_metrics():
    a = summarize(DAY, 10, [_work(1, DailyWorkType.STRUCTURE, status=DailyWorkStatus.COMPLETED)])
    b = summarize(DAY, 20, [_work(2, DailyWorkType.STRUCTURE), _work(3, DailyWorkType.STRUCTURE)])
    metrics = overall_metrics([a, b])

    assert metrics["totalWorks"] == 3
    assert metrics["totalCompleted"] == 1
    assert metrics["totalPending"] == 2
    assert metrics["avgCompletion"] == 33.3


def _importer(works):
    summaries = DailyWorkSummaryService(works, FakeSummariesRepo())
    return DailyWorkImportService(
        works, JurisdictionMatcher(lambda: JURISDICTIONS), summaries, clock=lambda: datetime(2025, 3, 5, 8, 0)
    )


def test_import_creates_updates_and_skips_rows():
    existing = _work(1, DailyWorkType.STRUCTURE)
    works = FakeWorksRepo([existing])
    sheet = [
        ["2025-03-01", "RFI-1", "Pavement", "Updated", "K05+000", "TR-L", None, "08:30"],
        ["2025-03-01", "RFI-2", "Embankment", "Layer", "K10+000", "SR-R", "L2", datetime(2025, 3, 1, 9, 15)],
        ["2025-03-01", "RFI-3", "Structure", "Far away", "K45+000", None, None, None],
    ]

    results = _importer(works).import_sheets([sheet], current_user=USER)

    assert results[0]["processed_count"] == 2
    assert results[0]["skipped_count"] == 1
    assert works.get(1).type == DailyWorkType.PAVEMENT
    created = works.find_by_number("RFI-2")
    assert created.side == WorkSide.SR_R
    assert created.planned_time == "09:15"
    assert created.incharge == 10
    assert results[0]["summaries"][0]["totalDailyWorks"] == 2


def test_import_of_known_number_on_new_date_is_a_resubmission():
    works = FakeWorksRepo([_work(1, DailyWorkType.STRUCTURE, day=date(2025, 2, 20))])
    _importer(works).import_sheets(
        [[["2025-03-01", "RFI-1", "Structure", "Again", "K05+000", "TR-L", None, "10:00"]]], current_user=USER
    )

    latest = works.find_by_number("RFI-1")
    assert latest.id != 1
    assert latest.date == DAY
    assert latest.resubmission_count == 1
    assert latest.resubmission_date == "1st Resubmission on 5th March 2025"


def test_import_validates_every_sheet_before_writing():
    works = FakeWorksRepo()
    good = [["2025-03-01", "RFI-1", "Structure", "ok", "K05"]]
    bad = [["2025-03-02", "RFI-2", "Bridge", "no", "K05"]]
    with pytest.raises(ValidationError, match="Sheet 2"):
        _importer(works).import_sheets([good, bad], current_user=USER)
    assert works.rows == {}
