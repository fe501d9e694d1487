from __future__ import annotations

from datetime import datetime

import pytest

from src.visitor_management.visitor_management.dashboard.service import DashboardService, growth_percent
from src.visitor_management.visitor_management.lost_items.service import LostItemService

NOW = datetime(2026, 10, 19, 12, 0)


class StubComplaints:
    def __init__(self, counts):
        self._counts = counts

    def counts_by_status(self):
        return dict(self._counts)


@pytest.fixture
def seeded(visitors_repo):
    visitors_repo.add(check_in_time=datetime(2026, 10, 19, 9, 0))
    visitors_repo.add(
        check_in_time=datetime(2026, 10, 19, 10, 0),
        check_out_time=datetime(2026, 10, 19, 10, 30),
        purpose="Legalisir",
    )
    visitors_repo.add(check_in_time=datetime(2026, 10, 19, 11, 0), unit="Perpustakaan")
    visitors_repo.add(
        check_in_time=datetime(2026, 10, 15, 9, 0),
        check_out_time=datetime(2026, 10, 15, 9, 45),
        unit="Perpustakaan",
    )
    visitors_repo.add(check_in_time=datetime(2026, 10, 10, 9, 0), check_out_time=datetime(2026, 10, 10, 10, 0))
    visitors_repo.add(check_in_time=datetime(2026, 10, 19, 8, 0), deleted_at=datetime(2026, 10, 19, 8, 30))
    return visitors_repo


@pytest.fixture
def svc(seeded, feedback_repo, lost_items_repo):
    complaints = StubComplaints({"open": 2, "in_progress": 1, "resolved": 4, "closed": 1})
    return DashboardService(seeded, feedback_repo, complaints, LostItemService(lost_items_repo))


@pytest.mark.parametrize(
    "current, previous, expected",
    [(5, 0, 100.0), (0, 0, 0.0), (3, 4, -25.0), (4, 3, 33.3)],
)
def test_growth_percent(current, previous, expected):
    assert growth_percent(current, previous) == expected


def test_statistics(svc):
    stats = svc.statistics(now=NOW)

    assert stats["totalVisitors"] == 5
    assert stats["todayVisitors"] == 3
    assert stats["activeVisitors"] == 2
    assert stats["weeklyGrowth"] == 300.0
    assert stats["byLocation"] == [{"location": "Dekanat", "count": 3}, {"location": "Perpustakaan", "count": 2}]
    assert stats["unitStats"][0] == {"unit": "Dekanat", "count": 3, "percentage": 60.0}
    assert stats["mostVisitedUnit"] == "Dekanat"
    assert stats["popularPurposes"][0] == {"purpose": "Meeting", "count": 4}


def test_daily_visits_cover_the_last_week(svc):
    daily = svc.statistics(now=NOW)["dailyVisits"]

    assert [d["date"] for d in daily] == [f"2026-10-{day}" for day in range(13, 20)]
    assert {d["date"]: d["count"] for d in daily if d["count"]} == {"2026-10-15": 1, "2026-10-19": 3}


def test_recent_visitors_are_from_today(svc):
    recent = svc.recent_visitors(now=NOW)

    assert [v.check_in_time.hour for v in recent] == [11, 10, 9]
    assert len(svc.recent_visitors(limit=1, now=NOW)) == 1


def test_empty_dashboard(visitors_repo, feedback_repo, lost_items_repo):
    svc = DashboardService(visitors_repo, feedback_repo, StubComplaints({}), LostItemService(lost_items_repo))

    stats = svc.statistics(now=NOW)

    assert stats["totalVisitors"] == 0
    assert stats["weeklyGrowth"] == 0.0
    assert stats["mostVisitedUnit"] is None
    assert len(stats["dailyVisits"]) == 7
    assert svc.feedback_stats() == {"average": 0.0, "total": 0}


def test_complaint_stats(svc):
    assert svc.complaint_stats() == {"total": 8, "pending": 3, "resolved": 4}


def test_lost_item_stats_delegate(svc):
    stats = svc.lost_item_stats()

    assert stats["total"] == 0
    assert stats["returns_this_month"] == 0
