from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Any, Optional

from ..common.datetime_utils import now_local
from ..common.validators import clamp_limit
from ..core.constants import DASHBOARD_DAYS, RECENT_VISITORS_LIMIT
from ..core.enums import ComplaintStatus
from ..complaints.repository import ComplaintRepository
from ..feedback.repository import FeedbackRepository
from ..lost_items.service import LostItemService
from ..visitors.model import Visitor
from ..visitors.repository import VisitorRepository

POPULAR_PURPOSES_LIMIT = 5


def growth_percent(current: int, previous: int) -> float:
    """Percentage change, rounded to one decimal.

    A jump from zero counts as 100%, and zero to zero as 0%.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 1)


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


class DashboardService:
    """Read-only aggregates for the staff home screen."""

    def __init__(
        self,
        visitors: VisitorRepository,
        feedback: FeedbackRepository,
        complaints: ComplaintRepository,
        lost_items: LostItemService,
    ):
        self._visitors = visitors
        self._feedback = feedback
        self._complaints = complaints
        self._lost_items = lost_items

    def statistics(self, *, now: Optional[datetime] = None) -> dict[str, Any]:
        now = now or now_local()
        today_start = datetime.combine(now.date(), time.min)
        tomorrow = today_start + timedelta(days=1)
        week_start = today_start - timedelta(days=DASHBOARD_DAYS - 1)
        prev_week_start = week_start - timedelta(days=DASHBOARD_DAYS)

        this_week = self._visitors.count_checked_in_between(week_start, tomorrow)
        last_week = self._visitors.count_checked_in_between(prev_week_start, week_start)

        daily = self._visitors.daily_counts(week_start.date())
        daily_visits = []
        for offset in range(DASHBOARD_DAYS):
            day = (week_start + timedelta(days=offset)).date()
            daily_visits.append({"date": day.isoformat(), "count": int(daily.get(day, 0))})

        units = list(self._visitors.counts_by_unit())
        unit_total = sum(u["count"] for u in units)
        unit_stats = [
            {"unit": u["unit"], "count": u["count"], "percentage": _percent(u["count"], unit_total)} for u in units
        ]
        most_visited = max(units, key=lambda u: u["count"]) if units else None

        return {
            "totalVisitors": self._visitors.counts()["active"],
            "todayVisitors": self._visitors.count_checked_in_between(today_start, tomorrow),
            "activeVisitors": self._visitors.count_on_site(),
            "weeklyGrowth": growth_percent(this_week, last_week),
            "byLocation": [{"location": u["unit"], "count": u["count"]} for u in units],
            "dailyVisits": daily_visits,
            "recentVisitors": list(self._visitors.recent(limit=RECENT_VISITORS_LIMIT)),
            "popularPurposes": list(self._visitors.top_purposes(limit=POPULAR_PURPOSES_LIMIT)),
            "unitStats": unit_stats,
            "mostVisitedUnit": most_visited["unit"] if most_visited else None,
        }

    def recent_visitors(self, *, limit: Any = None, now: Optional[datetime] = None) -> list[Visitor]:
        now = now or now_local()
        since = datetime.combine(now.date(), time.min)
        return list(self._visitors.recent(limit=clamp_limit(limit, default=RECENT_VISITORS_LIMIT), since=since))

    def feedback_stats(self) -> dict[str, Any]:
        summary = self._feedback.rating_summary()
        average = summary.get("average")
        return {
            "average": round(float(average), 1) if average is not None else 0.0,
            "total": summary["total"],
        }

    def complaint_stats(self) -> dict[str, int]:
        counts = self._complaints.counts_by_status()
        return {
            "total": sum(counts.values()),
            "pending": counts.get(ComplaintStatus.OPEN.value, 0) + counts.get(ComplaintStatus.IN_PROGRESS.value, 0),
            "resolved": counts.get(ComplaintStatus.RESOLVED.value, 0),
        }

    def lost_item_stats(self) -> dict[str, int]:
        return self._lost_items.stats()
