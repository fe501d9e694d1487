from __future__ import annotations

from collections import Counter, OrderedDict
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local, to_json_value
from ..core.exceptions import ValidationError
from ..visitors.model import Visitor, VisitorFilters
from ..visitors.repository import VisitorRepository
from ..visitors.service import parse_filters as parse_visitor_filters

REPORT_TYPES = ("visitors", "summary", "units", "daily")

_ALL_UNITS = "all units"
_ALL_PURPOSES = "all purposes"

VISITOR_COLUMNS = [
    "id",
    "full_name",
    "phone_number",
    "email",
    "institution",
    "purpose",
    "person_to_meet",
    "unit",
    "check_in_time",
    "check_out_time",
    "status",
    "duration_minutes",
    "input_by_name",
    "checkout_by_name",
]
SUMMARY_COLUMNS = [
    "period_start",
    "period_end",
    "total_visitors",
    "active_visitors",
    "completed_visitors",
    "average_visit_minutes",
    "unique_institutions",
]
BREAKDOWN_COLUMNS = ["total", "active", "completed"]


@dataclass(frozen=True)
class Report:
    report_type: str
    fieldnames: list[str]
    rows: list[dict[str, Any]]


def parse_report_filters(args: Mapping[str, Any]) -> VisitorFilters:
    """Visitor filters for reports; the UI's "All ..." choices mean no filter."""
    filters = parse_visitor_filters(args)
    if filters.location and filters.location.lower() == _ALL_UNITS:
        filters = replace(filters, location=None)
    if filters.purpose and filters.purpose.lower() == _ALL_PURPOSES:
        filters = replace(filters, purpose=None)
    return replace(filters, limit=None, offset=0, include_deleted=False, only_deleted=False)


def parse_report_type(value: Optional[str]) -> str:
    report_type = (value or "visitors").strip().lower()
    if report_type not in REPORT_TYPES:
        raise ValidationError(f"Invalid report type. Must be one of: {', '.join(REPORT_TYPES)}")
    return report_type


def _duration_minutes(v: Visitor) -> Optional[int]:
    if not v.check_out_time:
        return None
    return max(0, int((v.check_out_time - v.check_in_time).total_seconds() // 60))


def _breakdown(visitors: Sequence[Visitor], key) -> "OrderedDict[Any, dict[str, int]]":
    groups: "OrderedDict[Any, dict[str, int]]" = OrderedDict()
    for v in visitors:
        bucket = groups.setdefault(key(v), {"total": 0, "active": 0, "completed": 0})
        bucket["total"] += 1
        bucket["completed" if v.is_checked_out else "active"] += 1
    return groups


class ReportService:
    def __init__(self, visitors: VisitorRepository):
        self._visitors = visitors

    def _fetch(self, filters: VisitorFilters) -> list[Visitor]:
        return list(self._visitors.list(filters))

    def build(self, filters: VisitorFilters, report_type: str = "visitors") -> Report:
        report_type = parse_report_type(report_type)
        visitors = self._fetch(filters)

        if report_type == "summary":
            durations = [d for d in (_duration_minutes(v) for v in visitors) if d is not None]
            completed = sum(1 for v in visitors if v.is_checked_out)
            row = {
                "period_start": to_json_value(filters.start_date) or "",
                "period_end": to_json_value(filters.end_date) or "",
                "total_visitors": len(visitors),
                "active_visitors": len(visitors) - completed,
                "completed_visitors": completed,
                "average_visit_minutes": round(sum(durations) / len(durations), 1) if durations else 0,
                "unique_institutions": len({v.institution.strip().lower() for v in visitors if v.institution}),
            }
            return Report(report_type, list(SUMMARY_COLUMNS), [row])

        if report_type == "units":
            groups = _breakdown(sorted(visitors, key=lambda v: v.unit or ""), lambda v: v.unit)
            rows = [{"unit": unit, **counts} for unit, counts in groups.items()]
            return Report(report_type, ["unit"] + BREAKDOWN_COLUMNS, rows)

        if report_type == "daily":
            groups = _breakdown(sorted(visitors, key=lambda v: v.check_in_time), lambda v: v.check_in_time.date())
            rows = [{"date": day.isoformat(), **counts} for day, counts in groups.items()]
            return Report(report_type, ["date"] + BREAKDOWN_COLUMNS, rows)

        rows = []
        for v in visitors:
            data = to_json_value(v)
            row = {key: data.get(key) for key in VISITOR_COLUMNS if key in data}
            row["status"] = "completed" if v.is_checked_out else "active"
            row["duration_minutes"] = _duration_minutes(v)
            rows.append(row)
        return Report(report_type, list(VISITOR_COLUMNS), rows)

    def stats(self, filters: VisitorFilters, *, now: Optional[datetime] = None) -> dict[str, Any]:
        today = (now or now_local()).date()
        visitors = self._fetch(filters)
        completed = sum(1 for v in visitors if v.is_checked_out)

        units = Counter(v.unit for v in visitors)
        purposes = Counter(v.purpose for v in visitors)
        daily = Counter(v.check_in_time.date() for v in visitors)

        return {
            "totalVisitors": len(visitors),
            "activeVisitors": len(visitors) - completed,
            "completedVisitors": completed,
            "todayVisitors": daily.get(today, 0),
            "unitBreakdown": [{"unit": u, "count": c} for u, c in units.most_common()],
            "purposeBreakdown": [{"purpose": p, "count": c} for p, c in purposes.most_common()],
            "dailyTrend": [{"date": d.isoformat(), "count": daily[d]} for d in sorted(daily)],
        }
