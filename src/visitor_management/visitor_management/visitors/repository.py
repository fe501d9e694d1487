from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import EditHistoryEntry, Visitor, VisitorFilters


class VisitorRepository(Protocol):
    def create(self, data: dict) -> int:
        raise NotImplementedError

    def get_by_id(self, visitor_id: int) -> Optional[Visitor]:
        raise NotImplementedError

    def list(self, filters: VisitorFilters) -> Sequence[Visitor]:
        raise NotImplementedError

    def count(self, filters: VisitorFilters) -> int:
        raise NotImplementedError

    def update(self, visitor_id: int, changes: dict) -> bool:
        raise NotImplementedError

    def check_out(
        self,
        visitor_id: int,
        *,
        check_out_time: datetime,
        operator_id: Optional[int],
        operator_name: Optional[str],
        extra: dict,
    ) -> bool:
        """Set checkout fields only if the visitor is still checked in."""
        raise NotImplementedError

    def add_edit_history(
        self,
        *,
        visitor_id: int,
        edited_by: Optional[int],
        edited_by_name: Optional[str],
        changes: dict,
        original_data: Optional[dict],
        reason: Optional[str],
    ) -> int:
        raise NotImplementedError

    def list_edit_history(self, visitor_id: int, *, limit: int, offset: int) -> Sequence[EditHistoryEntry]:
        raise NotImplementedError

    def count_edit_history(self, visitor_id: int) -> int:
        raise NotImplementedError

    def soft_delete(self, visitor_id: int, *, deleted_by: Optional[int], deleted_at: datetime) -> bool:
        raise NotImplementedError

    def restore(self, visitor_id: int) -> bool:
        raise NotImplementedError

    def delete_permanently(self, visitor_id: int) -> bool:
        raise NotImplementedError

    def counts(self) -> dict[str, int]:
        """Return ``{"total", "active", "deleted"}`` (active = not soft-deleted)."""
        raise NotImplementedError

    # --- aggregates (dashboard) ---

    def count_checked_in_between(self, start: datetime, end: datetime) -> int:
        raise NotImplementedError

    def count_on_site(self) -> int:
        raise NotImplementedError

    def counts_by_unit(self) -> Sequence[dict]:
        raise NotImplementedError

    def daily_counts(self, since: date) -> dict[date, int]:
        raise NotImplementedError

    def top_purposes(self, *, limit: int) -> Sequence[dict]:
        raise NotImplementedError

    def recent(self, *, limit: int, since: Optional[datetime] = None) -> Sequence[Visitor]:
        raise NotImplementedError
