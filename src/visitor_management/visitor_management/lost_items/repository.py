from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import HistoryAction
from .model import HistoryEntry, ItemReturn, LostItem, LostItemFilters


class LostItemRepository(Protocol):
    def create(self, data: dict) -> int:
        raise NotImplementedError

    def get_by_id(self, item_id: int) -> Optional[LostItem]:
        raise NotImplementedError

    def list(self, filters: LostItemFilters) -> Sequence[LostItem]:
        raise NotImplementedError

    def count(self, filters: LostItemFilters) -> int:
        raise NotImplementedError

    def update(self, item_id: int, changes: dict) -> bool:
        raise NotImplementedError

    def delete(self, item_id: int) -> bool:
        raise NotImplementedError

    def get_return(self, item_id: int) -> Optional[ItemReturn]:
        raise NotImplementedError

    def record_return(self, item_id: int, *, return_data: dict, history: dict) -> bool:
        """Flip a ``found`` item to ``returned``, insert the return row and the
        history row in one transaction. Returns False if the item was not ``found``."""
        raise NotImplementedError

    def update_return(self, return_id: int, changes: dict, *, history: dict) -> bool:
        """Correct a recorded return and log the history row in one transaction."""
        raise NotImplementedError

    def add_history(
        self,
        *,
        item_id: int,
        action: HistoryAction,
        old_data: Optional[dict],
        new_data: Optional[dict],
        changed_fields: Sequence[str],
        user_id: Optional[int],
        user_name: Optional[str],
        notes: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def list_history(self, item_id: int) -> Sequence[HistoryEntry]:
        raise NotImplementedError

    def get_history(self, history_id: int) -> Optional[HistoryEntry]:
        raise NotImplementedError

    def counts_by_status(self) -> dict[str, int]:
        raise NotImplementedError

    def count_created_since(self, since: datetime) -> int:
        raise NotImplementedError

    def count_returns_since(self, since: datetime) -> int:
        raise NotImplementedError
