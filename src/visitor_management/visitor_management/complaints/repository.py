from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from .model import Complaint, ComplaintCategory, ComplaintField, ComplaintFilters, ComplaintResponse


class ComplaintRepository(Protocol):
    def next_sequence(self) -> int:
        raise NotImplementedError

    def create(self, data: dict) -> int:
        raise NotImplementedError

    def get_by_id(self, complaint_id: int) -> Optional[Complaint]:
        raise NotImplementedError

    def list(self, filters: ComplaintFilters) -> Sequence[Complaint]:
        raise NotImplementedError

    def count(self, filters: ComplaintFilters) -> int:
        raise NotImplementedError

    def update(self, complaint_id: int, changes: dict) -> bool:
        raise NotImplementedError

    def add_response(self, *, complaint_id: int, responder_id: Optional[int], text: str, is_internal: bool) -> int:
        raise NotImplementedError

    def list_responses(self, complaint_id: int) -> Sequence[ComplaintResponse]:
        raise NotImplementedError

    def list_categories(self, *, active_only: bool = True) -> Sequence[ComplaintCategory]:
        raise NotImplementedError

    def category_exists(self, category_id: int) -> bool:
        raise NotImplementedError

    def get_category(self, category_id: int) -> Optional[ComplaintCategory]:
        raise NotImplementedError

    def get_category_by_name(self, name: str) -> Optional[ComplaintCategory]:
        raise NotImplementedError

    def create_category(self, *, name: str, description: Optional[str], color: str, is_active: bool) -> int:
        raise NotImplementedError

    def update_category(self, category_id: int, changes: dict) -> bool:
        raise NotImplementedError

    def delete_category(self, category_id: int) -> bool:
        """Complaints keep their row; their category_id is set to NULL."""
        raise NotImplementedError

    def counts_by_status(self) -> dict[str, int]:
        raise NotImplementedError

    def count_created_since(self, since: datetime) -> int:
        raise NotImplementedError


class ComplaintFieldRepository(Protocol):
    def list_fields(self, *, active_only: bool = False) -> Sequence[ComplaintField]:
        raise NotImplementedError

    def get_field(self, field_id: int) -> Optional[ComplaintField]:
        raise NotImplementedError

    def get_field_by_name(self, field_name: str) -> Optional[ComplaintField]:
        raise NotImplementedError

    def create_field(self, data: dict) -> int:
        raise NotImplementedError

    def update_field(self, field_id: int, changes: dict) -> bool:
        raise NotImplementedError

    def delete_field(self, field_id: int) -> bool:
        raise NotImplementedError

    def set_field_orders(self, orders: Iterable[tuple[int, int]]) -> None:
        raise NotImplementedError
