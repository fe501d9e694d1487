from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import EditRequestStatus
from .model import EditRequest


class EditRequestRepository(Protocol):
    def create(
        self,
        *,
        visitor_id: int,
        requested_by: Optional[int],
        reason: str,
        original_data: dict,
        proposed_data: dict,
    ) -> int:
        raise NotImplementedError

    def get_by_id(self, request_id: int) -> Optional[EditRequest]:
        raise NotImplementedError

    def list(
        self,
        *,
        status: Optional[EditRequestStatus] = None,
        requested_by: Optional[int] = None,
    ) -> Sequence[EditRequest]:
        raise NotImplementedError

    def get_pending_for_visitor(self, visitor_id: int) -> Optional[EditRequest]:
        raise NotImplementedError

    def replace_pending(
        self,
        request_id: int,
        *,
        requested_by: Optional[int],
        reason: str,
        original_data: dict,
        proposed_data: dict,
    ) -> bool:
        """Overwrite a still-pending request. Returns False once it has been processed."""
        raise NotImplementedError

    def approve(self, request_id: int, *, approver_id: int, processed_at: datetime) -> bool:
        raise NotImplementedError

    def reject(self, request_id: int, *, approver_id: int, processed_at: datetime, reason: Optional[str]) -> bool:
        raise NotImplementedError

    def counts_by_status(self) -> dict[str, int]:
        raise NotImplementedError
