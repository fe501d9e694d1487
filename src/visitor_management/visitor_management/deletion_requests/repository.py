from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import DeletionRequestStatus
from .model import DeletionRequest


class DeletionRequestRepository(Protocol):
    def create(self, *, visitor_id: int, requested_by: Optional[int], reason: str) -> int:
        raise NotImplementedError

    def get_by_id(self, request_id: int) -> Optional[DeletionRequest]:
        raise NotImplementedError

    def list(
        self,
        *,
        status: Optional[DeletionRequestStatus] = None,
        requested_by: Optional[int] = None,
    ) -> Sequence[DeletionRequest]:
        raise NotImplementedError

    def get_pending_for_visitor(self, visitor_id: int) -> Optional[DeletionRequest]:
        raise NotImplementedError

    def latest_for_visitor(self, visitor_id: int) -> Optional[DeletionRequest]:
        raise NotImplementedError

    def latest_status_for_visitors(self, visitor_ids: Iterable[int]) -> dict[int, str]:
        raise NotImplementedError

    def approve(self, request_id: int, *, approver_id: int, approved_at: datetime) -> bool:
        """Mark approved and soft-delete the visitor in one transaction."""
        raise NotImplementedError

    def reject(self, request_id: int, *, approver_id: int, rejected_at: datetime, reason: str) -> bool:
        raise NotImplementedError

    def counts_by_status(self) -> dict[str, int]:
        raise NotImplementedError
