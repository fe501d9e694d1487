from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_min_length
from ..core.constants import MIN_REJECTION_REASON_LENGTH
from ..core.enums import DeletionRequestStatus, Role
from ..core.exceptions import NotFoundError, ValidationError
from ..users.model import User
from ..users.service import require_role
from ..visitors.repository import VisitorRepository
from .model import DeletionRequest
from .repository import DeletionRequestRepository

logger = logging.getLogger(__name__)


class DeletionRequestService:
    """Approval flow for visitor deletions (pending -> approved | rejected)."""

    def __init__(self, deletions: DeletionRequestRepository, visitors: VisitorRepository):
        self._deletions = deletions
        self._visitors = visitors

    def _get_pending(self, request_id: int) -> DeletionRequest:
        req = self._deletions.get_by_id(int(request_id))
        if not req:
            raise NotFoundError("Deletion request not found")
        if req.status != DeletionRequestStatus.PENDING:
            raise ValidationError("Deletion request has already been processed")
        return req

    def list_requests(self, *, actor: User, status: Optional[str] = None) -> list[DeletionRequest]:
        status_filter = None
        if status and status != "all":
            try:
                status_filter = DeletionRequestStatus(status)
            except ValueError:
                raise ValidationError("Invalid status")
        # Receptionists only see their own requests.
        requested_by = None if actor.role in {Role.ADMIN, Role.MANAGER} else actor.id
        return list(self._deletions.list(status=status_filter, requested_by=requested_by))

    def _load(self, request_id: int) -> DeletionRequest:
        req = self._deletions.get_by_id(int(request_id))
        if not req:
            raise NotFoundError("Deletion request not found")
        return req

    def get_request(self, request_id: int, *, actor: User) -> DeletionRequest:
        req = self._load(request_id)
        if actor.role not in {Role.ADMIN, Role.MANAGER} and req.requested_by != actor.id:
            raise NotFoundError("Deletion request not found")
        return req

    def approve(self, *, request_id: int, actor: User) -> DeletionRequest:
        require_role(actor, Role.ADMIN, Role.MANAGER)
        req = self._get_pending(request_id)
        if not self._visitors.get_by_id(req.visitor_id):
            raise NotFoundError("Visitor not found")

        if not self._deletions.approve(req.id, approver_id=actor.id, approved_at=now_local()):
            raise ValidationError("Deletion request has already been processed")
        logger.info("Deletion request %s approved by user %s (visitor %s)", req.id, actor.id, req.visitor_id)
        return self._load(req.id)

    def reject(self, *, request_id: int, actor: User, reason: str) -> DeletionRequest:
        require_role(actor, Role.ADMIN, Role.MANAGER)
        reason = require_min_length(reason, "Rejection reason", MIN_REJECTION_REASON_LENGTH)
        req = self._get_pending(request_id)

        if not self._deletions.reject(req.id, approver_id=actor.id, rejected_at=now_local(), reason=reason):
            raise ValidationError("Deletion request has already been processed")
        logger.info("Deletion request %s rejected by user %s", req.id, actor.id)
        return self._load(req.id)

    def stats(self) -> dict:
        counts = self._deletions.counts_by_status()
        return {
            "total": counts.get("total", 0),
            "pending": counts.get("pending", 0),
            "approved": counts.get("approved", 0),
            "rejected": counts.get("rejected", 0),
        }

    def status_for_visitor(self, visitor_id: int) -> Optional[DeletionRequest]:
        return self._deletions.latest_for_visitor(int(visitor_id))

    def batch_status(self, visitor_ids: Iterable) -> dict[int, Optional[str]]:
        try:
            ids = [int(v) for v in visitor_ids]
        except (TypeError, ValueError):
            raise ValidationError("visitor_ids must be a list of integers")
        found = self._deletions.latest_status_for_visitors(ids)
        return {vid: found.get(vid) for vid in ids}
