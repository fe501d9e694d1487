from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..common.datetime_utils import now_local, to_json_value
from ..common.validators import optional_str, parse_int, require_min_length
from ..core.constants import MIN_EDIT_REASON_LENGTH, MIN_REJECTION_REASON_LENGTH
from ..core.enums import EditRequestStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import User
from ..users.service import require_role
from ..visitors.service import VisitorService
from .model import EditRequest
from .repository import EditRequestRepository

logger = logging.getLogger(__name__)

_APPROVERS = {Role.ADMIN, Role.MANAGER}


class EditRequestService:
    """Proposed visitor corrections held until an Admin or Manager decides.

    One pending request per visitor: a second proposal replaces the first.
    Approval applies the change through the regular visitor edit, so it lands
    in the visitor's edit history.
    """

    def __init__(self, edits: EditRequestRepository, visitors: VisitorService):
        self._edits = edits
        self._visitors = visitors

    def _load(self, request_id: int) -> EditRequest:
        req = self._edits.get_by_id(int(request_id))
        if not req:
            raise NotFoundError("Edit request not found")
        return req

    def _get_pending(self, request_id: int) -> EditRequest:
        req = self._load(request_id)
        if req.status != EditRequestStatus.PENDING:
            raise ValidationError("Edit request has already been processed")
        return req

    def submit(self, *, actor: User, payload: Mapping[str, Any]) -> EditRequest:
        visitor_id = parse_int(payload.get("visitor_id"), "visitor_id")
        reason = require_min_length(payload.get("reason"), "Reason", MIN_EDIT_REASON_LENGTH)
        edit_data = payload.get("edit_data")
        if not isinstance(edit_data, Mapping):
            raise ValidationError("edit_data must be an object")

        visitor, changes = self._visitors.preview_edit(visitor_id=visitor_id, payload=edit_data)
        if actor.role not in _APPROVERS and visitor.input_by_user_id != actor.id:
            raise AuthorizationError("You can only request edits to visitors you registered")

        current = visitor.to_dict()
        proposed = {k: to_json_value(v) for k, v in changes.items()}
        original = {k: to_json_value(current.get(k)) for k in changes}

        pending = self._edits.get_pending_for_visitor(visitor.id)
        if pending and self._edits.replace_pending(
            pending.id, requested_by=actor.id, reason=reason, original_data=original, proposed_data=proposed
        ):
            logger.info("Edit request %s for visitor %s replaced by user %s", pending.id, visitor.id, actor.id)
            return self._load(pending.id)

        request_id = self._edits.create(
            visitor_id=visitor.id,
            requested_by=actor.id,
            reason=reason,
            original_data=original,
            proposed_data=proposed,
        )
        logger.info("Edit request %s for visitor %s by user %s (%s)", request_id, visitor.id, actor.id, ", ".join(proposed))
        return self._load(request_id)

    def list_requests(self, *, actor: User, status: Optional[str] = None) -> list[EditRequest]:
        status_filter = None
        if status and status != "all":
            try:
                status_filter = EditRequestStatus(status)
            except ValueError:
                raise ValidationError("Invalid status")
        requested_by = None if actor.role in _APPROVERS else actor.id
        return list(self._edits.list(status=status_filter, requested_by=requested_by))

    def get_request(self, request_id: int, *, actor: User) -> EditRequest:
        req = self._load(request_id)
        if actor.role not in _APPROVERS and req.requested_by != actor.id:
            raise NotFoundError("Edit request not found")
        return req

    def approve(self, *, request_id: int, actor: User) -> EditRequest:
        require_role(actor, Role.ADMIN, Role.MANAGER)
        req = self._get_pending(request_id)

        self._visitors.update_visitor(
            visitor_id=req.visitor_id,
            operator=actor,
            payload={**req.proposed_data, "edit_reason": f"Edit request #{req.id}: {req.reason}"},
        )
        if not self._edits.approve(req.id, approver_id=actor.id, processed_at=now_local()):
            raise ValidationError("Edit request has already been processed")
        logger.info("Edit request %s approved by user %s (visitor %s)", req.id, actor.id, req.visitor_id)
        return self._load(req.id)

    def reject(self, *, request_id: int, actor: User, reason: Any = None) -> EditRequest:
        require_role(actor, Role.ADMIN, Role.MANAGER)
        text = optional_str(reason)
        if text is not None:
            text = require_min_length(text, "Rejection reason", MIN_REJECTION_REASON_LENGTH)
        req = self._get_pending(request_id)

        if not self._edits.reject(req.id, approver_id=actor.id, processed_at=now_local(), reason=text):
            raise ValidationError("Edit request has already been processed")
        logger.info("Edit request %s rejected by user %s", req.id, actor.id)
        return self._load(req.id)

    def stats(self) -> dict:
        counts = self._edits.counts_by_status()
        return {
            "total": counts.get("total", 0),
            "pending": counts.get("pending", 0),
            "approved": counts.get("approved", 0),
            "rejected": counts.get("rejected", 0),
        }
