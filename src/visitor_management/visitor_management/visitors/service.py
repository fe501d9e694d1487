from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from ..common.datetime_utils import now_local, optional_date, parse_iso_datetime
from ..common.uploads import delete_upload, maybe_save_data_url
from ..common.validators import (
    clamp_limit,
    optional_str,
    parse_bool,
    parse_offset,
    require_email,
    require_length_between,
    require_min_length,
)
from ..core.constants import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_MAX_UPLOAD_BYTES,
    MAX_PHONE_LENGTH,
    MIN_DELETION_REASON_LENGTH,
    MIN_NAME_LENGTH,
    MIN_PHONE_LENGTH,
)
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..deletion_requests.model import DeletionRequest
from ..deletion_requests.repository import DeletionRequestRepository
from ..users.model import User
from ..users.service import require_role
from .model import Visitor, VisitorFilters
from .repository import VisitorRepository

logger = logging.getLogger(__name__)

# Fields an operator may edit after check-in.
EDITABLE_FIELDS = (
    "full_name",
    "email",
    "phone_number",
    "address",
    "institution",
    "purpose",
    "person_to_meet",
    "unit",
    "id_number",
    "id_type",
    "photo_url",
    "signature_url",
    "request_document",
    "document_type",
    "document_name",
    "document_number",
)
DOCUMENT_FIELDS = ("request_document", "document_type", "document_name", "document_number")
# Fields a receptionist may propose through an edit request.
REQUESTABLE_FIELDS = (
    "full_name",
    "phone_number",
    "email",
    "address",
    "institution",
    "purpose",
    "person_to_meet",
    "unit",
    "id_number",
    "document_type",
)

# Alternate request keys accepted from older front-end forms.
_ALIASES = {
    "name": "full_name",
    "phone": "phone_number",
    "location": "unit",
    "photo": "photo_url",
    "signature": "signature_url",
}


def parse_filters(args: Mapping[str, Any]) -> VisitorFilters:
    """Build listing filters from query-string arguments."""
    status = (args.get("status") or "").strip().lower() or None
    if status not in {None, "all", "active", "completed"}:
        raise ValidationError("status must be one of all, active, completed")
    return VisitorFilters(
        start_date=optional_date(args.get("startDate") or args.get("start_date"), "startDate"),
        end_date=optional_date(args.get("endDate") or args.get("end_date"), "endDate"),
        location=optional_str(args.get("location") or args.get("unit")),
        purpose=optional_str(args.get("purpose")),
        search=optional_str(args.get("search")),
        status=None if status == "all" else status,
        include_deleted=parse_bool(args.get("include_deleted")),
        only_deleted=parse_bool(args.get("only_deleted")),
        limit=clamp_limit(args.get("limit")) if args.get("limit") else None,
        offset=parse_offset(args.get("offset")),
    )


def _normalize_keys(payload: Mapping[str, Any]) -> dict:
    data = dict(payload)
    for alias, key in _ALIASES.items():
        if alias in data and key not in data:
            data[key] = data.pop(alias)
    return data


class VisitorService:
    """Use cases: front-desk check-in/checkout, edits, deletion workflow."""

    def __init__(
        self,
        visitors: VisitorRepository,
        deletions: DeletionRequestRepository,
        *,
        upload_root: str | Path = "uploads",
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ):
        self._visitors = visitors
        self._deletions = deletions
        self._upload_root = upload_root
        self._max_upload_bytes = max_upload_bytes

    def _get(self, visitor_id: int, *, include_deleted: bool = False) -> Visitor:
        visitor = self._visitors.get_by_id(int(visitor_id))
        if not visitor or (visitor.is_deleted and not include_deleted):
            raise NotFoundError("Visitor not found")
        return visitor

    def _validated(self, data: dict, *, partial: bool) -> dict:
        """Validate visitor fields; with ``partial`` only keys present are checked."""
        out: dict = {}

        def present(key: str) -> bool:
            return not partial or key in data

        if present("full_name"):
            out["full_name"] = require_min_length(data.get("full_name"), "Full name", MIN_NAME_LENGTH)
        if present("phone_number"):
            out["phone_number"] = require_length_between(
                data.get("phone_number"), "Phone number", MIN_PHONE_LENGTH, MAX_PHONE_LENGTH
            )
        if present("institution"):
            out["institution"] = require_min_length(data.get("institution"), "Institution", MIN_NAME_LENGTH)
        if present("purpose"):
            out["purpose"] = require_min_length(data.get("purpose"), "Purpose", MIN_NAME_LENGTH)
        if present("unit"):
            out["unit"] = require_min_length(data.get("unit"), "Unit", MIN_NAME_LENGTH)

        if "email" in data:
            email = optional_str(data.get("email"))
            out["email"] = require_email(email) if email else None
        for key in ("address", "person_to_meet", "id_number", "id_type", "document_type", "document_name", "document_number"):
            if key in data:
                out[key] = optional_str(data.get(key))
        if "request_document" in data:
            out["request_document"] = parse_bool(data.get("request_document"))

        if not partial and out.get("request_document") and not out.get("document_type"):
            raise ValidationError("Document type is required when requesting a document")

        if "photo_url" in data:
            out["photo_url"] = maybe_save_data_url(
                data.get("photo_url"),
                root=self._upload_root,
                subdir="photos",
                prefix="visitor",
                max_bytes=self._max_upload_bytes,
            )
        if "signature_url" in data:
            out["signature_url"] = maybe_save_data_url(
                data.get("signature_url"),
                root=self._upload_root,
                subdir="signatures",
                prefix="signature",
                max_bytes=self._max_upload_bytes,
            )
        return out

    def check_in(self, *, operator: User, payload: Mapping[str, Any]) -> Visitor:
        data = _normalize_keys(payload)
        record = self._validated(data, partial=False)

        check_in_raw = optional_str(data.get("check_in_time"))
        if check_in_raw:
            try:
                record["check_in_time"] = parse_iso_datetime(check_in_raw)
            except ValueError:
                raise ValidationError("check_in_time must be an ISO date-time")
        else:
            record["check_in_time"] = now_local()

        record["input_by_user_id"] = operator.id
        record["input_by_name"] = operator.name

        visitor_id = self._visitors.create(record)
        logger.info("Visitor %s checked in by user %s", visitor_id, operator.id)
        return self._get(visitor_id)

    def list_visitors(self, filters: VisitorFilters) -> tuple[list[Visitor], int]:
        items = list(self._visitors.list(filters))
        total = self._visitors.count(filters) if filters.limit else len(items)
        return items, total

    def get_visitor(self, visitor_id: int, *, include_deleted: bool = False) -> Visitor:
        return self._get(visitor_id, include_deleted=include_deleted)

    def update_visitor(self, *, visitor_id: int, operator: User, payload: Mapping[str, Any]) -> Visitor:
        visitor = self._get(visitor_id)
        data = _normalize_keys(payload)
        validated = self._validated({k: v for k, v in data.items() if k in EDITABLE_FIELDS}, partial=True)

        current = visitor.to_dict()
        changes = {k: v for k, v in validated.items() if current.get(k) != v}
        if not changes:
            raise ValidationError("No changes to save")

        self._visitors.update(visitor.id, changes)
        self._visitors.add_edit_history(
            visitor_id=visitor.id,
            edited_by=operator.id,
            edited_by_name=operator.name,
            changes={k: {"old": current.get(k), "new": v} for k, v in changes.items()},
            original_data=current,
            reason=optional_str(data.get("edit_reason") or data.get("reason")),
        )
        logger.info("Visitor %s edited by user %s (%s)", visitor.id, operator.id, ", ".join(sorted(changes)))
        return self._get(visitor.id)

    def preview_edit(self, *, visitor_id: int, payload: Mapping[str, Any]) -> tuple[Visitor, dict]:
        """Validate a proposed edit without applying it.

        Returns the visitor and only the requestable fields whose value would change.
        """
        visitor = self._get(visitor_id)
        data = {k: v for k, v in _normalize_keys(payload).items() if k in REQUESTABLE_FIELDS}
        if not data:
            raise ValidationError("No valid fields to edit")
        validated = self._validated(data, partial=True)
        current = visitor.to_dict()
        changes = {k: v for k, v in validated.items() if current.get(k) != v}
        if not changes:
            raise ValidationError("No changes to save")
        return visitor, changes

    def check_out(self, *, visitor_id: int, operator: User, payload: Optional[Mapping[str, Any]] = None) -> Visitor:
        visitor = self._get(visitor_id)
        if visitor.is_checked_out:
            raise ValidationError("Visitor already checked out")

        data = _normalize_keys(payload or {})
        extra_keys = DOCUMENT_FIELDS + ("signature_url",)
        extra = self._validated({k: v for k, v in data.items() if k in extra_keys}, partial=True)

        done = self._visitors.check_out(
            visitor.id,
            check_out_time=now_local(),
            operator_id=operator.id,
            operator_name=operator.name,
            extra=extra,
        )
        if not done:
            raise ValidationError("Visitor already checked out")
        logger.info("Visitor %s checked out by user %s", visitor.id, operator.id)
        return self._get(visitor.id)

    def edit_history(self, visitor_id: int, *, limit: Any = None, offset: Any = None) -> dict:
        visitor = self._get(visitor_id, include_deleted=True)
        limit_i = clamp_limit(limit, default=DEFAULT_HISTORY_LIMIT)
        offset_i = parse_offset(offset)
        total = self._visitors.count_edit_history(visitor.id)
        items = self._visitors.list_edit_history(visitor.id, limit=limit_i, offset=offset_i)
        return {
            "items": list(items),
            "pagination": {
                "total": total,
                "limit": limit_i,
                "offset": offset_i,
                "hasMore": offset_i + len(items) < total,
            },
        }

    def request_deletion(self, *, visitor_id: int, operator: User, reason: str) -> DeletionRequest:
        visitor = self._get(visitor_id)
        if operator.role not in {Role.ADMIN, Role.MANAGER} and visitor.input_by_user_id != operator.id:
            raise AuthorizationError("You can only request deletion of visitors you registered")

        reason = require_min_length(reason, "Reason", MIN_DELETION_REASON_LENGTH)
        if self._deletions.get_pending_for_visitor(visitor.id):
            raise ConflictError("A deletion request for this visitor is already pending")

        request_id = self._deletions.create(visitor_id=visitor.id, requested_by=operator.id, reason=reason)
        logger.info("Deletion request %s for visitor %s by user %s", request_id, visitor.id, operator.id)
        created = self._deletions.get_by_id(request_id)
        if not created:
            raise ValidationError("Failed to create deletion request")
        return created

    def soft_delete(self, *, visitor_id: int, operator: User) -> Visitor:
        require_role(operator, Role.ADMIN, Role.MANAGER)
        visitor = self._get(visitor_id, include_deleted=True)
        if visitor.is_deleted:
            raise ValidationError("Visitor is already deleted")
        self._visitors.soft_delete(visitor.id, deleted_by=operator.id, deleted_at=now_local())
        logger.info("Visitor %s soft-deleted by user %s", visitor.id, operator.id)
        return self._get(visitor.id, include_deleted=True)

    def restore(self, *, visitor_id: int, operator: User) -> Visitor:
        require_role(operator, Role.ADMIN, Role.MANAGER)
        visitor = self._get(visitor_id, include_deleted=True)
        if not visitor.is_deleted:
            raise ValidationError("Visitor is not deleted")
        self._visitors.restore(visitor.id)
        logger.info("Visitor %s restored by user %s", visitor.id, operator.id)
        return self._get(visitor.id)

    def delete_permanently(self, *, visitor_id: int, operator: User) -> None:
        require_role(operator, Role.ADMIN, message="Admin access required")
        visitor = self._get(visitor_id, include_deleted=True)
        if not self._visitors.delete_permanently(visitor.id):
            raise ValidationError("Failed to delete visitor")
        for path in (visitor.photo_url, visitor.signature_url):
            delete_upload(path, root=self._upload_root)
        logger.info("Visitor %s permanently deleted by user %s", visitor.id, operator.id)

    def stats(self) -> dict:
        counts = self._visitors.counts()
        requests = self._deletions.counts_by_status()
        return {
            "total": counts["total"],
            "active": counts["active"],
            "deleted": counts["deleted"],
            "deletionRequests": {
                "pending": requests.get("pending", 0),
                "approved": requests.get("approved", 0),
                "rejected": requests.get("rejected", 0),
            },
        }
