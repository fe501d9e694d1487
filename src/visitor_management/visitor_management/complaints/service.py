from __future__ import annotations

import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from ..common.datetime_utils import now_local
from ..common.uploads import maybe_save_data_url
from ..common.validators import (
    clamp_limit,
    is_email,
    optional_str,
    parse_bool,
    parse_int,
    parse_offset,
    require_non_empty,
)
from ..core.constants import COMPLAINT_TICKET_PREFIX, DEFAULT_MAX_UPLOAD_BYTES
from ..core.enums import ComplaintPriority, ComplaintStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..users.model import User
from ..users.service import require_admin
from .fields import (
    parse_field_type,
    parse_options,
    parse_rules,
    require_field_name,
    sort_fields,
    table_columns,
    validate_field_definition,
    validate_form_data,
    validate_rules,
)
from .model import Complaint, ComplaintCategory, ComplaintField, ComplaintFilters, ComplaintResponse
from .repository import ComplaintFieldRepository, ComplaintRepository

logger = logging.getLogger(__name__)

_CLOSED_STATES = {ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED}
_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
DEFAULT_CATEGORY_COLOR = "#6b7280"


def format_ticket(sequence: int) -> str:
    return f"{COMPLAINT_TICKET_PREFIX}{int(sequence):06d}"


def _parse_enum(enum_cls, value: Any, label: str):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"Invalid {label}. Must be one of: {allowed}")


def parse_filters(args: Mapping[str, Any]) -> ComplaintFilters:
    status = optional_str(args.get("status"))
    priority = optional_str(args.get("priority"))
    category_id = optional_str(args.get("category_id"))
    return ComplaintFilters(
        status=_parse_enum(ComplaintStatus, status, "status") if status and status != "all" else None,
        priority=_parse_enum(ComplaintPriority, priority, "priority") if priority and priority != "all" else None,
        category_id=parse_int(category_id, "category_id") if category_id else None,
        search=optional_str(args.get("search")),
        limit=clamp_limit(args.get("limit")),
        offset=parse_offset(args.get("offset")),
    )


class ComplaintService:
    """Public complaint intake plus the staff side: triage, replies and form fields."""

    def __init__(
        self,
        complaints: ComplaintRepository,
        fields: ComplaintFieldRepository,
        *,
        upload_root: str | Path = "uploads",
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ):
        self._complaints = complaints
        self._fields = fields
        self._upload_root = upload_root
        self._max_upload_bytes = max_upload_bytes

    def _get(self, complaint_id: int) -> Complaint:
        complaint = self._complaints.get_by_id(int(complaint_id))
        if not complaint:
            raise NotFoundError("Complaint not found")
        return complaint

    def _field(self, field_id: int) -> ComplaintField:
        field = self._fields.get_field(int(field_id))
        if not field:
            raise NotFoundError("Field not found")
        return field

    def _store_photos(self, photos: Any) -> list[str]:
        if not photos:
            return []
        if not isinstance(photos, (list, tuple)):
            photos = [photos]
        stored = []
        for photo in photos:
            path = maybe_save_data_url(
                photo,
                root=self._upload_root,
                subdir="complaints",
                prefix="complaint",
                max_bytes=self._max_upload_bytes,
            )
            if path:
                stored.append(path)
        return stored

    # --- public intake ---

    def submit(self, payload: Mapping[str, Any]) -> Complaint:
        name = require_non_empty(payload.get("complainant_name") or payload.get("name"), "Name")
        email = optional_str(payload.get("complainant_email") or payload.get("email"))
        if email:
            if not is_email(email):
                raise ValidationError("Email is not a valid email address")
            email = email.lower()
        phone = optional_str(payload.get("complainant_phone") or payload.get("phone"))
        subject = require_non_empty(payload.get("subject"), "Subject")
        description = require_non_empty(payload.get("description"), "Description")

        priority_raw = optional_str(payload.get("priority"))
        priority = _parse_enum(ComplaintPriority, priority_raw, "priority") if priority_raw else ComplaintPriority.MEDIUM

        category_id = None
        if optional_str(payload.get("category_id")):
            category_id = parse_int(payload.get("category_id"), "category_id")
            if not self._complaints.category_exists(category_id):
                raise ValidationError("Unknown complaint category")

        visitor_id = None
        if optional_str(payload.get("visitor_id")):
            visitor_id = parse_int(payload.get("visitor_id"), "visitor_id")

        form_data = validate_form_data(self._fields.list_fields(active_only=True), payload.get("form_data"))
        photos = self._store_photos(payload.get("photos") or payload.get("photo_urls"))

        ticket = format_ticket(self._complaints.next_sequence())
        complaint_id = self._complaints.create(
            {
                "ticket_number": ticket,
                "visitor_id": visitor_id,
                "complainant_name": name,
                "complainant_email": email,
                "complainant_phone": phone,
                "category_id": category_id,
                "subject": subject,
                "description": description,
                "priority": priority,
                "status": ComplaintStatus.OPEN,
                "form_data": form_data,
                "photo_urls": photos,
            }
        )
        logger.info("Complaint %s submitted (%s)", ticket, priority.value)
        return self._get(complaint_id)

    def categories(self) -> list[ComplaintCategory]:
        return list(self._complaints.list_categories(active_only=True))

    # --- category management ---

    def _category(self, category_id: int) -> ComplaintCategory:
        category = self._complaints.get_category(int(category_id))
        if not category:
            raise NotFoundError("Complaint category not found")
        return category

    def _category_values(self, payload: Mapping[str, Any], *, current: Optional[ComplaintCategory] = None) -> dict:
        out: dict[str, Any] = {}
        if current is None or "name" in payload:
            name = require_non_empty(payload.get("name"), "Category name")
            other = self._complaints.get_category_by_name(name)
            if other and (current is None or other.id != current.id):
                raise ConflictError(f"Category '{name}' already exists")
            out["name"] = name
        if "description" in payload:
            out["description"] = optional_str(payload.get("description"))
        if "color" in payload:
            color = optional_str(payload.get("color")) or DEFAULT_CATEGORY_COLOR
            if not _COLOR_RE.match(color):
                raise ValidationError("color must be a hex colour such as #2563eb")
            out["color"] = color
        if "is_active" in payload:
            out["is_active"] = parse_bool(payload.get("is_active"))
        return out

    def all_categories(self, *, actor: User) -> list[ComplaintCategory]:
        require_admin(actor)
        return list(self._complaints.list_categories(active_only=False))

    def create_category(self, *, actor: User, payload: Mapping[str, Any]) -> ComplaintCategory:
        require_admin(actor)
        values = self._category_values(payload)
        category_id = self._complaints.create_category(
            name=values["name"],
            description=values.get("description"),
            color=values.get("color", DEFAULT_CATEGORY_COLOR),
            is_active=values.get("is_active", True),
        )
        logger.info("Admin %s created complaint category '%s'", actor.id, values["name"])
        return self._category(category_id)

    def update_category(self, *, actor: User, category_id: int, payload: Mapping[str, Any]) -> ComplaintCategory:
        require_admin(actor)
        current = self._category(category_id)
        changes = self._category_values(payload, current=current)
        if not changes:
            raise ValidationError("Nothing to update")
        self._complaints.update_category(current.id, changes)
        return self._category(current.id)

    def delete_category(self, *, actor: User, category_id: int) -> None:
        require_admin(actor)
        category = self._category(category_id)
        self._complaints.delete_category(category.id)
        logger.info("Admin %s deleted complaint category '%s'", actor.id, category.name)

    # --- staff ---

    def list_complaints(self, filters: ComplaintFilters) -> tuple[list[Complaint], int]:
        return list(self._complaints.list(filters)), self._complaints.count(filters)

    def get_complaint(self, complaint_id: int) -> Complaint:
        complaint = self._get(complaint_id)
        responses = list(self._complaints.list_responses(complaint.id))
        return replace(complaint, responses=responses)

    def update_status(
        self,
        *,
        complaint_id: int,
        actor: User,
        status: Any,
        assigned_to: Any = None,
    ) -> Complaint:
        complaint = self._get(complaint_id)
        if not optional_str(status):
            raise ValidationError("Status is required")
        new_status = _parse_enum(ComplaintStatus, status, "status")

        changes: dict[str, Any] = {
            "status": new_status,
            "resolved_at": now_local() if new_status in _CLOSED_STATES else None,
        }
        if optional_str(assigned_to):
            changes["assigned_to"] = parse_int(assigned_to, "assigned_to")

        self._complaints.update(complaint.id, changes)
        logger.info(
            "Complaint %s status %s -> %s by user %s",
            complaint.ticket_number,
            complaint.status.value,
            new_status.value,
            actor.id,
        )
        return self._get(complaint.id)

    def add_response(self, *, complaint_id: int, responder: User, text: Any, is_internal: Any = False) -> ComplaintResponse:
        complaint = self._get(complaint_id)
        body = require_non_empty(text, "Response text")
        internal = parse_bool(is_internal)
        response_id = self._complaints.add_response(
            complaint_id=complaint.id, responder_id=responder.id, text=body, is_internal=internal
        )
        logger.info("Response %s added to complaint %s by user %s", response_id, complaint.ticket_number, responder.id)
        for response in self._complaints.list_responses(complaint.id):
            if response.id == response_id:
                return response
        return ComplaintResponse(
            id=response_id,
            complaint_id=complaint.id,
            responder_id=responder.id,
            response_text=body,
            is_internal=internal,
            responder_name=responder.name,
        )

    def stats(self) -> dict[str, int]:
        counts = self._complaints.counts_by_status()
        month_start = now_local().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        return {
            "total": sum(counts.values()),
            "open": counts.get(ComplaintStatus.OPEN.value, 0),
            "in_progress": counts.get(ComplaintStatus.IN_PROGRESS.value, 0),
            "resolved": counts.get(ComplaintStatus.RESOLVED.value, 0),
            "closed": counts.get(ComplaintStatus.CLOSED.value, 0),
            "this_month": self._complaints.count_created_since(month_start),
        }

    # --- form fields ---

    def active_fields(self) -> list[ComplaintField]:
        return sort_fields(self._fields.list_fields(active_only=True))

    def all_fields(self, *, actor: User) -> list[ComplaintField]:
        require_admin(actor)
        return sort_fields(self._fields.list_fields(active_only=False))

    def columns(self) -> list[dict[str, str]]:
        return table_columns(self._fields.list_fields(active_only=True))

    def _field_values(self, payload: Mapping[str, Any], *, partial: bool, current: Optional[ComplaintField] = None) -> dict:
        out: dict[str, Any] = {}

        def present(key: str) -> bool:
            return not partial or key in payload

        if present("field_name"):
            out["field_name"] = require_field_name(payload.get("field_name"))
        if present("field_label"):
            out["field_label"] = require_non_empty(payload.get("field_label"), "field_label")
        if present("field_type"):
            if not optional_str(payload.get("field_type")):
                raise ValidationError("field_type is required")
            out["field_type"] = parse_field_type(payload.get("field_type"))
        if "field_options" in payload:
            out["field_options"] = parse_options(payload.get("field_options"))
        if "validation_rules" in payload:
            out["validation_rules"] = validate_rules(parse_rules(payload.get("validation_rules")))
        for key in ("is_required", "is_active"):
            if key in payload:
                out[key] = parse_bool(payload.get(key))
        if "field_order" in payload:
            out["field_order"] = parse_int(payload.get("field_order"), "field_order")
        for key in ("placeholder", "help_text"):
            if key in payload:
                out[key] = optional_str(payload.get(key))

        field_type = out.get("field_type") or (current.field_type if current else None)
        options = out["field_options"] if "field_options" in out else (current.field_options if current else [])
        if field_type is not None:
            validate_field_definition(field_type, options)
        return out

    def create_field(self, *, actor: User, payload: Mapping[str, Any]) -> ComplaintField:
        require_admin(actor)
        values = self._field_values(payload, partial=False)
        if self._fields.get_field_by_name(values["field_name"]):
            raise ValidationError(f"Field name '{values['field_name']}' already exists")
        if "field_order" not in values:
            existing = self._fields.list_fields(active_only=False)
            values["field_order"] = max((f.field_order for f in existing), default=0) + 1
        values.setdefault("is_active", True)
        field_id = self._fields.create_field(values)
        logger.info("Admin %s created complaint field %s", actor.id, values["field_name"])
        return self._field(field_id)

    def update_field(self, *, actor: User, field_id: int, payload: Mapping[str, Any]) -> ComplaintField:
        require_admin(actor)
        current = self._field(field_id)
        changes = self._field_values(payload, partial=True, current=current)
        if not changes:
            raise ValidationError("Nothing to update")
        if "field_name" in changes and changes["field_name"] != current.field_name:
            other = self._fields.get_field_by_name(changes["field_name"])
            if other and other.id != current.id:
                raise ValidationError(f"Field name '{changes['field_name']}' already exists")
        self._fields.update_field(current.id, changes)
        return self._field(current.id)

    def delete_field(self, *, actor: User, field_id: int) -> None:
        require_admin(actor)
        field = self._field(field_id)
        self._fields.delete_field(field.id)
        logger.info("Admin %s deleted complaint field %s", actor.id, field.field_name)

    def toggle_field(self, *, actor: User, field_id: int) -> ComplaintField:
        require_admin(actor)
        field = self._field(field_id)
        self._fields.update_field(field.id, {"is_active": not field.is_active})
        return self._field(field.id)

    def reorder_fields(self, *, actor: User, field_ids: Iterable[Any]) -> int:
        require_admin(actor)
        if not isinstance(field_ids, (list, tuple)) or not field_ids:
            raise ValidationError("field_ids must be a non-empty list")
        ids = [parse_int(v, "field_ids") for v in field_ids]
        known = {f.id for f in self._fields.list_fields(active_only=False)}
        unknown = [i for i in ids if i not in known]
        if unknown:
            raise ValidationError(f"Unknown field id(s): {', '.join(str(i) for i in unknown)}")
        self._fields.set_field_orders((field_id, index + 1) for index, field_id in enumerate(ids))
        return len(ids)
