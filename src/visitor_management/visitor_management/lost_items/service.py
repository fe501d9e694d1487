from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Mapping, Optional

from ..common.datetime_utils import now_local, parse_hhmm, parse_iso_date, to_json_value
from ..common.uploads import delete_upload, maybe_save_data_url
from ..common.validators import clamp_limit, optional_str, parse_offset, require_non_empty
from ..core.constants import DEFAULT_MAX_UPLOAD_BYTES
from ..core.enums import HistoryAction, ItemCondition, LostItemStatus, ReturnRelationship, Role
from ..core.exceptions import NotFoundError, ValidationError
from ..users.model import User
from ..users.service import require_role
from .model import HistoryEntry, ItemReturn, LostItem, LostItemFilters
from .repository import LostItemRepository

logger = logging.getLogger(__name__)

# Columns captured in history snapshots.
SNAPSHOT_FIELDS = (
    "item_name",
    "description",
    "category",
    "found_location",
    "found_date",
    "found_time",
    "finder_name",
    "finder_contact",
    "condition_status",
    "handover_photo_url",
    "handover_signature_url",
    "status",
    "notes",
)
# Columns a revert may restore.
REVERTIBLE_FIELDS = ("item_name", "description", "category", "found_location", "condition_status", "notes", "status")

_UPLOAD_SUBDIR = "lost-items"


def _date(value: Any, label: str):
    try:
        return parse_iso_date(str(value).strip())
    except ValueError:
        raise ValidationError(f"{label} must be a date (YYYY-MM-DD)")


def _time(value: Any, label: str):
    try:
        return parse_hhmm(str(value))
    except ValidationError:
        raise ValidationError(f"{label} must be a time (HH:MM)")


def _enum(enum_cls, value: Any, label: str):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"Invalid {label}. Must be one of: {allowed}")


def snapshot(item: LostItem) -> dict[str, Any]:
    return {key: to_json_value(getattr(item, key)) for key in SNAPSHOT_FIELDS}


def parse_filters(args: Mapping[str, Any]) -> LostItemFilters:
    status = optional_str(args.get("status"))
    return LostItemFilters(
        status=_enum(LostItemStatus, status, "status") if status and status != "all" else None,
        category=optional_str(args.get("category")),
        search=optional_str(args.get("search")),
        limit=clamp_limit(args.get("limit")),
        offset=parse_offset(args.get("offset")),
    )


class LostItemService:
    """Found-item register with an audit trail and a one-way handover to claimers."""

    def __init__(
        self,
        items: LostItemRepository,
        *,
        upload_root: str | Path = "uploads",
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ):
        self._items = items
        self._upload_root = upload_root
        self._max_upload_bytes = max_upload_bytes

    def _get(self, item_id: int) -> LostItem:
        item = self._items.get_by_id(int(item_id))
        if not item:
            raise NotFoundError("Lost item not found")
        return item

    def _upload(self, value: Any, prefix: str) -> Optional[str]:
        return maybe_save_data_url(
            value,
            root=self._upload_root,
            subdir=_UPLOAD_SUBDIR,
            prefix=prefix,
            max_bytes=self._max_upload_bytes,
        )

    def _validated(self, data: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
        out: dict[str, Any] = {}

        def present(key: str) -> bool:
            return not partial or key in data

        if present("item_name"):
            out["item_name"] = require_non_empty(data.get("item_name"), "Item name")
        if present("found_location"):
            out["found_location"] = require_non_empty(data.get("found_location"), "Found location")
        if present("found_date"):
            out["found_date"] = _date(require_non_empty(data.get("found_date"), "Found date"), "Found date")
        if present("found_time"):
            out["found_time"] = _time(require_non_empty(data.get("found_time"), "Found time"), "Found time")

        for key in ("description", "category", "finder_name", "finder_contact", "notes"):
            if key in data:
                out[key] = optional_str(data.get(key))
        if optional_str(data.get("condition_status")):
            out["condition_status"] = _enum(ItemCondition, data["condition_status"], "condition")
        if partial and optional_str(data.get("status")):
            out["status"] = _enum(LostItemStatus, data["status"], "status")

        if "handover_photo_url" in data or "handover_photo" in data:
            out["handover_photo_url"] = self._upload(
                data.get("handover_photo_url") or data.get("handover_photo"), "handover"
            )
        if "handover_signature_url" in data or "handover_signature" in data:
            out["handover_signature_url"] = self._upload(
                data.get("handover_signature_url") or data.get("handover_signature"), "handover-signature"
            )
        return out

    def register(self, *, operator: User, payload: Mapping[str, Any]) -> LostItem:
        record = self._validated(payload, partial=False)
        record.setdefault("condition_status", ItemCondition.GOOD)
        record["status"] = LostItemStatus.FOUND
        record["input_by_user_id"] = operator.id

        item_id = self._items.create(record)
        item = self._get(item_id)
        self._items.add_history(
            item_id=item.id,
            action=HistoryAction.CREATED,
            old_data=None,
            new_data=snapshot(item),
            changed_fields=[],
            user_id=operator.id,
            user_name=operator.name,
            notes="Item registered",
        )
        logger.info("Lost item %s registered by user %s", item.id, operator.id)
        return item

    def list_items(self, filters: LostItemFilters) -> tuple[list[LostItem], int]:
        return list(self._items.list(filters)), self._items.count(filters)

    def get_item(self, item_id: int) -> LostItem:
        item = self._get(item_id)
        return replace(item, return_record=self._items.get_return(item.id))

    def update(self, *, item_id: int, operator: User, payload: Mapping[str, Any]) -> LostItem:
        item = self._get(item_id)
        changes = self._validated(payload, partial=True)
        if not changes:
            raise ValidationError("Nothing to update")

        before = snapshot(item)
        after = {**before, **{k: to_json_value(v) for k, v in changes.items() if k in SNAPSHOT_FIELDS}}
        changed = [k for k in SNAPSHOT_FIELDS if before.get(k) != after.get(k)]
        if not changed:
            raise ValidationError("No changes to save")

        self._items.update(item.id, {k: v for k, v in changes.items() if k in changed})
        action = HistoryAction.STATUS_CHANGED if "status" in changed else HistoryAction.UPDATED
        self._items.add_history(
            item_id=item.id,
            action=action,
            old_data=before,
            new_data=after,
            changed_fields=changed,
            user_id=operator.id,
            user_name=operator.name,
            notes=optional_str(payload.get("edit_reason")),
        )
        logger.info("Lost item %s %s by user %s (%s)", item.id, action.value, operator.id, ", ".join(changed))
        return self.get_item(item.id)

    def return_item(self, *, item_id: int, operator: User, payload: Mapping[str, Any]) -> LostItem:
        item = self._items.get_by_id(int(item_id))
        if not item or item.status != LostItemStatus.FOUND:
            raise NotFoundError("Item not found or already returned")

        claimer = require_non_empty(payload.get("claimer_name"), "Claimer name")
        try:
            relationship = ReturnRelationship(str(payload.get("relationship_to_owner") or "").strip().lower())
        except ValueError:
            relationship = ReturnRelationship.OWNER

        now = now_local()
        raw_date = optional_str(payload.get("return_date"))
        raw_time = optional_str(payload.get("return_time"))
        return_data = {
            "claimer_name": claimer,
            "claimer_contact": optional_str(payload.get("claimer_contact")),
            "claimer_id_number": optional_str(payload.get("claimer_id_number")),
            "relationship_to_owner": relationship,
            "proof_of_ownership": optional_str(payload.get("proof_of_ownership")),
            "return_date": _date(raw_date, "Return date") if raw_date else now.date(),
            "return_time": _time(raw_time, "Return time") if raw_time else now.time().replace(microsecond=0),
            "returned_by": operator.id,
            "return_operator": operator.name,
            "return_photo_url": self._upload(payload.get("return_photo_url") or payload.get("return_photo"), "return"),
            "return_signature_url": self._upload(
                payload.get("return_signature_url") or payload.get("return_signature"), "return-signature"
            ),
            "notes": optional_str(payload.get("notes")),
        }

        before = snapshot(item)
        after = {**before, "status": LostItemStatus.RETURNED.value}
        history = {
            "action": HistoryAction.RETURNED,
            "old_data": before,
            "new_data": after,
            "changed_fields": ["status"],
            "user_id": operator.id,
            "user_name": operator.name,
            "notes": f"Returned to {claimer}",
        }
        if not self._items.record_return(item.id, return_data=return_data, history=history):
            raise NotFoundError("Item not found or already returned")
        logger.info("Lost item %s returned to %s by user %s", item.id, claimer, operator.id)
        return self.get_item(item.id)

    def update_return(self, *, item_id: int, operator: User, payload: Mapping[str, Any]) -> LostItem:
        """Correct the claimer details of an item that was already handed over."""
        item = self._get(item_id)
        record = self._items.get_return(item.id)
        if item.status != LostItemStatus.RETURNED or not record:
            raise NotFoundError("Return record not found for this item")

        changes: dict[str, Any] = {}
        if "claimer_name" in payload:
            changes["claimer_name"] = require_non_empty(payload.get("claimer_name"), "Claimer name")
        for key in ("claimer_contact", "claimer_id_number", "proof_of_ownership"):
            if key in payload:
                changes[key] = optional_str(payload.get(key))
        if "notes" in payload or "return_notes" in payload:
            changes["notes"] = optional_str(payload.get("notes", payload.get("return_notes")))
        if "relationship_to_owner" in payload:
            try:
                changes["relationship_to_owner"] = ReturnRelationship(
                    str(payload.get("relationship_to_owner") or "").strip().lower()
                )
            except ValueError:
                changes["relationship_to_owner"] = ReturnRelationship.OWNER
        if optional_str(payload.get("return_date")):
            changes["return_date"] = _date(payload["return_date"], "Return date")
        if optional_str(payload.get("return_time")):
            changes["return_time"] = _time(payload["return_time"], "Return time")

        before = {k: to_json_value(v) for k, v in record.to_dict().items()}
        changed = [k for k, v in changes.items() if to_json_value(v) != before.get(k)]

        replaced: list[Optional[str]] = []
        for key, aliases, prefix in (
            ("return_photo_url", ("return_photo_url", "return_photo"), "return"),
            ("return_signature_url", ("return_signature_url", "return_signature"), "return-signature"),
        ):
            value = next((payload[a] for a in aliases if optional_str(payload.get(a))), None)
            if value is None or value == getattr(record, key):
                continue
            changes[key] = self._upload(value, prefix)
            changed.append(key)
            replaced.append(getattr(record, key))

        if not changed:
            raise ValidationError("No changes to save")

        changes = {k: v for k, v in changes.items() if k in changed}
        changes["return_operator"] = operator.name
        after = {**before, **{k: to_json_value(v) for k, v in changes.items()}}
        history = {
            "action": HistoryAction.RETURN_UPDATED,
            "old_data": before,
            "new_data": after,
            "changed_fields": changed,
            "user_id": operator.id,
            "user_name": operator.name,
            "notes": optional_str(payload.get("edit_reason")) or "Return details corrected",
        }
        if not self._items.update_return(record.id, changes, history=history):
            raise NotFoundError("Return record not found for this item")
        for path in replaced:
            delete_upload(path, root=self._upload_root)
        logger.info("Return record of lost item %s updated by user %s (%s)", item.id, operator.id, ", ".join(changed))
        return self.get_item(item.id)

    def history(self, item_id: int) -> list[HistoryEntry]:
        item = self._get(item_id)
        return list(self._items.list_history(item.id))

    def revert(self, *, item_id: int, history_id: int, operator: User) -> LostItem:
        item = self._get(item_id)
        entry = self._items.get_history(int(history_id))
        if not entry or entry.lost_item_id != item.id:
            raise NotFoundError("History entry not found")
        if not entry.old_data:
            raise ValidationError("This history entry has no previous state to revert to")

        restored: dict[str, Any] = {}
        for key in REVERTIBLE_FIELDS:
            if key not in entry.old_data:
                continue
            value = entry.old_data[key]
            if key == "status":
                value = _enum(LostItemStatus, value, "status")
            elif key == "condition_status":
                value = _enum(ItemCondition, value, "condition")
            elif key in ("item_name", "found_location"):
                value = require_non_empty(value, key)
            restored[key] = value

        before = snapshot(item)
        self._items.update(item.id, restored)
        reverted = self._get(item.id)
        after = snapshot(reverted)
        self._items.add_history(
            item_id=item.id,
            action=HistoryAction.REVERTED,
            old_data=before,
            new_data=after,
            changed_fields=[k for k in SNAPSHOT_FIELDS if before.get(k) != after.get(k)],
            user_id=operator.id,
            user_name=operator.name,
            notes=f"Reverted to history entry {entry.id}",
        )
        logger.info("Lost item %s reverted to history %s by user %s", item.id, entry.id, operator.id)
        return self.get_item(item.id)

    def delete(self, *, item_id: int, operator: User) -> None:
        require_role(operator, Role.ADMIN, message="Admin access required")
        item = self.get_item(item_id)
        if not self._items.delete(item.id):
            raise NotFoundError("Lost item not found")
        paths = [item.handover_photo_url, item.handover_signature_url]
        if item.return_record:
            paths += [item.return_record.return_photo_url, item.return_record.return_signature_url]
        for path in paths:
            delete_upload(path, root=self._upload_root)
        logger.info("Lost item %s deleted by user %s", item.id, operator.id)

    def stats(self) -> dict[str, int]:
        counts = self._items.counts_by_status()
        month_start = now_local().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        found = counts.get(LostItemStatus.FOUND.value, 0)
        return {
            "total": sum(counts.values()),
            "found": found,
            "returned": counts.get(LostItemStatus.RETURNED.value, 0),
            "disposed": counts.get(LostItemStatus.DISPOSED.value, 0),
            "pending": found,
            "this_month": self._items.count_created_since(month_start),
            "returns_this_month": self._items.count_returns_since(month_start),
        }
