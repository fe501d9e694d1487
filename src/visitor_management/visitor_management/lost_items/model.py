from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time
from typing import Any, Optional

from ..core.enums import HistoryAction, ItemCondition, LostItemStatus, ReturnRelationship


@dataclass(frozen=True)
class ItemReturn:
    id: int
    lost_item_id: int
    claimer_name: str
    return_date: date
    return_time: time
    relationship_to_owner: ReturnRelationship = ReturnRelationship.OWNER
    claimer_contact: Optional[str] = None
    claimer_id_number: Optional[str] = None
    proof_of_ownership: Optional[str] = None
    returned_by: Optional[int] = None
    return_operator: Optional[str] = None
    return_photo_url: Optional[str] = None
    return_signature_url: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["relationship_to_owner"] = self.relationship_to_owner.value
        return data


@dataclass(frozen=True)
class LostItem:
    id: int
    item_name: str
    found_location: str
    found_date: date
    found_time: time
    description: Optional[str] = None
    category: Optional[str] = None
    finder_name: Optional[str] = None
    finder_contact: Optional[str] = None
    condition_status: ItemCondition = ItemCondition.GOOD
    handover_photo_url: Optional[str] = None
    handover_signature_url: Optional[str] = None
    status: LostItemStatus = LostItemStatus.FOUND
    notes: Optional[str] = None
    input_by_user_id: Optional[int] = None
    input_by_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    return_record: Optional[ItemReturn] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["condition_status"] = self.condition_status.value
        data["status"] = self.status.value
        data["return_record"] = self.return_record.to_dict() if self.return_record else None
        return data


@dataclass(frozen=True)
class HistoryEntry:
    id: int
    lost_item_id: int
    action_type: HistoryAction
    old_data: Optional[dict] = None
    new_data: Optional[dict] = None
    changed_fields: list[str] = field(default_factory=list)
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["action_type"] = self.action_type.value
        return data


@dataclass(frozen=True)
class LostItemFilters:
    status: Optional[LostItemStatus] = None
    category: Optional[str] = None
    search: Optional[str] = None
    limit: int = 50
    offset: int = 0
