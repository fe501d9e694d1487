from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from ..core.enums import VisitorStatus


@dataclass(frozen=True)
class Visitor:
    id: int
    full_name: str
    phone_number: str
    institution: str
    purpose: str
    unit: str
    check_in_time: datetime
    status: VisitorStatus = VisitorStatus.CHECKED_IN
    email: Optional[str] = None
    address: Optional[str] = None
    person_to_meet: Optional[str] = None
    id_number: Optional[str] = None
    id_type: Optional[str] = None
    photo_url: Optional[str] = None
    signature_url: Optional[str] = None
    request_document: bool = False
    document_type: Optional[str] = None
    document_name: Optional[str] = None
    document_number: Optional[str] = None
    check_out_time: Optional[datetime] = None
    input_by_user_id: Optional[int] = None
    input_by_name: Optional[str] = None
    checkout_by_user_id: Optional[int] = None
    checkout_by_name: Optional[str] = None
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_checked_out(self) -> bool:
        return self.check_out_time is not None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass(frozen=True)
class VisitorFilters:
    """Listing filters; dates are inclusive and apply to check_in_time."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    location: Optional[str] = None
    purpose: Optional[str] = None
    search: Optional[str] = None
    status: Optional[str] = None
    include_deleted: bool = False
    only_deleted: bool = False
    limit: Optional[int] = None
    offset: int = 0


@dataclass(frozen=True)
class EditHistoryEntry:
    id: int
    visitor_id: int
    edited_by: Optional[int]
    edited_by_name: Optional[str]
    changes: dict = field(default_factory=dict)
    original_data: Optional[dict] = None
    reason: Optional[str] = None
    created_at: Optional[datetime] = None
