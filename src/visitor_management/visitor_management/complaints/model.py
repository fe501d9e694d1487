from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..core.enums import ComplaintPriority, ComplaintStatus, FieldType


@dataclass(frozen=True)
class ComplaintField:
    """Admin-defined extra input shown on the public complaint form."""

    id: int
    field_name: str
    field_label: str
    field_type: FieldType
    field_options: list[str] = field(default_factory=list)
    is_required: bool = False
    field_order: int = 0
    is_active: bool = True
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    validation_rules: dict = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["field_type"] = self.field_type.value
        return data


@dataclass(frozen=True)
class ComplaintCategory:
    id: int
    name: str
    description: Optional[str] = None
    color: str = "#6b7280"
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ComplaintResponse:
    id: int
    complaint_id: int
    responder_id: Optional[int]
    response_text: str
    is_internal: bool = False
    responder_name: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Complaint:
    id: int
    ticket_number: str
    complainant_name: str
    subject: str
    description: str
    priority: ComplaintPriority = ComplaintPriority.MEDIUM
    status: ComplaintStatus = ComplaintStatus.OPEN
    complainant_email: Optional[str] = None
    complainant_phone: Optional[str] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    category_color: Optional[str] = None
    visitor_id: Optional[int] = None
    form_data: dict = field(default_factory=dict)
    photo_urls: list[str] = field(default_factory=list)
    assigned_to: Optional[int] = None
    assigned_to_name: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    responses: list[ComplaintResponse] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["priority"] = self.priority.value
        data["status"] = self.status.value
        data["responses"] = [r.to_dict() for r in self.responses]
        return data


@dataclass(frozen=True)
class ComplaintFilters:
    status: Optional[ComplaintStatus] = None
    priority: Optional[ComplaintPriority] = None
    category_id: Optional[int] = None
    search: Optional[str] = None
    limit: int = 50
    offset: int = 0
