from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..core.enums import EditRequestStatus


@dataclass(frozen=True)
class EditRequest:
    id: int
    visitor_id: int
    requested_by: Optional[int]
    reason: str
    status: EditRequestStatus
    proposed_data: dict = field(default_factory=dict)
    original_data: dict = field(default_factory=dict)
    processed_by: Optional[int] = None
    processed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    visitor_name: Optional[str] = None
    requested_by_name: Optional[str] = None
    processed_by_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data
