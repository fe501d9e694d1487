from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Optional

from ..core.enums import DeletionRequestStatus


@dataclass(frozen=True)
class DeletionRequest:
    id: int
    visitor_id: int
    requested_by: Optional[int]
    reason: str
    status: DeletionRequestStatus
    created_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    visitor_name: Optional[str] = None
    requested_by_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data
