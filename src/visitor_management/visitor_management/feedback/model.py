from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Optional

from ..core.enums import FeedbackStatus


@dataclass(frozen=True)
class Feedback:
    id: int
    visitor_name: str
    rating: int
    status: FeedbackStatus = FeedbackStatus.NEW
    visitor_id: Optional[int] = None
    category: Optional[str] = None
    feedback_text: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    def to_public_dict(self) -> dict[str, Any]:
        # First name only on the public wall.
        parts = (self.visitor_name or "").split()
        return {
            "id": self.id,
            "visitor_name": parts[0] if parts else "Anonymous",
            "rating": self.rating,
            "category": self.category,
            "feedback_text": self.feedback_text,
            "created_at": self.created_at,
        }
