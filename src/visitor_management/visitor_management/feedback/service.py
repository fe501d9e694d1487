from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..common.validators import clamp_limit, optional_str, parse_offset
from ..core.constants import FEEDBACK_CATEGORIES, PUBLIC_FEEDBACK_LIMIT
from ..core.enums import FeedbackStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..visitors.repository import VisitorRepository
from .model import Feedback
from .repository import FeedbackRepository

logger = logging.getLogger(__name__)

RECENT_FEEDBACK_LIMIT = 5


def parse_rating(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError("Rating must be an integer between 1 and 5")
    try:
        rating = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError("Rating must be an integer between 1 and 5")
    if not 1 <= rating <= 5:
        raise ValidationError("Rating must be an integer between 1 and 5")
    return rating


def resolve_category(value: Any) -> Optional[str]:
    """Accept a category id or name and return the canonical name."""
    text = optional_str(value)
    if text is None:
        return None
    for category_id, name in FEEDBACK_CATEGORIES:
        if text == str(category_id) or text.lower() == name.lower():
            return name
    raise ValidationError("Unknown feedback category")


class FeedbackService:
    def __init__(self, feedback: FeedbackRepository, visitors: VisitorRepository):
        self._feedback = feedback
        self._visitors = visitors

    def submit(self, payload: Mapping[str, Any]) -> Feedback:
        visitor_id = None
        visitor_name = optional_str(payload.get("visitor_name") or payload.get("complainant_name"))

        raw_visitor = optional_str(payload.get("visitor_id"))
        if raw_visitor:
            try:
                visitor = self._visitors.get_by_id(int(raw_visitor))
            except ValueError:
                raise ValidationError("visitor_id must be an integer")
            if visitor:
                visitor_id = visitor.id
                visitor_name = visitor_name or visitor.full_name

        if not visitor_name:
            raise ValidationError("Visitor name is required")

        rating = parse_rating(payload.get("rating"))
        feedback_id = self._feedback.create(
            {
                "visitor_id": visitor_id,
                "visitor_name": visitor_name,
                "rating": rating,
                "category": resolve_category(payload.get("category")),
                "feedback_text": optional_str(payload.get("feedback_text") or payload.get("comment")),
                "status": FeedbackStatus.NEW,
            }
        )
        logger.info("Feedback %s received (rating %d)", feedback_id, rating)
        created = self._feedback.get_by_id(feedback_id)
        if not created:
            raise ValidationError("Failed to save feedback")
        return created

    def list_feedback(
        self,
        *,
        rating: Any = None,
        category: Any = None,
        limit: Any = None,
        offset: Any = None,
    ) -> tuple[list[Feedback], int, int, int]:
        rating_i = parse_rating(rating) if optional_str(rating) else None
        category_name = resolve_category(category)
        limit_i = clamp_limit(limit)
        offset_i = parse_offset(offset)
        items = list(self._feedback.list(rating=rating_i, category=category_name, limit=limit_i, offset=offset_i))
        total = self._feedback.count(rating=rating_i, category=category_name)
        return items, total, limit_i, offset_i

    def stats(self) -> dict[str, Any]:
        summary = self._feedback.rating_summary()
        distribution = self._feedback.rating_distribution()
        average = summary.get("average")
        return {
            "total": summary["total"],
            "averageRating": round(float(average), 1) if average is not None else 0.0,
            "ratingDistribution": {str(r): int(distribution.get(r, 0)) for r in range(1, 6)},
            "categoryDistribution": self._feedback.category_distribution(),
            "recent": list(self._feedback.list(limit=RECENT_FEEDBACK_LIMIT, offset=0)),
        }

    def public_feed(self, *, limit: Any = None) -> list[dict[str, Any]]:
        """Latest feedback for the public wall, without visitor links or triage state."""
        limit_i = clamp_limit(limit, default=PUBLIC_FEEDBACK_LIMIT, maximum=PUBLIC_FEEDBACK_LIMIT)
        return [f.to_public_dict() for f in self._feedback.list(limit=limit_i, offset=0)]

    @staticmethod
    def categories() -> list[dict[str, Any]]:
        return [{"id": category_id, "name": name} for category_id, name in FEEDBACK_CATEGORIES]

    def update_status(self, *, feedback_id: int, status: Any) -> Feedback:
        try:
            new_status = FeedbackStatus(str(status or "").strip().lower())
        except ValueError:
            raise ValidationError("Invalid status. Must be one of: new, reviewed, responded")
        if not self._feedback.get_by_id(int(feedback_id)):
            raise NotFoundError("Feedback not found")
        self._feedback.update_status(int(feedback_id), new_status)
        updated = self._feedback.get_by_id(int(feedback_id))
        if not updated:
            raise NotFoundError("Feedback not found")
        return updated
