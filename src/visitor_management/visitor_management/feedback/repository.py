from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import FeedbackStatus
from .model import Feedback


class FeedbackRepository(Protocol):
    def create(self, data: dict) -> int:
        raise NotImplementedError

    def get_by_id(self, feedback_id: int) -> Optional[Feedback]:
        raise NotImplementedError

    def list(
        self,
        *,
        rating: Optional[int] = None,
        category: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[Feedback]:
        raise NotImplementedError

    def count(self, *, rating: Optional[int] = None, category: Optional[str] = None) -> int:
        raise NotImplementedError

    def update_status(self, feedback_id: int, status: FeedbackStatus) -> bool:
        raise NotImplementedError

    def rating_summary(self) -> dict:
        """``{"total": int, "average": float | None}``"""
        raise NotImplementedError

    def rating_distribution(self) -> dict[int, int]:
        raise NotImplementedError

    def category_distribution(self) -> dict[str, int]:
        raise NotImplementedError
