from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class ConfigCategory:
    id: int
    key_name: str
    display_name: str
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ConfigOption:
    """One dropdown entry; ``group_id`` points at a parent option of the same category."""

    id: int
    category_id: int
    option_value: str
    display_text: Optional[str] = None
    group_id: Optional[int] = None
    sort_order: int = 0
    is_active: bool = True
    category_key: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_text or self.option_value

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["name"] = self.option_value
        return data
