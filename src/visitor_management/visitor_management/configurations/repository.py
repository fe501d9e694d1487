from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import ConfigCategory, ConfigOption


class ConfigurationRepository(Protocol):
    def list_categories(self, *, include_inactive: bool = False) -> Sequence[ConfigCategory]:
        raise NotImplementedError

    def get_category(self, category_id: int) -> Optional[ConfigCategory]:
        raise NotImplementedError

    def get_category_by_key(self, key_name: str) -> Optional[ConfigCategory]:
        raise NotImplementedError

    def create_category(self, *, key_name: str, display_name: str, description: Optional[str]) -> int:
        raise NotImplementedError

    def update_category(self, category_id: int, changes: dict) -> bool:
        raise NotImplementedError

    def delete_category(self, category_id: int) -> bool:
        """Delete the category together with its options."""
        raise NotImplementedError

    def list_options(self, category_id: int, *, include_inactive: bool = False) -> Sequence[ConfigOption]:
        raise NotImplementedError

    def get_option(self, option_id: int) -> Optional[ConfigOption]:
        raise NotImplementedError

    def create_option(
        self,
        *,
        category_id: int,
        option_value: str,
        display_text: Optional[str],
        group_id: Optional[int],
        sort_order: int,
    ) -> int:
        raise NotImplementedError

    def update_option(self, option_id: int, changes: dict) -> bool:
        raise NotImplementedError

    def delete_option(self, option_id: int) -> bool:
        raise NotImplementedError

    def max_sort_order(self, category_id: int) -> int:
        raise NotImplementedError

    def set_sort_orders(self, category_id: int, orders: Sequence[tuple[int, int]]) -> int:
        raise NotImplementedError

    def search_options(self, term: str) -> Sequence[ConfigOption]:
        raise NotImplementedError
