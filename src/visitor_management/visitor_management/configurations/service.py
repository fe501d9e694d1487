from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional, Sequence

from ..common.validators import optional_str, parse_bool, parse_int, require_non_empty
from ..core.enums import ConfigCategoryKey
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..users.model import User
from ..users.service import require_admin
from .model import ConfigCategory, ConfigOption
from .repository import ConfigurationRepository

logger = logging.getLogger(__name__)

# Front-end spellings of the built-in category keys.
_CATEGORY_ALIASES = {
    "purposes": ConfigCategoryKey.PURPOSE.value,
    "units": ConfigCategoryKey.UNIT.value,
    "personToMeet": ConfigCategoryKey.PERSON_TO_MEET.value,
    "person-to-meet": ConfigCategoryKey.PERSON_TO_MEET.value,
    "persons_to_meet": ConfigCategoryKey.PERSON_TO_MEET.value,
    "documentTypes": ConfigCategoryKey.DOCUMENT_TYPE.value,
    "document-types": ConfigCategoryKey.DOCUMENT_TYPE.value,
}

_DROPDOWN_KEYS = (
    ("purposes", ConfigCategoryKey.PURPOSE),
    ("units", ConfigCategoryKey.UNIT),
    ("personToMeet", ConfigCategoryKey.PERSON_TO_MEET),
    ("documentTypes", ConfigCategoryKey.DOCUMENT_TYPE),
)

_KEY_RE = re.compile(r"^[a-z][a-z0-9_]{1,99}$")


def build_tree(options: Sequence[ConfigOption]) -> list[dict[str, Any]]:
    """Nest options under their ``group_id`` parent.

    Options whose parent is missing (or inactive and filtered out) become roots.
    """
    nodes = {o.id: {**o.to_dict(), "children": []} for o in options}
    roots: list[dict[str, Any]] = []
    for o in options:
        node = nodes[o.id]
        parent = nodes.get(o.group_id) if o.group_id is not None and o.group_id != o.id else None
        if parent is not None:
            parent["children"].append(node)
        else:
            roots.append(node)
    return roots


class ConfigurationService:
    """Dropdown taxonomy: categories (purpose, unit, ...) and their options."""

    def __init__(self, configs: ConfigurationRepository):
        self._configs = configs

    @staticmethod
    def resolve_key(category: str) -> str:
        key = (category or "").strip()
        return _CATEGORY_ALIASES.get(key, key)

    def _category(self, category: str) -> ConfigCategory:
        found = self._configs.get_category_by_key(self.resolve_key(category))
        if not found:
            raise NotFoundError(f"Configuration category '{category}' not found")
        return found

    def _option(self, option_id: int) -> ConfigOption:
        option = self._configs.get_option(int(option_id))
        if not option:
            raise NotFoundError("Configuration option not found")
        return option

    def _ensure_unique_value(self, category_id: int, value: str, *, option_id: Optional[int] = None) -> None:
        for existing in self._configs.list_options(category_id, include_inactive=True):
            if existing.option_value.lower() == value.lower() and existing.id != option_id:
                raise ConflictError(f"Option '{value}' already exists in this category")

    def _validate_group(self, category_id: int, group_id: Any, *, option_id: Optional[int] = None) -> Optional[int]:
        if group_id in (None, ""):
            return None
        gid = parse_int(group_id, "group_id")
        parent = self._configs.get_option(gid)
        if not parent or parent.category_id != category_id:
            raise ValidationError("group_id must reference an option of the same category")
        if option_id is not None and gid == option_id:
            raise ValidationError("An option cannot be its own group")
        if option_id is not None:
            # Walk up from the new parent; reaching the option itself would form a cycle.
            seen = {gid}
            ancestor = parent.group_id
            while ancestor is not None and ancestor not in seen:
                if ancestor == option_id:
                    raise ValidationError("group_id would create a cycle in the option hierarchy")
                seen.add(ancestor)
                node = self._configs.get_option(ancestor)
                ancestor = node.group_id if node else None
        return gid

    # --- reading ---

    def dropdowns(self) -> dict[str, list[dict]]:
        out: dict[str, list[dict]] = {}
        for name, key in _DROPDOWN_KEYS:
            category = self._configs.get_category_by_key(key.value)
            options = self._configs.list_options(category.id) if category and category.is_active else []
            out[name] = [{"id": o.id, "name": o.option_value, "label": o.label, "group_id": o.group_id} for o in options]
        return out

    def categories(self, *, include_inactive: bool = False) -> list[ConfigCategory]:
        return list(self._configs.list_categories(include_inactive=include_inactive))

    def options_for(self, category: str, *, include_inactive: bool = False) -> list[ConfigOption]:
        cat = self._category(category)
        return list(self._configs.list_options(cat.id, include_inactive=include_inactive))

    def tree(self, category: str) -> list[dict[str, Any]]:
        return build_tree(self.options_for(category))

    def get_option(self, option_id: int) -> ConfigOption:
        return self._option(option_id)

    def search(self, term: str) -> list[ConfigOption]:
        term = require_non_empty(term, "Search term")
        return list(self._configs.search_options(term))

    # --- category management ---

    def create_category(self, *, actor: User, payload: dict) -> ConfigCategory:
        require_admin(actor)
        key_name = require_non_empty(payload.get("key_name"), "key_name").lower()
        if not _KEY_RE.match(key_name):
            raise ValidationError("key_name must be lowercase letters, digits or underscores")
        display_name = require_non_empty(payload.get("display_name"), "display_name")
        if self._configs.get_category_by_key(key_name):
            raise ConflictError(f"Category '{key_name}' already exists")

        category_id = self._configs.create_category(
            key_name=key_name,
            display_name=display_name,
            description=optional_str(payload.get("description")),
        )
        logger.info("Configuration category %s created by user %s", key_name, actor.id)
        created = self._configs.get_category(category_id)
        if not created:
            raise ValidationError("Failed to create category")
        return created

    def update_category(self, *, actor: User, category_id: int, payload: dict) -> ConfigCategory:
        require_admin(actor)
        if not self._configs.get_category(int(category_id)):
            raise NotFoundError("Configuration category not found")
        changes: dict = {}
        if "display_name" in payload:
            changes["display_name"] = require_non_empty(payload.get("display_name"), "display_name")
        if "description" in payload:
            changes["description"] = optional_str(payload.get("description"))
        if "is_active" in payload:
            changes["is_active"] = 1 if parse_bool(payload.get("is_active")) else 0
        if not changes:
            raise ValidationError("Nothing to update")
        self._configs.update_category(int(category_id), changes)
        updated = self._configs.get_category(int(category_id))
        if not updated:
            raise NotFoundError("Configuration category not found")
        return updated

    def delete_category(self, *, actor: User, category_id: int) -> None:
        require_admin(actor)
        if not self._configs.delete_category(int(category_id)):
            raise NotFoundError("Configuration category not found")
        logger.info("Configuration category %s deleted by user %s", category_id, actor.id)

    # --- option management ---

    def create_option(self, *, actor: User, payload: dict) -> ConfigOption:
        require_admin(actor)
        category = self._category(require_non_empty(payload.get("category"), "Category"))
        name = require_non_empty(payload.get("name") or payload.get("option_value"), "Name")
        self._ensure_unique_value(category.id, name)

        if payload.get("sort_order") not in (None, ""):
            sort_order = parse_int(payload.get("sort_order"), "sort_order")
        else:
            sort_order = self._configs.max_sort_order(category.id) + 1

        option_id = self._configs.create_option(
            category_id=category.id,
            option_value=name,
            display_text=optional_str(payload.get("display_text")) or name,
            group_id=self._validate_group(category.id, payload.get("group_id")),
            sort_order=sort_order,
        )
        logger.info("Configuration option '%s' added to %s by user %s", name, category.key_name, actor.id)
        return self._option(option_id)

    def update_option(self, *, actor: User, option_id: int, payload: dict) -> ConfigOption:
        require_admin(actor)
        option = self._option(option_id)
        changes: dict = {}
        if "name" in payload or "option_value" in payload:
            name = require_non_empty(payload.get("name") or payload.get("option_value"), "Name")
            self._ensure_unique_value(option.category_id, name, option_id=option.id)
            changes["option_value"] = name
        if "display_text" in payload:
            changes["display_text"] = optional_str(payload.get("display_text"))
        if "group_id" in payload:
            changes["group_id"] = self._validate_group(option.category_id, payload.get("group_id"), option_id=option.id)
        if "sort_order" in payload:
            changes["sort_order"] = parse_int(payload.get("sort_order"), "sort_order")
        if "is_active" in payload:
            changes["is_active"] = parse_bool(payload.get("is_active"))
        if not changes:
            raise ValidationError("Nothing to update")
        self._configs.update_option(option.id, changes)
        return self._option(option.id)

    def delete_option(self, *, actor: User, option_id: int) -> None:
        require_admin(actor)
        if not self._configs.delete_option(int(option_id)):
            raise NotFoundError("Configuration option not found")
        logger.info("Configuration option %s deleted by user %s", option_id, actor.id)

    def reorder(self, *, actor: User, category: str, option_ids: Iterable) -> int:
        require_admin(actor)
        cat = self._category(category)
        try:
            ids = [int(i) for i in option_ids]
        except (TypeError, ValueError):
            raise ValidationError("option_ids must be a list of integers")
        if not ids:
            raise ValidationError("option_ids must not be empty")
        known = {o.id for o in self._configs.list_options(cat.id, include_inactive=True)}
        unknown = [i for i in ids if i not in known]
        if unknown:
            raise ValidationError(f"Options not in category: {', '.join(map(str, unknown))}")
        return self._configs.set_sort_orders(cat.id, [(option_id, idx + 1) for idx, option_id in enumerate(ids)])
