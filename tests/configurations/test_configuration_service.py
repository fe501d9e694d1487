from __future__ import annotations

from dataclasses import replace

import pytest

from src.visitor_management.visitor_management.configurations.model import ConfigCategory, ConfigOption
from src.visitor_management.visitor_management.configurations.service import ConfigurationService, build_tree
from src.visitor_management.visitor_management.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


class FakeConfigRepo:
    def __init__(self):
        self.categories: dict[int, ConfigCategory] = {}
        self.options: dict[int, ConfigOption] = {}
        self._next_cat = 1
        self._next_opt = 1

    def list_categories(self, *, include_inactive=False):
        return [c for c in self.categories.values() if include_inactive or c.is_active]

    def get_category(self, category_id):
        return self.categories.get(category_id)

    def get_category_by_key(self, key_name):
        return next((c for c in self.categories.values() if c.key_name == key_name), None)

    def create_category(self, *, key_name, display_name, description):
        cid = self._next_cat
        self._next_cat += 1
        self.categories[cid] = ConfigCategory(id=cid, key_name=key_name, display_name=display_name, description=description)
        return cid

    def update_category(self, category_id, changes):
        self.categories[category_id] = replace(self.categories[category_id], **changes)
        return True

    def delete_category(self, category_id):
        if self.categories.pop(category_id, None) is None:
            return False
        self.options = {k: o for k, o in self.options.items() if o.category_id != category_id}
        return True

    def list_options(self, category_id, *, include_inactive=False):
        found = [o for o in self.options.values() if o.category_id == category_id and (include_inactive or o.is_active)]
        return sorted(found, key=lambda o: (o.sort_order, o.id))

    def get_option(self, option_id):
        return self.options.get(option_id)

    def create_option(self, *, category_id, option_value, display_text, group_id, sort_order):
        oid = self._next_opt
        self._next_opt += 1
        self.options[oid] = ConfigOption(
            id=oid,
            category_id=category_id,
            option_value=option_value,
            display_text=display_text,
            group_id=group_id,
            sort_order=sort_order,
        )
        return oid

    def update_option(self, option_id, changes):
        self.options[option_id] = replace(self.options[option_id], **changes)
        return True

    def delete_option(self, option_id):
        return self.options.pop(option_id, None) is not None

    def max_sort_order(self, category_id):
        return max((o.sort_order for o in self.options.values() if o.category_id == category_id), default=0)

    def set_sort_orders(self, category_id, orders):
        for option_id, order in orders:
            self.update_option(option_id, {"sort_order": order})
        return len(orders)

    def search_options(self, term):
        return [o for o in self.options.values() if term.lower() in o.option_value.lower()]


@pytest.fixture
def repo():
    r = FakeConfigRepo()
    for key in ("purpose", "unit", "person_to_meet", "document_type"):
        r.create_category(key_name=key, display_name=key.title(), description=None)
    return r


@pytest.fixture
def svc(repo):
    return ConfigurationService(repo)


def test_create_option_appends_to_category(svc, admin):
    first = svc.create_option(actor=admin, payload={"category": "purposes", "name": "Meeting"})
    second = svc.create_option(actor=admin, payload={"category": "purpose", "name": "Konsultasi"})

    assert first.sort_order == 1
    assert second.sort_order == 2
    assert second.display_text == "Konsultasi"
    assert [o.option_value for o in svc.options_for("purposes")] == ["Meeting", "Konsultasi"]


def test_option_values_are_unique_per_category(svc, admin):
    svc.create_option(actor=admin, payload={"category": "units", "name": "Dekanat"})

    with pytest.raises(ConflictError):
        svc.create_option(actor=admin, payload={"category": "units", "name": "dekanat"})
    svc.create_option(actor=admin, payload={"category": "purposes", "name": "Dekanat"})


def test_only_admin_manages_options(svc, receptionist):
    with pytest.raises(AuthorizationError):
        svc.create_option(actor=receptionist, payload={"category": "units", "name": "Dekanat"})


def test_unknown_category(svc, admin):
    with pytest.raises(NotFoundError):
        svc.create_option(actor=admin, payload={"category": "colors", "name": "Red"})


def test_dropdowns_use_front_end_keys(svc, admin):
    svc.create_option(actor=admin, payload={"category": "units", "name": "Dekanat", "display_text": "Dekanat FPEB"})

    dropdowns = svc.dropdowns()

    assert set(dropdowns) == {"purposes", "units", "personToMeet", "documentTypes"}
    assert dropdowns["units"] == [{"id": 1, "name": "Dekanat", "label": "Dekanat FPEB", "group_id": None}]


def test_group_must_be_in_same_category(svc, admin):
    unit = svc.create_option(actor=admin, payload={"category": "units", "name": "Dekanat"})
    purpose = svc.create_option(actor=admin, payload={"category": "purposes", "name": "Meeting"})

    with pytest.raises(ValidationError):
        svc.create_option(actor=admin, payload={"category": "units", "name": "Prodi", "group_id": purpose.id})
    with pytest.raises(ValidationError, match="own group"):
        svc.update_option(actor=admin, option_id=unit.id, payload={"group_id": unit.id})


def test_tree_nests_children(svc, admin):
    parent = svc.create_option(actor=admin, payload={"category": "units", "name": "Dekanat"})
    svc.create_option(actor=admin, payload={"category": "units", "name": "Wakil Dekan", "group_id": parent.id})
    svc.create_option(actor=admin, payload={"category": "units", "name": "Perpustakaan"})

    tree = svc.tree("units")

    assert [n["name"] for n in tree] == ["Dekanat", "Perpustakaan"]
    assert [c["name"] for c in tree[0]["children"]] == ["Wakil Dekan"]


def test_group_cycles_are_rejected(svc, admin):
    a = svc.create_option(actor=admin, payload={"category": "units", "name": "Dekanat"})
    b = svc.create_option(actor=admin, payload={"category": "units", "name": "Wakil Dekan", "group_id": a.id})
    c = svc.create_option(actor=admin, payload={"category": "units", "name": "Sekretariat", "group_id": b.id})

    with pytest.raises(ValidationError, match="cycle"):
        svc.update_option(actor=admin, option_id=a.id, payload={"group_id": b.id})
    with pytest.raises(ValidationError, match="cycle"):
        svc.update_option(actor=admin, option_id=a.id, payload={"group_id": c.id})

    tree = svc.tree("units")
    assert [n["name"] for n in tree] == ["Dekanat"]
    assert tree[0]["children"][0]["children"][0]["name"] == "Sekretariat"


def test_regrouping_without_cycle_is_allowed(svc, admin):
    a = svc.create_option(actor=admin, payload={"category": "units", "name": "Dekanat"})
    b = svc.create_option(actor=admin, payload={"category": "units", "name": "Perpustakaan"})
    c = svc.create_option(actor=admin, payload={"category": "units", "name": "Sekretariat", "group_id": a.id})

    moved = svc.update_option(actor=admin, option_id=c.id, payload={"group_id": b.id})

    assert moved.group_id == b.id


def test_build_tree_orphans_become_roots():
    options = [ConfigOption(id=2, category_id=1, option_value="Child", group_id=99)]

    assert [n["id"] for n in build_tree(options)] == [2]


def test_reorder(svc, admin):
    a = svc.create_option(actor=admin, payload={"category": "units", "name": "A"})
    b = svc.create_option(actor=admin, payload={"category": "units", "name": "B"})

    assert svc.reorder(actor=admin, category="units", option_ids=[b.id, a.id]) == 2
    assert [o.option_value for o in svc.options_for("units")] == ["B", "A"]
    with pytest.raises(ValidationError, match="not in category"):
        svc.reorder(actor=admin, category="purposes", option_ids=[a.id])
    with pytest.raises(ValidationError):
        svc.reorder(actor=admin, category="units", option_ids=[])


def test_deactivated_option_is_hidden(svc, admin):
    option = svc.create_option(actor=admin, payload={"category": "units", "name": "Dekanat"})

    svc.update_option(actor=admin, option_id=option.id, payload={"is_active": "false"})

    assert svc.options_for("units") == []
    assert len(svc.options_for("units", include_inactive=True)) == 1


def test_category_management(svc, admin):
    created = svc.create_category(actor=admin, payload={"key_name": "Parking_Area", "display_name": "Parking"})

    assert created.key_name == "parking_area"
    with pytest.raises(ConflictError):
        svc.create_category(actor=admin, payload={"key_name": "parking_area", "display_name": "Parking"})
    with pytest.raises(ValidationError):
        svc.create_category(actor=admin, payload={"key_name": "9lives", "display_name": "Bad"})

    svc.delete_category(actor=admin, category_id=created.id)
    with pytest.raises(NotFoundError):
        svc.delete_category(actor=admin, category_id=created.id)


def test_search_requires_term(svc, admin):
    svc.create_option(actor=admin, payload={"category": "purposes", "name": "Legalisir Ijazah"})

    assert [o.option_value for o in svc.search("ijazah")] == ["Legalisir Ijazah"]
    with pytest.raises(ValidationError):
        svc.search("  ")
