from __future__ import annotations

from datetime import date, time

import pytest

from src.visitor_management.visitor_management.core.enums import (
    HistoryAction,
    ItemCondition,
    LostItemStatus,
    ReturnRelationship,
)
from src.visitor_management.visitor_management.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from src.visitor_management.visitor_management.lost_items.service import LostItemService, parse_filters


@pytest.fixture
def svc(lost_items_repo, upload_root):
    return LostItemService(lost_items_repo, upload_root=upload_root)


def found(**kw):
    payload = {
        "item_name": "Dompet hitam",
        "found_location": "Lobi Gedung FPEB",
        "found_date": "2026-10-18",
        "found_time": "14:30",
        "category": "Dompet",
    }
    payload.update(kw)
    return payload


def test_register_records_history(svc, lost_items_repo, receptionist):
    item = svc.register(operator=receptionist, payload=found(condition_status="Fair"))

    assert item.status == LostItemStatus.FOUND
    assert item.condition_status == ItemCondition.FAIR
    assert item.found_date == date(2026, 10, 18)
    assert item.found_time == time(14, 30)
    (entry,) = svc.history(item.id)
    assert entry.action_type == HistoryAction.CREATED
    assert entry.new_data["item_name"] == "Dompet hitam"
    assert entry.old_data is None


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"item_name": ""}, "Item name is required"),
        ({"found_location": None}, "Found location is required"),
        ({"found_date": "18/10/2026"}, "Found date must be a date"),
        ({"found_time": "25:99"}, "Found time must be a time"),
        ({"condition_status": "broken"}, "Invalid condition"),
    ],
)
def test_register_validation(svc, receptionist, overrides, message):
    with pytest.raises(ValidationError, match=message):
        svc.register(operator=receptionist, payload=found(**overrides))


def test_register_stores_handover_photo(svc, receptionist, png_data_url, upload_root):
    item = svc.register(operator=receptionist, payload=found(handover_photo=png_data_url))

    assert item.handover_photo_url.startswith("/uploads/lost-items/handover-")
    assert len(list((upload_root / "lost-items").iterdir())) == 1


def test_update_tracks_changed_fields(svc, receptionist):
    item = svc.register(operator=receptionist, payload=found())

    updated = svc.update(item_id=item.id, operator=receptionist, payload={"description": "Isi KTP", "item_name": "Dompet hitam"})

    assert updated.description == "Isi KTP"
    latest = svc.history(item.id)[0]
    assert latest.action_type == HistoryAction.UPDATED
    assert latest.changed_fields == ["description"]
    assert latest.old_data["description"] is None

    with pytest.raises(ValidationError, match="No changes"):
        svc.update(item_id=item.id, operator=receptionist, payload={"description": "Isi KTP"})
    with pytest.raises(ValidationError, match="Nothing to update"):
        svc.update(item_id=item.id, operator=receptionist, payload={"unknown": 1})


def test_status_change_is_its_own_action(svc, manager):
    item = svc.register(operator=manager, payload=found())

    svc.update(item_id=item.id, operator=manager, payload={"status": "disposed"})

    assert svc.history(item.id)[0].action_type == HistoryAction.STATUS_CHANGED


def test_return_is_one_way(svc, receptionist):
    item = svc.register(operator=receptionist, payload=found())

    returned = svc.return_item(
        item_id=item.id,
        operator=receptionist,
        payload={"claimer_name": "Andi", "relationship_to_owner": "cousin", "return_date": "2026-10-19", "return_time": "10:15"},
    )

    assert returned.status == LostItemStatus.RETURNED
    record = returned.return_record
    assert record.claimer_name == "Andi"
    assert record.relationship_to_owner == ReturnRelationship.OWNER
    assert (record.return_date, record.return_time) == (date(2026, 10, 19), time(10, 15))
    assert record.return_operator == receptionist.name
    assert svc.history(item.id)[0].action_type == HistoryAction.RETURNED

    with pytest.raises(NotFoundError, match="already returned"):
        svc.return_item(item_id=item.id, operator=receptionist, payload={"claimer_name": "Andi"})


def test_return_requires_claimer(svc, receptionist):
    item = svc.register(operator=receptionist, payload=found())

    with pytest.raises(ValidationError, match="Claimer name"):
        svc.return_item(item_id=item.id, operator=receptionist, payload={})

    record = svc.return_item(item_id=item.id, operator=receptionist, payload={"claimer_name": "Andi"}).return_record
    assert record.return_date is not None and record.return_time is not None


def test_update_return_corrects_handover(svc, receptionist, manager, png_data_url, upload_root):
    item = svc.register(operator=receptionist, payload=found())
    with pytest.raises(NotFoundError, match="Return record not found"):
        svc.update_return(item_id=item.id, operator=manager, payload={"claimer_name": "Budi"})

    svc.return_item(item_id=item.id, operator=receptionist, payload={"claimer_name": "Andi", "return_photo": png_data_url})
    first_photo = svc.get_item(item.id).return_record.return_photo_url

    updated = svc.update_return(
        item_id=item.id,
        operator=manager,
        payload={
            "claimer_name": "Andi Wijaya",
            "relationship_to_owner": "family",
            "return_notes": "KTP dicek",
            "return_photo": png_data_url,
        },
    )

    record = updated.return_record
    assert updated.status == LostItemStatus.RETURNED
    assert record.claimer_name == "Andi Wijaya"
    assert record.relationship_to_owner == ReturnRelationship.FAMILY
    assert record.notes == "KTP dicek"
    assert record.return_operator == manager.name
    assert record.return_photo_url != first_photo
    assert [p.name for p in (upload_root / "lost-items").iterdir()] == [record.return_photo_url.rsplit("/", 1)[1]]

    entry = svc.history(item.id)[0]
    assert entry.action_type == HistoryAction.RETURN_UPDATED
    assert set(entry.changed_fields) == {"claimer_name", "relationship_to_owner", "notes", "return_photo_url"}
    assert entry.old_data["claimer_name"] == "Andi"

    with pytest.raises(ValidationError, match="No changes"):
        svc.update_return(item_id=item.id, operator=manager, payload={"claimer_name": "Andi Wijaya"})


def test_revert_restores_previous_values(svc, receptionist):
    item = svc.register(operator=receptionist, payload=found())
    svc.update(item_id=item.id, operator=receptionist, payload={"item_name": "Dompet coklat", "notes": "salah input"})
    update_entry = svc.history(item.id)[0]

    reverted = svc.revert(item_id=item.id, history_id=update_entry.id, operator=receptionist)

    assert reverted.item_name == "Dompet hitam"
    assert reverted.notes is None
    latest = svc.history(item.id)[0]
    assert latest.action_type == HistoryAction.REVERTED
    assert sorted(latest.changed_fields) == ["item_name", "notes"]


def test_revert_rejects_foreign_or_empty_entries(svc, receptionist):
    item = svc.register(operator=receptionist, payload=found())
    other = svc.register(operator=receptionist, payload=found(item_name="Payung"))
    created_entry = svc.history(item.id)[0]

    with pytest.raises(ValidationError, match="no previous state"):
        svc.revert(item_id=item.id, history_id=created_entry.id, operator=receptionist)
    with pytest.raises(NotFoundError, match="History entry not found"):
        svc.revert(item_id=other.id, history_id=created_entry.id, operator=receptionist)


def test_delete_is_admin_only(svc, admin, receptionist, png_data_url, upload_root):
    item = svc.register(operator=receptionist, payload=found(handover_photo=png_data_url))

    with pytest.raises(AuthorizationError):
        svc.delete(item_id=item.id, operator=receptionist)
    svc.delete(item_id=item.id, operator=admin)

    assert list((upload_root / "lost-items").iterdir()) == []
    with pytest.raises(NotFoundError):
        svc.get_item(item.id)


def test_list_and_stats(svc, receptionist):
    a = svc.register(operator=receptionist, payload=found())
    svc.register(operator=receptionist, payload=found(item_name="Payung", category="Lainnya"))
    svc.return_item(item_id=a.id, operator=receptionist, payload={"claimer_name": "Andi"})

    items, total = svc.list_items(parse_filters({"status": "found"}))
    stats = svc.stats()

    assert total == 1 and items[0].item_name == "Payung"
    assert stats["total"] == 2
    assert stats["found"] == stats["pending"] == 1
    assert stats["returned"] == 1
    assert stats["disposed"] == 0


def test_parse_filters_rejects_unknown_status():
    with pytest.raises(ValidationError):
        parse_filters({"status": "lost"})
