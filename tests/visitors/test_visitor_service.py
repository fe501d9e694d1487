from __future__ import annotations

from datetime import date, datetime

import pytest

from src.visitor_management.visitor_management.core.enums import VisitorStatus
from src.visitor_management.visitor_management.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.visitor_management.visitor_management.visitors.model import VisitorFilters
from src.visitor_management.visitor_management.visitors.service import VisitorService, parse_filters

CHECK_IN = {
    "full_name": "Budi Santoso",
    "phone_number": "081234567890",
    "institution": "Universitas Indonesia",
    "purpose": "Meeting",
    "unit": "Dekanat",
}


@pytest.fixture
def svc(visitors_repo, deletions_repo, upload_root):
    return VisitorService(visitors_repo, deletions_repo, upload_root=upload_root)


def test_check_in_records_operator_and_photo(svc, receptionist, png_data_url, upload_root):
    visitor = svc.check_in(operator=receptionist, payload={**CHECK_IN, "photo": png_data_url})

    assert visitor.input_by_user_id == receptionist.id
    assert visitor.input_by_name == receptionist.name
    assert visitor.status == VisitorStatus.CHECKED_IN
    assert visitor.photo_url.startswith("/uploads/photos/visitor-")
    assert (upload_root / visitor.photo_url[len("/uploads/"):]).is_file()


def test_check_in_accepts_legacy_field_names(svc, receptionist):
    payload = {
        "name": "Ani",
        "phone": "0812345678",
        "institution": "ITB",
        "purpose": "Audiensi",
        "location": "Perpustakaan",
    }

    visitor = svc.check_in(operator=receptionist, payload=payload)

    assert (visitor.full_name, visitor.phone_number, visitor.unit) == ("Ani", "0812345678", "Perpustakaan")


@pytest.mark.parametrize(
    "override, message",
    [
        ({"full_name": "B"}, "Full name"),
        ({"phone_number": "123"}, "Phone number"),
        ({"unit": ""}, "Unit"),
        ({"email": "not-an-email"}, "Email"),
    ],
)
def test_check_in_validation(svc, receptionist, override, message):
    with pytest.raises(ValidationError, match=message):
        svc.check_in(operator=receptionist, payload={**CHECK_IN, **override})


def test_document_request_needs_type(svc, receptionist):
    with pytest.raises(ValidationError, match="Document type is required"):
        svc.check_in(operator=receptionist, payload={**CHECK_IN, "request_document": True})

    visitor = svc.check_in(
        operator=receptionist, payload={**CHECK_IN, "request_document": "true", "document_type": "Surat Keterangan"}
    )
    assert visitor.request_document is True


def test_explicit_check_in_time(svc, receptionist):
    visitor = svc.check_in(operator=receptionist, payload={**CHECK_IN, "check_in_time": "2026-10-19T08:15:00Z"})

    assert visitor.check_in_time == datetime(2026, 10, 19, 8, 15)


def test_update_writes_edit_history(svc, visitors_repo, receptionist):
    visitor = visitors_repo.add()

    updated = svc.update_visitor(
        visitor_id=visitor.id,
        operator=receptionist,
        payload={"purpose": "Konsultasi", "unit": "Dekanat", "edit_reason": "typo"},
    )

    assert updated.purpose == "Konsultasi"
    history = svc.edit_history(visitor.id)
    assert history["pagination"] == {"total": 1, "limit": 50, "offset": 0, "hasMore": False}
    entry = history["items"][0]
    assert entry.changes == {"purpose": {"old": "Meeting", "new": "Konsultasi"}}
    assert entry.reason == "typo"


def test_edit_history_pages_newest_first(svc, visitors_repo, receptionist):
    visitor = visitors_repo.add()
    for purpose in ("Konsultasi", "Legalisir", "Rapat"):
        svc.update_visitor(visitor_id=visitor.id, operator=receptionist, payload={"purpose": purpose})

    first = svc.edit_history(visitor.id, limit="2")
    rest = svc.edit_history(visitor.id, limit=2, offset=2)

    assert [e.changes["purpose"]["new"] for e in first["items"]] == ["Rapat", "Legalisir"]
    assert first["pagination"] == {"total": 3, "limit": 2, "offset": 0, "hasMore": True}
    assert [e.changes["purpose"]["new"] for e in rest["items"]] == ["Konsultasi"]
    assert rest["pagination"]["hasMore"] is False


def test_preview_edit_does_not_apply(svc, visitors_repo):
    visitor = visitors_repo.add()

    _, changes = svc.preview_edit(visitor_id=visitor.id, payload={"name": "Budi S", "unit": "Dekanat"})

    assert changes == {"full_name": "Budi S"}
    assert visitors_repo.get_by_id(visitor.id).full_name == "Budi Santoso"
    with pytest.raises(ValidationError, match="No valid fields"):
        svc.preview_edit(visitor_id=visitor.id, payload={"signature": "x"})


def test_update_without_changes(svc, visitors_repo, receptionist):
    visitor = visitors_repo.add()

    with pytest.raises(ValidationError, match="No changes"):
        svc.update_visitor(visitor_id=visitor.id, operator=receptionist, payload={"purpose": "Meeting"})


def test_check_out_only_once(svc, visitors_repo, receptionist):
    visitor = visitors_repo.add()

    done = svc.check_out(visitor_id=visitor.id, operator=receptionist, payload={"document_number": "123/UN/2026"})

    assert done.is_checked_out
    assert done.status == VisitorStatus.CHECKED_OUT
    assert done.checkout_by_user_id == receptionist.id
    assert done.document_number == "123/UN/2026"
    with pytest.raises(ValidationError, match="already checked out"):
        svc.check_out(visitor_id=visitor.id, operator=receptionist)


def test_request_deletion_rules(svc, visitors_repo, receptionist, manager):
    mine = visitors_repo.add(input_by_user_id=receptionist.id)
    other = visitors_repo.add(input_by_user_id=manager.id)

    with pytest.raises(AuthorizationError):
        svc.request_deletion(visitor_id=other.id, operator=receptionist, reason="duplicate entry for this visitor")
    with pytest.raises(ValidationError, match="at least 10"):
        svc.request_deletion(visitor_id=mine.id, operator=receptionist, reason="dup")

    req = svc.request_deletion(visitor_id=mine.id, operator=receptionist, reason="duplicate entry for this visitor")
    assert req.requested_by == receptionist.id
    with pytest.raises(ConflictError):
        svc.request_deletion(visitor_id=mine.id, operator=receptionist, reason="duplicate entry again please")


def test_soft_delete_and_restore(svc, visitors_repo, manager, receptionist):
    visitor = visitors_repo.add()

    with pytest.raises(AuthorizationError):
        svc.soft_delete(visitor_id=visitor.id, operator=receptionist)

    svc.soft_delete(visitor_id=visitor.id, operator=manager)
    with pytest.raises(NotFoundError):
        svc.get_visitor(visitor.id)
    assert svc.get_visitor(visitor.id, include_deleted=True).is_deleted

    restored = svc.restore(visitor_id=visitor.id, operator=manager)
    assert not restored.is_deleted
    with pytest.raises(ValidationError):
        svc.restore(visitor_id=visitor.id, operator=manager)


def test_permanent_delete_is_admin_only(svc, visitors_repo, manager, admin):
    visitor = visitors_repo.add()

    with pytest.raises(AuthorizationError):
        svc.delete_permanently(visitor_id=visitor.id, operator=manager)

    svc.delete_permanently(visitor_id=visitor.id, operator=admin)
    assert visitors_repo.get_by_id(visitor.id) is None


def test_list_filters_and_total(svc, visitors_repo):
    visitors_repo.add(check_in_time=datetime(2026, 10, 17, 9, 0))
    visitors_repo.add(check_in_time=datetime(2026, 10, 18, 9, 0), check_out_time=datetime(2026, 10, 18, 10, 0))
    visitors_repo.add(check_in_time=datetime(2026, 10, 19, 9, 0))

    items, total = svc.list_visitors(VisitorFilters(status="active", limit=1))

    assert total == 2
    assert [v.check_in_time.day for v in items] == [19]


def test_parse_filters():
    filters = parse_filters({"startDate": "2026-10-01", "location": "Dekanat", "status": "all", "limit": "5000"})

    assert filters.start_date == date(2026, 10, 1)
    assert filters.location == "Dekanat"
    assert filters.status is None
    assert filters.limit == 1000

    with pytest.raises(ValidationError):
        parse_filters({"status": "gone"})
    with pytest.raises(ValidationError):
        parse_filters({"endDate": "19-10-2026"})


def test_stats(svc, visitors_repo, deletions_repo, receptionist):
    kept = visitors_repo.add()
    gone = visitors_repo.add()
    visitors_repo.soft_delete(gone.id, deleted_by=1, deleted_at=datetime(2026, 10, 19, 12, 0))
    deletions_repo.create(visitor_id=kept.id, requested_by=receptionist.id, reason="please remove this one")

    stats = svc.stats()

    assert stats["total"] == 2
    assert stats["active"] == 1
    assert stats["deleted"] == 1
    assert stats["deletionRequests"] == {"pending": 1, "approved": 0, "rejected": 0}
