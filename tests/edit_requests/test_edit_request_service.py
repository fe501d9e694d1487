from __future__ import annotations

import pytest

from src.visitor_management.visitor_management.core.enums import EditRequestStatus
from src.visitor_management.visitor_management.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from src.visitor_management.visitor_management.edit_requests.service import EditRequestService
from src.visitor_management.visitor_management.visitors.service import VisitorService


@pytest.fixture
def svc(edit_requests_repo, visitors_repo, deletions_repo, upload_root):
    return EditRequestService(edit_requests_repo, VisitorService(visitors_repo, deletions_repo, upload_root=upload_root))


@pytest.fixture
def visitor(visitors_repo, receptionist):
    return visitors_repo.add(input_by_user_id=receptionist.id)


def submit(svc, actor, visitor_id, **edit_data):
    return svc.submit(
        actor=actor,
        payload={"visitor_id": visitor_id, "reason": "typo in the visitor name", "edit_data": edit_data},
    )


def test_submit_keeps_only_changed_requestable_fields(svc, visitor, receptionist):
    req = submit(svc, receptionist, visitor.id, full_name="Budi Santosa", location="Dekanat", photo_url="/x.png")

    assert req.status == EditRequestStatus.PENDING
    assert req.proposed_data == {"full_name": "Budi Santosa"}
    assert req.original_data == {"full_name": "Budi Santoso"}
    assert req.requested_by == receptionist.id


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"visitor_id": 1, "reason": "short", "edit_data": {"full_name": "Budi S"}}, "Reason must be at least 10"),
        ({"visitor_id": 1, "reason": "typo in the visitor name", "edit_data": "full_name"}, "must be an object"),
        ({"visitor_id": 1, "reason": "typo in the visitor name", "edit_data": {"photo_url": "x"}}, "No valid fields"),
        ({"visitor_id": 1, "reason": "typo in the visitor name", "edit_data": {"full_name": "B"}}, "Full name"),
        ({"visitor_id": 1, "reason": "typo in the visitor name", "edit_data": {"unit": "Dekanat"}}, "No changes"),
        ({"visitor_id": "abc", "reason": "typo in the visitor name", "edit_data": {}}, "visitor_id"),
    ],
)
def test_submit_validation(svc, visitor, receptionist, payload, message):
    with pytest.raises(ValidationError, match=message):
        svc.submit(actor=receptionist, payload=payload)


def test_receptionist_only_edits_own_visitors(svc, visitors_repo, receptionist, manager):
    other = visitors_repo.add(input_by_user_id=manager.id)

    with pytest.raises(AuthorizationError):
        submit(svc, receptionist, other.id, full_name="Budi Santosa")
    assert submit(svc, manager, other.id, full_name="Budi Santosa").requested_by == manager.id


def test_second_proposal_replaces_pending_one(svc, visitor, receptionist, edit_requests_repo):
    first = submit(svc, receptionist, visitor.id, full_name="Budi Santosa")
    second = submit(svc, receptionist, visitor.id, institution="Universitas Padjadjaran")

    assert second.id == first.id
    assert second.proposed_data == {"institution": "Universitas Padjadjaran"}
    assert len(edit_requests_repo.rows) == 1


def test_approve_applies_the_edit(svc, visitor, receptionist, manager, visitors_repo):
    req = submit(svc, receptionist, visitor.id, full_name="Budi Santosa", email="budi@example.com")

    approved = svc.approve(request_id=req.id, actor=manager)

    assert approved.status == EditRequestStatus.APPROVED
    assert approved.processed_by == manager.id
    updated = visitors_repo.get_by_id(visitor.id)
    assert (updated.full_name, updated.email) == ("Budi Santosa", "budi@example.com")
    (entry,) = visitors_repo.history
    assert entry.edited_by == manager.id
    assert entry.reason.startswith(f"Edit request #{req.id}")

    with pytest.raises(ValidationError, match="already been processed"):
        svc.reject(request_id=req.id, actor=manager)


def test_reject_leaves_visitor_untouched(svc, visitor, receptionist, manager, visitors_repo):
    req = submit(svc, receptionist, visitor.id, full_name="Budi Santosa")

    with pytest.raises(AuthorizationError):
        svc.reject(request_id=req.id, actor=receptionist)
    with pytest.raises(ValidationError, match="at least 5"):
        svc.reject(request_id=req.id, actor=manager, reason="no")

    rejected = svc.reject(request_id=req.id, actor=manager)

    assert rejected.status == EditRequestStatus.REJECTED
    assert rejected.rejection_reason is None
    assert visitors_repo.get_by_id(visitor.id).full_name == "Budi Santoso"


def test_listing_and_lookup_are_scoped(svc, visitor, visitors_repo, receptionist, manager):
    mine = submit(svc, receptionist, visitor.id, full_name="Budi Santosa")
    other = visitors_repo.add(full_name="Siti Aminah")
    theirs = submit(svc, manager, other.id, full_name="Siti Aminah Putri")

    assert [r.id for r in svc.list_requests(actor=receptionist)] == [mine.id]
    assert len(svc.list_requests(actor=manager, status="pending")) == 2
    with pytest.raises(ValidationError):
        svc.list_requests(actor=manager, status="bogus")
    with pytest.raises(NotFoundError):
        svc.get_request(theirs.id, actor=receptionist)
    assert svc.get_request(theirs.id, actor=manager).visitor_id == other.id


def test_stats(svc, visitor, receptionist, admin):
    req = submit(svc, receptionist, visitor.id, full_name="Budi Santosa")
    svc.approve(request_id=req.id, actor=admin)

    assert svc.stats() == {"total": 1, "pending": 0, "approved": 1, "rejected": 0}
