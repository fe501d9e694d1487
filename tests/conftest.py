from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from src.visitor_management.visitor_management.core.enums import (
    DeletionRequestStatus,
    EditRequestStatus,
    LostItemStatus,
    Role,
    VisitorStatus,
)
from src.visitor_management.visitor_management.deletion_requests.model import DeletionRequest
from src.visitor_management.visitor_management.edit_requests.model import EditRequest
from src.visitor_management.visitor_management.feedback.model import Feedback
from src.visitor_management.visitor_management.lost_items.model import HistoryEntry, ItemReturn, LostItem
from src.visitor_management.visitor_management.users.model import User
from src.visitor_management.visitor_management.visitors.model import EditHistoryEntry, Visitor, VisitorFilters


def make_user(user_id: int = 1, *, role: Role = Role.ADMIN, name: Optional[str] = None, password: str = "secret123", **kw) -> User:
    return User(
        id=user_id,
        name=name or f"User {user_id}",
        email=kw.pop("email", f"user{user_id}@example.com"),
        password_hash=generate_password_hash(password),
        role=role,
        **kw,
    )


class FakeUserRepo:
    def __init__(self, users=()):
        self.users = {u.id: u for u in users}
        self.visitor_counts: dict[int, int] = {}
        self._next_id = max(self.users, default=0) + 1

    def get_by_id(self, user_id):
        return self.users.get(int(user_id))

    def get_by_email(self, email):
        return next((u for u in self.users.values() if u.email == email), None)

    def list_users(self, *, role=None, search=None):
        users = [u for u in self.users.values() if role is None or u.role == role]
        if search:
            users = [u for u in users if search.lower() in u.name.lower() or search.lower() in u.email]
        return sorted(users, key=lambda u: u.id)

    def create_user(self, *, name, email, password_hash, role, phone=None, study_program=None, cohort=None):
        uid = self._next_id
        self._next_id += 1
        self.users[uid] = User(
            id=uid,
            name=name,
            email=email,
            password_hash=password_hash,
            role=role,
            phone=phone,
            study_program=study_program,
            cohort=cohort,
        )
        return uid

    def update_user(self, user_id, changes):
        user = self.users.get(int(user_id))
        if not user:
            return False
        values = dict(changes)
        if "password" in values:
            values["password_hash"] = values.pop("password")
        self.users[user.id] = replace(user, **values)
        return True

    def delete_by_id(self, user_id):
        return self.users.pop(int(user_id), None) is not None

    def count_by_role(self):
        counts: dict[str, int] = {}
        for u in self.users.values():
            counts[u.role.value] = counts.get(u.role.value, 0) + 1
        return counts

    def count_created_since(self, since):
        return sum(1 for u in self.users.values() if u.created_at and u.created_at >= since)

    def count_visitors(self, user_id):
        return self.visitor_counts.get(int(user_id), 0)

    def recent_visitors(self, user_id, *, limit=5):
        return []

    def transfer_visitors(self, *, from_user_id, to_user_id, to_user_name):
        moved = self.visitor_counts.pop(from_user_id, 0)
        self.visitor_counts[to_user_id] = self.visitor_counts.get(to_user_id, 0) + moved
        return moved


class FakeVisitorRepo:
    def __init__(self):
        self.rows: dict[int, Visitor] = {}
        self.history: list[EditHistoryEntry] = []
        self._next_id = 1

    def add(self, **fields) -> Visitor:
        data = {
            "full_name": "Budi Santoso",
            "phone_number": "081234567890",
            "institution": "Universitas Indonesia",
            "purpose": "Meeting",
            "unit": "Dekanat",
            "check_in_time": datetime(2026, 10, 19, 9, 0),
        }
        data.update(fields)
        return self.get_by_id(self.create(data))

    def create(self, data):
        vid = self._next_id
        self._next_id += 1
        self.rows[vid] = Visitor(id=vid, **data)
        return vid

    def get_by_id(self, visitor_id):
        return self.rows.get(int(visitor_id))

    def list(self, filters: VisitorFilters):
        items = list(self.rows.values())
        if filters.only_deleted:
            items = [v for v in items if v.is_deleted]
        elif not filters.include_deleted:
            items = [v for v in items if not v.is_deleted]
        if filters.start_date:
            items = [v for v in items if v.check_in_time.date() >= filters.start_date]
        if filters.end_date:
            items = [v for v in items if v.check_in_time.date() <= filters.end_date]
        if filters.location:
            items = [v for v in items if v.unit == filters.location]
        if filters.purpose:
            items = [v for v in items if v.purpose == filters.purpose]
        if filters.status == "active":
            items = [v for v in items if not v.is_checked_out]
        elif filters.status == "completed":
            items = [v for v in items if v.is_checked_out]
        if filters.search:
            term = filters.search.lower()
            items = [v for v in items if term in v.full_name.lower() or term in v.institution.lower()]
        items.sort(key=lambda v: v.check_in_time, reverse=True)
        if filters.limit:
            items = items[filters.offset : filters.offset + filters.limit]
        return items

    def count(self, filters):
        return len(self.list(replace(filters, limit=None, offset=0)))

    def update(self, visitor_id, changes):
        self.rows[visitor_id] = replace(self.rows[visitor_id], **changes)
        return True

    def check_out(self, visitor_id, *, check_out_time, operator_id, operator_name, extra):
        v = self.rows[visitor_id]
        if v.is_checked_out:
            return False
        self.rows[visitor_id] = replace(
            v,
            **extra,
            check_out_time=check_out_time,
            status=VisitorStatus.CHECKED_OUT,
            checkout_by_user_id=operator_id,
            checkout_by_name=operator_name,
        )
        return True

    def add_edit_history(self, *, visitor_id, edited_by, edited_by_name, changes, original_data, reason):
        entry = EditHistoryEntry(
            id=len(self.history) + 1,
            visitor_id=visitor_id,
            edited_by=edited_by,
            edited_by_name=edited_by_name,
            changes=changes,
            original_data=original_data,
            reason=reason,
        )
        self.history.append(entry)
        return entry.id

    def list_edit_history(self, visitor_id, *, limit, offset):
        entries = [h for h in reversed(self.history) if h.visitor_id == visitor_id]
        return entries[offset : offset + limit]

    def count_edit_history(self, visitor_id):
        return sum(1 for h in self.history if h.visitor_id == visitor_id)

    def soft_delete(self, visitor_id, *, deleted_by, deleted_at):
        self.rows[visitor_id] = replace(self.rows[visitor_id], deleted_at=deleted_at, deleted_by=deleted_by)
        return True

    def restore(self, visitor_id):
        self.rows[visitor_id] = replace(self.rows[visitor_id], deleted_at=None, deleted_by=None)
        return True

    def delete_permanently(self, visitor_id):
        return self.rows.pop(visitor_id, None) is not None

    def counts(self):
        deleted = sum(1 for v in self.rows.values() if v.is_deleted)
        return {"total": len(self.rows), "active": len(self.rows) - deleted, "deleted": deleted}

    def _live(self):
        return [v for v in self.rows.values() if not v.is_deleted]

    def count_checked_in_between(self, start, end):
        return sum(1 for v in self._live() if start <= v.check_in_time < end)

    def count_on_site(self):
        return sum(1 for v in self._live() if not v.is_checked_out)

    def counts_by_unit(self):
        counts: dict[str, int] = {}
        for v in self._live():
            counts[v.unit] = counts.get(v.unit, 0) + 1
        return [{"unit": u, "count": c} for u, c in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))]

    def daily_counts(self, since):
        counts: dict = {}
        for v in self._live():
            day = v.check_in_time.date()
            if day >= since:
                counts[day] = counts.get(day, 0) + 1
        return counts

    def top_purposes(self, *, limit):
        counts: dict[str, int] = {}
        for v in self._live():
            counts[v.purpose] = counts.get(v.purpose, 0) + 1
        ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]
        return [{"purpose": p, "count": c} for p, c in ordered]

    def recent(self, *, limit, since=None):
        items = [v for v in self._live() if since is None or v.check_in_time >= since]
        return sorted(items, key=lambda v: v.check_in_time, reverse=True)[:limit]


class FakeDeletionRepo:
    def __init__(self, visitors: FakeVisitorRepo):
        self._visitors = visitors
        self.rows: dict[int, DeletionRequest] = {}
        self._next_id = 1

    def create(self, *, visitor_id, requested_by, reason):
        rid = self._next_id
        self._next_id += 1
        self.rows[rid] = DeletionRequest(
            id=rid,
            visitor_id=visitor_id,
            requested_by=requested_by,
            reason=reason,
            status=DeletionRequestStatus.PENDING,
        )
        return rid

    def get_by_id(self, request_id):
        return self.rows.get(int(request_id))

    def list(self, *, status=None, requested_by=None):
        return [
            r
            for r in sorted(self.rows.values(), key=lambda r: r.id, reverse=True)
            if (status is None or r.status == status) and (requested_by is None or r.requested_by == requested_by)
        ]

    def get_pending_for_visitor(self, visitor_id):
        return next(
            (r for r in self.rows.values() if r.visitor_id == visitor_id and r.status == DeletionRequestStatus.PENDING),
            None,
        )

    def latest_for_visitor(self, visitor_id):
        found = [r for r in self.rows.values() if r.visitor_id == visitor_id]
        return max(found, key=lambda r: r.id) if found else None

    def latest_status_for_visitors(self, visitor_ids):
        out = {}
        for vid in visitor_ids:
            latest = self.latest_for_visitor(vid)
            if latest:
                out[vid] = latest.status.value
        return out

    def approve(self, request_id, *, approver_id, approved_at):
        req = self.rows[request_id]
        if req.status != DeletionRequestStatus.PENDING:
            return False
        self.rows[request_id] = replace(
            req, status=DeletionRequestStatus.APPROVED, approved_by=approver_id, approved_at=approved_at
        )
        self._visitors.soft_delete(req.visitor_id, deleted_by=approver_id, deleted_at=approved_at)
        return True

    def reject(self, request_id, *, approver_id, rejected_at, reason):
        req = self.rows[request_id]
        if req.status != DeletionRequestStatus.PENDING:
            return False
        self.rows[request_id] = replace(
            req,
            status=DeletionRequestStatus.REJECTED,
            rejected_by=approver_id,
            rejected_at=rejected_at,
            rejection_reason=reason,
        )
        return True

    def counts_by_status(self):
        counts = {s.value: 0 for s in DeletionRequestStatus}
        for r in self.rows.values():
            counts[r.status.value] += 1
        counts["total"] = sum(counts.values())
        return counts


class FakeEditRequestRepo:
    def __init__(self):
        self.rows: dict[int, EditRequest] = {}
        self._next_id = 1

    def create(self, *, visitor_id, requested_by, reason, original_data, proposed_data):
        rid = self._next_id
        self._next_id += 1
        self.rows[rid] = EditRequest(
            id=rid,
            visitor_id=visitor_id,
            requested_by=requested_by,
            reason=reason,
            status=EditRequestStatus.PENDING,
            original_data=original_data,
            proposed_data=proposed_data,
        )
        return rid

    def get_by_id(self, request_id):
        return self.rows.get(int(request_id))

    def list(self, *, status=None, requested_by=None):
        return [
            r
            for r in sorted(self.rows.values(), key=lambda r: r.id, reverse=True)
            if (status is None or r.status == status) and (requested_by is None or r.requested_by == requested_by)
        ]

    def get_pending_for_visitor(self, visitor_id):
        return next(
            (r for r in self.rows.values() if r.visitor_id == visitor_id and r.status == EditRequestStatus.PENDING),
            None,
        )

    def replace_pending(self, request_id, *, requested_by, reason, original_data, proposed_data):
        req = self.rows[request_id]
        if req.status != EditRequestStatus.PENDING:
            return False
        self.rows[request_id] = replace(
            req, requested_by=requested_by, reason=reason, original_data=original_data, proposed_data=proposed_data
        )
        return True

    def approve(self, request_id, *, approver_id, processed_at):
        req = self.rows[request_id]
        if req.status != EditRequestStatus.PENDING:
            return False
        self.rows[request_id] = replace(
            req, status=EditRequestStatus.APPROVED, processed_by=approver_id, processed_at=processed_at
        )
        return True

    def reject(self, request_id, *, approver_id, processed_at, reason):
        req = self.rows[request_id]
        if req.status != EditRequestStatus.PENDING:
            return False
        self.rows[request_id] = replace(
            req,
            status=EditRequestStatus.REJECTED,
            processed_by=approver_id,
            processed_at=processed_at,
            rejection_reason=reason,
        )
        return True

    def counts_by_status(self):
        counts = {s.value: 0 for s in EditRequestStatus}
        for r in self.rows.values():
            counts[r.status.value] += 1
        counts["total"] = sum(counts.values())
        return counts


class FakeFeedbackRepo:
    def __init__(self):
        self.rows: dict[int, Feedback] = {}

    def create(self, data):
        fid = len(self.rows) + 1
        self.rows[fid] = Feedback(id=fid, **data)
        return fid

    def get_by_id(self, feedback_id):
        return self.rows.get(int(feedback_id))

    def _filtered(self, rating, category):
        return [
            f
            for f in sorted(self.rows.values(), key=lambda f: f.id, reverse=True)
            if (rating is None or f.rating == rating) and (category is None or f.category == category)
        ]

    def list(self, *, rating=None, category=None, limit=50, offset=0):
        return self._filtered(rating, category)[offset : offset + limit]

    def count(self, *, rating=None, category=None):
        return len(self._filtered(rating, category))

    def update_status(self, feedback_id, status):
        self.rows[feedback_id] = replace(self.rows[feedback_id], status=status)
        return True

    def rating_summary(self):
        ratings = [f.rating for f in self.rows.values()]
        return {"total": len(ratings), "average": sum(ratings) / len(ratings) if ratings else None}

    def rating_distribution(self):
        counts: dict[int, int] = {}
        for f in self.rows.values():
            counts[f.rating] = counts.get(f.rating, 0) + 1
        return counts

    def category_distribution(self):
        counts: dict[str, int] = {}
        for f in self.rows.values():
            if f.category:
                counts[f.category] = counts.get(f.category, 0) + 1
        return counts


class FakeLostItemRepo:
    def __init__(self):
        self.rows: dict[int, LostItem] = {}
        self.returns: dict[int, ItemReturn] = {}
        self.history: dict[int, HistoryEntry] = {}
        self.created = datetime(2026, 10, 19, 8, 0)

    def create(self, data):
        item_id = len(self.rows) + 1
        self.rows[item_id] = LostItem(id=item_id, created_at=self.created, **data)
        return item_id

    def get_by_id(self, item_id):
        return self.rows.get(int(item_id))

    def _filtered(self, filters):
        return [
            i
            for i in sorted(self.rows.values(), key=lambda i: i.id, reverse=True)
            if (filters.status is None or i.status == filters.status)
            and (filters.category is None or i.category == filters.category)
        ]

    def list(self, filters):
        return self._filtered(filters)[filters.offset : filters.offset + filters.limit]

    def count(self, filters):
        return len(self._filtered(filters))

    def update(self, item_id, changes):
        self.rows[item_id] = replace(self.rows[item_id], **changes)
        return True

    def delete(self, item_id):
        self.returns.pop(item_id, None)
        return self.rows.pop(item_id, None) is not None

    def get_return(self, item_id):
        return self.returns.get(item_id)

    def record_return(self, item_id, *, return_data, history):
        item = self.rows[item_id]
        if item.status != LostItemStatus.FOUND:
            return False
        self.rows[item_id] = replace(item, status=LostItemStatus.RETURNED)
        self.returns[item_id] = ItemReturn(id=len(self.returns) + 1, lost_item_id=item_id, created_at=self.created, **return_data)
        self.add_history(item_id=item_id, **history)
        return True

    def update_return(self, return_id, changes, *, history):
        item_id = next((k for k, r in self.returns.items() if r.id == return_id), None)
        if item_id is None or not changes:
            return False
        self.returns[item_id] = replace(self.returns[item_id], **changes)
        self.add_history(item_id=item_id, **history)
        return True

    def add_history(self, *, item_id, action, old_data, new_data, changed_fields, user_id, user_name, notes=None):
        hid = len(self.history) + 1
        self.history[hid] = HistoryEntry(
            id=hid,
            lost_item_id=item_id,
            action_type=action,
            old_data=old_data,
            new_data=new_data,
            changed_fields=list(changed_fields),
            user_id=user_id,
            user_name=user_name,
            notes=notes,
            created_at=self.created + timedelta(minutes=hid),
        )
        return hid

    def list_history(self, item_id):
        return [h for h in sorted(self.history.values(), key=lambda h: h.id, reverse=True) if h.lost_item_id == item_id]

    def get_history(self, history_id):
        return self.history.get(history_id)

    def counts_by_status(self):
        counts: dict[str, int] = {}
        for i in self.rows.values():
            counts[i.status.value] = counts.get(i.status.value, 0) + 1
        return counts

    def count_created_since(self, since):
        return sum(1 for i in self.rows.values() if i.created_at >= since)

    def count_returns_since(self, since):
        return sum(1 for r in self.returns.values() if r.created_at >= since)


@pytest.fixture
def user_factory():
    return make_user


@pytest.fixture
def admin():
    return make_user(1, role=Role.ADMIN, name="Admin ULT")


@pytest.fixture
def manager():
    return make_user(2, role=Role.MANAGER, name="Manager ULT")


@pytest.fixture
def receptionist():
    return make_user(3, role=Role.RECEPTIONIST, name="Resepsionis")


@pytest.fixture
def users_repo(admin, manager, receptionist):
    return FakeUserRepo([admin, manager, receptionist])


@pytest.fixture
def visitors_repo():
    return FakeVisitorRepo()


@pytest.fixture
def deletions_repo(visitors_repo):
    return FakeDeletionRepo(visitors_repo)


@pytest.fixture
def edit_requests_repo():
    return FakeEditRequestRepo()


@pytest.fixture
def upload_root(tmp_path):
    return tmp_path / "uploads"


# Smallest valid PNG (1x1 transparent pixel).
PNG_DATA_URL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


@pytest.fixture
def png_data_url():
    return PNG_DATA_URL


@pytest.fixture
def feedback_repo():
    return FakeFeedbackRepo()


@pytest.fixture
def lost_items_repo():
    return FakeLostItemRepo()
