from __future__ import annotations

from pathlib import Path

import mysql.connector
import pytest

from src.visitor_management.visitor_management.auth.service import AuthService
from src.visitor_management.visitor_management.auth.tokens import TokenService
from src.visitor_management.visitor_management.complaints.service import ComplaintService
from src.visitor_management.visitor_management.configurations.service import ConfigurationService
from src.visitor_management.visitor_management.container import Container
from src.visitor_management.visitor_management.dashboard.service import DashboardService
from src.visitor_management.visitor_management.deletion_requests.service import DeletionRequestService
from src.visitor_management.visitor_management.edit_requests.service import EditRequestService
from src.visitor_management.visitor_management.feedback.service import FeedbackService
from src.visitor_management.visitor_management.health.service import HealthService
from src.visitor_management.visitor_management.lost_items.service import LostItemService
from src.visitor_management.visitor_management.main import create_app
from src.visitor_management.visitor_management.reports.service import ReportService
from src.visitor_management.visitor_management.users.service import UserService
from src.visitor_management.visitor_management.visitors.service import VisitorService


class StubHealth(HealthService):
    def __init__(self, error=None):
        super().__init__(None)
        self.error = error

    def check_database(self):
        if self.error:
            raise self.error
        return {"connected": True, "usersTable": True, "userCount": 3}


@pytest.fixture
def health():
    return StubHealth()


@pytest.fixture
def app(
    monkeypatch,
    users_repo,
    visitors_repo,
    deletions_repo,
    edit_requests_repo,
    feedback_repo,
    lost_items_repo,
    upload_root,
    health,
):
    monkeypatch.setenv("APP_ENV", "testing")
    lost_items = LostItemService(lost_items_repo, upload_root=upload_root)
    visitors = VisitorService(visitors_repo, deletions_repo, upload_root=upload_root)
    container = Container(
        conn=None,
        upload_root=Path(upload_root),
        users_repo=users_repo,
        visitors_repo=visitors_repo,
        deletion_requests_repo=deletions_repo,
        edit_requests_repo=edit_requests_repo,
        configurations_repo=None,
        complaints_repo=None,
        complaint_fields_repo=None,
        feedback_repo=feedback_repo,
        lost_items_repo=lost_items_repo,
        auth_service=AuthService(users_repo, TokenService("test-secret")),
        user_service=UserService(users_repo, upload_root=upload_root),
        visitor_service=visitors,
        deletion_request_service=DeletionRequestService(deletions_repo, visitors_repo),
        edit_request_service=EditRequestService(edit_requests_repo, visitors),
        configuration_service=ConfigurationService(None),
        complaint_service=ComplaintService(None, None, upload_root=upload_root),
        feedback_service=FeedbackService(feedback_repo, visitors_repo),
        lost_item_service=lost_items,
        dashboard_service=DashboardService(visitors_repo, feedback_repo, None, lost_items),
        report_service=ReportService(visitors_repo),
        health_service=health,
    )
    return create_app(container=container)


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, user_id: int) -> dict:
    resp = client.post("/api/auth/login", json={"email": f"user{user_id}@example.com", "password": "secret123"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.get_json()['data']['token']}"}


def test_ping_is_public(client):
    resp = client.get("/api/ping")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["message"] == "pong"


def test_health_reports_environment(client):
    body = client.get("/api/health").get_json()

    assert body["status"] == "healthy"
    assert body["environment"] == "testing"
    assert body["secretKeyConfigured"] is True


def test_health_when_database_is_down(client, health):
    health.error = mysql.connector.Error("Can't connect to MySQL server")

    resp = client.get("/api/health")

    assert resp.status_code == 500
    assert resp.get_json()["status"] == "unhealthy"
    assert resp.get_json()["database"]["connected"] is False


def test_login_hides_password_hash(client):
    resp = client.post("/api/auth/login", json={"email": "user1@example.com", "password": "secret123"})

    user = resp.get_json()["data"]["user"]
    assert user["role"] == "Admin"
    assert "password_hash" not in user


def test_bad_login_is_401(client):
    resp = client.post("/api/auth/login", json={"email": "user1@example.com", "password": "wrong"})

    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_protected_route_needs_token(client):
    resp = client.get("/api/visitors")

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "NO_TOKEN"


def test_admin_route_rejects_receptionist(client):
    resp = client.get("/api/users", headers=login(client, 3))

    assert resp.status_code == 403
    assert resp.get_json() == {"success": False, "message": "Insufficient permissions"}


def test_check_in_round_trip(client):
    headers = login(client, 3)

    created = client.post(
        "/api/visitors/check-in",
        headers=headers,
        json={
            "full_name": "Budi Santoso",
            "phone_number": "081234567890",
            "institution": "Universitas Indonesia",
            "purpose": "Meeting",
            "unit": "Dekanat",
        },
    )
    listed = client.get("/api/visitors?limit=10", headers=headers).get_json()

    assert created.status_code == 201
    assert created.get_json()["data"]["input_by_name"] == "Resepsionis"
    assert listed["pagination"]["total"] == 1
    assert listed["data"][0]["full_name"] == "Budi Santoso"


def test_validation_error_envelope(client):
    resp = client.post("/api/visitors/check-in", headers=login(client, 3), json={"full_name": "B"})

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Full name must be at least 2 characters"


def test_non_object_body_is_rejected(client):
    resp = client.post("/api/feedback", json=["nope"])

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Request body must be a JSON object"


def test_public_feedback(client):
    resp = client.post("/api/feedback", json={"visitor_name": "Rina", "rating": 5, "category": "Kebersihan"})

    assert resp.status_code == 201
    assert resp.get_json()["data"]["status"] == "new"


def test_unknown_route_uses_envelope(client):
    resp = client.get("/api/does-not-exist")

    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_cors_headers_for_allowed_origin(client):
    resp = client.get("/api/ping", headers={"Origin": "http://localhost:5173"})
    other = client.get("/api/ping", headers={"Origin": "http://evil.example"})

    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
    assert "Access-Control-Allow-Origin" not in other.headers


def test_uploads_are_served(client, upload_root):
    (upload_root / "photos").mkdir(parents=True)
    (upload_root / "photos" / "a.txt").write_text("hello")

    resp = client.get("/uploads/photos/a.txt")

    assert resp.status_code == 200
    assert resp.data == b"hello"


def test_cors_preflight_allows_credentials(client):
    resp = client.options(
        "/api/visitors",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Authorization, Content-Type",
        },
    )

    assert resp.status_code == 200
    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
    assert resp.headers["Access-Control-Allow-Credentials"] == "true"


def test_oversized_body_is_413(client):
    resp = client.post("/api/auth/login", json={"email": "x" * (2 * 1024 * 1024), "password": "secret123"})

    assert resp.status_code == 413
    assert resp.get_json()["success"] is False


def test_public_feedback_feed(client):
    client.post("/api/feedback", json={"visitor_name": "Rina Wijaya", "rating": 5})

    resp = client.get("/api/feedback/public")

    assert resp.status_code == 200
    assert [f["visitor_name"] for f in resp.get_json()["data"]] == ["Rina"]


def test_edit_request_flow(client, visitors_repo, receptionist):
    visitor = visitors_repo.add(input_by_user_id=receptionist.id)
    payload = {"visitor_id": visitor.id, "reason": "typo in the visitor name", "edit_data": {"full_name": "Budi Santosa"}}

    created = client.post("/api/edit-requests", headers=login(client, 3), json=payload)
    request_id = created.get_json()["data"]["id"]
    denied = client.patch(f"/api/edit-requests/{request_id}/approve", headers=login(client, 3))
    approved = client.patch(f"/api/edit-requests/{request_id}/approve", headers=login(client, 2))

    assert created.status_code == 201
    assert created.get_json()["data"]["proposed_data"] == {"full_name": "Budi Santosa"}
    assert denied.status_code == 403
    assert approved.status_code == 200
    assert approved.get_json()["data"]["status"] == "approved"
    assert visitors_repo.get_by_id(visitor.id).full_name == "Budi Santosa"


def test_admin_resets_password(client, users_repo):
    resp = client.put("/api/users/3/password", headers=login(client, 1), json={"password": "  fresh pass  "})
    relogin = client.post("/api/auth/login", json={"email": "user3@example.com", "password": "  fresh pass  "})

    assert resp.status_code == 200
    assert relogin.status_code == 200


def test_lost_item_return_can_be_corrected(client):
    headers = login(client, 3)
    item = client.post(
        "/api/lost-items",
        headers=headers,
        json={"item_name": "Payung", "found_location": "Lobi", "found_date": "2026-10-18", "found_time": "08:00"},
    ).get_json()["data"]
    client.post(f"/api/lost-items/{item['id']}/return", headers=headers, json={"claimer_name": "Andi"})

    resp = client.put(f"/api/lost-items/{item['id']}/return", headers=headers, json={"claimer_contact": "0812345678"})

    assert resp.status_code == 200
    assert resp.get_json()["data"]["return_record"]["claimer_contact"] == "0812345678"
