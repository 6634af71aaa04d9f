"""
Route tests: authentication, request shaping and the mapping of service
results to HTTP status codes. Services are patched; no database is touched.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from leaguehub.api.main import app
from leaguehub.database.db import get_db_session
from leaguehub.services import (
    invitation_service,
    league_service,
    limits_service,
    member_service,
    moderation_service,
    notification_service,
    user_service,
)
from leaguehub.services.result import ServiceResult

USERS = {
    "u-1": SimpleNamespace(id="u-1", name="Test User", username="tester", is_admin=False),
    "admin-1": SimpleNamespace(id="admin-1", name="Admin", username="admin", is_admin=True),
}


@pytest.fixture
def client(monkeypatch):
    async def fake_session():
        yield AsyncMock()

    async def fake_get_user_by_id(session, user_id):
        return USERS.get(user_id)

    monkeypatch.setattr(user_service, "get_user_by_id", fake_get_user_by_id, raising=True)
    app.dependency_overrides[get_db_session] = fake_session
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user_id="u-1"):
    return {"X-User-Id": user_id}


def patch_service(monkeypatch, module, name, result):
    mock = AsyncMock(return_value=result)
    monkeypatch.setattr(module, name, mock, raising=True)
    return mock


# ──────────────────────────────────────────────────────────────
# Authentication
# ──────────────────────────────────────────────────────────────


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_identity_header(client):
    response = client.get("/api/notifications")
    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"


def test_unknown_user(client):
    response = client.get("/api/notifications", headers=auth("ghost"))
    assert response.status_code == 401
    assert response.json()["detail"] == "User not found"


# ──────────────────────────────────────────────────────────────
# Result mapping
# ──────────────────────────────────────────────────────────────


def test_success_wraps_data(client, monkeypatch):
    items = [{"id": "invitation_1", "type": "league_invitation"}]
    mock = patch_service(monkeypatch, notification_service, "get_notifications", ServiceResult.success(items))

    response = client.get("/api/notifications", headers=auth())
    assert response.status_code == 200
    assert response.json() == {"data": items}
    assert mock.await_args.args[1] == "u-1"


def test_field_errors_map_to_422(client, monkeypatch):
    patch_service(
        monkeypatch,
        league_service,
        "create_league",
        ServiceResult.failure("Validation failed", {"name": "String should have at least 1 character"}),
    )
    response = client.post("/api/leagues", json={"name": ""}, headers=auth())
    assert response.status_code == 422
    assert response.json() == {
        "error": "Validation failed",
        "field_errors": {"name": "String should have at least 1 character"},
    }


def test_not_found_maps_to_404(client, monkeypatch):
    patch_service(
        monkeypatch, invitation_service, "accept_invitation", ServiceResult.failure("Invitation not found")
    )
    response = client.post("/api/invitations/inv-9/accept", headers=auth())
    assert response.status_code == 404
    assert response.json() == {"error": "Invitation not found"}


def test_other_failures_map_to_400(client, monkeypatch):
    patch_service(
        monkeypatch,
        league_service,
        "join_public_league",
        ServiceResult.failure("This league is private and requires an invitation"),
    )
    response = client.post("/api/leagues/lg-1/join", headers=auth())
    assert response.status_code == 400
    assert response.json()["error"] == "This league is private and requires an invitation"


def test_unexpected_errors_map_to_500(client, monkeypatch):
    monkeypatch.setattr(
        league_service, "create_league", AsyncMock(side_effect=RuntimeError("db down")), raising=True
    )
    response = client.post("/api/leagues", json={"name": "Darts"}, headers=auth())
    assert response.status_code == 500
    assert response.json()["detail"] == "Error creating league"


# ──────────────────────────────────────────────────────────────
# Request shaping
# ──────────────────────────────────────────────────────────────


def test_path_params_are_merged_into_payload(client, monkeypatch):
    mock = patch_service(
        monkeypatch, member_service, "update_member_role", ServiceResult.success({"updated": True})
    )
    response = client.put(
        "/api/leagues/lg-1/members/u-2/role", json={"role": "manager"}, headers=auth()
    )
    assert response.status_code == 200
    session, league_id, payload, user_id = mock.await_args.args
    assert league_id == "lg-1"
    assert payload == {"role": "manager", "target_user_id": "u-2"}
    assert user_id == "u-1"


def test_moderation_action_uses_report_from_path(client, monkeypatch):
    mock = patch_service(
        monkeypatch,
        moderation_service,
        "take_moderation_action",
        ServiceResult.success({"action_taken": True, "action_id": "act-1"}),
    )
    response = client.post(
        "/api/reports/rep-1/action",
        json={"action": "dismissed", "reason": "Not a violation", "report_id": "other"},
        headers=auth(),
    )
    assert response.status_code == 200
    assert mock.await_args.args[2]["report_id"] == "rep-1"


def test_invite_link_body_is_optional(client, monkeypatch):
    mock = patch_service(
        monkeypatch,
        invitation_service,
        "generate_invite_link",
        ServiceResult.success({"token": "tok", "invite_url": "https://leaguehub.app/invite/tok"}),
    )
    response = client.post("/api/leagues/lg-1/invite-links", headers=auth())
    assert response.status_code == 200
    assert mock.await_args.args[2] == {"league_id": "lg-1"}


def test_invite_preview_is_public(client, monkeypatch):
    preview = {"league": {"id": "lg-1", "name": "Chess"}, "role": "member", "is_valid": True, "reason": None}
    patch_service(monkeypatch, invitation_service, "get_invite_link_details", ServiceResult.success(preview))
    response = client.get("/api/invite/tok")
    assert response.status_code == 200
    assert response.json()["data"]["is_valid"] is True


def test_invite_join_requires_auth_and_passes_token(client, monkeypatch):
    mock = patch_service(
        monkeypatch,
        invitation_service,
        "join_via_invite_link",
        ServiceResult.success({"joined": True, "league_id": "lg-1"}),
    )
    assert client.post("/api/invite/tok/join").status_code == 401

    response = client.post("/api/invite/tok/join", headers=auth())
    assert response.status_code == 200
    assert mock.await_args.args[1:] == ("tok", "u-1")


def test_exhausted_invite_link_is_a_400(client, monkeypatch):
    patch_service(
        monkeypatch,
        invitation_service,
        "join_via_invite_link",
        ServiceResult.failure(invitation_service.LINK_EXHAUSTED),
    )
    response = client.post("/api/invite/tok/join", headers=auth())
    assert response.status_code == 400
    assert response.json()["error"] == "This invite link has reached its maximum uses"


def test_search_route_is_not_shadowed_by_league_id(client, monkeypatch):
    mock = patch_service(monkeypatch, league_service, "search_public_leagues", ServiceResult.success([]))
    response = client.get("/api/leagues/search?query=chess", headers=auth())
    assert response.status_code == 200
    assert mock.await_args.args[1:] == ("chess", "u-1")


# ──────────────────────────────────────────────────────────────
# Admin
# ──────────────────────────────────────────────────────────────


def test_admin_routes_reject_regular_users(client):
    response = client.get("/api/admin/limit-overrides", headers=auth())
    assert response.status_code == 403
    response = client.post(
        "/api/users", json={"name": "New", "username": "new", "email": "n@example.com"}, headers=auth()
    )
    assert response.status_code == 403


def test_admin_sets_override(client, monkeypatch):
    override = {"id": "ov-1", "limit_type": "max_leagues_per_user", "user_id": "u-1", "limit_value": None}
    mock = patch_service(monkeypatch, limits_service, "set_limit_override", ServiceResult.success(override))
    response = client.put(
        "/api/admin/limit-overrides",
        json={"limit_type": "max_leagues_per_user", "user_id": "u-1", "limit_value": None},
        headers=auth("admin-1"),
    )
    assert response.status_code == 200
    assert response.json()["data"]["limit_value"] is None
    assert mock.await_args.args[1] == "admin-1"
