"""
Tests for calendar endpoints.

Another user's personal event answers 404 like a missing one; collective
events are team-visible.
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from crm_backend.access import RowLevelSecurityError
from crm_backend.auth.dependencies import AuthenticatedUser, get_authenticated_user
from crm_backend.main import app

client = TestClient(app)

USER_ID = "22222222-2222-4222-8222-222222222222"
OWNER_ID = "11111111-1111-4111-8111-111111111111"
EVENT_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"


async def mock_get_authenticated_user_dependency():
    return AuthenticatedUser(user_id=USER_ID, access_token="test-access-token")


@pytest.fixture
def mock_auth():
    app.dependency_overrides[get_authenticated_user] = mock_get_authenticated_user_dependency
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def mock_get_supabase_client():
    with patch("crm_backend.routes.calendar.get_supabase_client") as mock:
        mock.return_value = MagicMock()
        yield mock


@pytest.fixture
def collective_event():
    return {
        "id": EVENT_ID,
        "title": "Quarterly planning",
        "start_time": "2025-03-01T09:00:00+00:00",
        "end_time": "2025-03-01T11:00:00+00:00",
        "type": "meeting",
        "is_collective": True,
        "user_id": OWNER_ID,
        "created_by": OWNER_ID,
        "created_at": "2025-02-20T10:00:00+00:00",
    }


class TestListEvents:
    @patch("crm_backend.routes.calendar.get_calendar_events")
    def test_list_shared_events(self, mock_list, mock_auth, mock_get_supabase_client, collective_event):
        mock_list.return_value = [collective_event]

        response = client.get("/calendar/events?scope=shared")

        assert response.status_code == 200
        data = response.json()
        assert data["scope"] == "shared"
        assert data["events"][0]["is_collective"] is True
        assert mock_list.call_args.kwargs["scope"] == "shared"

    def test_unknown_scope(self, mock_auth, mock_get_supabase_client):
        response = client.get("/calendar/events?scope=everyone")

        assert response.status_code == 422

    def test_reversed_window(self, mock_auth, mock_get_supabase_client):
        response = client.get(
            "/calendar/events?start=2025-03-02T00:00:00Z&end=2025-03-01T00:00:00Z"
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_request"


class TestSingleEvent:
    @patch("crm_backend.routes.calendar.get_calendar_event_by_id")
    def test_other_users_personal_event_is_not_found(self, mock_get, mock_auth, mock_get_supabase_client):
        mock_get.return_value = None

        response = client.get(f"/calendar/events/{EVENT_ID}")

        assert response.status_code == 404

    @patch("crm_backend.routes.calendar.update_calendar_event")
    def test_update_policy_violation(self, mock_update, mock_auth, mock_get_supabase_client):
        mock_update.side_effect = RowLevelSecurityError("calendar_events")

        response = client.patch(f"/calendar/events/{EVENT_ID}", json={"is_collective": False})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "policy_violation"

    @patch("crm_backend.routes.calendar.create_calendar_event")
    def test_create_event(self, mock_create, mock_auth, mock_get_supabase_client, collective_event):
        mock_create.return_value = collective_event

        response = client.post("/calendar/events", json={
            "title": "Quarterly planning",
            "start_time": "2025-03-01T09:00:00Z",
            "end_time": "2025-03-01T11:00:00Z",
            "is_collective": True,
        })

        assert response.status_code == 201
        assert response.json()["event"]["id"] == EVENT_ID
        assert "user_id" not in mock_create.call_args.kwargs

    @patch("crm_backend.routes.calendar.delete_calendar_event")
    def test_delete_invisible_event(self, mock_delete, mock_auth, mock_get_supabase_client):
        mock_delete.return_value = False

        response = client.delete(f"/calendar/events/{EVENT_ID}")

        assert response.status_code == 404
