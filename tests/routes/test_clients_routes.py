"""
Tests for client endpoints.

Tests cover:
- Listing, retrieval and 404 for invisible or malformed ids
- Creation and request validation
- Ownership transfer
- Policy violations surfaced as 400
- Deal value and profitability reads
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from crm_backend.access import RowLevelSecurityError
from crm_backend.auth.dependencies import AuthenticatedUser, get_authenticated_user
from crm_backend.main import app
from crm_backend.valuation import ProfitabilitySummary

client = TestClient(app)

USER_ID = "11111111-1111-4111-8111-111111111111"
TEAMMATE_ID = "22222222-2222-4222-8222-222222222222"
CLIENT_ID = "5a1c9e2f-3b4d-4c6e-9f0a-1b2c3d4e5f60"


async def mock_get_authenticated_user_dependency():
    """Mock dependency that returns a test AuthenticatedUser."""
    return AuthenticatedUser(user_id=USER_ID, access_token="test-access-token")


@pytest.fixture
def mock_auth():
    """Override get_authenticated_user dependency."""
    app.dependency_overrides[get_authenticated_user] = mock_get_authenticated_user_dependency
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def mock_get_supabase_client():
    """Mock get_supabase_client to return a fake client."""
    with patch("crm_backend.routes.clients.get_supabase_client") as mock:
        mock.return_value = MagicMock()
        yield mock


@pytest.fixture
def mock_client_row():
    return {
        "id": CLIENT_ID,
        "company_name": "Acme Fleet",
        "contact_name": "Jane Doe",
        "email": "jane@acme.example",
        "stage": "proposal",
        "assigned_to": USER_ID,
        "number_of_cars": 3,
        "commitment_length": 12,
        "per_car_value": "335.00",
        "setup_fee": "96.00",
        "created_at": "2025-01-10T10:00:00Z",
        "updated_at": "2025-01-10T10:00:00Z",
    }


class TestListClients:
    """Tests for GET /clients"""

    @patch("crm_backend.routes.clients.get_clients")
    def test_list_clients_success(self, mock_get_clients, mock_auth, mock_get_supabase_client, mock_client_row):
        mock_get_clients.return_value = [mock_client_row]

        response = client.get("/clients?stage=proposal")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["clients"][0]["deal_value"] == 13212.0
        assert mock_get_clients.call_args.kwargs["stage"] == "proposal"
        assert mock_get_clients.call_args.kwargs["caller"].user_id == USER_ID

    @patch("crm_backend.routes.clients.get_clients")
    def test_list_clients_bad_stored_commitment_length(
        self, mock_get_clients, mock_auth, mock_get_supabase_client, mock_client_row
    ):
        mock_get_clients.return_value = [{**mock_client_row, "commitment_length": 18}]

        response = client.get("/clients")

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_request"

    def test_list_clients_unknown_stage(self, mock_auth, mock_get_supabase_client):
        response = client.get("/clients?stage=negotiating")

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_list_clients_requires_auth(self):
        response = client.get("/clients")

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "unauthorized"


class TestGetClient:
    """Tests for GET /clients/{client_id}"""

    @patch("crm_backend.routes.clients.get_client_by_id")
    def test_get_client_not_visible(self, mock_get, mock_auth, mock_get_supabase_client):
        mock_get.return_value = None

        response = client.get(f"/clients/{CLIENT_ID}")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "not_found"

    @patch("crm_backend.routes.clients.get_client_by_id")
    def test_get_client_database_failure(self, mock_get, mock_auth, mock_get_supabase_client):
        mock_get.side_effect = Exception("connection reset")

        response = client.get(f"/clients/{CLIENT_ID}")

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "fetch_error"


class TestCreateClient:
    """Tests for POST /clients"""

    @patch("crm_backend.routes.clients.create_client")
    def test_create_client_with_defaults(self, mock_create, mock_auth, mock_get_supabase_client, mock_client_row):
        mock_create.return_value = mock_client_row

        response = client.post("/clients", json={"company_name": "Acme Fleet"})

        assert response.status_code == 201
        assert response.json()["status"] == "CREATED"
        kwargs = mock_create.call_args.kwargs
        assert kwargs["commitment_length"] == 12
        assert kwargs["number_of_cars"] == 1
        assert "assigned_to" not in kwargs

    def test_create_client_rejects_commitment_length(self, mock_auth, mock_get_supabase_client):
        response = client.post(
            "/clients", json={"company_name": "Acme Fleet", "commitment_length": 18}
        )

        assert response.status_code == 422

    @patch("crm_backend.routes.clients.create_client")
    def test_create_client_policy_violation(self, mock_create, mock_auth, mock_get_supabase_client):
        mock_create.side_effect = RowLevelSecurityError("clients")

        response = client.post("/clients", json={"company_name": "Acme Fleet"})

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "policy_violation"
        assert 'table "clients"' in detail["details"]


class TestUpdateClient:
    """Tests for PATCH /clients/{client_id}"""

    def test_update_client_empty_body(self, mock_auth, mock_get_supabase_client):
        response = client.patch(f"/clients/{CLIENT_ID}", json={})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_request"

    @patch("crm_backend.routes.clients.update_client")
    def test_update_client_ignores_owner_field(self, mock_update, mock_auth, mock_get_supabase_client, mock_client_row):
        mock_update.return_value = {**mock_client_row, "stage": "closed"}

        response = client.patch(
            f"/clients/{CLIENT_ID}", json={"stage": "closed", "assigned_to": TEAMMATE_ID}
        )

        assert response.status_code == 200
        assert "assigned_to" not in mock_update.call_args.kwargs
        assert response.json()["client"]["assigned_to"] == USER_ID

    @patch("crm_backend.routes.clients.update_client")
    def test_update_client_not_visible(self, mock_update, mock_auth, mock_get_supabase_client):
        mock_update.return_value = None

        response = client.patch(f"/clients/{CLIENT_ID}", json={"stage": "lost"})

        assert response.status_code == 404


class TestTransferClient:
    """Tests for POST /clients/{client_id}/transfer"""

    @patch("crm_backend.routes.clients.transfer_client")
    def test_transfer_success(self, mock_transfer, mock_auth, mock_get_supabase_client, mock_client_row):
        mock_transfer.return_value = ({**mock_client_row, "assigned_to": TEAMMATE_ID}, USER_ID)

        response = client.post(
            f"/clients/{CLIENT_ID}/transfer", json={"new_owner_id": TEAMMATE_ID}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "TRANSFERRED"
        assert data["previous_owner_id"] == USER_ID
        assert data["client"]["assigned_to"] == TEAMMATE_ID

    @patch("crm_backend.routes.clients.transfer_client")
    def test_transfer_to_unknown_user(self, mock_transfer, mock_auth, mock_get_supabase_client):
        mock_transfer.side_effect = ValueError(f"Unknown user: {TEAMMATE_ID}")

        response = client.post(
            f"/clients/{CLIENT_ID}/transfer", json={"new_owner_id": TEAMMATE_ID}
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_request"


class TestValuationEndpoints:
    @patch("crm_backend.routes.clients.get_client_deal_value")
    def test_deal_value(self, mock_value, mock_auth, mock_get_supabase_client):
        mock_value.return_value = {
            "client_id": CLIENT_ID,
            "number_of_cars": 3,
            "commitment_length": 12,
            "per_car_value": "335.00",
            "setup_fee": "96.00",
            "deal_value": Decimal("13212.00"),
        }

        response = client.get(f"/clients/{CLIENT_ID}/deal-value")

        assert response.status_code == 200
        assert response.json()["deal_value"] == 13212.0

    @patch("crm_backend.routes.clients.get_client_profitability")
    def test_profitability(self, mock_profit, mock_auth, mock_get_supabase_client):
        mock_profit.return_value = ProfitabilitySummary(
            client_id=CLIENT_ID,
            total_revenue=Decimal("300.00"),
            total_expenses=Decimal("50.00"),
            net_profit=Decimal("250.00"),
            profit_margin=Decimal("83.33"),
            total_payments=2,
            total_expenses_count=1,
            last_payment_date=date(2025, 1, 25),
        )

        response = client.get(
            f"/clients/{CLIENT_ID}/profitability?start_date=2025-01-01&end_date=2025-01-31"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["profit_margin"] == 83.33
        assert data["last_payment_date"] == "2025-01-25"
        assert mock_profit.call_args.kwargs["start_date"] == date(2025, 1, 1)

    def test_profitability_requires_dates(self, mock_auth, mock_get_supabase_client):
        response = client.get(f"/clients/{CLIENT_ID}/profitability")

        assert response.status_code == 422

    @patch("crm_backend.routes.clients.get_pipeline_stats")
    def test_pipeline_stats(self, mock_stats, mock_auth, mock_get_supabase_client):
        mock_stats.return_value = {
            "total_clients": 2,
            "by_stage": {"prospect": 1, "closed": 1},
            "pipeline_value": Decimal("18384.00"),
            "closed_value": Decimal("13212.00"),
        }

        response = client.get("/clients/stats")

        assert response.status_code == 200
        assert response.json()["closed_value"] == 13212.0

    @patch("crm_backend.routes.clients.get_pipeline_stats")
    def test_pipeline_stats_bad_stored_commitment_length(self, mock_stats, mock_auth, mock_get_supabase_client):
        mock_stats.side_effect = ValueError("commitment_length must be one of (12, 24, 36), got 18")

        response = client.get("/clients/stats")

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_request"


class TestDatabaseErrors:
    @patch("crm_backend.routes.clients.create_client")
    def test_database_rls_rejection_is_policy_violation(self, mock_create, mock_auth, mock_get_supabase_client):
        mock_create.side_effect = APIError({
            "message": 'new row violates row-level security policy for table "clients"',
            "code": "42501",
            "hint": None,
            "details": None,
        })

        response = client.post("/clients", json={"company_name": "Acme Fleet"})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "policy_violation"

    @patch("crm_backend.routes.clients.update_client")
    def test_check_constraint_is_invalid_request(self, mock_update, mock_auth, mock_get_supabase_client):
        mock_update.side_effect = APIError({
            "message": "violates check constraint",
            "code": "23514",
            "hint": None,
            "details": None,
        })

        response = client.patch(f"/clients/{CLIENT_ID}", json={"stage": "lost"})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_request"

    @patch("crm_backend.routes.clients.delete_client")
    def test_other_database_errors_are_500(self, mock_delete, mock_auth, mock_get_supabase_client):
        mock_delete.side_effect = APIError({"message": "timeout", "code": "57014", "hint": None, "details": None})

        response = client.delete(f"/clients/{CLIENT_ID}")

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "delete_error"
