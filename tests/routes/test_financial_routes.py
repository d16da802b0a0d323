"""
Tests for payment and expense endpoints.

Tests cover:
- Recording payments (201) and unknown clients (400)
- Status transitions rejected as invalid_request
- 404 for invisible or missing rows
- Expense listing filters
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from crm_backend.auth.dependencies import AuthenticatedUser, get_authenticated_user
from crm_backend.main import app

client = TestClient(app)

USER_ID = "11111111-1111-4111-8111-111111111111"
CLIENT_ID = "5a1c9e2f-3b4d-4c6e-9f0a-1b2c3d4e5f60"
PAYMENT_ID = "7c3e5a9b-1d2f-4e6a-8b0c-2d4f6a8c0e1b"
EXPENSE_ID = "3e5a7c9b-2d4f-4a6c-9e0b-4f6a8c0e2d1b"


async def mock_get_authenticated_user_dependency():
    return AuthenticatedUser(user_id=USER_ID, access_token="test-access-token")


@pytest.fixture
def mock_auth():
    app.dependency_overrides[get_authenticated_user] = mock_get_authenticated_user_dependency
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def mock_get_supabase_client():
    with patch("crm_backend.routes.payments.get_supabase_client") as payments_mock, \
            patch("crm_backend.routes.expenses.get_supabase_client") as expenses_mock:
        payments_mock.return_value = MagicMock()
        expenses_mock.return_value = MagicMock()
        yield payments_mock


@pytest.fixture
def mock_payment_row():
    return {
        "id": PAYMENT_ID,
        "client_id": CLIENT_ID,
        "payment_type": "received",
        "amount": "500.00",
        "currency": "USD",
        "payment_method": "bank_transfer",
        "payment_date": "2025-01-15",
        "status": "pending",
        "created_by": USER_ID,
        "created_at": "2025-01-15T10:00:00Z",
        "updated_at": "2025-01-15T10:00:00Z",
    }


class TestPayments:
    @patch("crm_backend.routes.payments.create_payment")
    def test_record_payment(self, mock_create, mock_auth, mock_get_supabase_client, mock_payment_row):
        mock_create.return_value = mock_payment_row

        response = client.post("/payments", json={
            "client_id": CLIENT_ID,
            "amount": 500,
            "payment_date": "2025-01-15",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "CREATED"
        assert data["payment"]["amount"] == 500.0
        assert data["payment"]["payment_type"] == "received"
        assert mock_create.call_args.kwargs["client_id"] == CLIENT_ID

    @patch("crm_backend.routes.payments.create_payment")
    def test_record_payment_unknown_client(self, mock_create, mock_auth, mock_get_supabase_client):
        mock_create.side_effect = ValueError("Unknown client: 1")

        response = client.post("/payments", json={
            "client_id": "1",
            "amount": 10,
            "payment_date": "2025-01-15",
        })

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_request"

    def test_record_payment_rejects_non_positive_amount(self, mock_auth, mock_get_supabase_client):
        response = client.post("/payments", json={
            "client_id": CLIENT_ID,
            "amount": 0,
            "payment_date": "2025-01-15",
        })

        assert response.status_code == 422

    @patch("crm_backend.routes.payments.update_payment")
    def test_reopen_completed_payment(self, mock_update, mock_auth, mock_get_supabase_client):
        mock_update.side_effect = ValueError("Payment status cannot change from completed to pending")

        response = client.patch(f"/payments/{PAYMENT_ID}", json={"status": "pending"})

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "invalid_request"
        assert "completed to pending" in detail["details"]

    @patch("crm_backend.routes.payments.update_payment")
    def test_complete_payment(self, mock_update, mock_auth, mock_get_supabase_client, mock_payment_row):
        mock_update.return_value = {**mock_payment_row, "status": "completed"}

        response = client.patch(f"/payments/{PAYMENT_ID}", json={"status": "completed"})

        assert response.status_code == 200
        assert response.json()["payment"]["status"] == "completed"
        assert mock_update.call_args.kwargs["status"] == "completed"

    def test_empty_update(self, mock_auth, mock_get_supabase_client):
        response = client.patch(f"/payments/{PAYMENT_ID}", json={})

        assert response.status_code == 400

    @patch("crm_backend.routes.payments.get_payment_by_id")
    def test_get_missing_payment(self, mock_get, mock_auth, mock_get_supabase_client):
        mock_get.return_value = None

        response = client.get(f"/payments/{PAYMENT_ID}")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "not_found"

    @patch("crm_backend.routes.payments.delete_payment")
    def test_delete_missing_payment(self, mock_delete, mock_auth, mock_get_supabase_client):
        mock_delete.return_value = False

        response = client.delete(f"/payments/{PAYMENT_ID}")

        assert response.status_code == 404


class TestExpenses:
    @patch("crm_backend.routes.expenses.get_expenses")
    def test_list_expenses_with_filters(self, mock_get, mock_auth, mock_get_supabase_client):
        mock_get.return_value = [{
            "id": EXPENSE_ID,
            "client_id": CLIENT_ID,
            "expense_category": "travel",
            "amount": "120.50",
            "expense_date": "2025-01-20",
            "status": "approved",
        }]

        response = client.get(f"/expenses?client_id={CLIENT_ID}&status=approved&expense_category=travel")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["expenses"][0]["amount"] == 120.5
        kwargs = mock_get.call_args.kwargs
        assert kwargs["status"] == "approved"
        assert kwargs["expense_category"] == "travel"

    def test_list_expenses_unknown_status(self, mock_auth, mock_get_supabase_client):
        response = client.get("/expenses?status=paid")

        assert response.status_code == 422

    @patch("crm_backend.routes.expenses.update_expense")
    def test_reject_approved_expense(self, mock_update, mock_auth, mock_get_supabase_client):
        mock_update.side_effect = ValueError("Expense status cannot change from approved to rejected")

        response = client.patch(f"/expenses/{EXPENSE_ID}", json={"status": "rejected"})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_request"
