"""
Tests for the client service.

Tests cover default ownership, explicit transfer, the assigned_to update
guard, malformed ids and profitability queries.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from crm_backend.access import CallerIdentity
from crm_backend.services.client_service import (
    create_client,
    get_client_by_id,
    get_client_deal_value,
    get_client_profitability,
    get_clients,
    transfer_client,
    update_client,
)

OWNER = "11111111-1111-4111-8111-111111111111"
TEAMMATE = "22222222-2222-4222-8222-222222222222"
CLIENT_ID = "5a1c9e2f-3b4d-4c6e-9f0a-1b2c3d4e5f60"


def _client_row(**overrides):
    row = {
        "id": CLIENT_ID,
        "company_name": "Acme Fleet",
        "stage": "prospect",
        "assigned_to": OWNER,
        "number_of_cars": 3,
        "commitment_length": 12,
        "per_car_value": "335.00",
        "setup_fee": "96.00",
    }
    row.update(overrides)
    return row


class TestCreateClient:
    @pytest.mark.asyncio
    async def test_defaults_owner_to_caller(self, supabase_client, caller_a):
        clients = supabase_client.table("clients")
        clients.execute.return_value = MagicMock(data=[_client_row()])

        await create_client(supabase_client, caller_a, company_name="Acme Fleet")

        inserted = clients.insert.call_args[0][0]
        assert inserted["assigned_to"] == OWNER
        assert inserted["company_name"] == "Acme Fleet"

    @pytest.mark.asyncio
    async def test_placeholder_owner_is_stored_as_null(self, supabase_client, caller_a):
        clients = supabase_client.table("clients")
        clients.execute.return_value = MagicMock(data=[_client_row(assigned_to=None)])

        await create_client(supabase_client, caller_a, company_name="Acme", assigned_to="1")

        assert clients.insert.call_args[0][0]["assigned_to"] is None

    @pytest.mark.asyncio
    async def test_invalid_commitment_length_never_reaches_database(self, supabase_client, caller_a):
        with pytest.raises(ValueError, match="commitment_length"):
            await create_client(supabase_client, caller_a, company_name="Acme", commitment_length=18)

        supabase_client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_data_returned_raises(self, supabase_client, caller_a):
        with pytest.raises(Exception, match="Failed to create client"):
            await create_client(supabase_client, caller_a, company_name="Acme")


class TestReadClients:
    @pytest.mark.asyncio
    async def test_shared_clients_visible_to_teammate(self, supabase_client, caller_b):
        supabase_client.table("clients").execute.return_value = MagicMock(data=[_client_row()])

        clients = await get_clients(supabase_client, caller_b)

        assert [c["id"] for c in clients] == [CLIENT_ID]

    @pytest.mark.asyncio
    async def test_anonymous_sees_nothing(self, supabase_client, anonymous):
        supabase_client.table("clients").execute.return_value = MagicMock(data=[_client_row()])

        assert await get_clients(supabase_client, anonymous) == []

    @pytest.mark.asyncio
    async def test_placeholder_owner_filter_matches_nothing(self, supabase_client, caller_a):
        assert await get_clients(supabase_client, caller_a, assigned_to="1") == []
        supabase_client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_malformed_id_is_not_found(self, supabase_client, caller_a):
        assert await get_client_by_id(supabase_client, caller_a, "not-a-uuid") is None

    @pytest.mark.asyncio
    async def test_deal_value(self, supabase_client, caller_a):
        supabase_client.table("clients").execute.return_value = MagicMock(data=[_client_row()])

        result = await get_client_deal_value(supabase_client, caller_a, CLIENT_ID)

        assert result["deal_value"] == Decimal("13212.00")


class TestUpdateAndTransfer:
    @pytest.mark.asyncio
    async def test_update_rejects_assigned_to(self, supabase_client, caller_a):
        with pytest.raises(ValueError, match="transfer"):
            await update_client(supabase_client, caller_a, CLIENT_ID, assigned_to=TEAMMATE)

    @pytest.mark.asyncio
    async def test_update_sends_only_changed_fields(self, supabase_client, caller_b):
        clients = supabase_client.table("clients")
        clients.execute.side_effect = [
            MagicMock(data=[_client_row()]),
            MagicMock(data=[_client_row(stage="meeting")]),
        ]

        updated = await update_client(supabase_client, caller_b, CLIENT_ID, stage="meeting")

        assert updated["stage"] == "meeting"
        clients.update.assert_called_once_with({"stage": "meeting"})

    @pytest.mark.asyncio
    async def test_transfer_reassigns_and_reports_previous_owner(self, supabase_client, caller_a):
        supabase_client.table("users").execute.return_value = MagicMock(data=[{"id": TEAMMATE}])
        clients = supabase_client.table("clients")
        clients.execute.side_effect = [
            MagicMock(data=[_client_row()]),
            MagicMock(data=[_client_row(assigned_to=TEAMMATE)]),
        ]

        updated, previous = await transfer_client(supabase_client, caller_a, CLIENT_ID, TEAMMATE)

        assert previous == OWNER
        assert updated["assigned_to"] == TEAMMATE
        clients.update.assert_called_once_with({"assigned_to": TEAMMATE})

    @pytest.mark.asyncio
    async def test_transfer_to_unknown_user_raises(self, supabase_client, caller_a):
        with pytest.raises(ValueError, match="Unknown user"):
            await transfer_client(supabase_client, caller_a, CLIENT_ID, TEAMMATE)

        supabase_client.table("clients").update.assert_not_called()

    @pytest.mark.asyncio
    async def test_transfer_to_placeholder_id_raises(self, supabase_client, caller_a):
        with pytest.raises(ValueError):
            await transfer_client(supabase_client, caller_a, CLIENT_ID, "1")

    @pytest.mark.asyncio
    async def test_transfer_of_missing_client_returns_none(self, supabase_client, caller_a):
        supabase_client.table("users").execute.return_value = MagicMock(data=[{"id": TEAMMATE}])

        assert await transfer_client(supabase_client, caller_a, CLIENT_ID, TEAMMATE) is None


class TestProfitability:
    @pytest.mark.asyncio
    async def test_summary_from_payments_and_expenses(self, supabase_client, caller_a):
        supabase_client.table("clients").execute.return_value = MagicMock(data=[_client_row()])
        payments = supabase_client.table("payments")
        payments.execute.return_value = MagicMock(data=[
            {"amount": "100.00", "status": "completed", "payment_date": "2025-01-05"},
            {"amount": "200.00", "status": "completed", "payment_date": "2025-01-25"},
        ])
        supabase_client.table("expenses").execute.return_value = MagicMock(data=[
            {"amount": "50.00", "status": "approved", "expense_date": "2025-01-10"},
        ])

        summary = await get_client_profitability(
            supabase_client, caller_a, CLIENT_ID, date(2025, 1, 1), date(2025, 1, 31)
        )

        assert summary.profit_margin == Decimal("83.33")
        assert summary.net_profit == Decimal("250.00")
        payments.gte.assert_called_once_with("payment_date", "2025-01-01")
        payments.lte.assert_called_once_with("payment_date", "2025-01-31")

    @pytest.mark.asyncio
    async def test_reversed_range_skips_queries(self, supabase_client, caller_a):
        supabase_client.table("clients").execute.return_value = MagicMock(data=[_client_row()])

        summary = await get_client_profitability(
            supabase_client, caller_a, CLIENT_ID, date(2025, 2, 1), date(2025, 1, 1)
        )

        assert summary.total_revenue == Decimal("0.00")
        assert "payments" not in supabase_client.tables
        assert "expenses" not in supabase_client.tables
