"""Tests for the user settings service."""

from unittest.mock import MagicMock

import pytest

from crm_backend.services.settings_service import get_user_settings, update_user_settings

USER_A = "11111111-1111-4111-8111-111111111111"


class TestGetUserSettings:
    @pytest.mark.asyncio
    async def test_defaults_when_no_row(self, supabase_client, caller_a):
        settings = await get_user_settings(supabase_client, caller_a)

        assert settings["is_default"] is True
        assert settings["timezone"] == "America/New_York"
        assert settings["currency"] == "USD"
        assert settings["user_id"] == USER_A

    @pytest.mark.asyncio
    async def test_stored_row(self, supabase_client, caller_a):
        row = {"user_id": USER_A, "timezone": "Europe/Madrid", "currency": "EUR",
               "date_format": "dd/MM/yyyy", "time_format": "24h"}
        supabase_client.table("user_settings").execute.return_value = MagicMock(data=[row])

        settings = await get_user_settings(supabase_client, caller_a)

        assert settings["currency"] == "EUR"
        assert settings["is_default"] is False

    @pytest.mark.asyncio
    async def test_anonymous_gets_defaults_without_query(self, supabase_client, anonymous):
        settings = await get_user_settings(supabase_client, anonymous)

        assert settings["is_default"] is True
        supabase_client.table.assert_not_called()


class TestUpdateUserSettings:
    @pytest.mark.asyncio
    async def test_first_update_inserts_defaults_plus_changes(self, supabase_client, caller_a):
        table = supabase_client.table("user_settings")
        table.execute.side_effect = [
            MagicMock(data=[]),
            MagicMock(data=[{"user_id": USER_A, "currency": "GBP"}]),
        ]

        result = await update_user_settings(supabase_client, caller_a, currency="GBP")

        inserted = table.insert.call_args[0][0]
        assert inserted["currency"] == "GBP"
        assert inserted["time_format"] == "12h"
        assert inserted["user_id"] == USER_A
        assert result["is_default"] is False

    @pytest.mark.asyncio
    async def test_unsupported_currency_raises(self, supabase_client, caller_a):
        with pytest.raises(ValueError, match="currency"):
            await update_user_settings(supabase_client, caller_a, currency="BTC")
