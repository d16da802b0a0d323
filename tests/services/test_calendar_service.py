"""
Tests for the calendar event service.

Personal events are visible only to user_id; collective events to the whole
team.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, call

import pytest

from crm_backend.access import RowLevelSecurityError
from crm_backend.services.calendar_service import (
    create_calendar_event,
    delete_calendar_event,
    get_calendar_events,
    update_calendar_event,
)

USER_A = "11111111-1111-4111-8111-111111111111"
USER_B = "22222222-2222-4222-8222-222222222222"
EVENT_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"

START = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
END = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)


def _event(owner=USER_A, collective=False, **extra):
    row = {
        "id": EVENT_ID,
        "title": "Fleet demo",
        "user_id": owner,
        "created_by": owner,
        "is_collective": collective,
        "start_time": START.isoformat(),
        "end_time": END.isoformat(),
    }
    row.update(extra)
    return row


class TestListEvents:
    @pytest.mark.asyncio
    async def test_all_scope_pushes_down_collective_or_own(self, supabase_client, caller_b):
        events = supabase_client.table("calendar_events")

        await get_calendar_events(supabase_client, caller_b)

        events.or_.assert_called_once_with(f"is_collective.eq.true,user_id.eq.{USER_B}")
        events.order.assert_called_once_with("start_time")

    @pytest.mark.asyncio
    async def test_other_users_personal_event_is_dropped(self, supabase_client, caller_b):
        personal = _event()
        shared = _event(collective=True, id="shared-1")
        supabase_client.table("calendar_events").execute.return_value = MagicMock(
            data=[personal, shared]
        )

        events = await get_calendar_events(supabase_client, caller_b)

        assert events == [shared]

    @pytest.mark.asyncio
    async def test_personal_scope_filters_on_caller(self, supabase_client, caller_a):
        events = supabase_client.table("calendar_events")
        personal = _event()
        events.execute.return_value = MagicMock(data=[personal, _event(collective=True)])

        result = await get_calendar_events(supabase_client, caller_a, scope="personal")

        assert result == [personal]
        events.eq.assert_has_calls([call("is_collective", False), call("user_id", USER_A)])

    @pytest.mark.asyncio
    async def test_shared_scope(self, supabase_client, caller_b):
        events = supabase_client.table("calendar_events")
        shared = _event(collective=True)
        events.execute.return_value = MagicMock(data=[shared])

        assert await get_calendar_events(supabase_client, caller_b, scope="shared") == [shared]
        events.eq.assert_called_once_with("is_collective", True)

    @pytest.mark.asyncio
    async def test_anonymous_gets_nothing(self, supabase_client, anonymous):
        assert await get_calendar_events(supabase_client, anonymous) == []
        supabase_client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_time_window(self, supabase_client, caller_a):
        events = supabase_client.table("calendar_events")

        await get_calendar_events(supabase_client, caller_a, start=START, end=END)

        events.gte.assert_called_once_with("start_time", START.isoformat())
        events.lte.assert_called_once_with("start_time", END.isoformat())


class TestWriteEvents:
    @pytest.mark.asyncio
    async def test_create_sets_owner_from_caller(self, supabase_client, caller_a):
        events = supabase_client.table("calendar_events")
        events.execute.return_value = MagicMock(data=[_event()])

        await create_calendar_event(
            supabase_client, caller_a,
            title="Fleet demo", start_time=START, end_time=END, client_id="1"
        )

        inserted = events.insert.call_args[0][0]
        assert inserted["user_id"] == USER_A
        assert inserted["created_by"] == USER_A
        assert inserted["client_id"] is None
        assert inserted["start_time"] == START.isoformat()

    @pytest.mark.asyncio
    async def test_create_rejects_reversed_range(self, supabase_client, caller_a):
        with pytest.raises(ValueError, match="end_time"):
            await create_calendar_event(
                supabase_client, caller_a, title="Backwards", start_time=END, end_time=START
            )

    @pytest.mark.asyncio
    async def test_update_of_invisible_event_returns_none(self, supabase_client, caller_b):
        events = supabase_client.table("calendar_events")
        events.execute.return_value = MagicMock(data=[_event()])

        assert await update_calendar_event(supabase_client, caller_b, EVENT_ID, title="x") is None
        events.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_teammate_cannot_make_collective_event_personal(self, supabase_client, caller_b):
        supabase_client.table("calendar_events").execute.return_value = MagicMock(
            data=[_event(collective=True)]
        )

        with pytest.raises(RowLevelSecurityError):
            await update_calendar_event(supabase_client, caller_b, EVENT_ID, is_collective=False)

    @pytest.mark.asyncio
    async def test_delete_of_invisible_event_returns_false(self, supabase_client, caller_b):
        events = supabase_client.table("calendar_events")
        events.execute.return_value = MagicMock(data=[_event()])

        assert await delete_calendar_event(supabase_client, caller_b, EVENT_ID) is False
        events.delete.assert_not_called()
