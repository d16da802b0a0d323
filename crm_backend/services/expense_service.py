"""
Expense service.

Expenses are shared with the whole team and reference a client the caller
can see. Only approved expenses count against client profitability, and
approval goes through validate_expense_transition.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from crm_backend.access import CallerIdentity, Verb, enforce_write, filter_visible
from crm_backend.services.client_service import get_client_by_id
from crm_backend.utils.identifiers import coerce_uuid
from crm_backend.valuation import validate_expense_transition

logger = logging.getLogger(__name__)

TABLE = "expenses"


def _prepare(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v.isoformat() if isinstance(v, date) else v for k, v in fields.items()}


async def get_expenses(
    supabase_client: Client,
    caller: CallerIdentity,
    client_id: Optional[str] = None,
    status: Optional[str] = None,
    expense_category: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> List[Dict[str, Any]]:
    """Fetch expenses, most recent expense_date first. Filters mirror get_payments."""
    client_uuid = None
    if client_id is not None:
        client_uuid = coerce_uuid(client_id)
        if client_uuid is None:
            return []

    query = supabase_client.table(TABLE).select("*")
    if client_uuid is not None:
        query = query.eq("client_id", client_uuid)
    if status:
        query = query.eq("status", status)
    if expense_category:
        query = query.eq("expense_category", expense_category)
    if start_date:
        query = query.gte("expense_date", start_date.isoformat())
    if end_date:
        query = query.lte("expense_date", end_date.isoformat())

    result = query.order("expense_date", desc=True).execute()

    expenses = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    logger.info(f"Found {len(expenses)} expenses for caller {caller.user_id}")

    return cast(List[Dict[str, Any]], expenses)


async def get_expense_by_id(
    supabase_client: Client,
    caller: CallerIdentity,
    expense_id: str
) -> Optional[Dict[str, Any]]:
    expense_uuid = coerce_uuid(expense_id)
    if expense_uuid is None:
        return None

    result = supabase_client.table(TABLE).select("*").eq("id", expense_uuid).execute()

    rows = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    return cast(Dict[str, Any], rows[0]) if rows else None


async def create_expense(
    supabase_client: Client,
    caller: CallerIdentity,
    client_id: str,
    **fields: Any
) -> Dict[str, Any]:
    """
    Record an expense for a client, as created by the caller.

    Raises:
        ValueError: If client_id is not a visible client
        RowLevelSecurityError: If the caller is not authenticated
        Exception: If the insert returns no data
    """
    client = await get_client_by_id(supabase_client, caller, client_id)
    if client is None:
        raise ValueError(f"Unknown client: {client_id}")

    expense_data = _prepare(fields)
    expense_data["client_id"] = client["id"]
    expense_data["created_by"] = caller.user_id

    enforce_write(TABLE, Verb.INSERT, caller, new_row=expense_data)

    result = supabase_client.table(TABLE).insert(expense_data).execute()

    if not result.data or len(result.data) == 0:
        raise Exception("Failed to create expense: no data returned")

    created = cast(Dict[str, Any], result.data[0])
    logger.info(f"Expense {created.get('id')} recorded for client {client['id']}")

    return created


async def update_expense(
    supabase_client: Client,
    caller: CallerIdentity,
    expense_id: str,
    **updates: Any
) -> Optional[Dict[str, Any]]:
    """
    Update an expense. Returns None if it is missing or not visible.

    Raises:
        ValueError: If the status change is not allowed
    """
    existing = await get_expense_by_id(supabase_client, caller, expense_id)
    if existing is None:
        return None

    if "status" in updates:
        validate_expense_transition(existing.get("status"), updates["status"])

    updates = _prepare(updates)
    if not enforce_write(TABLE, Verb.UPDATE, caller, row=existing, new_row={**existing, **updates}):
        return None

    result = supabase_client.table(TABLE).update(updates).eq("id", existing["id"]).execute()

    if not result.data or len(result.data) == 0:
        logger.warning(f"Expense {existing['id']} update affected no rows")
        return None

    return cast(Dict[str, Any], result.data[0])


async def delete_expense(
    supabase_client: Client,
    caller: CallerIdentity,
    expense_id: str
) -> bool:
    existing = await get_expense_by_id(supabase_client, caller, expense_id)
    if existing is None:
        return False

    if not enforce_write(TABLE, Verb.DELETE, caller, row=existing):
        return False

    result = supabase_client.table(TABLE).delete().eq("id", existing["id"]).execute()

    logger.info(f"Expense {existing['id']} deleted by {caller.user_id}")
    return bool(result.data)
