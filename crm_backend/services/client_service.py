"""
Client service.

CRUD for the shared client pipeline, explicit ownership transfer, and the
valuation reads (deal value, profitability, pipeline statistics).

Every row read is passed through the access layer's SELECT policies and every
write is checked against the table's policies before it is sent, so the
in-process decision always matches what RLS will do in the database.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, cast

from supabase import Client

from crm_backend.access import CallerIdentity, Verb, enforce_write, filter_visible
from crm_backend.utils.constants import EXPENSE_STATUS_APPROVED, PAYMENT_STATUS_COMPLETED
from crm_backend.utils.identifiers import coerce_uuid
from crm_backend.valuation import (
    ProfitabilitySummary,
    deal_value_for_client,
    pipeline_stats,
    summarize_profitability,
    validate_commitment_length,
)

logger = logging.getLogger(__name__)

TABLE = "clients"


async def get_clients(
    supabase_client: Client,
    caller: CallerIdentity,
    stage: Optional[str] = None,
    assigned_to: Optional[str] = None,
    limit: int = 50,
    offset: int = 0
) -> List[Dict[str, Any]]:
    """
    Fetch clients visible to the caller, newest first.

    Args:
        supabase_client: Authenticated Supabase client
        caller: Explicit caller identity
        stage: Optional pipeline stage filter
        assigned_to: Optional owner filter (a non-UUID value matches nothing)
        limit: Maximum number of clients to return
        offset: Number of clients to skip

    Returns:
        List of client dicts
    """
    logger.debug(f"Fetching clients for caller {caller.user_id} (stage={stage}, limit={limit})")

    owner = None
    if assigned_to is not None:
        owner = coerce_uuid(assigned_to)
        if owner is None:
            return []

    query = supabase_client.table(TABLE).select("*")
    if stage:
        query = query.eq("stage", stage)
    if owner is not None:
        query = query.eq("assigned_to", owner)

    result = (
        query
        .order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )

    rows = cast(List[Dict[str, Any]], result.data or [])
    clients = cast(List[Dict[str, Any]], filter_visible(TABLE, caller, rows))
    logger.info(f"Found {len(clients)} clients for caller {caller.user_id}")

    return clients


async def get_client_by_id(
    supabase_client: Client,
    caller: CallerIdentity,
    client_id: str
) -> Optional[Dict[str, Any]]:
    """
    Fetch a single client.

    Returns:
        Client dict, or None if it does not exist, is not visible, or
        client_id is not a UUID.
    """
    client_uuid = coerce_uuid(client_id)
    if client_uuid is None:
        logger.warning(f"Client lookup with malformed id {client_id!r}")
        return None

    result = supabase_client.table(TABLE).select("*").eq("id", client_uuid).execute()

    rows = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    if not rows:
        logger.warning(f"Client {client_uuid} not found for caller {caller.user_id}")
        return None

    return cast(Dict[str, Any], rows[0])


async def create_client(
    supabase_client: Client,
    caller: CallerIdentity,
    **fields: Any
) -> Dict[str, Any]:
    """
    Create a client.

    assigned_to defaults to the caller when absent; a value that is not a UUID
    is stored as null.

    Raises:
        ValueError: If commitment_length or number_of_cars is invalid
        RowLevelSecurityError: If the new row fails the insert policy
        Exception: If the insert returns no data
    """
    if "commitment_length" in fields:
        validate_commitment_length(fields["commitment_length"])
    if fields.get("number_of_cars") is not None and fields["number_of_cars"] < 0:
        raise ValueError("number_of_cars must be >= 0")

    client_data = dict(fields)
    if "assigned_to" in client_data and client_data["assigned_to"] is not None:
        client_data["assigned_to"] = coerce_uuid(client_data["assigned_to"])
    else:
        client_data["assigned_to"] = caller.user_id

    enforce_write(TABLE, Verb.INSERT, caller, new_row=client_data)

    logger.info(f"Creating client for caller {caller.user_id}: stage={client_data.get('stage')}")

    result = supabase_client.table(TABLE).insert(client_data).execute()

    if not result.data or len(result.data) == 0:
        raise Exception("Failed to create client: no data returned")

    created = cast(Dict[str, Any], result.data[0])
    logger.info(f"Client created successfully: {created.get('id')}")

    return created


async def update_client(
    supabase_client: Client,
    caller: CallerIdentity,
    client_id: str,
    **updates: Any
) -> Optional[Dict[str, Any]]:
    """
    Update client fields.

    Returns:
        The updated client, or None if the client is not visible.

    Raises:
        ValueError: On an invalid commitment_length, or an attempt to change
                    assigned_to (use transfer_client)
        RowLevelSecurityError: If the updated row fails the update policy
    """
    if "assigned_to" in updates:
        raise ValueError("assigned_to cannot be updated directly. Use the transfer endpoint.")
    if "commitment_length" in updates:
        validate_commitment_length(updates["commitment_length"])

    existing = await get_client_by_id(supabase_client, caller, client_id)
    if existing is None:
        return None

    if not enforce_write(TABLE, Verb.UPDATE, caller, row=existing, new_row={**existing, **updates}):
        return None

    logger.info(f"Updating client {existing['id']} for caller {caller.user_id}: {list(updates.keys())}")

    result = supabase_client.table(TABLE).update(updates).eq("id", existing["id"]).execute()

    if not result.data or len(result.data) == 0:
        logger.warning(f"Client {existing['id']} update affected no rows")
        return None

    return cast(Dict[str, Any], result.data[0])


async def delete_client(
    supabase_client: Client,
    caller: CallerIdentity,
    client_id: str
) -> bool:
    """
    Delete a client.

    Returns:
        True if a row was deleted, False if the client is not visible.
    """
    existing = await get_client_by_id(supabase_client, caller, client_id)
    if existing is None:
        return False

    if not enforce_write(TABLE, Verb.DELETE, caller, row=existing):
        return False

    logger.info(f"Deleting client {existing['id']} for caller {caller.user_id}")

    result = supabase_client.table(TABLE).delete().eq("id", existing["id"]).execute()

    return bool(result.data)


async def transfer_client(
    supabase_client: Client,
    caller: CallerIdentity,
    client_id: str,
    new_owner_id: str
) -> Optional[Tuple[Dict[str, Any], Optional[str]]]:
    """
    Reassign a client to another team member.

    This is the only way assigned_to changes after creation.

    Args:
        supabase_client: Authenticated Supabase client
        caller: Explicit caller identity
        client_id: Client UUID
        new_owner_id: UUID of an existing team member

    Returns:
        (updated client, previous assigned_to), or None if the client is not
        visible.

    Raises:
        ValueError: If new_owner_id is not a UUID or not a known user
        RowLevelSecurityError: If the updated row fails the update policy
    """
    new_owner = coerce_uuid(new_owner_id)
    if new_owner is None:
        raise ValueError("new_owner_id must be a valid user id")

    user_result = supabase_client.table("users").select("id").eq("id", new_owner).execute()
    if not user_result.data:
        raise ValueError(f"Unknown user: {new_owner}")

    existing = await get_client_by_id(supabase_client, caller, client_id)
    if existing is None:
        return None

    previous_owner = coerce_uuid(existing.get("assigned_to"))
    new_row = {**existing, "assigned_to": new_owner}
    if not enforce_write(TABLE, Verb.UPDATE, caller, row=existing, new_row=new_row):
        return None

    result = (
        supabase_client.table(TABLE)
        .update({"assigned_to": new_owner})
        .eq("id", existing["id"])
        .execute()
    )

    if not result.data or len(result.data) == 0:
        raise Exception("Failed to transfer client: no data returned")

    logger.info(
        f"Client {existing['id']} transferred from {previous_owner} to {new_owner} "
        f"by {caller.user_id}"
    )

    return cast(Dict[str, Any], result.data[0]), previous_owner


async def get_client_deal_value(
    supabase_client: Client,
    caller: CallerIdentity,
    client_id: str
) -> Optional[Dict[str, Any]]:
    """
    Deal value of a client with the inputs used.

    Returns:
        Dict with the formula inputs and deal_value (Decimal), or None if the
        client is not visible.
    """
    client = await get_client_by_id(supabase_client, caller, client_id)
    if client is None:
        return None

    return {
        "client_id": client["id"],
        "number_of_cars": client.get("number_of_cars"),
        "commitment_length": client.get("commitment_length"),
        "per_car_value": client.get("per_car_value"),
        "setup_fee": client.get("setup_fee"),
        "deal_value": deal_value_for_client(client),
    }


async def get_client_profitability(
    supabase_client: Client,
    caller: CallerIdentity,
    client_id: str,
    start_date: date,
    end_date: date
) -> Optional[ProfitabilitySummary]:
    """
    Profitability of a client over an inclusive date range.

    A reversed range returns a zero summary without querying payments or
    expenses.

    Returns:
        ProfitabilitySummary, or None if the client is not visible.
    """
    client = await get_client_by_id(supabase_client, caller, client_id)
    if client is None:
        return None

    if start_date > end_date:
        logger.info(f"Reversed date range for client {client['id']}, returning zero summary")
        return summarize_profitability(client["id"], [], [], start_date, end_date)

    payments_result = (
        supabase_client.table("payments")
        .select("amount, status, payment_date, payment_type")
        .eq("client_id", client["id"])
        .eq("status", PAYMENT_STATUS_COMPLETED)
        .gte("payment_date", start_date.isoformat())
        .lte("payment_date", end_date.isoformat())
        .execute()
    )
    expenses_result = (
        supabase_client.table("expenses")
        .select("amount, status, expense_date")
        .eq("client_id", client["id"])
        .eq("status", EXPENSE_STATUS_APPROVED)
        .gte("expense_date", start_date.isoformat())
        .lte("expense_date", end_date.isoformat())
        .execute()
    )

    payments = filter_visible("payments", caller, cast(List[Dict[str, Any]], payments_result.data or []))
    expenses = filter_visible("expenses", caller, cast(List[Dict[str, Any]], expenses_result.data or []))

    summary = summarize_profitability(client["id"], payments, expenses, start_date, end_date)
    logger.info(
        f"Profitability for client {client['id']}: "
        f"{summary.total_payments} payments, {summary.total_expenses_count} expenses"
    )

    return summary


async def get_pipeline_stats(
    supabase_client: Client,
    caller: CallerIdentity
) -> Dict[str, Any]:
    """Per-stage counts and pipeline totals over every client visible to the caller."""
    result = (
        supabase_client.table(TABLE)
        .select("id, stage, number_of_cars, commitment_length, per_car_value, setup_fee")
        .execute()
    )

    clients = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    stats = pipeline_stats(clients)
    logger.info(f"Pipeline stats computed over {stats['total_clients']} clients")

    return stats
