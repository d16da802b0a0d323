"""
Payment service.

Payments are shared with the whole team and always reference a client the
caller can see. Status changes follow the payment transitions in
crm_backend.valuation.status; only completed, received payments count as
revenue. Amounts are never logged.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from crm_backend.access import CallerIdentity, Verb, enforce_write, filter_visible
from crm_backend.services.client_service import get_client_by_id
from crm_backend.utils.identifiers import coerce_uuid
from crm_backend.valuation import validate_payment_transition

logger = logging.getLogger(__name__)

TABLE = "payments"


def _prepare(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v.isoformat() if isinstance(v, date) else v for k, v in fields.items()}


async def get_payments(
    supabase_client: Client,
    caller: CallerIdentity,
    client_id: Optional[str] = None,
    status: Optional[str] = None,
    payment_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> List[Dict[str, Any]]:
    """
    Fetch payments, most recent payment_date first.

    Args:
        supabase_client: Authenticated Supabase client
        caller: Explicit caller identity
        client_id: Optional client filter (a non-UUID value matches nothing)
        status: Optional status filter
        payment_type: Optional received/sent filter
        start_date: Optional first payment_date (inclusive)
        end_date: Optional last payment_date (inclusive)

    Returns:
        List of payment dicts
    """
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
    if payment_type:
        query = query.eq("payment_type", payment_type)
    if start_date:
        query = query.gte("payment_date", start_date.isoformat())
    if end_date:
        query = query.lte("payment_date", end_date.isoformat())

    result = query.order("payment_date", desc=True).execute()

    payments = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    logger.info(f"Found {len(payments)} payments for caller {caller.user_id}")

    return cast(List[Dict[str, Any]], payments)


async def get_payment_by_id(
    supabase_client: Client,
    caller: CallerIdentity,
    payment_id: str
) -> Optional[Dict[str, Any]]:
    payment_uuid = coerce_uuid(payment_id)
    if payment_uuid is None:
        return None

    result = supabase_client.table(TABLE).select("*").eq("id", payment_uuid).execute()

    rows = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    return cast(Dict[str, Any], rows[0]) if rows else None


async def create_payment(
    supabase_client: Client,
    caller: CallerIdentity,
    client_id: str,
    **fields: Any
) -> Dict[str, Any]:
    """
    Record a payment for a client, as created by the caller.

    Raises:
        ValueError: If client_id is not a visible client
        RowLevelSecurityError: If the caller is not authenticated
        Exception: If the insert returns no data
    """
    client = await get_client_by_id(supabase_client, caller, client_id)
    if client is None:
        raise ValueError(f"Unknown client: {client_id}")

    payment_data = _prepare(fields)
    payment_data["client_id"] = client["id"]
    payment_data["created_by"] = caller.user_id

    enforce_write(TABLE, Verb.INSERT, caller, new_row=payment_data)

    result = supabase_client.table(TABLE).insert(payment_data).execute()

    if not result.data or len(result.data) == 0:
        raise Exception("Failed to create payment: no data returned")

    created = cast(Dict[str, Any], result.data[0])
    logger.info(
        f"Payment {created.get('id')} recorded for client {client['id']} "
        f"(status={created.get('status')})"
    )

    return created


async def update_payment(
    supabase_client: Client,
    caller: CallerIdentity,
    payment_id: str,
    **updates: Any
) -> Optional[Dict[str, Any]]:
    """
    Update a payment.

    Returns:
        The updated payment, or None if it is missing or not visible.

    Raises:
        ValueError: If the status change is not allowed
        RowLevelSecurityError: If the updated row fails the update policy
    """
    existing = await get_payment_by_id(supabase_client, caller, payment_id)
    if existing is None:
        return None

    if "status" in updates:
        validate_payment_transition(existing.get("status"), updates["status"])

    updates = _prepare(updates)
    if not enforce_write(TABLE, Verb.UPDATE, caller, row=existing, new_row={**existing, **updates}):
        return None

    result = supabase_client.table(TABLE).update(updates).eq("id", existing["id"]).execute()

    if not result.data or len(result.data) == 0:
        logger.warning(f"Payment {existing['id']} update affected no rows")
        return None

    if "status" in updates and updates["status"] != existing.get("status"):
        logger.info(
            f"Payment {existing['id']} moved from {existing.get('status')} to "
            f"{updates['status']} by {caller.user_id}"
        )

    return cast(Dict[str, Any], result.data[0])


async def delete_payment(
    supabase_client: Client,
    caller: CallerIdentity,
    payment_id: str
) -> bool:
    existing = await get_payment_by_id(supabase_client, caller, payment_id)
    if existing is None:
        return False

    if not enforce_write(TABLE, Verb.DELETE, caller, row=existing):
        return False

    result = supabase_client.table(TABLE).delete().eq("id", existing["id"]).execute()

    logger.info(f"Payment {existing['id']} deleted by {caller.user_id}")
    return bool(result.data)
