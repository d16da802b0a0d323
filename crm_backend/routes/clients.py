"""
Client pipeline API endpoints.

Clients are shared with the whole team. Endpoints cover CRUD, explicit
ownership transfer, and the valuation reads: deal value, profitability over
a date range and pipeline statistics.
"""

import logging
from datetime import date
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from postgrest.exceptions import APIError

from crm_backend.access import RowLevelSecurityError
from crm_backend.auth.dependencies import AuthenticatedUser, get_authenticated_user
from crm_backend.db.client import get_supabase_client
from crm_backend.routes.errors import (
    empty_update,
    from_api_error,
    invalid_request,
    not_found,
    policy_violation,
    server_error,
)
from crm_backend.schemas.clients import (
    ClientCreateRequest,
    ClientCreateResponse,
    ClientDeleteResponse,
    ClientListResponse,
    ClientResponse,
    ClientStage,
    ClientTransferRequest,
    ClientTransferResponse,
    ClientUpdateRequest,
    ClientUpdateResponse,
    DealValueResponse,
    PipelineStatsResponse,
    ProfitabilityResponse,
)
from crm_backend.services.client_service import (
    create_client,
    delete_client,
    get_client_by_id,
    get_client_deal_value,
    get_client_profitability,
    get_clients,
    get_pipeline_stats,
    transfer_client,
    update_client,
)
from crm_backend.utils.constants import (
    DEFAULT_COMMITMENT_LENGTH,
    DEFAULT_NUMBER_OF_CARS,
    DEFAULT_PER_CAR_VALUE,
    DEFAULT_SETUP_FEE,
)
from crm_backend.valuation import deal_value_for_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["clients"])


def _as_str(v: Any) -> str:
    return str(v) if v is not None else ""


def _opt_str(v: Any) -> Optional[str]:
    return str(v) if v is not None else None


def _or_default(v: Any, default: Any) -> Any:
    return default if v is None else v


def _build_client_response(client: Dict[str, Any]) -> ClientResponse:
    return ClientResponse(
        id=_as_str(client.get("id")),
        company_name=_as_str(client.get("company_name")),
        contact_name=client.get("contact_name"),
        email=client.get("email"),
        phone=client.get("phone"),
        linkedin_url=client.get("linkedin_url"),
        stage=_as_str(client.get("stage") or "prospect"),
        number_of_cars=int(_or_default(client.get("number_of_cars"), DEFAULT_NUMBER_OF_CARS)),
        commitment_length=int(_or_default(client.get("commitment_length"), DEFAULT_COMMITMENT_LENGTH)),
        per_car_value=float(_or_default(client.get("per_car_value"), DEFAULT_PER_CAR_VALUE)),
        setup_fee=float(_or_default(client.get("setup_fee"), DEFAULT_SETUP_FEE)),
        deal_value=float(deal_value_for_client(client)),
        assigned_to=_opt_str(client.get("assigned_to")),
        last_contact=_opt_str(client.get("last_contact")),
        last_contact_note=client.get("last_contact_note"),
        created_at=_as_str(client.get("created_at")),
        updated_at=_as_str(client.get("updated_at")),
    )


@router.get(
    "",
    response_model=ClientListResponse,
    status_code=status.HTTP_200_OK,
    summary="List clients",
    description="""
    List clients visible to the caller, newest first.

    Clients are shared: every authenticated team member sees every client.
    Optional filters narrow by pipeline stage or owner.
    """
)
async def list_clients(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    stage: Optional[ClientStage] = Query(None, description="Filter by pipeline stage"),
    assigned_to: Optional[str] = Query(None, description="Filter by owner UUID"),
    limit: int = Query(50, ge=1, le=200, description="Maximum number of clients to return"),
    offset: int = Query(0, ge=0, description="Number of clients to skip")
) -> ClientListResponse:
    """List clients."""
    logger.info(f"Listing clients for user {auth_user.user_id} (stage={stage})")

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        clients = await get_clients(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            stage=stage,
            assigned_to=assigned_to,
            limit=limit,
            offset=offset
        )

        responses = [_build_client_response(c) for c in clients]

        return ClientListResponse(
            clients=responses,
            count=len(responses),
            limit=limit,
            offset=offset
        )

    except ValueError as e:
        logger.warning(f"Stored client row cannot be valued: {e}")
        raise invalid_request(str(e))
    except Exception as e:
        logger.error(f"Failed to list clients for user {auth_user.user_id}: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve clients from database")


@router.get(
    "/stats",
    response_model=PipelineStatsResponse,
    status_code=status.HTTP_200_OK,
    summary="Pipeline statistics",
    description="Client counts per stage and total deal value of the open and won pipeline."
)
async def pipeline_statistics(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> PipelineStatsResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        stats = await get_pipeline_stats(supabase_client=supabase_client, caller=auth_user.caller)

        return PipelineStatsResponse(
            total_clients=stats["total_clients"],
            by_stage=stats["by_stage"],
            pipeline_value=float(stats["pipeline_value"]),
            closed_value=float(stats["closed_value"]),
        )

    except ValueError as e:
        logger.warning(f"Stored client row cannot be valued: {e}")
        raise invalid_request(str(e))
    except Exception as e:
        logger.error(f"Failed to compute pipeline stats: {e}", exc_info=True)
        raise server_error("stats_error", "Failed to compute pipeline statistics")


@router.post(
    "",
    response_model=ClientCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create client",
    description="""
    Create a client. assigned_to defaults to the caller; a value that is not a
    UUID is stored as null.
    """
)
async def create_new_client(
    request: ClientCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ClientCreateResponse:
    logger.info(f"Creating client for user {auth_user.user_id}")

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        fields = request.model_dump()
        if request.assigned_to is None:
            fields.pop("assigned_to")

        created = await create_client(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            **fields
        )

        return ClientCreateResponse(
            status="CREATED",
            client=_build_client_response(created),
            message="Client created successfully"
        )

    except RowLevelSecurityError as e:
        logger.warning(f"Client insert rejected by policy for user {auth_user.user_id}")
        raise policy_violation(e)
    except ValueError as e:
        logger.warning(f"Invalid client create request: {e}")
        raise invalid_request(str(e))
    except APIError as e:
        logger.error(f"Failed to create client: {e}", exc_info=True)
        raise from_api_error(e, "create_error", "Failed to create client")
    except Exception as e:
        logger.error(f"Failed to create client: {e}", exc_info=True)
        raise server_error("create_error", "Failed to create client")


@router.get(
    "/{client_id}",
    response_model=ClientResponse,
    status_code=status.HTTP_200_OK,
    summary="Get client",
    description="Retrieve one client. Returns 404 if it does not exist or is not visible."
)
async def get_client(
    client_id: Annotated[str, Path(description="Client UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ClientResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        client = await get_client_by_id(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            client_id=client_id
        )

        if not client:
            raise not_found("Client")

        return _build_client_response(client)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch client {client_id}: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve client")


@router.patch(
    "/{client_id}",
    response_model=ClientUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Update client",
    description="""
    Partial update. Ownership cannot be changed here; use
    POST /clients/{client_id}/transfer.
    """
)
async def update_existing_client(
    client_id: Annotated[str, Path(description="Client UUID")],
    request: ClientUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ClientUpdateResponse:
    updates = request.model_dump(exclude_none=True)

    if not updates:
        raise empty_update()

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        updated = await update_client(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            client_id=client_id,
            **updates
        )

        if not updated:
            raise not_found("Client")

        logger.info(f"Client {client_id} updated successfully")

        return ClientUpdateResponse(
            status="UPDATED",
            client=_build_client_response(updated),
            message="Client updated successfully"
        )

    except HTTPException:
        raise
    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except ValueError as e:
        raise invalid_request(str(e))
    except APIError as e:
        logger.error(f"Failed to update client {client_id}: {e}", exc_info=True)
        raise from_api_error(e, "update_error", "Failed to update client")
    except Exception as e:
        logger.error(f"Failed to update client {client_id}: {e}", exc_info=True)
        raise server_error("update_error", "Failed to update client")


@router.delete(
    "/{client_id}",
    response_model=ClientDeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete client",
    description="Delete a client. Its payments and expenses are removed with it."
)
async def delete_existing_client(
    client_id: Annotated[str, Path(description="Client UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ClientDeleteResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        deleted = await delete_client(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            client_id=client_id
        )

        if not deleted:
            raise not_found("Client")

        logger.info(f"Client {client_id} deleted by user {auth_user.user_id}")

        return ClientDeleteResponse(status="DELETED", message="Client deleted successfully")

    except HTTPException:
        raise
    except APIError as e:
        logger.error(f"Failed to delete client {client_id}: {e}", exc_info=True)
        raise from_api_error(e, "delete_error", "Failed to delete client")
    except Exception as e:
        logger.error(f"Failed to delete client {client_id}: {e}", exc_info=True)
        raise server_error("delete_error", "Failed to delete client")


@router.post(
    "/{client_id}/transfer",
    response_model=ClientTransferResponse,
    status_code=status.HTTP_200_OK,
    summary="Transfer client ownership",
    description="""
    Reassign a client to another team member. This is the only way
    assigned_to changes after creation. The new owner must be a known user.
    """
)
async def transfer_client_ownership(
    client_id: Annotated[str, Path(description="Client UUID")],
    request: ClientTransferRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ClientTransferResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        outcome = await transfer_client(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            client_id=client_id,
            new_owner_id=request.new_owner_id
        )

        if outcome is None:
            raise not_found("Client")

        client, previous_owner = outcome

        return ClientTransferResponse(
            status="TRANSFERRED",
            client=_build_client_response(client),
            previous_owner_id=previous_owner,
            message="Client transferred successfully"
        )

    except HTTPException:
        raise
    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except ValueError as e:
        raise invalid_request(str(e))
    except APIError as e:
        logger.error(f"Failed to transfer client {client_id}: {e}", exc_info=True)
        raise from_api_error(e, "transfer_error", "Failed to transfer client")
    except Exception as e:
        logger.error(f"Failed to transfer client {client_id}: {e}", exc_info=True)
        raise server_error("transfer_error", "Failed to transfer client")


@router.get(
    "/{client_id}/deal-value",
    response_model=DealValueResponse,
    status_code=status.HTTP_200_OK,
    summary="Client deal value",
    description="(per_car_value * number_of_cars + setup_fee) * commitment_length"
)
async def client_deal_value(
    client_id: Annotated[str, Path(description="Client UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> DealValueResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        valuation = await get_client_deal_value(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            client_id=client_id
        )

        if valuation is None:
            raise not_found("Client")

        return DealValueResponse(
            client_id=_as_str(valuation["client_id"]),
            number_of_cars=int(_or_default(valuation["number_of_cars"], DEFAULT_NUMBER_OF_CARS)),
            commitment_length=int(
                _or_default(valuation["commitment_length"], DEFAULT_COMMITMENT_LENGTH)
            ),
            per_car_value=float(_or_default(valuation["per_car_value"], DEFAULT_PER_CAR_VALUE)),
            setup_fee=float(_or_default(valuation["setup_fee"], DEFAULT_SETUP_FEE)),
            deal_value=float(valuation["deal_value"]),
        )

    except HTTPException:
        raise
    except ValueError as e:
        # Stored row with an out-of-range commitment_length
        raise invalid_request(str(e))
    except Exception as e:
        logger.error(f"Failed to compute deal value for {client_id}: {e}", exc_info=True)
        raise server_error("valuation_error", "Failed to compute deal value")


@router.get(
    "/{client_id}/profitability",
    response_model=ProfitabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Client profitability",
    description="""
    Completed payments and approved expenses for a client between start_date
    and end_date (inclusive). A reversed range returns a zero summary.
    """
)
async def client_profitability(
    client_id: Annotated[str, Path(description="Client UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    start_date: date = Query(..., description="First day of the range (YYYY-MM-DD)"),
    end_date: date = Query(..., description="Last day of the range (YYYY-MM-DD)")
) -> ProfitabilityResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        summary = await get_client_profitability(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            client_id=client_id,
            start_date=start_date,
            end_date=end_date
        )

        if summary is None:
            raise not_found("Client")

        return ProfitabilityResponse(
            client_id=_as_str(summary.client_id),
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
            total_revenue=float(summary.total_revenue),
            total_expenses=float(summary.total_expenses),
            net_profit=float(summary.net_profit),
            profit_margin=float(summary.profit_margin),
            total_payments=summary.total_payments,
            total_expenses_count=summary.total_expenses_count,
            average_payment_amount=float(summary.average_payment_amount),
            average_expense_amount=float(summary.average_expense_amount),
            last_payment_date=_opt_str(summary.last_payment_date),
            last_expense_date=_opt_str(summary.last_expense_date),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to compute profitability for {client_id}: {e}", exc_info=True)
        raise server_error("profitability_error", "Failed to compute profitability")
