"""
Payment API endpoints.

Payments feed the revenue side of client profitability. A status change
that skips the allowed transitions (for example completing a cancelled
payment) answers 400 invalid_request.
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
from crm_backend.schemas.payments import (
    PaymentCreateRequest,
    PaymentCreateResponse,
    PaymentDeleteResponse,
    PaymentListResponse,
    PaymentResponse,
    PaymentStatus,
    PaymentType,
    PaymentUpdateRequest,
    PaymentUpdateResponse,
)
from crm_backend.services.payment_service import (
    create_payment,
    delete_payment,
    get_payment_by_id,
    get_payments,
    update_payment,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["financial"])


def _as_str(v: Any) -> str:
    return str(v) if v is not None else ""


def _build_payment_response(payment: Dict[str, Any]) -> PaymentResponse:
    return PaymentResponse(
        id=_as_str(payment.get("id")),
        client_id=_as_str(payment.get("client_id")),
        payment_type=_as_str(payment.get("payment_type") or "received"),
        amount=float(payment.get("amount") or 0),
        currency=_as_str(payment.get("currency") or "USD"),
        payment_method=_as_str(payment.get("payment_method") or "bank_transfer"),
        payment_date=_as_str(payment.get("payment_date")),
        description=payment.get("description"),
        invoice_number=payment.get("invoice_number"),
        status=_as_str(payment.get("status") or "pending"),
        created_by=payment.get("created_by"),
        created_at=_as_str(payment.get("created_at")),
        updated_at=_as_str(payment.get("updated_at")),
    )


@router.get(
    "",
    response_model=PaymentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List payments",
    description="Payments visible to the caller, most recent first, with optional filters."
)
async def list_payments(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    client_id: Optional[str] = Query(None, description="Filter by client UUID"),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    payment_type: Optional[PaymentType] = Query(None),
    start_date: Optional[date] = Query(None, description="First payment_date (inclusive)"),
    end_date: Optional[date] = Query(None, description="Last payment_date (inclusive)")
) -> PaymentListResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        payments = await get_payments(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            client_id=client_id,
            status=payment_status,
            payment_type=payment_type,
            start_date=start_date,
            end_date=end_date
        )

        responses = [_build_payment_response(p) for p in payments]
        return PaymentListResponse(payments=responses, count=len(responses))

    except Exception as e:
        logger.error(f"Failed to list payments for user {auth_user.user_id}: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve payments")


@router.post(
    "",
    response_model=PaymentCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record payment"
)
async def create_new_payment(
    request: PaymentCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> PaymentCreateResponse:
    logger.info(f"Recording payment for user {auth_user.user_id}")

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        created = await create_payment(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            **request.model_dump()
        )

        return PaymentCreateResponse(
            status="CREATED",
            payment=_build_payment_response(created),
            message="Payment recorded successfully"
        )

    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except ValueError as e:
        logger.warning(f"Invalid payment create request: {e}")
        raise invalid_request(str(e))
    except APIError as e:
        logger.error(f"Failed to create payment: {e}", exc_info=True)
        raise from_api_error(e, "create_error", "Failed to record payment")
    except Exception as e:
        logger.error(f"Failed to create payment: {e}", exc_info=True)
        raise server_error("create_error", "Failed to record payment")


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get payment"
)
async def get_payment(
    payment_id: Annotated[str, Path(description="Payment UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> PaymentResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        payment = await get_payment_by_id(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            payment_id=payment_id
        )

        if not payment:
            raise not_found("Payment")

        return _build_payment_response(payment)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch payment {payment_id}: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve payment")


@router.patch(
    "/{payment_id}",
    response_model=PaymentUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Update payment",
    description="""
    Partial update. status may move pending -> completed, failed or
    cancelled, and failed -> pending or cancelled. Completed and cancelled
    payments keep their status.
    """
)
async def update_existing_payment(
    payment_id: Annotated[str, Path(description="Payment UUID")],
    request: PaymentUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> PaymentUpdateResponse:
    updates = request.model_dump(exclude_none=True)

    if not updates:
        raise empty_update()

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        updated = await update_payment(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            payment_id=payment_id,
            **updates
        )

        if not updated:
            raise not_found("Payment")

        return PaymentUpdateResponse(
            status="UPDATED",
            payment=_build_payment_response(updated),
            message="Payment updated successfully"
        )

    except HTTPException:
        raise
    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except ValueError as e:
        raise invalid_request(str(e))
    except APIError as e:
        logger.error(f"Failed to update payment {payment_id}: {e}", exc_info=True)
        raise from_api_error(e, "update_error", "Failed to update payment")
    except Exception as e:
        logger.error(f"Failed to update payment {payment_id}: {e}", exc_info=True)
        raise server_error("update_error", "Failed to update payment")


@router.delete(
    "/{payment_id}",
    response_model=PaymentDeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete payment"
)
async def delete_existing_payment(
    payment_id: Annotated[str, Path(description="Payment UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> PaymentDeleteResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        deleted = await delete_payment(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            payment_id=payment_id
        )

        if not deleted:
            raise not_found("Payment")

        return PaymentDeleteResponse(status="DELETED", message="Payment deleted successfully")

    except HTTPException:
        raise
    except APIError as e:
        logger.error(f"Failed to delete payment {payment_id}: {e}", exc_info=True)
        raise from_api_error(e, "delete_error", "Failed to delete payment")
    except Exception as e:
        logger.error(f"Failed to delete payment {payment_id}: {e}", exc_info=True)
        raise server_error("delete_error", "Failed to delete payment")
