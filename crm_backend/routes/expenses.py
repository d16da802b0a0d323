"""
Expense API endpoints.

Approved expenses are the cost side of client profitability.
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
from crm_backend.schemas.expenses import (
    ExpenseCreateRequest,
    ExpenseCreateResponse,
    ExpenseDeleteResponse,
    ExpenseListResponse,
    ExpenseResponse,
    ExpenseStatus,
    ExpenseUpdateRequest,
    ExpenseUpdateResponse,
)
from crm_backend.services.expense_service import (
    create_expense,
    delete_expense,
    get_expense_by_id,
    get_expenses,
    update_expense,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/expenses", tags=["financial"])


def _as_str(v: Any) -> str:
    return str(v) if v is not None else ""


def _build_expense_response(expense: Dict[str, Any]) -> ExpenseResponse:
    return ExpenseResponse(
        id=_as_str(expense.get("id")),
        client_id=_as_str(expense.get("client_id")),
        expense_category=_as_str(expense.get("expense_category") or "other"),
        amount=float(expense.get("amount") or 0),
        currency=_as_str(expense.get("currency") or "USD"),
        expense_date=_as_str(expense.get("expense_date")),
        description=expense.get("description"),
        receipt_url=expense.get("receipt_url"),
        status=_as_str(expense.get("status") or "pending"),
        created_by=expense.get("created_by"),
        created_at=_as_str(expense.get("created_at")),
        updated_at=_as_str(expense.get("updated_at")),
    )


@router.get(
    "",
    response_model=ExpenseListResponse,
    status_code=status.HTTP_200_OK,
    summary="List expenses"
)
async def list_expenses(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    client_id: Optional[str] = Query(None, description="Filter by client UUID"),
    expense_status: Optional[ExpenseStatus] = Query(None, alias="status"),
    expense_category: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None, description="First expense_date (inclusive)"),
    end_date: Optional[date] = Query(None, description="Last expense_date (inclusive)")
) -> ExpenseListResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        expenses = await get_expenses(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            client_id=client_id,
            status=expense_status,
            expense_category=expense_category,
            start_date=start_date,
            end_date=end_date
        )

        responses = [_build_expense_response(e) for e in expenses]
        return ExpenseListResponse(expenses=responses, count=len(responses))

    except Exception as e:
        logger.error(f"Failed to list expenses for user {auth_user.user_id}: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve expenses")


@router.post(
    "",
    response_model=ExpenseCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record expense"
)
async def create_new_expense(
    request: ExpenseCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ExpenseCreateResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        created = await create_expense(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            **request.model_dump()
        )

        return ExpenseCreateResponse(
            status="CREATED",
            expense=_build_expense_response(created),
            message="Expense recorded successfully"
        )

    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except ValueError as e:
        logger.warning(f"Invalid expense create request: {e}")
        raise invalid_request(str(e))
    except APIError as e:
        logger.error(f"Failed to create expense: {e}", exc_info=True)
        raise from_api_error(e, "create_error", "Failed to record expense")
    except Exception as e:
        logger.error(f"Failed to create expense: {e}", exc_info=True)
        raise server_error("create_error", "Failed to record expense")


@router.get(
    "/{expense_id}",
    response_model=ExpenseResponse,
    status_code=status.HTTP_200_OK,
    summary="Get expense"
)
async def get_expense(
    expense_id: Annotated[str, Path(description="Expense UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ExpenseResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        expense = await get_expense_by_id(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            expense_id=expense_id
        )

        if not expense:
            raise not_found("Expense")

        return _build_expense_response(expense)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch expense {expense_id}: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve expense")


@router.patch(
    "/{expense_id}",
    response_model=ExpenseUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Update expense",
    description="""
    Partial update. status may move pending -> approved or rejected, and
    rejected -> pending. Approved expenses keep their status.
    """
)
async def update_existing_expense(
    expense_id: Annotated[str, Path(description="Expense UUID")],
    request: ExpenseUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ExpenseUpdateResponse:
    updates = request.model_dump(exclude_none=True)

    if not updates:
        raise empty_update()

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        updated = await update_expense(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            expense_id=expense_id,
            **updates
        )

        if not updated:
            raise not_found("Expense")

        return ExpenseUpdateResponse(
            status="UPDATED",
            expense=_build_expense_response(updated),
            message="Expense updated successfully"
        )

    except HTTPException:
        raise
    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except ValueError as e:
        raise invalid_request(str(e))
    except APIError as e:
        logger.error(f"Failed to update expense {expense_id}: {e}", exc_info=True)
        raise from_api_error(e, "update_error", "Failed to update expense")
    except Exception as e:
        logger.error(f"Failed to update expense {expense_id}: {e}", exc_info=True)
        raise server_error("update_error", "Failed to update expense")


@router.delete(
    "/{expense_id}",
    response_model=ExpenseDeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete expense"
)
async def delete_existing_expense(
    expense_id: Annotated[str, Path(description="Expense UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ExpenseDeleteResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        deleted = await delete_expense(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            expense_id=expense_id
        )

        if not deleted:
            raise not_found("Expense")

        return ExpenseDeleteResponse(status="DELETED", message="Expense deleted successfully")

    except HTTPException:
        raise
    except APIError as e:
        logger.error(f"Failed to delete expense {expense_id}: {e}", exc_info=True)
        raise from_api_error(e, "delete_error", "Failed to delete expense")
    except Exception as e:
        logger.error(f"Failed to delete expense {expense_id}: {e}", exc_info=True)
        raise server_error("delete_error", "Failed to delete expense")
