"""
Pydantic schemas for expense endpoints.

Approved expenses are the cost side of client profitability. Status moves
pending -> approved | rejected and rejected -> pending; approved is final.
"""

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field

ExpenseStatus = Literal["pending", "approved", "rejected"]


class ExpenseResponse(BaseModel):
    id: str = Field(..., description="Expense UUID")
    client_id: str = Field(..., description="Client the expense was incurred for")
    expense_category: str = Field(..., description="Free-form category")
    amount: float = Field(..., description="Amount in currency")
    currency: str = Field(..., description="ISO currency code")
    expense_date: str = Field(..., description="ISO-8601 date of the expense")
    description: Optional[str] = Field(None)
    receipt_url: Optional[str] = Field(None)
    status: str = Field(..., description="pending, approved or rejected")
    created_by: Optional[str] = Field(None, description="Team member who recorded it")
    created_at: str = Field(..., description="ISO-8601 timestamp when created")
    updated_at: str = Field(..., description="ISO-8601 timestamp of last update")


class ExpenseListResponse(BaseModel):
    expenses: list[ExpenseResponse]
    count: int = Field(..., description="Number of expenses returned")


class ExpenseCreateRequest(BaseModel):
    client_id: str = Field(..., description="Client UUID")
    amount: float = Field(..., gt=0, examples=[120.50])
    expense_date: date = Field(..., examples=["2025-01-20"])
    expense_category: str = Field("other", min_length=1, max_length=100, examples=["travel"])
    currency: str = Field("USD", min_length=3, max_length=3)
    description: Optional[str] = Field(None, max_length=2000)
    receipt_url: Optional[str] = Field(None)
    status: ExpenseStatus = Field("pending")


class ExpenseUpdateRequest(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    expense_date: Optional[date] = Field(None)
    expense_category: Optional[str] = Field(None, min_length=1, max_length=100)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    description: Optional[str] = Field(None, max_length=2000)
    receipt_url: Optional[str] = Field(None)
    status: Optional[ExpenseStatus] = Field(None)


class ExpenseCreateResponse(BaseModel):
    status: str = Field("CREATED")
    expense: ExpenseResponse
    message: str = Field(..., examples=["Expense recorded successfully"])


class ExpenseUpdateResponse(BaseModel):
    status: str = Field("UPDATED")
    expense: ExpenseResponse
    message: str = Field(..., examples=["Expense updated successfully"])


class ExpenseDeleteResponse(BaseModel):
    status: str = Field("DELETED")
    message: str = Field(..., examples=["Expense deleted successfully"])
