"""
Pydantic schemas for payment endpoints.

Payments are shared with the whole team and always belong to a client.
Completed, received payments are the revenue side of client profitability.
Status moves pending -> completed | failed | cancelled and failed -> pending |
cancelled; completed and cancelled payments are final.
"""

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field

PaymentStatus = Literal["pending", "completed", "failed", "cancelled"]
PaymentType = Literal["received", "sent"]
PaymentMethod = Literal["bank_transfer", "credit_card", "paypal", "stripe", "cash", "check"]


class PaymentResponse(BaseModel):
    id: str = Field(..., description="Payment UUID")
    client_id: str = Field(..., description="Client the payment belongs to")
    payment_type: str = Field(..., description="received or sent")
    amount: float = Field(..., description="Amount in currency")
    currency: str = Field(..., description="ISO currency code")
    payment_method: str = Field(..., description="How the payment was made")
    payment_date: str = Field(..., description="ISO-8601 date of the payment")
    description: Optional[str] = Field(None)
    invoice_number: Optional[str] = Field(None)
    status: str = Field(..., description="pending, completed, failed or cancelled")
    created_by: Optional[str] = Field(None, description="Team member who recorded it")
    created_at: str = Field(..., description="ISO-8601 timestamp when created")
    updated_at: str = Field(..., description="ISO-8601 timestamp of last update")


class PaymentListResponse(BaseModel):
    payments: list[PaymentResponse]
    count: int = Field(..., description="Number of payments returned")


class PaymentCreateRequest(BaseModel):
    """Record a payment for a client. The client must exist and be visible."""
    client_id: str = Field(..., description="Client UUID")
    amount: float = Field(..., gt=0, examples=[4404.00])
    payment_date: date = Field(..., examples=["2025-01-15"])
    payment_type: PaymentType = Field("received")
    currency: str = Field("USD", min_length=3, max_length=3)
    payment_method: PaymentMethod = Field("bank_transfer")
    description: Optional[str] = Field(None, max_length=2000)
    invoice_number: Optional[str] = Field(None, max_length=100)
    status: PaymentStatus = Field("pending")


class PaymentUpdateRequest(BaseModel):
    """Partial update. A status change must follow the allowed transitions."""
    amount: Optional[float] = Field(None, gt=0)
    payment_date: Optional[date] = Field(None)
    payment_type: Optional[PaymentType] = Field(None)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    payment_method: Optional[PaymentMethod] = Field(None)
    description: Optional[str] = Field(None, max_length=2000)
    invoice_number: Optional[str] = Field(None, max_length=100)
    status: Optional[PaymentStatus] = Field(None)


class PaymentCreateResponse(BaseModel):
    status: str = Field("CREATED", description="Indicates successful creation")
    payment: PaymentResponse
    message: str = Field(..., examples=["Payment recorded successfully"])


class PaymentUpdateResponse(BaseModel):
    status: str = Field("UPDATED", description="Indicates successful update")
    payment: PaymentResponse
    message: str = Field(..., examples=["Payment updated successfully"])


class PaymentDeleteResponse(BaseModel):
    status: str = Field("DELETED", description="Indicates successful deletion")
    message: str = Field(..., examples=["Payment deleted successfully"])
