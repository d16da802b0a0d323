"""
Pydantic schemas for client (CRM pipeline) endpoints.

Clients are shared across the team. assigned_to records the owning team
member and only changes through the transfer endpoint. Deal value is always
derived from number_of_cars, commitment_length, per_car_value and setup_fee.
"""

from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field

ClientStage = Literal[
    "prospect",
    "connected",
    "replied",
    "meeting",
    "proposal",
    "closed",
    "lost",
]

# Months (matches clients_commitment_length_check)
CommitmentLength = Literal[12, 24, 36]


# --- Client response models ---

class ClientResponse(BaseModel):
    """A client record with its derived deal value."""
    id: str = Field(..., description="Client UUID")
    company_name: str = Field(..., description="Company name")
    contact_name: Optional[str] = Field(None, description="Primary contact")
    email: Optional[str] = Field(None, description="Contact email")
    phone: Optional[str] = Field(None, description="Contact phone")
    linkedin_url: Optional[str] = Field(None, description="LinkedIn profile or company page")
    stage: str = Field(..., description="Pipeline stage")
    number_of_cars: int = Field(..., description="Cars covered by the deal")
    commitment_length: int = Field(..., description="Contract length in months")
    per_car_value: float = Field(..., description="Monthly price per car")
    setup_fee: float = Field(..., description="Monthly setup fee")
    deal_value: float = Field(
        ...,
        description="(per_car_value * number_of_cars + setup_fee) * commitment_length"
    )
    assigned_to: Optional[str] = Field(None, description="Owning team member UUID")
    last_contact: Optional[str] = Field(None, description="ISO-8601 timestamp of last contact")
    last_contact_note: Optional[str] = Field(None, description="Note from last contact")
    created_at: str = Field(..., description="ISO-8601 timestamp when created")
    updated_at: str = Field(..., description="ISO-8601 timestamp of last update")


class ClientListResponse(BaseModel):
    clients: list[ClientResponse] = Field(..., description="Clients visible to the caller")
    count: int = Field(..., description="Number of clients returned")
    limit: int = Field(..., description="Maximum number of clients requested")
    offset: int = Field(..., description="Number of clients skipped (pagination offset)")


# --- Client create/update models ---

class ClientCreateRequest(BaseModel):
    """
    Request to create a client.

    assigned_to defaults to the caller. A value that is not a UUID is stored
    as null rather than rejected.
    """
    company_name: str = Field(
        ...,
        description="Company name",
        min_length=1,
        max_length=255,
        examples=["Acme Fleet Rentals"]
    )
    contact_name: Optional[str] = Field(None, max_length=255, examples=["Jane Doe"])
    email: Optional[str] = Field(None, max_length=255, examples=["jane@acme.example"])
    phone: Optional[str] = Field(None, max_length=50)
    linkedin_url: Optional[str] = Field(None)
    stage: ClientStage = Field("prospect", description="Pipeline stage")
    number_of_cars: int = Field(1, ge=0, description="Cars covered by the deal", examples=[3])
    commitment_length: CommitmentLength = Field(
        12,
        description="Contract length in months (12, 24 or 36)",
        examples=[12, 24, 36]
    )
    per_car_value: float = Field(335.00, ge=0, description="Monthly price per car")
    setup_fee: float = Field(96.00, ge=0, description="Monthly setup fee")
    assigned_to: Optional[str] = Field(
        None,
        description="Owning team member UUID (defaults to the caller)"
    )
    last_contact_note: Optional[str] = Field(None, max_length=2000)


class ClientUpdateRequest(BaseModel):
    """
    Partial update of a client.

    Ownership is not updatable here; use POST /clients/{id}/transfer.
    """
    company_name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    linkedin_url: Optional[str] = Field(None)
    stage: Optional[ClientStage] = Field(None)
    number_of_cars: Optional[int] = Field(None, ge=0)
    commitment_length: Optional[CommitmentLength] = Field(None)
    per_car_value: Optional[float] = Field(None, ge=0)
    setup_fee: Optional[float] = Field(None, ge=0)
    last_contact: Optional[str] = Field(None, description="ISO-8601 timestamp")
    last_contact_note: Optional[str] = Field(None, max_length=2000)


class ClientCreateResponse(BaseModel):
    status: str = Field("CREATED", description="Indicates successful creation")
    client: ClientResponse = Field(..., description="The created client")
    message: str = Field(..., examples=["Client created successfully"])


class ClientUpdateResponse(BaseModel):
    status: str = Field("UPDATED", description="Indicates successful update")
    client: ClientResponse = Field(..., description="The updated client")
    message: str = Field(..., examples=["Client updated successfully"])


class ClientDeleteResponse(BaseModel):
    status: str = Field("DELETED", description="Indicates successful deletion")
    message: str = Field(..., examples=["Client deleted successfully"])


# --- Ownership transfer ---

class ClientTransferRequest(BaseModel):
    """Hand a client to another team member."""
    new_owner_id: str = Field(
        ...,
        description="UUID of the team member who becomes assigned_to",
        examples=["5f0c7a3e-8d2b-4c1a-9e6f-1b2c3d4e5f60"]
    )


class ClientTransferResponse(BaseModel):
    status: str = Field("TRANSFERRED", description="Indicates successful transfer")
    client: ClientResponse = Field(..., description="The client after transfer")
    previous_owner_id: Optional[str] = Field(None, description="assigned_to before the transfer")
    message: str = Field(..., examples=["Client transferred successfully"])


# --- Valuation ---

class DealValueResponse(BaseModel):
    """Inputs and result of the deal price formula for one client."""
    client_id: str = Field(..., description="Client UUID")
    number_of_cars: int = Field(..., description="Cars covered by the deal")
    commitment_length: int = Field(..., description="Contract length in months")
    per_car_value: float = Field(..., description="Monthly price per car")
    setup_fee: float = Field(..., description="Monthly setup fee")
    deal_value: float = Field(..., description="Computed deal value", examples=[13212.00])


class ProfitabilityResponse(BaseModel):
    """
    Profitability of a client over an inclusive date range.

    Sums are 0.00 when nothing matches; profit_margin is 0.00 when there is
    no revenue.
    """
    client_id: str = Field(..., description="Client UUID")
    start_date: str = Field(..., description="First day of the range (YYYY-MM-DD)")
    end_date: str = Field(..., description="Last day of the range (YYYY-MM-DD)")
    total_revenue: float = Field(..., description="Sum of completed payments")
    total_expenses: float = Field(..., description="Sum of approved expenses")
    net_profit: float = Field(..., description="total_revenue - total_expenses")
    profit_margin: float = Field(..., description="net_profit / total_revenue * 100", examples=[83.33])
    total_payments: int = Field(..., description="Number of completed payments")
    total_expenses_count: int = Field(..., description="Number of approved expenses")
    average_payment_amount: float = Field(..., description="Mean completed payment")
    average_expense_amount: float = Field(..., description="Mean approved expense")
    last_payment_date: Optional[str] = Field(None, description="Most recent payment date")
    last_expense_date: Optional[str] = Field(None, description="Most recent expense date")


class PipelineStatsResponse(BaseModel):
    total_clients: int = Field(..., description="Clients visible to the caller")
    by_stage: Dict[str, int] = Field(..., description="Client count per pipeline stage")
    pipeline_value: float = Field(..., description="Sum of deal values, excluding lost clients")
    closed_value: float = Field(..., description="Sum of deal values of closed clients")
