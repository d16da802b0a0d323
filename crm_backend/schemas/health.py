"""Schema for the public health check."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field("ok", examples=["ok"])
    environment: str = Field(..., examples=["development", "production"])
    version: str = Field(..., description="API version", examples=["0.1.0"])
    schema_version: str = Field(
        ...,
        description="Latest migration this build expects the database to have",
        examples=["0007_financial_records"]
    )
