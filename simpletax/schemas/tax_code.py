"""Tax code and tax code assignment schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class TaxCodeResponse(BaseModel):
    name: str
    tax_item_description: str
    rate: Decimal
    starting_on: date | None = None
    stopping_on: date | None = None
    country: str | None = None


class TaxCodeAssignmentCreate(BaseModel):
    invoice_id: UUID
    tax_codes: list[str] = Field(min_length=1)


class TaxCodeAssignmentUpdate(BaseModel):
    tax_codes: list[str] = Field(min_length=1)


class TaxCodeAssignmentResponse(BaseModel):
    invoice_item_id: UUID
    invoice_id: UUID
    tax_codes: list[str]
    created_at: datetime | None = None
    updated_at: datetime | None = None
