"""Tenant tax configuration schemas."""

from pydantic import BaseModel, Field


class TaxConfigUpdate(BaseModel):
    properties: dict[str, str] = Field(default_factory=dict)


class TaxConfigResponse(BaseModel):
    """Raw properties plus the values actually in effect after parsing."""

    properties: dict[str, str]
    tax_resolver: str
    tax_amount_precision: int
    taxation_time_zone: str | None = None
    tax_code_names: list[str] = Field(default_factory=list)
