"""Tenant tax configuration API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from simpletax.core.auth import get_current_organization
from simpletax.core.database import get_db
from simpletax.repositories.tax_config_repository import TaxConfigRepository
from simpletax.schemas.tax_code import TaxCodeResponse
from simpletax.schemas.tax_config import TaxConfigResponse, TaxConfigUpdate
from simpletax.services.tax_config import TaxCode, TaxConfig

router = APIRouter()


def _config_response(config: TaxConfig) -> TaxConfigResponse:
    return TaxConfigResponse(
        properties=config.properties,
        tax_resolver=config.tax_resolver,
        tax_amount_precision=config.tax_amount_precision,
        taxation_time_zone=config.taxation_time_zone_name,
        tax_code_names=[code.name for code in config.catalog.tax_codes],
    )


def _tax_code_response(tax_code: TaxCode) -> TaxCodeResponse:
    return TaxCodeResponse(
        name=tax_code.name,
        tax_item_description=tax_code.tax_item_description,
        rate=tax_code.rate,
        starting_on=tax_code.starting_on,
        stopping_on=tax_code.stopping_on,
        country=tax_code.country,
    )


@router.get(
    "/",
    response_model=TaxConfigResponse,
    summary="Get tax configuration",
    responses={401: {"description": "Unauthorized"}},
)
async def get_tax_config(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> TaxConfigResponse:
    """Get the tax properties of the organization and the values in effect."""
    repo = TaxConfigRepository(db)
    return _config_response(TaxConfig(repo.get_properties(organization_id)))


@router.put(
    "/",
    response_model=TaxConfigResponse,
    summary="Replace tax configuration",
    responses={
        401: {"description": "Unauthorized"},
        422: {"description": "Validation error"},
    },
)
async def update_tax_config(
    data: TaxConfigUpdate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> TaxConfigResponse:
    """Replace all tax properties of the organization.

    Invalid values are accepted and stored as is; they fall back to their
    defaults when the configuration is used.
    """
    repo = TaxConfigRepository(db)
    repo.save(organization_id, data.properties)
    return _config_response(TaxConfig(data.properties))


@router.get(
    "/tax_codes",
    response_model=list[TaxCodeResponse],
    summary="List tax codes",
    responses={401: {"description": "Unauthorized"}},
)
async def list_tax_codes(
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[TaxCodeResponse]:
    """List the tax codes defined by the configuration, in declaration order."""
    config = TaxConfig(TaxConfigRepository(db).get_properties(organization_id))
    return [_tax_code_response(code) for code in config.catalog.tax_codes]


@router.get(
    "/tax_codes/{name}",
    response_model=TaxCodeResponse,
    summary="Get tax code",
    responses={
        401: {"description": "Unauthorized"},
        404: {"description": "Tax code not found"},
    },
)
async def get_tax_code(
    name: str,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> TaxCodeResponse:
    """Get a tax code by name."""
    config = TaxConfig(TaxConfigRepository(db).get_properties(organization_id))
    tax_code = config.find_tax_code(name)
    if not tax_code:
        raise HTTPException(status_code=404, detail="Tax code not found")
    return _tax_code_response(tax_code)
