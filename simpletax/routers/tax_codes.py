"""Tax code assignment API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from simpletax.core.auth import get_current_organization
from simpletax.core.database import get_db
from simpletax.models.tax_code_assignment import TaxCodeAssignment
from simpletax.repositories.tax_code_assignment_repository import TaxCodeAssignmentRepository
from simpletax.schemas.tax_code import (
    TaxCodeAssignmentCreate,
    TaxCodeAssignmentResponse,
    TaxCodeAssignmentUpdate,
)
from simpletax.services.tax_config import join_tax_codes, split_tax_codes

router = APIRouter()


def _assignment_response(assignment: TaxCodeAssignment) -> TaxCodeAssignmentResponse:
    return TaxCodeAssignmentResponse(
        invoice_item_id=assignment.invoice_item_id,  # type: ignore[arg-type]
        invoice_id=assignment.invoice_id,  # type: ignore[arg-type]
        tax_codes=split_tax_codes(str(assignment.tax_codes)),
        created_at=assignment.created_at,  # type: ignore[arg-type]
        updated_at=assignment.updated_at,  # type: ignore[arg-type]
    )


def _normalized_tax_codes(tax_codes: list[str]) -> str:
    names = split_tax_codes(" ".join(tax_codes))
    if not names:
        raise HTTPException(status_code=422, detail="At least one tax code is required")
    return join_tax_codes(names)


@router.get(
    "/invoices/{invoice_id}/tax_codes",
    response_model=list[TaxCodeAssignmentResponse],
    summary="List tax codes of invoice items",
    responses={401: {"description": "Unauthorized"}},
)
async def list_invoice_tax_codes(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[TaxCodeAssignmentResponse]:
    """List the tax codes assigned to the items of an invoice."""
    repo = TaxCodeAssignmentRepository(db)
    return [_assignment_response(a) for a in repo.get_by_invoice_id(invoice_id, organization_id)]


@router.get(
    "/invoice_items/{invoice_item_id}/tax_codes",
    response_model=TaxCodeAssignmentResponse,
    summary="Get tax codes of invoice item",
    responses={
        401: {"description": "Unauthorized"},
        404: {"description": "Tax code assignment not found"},
    },
)
async def get_invoice_item_tax_codes(
    invoice_item_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> TaxCodeAssignmentResponse:
    """Get the tax codes assigned to an invoice item."""
    repo = TaxCodeAssignmentRepository(db)
    assignment = repo.get_by_invoice_item_id(invoice_item_id, organization_id)
    if not assignment:
        raise HTTPException(status_code=404, detail="Tax code assignment not found")
    return _assignment_response(assignment)


@router.post(
    "/invoice_items/{invoice_item_id}/tax_codes",
    response_model=TaxCodeAssignmentResponse,
    status_code=201,
    summary="Assign tax codes to invoice item",
    responses={
        401: {"description": "Unauthorized"},
        409: {"description": "Invoice item already has tax codes"},
        422: {"description": "Validation error"},
    },
)
async def create_invoice_item_tax_codes(
    invoice_item_id: UUID,
    data: TaxCodeAssignmentCreate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> TaxCodeAssignmentResponse:
    """Assign tax codes to an invoice item that has none yet.

    Names are stored as given, even when the configuration does not define
    them; undefined names are ignored when taxes are computed.
    """
    repo = TaxCodeAssignmentRepository(db)
    if repo.get_by_invoice_item_id(invoice_item_id, organization_id):
        raise HTTPException(status_code=409, detail="Invoice item already has tax codes")
    assignment = repo.create(
        organization_id=organization_id,
        invoice_id=data.invoice_id,
        invoice_item_id=invoice_item_id,
        tax_codes=_normalized_tax_codes(data.tax_codes),
    )
    return _assignment_response(assignment)


@router.put(
    "/invoice_items/{invoice_item_id}/tax_codes",
    response_model=TaxCodeAssignmentResponse,
    summary="Replace tax codes of invoice item",
    responses={
        401: {"description": "Unauthorized"},
        404: {"description": "Tax code assignment not found"},
        422: {"description": "Validation error"},
    },
)
async def update_invoice_item_tax_codes(
    invoice_item_id: UUID,
    data: TaxCodeAssignmentUpdate,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> TaxCodeAssignmentResponse:
    """Replace the tax codes assigned to an invoice item."""
    repo = TaxCodeAssignmentRepository(db)
    assignment = repo.update_tax_codes(
        invoice_item_id, _normalized_tax_codes(data.tax_codes), organization_id
    )
    if not assignment:
        raise HTTPException(status_code=404, detail="Tax code assignment not found")
    return _assignment_response(assignment)


@router.delete(
    "/invoice_items/{invoice_item_id}/tax_codes",
    status_code=204,
    summary="Remove tax codes of invoice item",
    responses={
        401: {"description": "Unauthorized"},
        404: {"description": "Tax code assignment not found"},
    },
)
async def delete_invoice_item_tax_codes(
    invoice_item_id: UUID,
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> None:
    """Remove the tax codes assigned to an invoice item."""
    repo = TaxCodeAssignmentRepository(db)
    if not repo.delete(invoice_item_id, organization_id):
        raise HTTPException(status_code=404, detail="Tax code assignment not found")
