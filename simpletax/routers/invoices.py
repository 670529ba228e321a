"""Invoice taxation API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from simpletax.core.auth import get_current_organization
from simpletax.core.database import get_db
from simpletax.schemas.invoice import AdditionalItemsRequest, InvoiceItem
from simpletax.services.product_catalog import StaticProductCatalog
from simpletax.services.tax_reconciliation import TaxReconciliationService

router = APIRouter()


@router.post(
    "/additional_items",
    response_model=list[InvoiceItem],
    summary="Compute additional tax items",
    responses={
        401: {"description": "Unauthorized"},
        422: {"description": "Validation error"},
    },
)
async def compute_additional_items(
    data: AdditionalItemsRequest,
    dry_run: bool = Query(default=False),
    db: Session = Depends(get_db),
    organization_id: UUID = Depends(get_current_organization),
) -> list[InvoiceItem]:
    """Compute the tax items and tax adjustments to add to the invoices of an account.

    Tax codes resolved for items of the new invoice are saved, unless
    ``dry_run`` is set.
    """
    service = TaxReconciliationService(
        db,
        organization_id=organization_id,
        product_catalog=StaticProductCatalog(data.plan_products),
    )
    return service.compute_additional_items(
        data.new_invoice, data.invoices, data.account, dry_run=dry_run
    )
