"""Configured tax codes of invoice items and their durable assignments."""

import logging
from collections.abc import Iterable, Mapping
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from simpletax.models.shared import DEFAULT_ORGANIZATION_ID
from simpletax.repositories.tax_code_assignment_repository import TaxCodeAssignmentRepository
from simpletax.schemas.invoice import Invoice, InvoiceItem
from simpletax.services.product_catalog import MemoizedProductCatalog, ProductCatalog
from simpletax.services.tax_config import TaxCode, TaxConfig, join_tax_codes

logger = logging.getLogger(__name__)


class TaxCodeService:
    """Resolves the tax codes configured for, or already assigned to, invoice items.

    Assignments are loaded once, when the service is created, and that index
    is never refreshed during the run: codes assigned by the run itself are
    tracked by the caller.
    """

    def __init__(
        self,
        config: TaxConfig,
        assignment_repo: TaxCodeAssignmentRepository,
        assignments: Mapping[UUID, str] | None = None,
        product_catalog: ProductCatalog | None = None,
        organization_id: UUID = DEFAULT_ORGANIZATION_ID,
    ):
        self.config = config
        self.assignment_repo = assignment_repo
        self.organization_id = organization_id
        self._assignments: dict[UUID, str] = dict(assignments or {})
        self._products = MemoizedProductCatalog(product_catalog)

    @classmethod
    def load(
        cls,
        db: Session,
        config: TaxConfig,
        invoices: Iterable[Invoice],
        product_catalog: ProductCatalog | None = None,
        organization_id: UUID = DEFAULT_ORGANIZATION_ID,
    ) -> "TaxCodeService":
        """Create a service holding the assignments of every taxable item of ``invoices``."""
        repo = TaxCodeAssignmentRepository(db)
        item_ids = [item.id for invoice in invoices for item in invoice.items if item.is_taxable]
        assignments = {
            assignment.invoice_item_id: str(assignment.tax_codes)
            for assignment in repo.get_by_invoice_item_ids(item_ids, organization_id)
        }
        return cls(config, repo, assignments, product_catalog, organization_id)

    def configured_tax_codes(self, item: InvoiceItem) -> list[TaxCode]:
        """Tax codes the configuration maps to the product of the item's plan."""
        if item.plan_name is None:
            return []
        product_name = self._products.product_name_for_plan(item.plan_name)
        if product_name is None:
            return []
        return self.config.configured_tax_codes(product_name)

    def has_assignment(self, item: InvoiceItem) -> bool:
        return item.id in self._assignments

    def existing_tax_codes(self, item: InvoiceItem) -> list[TaxCode]:
        """Tax codes already assigned to the item, undefined names being skipped."""
        names = self._assignments.get(item.id)
        if names is None:
            return []
        return self.config.find_tax_codes(
            names, f"from tax code assignment of invoice item [{item.id}]"
        )

    def persist_assignment(self, item: InvoiceItem, tax_code: TaxCode) -> bool:
        """Record the tax code chosen for an item. Returns False when saving fails."""
        try:
            self.assignment_repo.create(
                organization_id=self.organization_id,
                invoice_id=item.invoice_id,
                invoice_item_id=item.id,
                tax_codes=join_tax_codes([tax_code]),
            )
        except SQLAlchemyError:
            self.assignment_repo.db.rollback()
            logger.exception(
                "Cannot save tax code [%s] of invoice item [%s] of invoice [%s]"
                " for organization [%s]",
                tax_code.name,
                item.id,
                item.invoice_id,
                self.organization_id,
            )
            return False
        return True
