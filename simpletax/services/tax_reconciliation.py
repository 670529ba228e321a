"""Reconciliation of tax items across all invoices of an account.

For the invoice being finalized, missing tax items are created and existing
ones adjusted. Historical invoices are never taxed anew: their existing tax
items are only adjusted, when adjustments made since then changed the
amount of the items they tax.

The computation is idempotent: once its output has been applied, running it
again on the same invoices yields no item.
"""

import logging
from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, localcontext
from uuid import UUID

from sqlalchemy.orm import Session

from simpletax.models.shared import DEFAULT_ORGANIZATION_ID
from simpletax.repositories.tax_config_repository import TaxConfigRepository
from simpletax.schemas.invoice import Account, Invoice, InvoiceItem, InvoiceItemType
from simpletax.services.amount_adjuster import AmountAdjuster, sum_amounts
from simpletax.services.product_catalog import ProductCatalog
from simpletax.services.tax_code_service import TaxCodeService
from simpletax.services.tax_computation_context import TaxComputationContext
from simpletax.services.tax_config import DEFAULT_TAX_ITEM_DESCRIPTION, TaxCode, TaxConfig
from simpletax.services.tax_resolvers import TaxResolver, create_tax_resolver

logger = logging.getLogger(__name__)


def compute_tax_amount(amount: Decimal, tax_code: TaxCode | None, precision: int) -> Decimal:
    """Tax due on ``amount``, rounded half up to ``precision`` decimal places."""
    if tax_code is None:
        return Decimal("0")
    quantize_exp = Decimal(10) ** -precision
    tax = amount * tax_code.rate
    with localcontext() as context:
        # Room for every digit of the rounded result.
        context.prec = max(context.prec, tax.adjusted() + precision + 2)
        return tax.quantize(quantize_exp, rounding=ROUND_HALF_UP)


def build_tax_item(
    taxable_item: InvoiceItem, day: date, amount: Decimal | None, description: str
) -> InvoiceItem | None:
    """Create a tax item in the invoice of the taxable item, or None for a zero amount."""
    if not taxable_item.is_taxable:
        raise ValueError(f"Not of a taxable type: {taxable_item.item_type.value}")
    if amount is None or amount == 0:
        return None
    return InvoiceItem(
        invoice_id=taxable_item.invoice_id,
        account_id=taxable_item.account_id,
        item_type=InvoiceItemType.TAX,
        linked_item_id=taxable_item.id,
        amount=amount,
        plan_name=taxable_item.plan_name,
        description=description,
        start_date=day,
    )


def build_adjustment_item(
    tax_item: InvoiceItem, day: date, amount: Decimal | None, description: str
) -> InvoiceItem | None:
    """Create an adjustment of a tax item in its own invoice, or None for a zero amount."""
    if not tax_item.is_tax:
        raise ValueError(f"Not a tax type: {tax_item.item_type.value}")
    if amount is None or amount == 0:
        return None
    return InvoiceItem(
        invoice_id=tax_item.invoice_id,
        account_id=tax_item.account_id,
        item_type=InvoiceItemType.ADJUSTMENT,
        linked_item_id=tax_item.id,
        amount=amount,
        description=description,
        start_date=day,
    )


def tax_items_grouped_by_taxed_item(invoices: Iterable[Invoice]) -> dict[UUID, list[InvoiceItem]]:
    """Group the tax items of the given invoices by the id of the item they tax."""
    grouped: dict[UUID, list[InvoiceItem]] = {}
    for invoice in invoices:
        for item in invoice.items:
            if item.is_tax and item.linked_item_id is not None:
                grouped.setdefault(item.linked_item_id, []).append(item)
    return grouped


def all_invoices_of_account(new_invoice: Invoice, invoices: Iterable[Invoice]) -> tuple[Invoice, ...]:
    """All invoices of the account, the new one included exactly once.

    The snapshot of the new invoice wins over any stale copy of it found in
    ``invoices``, and comes last unless the host already listed it.
    """
    by_id: dict[UUID, Invoice] = {}
    for invoice in invoices:
        by_id[invoice.id] = invoice
    by_id[new_invoice.id] = new_invoice
    return tuple(by_id.values())


class TaxReconciliationService:
    """Computes the tax items and tax adjustments to add upon invoice creation."""

    def __init__(
        self,
        db: Session,
        organization_id: UUID = DEFAULT_ORGANIZATION_ID,
        product_catalog: ProductCatalog | None = None,
        config: TaxConfig | None = None,
    ):
        self.db = db
        self.organization_id = organization_id
        self.product_catalog = product_catalog
        self.config_repo = TaxConfigRepository(db)
        self._config = config

    def load_config(self) -> TaxConfig:
        """The tax configuration of the organization, as currently stored."""
        if self._config is not None:
            return self._config
        return TaxConfig(self.config_repo.get_properties(self.organization_id))

    def create_tax_computation_context(
        self, new_invoice: Invoice, invoices: Iterable[Invoice], account: Account
    ) -> TaxComputationContext:
        """Pre-compute, once per run, the data shared by all tax computations."""
        config = self.load_config()
        all_invoices = all_invoices_of_account(new_invoice, invoices)
        tax_code_service = TaxCodeService.load(
            self.db,
            config,
            all_invoices,
            product_catalog=self.product_catalog,
            organization_id=self.organization_id,
        )
        return TaxComputationContext(
            config=config,
            account=account,
            all_invoices=all_invoices,
            amount_adjuster=AmountAdjuster(all_invoices),
            tax_code_service=tax_code_service,
        )

    def compute_additional_items(
        self,
        new_invoice: Invoice,
        invoices: Iterable[Invoice],
        account: Account,
        dry_run: bool = False,
    ) -> list[InvoiceItem]:
        """List the new tax items, or adjustments of existing ones, for all invoices.

        Args:
            new_invoice: The invoice being finalized.
            invoices: The other invoices of the account (the new one may be included).
            account: The account the invoices belong to.
            dry_run: When True, tax codes resolved for new items are used but not saved.

        Returns:
            New items, grouped by invoice in the order of ``all_invoices_of_account``.
        """
        ctx = self.create_tax_computation_context(new_invoice, invoices, account)
        resolver = create_tax_resolver(ctx)
        new_tax_codes = self.add_missing_tax_codes(new_invoice, resolver, ctx, dry_run=dry_run)
        current_tax_items = tax_items_grouped_by_taxed_item(ctx.all_invoices)

        additional_items: list[InvoiceItem] = []
        for invoice in ctx.all_invoices:
            if invoice.id == new_invoice.id:
                items = self._items_for_new_invoice(
                    invoice, ctx, current_tax_items, new_tax_codes
                )
            else:
                items = self._items_for_historical_invoice(invoice, ctx, current_tax_items)
            additional_items.extend(items)

        logger.info(
            "Computed %d additional tax items for invoice %s of account %s",
            len(additional_items),
            new_invoice.id,
            account.id,
        )
        return additional_items

    def add_missing_tax_codes(
        self,
        new_invoice: Invoice,
        resolver: TaxResolver,
        ctx: TaxComputationContext,
        dry_run: bool = False,
    ) -> dict[UUID, TaxCode]:
        """Resolve and save tax codes for the taxable items of the new invoice that have none.

        Existing assignments are never overridden. Items whose assignment
        cannot be saved are left without tax code for this run.
        """
        tax_code_service = ctx.tax_code_service
        account_country = ctx.account.tax_country

        new_tax_codes: dict[UUID, TaxCode] = {}
        for item in new_invoice.items:
            if not item.is_taxable:
                continue
            configured = tax_code_service.configured_tax_codes(item)
            if not configured:
                continue
            if tax_code_service.has_assignment(item):
                continue

            candidates = [code for code in configured if code.applies_to_country(account_country)]
            try:
                tax_code = resolver.applicable_code_for_item(candidates, item)
            except Exception:
                logger.exception(
                    "Cannot resolve tax code of invoice item [%s] of invoice [%s]",
                    item.id,
                    new_invoice.id,
                )
                continue
            if tax_code is None:
                continue

            if not dry_run and not tax_code_service.persist_assignment(item, tax_code):
                continue
            new_tax_codes[item.id] = tax_code
        return new_tax_codes

    def _resolved_tax_code(
        self,
        item: InvoiceItem,
        ctx: TaxComputationContext,
        new_tax_codes: dict[UUID, TaxCode] | None = None,
    ) -> TaxCode | None:
        existing = ctx.tax_code_service.existing_tax_codes(item)
        if existing:
            return existing[0]
        if new_tax_codes is None:
            return None
        return new_tax_codes.get(item.id)

    def _items_for_new_invoice(
        self,
        new_invoice: Invoice,
        ctx: TaxComputationContext,
        current_tax_items: dict[UUID, list[InvoiceItem]],
        new_tax_codes: dict[UUID, TaxCode],
    ) -> list[InvoiceItem]:
        """Tax or adjust every taxable item of the invoice being created."""
        precision = ctx.config.tax_amount_precision

        new_items: list[InvoiceItem] = []
        for item in new_invoice.items:
            if not item.is_taxable:
                continue

            tax_code = self._resolved_tax_code(item, ctx, new_tax_codes)
            expected = compute_tax_amount(ctx.adjusted_amount(item), tax_code, precision)
            related_tax_items = current_tax_items.get(item.id, [])
            current = sum_amounts(ctx.adjusted_amount(tax_item) for tax_item in related_tax_items)
            description = tax_code.tax_item_description if tax_code else DEFAULT_TAX_ITEM_DESCRIPTION

            if current == expected:
                continue

            new_item: InvoiceItem | None
            if not related_tax_items:
                # Never taxed yet: allowed, since the item belongs to the new invoice.
                # A negative adjusted amount yields a negative tax item.
                new_item = build_tax_item(
                    item, new_invoice.invoice_date, expected - current, description
                )
            else:
                largest = ctx.largest_by_adjusted_amount(related_tax_items)
                new_item = build_adjustment_item(
                    largest, new_invoice.invoice_date, expected - current, description
                )

            if new_item is not None:
                new_items.append(new_item)
        return new_items

    def _items_for_historical_invoice(
        self,
        invoice: Invoice,
        ctx: TaxComputationContext,
        current_tax_items: dict[UUID, list[InvoiceItem]],
    ) -> list[InvoiceItem]:
        """Adjust existing tax items of a historical invoice; never add new ones."""
        precision = ctx.config.tax_amount_precision

        new_items: list[InvoiceItem] = []
        for item in invoice.items:
            if not item.is_taxable:
                continue
            related_tax_items = current_tax_items.get(item.id, [])
            if not related_tax_items:
                continue

            tax_code = self._resolved_tax_code(item, ctx)
            expected = compute_tax_amount(ctx.adjusted_amount(item), tax_code, precision)
            current = sum_amounts(ctx.adjusted_amount(tax_item) for tax_item in related_tax_items)
            if current == expected:
                continue

            description = tax_code.tax_item_description if tax_code else DEFAULT_TAX_ITEM_DESCRIPTION
            largest = ctx.largest_by_adjusted_amount(related_tax_items)
            new_item = build_adjustment_item(
                largest, invoice.invoice_date, expected - current, description
            )
            if new_item is not None:
                new_items.append(new_item)
        return new_items
