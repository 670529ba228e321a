"""Per-run snapshot of everything needed to compute tax items."""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from simpletax.schemas.invoice import Account, Invoice, InvoiceItem
from simpletax.services.amount_adjuster import AmountAdjuster
from simpletax.services.tax_code_service import TaxCodeService
from simpletax.services.tax_config import TaxConfig


@dataclass(frozen=True)
class TaxComputationContext:
    """Immutable holder of pre-computed data, created once per computation run."""

    config: TaxConfig
    account: Account
    all_invoices: tuple[Invoice, ...]
    amount_adjuster: AmountAdjuster
    tax_code_service: TaxCodeService

    def adjusted_amount(self, item: InvoiceItem) -> Decimal:
        return self.amount_adjuster.adjusted_amount(item)

    def largest_by_adjusted_amount(self, items: Iterable[InvoiceItem]) -> InvoiceItem:
        return self.amount_adjuster.largest(items)
