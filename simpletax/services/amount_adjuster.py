"""Adjusted amounts of invoice items, taking every adjustment of the account into account."""

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from simpletax.schemas.invoice import Invoice, InvoiceItem


def sum_amounts(amounts: Iterable[Decimal | None]) -> Decimal:
    """Sum amounts, counting missing ones as zero."""
    total = Decimal("0")
    for amount in amounts:
        if amount is not None:
            total += amount
    return total


def sum_items(items: Iterable[InvoiceItem] | None) -> Decimal:
    """Sum the amounts of items, counting missing ones as zero."""
    if items is None:
        return Decimal("0")
    return sum_amounts(item.amount for item in items)


class AmountAdjuster:
    """Index of adjustment items grouped by the item they adjust.

    Built once per computation run over all invoices of the account.
    Adjustments are not themselves adjusted: there is no recursive chaining.
    """

    def __init__(self, invoices: Iterable[Invoice]):
        self._adjustments: dict[UUID, list[InvoiceItem]] = {}
        for invoice in invoices:
            for item in invoice.items:
                if item.is_adjustment and item.linked_item_id is not None:
                    self._adjustments.setdefault(item.linked_item_id, []).append(item)

    def adjusted_amount(self, item: InvoiceItem) -> Decimal:
        """The item amount plus the amounts of all adjustments linked to it."""
        return sum_amounts([item.amount]) + sum_items(self._adjustments.get(item.id))

    def largest(self, items: Iterable[InvoiceItem]) -> InvoiceItem:
        """The item with the greatest adjusted amount.

        Ties are broken by the greatest item id, in its canonical string form.

        Raises:
            ValueError: if ``items`` is empty.
        """
        return max(items, key=lambda item: (self.adjusted_amount(item), str(item.id)))
