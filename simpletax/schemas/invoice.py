"""Read-only snapshot of the host's invoices, as consumed by the tax engine."""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class InvoiceItemType(str, Enum):
    """Invoice item type enum."""

    TAXABLE = "taxable"
    TAX = "tax"
    ADJUSTMENT = "adjustment"
    OTHER = "other"


class InvoiceItem(BaseModel):
    """An invoice line as seen by the tax engine.

    A TAX item links to the TAXABLE item it taxes; an ADJUSTMENT item links
    to the item (TAXABLE or TAX) it adjusts. Items emitted by the engine are
    dated through ``start_date``.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    invoice_id: UUID
    account_id: UUID | None = None
    item_type: InvoiceItemType
    linked_item_id: UUID | None = None
    amount: Decimal | None = None
    plan_name: str | None = None
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None

    @property
    def is_taxable(self) -> bool:
        return self.item_type == InvoiceItemType.TAXABLE

    @property
    def is_tax(self) -> bool:
        return self.item_type == InvoiceItemType.TAX

    @property
    def is_adjustment(self) -> bool:
        return self.item_type == InvoiceItemType.ADJUSTMENT


class Invoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    account_id: UUID
    invoice_date: date
    items: tuple[InvoiceItem, ...] = ()


class Account(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    time_zone: str = Field(default="UTC", max_length=64)
    tax_country: str | None = Field(default=None, pattern=r"^[A-Z]{2}$")


class AdditionalItemsRequest(BaseModel):
    """Everything the engine needs for one invoice-finalization run."""

    new_invoice: Invoice
    invoices: list[Invoice] = Field(default_factory=list)
    account: Account
    plan_products: dict[str, str] = Field(default_factory=dict)
