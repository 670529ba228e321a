from simpletax.schemas.invoice import (
    Account,
    AdditionalItemsRequest,
    Invoice,
    InvoiceItem,
    InvoiceItemType,
)
from simpletax.schemas.tax_code import (
    TaxCodeAssignmentCreate,
    TaxCodeAssignmentResponse,
    TaxCodeAssignmentUpdate,
    TaxCodeResponse,
)
from simpletax.schemas.tax_config import TaxConfigResponse, TaxConfigUpdate

__all__ = [
    "Account",
    "AdditionalItemsRequest",
    "Invoice",
    "InvoiceItem",
    "InvoiceItemType",
    "TaxCodeAssignmentCreate",
    "TaxCodeAssignmentResponse",
    "TaxCodeAssignmentUpdate",
    "TaxCodeResponse",
    "TaxConfigResponse",
    "TaxConfigUpdate",
]
