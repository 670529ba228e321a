from simpletax.models.tax_code_assignment import TaxCodeAssignment
from simpletax.models.tenant_tax_config import TenantTaxConfig

__all__ = [
    "TaxCodeAssignment",
    "TenantTaxConfig",
]
