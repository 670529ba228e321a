from simpletax.repositories.tax_code_assignment_repository import TaxCodeAssignmentRepository
from simpletax.repositories.tax_config_repository import TaxConfigRepository

__all__ = [
    "TaxCodeAssignmentRepository",
    "TaxConfigRepository",
]
