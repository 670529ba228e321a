"""TaxCodeAssignment repository for data access."""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from simpletax.models.tax_code_assignment import TaxCodeAssignment


class TaxCodeAssignmentRepository:
    """Repository for TaxCodeAssignment model."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        organization_id: UUID,
        invoice_id: UUID,
        invoice_item_id: UUID,
        tax_codes: str,
    ) -> TaxCodeAssignment:
        """Create a new tax code assignment."""
        assignment = TaxCodeAssignment(
            organization_id=organization_id,
            invoice_id=invoice_id,
            invoice_item_id=invoice_item_id,
            tax_codes=tax_codes,
        )
        self.db.add(assignment)
        self.db.commit()
        self.db.refresh(assignment)
        return assignment

    def get_by_invoice_item_id(
        self, invoice_item_id: UUID, organization_id: UUID
    ) -> TaxCodeAssignment | None:
        """Get the tax code assignment of an invoice item."""
        return (
            self.db.query(TaxCodeAssignment)
            .filter(
                TaxCodeAssignment.invoice_item_id == invoice_item_id,
                TaxCodeAssignment.organization_id == organization_id,
            )
            .first()
        )

    def get_by_invoice_id(self, invoice_id: UUID, organization_id: UUID) -> list[TaxCodeAssignment]:
        """Get all tax code assignments recorded for items of an invoice."""
        return (
            self.db.query(TaxCodeAssignment)
            .filter(
                TaxCodeAssignment.invoice_id == invoice_id,
                TaxCodeAssignment.organization_id == organization_id,
            )
            .order_by(TaxCodeAssignment.created_at.asc())
            .all()
        )

    def get_by_invoice_item_ids(
        self, invoice_item_ids: Iterable[UUID], organization_id: UUID
    ) -> list[TaxCodeAssignment]:
        """Get the tax code assignments of several invoice items at once."""
        ids = list(invoice_item_ids)
        if not ids:
            return []
        return (
            self.db.query(TaxCodeAssignment)
            .filter(
                TaxCodeAssignment.invoice_item_id.in_(ids),
                TaxCodeAssignment.organization_id == organization_id,
            )
            .all()
        )

    def update_tax_codes(
        self, invoice_item_id: UUID, tax_codes: str, organization_id: UUID
    ) -> TaxCodeAssignment | None:
        """Replace the tax codes of an existing assignment."""
        assignment = self.get_by_invoice_item_id(invoice_item_id, organization_id)
        if not assignment:
            return None

        assignment.tax_codes = tax_codes  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(assignment)
        return assignment

    def delete(self, invoice_item_id: UUID, organization_id: UUID) -> bool:
        """Delete the tax code assignment of an invoice item."""
        assignment = self.get_by_invoice_item_id(invoice_item_id, organization_id)
        if not assignment:
            return False

        self.db.delete(assignment)
        self.db.commit()
        return True
