"""TaxCodeAssignment model recording the tax codes chosen for an invoice item."""

from sqlalchemy import Column, DateTime, String, UniqueConstraint, func

from simpletax.core.database import Base
from simpletax.models.shared import DEFAULT_ORGANIZATION_ID, UUIDType, generate_uuid


class TaxCodeAssignment(Base):
    """Write-once link between an invoice item and the names of its tax codes.

    ``tax_codes`` holds the code names joined by ``", "``. Only the choice of
    names is frozen here: rates and descriptions are always read from the
    current tenant configuration.
    """

    __tablename__ = "tax_code_assignments"
    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "invoice_item_id",
            name="uq_tax_code_assignments_organization_id_invoice_item_id",
        ),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    organization_id = Column(
        UUIDType, nullable=False, index=True, default=DEFAULT_ORGANIZATION_ID
    )
    invoice_id = Column(UUIDType, nullable=False, index=True)
    invoice_item_id = Column(UUIDType, nullable=False, index=True)
    tax_codes = Column(String(1024), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
