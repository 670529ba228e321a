"""TenantTaxConfig model storing the raw tax properties of an organization."""

from sqlalchemy import JSON, Column, DateTime, func

from simpletax.core.database import Base
from simpletax.models.shared import UUIDType, generate_uuid


class TenantTaxConfig(Base):
    """Flat string-keyed tax configuration of one organization."""

    __tablename__ = "tax_configs"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    organization_id = Column(UUIDType, unique=True, index=True, nullable=False)
    properties = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
