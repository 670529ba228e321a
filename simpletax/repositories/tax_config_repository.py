"""TenantTaxConfig repository for data access."""

from uuid import UUID

from sqlalchemy.orm import Session

from simpletax.models.tenant_tax_config import TenantTaxConfig


class TaxConfigRepository:
    """Repository for TenantTaxConfig model."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_organization(self, organization_id: UUID) -> TenantTaxConfig | None:
        return (
            self.db.query(TenantTaxConfig)
            .filter(TenantTaxConfig.organization_id == organization_id)
            .first()
        )

    def get_properties(self, organization_id: UUID) -> dict[str, str]:
        """Get the raw tax properties of an organization, empty when never configured."""
        config = self.get_by_organization(organization_id)
        if not config or not config.properties:
            return {}
        return {str(key): str(value) for key, value in config.properties.items()}

    def save(self, organization_id: UUID, properties: dict[str, str]) -> TenantTaxConfig:
        """Create or wholesale replace the tax properties of an organization."""
        config = self.get_by_organization(organization_id)
        if config is None:
            config = TenantTaxConfig(organization_id=organization_id, properties=dict(properties))
            self.db.add(config)
        else:
            config.properties = dict(properties)  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(config)
        return config
