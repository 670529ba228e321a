"""Strategies choosing the one applicable tax code of an invoice item.

Resolvers are looked up by identifier in ``TAX_RESOLVERS`` and built once per
computation run, with the run's ``TaxComputationContext`` as sole argument.
Country-specific rules plug in through ``register_tax_resolver``.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import date, tzinfo
from typing import TYPE_CHECKING

from simpletax.schemas.invoice import InvoiceItem
from simpletax.services.taxation_dates import convert_time_zone, parse_time_zone

if TYPE_CHECKING:
    from simpletax.services.tax_computation_context import TaxComputationContext
    from simpletax.services.tax_config import TaxCode

logger = logging.getLogger(__name__)


class TaxResolver(ABC):
    """Picks at most one tax code among the candidates of an invoice item.

    Implementations must not mutate their inputs and must return the same
    result for the same inputs.
    """

    def __init__(self, ctx: "TaxComputationContext"):
        self.ctx = ctx

    @abstractmethod
    def applicable_code_for_item(
        self, tax_codes: Iterable["TaxCode"], item: InvoiceItem
    ) -> "TaxCode | None":
        """Return the applicable tax code, or None when no candidate applies."""


class NullTaxResolver(TaxResolver):
    """Never resolves any tax code, which disables any new taxation."""

    def applicable_code_for_item(
        self, tax_codes: Iterable["TaxCode"], item: InvoiceItem
    ) -> "TaxCode | None":
        return None


class InvoiceItemEndDateBasedResolver(TaxResolver):
    """Select the first tax code valid on the taxation date of the item.

    The taxation date is the end date of the item, or its start date for
    items without an end date. When a taxation time zone is configured, the
    first instant of that day in the account time zone is converted to a day
    in the taxation time zone.
    """

    def __init__(self, ctx: "TaxComputationContext"):
        super().__init__(ctx)
        self.taxation_time_zone: tzinfo | None = ctx.config.taxation_time_zone
        self.account_time_zone: tzinfo | None = None
        if self.taxation_time_zone is not None:
            self.account_time_zone = parse_time_zone(ctx.account.time_zone)

    def taxation_date(self, item: InvoiceItem) -> date:
        applicable_date = item.end_date or item.start_date
        if applicable_date is None:
            raise ValueError(f"Invoice item [{item.id}] has neither an end date nor a start date")
        if self.taxation_time_zone is None or self.account_time_zone is None:
            return applicable_date
        return convert_time_zone(applicable_date, self.account_time_zone, self.taxation_time_zone)

    def applicable_code_for_item(
        self, tax_codes: Iterable["TaxCode"], item: InvoiceItem
    ) -> "TaxCode | None":
        day = self.taxation_date(item)
        for tax_code in tax_codes:
            if tax_code.applies_on(day):
                return tax_code
        return None


TaxResolverFactory = Callable[["TaxComputationContext"], TaxResolver]

DEFAULT_TAX_RESOLVER = "null"

TAX_RESOLVERS: dict[str, TaxResolverFactory] = {
    DEFAULT_TAX_RESOLVER: NullTaxResolver,
    "invoice_item_end_date": InvoiceItemEndDateBasedResolver,
}


def register_tax_resolver(identifier: str, factory: TaxResolverFactory) -> None:
    """Make a resolver available under ``identifier`` for the ``taxResolver`` property."""
    if not identifier or not identifier.strip():
        raise ValueError("Tax resolver identifier must not be blank")
    TAX_RESOLVERS[identifier.strip()] = factory


def is_registered_tax_resolver(identifier: str) -> bool:
    return identifier in TAX_RESOLVERS


def get_tax_resolver_factory(identifier: str) -> TaxResolverFactory | None:
    return TAX_RESOLVERS.get(identifier)


def create_tax_resolver(ctx: "TaxComputationContext") -> TaxResolver:
    """Instantiate the configured resolver, or a NullTaxResolver when that fails.

    Failures are logged and never propagated: a broken resolver must not
    prevent the invoice from being finalized.
    """
    identifier = ctx.config.tax_resolver
    factory = get_tax_resolver_factory(identifier)
    if factory is None:
        logger.error(
            "Cannot find tax resolver [%s]. Defaulting to [%s].",
            identifier,
            DEFAULT_TAX_RESOLVER,
        )
        return NullTaxResolver(ctx)

    try:
        resolver = factory(ctx)
    except Exception:
        logger.exception(
            "Cannot instantiate tax resolver [%s] with factory [%r]. Defaulting to [%s].",
            identifier,
            factory,
            DEFAULT_TAX_RESOLVER,
        )
        return NullTaxResolver(ctx)

    if not isinstance(resolver, TaxResolver):
        logger.error(
            "Factory [%r] of tax resolver [%s] returned [%r], which is not a TaxResolver."
            " Defaulting to [%s].",
            factory,
            identifier,
            resolver,
            DEFAULT_TAX_RESOLVER,
        )
        return NullTaxResolver(ctx)
    return resolver
