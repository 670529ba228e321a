"""Lookup of the product an invoice item's plan belongs to."""

import logging
from collections.abc import Mapping
from typing import Protocol

logger = logging.getLogger(__name__)


class ProductCatalog(Protocol):
    """Host collaborator resolving a plan name into its product name.

    Implementations may raise when the lookup fails.
    """

    def product_name_for_plan(self, plan_name: str) -> str | None: ...


class StaticProductCatalog:
    """Product catalog backed by a fixed ``plan name -> product name`` mapping."""

    def __init__(self, plan_products: Mapping[str, str] | None = None):
        self._plan_products = dict(plan_products or {})

    def product_name_for_plan(self, plan_name: str) -> str | None:
        return self._plan_products.get(plan_name)


class MemoizedProductCatalog:
    """Per-run cache in front of a product catalog.

    Each plan is looked up at most once. A failing lookup is logged and
    cached as "no product", which excludes the item from catalog-based tax
    code resolution for the rest of the run.
    """

    def __init__(self, catalog: ProductCatalog | None):
        self._catalog = catalog
        self._products: dict[str, str | None] = {}

    def product_name_for_plan(self, plan_name: str) -> str | None:
        if plan_name in self._products:
            return self._products[plan_name]

        product_name: str | None = None
        if self._catalog is not None:
            try:
                product_name = self._catalog.product_name_for_plan(plan_name)
            except Exception:
                logger.warning(
                    "Cannot find the product of plan [%s], ignoring its configured tax codes",
                    plan_name,
                    exc_info=True,
                )
                product_name = None
        self._products[plan_name] = product_name
        return product_name
