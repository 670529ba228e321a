"""Tenant tax configuration and the catalog of tax codes it defines.

Configuration is a flat string map, typically::

    taxResolver = invoice_item_end_date
    taxItem.amount.precision = 2
    taxationTimeZone = Europe/Paris
    taxCodes.VAT_FR_20.rate = 0.20
    taxCodes.VAT_FR_20.taxItem.description = VAT 20%
    taxCodes.VAT_FR_20.startingOn = 2014-01-01
    taxCodes.VAT_FR_20.country = FR
    products.standard = VAT_FR_20, VAT_FR_19_6

A ``TaxConfig`` is built wholesale from such a map and never mutated. Any
invalid value is logged and replaced by its default, so that a broken
configuration never prevents invoices from being finalized.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, tzinfo
from decimal import Decimal, InvalidOperation

from simpletax.services.tax_resolvers import DEFAULT_TAX_RESOLVER, is_registered_tax_resolver
from simpletax.services.taxation_dates import parse_time_zone, time_zone_name

logger = logging.getLogger(__name__)

TAX_RESOLVER_PROPERTY = "taxResolver"
TAX_AMOUNT_PRECISION_PROPERTY = "taxItem.amount.precision"
TAXATION_TIME_ZONE_PROPERTY = "taxationTimeZone"

TAX_CODES_PREFIX = "taxCodes."
PRODUCT_TAX_CODES_PREFIX = "products."

TAX_ITEM_DESCRIPTION_SUFFIX = ".taxItem.description"
RATE_SUFFIX = ".rate"
STARTING_ON_SUFFIX = ".startingOn"
STOPPING_ON_SUFFIX = ".stoppingOn"
COUNTRY_SUFFIX = ".country"

DEFAULT_TAX_ITEM_DESCRIPTION = "tax"
DEFAULT_TAX_RATE = Decimal("0.00")
DEFAULT_TAX_AMOUNT_PRECISION = 2
MAX_TAX_AMOUNT_PRECISION = 12

TAX_CODES_JOIN_SEPARATOR = ", "
_TAX_CODES_SPLIT_PATTERN = re.compile(r"[,\s]+")
_COUNTRY_PATTERN = re.compile(r"^[A-Z]{2}$")


@dataclass(frozen=True)
class TaxCode:
    """A named, time-bounded tax rate.

    The validity window is half-open: ``starting_on <= day < stopping_on``,
    a missing bound leaving that side unbounded.
    """

    name: str
    tax_item_description: str = DEFAULT_TAX_ITEM_DESCRIPTION
    rate: Decimal = DEFAULT_TAX_RATE
    starting_on: date | None = None
    stopping_on: date | None = None
    country: str | None = None

    def applies_on(self, day: date) -> bool:
        if self.starting_on is not None and day < self.starting_on:
            return False
        if self.stopping_on is not None and day >= self.stopping_on:
            return False
        return True

    def applies_to_country(self, country: str | None) -> bool:
        """Codes without a country restriction apply to every account."""
        return self.country is None or self.country == country


def split_tax_codes(names: str) -> list[str]:
    """Split a comma and/or whitespace separated list of tax code names.

    Duplicates are dropped, first occurrence order is kept.
    """
    result: list[str] = []
    for name in _TAX_CODES_SPLIT_PATTERN.split(names):
        if name and name not in result:
            result.append(name)
    return result


def join_tax_codes(tax_codes: Iterable[TaxCode | str]) -> str:
    """Join tax codes, or bare names, the way they are stored in assignments."""
    names = [code.name if isinstance(code, TaxCode) else code for code in tax_codes]
    return TAX_CODES_JOIN_SEPARATOR.join(names)


# ---------------------------------------------------------------------------
# String to typed value conversions
# ---------------------------------------------------------------------------


def _string(properties: Mapping[str, str], name: str, default: str) -> str:
    value = properties.get(name)
    return default if value is None else value


def _decimal(properties: Mapping[str, str], name: str, default: Decimal) -> Decimal:
    value = properties.get(name)
    if value is None or not value.strip():
        return default
    try:
        converted = Decimal(value.strip())
    except InvalidOperation:
        logger.warning("Invalid decimal [%s] for property [%s], using %s", value, name, default)
        return default
    if not converted.is_finite() or converted < 0:
        logger.warning("Invalid rate [%s] for property [%s], using %s", value, name, default)
        return default
    return converted


def _integer(
    properties: Mapping[str, str], name: str, default: int, maximum: int | None = None
) -> int:
    value = properties.get(name)
    if value is None or not value.strip():
        return default
    try:
        converted = int(value.strip())
    except ValueError:
        logger.warning("Invalid integer [%s] for property [%s], using %s", value, name, default)
        return default
    if converted < 0:
        logger.warning("Negative integer [%s] for property [%s], using %s", value, name, default)
        return default
    if maximum is not None and converted > maximum:
        logger.warning(
            "Integer [%s] for property [%s] exceeds %s, using %s", value, name, maximum, default
        )
        return default
    return converted


def _date(properties: Mapping[str, str], name: str) -> date | None:
    value = properties.get(name)
    if value is None or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        logger.warning("Invalid ISO date [%s] for property [%s], ignoring it", value, name)
        return None


def _time_zone(properties: Mapping[str, str], name: str) -> tzinfo | None:
    value = properties.get(name)
    if value is None or not value.strip():
        return None
    try:
        return parse_time_zone(value)
    except ValueError:
        logger.warning("Invalid time zone [%s] for property [%s], ignoring it", value, name)
        return None


def _country(properties: Mapping[str, str], name: str) -> str | None:
    value = properties.get(name)
    if value is None or not value.strip():
        return None
    code = value.strip().upper()
    if not _COUNTRY_PATTERN.match(code):
        logger.warning("Invalid country code [%s] for property [%s], ignoring it", value, name)
        return None
    return code


class TaxCodeCatalog:
    """Tax codes of a tenant, indexed by name, plus the product to codes mapping."""

    def __init__(
        self,
        tax_codes: Mapping[str, TaxCode] | None = None,
        product_tax_codes: Mapping[str, str] | None = None,
    ):
        self._tax_codes: dict[str, TaxCode] = dict(tax_codes or {})
        self._product_tax_codes: dict[str, str] = dict(product_tax_codes or {})

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> "TaxCodeCatalog":
        product_tax_codes = {
            name[len(PRODUCT_TAX_CODES_PREFIX) :]: value
            for name, value in properties.items()
            if name.startswith(PRODUCT_TAX_CODES_PREFIX) and value is not None
        }
        return cls(cls.parse(properties), product_tax_codes)

    @staticmethod
    def parse(properties: Mapping[str, str]) -> dict[str, TaxCode]:
        """Build one TaxCode per distinct name found under ``taxCodes.``.

        Codes come out in the order their first property was declared.
        """
        names: list[str] = []
        for prop_name in properties:
            if not prop_name.startswith(TAX_CODES_PREFIX):
                continue
            name = prop_name[len(TAX_CODES_PREFIX) :].split(".", 1)[0]
            if name and name not in names:
                names.append(name)

        codes: dict[str, TaxCode] = {}
        for name in names:
            prefix = TAX_CODES_PREFIX + name
            code = TaxCode(
                name=name,
                tax_item_description=_string(
                    properties, prefix + TAX_ITEM_DESCRIPTION_SUFFIX, DEFAULT_TAX_ITEM_DESCRIPTION
                ),
                rate=_decimal(properties, prefix + RATE_SUFFIX, DEFAULT_TAX_RATE),
                starting_on=_date(properties, prefix + STARTING_ON_SUFFIX),
                stopping_on=_date(properties, prefix + STOPPING_ON_SUFFIX),
                country=_country(properties, prefix + COUNTRY_SUFFIX),
            )
            if code.starting_on and code.stopping_on and code.starting_on > code.stopping_on:
                logger.error(
                    "Tax code [%s] starts on %s after it stops on %s; it will never apply",
                    name,
                    code.starting_on,
                    code.stopping_on,
                )
            codes[name] = code
        return codes

    @property
    def tax_codes(self) -> list[TaxCode]:
        return list(self._tax_codes.values())

    def find_by_name(self, name: str | None) -> TaxCode | None:
        if name is None:
            return None
        return self._tax_codes.get(name)

    def codes_for_product(self, product_name: str) -> list[TaxCode]:
        """Tax codes configured for a product, in the order they are listed."""
        names = self._product_tax_codes.get(product_name)
        if names is None:
            return []
        return self._find_all(
            names,
            "Tax code [%s] configured for product [%s] is undefined."
            " Config spelling error? Ignoring it.",
            product_name,
        )

    def find_by_names(self, names: str, error_context: str) -> list[TaxCode]:
        """Resolve a stored list of names, skipping (and logging) undefined ones."""
        return self._find_all(
            names,
            "Tax code [%s] %s is undefined. Erroneously removed from config? Ignoring it.",
            error_context,
        )

    def _find_all(self, names: str, error_message: str, context: str) -> list[TaxCode]:
        codes: list[TaxCode] = []
        for name in split_tax_codes(names):
            code = self.find_by_name(name)
            if code is None:
                logger.error(error_message, name, context)
                continue
            codes.append(code)
        return codes

    def undefined_product_references(self) -> list[tuple[str, str]]:
        """List ``(product, tax code name)`` pairs that point to no defined code."""
        undefined: list[tuple[str, str]] = []
        for product_name, names in self._product_tax_codes.items():
            for name in split_tax_codes(names):
                if name not in self._tax_codes:
                    undefined.append((product_name, name))
        return undefined


class TaxConfig:
    """Immutable, typed view over the tax properties of one tenant."""

    def __init__(self, properties: Mapping[str, str] | None = None):
        self._properties: dict[str, str] = dict(properties or {})

        self.taxation_time_zone: tzinfo | None = _time_zone(
            self._properties, TAXATION_TIME_ZONE_PROPERTY
        )
        self.tax_amount_precision: int = _integer(
            self._properties,
            TAX_AMOUNT_PRECISION_PROPERTY,
            DEFAULT_TAX_AMOUNT_PRECISION,
            maximum=MAX_TAX_AMOUNT_PRECISION,
        )
        self.tax_resolver: str = self._parse_tax_resolver()
        self.catalog = TaxCodeCatalog.from_properties(self._properties)

        self._check_product_mappings()

    @property
    def properties(self) -> dict[str, str]:
        return dict(self._properties)

    @property
    def taxation_time_zone_name(self) -> str | None:
        return time_zone_name(self.taxation_time_zone)

    def _parse_tax_resolver(self) -> str:
        fallback_msg = (
            f" Default tax resolver [{DEFAULT_TAX_RESOLVER}] will be applied,"
            " which disables any new taxation."
        )
        identifier = (self._properties.get(TAX_RESOLVER_PROPERTY) or "").strip()
        if not identifier:
            logger.warning(
                "Blank property [%s], whereas it should not be blank.%s",
                TAX_RESOLVER_PROPERTY,
                fallback_msg,
            )
            return DEFAULT_TAX_RESOLVER
        if not is_registered_tax_resolver(identifier):
            logger.error(
                "Unknown tax resolver [%s] specified by the [%s] configuration property.%s",
                identifier,
                TAX_RESOLVER_PROPERTY,
                fallback_msg,
            )
            return DEFAULT_TAX_RESOLVER
        return identifier

    def _check_product_mappings(self) -> None:
        for product_name, name in self.catalog.undefined_product_references():
            logger.error(
                "Inconsistent config property [%s], because the tax code [%s] is not defined"
                " anywhere. Config spelling error? You should fix this!",
                PRODUCT_TAX_CODES_PREFIX + product_name,
                name,
            )

    def find_tax_code(self, name: str | None) -> TaxCode | None:
        return self.catalog.find_by_name(name)

    def configured_tax_codes(self, product_name: str) -> list[TaxCode]:
        return self.catalog.codes_for_product(product_name)

    def find_tax_codes(self, names: str, error_context: str) -> list[TaxCode]:
        return self.catalog.find_by_names(names, error_context)
