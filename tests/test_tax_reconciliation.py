"""Tests for TaxReconciliationService."""

import logging
from datetime import date
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError

from simpletax.repositories.tax_code_assignment_repository import TaxCodeAssignmentRepository
from simpletax.repositories.tax_config_repository import TaxConfigRepository
from simpletax.schemas.invoice import Account, Invoice, InvoiceItem, InvoiceItemType
from simpletax.services.product_catalog import StaticProductCatalog
from simpletax.services.tax_config import TaxCode, TaxConfig
from simpletax.services.tax_reconciliation import (
    TaxReconciliationService,
    all_invoices_of_account,
    build_adjustment_item,
    build_tax_item,
    compute_tax_amount,
    tax_items_grouped_by_taxed_item,
)
from tests.conftest import DEFAULT_ORG_ID, OTHER_ORG_ID

PLAN = "standard-monthly"
PROPERTIES = {
    "taxResolver": "invoice_item_end_date",
    "taxCodes.VAT_20.rate": "0.20",
    "taxCodes.VAT_20.taxItem.description": "VAT 20%",
    "taxCodes.VAT_10.rate": "0.10",
    "taxCodes.VAT_10.taxItem.description": "VAT 10%",
    "products.standard": "VAT_20",
}

HISTORICAL_DATE = date(2024, 1, 1)
NEW_DATE = date(2024, 2, 1)


@pytest.fixture
def account():
    return Account(time_zone="Europe/Paris", tax_country="FR")


@pytest.fixture
def tax_config(db_session):
    TaxConfigRepository(db_session).save(DEFAULT_ORG_ID, PROPERTIES)


@pytest.fixture
def service(db_session, tax_config):
    return TaxReconciliationService(
        db_session,
        organization_id=DEFAULT_ORG_ID,
        product_catalog=StaticProductCatalog({PLAN: "standard"}),
    )


@pytest.fixture
def assignment_repo(db_session):
    return TaxCodeAssignmentRepository(db_session)


def _invoice(account, invoice_date, *items, invoice_id=None):
    return Invoice(
        id=invoice_id or uuid4(),
        account_id=account.id,
        invoice_date=invoice_date,
        items=items,
    )


def _taxable(invoice_id, amount, plan_name=PLAN, end_date=date(2024, 1, 31)):
    return InvoiceItem(
        invoice_id=invoice_id,
        item_type=InvoiceItemType.TAXABLE,
        amount=Decimal(amount),
        plan_name=plan_name,
        start_date=date(2024, 1, 1),
        end_date=end_date,
    )


def _linked(invoice_id, item_type, linked_item, amount):
    return InvoiceItem(
        invoice_id=invoice_id,
        item_type=item_type,
        linked_item_id=linked_item.id,
        amount=Decimal(amount),
    )


class TestHelpers:
    def test_compute_tax_amount_rounds_half_up(self):
        code = TaxCode(name="HALF", rate=Decimal("0.5"))
        assert compute_tax_amount(Decimal("0.05"), code, 2) == Decimal("0.03")
        assert compute_tax_amount(Decimal("-0.05"), code, 2) == Decimal("-0.03")

    def test_compute_tax_amount_precision(self):
        code = TaxCode(name="VAT", rate=Decimal("0.196"))
        assert compute_tax_amount(Decimal("10.00"), code, 3) == Decimal("1.960")
        assert compute_tax_amount(Decimal("10.00"), code, 0) == Decimal("2")

    def test_compute_tax_amount_beyond_default_context(self):
        code = TaxCode(name="HUGE", rate=Decimal("1E+30"))
        assert compute_tax_amount(Decimal("100.00"), code, 2) == Decimal("1" + "0" * 32 + ".00")

    def test_compute_tax_amount_without_code(self):
        assert compute_tax_amount(Decimal("10.00"), None, 2) == Decimal("0")

    def test_build_tax_item_requires_taxable(self):
        tax = InvoiceItem(invoice_id=uuid4(), item_type=InvoiceItemType.TAX)
        with pytest.raises(ValueError):
            build_tax_item(tax, NEW_DATE, Decimal("1"), "tax")

    def test_build_adjustment_item_requires_tax(self):
        taxable = InvoiceItem(invoice_id=uuid4(), item_type=InvoiceItemType.TAXABLE)
        with pytest.raises(ValueError):
            build_adjustment_item(taxable, NEW_DATE, Decimal("1"), "tax")

    def test_zero_amounts_build_nothing(self):
        taxable = InvoiceItem(invoice_id=uuid4(), item_type=InvoiceItemType.TAXABLE)
        tax = InvoiceItem(invoice_id=uuid4(), item_type=InvoiceItemType.TAX)
        assert build_tax_item(taxable, NEW_DATE, Decimal("0.00"), "tax") is None
        assert build_tax_item(taxable, NEW_DATE, None, "tax") is None
        assert build_adjustment_item(tax, NEW_DATE, Decimal("0"), "tax") is None

    def test_build_adjustment_item_goes_to_tax_item_invoice(self):
        tax = InvoiceItem(invoice_id=uuid4(), item_type=InvoiceItemType.TAX)
        adjustment = build_adjustment_item(tax, NEW_DATE, Decimal("-0.20"), "VAT")
        assert adjustment.invoice_id == tax.invoice_id
        assert adjustment.linked_item_id == tax.id
        assert adjustment.item_type == InvoiceItemType.ADJUSTMENT
        assert adjustment.start_date == NEW_DATE

    def test_tax_items_grouped_by_taxed_item(self, account):
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10")
        first = _linked(invoice_id, InvoiceItemType.TAX, taxable, "1")
        second = _linked(invoice_id, InvoiceItemType.TAX, taxable, "1")
        adjustment = _linked(invoice_id, InvoiceItemType.ADJUSTMENT, taxable, "-1")
        grouped = tax_items_grouped_by_taxed_item(
            [_invoice(account, NEW_DATE, taxable, first, adjustment, second)]
        )
        assert grouped == {taxable.id: [first, second]}

    def test_all_invoices_of_account_keeps_new_snapshot(self, account):
        new_id = uuid4()
        historical = _invoice(account, HISTORICAL_DATE)
        stale = _invoice(account, NEW_DATE, invoice_id=new_id)
        fresh = _invoice(account, NEW_DATE, _taxable(new_id, "10"), invoice_id=new_id)

        assert all_invoices_of_account(fresh, [stale, historical]) == (fresh, historical)
        assert all_invoices_of_account(fresh, [historical]) == (historical, fresh)


class TestNewInvoice:
    def test_taxes_new_item(self, service, assignment_repo, account):
        """A 10.00 item at 20% gets a 2.00 tax item dated at the invoice date."""
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10.00")
        new_invoice = _invoice(account, NEW_DATE, taxable, invoice_id=invoice_id)

        items = service.compute_additional_items(new_invoice, [], account)

        assert len(items) == 1
        tax = items[0]
        assert tax.item_type == InvoiceItemType.TAX
        assert tax.amount == Decimal("2.00")
        assert tax.linked_item_id == taxable.id
        assert tax.invoice_id == invoice_id
        assert tax.start_date == NEW_DATE
        assert tax.description == "VAT 20%"

        assignment = assignment_repo.get_by_invoice_item_id(taxable.id, DEFAULT_ORG_ID)
        assert assignment.tax_codes == "VAT_20"
        assert assignment.invoice_id == invoice_id

    def test_second_run_adds_nothing(self, service, account):
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10.00")
        new_invoice = _invoice(account, NEW_DATE, taxable, invoice_id=invoice_id)

        first_run = service.compute_additional_items(new_invoice, [], account)
        applied = _invoice(account, NEW_DATE, taxable, *first_run, invoice_id=invoice_id)

        assert service.compute_additional_items(applied, [], account) == []

    def test_existing_assignment_is_not_overridden(self, service, assignment_repo, account):
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10.00")
        assignment_repo.create(DEFAULT_ORG_ID, invoice_id, taxable.id, "VAT_10")
        new_invoice = _invoice(account, NEW_DATE, taxable, invoice_id=invoice_id)

        items = service.compute_additional_items(new_invoice, [], account)

        assert [item.amount for item in items] == [Decimal("1.00")]
        assert items[0].description == "VAT 10%"
        assignment = assignment_repo.get_by_invoice_item_id(taxable.id, DEFAULT_ORG_ID)
        assert assignment.tax_codes == "VAT_10"

    def test_first_defined_assigned_code_is_used(self, service, assignment_repo, account):
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10.00")
        assignment_repo.create(DEFAULT_ORG_ID, invoice_id, taxable.id, "REMOVED, VAT_10, VAT_20")
        new_invoice = _invoice(account, NEW_DATE, taxable, invoice_id=invoice_id)

        items = service.compute_additional_items(new_invoice, [], account)

        assert [item.amount for item in items] == [Decimal("1.00")]

    def test_over_taxed_item_is_adjusted_down(self, service, account):
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10.00")
        tax = _linked(invoice_id, InvoiceItemType.TAX, taxable, "3.00")
        new_invoice = _invoice(account, NEW_DATE, taxable, tax, invoice_id=invoice_id)

        items = service.compute_additional_items(new_invoice, [], account)

        assert len(items) == 1
        assert items[0].item_type == InvoiceItemType.ADJUSTMENT
        assert items[0].amount == Decimal("-1.00")
        assert items[0].linked_item_id == tax.id
        assert items[0].start_date == NEW_DATE

    def test_under_taxed_item_adjusts_largest_tax_item(self, service, account):
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10.00")
        small = _linked(invoice_id, InvoiceItemType.TAX, taxable, "0.50")
        large = _linked(invoice_id, InvoiceItemType.TAX, taxable, "1.00")
        new_invoice = _invoice(account, NEW_DATE, taxable, small, large, invoice_id=invoice_id)

        items = service.compute_additional_items(new_invoice, [], account)

        assert len(items) == 1
        assert items[0].item_type == InvoiceItemType.ADJUSTMENT
        assert items[0].amount == Decimal("0.50")
        assert items[0].linked_item_id == large.id

    def test_rounding_half_up(self, db_session, account):
        TaxConfigRepository(db_session).save(
            DEFAULT_ORG_ID,
            {
                "taxResolver": "invoice_item_end_date",
                "taxCodes.HALF.rate": "0.5",
                "products.standard": "HALF",
            },
        )
        service = TaxReconciliationService(
            db_session, product_catalog=StaticProductCatalog({PLAN: "standard"})
        )
        invoice_id = uuid4()
        new_invoice = _invoice(account, NEW_DATE, _taxable(invoice_id, "0.05"), invoice_id=invoice_id)

        items = service.compute_additional_items(new_invoice, [], account)

        assert [item.amount for item in items] == [Decimal("0.03")]

    def test_adjustment_larger_than_item_gives_negative_tax(self, service, account):
        """A 10.00 item adjusted by -15.00 is taxed -1.00."""
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10.00")
        credit = _linked(invoice_id, InvoiceItemType.ADJUSTMENT, taxable, "-15.00")
        new_invoice = _invoice(account, NEW_DATE, taxable, credit, invoice_id=invoice_id)

        items = service.compute_additional_items(new_invoice, [], account)

        assert len(items) == 1
        assert items[0].item_type == InvoiceItemType.TAX
        assert items[0].amount == Decimal("-1.00")
        assert items[0].linked_item_id == taxable.id

    def test_negative_taxable_item(self, service, account):
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "-10.00")
        new_invoice = _invoice(account, NEW_DATE, taxable, invoice_id=invoice_id)

        items = service.compute_additional_items(new_invoice, [], account)

        assert [(item.item_type, item.amount) for item in items] == [
            (InvoiceItemType.TAX, Decimal("-2.00"))
        ]

        applied = _invoice(account, NEW_DATE, taxable, *items, invoice_id=invoice_id)
        assert service.compute_additional_items(applied, [], account) == []

    def test_zero_amount_item_reverses_its_tax(self, service, account):
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "0.00")
        tax = _linked(invoice_id, InvoiceItemType.TAX, taxable, "2.00")
        new_invoice = _invoice(account, NEW_DATE, taxable, tax, invoice_id=invoice_id)

        items = service.compute_additional_items(new_invoice, [], account)

        assert len(items) == 1
        assert items[0].item_type == InvoiceItemType.ADJUSTMENT
        assert items[0].amount == Decimal("-2.00")
        assert items[0].linked_item_id == tax.id

    def test_item_without_amount_is_not_taxed(self, service, account):
        invoice_id = uuid4()
        taxable = InvoiceItem(
            invoice_id=invoice_id,
            item_type=InvoiceItemType.TAXABLE,
            plan_name=PLAN,
            end_date=date(2024, 1, 31),
        )
        new_invoice = _invoice(account, NEW_DATE, taxable, invoice_id=invoice_id)
        assert service.compute_additional_items(new_invoice, [], account) == []

    def test_excessive_precision_uses_default(self, db_session, account):
        TaxConfigRepository(db_session).save(
            DEFAULT_ORG_ID, {**PROPERTIES, "taxItem.amount.precision": "30"}
        )
        service = TaxReconciliationService(
            db_session, product_catalog=StaticProductCatalog({PLAN: "standard"})
        )
        invoice_id = uuid4()
        new_invoice = _invoice(
            account, NEW_DATE, _taxable(invoice_id, "100.00"), invoice_id=invoice_id
        )

        items = service.compute_additional_items(new_invoice, [], account)

        assert [item.amount for item in items] == [Decimal("20.00")]

    def test_zero_rate_emits_nothing(self, db_session, assignment_repo, account):
        config = TaxConfig(
            {
                "taxResolver": "invoice_item_end_date",
                "taxCodes.ZERO.rate": "0",
                "products.standard": "ZERO",
            }
        )
        service = TaxReconciliationService(
            db_session, product_catalog=StaticProductCatalog({PLAN: "standard"}), config=config
        )
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10.00")
        new_invoice = _invoice(account, NEW_DATE, taxable, invoice_id=invoice_id)

        assert service.compute_additional_items(new_invoice, [], account) == []
        assert assignment_repo.get_by_invoice_item_id(taxable.id, DEFAULT_ORG_ID) is not None

    def test_null_resolver_taxes_nothing(self, db_session, assignment_repo, account):
        TaxConfigRepository(db_session).save(
            DEFAULT_ORG_ID, {key: value for key, value in PROPERTIES.items() if key != "taxResolver"}
        )
        service = TaxReconciliationService(
            db_session, product_catalog=StaticProductCatalog({PLAN: "standard"})
        )
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10.00")
        new_invoice = _invoice(account, NEW_DATE, taxable, invoice_id=invoice_id)

        assert service.compute_additional_items(new_invoice, [], account) == []
        assert assignment_repo.get_by_invoice_item_id(taxable.id, DEFAULT_ORG_ID) is None

    def test_unmapped_plan_is_not_taxed(self, service, account):
        invoice_id = uuid4()
        new_invoice = _invoice(
            account, NEW_DATE, _taxable(invoice_id, "10.00", plan_name="other"), invoice_id=invoice_id
        )
        assert service.compute_additional_items(new_invoice, [], account) == []

    def test_failing_product_lookup_is_not_taxed(self, db_session, tax_config, account, caplog):
        class BrokenCatalog:
            def product_name_for_plan(self, plan_name):
                raise LookupError(plan_name)

        service = TaxReconciliationService(db_session, product_catalog=BrokenCatalog())
        invoice_id = uuid4()
        new_invoice = _invoice(account, NEW_DATE, _taxable(invoice_id, "10.00"), invoice_id=invoice_id)

        assert service.compute_additional_items(new_invoice, [], account) == []
        assert f"Cannot find the product of plan [{PLAN}]" in caplog.text

    def test_other_item_types_are_ignored(self, service, account):
        invoice_id = uuid4()
        other = InvoiceItem(
            invoice_id=invoice_id,
            item_type=InvoiceItemType.OTHER,
            amount=Decimal("10.00"),
            plan_name=PLAN,
        )
        new_invoice = _invoice(account, NEW_DATE, other, invoice_id=invoice_id)
        assert service.compute_additional_items(new_invoice, [], account) == []

    def test_item_without_dates_is_skipped(self, service, assignment_repo, account, caplog):
        invoice_id = uuid4()
        undated = InvoiceItem(
            invoice_id=invoice_id,
            item_type=InvoiceItemType.TAXABLE,
            amount=Decimal("10.00"),
            plan_name=PLAN,
        )
        dated = _taxable(invoice_id, "5.00")
        new_invoice = _invoice(account, NEW_DATE, undated, dated, invoice_id=invoice_id)

        items = service.compute_additional_items(new_invoice, [], account)

        assert [item.linked_item_id for item in items] == [dated.id]
        assert assignment_repo.get_by_invoice_item_id(undated.id, DEFAULT_ORG_ID) is None
        assert f"Cannot resolve tax code of invoice item [{undated.id}]" in caplog.text

    def test_tax_code_restricted_to_other_country(self, db_session, account):
        TaxConfigRepository(db_session).save(
            DEFAULT_ORG_ID, {**PROPERTIES, "taxCodes.VAT_20.country": "DE"}
        )
        service = TaxReconciliationService(
            db_session, product_catalog=StaticProductCatalog({PLAN: "standard"})
        )
        invoice_id = uuid4()
        new_invoice = _invoice(account, NEW_DATE, _taxable(invoice_id, "10.00"), invoice_id=invoice_id)

        assert service.compute_additional_items(new_invoice, [], account) == []

        german = Account(id=account.id, tax_country="DE")
        items = service.compute_additional_items(new_invoice, [], german)
        assert [item.amount for item in items] == [Decimal("2.00")]

    def test_dry_run_saves_nothing(self, service, assignment_repo, account):
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10.00")
        new_invoice = _invoice(account, NEW_DATE, taxable, invoice_id=invoice_id)

        items = service.compute_additional_items(new_invoice, [], account, dry_run=True)

        assert [item.amount for item in items] == [Decimal("2.00")]
        assert assignment_repo.get_by_invoice_item_id(taxable.id, DEFAULT_ORG_ID) is None

    def test_failed_assignment_leaves_item_untaxed(self, service, assignment_repo, account, caplog):
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10.00")
        new_invoice = _invoice(account, NEW_DATE, taxable, invoice_id=invoice_id)

        with patch.object(
            TaxCodeAssignmentRepository, "create", side_effect=SQLAlchemyError("database is down")
        ):
            items = service.compute_additional_items(new_invoice, [], account)

        assert items == []
        assert assignment_repo.get_by_invoice_item_id(taxable.id, DEFAULT_ORG_ID) is None
        assert any(
            r.levelno == logging.ERROR
            and r.exc_info
            and f"Cannot save tax code [VAT_20] of invoice item [{taxable.id}]" in r.getMessage()
            for r in caplog.records
        )

    def test_assignments_are_per_organization(self, db_session, assignment_repo, account):
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10.00")
        assignment_repo.create(OTHER_ORG_ID, invoice_id, taxable.id, "VAT_10")
        TaxConfigRepository(db_session).save(DEFAULT_ORG_ID, PROPERTIES)
        service = TaxReconciliationService(
            db_session,
            organization_id=DEFAULT_ORG_ID,
            product_catalog=StaticProductCatalog({PLAN: "standard"}),
        )
        new_invoice = _invoice(account, NEW_DATE, taxable, invoice_id=invoice_id)

        items = service.compute_additional_items(new_invoice, [], account)

        assert [item.amount for item in items] == [Decimal("2.00")]

    def test_computation_is_logged(self, service, account, caplog):
        caplog.set_level(logging.INFO, logger="simpletax")
        invoice_id = uuid4()
        new_invoice = _invoice(account, NEW_DATE, _taxable(invoice_id, "10.00"), invoice_id=invoice_id)

        service.compute_additional_items(new_invoice, [], account)

        assert f"Computed 1 additional tax items for invoice {invoice_id}" in caplog.text


class TestHistoricalInvoices:
    @pytest.fixture
    def taxed_history(self, assignment_repo, account):
        """A historical invoice with a 10.00 item already taxed 2.00 at VAT_20."""
        invoice_id = uuid4()
        taxable = _taxable(invoice_id, "10.00")
        tax = _linked(invoice_id, InvoiceItemType.TAX, taxable, "2.00")
        assignment_repo.create(DEFAULT_ORG_ID, invoice_id, taxable.id, "VAT_20")
        return _invoice(account, HISTORICAL_DATE, taxable, tax, invoice_id=invoice_id)

    def test_negative_adjustment_reduces_tax(self, service, taxed_history, account):
        """A -1.00 adjustment brings the tax from 2.00 down to 1.80."""
        taxable, tax = taxed_history.items
        new_id = uuid4()
        new_invoice = _invoice(
            account,
            NEW_DATE,
            _linked(new_id, InvoiceItemType.ADJUSTMENT, taxable, "-1.00"),
            invoice_id=new_id,
        )

        items = service.compute_additional_items(new_invoice, [taxed_history], account)

        assert len(items) == 1
        adjustment = items[0]
        assert adjustment.item_type == InvoiceItemType.ADJUSTMENT
        assert adjustment.amount == Decimal("-0.20")
        assert adjustment.linked_item_id == tax.id
        assert adjustment.invoice_id == taxed_history.id
        assert adjustment.start_date == HISTORICAL_DATE

    def test_positive_adjustment_increases_tax(self, service, taxed_history, account):
        """A +6.00 adjustment brings the tax from 2.00 up to 3.20."""
        taxable, tax = taxed_history.items
        new_id = uuid4()
        new_invoice = _invoice(
            account,
            NEW_DATE,
            _linked(new_id, InvoiceItemType.ADJUSTMENT, taxable, "6.00"),
            invoice_id=new_id,
        )

        items = service.compute_additional_items(new_invoice, [taxed_history], account)

        assert len(items) == 1
        assert items[0].amount == Decimal("1.20")
        assert items[0].linked_item_id == tax.id
        assert items[0].start_date == HISTORICAL_DATE
        assert items[0].description == "VAT 20%"

    def test_fully_credited_item_reverses_tax(self, service, taxed_history, account):
        """A -10.00 adjustment brings the item to zero and its tax back to 0.00."""
        taxable, tax = taxed_history.items
        new_id = uuid4()
        new_invoice = _invoice(
            account,
            NEW_DATE,
            _linked(new_id, InvoiceItemType.ADJUSTMENT, taxable, "-10.00"),
            invoice_id=new_id,
        )

        items = service.compute_additional_items(new_invoice, [taxed_history], account)

        assert len(items) == 1
        assert items[0].amount == Decimal("-2.00")
        assert items[0].linked_item_id == tax.id
        assert items[0].start_date == HISTORICAL_DATE

    def test_item_credited_below_zero(self, service, taxed_history, account):
        """A -15.00 adjustment makes the expected tax -1.00, from 2.00 already taxed."""
        taxable, tax = taxed_history.items
        new_id = uuid4()
        new_invoice = _invoice(
            account,
            NEW_DATE,
            _linked(new_id, InvoiceItemType.ADJUSTMENT, taxable, "-15.00"),
            invoice_id=new_id,
        )

        items = service.compute_additional_items(new_invoice, [taxed_history], account)

        assert [(item.linked_item_id, item.amount) for item in items] == [
            (tax.id, Decimal("-3.00"))
        ]

    def test_unchanged_history_adds_nothing(self, service, taxed_history, account):
        new_id = uuid4()
        new_invoice = _invoice(account, NEW_DATE, invoice_id=new_id)
        assert service.compute_additional_items(new_invoice, [taxed_history], account) == []

    def test_untaxed_historical_item_is_never_taxed(self, service, assignment_repo, account):
        historical_id = uuid4()
        taxable = _taxable(historical_id, "10.00")
        historical = _invoice(account, HISTORICAL_DATE, taxable, invoice_id=historical_id)
        new_invoice = _invoice(account, NEW_DATE)

        assert service.compute_additional_items(new_invoice, [historical], account) == []
        assert assignment_repo.get_by_invoice_item_id(taxable.id, DEFAULT_ORG_ID) is None

    def test_removed_tax_code_reverses_tax(self, db_session, taxed_history, account, caplog):
        TaxConfigRepository(db_session).save(
            DEFAULT_ORG_ID,
            {key: value for key, value in PROPERTIES.items() if not key.startswith("taxCodes.VAT_20")},
        )
        service = TaxReconciliationService(
            db_session, product_catalog=StaticProductCatalog({PLAN: "standard"})
        )
        _, tax = taxed_history.items

        items = service.compute_additional_items(_invoice(account, NEW_DATE), [taxed_history], account)

        assert len(items) == 1
        assert items[0].amount == Decimal("-2.00")
        assert items[0].linked_item_id == tax.id
        assert items[0].description == "tax"
        assert "Tax code [VAT_20]" in caplog.text

    def test_items_follow_invoice_order(self, service, taxed_history, account):
        taxable, tax = taxed_history.items
        new_id = uuid4()
        new_taxable = _taxable(new_id, "5.00")
        new_invoice = _invoice(
            account,
            NEW_DATE,
            new_taxable,
            _linked(new_id, InvoiceItemType.ADJUSTMENT, taxable, "-1.00"),
            invoice_id=new_id,
        )

        items = service.compute_additional_items(new_invoice, [taxed_history], account)

        assert [item.linked_item_id for item in items] == [tax.id, new_taxable.id]
        assert [item.amount for item in items] == [Decimal("-0.20"), Decimal("1.00")]
