from datetime import date
from decimal import Decimal

import pytest

from billing.exceptions import InvalidInputError, MissingReferenceError
from billing.models import Invoice
from billing.services.currency_service import CurrencyService
from billing.services.expense_service import ExpenseService
from billing.services.reports_service import ReportsService
from tests.factories import ExpenseCategoryFactory, ExpenseFactory, InvoiceFactory


@pytest.fixture
def revenue(user, client_record):
    InvoiceFactory(user=user, client=client_record, status=Invoice.Status.PAID, payment_date=date(2025, 6, 5))
    InvoiceFactory(
        user=user, client=client_record, status=Invoice.Status.PARTIALLY_PAID, currency="USD",
        amount_payable=Decimal("1000.00"), partially_paid_amount=Decimal("500.00"),
        is_partially_paid=True, payment_date=date(2025, 6, 20),
    )
    InvoiceFactory(
        user=user, client=None, status=Invoice.Status.PAID,
        amount_payable=Decimal("10000.00"), payment_date=date(2025, 5, 12),
    )
    InvoiceFactory(user=user, client=client_record, status=Invoice.Status.SENT)


@pytest.mark.django_db
class TestRevenueReports:
    def test_monthly_revenue_newest_first(self, user, revenue):
        report = ReportsService.monthly_revenue(user)

        assert [row["month"] for row in report] == ["2025-06", "2025-05"]
        june = report[0]
        assert june["amount_inr"] == Decimal("118000.00")
        assert june["amount_usd"] == Decimal("500.00")
        assert june["total"] == Decimal("160500.00")
        assert june["currency"] == "INR"
        assert june["count"] == 2
        assert report[1]["total"] == Decimal("10000.00")

    def test_monthly_revenue_in_usd(self, user, revenue):
        report = ReportsService.monthly_revenue(user, preferred_currency="USD", rate="80")

        assert report[0]["total"] == Decimal("1975.00")

    def test_monthly_revenue_respects_date_range(self, user, revenue):
        report = ReportsService.monthly_revenue(user, start=date(2025, 6, 1), end=date(2025, 6, 10))

        assert len(report) == 1
        assert report[0]["amount_usd"] == Decimal("0.00")
        assert report[0]["count"] == 1

    def test_revenue_by_client_labels_deleted_clients(self, user, revenue):
        report = ReportsService.revenue_by_client(user)

        assert [row["client"] for row in report] == ["Acme Studios", "Unknown Client"]
        assert report[0]["total"] == Decimal("160500.00")
        assert report[1]["client_id"] is None

    def test_other_users_are_excluded(self, user, revenue):
        InvoiceFactory(status=Invoice.Status.PAID, payment_date=date(2025, 6, 5))

        assert sum(row["count"] for row in ReportsService.monthly_revenue(user)) == 3


@pytest.mark.django_db
class TestExpenseSummary:
    def test_groups_by_category_with_uncategorized(self, user):
        software = ExpenseCategoryFactory(user=user, name="Software")
        ExpenseFactory(user=user, category=software, amount=Decimal("1500.00"))
        ExpenseFactory(user=user, category=software, amount=Decimal("500.00"))
        ExpenseFactory(user=user, category=None, amount=Decimal("200.00"), currency="USD")

        report = ReportsService.expense_summary(user)

        assert [row["category"] for row in report] == ["Uncategorized", "Software"]
        assert report[0]["total"] == Decimal("17000.00")
        assert report[1]["total"] == Decimal("2000.00")
        assert report[1]["count"] == 2


@pytest.mark.django_db
class TestCurrencyService:
    def test_default_rate_without_settings(self, user):
        assert CurrencyService.get_rate(user) == Decimal("85")
        assert CurrencyService.get_preferred_currency(user) == "INR"

    def test_update_and_convert(self, user):
        CurrencyService.update_settings(user, usd_to_inr_rate="83.5", preferred_currency="USD")

        assert CurrencyService.get_rate(user) == Decimal("83.5")
        assert CurrencyService.convert_for_user(user, "8350", "INR") == Decimal("100.00")
        assert CurrencyService.convert_for_user(user, 100, "USD", "INR") == Decimal("8350.00")

    def test_rate_must_be_positive(self, user):
        with pytest.raises(InvalidInputError):
            CurrencyService.update_settings(user, usd_to_inr_rate="0")

    def test_currency_must_be_supported(self, user):
        with pytest.raises(InvalidInputError):
            CurrencyService.update_settings(user, preferred_currency="EUR")


@pytest.mark.django_db
class TestExpenseService:
    def test_create_expense(self, user, client_record):
        category = ExpenseService.get_or_create_category(user, "  Travel ")

        expense = ExpenseService.create_expense(
            user, "Train to client site", "1234.565", date(2025, 6, 2),
            category=category, client=client_record,
        )

        assert category.name == "Travel"
        assert expense.amount == Decimal("1234.57")
        assert ExpenseService.category_label(expense) == "Travel"

    def test_negative_amount_is_rejected(self, user):
        with pytest.raises(InvalidInputError):
            ExpenseService.create_expense(user, "Refund", "-10", date(2025, 6, 2))

    def test_foreign_category_is_rejected(self, user):
        with pytest.raises(MissingReferenceError):
            ExpenseService.create_expense(user, "Laptop", "90000", date(2025, 6, 2), category=ExpenseCategoryFactory())

    def test_uncategorized_label(self, user):
        expense = ExpenseFactory(user=user, category=None)
        assert ExpenseService.category_label(expense) == "Uncategorized"

    def test_filters(self, user):
        ExpenseFactory(user=user, expense_date=date(2025, 5, 1))
        recent = ExpenseFactory(user=user, expense_date=date(2025, 6, 10))

        qs = ExpenseService.get_expenses_queryset(user, {"date_from": date(2025, 6, 1)})

        assert list(qs) == [recent]
