from datetime import date
from decimal import Decimal

import pytest

from billing.exceptions import InvalidInputError, InvoiceStateError, MissingReferenceError
from billing.models import Invoice, InvoiceActivity
from billing.services.invoice_service import InvoiceService
from billing.services.totals_service import draft_from_form
from tests.factories import ClientFactory, InvoiceFactory, InvoiceItemFactory, ReminderSettingsFactory, UserFactory


def service_draft(rate="1000", quantity="1", **extra):
    data = {"engagement_type": "service", "currency": "INR",
            "items": [{"description": "Consulting", "quantity": quantity, "rate": rate}]}
    data.update(extra)
    return draft_from_form(data)


@pytest.mark.django_db
class TestInvoiceNumbers:
    def test_first_number_of_the_month(self, user):
        assert InvoiceService.generate_invoice_number(user, date(2025, 6, 10)) == "INV-2025-06-001"

    def test_next_free_number_for_user_and_month(self, user):
        InvoiceFactory(user=user, invoice_number="INV-2025-06-001")
        InvoiceFactory(user=user, invoice_number="INV-2025-06-007")
        InvoiceFactory(user=user, invoice_number="INV-2025-05-042")
        InvoiceFactory(invoice_number="INV-2025-06-050")

        assert InvoiceService.generate_invoice_number(user, date(2025, 6, 30)) == "INV-2025-06-008"

    def test_prefix_is_configurable(self, user, settings):
        settings.BILLING = {"INVOICE_NUMBER_PREFIX": "BD"}
        assert InvoiceService.generate_invoice_number(user, date(2025, 1, 2)) == "BD-2025-01-001"


@pytest.mark.django_db
class TestCreateInvoice:
    def test_persists_items_and_resolved_totals(self, user, client_record):
        draft = service_draft(rate="50000", quantity="2", is_gst_registered=True, gst_rate="18")

        invoice = InvoiceService.create_invoice(user, client_record, draft, issue_date=date(2025, 6, 1))
        invoice.refresh_from_db()

        assert invoice.status == Invoice.Status.DRAFT
        assert invoice.invoice_number == "INV-2025-06-001"
        assert invoice.due_date == date(2025, 6, 16)
        assert invoice.subtotal == Decimal("100000.00")
        assert invoice.gst_amount == Decimal("18000.00")
        assert invoice.total == Decimal("118000.00")
        assert invoice.items.count() == 1
        assert invoice.items.get().amount == Decimal("100000.00")
        assert invoice.activities.filter(action=InvoiceActivity.ActionType.CREATED).exists()

    def test_stores_effective_auto_tds_choice(self, user, client_record):
        invoice = InvoiceService.create_invoice(user, client_record, service_draft(rate="50000"))
        invoice.refresh_from_db()

        assert invoice.is_tds_applicable is True
        assert invoice.tds_amount == Decimal("5000.00")
        assert invoice.amount_payable == Decimal("45000.00")

    def test_milestone_invoice_has_no_items(self, user, client_record):
        draft = draft_from_form({
            "engagement_type": "milestone",
            "items": [{"quantity": 1, "rate": 999}],
            "milestones": [{"name": "Design", "amount": "10000"}, {"name": "Build", "amount": "15000"}],
        })

        invoice = InvoiceService.create_invoice(user, client_record, draft)

        assert invoice.items.count() == 0
        assert list(invoice.milestones.values_list("name", flat=True)) == ["Design", "Build"]
        assert invoice.subtotal == Decimal("25000.00")

    def test_rejects_client_of_another_user(self, user):
        with pytest.raises(MissingReferenceError):
            InvoiceService.create_invoice(user, ClientFactory(), service_draft())

    def test_rejects_due_date_before_issue_date(self, user, client_record):
        with pytest.raises(InvalidInputError):
            InvoiceService.create_invoice(
                user, client_record, service_draft(),
                issue_date=date(2025, 6, 10), due_date=date(2025, 6, 1),
            )

    def test_zero_quantity_item_is_not_saved(self, user, client_record):
        draft = service_draft(rate="500", quantity="")

        with pytest.raises(InvalidInputError):
            InvoiceService.create_invoice(user, client_record, draft)

        assert not Invoice.objects.filter(user=user).exists()

    def test_due_date_uses_configured_default(self, user, client_record, settings):
        settings.BILLING = {"INVOICE_DUE_DAYS": 30}

        invoice = InvoiceService.create_invoice(user, client_record, service_draft(), issue_date=date(2025, 6, 1))

        assert invoice.due_date == date(2025, 7, 1)


@pytest.mark.django_db
class TestUpdateInvoice:
    def test_draft_items_and_totals_are_replaced(self, user, client_record):
        invoice = InvoiceService.create_invoice(user, client_record, service_draft(rate="1000"))

        InvoiceService.update_invoice(invoice, service_draft(rate="2000", quantity="3"))
        invoice.refresh_from_db()

        assert invoice.items.count() == 1
        assert invoice.subtotal == Decimal("6000.00")
        assert invoice.total == Decimal("6000.00")

    def test_zero_quantity_item_is_rejected_on_update(self, user, client_record):
        invoice = InvoiceService.create_invoice(user, client_record, service_draft(rate="1000"))

        with pytest.raises(InvalidInputError):
            InvoiceService.update_invoice(invoice, service_draft(rate="1000", quantity="0"))

        invoice.refresh_from_db()
        assert invoice.items.get().quantity == Decimal("1")

    def test_sent_invoice_cannot_be_edited(self):
        invoice = InvoiceFactory(status=Invoice.Status.SENT)
        with pytest.raises(InvoiceStateError):
            InvoiceService.update_invoice(invoice, service_draft())


@pytest.mark.django_db
class TestSendInvoice:
    def test_enrols_invoice_for_first_reminder(self, user, client_record):
        ReminderSettingsFactory(user=user, days_before_due=[7, 3, 1], days_after_due=[1, 3, 7])
        invoice = InvoiceService.create_invoice(user, client_record, service_draft(), issue_date=date(2025, 6, 1))

        InvoiceService.send_invoice(invoice, today=date(2025, 6, 1))
        invoice.refresh_from_db()

        assert invoice.status == Invoice.Status.SENT
        assert invoice.next_reminder_date == date(2025, 6, 9)

    def test_skips_offsets_already_in_the_past(self, user, client_record):
        ReminderSettingsFactory(user=user, days_before_due=[7, 1], days_after_due=[3])
        invoice = InvoiceService.create_invoice(
            user, client_record, service_draft(),
            issue_date=date(2025, 6, 1), due_date=date(2025, 6, 5),
        )

        InvoiceService.send_invoice(invoice, today=date(2025, 6, 1))
        invoice.refresh_from_db()

        assert invoice.next_reminder_date == date(2025, 6, 4)

    def test_without_reminder_settings_no_reminder_is_scheduled(self, user, client_record):
        invoice = InvoiceService.create_invoice(user, client_record, service_draft())

        InvoiceService.send_invoice(invoice)
        invoice.refresh_from_db()

        assert invoice.status == Invoice.Status.SENT
        assert invoice.next_reminder_date is None

    def test_sent_invoice_cannot_be_sent_again(self):
        with pytest.raises(InvoiceStateError):
            InvoiceService.send_invoice(InvoiceFactory(status=Invoice.Status.SENT))


@pytest.mark.django_db
class TestRecordPayment:
    def test_partial_payments_accumulate_until_paid(self):
        invoice = InvoiceFactory(amount_payable=Decimal("1000.00"), next_reminder_date=date(2025, 6, 9))

        InvoiceService.record_payment(invoice, "400", payment_date=date(2025, 6, 5), partial=True)
        invoice.refresh_from_db()
        assert invoice.status == Invoice.Status.PARTIALLY_PAID
        assert invoice.is_partially_paid is True
        assert invoice.partially_paid_amount == Decimal("400.00")
        assert invoice.next_reminder_date == date(2025, 6, 9)

        InvoiceService.record_payment(invoice, "600", payment_date=date(2025, 6, 8), partial=True)
        invoice.refresh_from_db()
        assert invoice.status == Invoice.Status.PAID
        assert invoice.partially_paid_amount == Decimal("1000.00")
        assert invoice.is_partially_paid is False
        assert invoice.next_reminder_date is None

    def test_full_payment_marks_paid(self):
        invoice = InvoiceFactory(status=Invoice.Status.OVERDUE, next_reminder_date=date(2025, 6, 13))

        InvoiceService.record_payment(invoice, invoice.amount_payable, method="bank_transfer", reference="UTR123")
        invoice.refresh_from_db()

        assert invoice.status == Invoice.Status.PAID
        assert invoice.payment_reference == "UTR123"
        assert invoice.next_reminder_date is None

    def test_paying_a_paid_invoice_is_rejected(self):
        with pytest.raises(InvoiceStateError):
            InvoiceService.record_payment(InvoiceFactory(status=Invoice.Status.PAID), "100")

    def test_draft_cannot_be_paid(self):
        with pytest.raises(InvoiceStateError):
            InvoiceService.record_payment(InvoiceFactory(status=Invoice.Status.DRAFT), "100")

    def test_amount_must_be_positive(self):
        with pytest.raises(InvalidInputError):
            InvoiceService.record_payment(InvoiceFactory(), "0")


@pytest.mark.django_db
class TestTransitions:
    @pytest.mark.parametrize("from_status, to_status, allowed", [
        ("draft", "sent", True),
        ("draft", "paid", False),
        ("sent", "overdue", True),
        ("partially_paid", "paid", True),
        ("overdue", "partially_paid", True),
        ("paid", "sent", False),
    ])
    def test_can_transition(self, from_status, to_status, allowed):
        assert InvoiceService.can_transition(from_status, to_status) is allowed

    def test_mark_overdue_only_touches_open_invoices_past_due(self):
        user = UserFactory()
        late = InvoiceFactory(user=user, status=Invoice.Status.SENT, due_date=date(2025, 6, 1))
        partial = InvoiceFactory(user=user, status=Invoice.Status.PARTIALLY_PAID, due_date=date(2025, 6, 1))
        paid = InvoiceFactory(user=user, status=Invoice.Status.PAID, due_date=date(2025, 6, 1))
        not_due = InvoiceFactory(user=user, status=Invoice.Status.SENT, due_date=date(2025, 6, 20))

        assert InvoiceService.mark_overdue(today=date(2025, 6, 10)) == 2

        statuses = {inv.pk: inv.status for inv in Invoice.objects.all()}
        assert statuses[late.pk] == Invoice.Status.OVERDUE
        assert statuses[partial.pk] == Invoice.Status.OVERDUE
        assert statuses[paid.pk] == Invoice.Status.PAID
        assert statuses[not_due.pk] == Invoice.Status.SENT


@pytest.mark.django_db
def test_item_amount_follows_quantity_and_rate():
    item = InvoiceItemFactory(quantity=Decimal("2.5"), rate=Decimal("499.99"))
    item.refresh_from_db()

    assert item.amount == Decimal("1249.98")
