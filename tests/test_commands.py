import json
from datetime import date
from io import StringIO

import pytest
from django.core.management import call_command

from billing.models import Invoice
from tests.factories import InvoiceFactory, RecurringInvoiceTemplateFactory, ReminderSettingsFactory


def run(command, *args):
    out, err = StringIO(), StringIO()
    call_command(command, *args, stdout=out, stderr=err)
    return out.getvalue(), err.getvalue()


@pytest.mark.django_db
class TestProcessRecurringInvoices:
    def test_generates_due_invoices(self):
        RecurringInvoiceTemplateFactory()

        out, _ = run("process_recurring_invoices", "--date", "2025-02-01")

        assert "1 successful" in out
        assert Invoice.objects.count() == 1

    def test_json_summary(self):
        RecurringInvoiceTemplateFactory()
        RecurringInvoiceTemplateFactory(client=None)

        out, _ = run("process_recurring_invoices", "--date", "2025-02-01", "--json")
        results = json.loads(out)

        assert results["processed"] == 2
        assert results["successful"] == 1
        assert results["skipped"] == 1

    def test_dry_run_generates_nothing(self):
        template = RecurringInvoiceTemplateFactory()

        out, _ = run("process_recurring_invoices", "--date", "2025-02-01", "--dry-run")

        assert "Found 1 templates" in out
        assert template.title in out
        assert Invoice.objects.count() == 0

    def test_invalid_date(self):
        out, err = run("process_recurring_invoices", "--date", "01/02/2025")

        assert "Invalid date format" in err
        assert out == ""


@pytest.mark.django_db
class TestProcessReminders:
    def test_sends_due_reminders(self, user, client_record, mailoutbox):
        ReminderSettingsFactory(user=user)
        InvoiceFactory(user=user, client=client_record, next_reminder_date=date(2025, 6, 9))

        out, _ = run("process_reminders", "--date", "2025-06-09")

        assert "1 sent" in out
        assert len(mailoutbox) == 1

    def test_json_summary(self, user, client_record, mailoutbox):
        ReminderSettingsFactory(user=user)
        InvoiceFactory(user=user, client=client_record, next_reminder_date=date(2025, 6, 9))

        out, _ = run("process_reminders", "--date", "2025-06-09", "--json")
        results = json.loads(out)

        assert results["successful"] == 1
        assert results["details"][0]["next_reminder_date"] == "2025-06-11"

    def test_dry_run_sends_nothing(self, user, client_record, mailoutbox):
        ReminderSettingsFactory(user=user)
        invoice = InvoiceFactory(user=user, client=client_record, next_reminder_date=date(2025, 6, 9))

        out, _ = run("process_reminders", "--date", "2025-06-09", "--dry-run")
        invoice.refresh_from_db()

        assert "DRY RUN" in out
        assert "due in 1 days" in out
        assert mailoutbox == []
        assert invoice.next_reminder_date == date(2025, 6, 9)

    def test_nothing_due(self):
        out, _ = run("process_reminders", "--date", "2025-06-09", "--dry-run")
        assert "No reminders due" in out

    def test_invalid_date(self):
        _, err = run("process_reminders", "--date", "tomorrow")
        assert "Invalid date format" in err
