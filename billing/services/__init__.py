"""
Billing services layer.

- Pure calculation: tax_calculator, totals_service (no database access)
- Services: business logic, transactions and logging around the models
- Schedulers: recurring invoice generation and payment reminders
"""

from .currency_service import CurrencyService
from .expense_service import ExpenseService
from .invoice_service import InvoiceService
from .recurring_service import RecurringBillingService, RecurringInvoiceGenerator, run_recurring_invoices
from .reminder_service import ReminderScheduler, run_reminders
from .reports_service import ReportsService
from .tax_calculator import TaxBreakdown, calculate_tax
from .totals_service import InvoiceDraft, draft_from_form, resolve_invoice_totals

__all__ = [
    "CurrencyService",
    "ExpenseService",
    "InvoiceService",
    "RecurringBillingService",
    "RecurringInvoiceGenerator",
    "run_recurring_invoices",
    "ReminderScheduler",
    "run_reminders",
    "ReportsService",
    "TaxBreakdown",
    "calculate_tax",
    "InvoiceDraft",
    "draft_from_form",
    "resolve_invoice_totals",
]
