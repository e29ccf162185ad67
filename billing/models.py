from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.db import models

from .money import CURRENCY_SYMBOLS, round_money

CURRENCY_CHOICES = [
    ("INR", "₹ - Indian Rupee"),
    ("USD", "$ - US Dollar"),
]


def default_days_before_due():
    return [7, 3, 1]


def default_days_after_due():
    return [1, 3, 7]


class Client(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="clients")
    name = models.CharField(max_length=255)
    company_name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=50, blank=True)
    billing_address = models.TextField(blank=True)
    gst_number = models.CharField(max_length=20, blank=True)
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="INR")
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Employee(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="employees")
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    role = models.CharField(max_length=100, blank=True)
    monthly_salary = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="INR")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class ExpenseCategory(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="expense_categories")
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)

    class Meta:
        unique_together = ("user", "name")
        verbose_name_plural = "Expense categories"

    def __str__(self):
        return self.name


class Expense(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="expenses")
    category = models.ForeignKey(ExpenseCategory, on_delete=models.SET_NULL, null=True, blank=True, related_name="expenses")
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name="expenses")
    description = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="INR")
    expense_date = models.DateField()
    receipt_reference = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-expense_date", "-id"]

    def __str__(self):
        return f"{self.description} ({self.amount} {self.currency})"


class CurrencySettings(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="currency_settings")
    usd_to_inr_rate = models.DecimalField(max_digits=10, decimal_places=4, default=Decimal("85.0000"))
    preferred_currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="INR")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Currency settings"

    def __str__(self):
        return f"{self.user} ({self.preferred_currency}, 1 USD = {self.usd_to_inr_rate} INR)"


class RecurringInvoiceTemplate(models.Model):
    class Frequency(models.TextChoices):
        WEEKLY = "weekly", "Weekly"
        MONTHLY = "monthly", "Monthly"
        QUARTERLY = "quarterly", "Quarterly"
        YEARLY = "yearly", "Yearly"

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        INACTIVE = "inactive", "Inactive"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="recurring_templates")
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name="recurring_templates")
    title = models.CharField(max_length=255)
    frequency = models.CharField(max_length=20, choices=Frequency.choices, default=Frequency.MONTHLY)

    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    next_issue_date = models.DateField(db_index=True)
    last_generated = models.DateField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE, db_index=True)
    deactivation_reason = models.CharField(max_length=255, blank=True)
    auto_send = models.BooleanField(default=False, help_text="Generated invoices start as sent instead of draft")
    template_data = models.JSONField(default=dict, blank=True, help_text="Frozen invoice form state")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["status", "next_issue_date"], name="billing_rec_status_6f0c2e_idx"),
        ]

    def __str__(self):
        return f"{self.title} ({self.frequency})"

    def advance(self, from_date: date) -> date:
        """One frequency step forward; month ends clamp (Jan 31 -> Feb 28)."""
        if self.frequency == self.Frequency.WEEKLY:
            return from_date + timedelta(days=7)
        if self.frequency == self.Frequency.MONTHLY:
            return from_date + relativedelta(months=1)
        if self.frequency == self.Frequency.QUARTERLY:
            return from_date + relativedelta(months=3)
        if self.frequency == self.Frequency.YEARLY:
            return from_date + relativedelta(years=1)
        raise ValueError(f"Unknown frequency: {self.frequency}")

    @property
    def is_active(self):
        return self.status == self.Status.ACTIVE


class Invoice(models.Model):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        SENT = "sent", "Sent"
        PARTIALLY_PAID = "partially_paid", "Partially Paid"
        PAID = "paid", "Paid"
        OVERDUE = "overdue", "Overdue"

    class EngagementType(models.TextChoices):
        SERVICE = "service", "Service"
        PROJECT = "project", "Project"
        RETAINERSHIP = "retainership", "Retainership"
        MILESTONE = "milestone", "Milestone"

    REMINDABLE_STATUSES = (Status.SENT, Status.PARTIALLY_PAID, Status.OVERDUE)

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="invoices")
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name="invoices")
    recurring_template = models.ForeignKey(
        RecurringInvoiceTemplate, on_delete=models.SET_NULL, null=True, blank=True, related_name="invoices"
    )
    invoice_number = models.CharField(max_length=50, db_index=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT, db_index=True)

    issue_date = models.DateField()
    due_date = models.DateField()
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="INR")
    engagement_type = models.CharField(max_length=20, choices=EngagementType.choices, default=EngagementType.SERVICE)
    retainer_period = models.CharField(max_length=100, blank=True)

    tax_name = models.CharField(max_length=50, blank=True)
    tax_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    is_gst_registered = models.BooleanField(default=False)
    gst_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("18.00"))
    is_tds_applicable = models.BooleanField(null=True, blank=True)
    tds_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("10.00"))

    subtotal = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0.00"))
    gst_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0.00"))
    tds_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0.00"))
    amount_payable = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0.00"))

    payment_date = models.DateField(null=True, blank=True)
    payment_method = models.CharField(max_length=50, blank=True)
    payment_reference = models.CharField(max_length=255, blank=True)
    is_partially_paid = models.BooleanField(default=False)
    partially_paid_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0.00"))

    next_reminder_date = models.DateField(null=True, blank=True, db_index=True)
    last_reminder_sent = models.DateField(null=True, blank=True)

    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("user", "invoice_number")
        ordering = ["-issue_date", "-id"]
        indexes = [
            models.Index(fields=["user", "status"], name="billing_inv_user_id_3b1f7a_idx"),
            models.Index(fields=["status", "next_reminder_date"], name="billing_inv_status_9d4e21_idx"),
        ]

    def __str__(self):
        return self.invoice_number

    @property
    def currency_symbol(self):
        return CURRENCY_SYMBOLS.get(self.currency, self.currency)

    @property
    def can_edit(self):
        return self.status == self.Status.DRAFT

    @property
    def balance_due(self):
        return max(round_money(self.amount_payable - self.partially_paid_amount), Decimal("0.00"))

    def apply_totals(self, breakdown):
        self.subtotal = breakdown.subtotal
        self.tax = breakdown.tax
        self.gst_amount = breakdown.gst_amount
        self.tds_amount = breakdown.tds_amount
        self.total = breakdown.total
        self.amount_payable = breakdown.amount_payable


class InvoiceItem(models.Model):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")
    description = models.CharField(max_length=500, blank=True)
    quantity = models.DecimalField(max_digits=15, decimal_places=4, default=Decimal("1.0000"))
    rate = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0.00"))
    amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0.00"))
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]

    def save(self, *args, **kwargs):
        self.amount = round_money(Decimal(self.quantity) * Decimal(self.rate))
        super().save(*args, **kwargs)


class InvoiceMilestone(models.Model):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="milestones")
    name = models.CharField(max_length=255, blank=True)
    amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0.00"))
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]


class InvoiceActivity(models.Model):
    class ActionType(models.TextChoices):
        CREATED = "created", "Invoice Created"
        UPDATED = "updated", "Invoice Updated"
        SENT = "sent", "Invoice Sent"
        PAYMENT_RECEIVED = "payment_received", "Payment Received"
        STATUS_CHANGED = "status_changed", "Status Changed"
        REMINDER_SENT = "reminder_sent", "Reminder Sent"
        GENERATED = "generated", "Generated From Template"

    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="activities")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=50, choices=ActionType.choices)
    description = models.TextField()
    metadata = models.JSONField(default=dict, blank=True)
    is_system = models.BooleanField(default=False)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-timestamp", "-id"]
        verbose_name_plural = "Invoice activities"


class ReminderSettings(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="reminder_settings")
    days_before_due = models.JSONField(default=default_days_before_due, blank=True)
    days_after_due = models.JSONField(default=default_days_after_due, blank=True)
    subject_template = models.CharField(
        max_length=255,
        default="Payment reminder: Invoice {invoice_number} is {status}",
    )
    message_template = models.TextField(
        default=(
            "Hello,\n\nThis is a friendly reminder that invoice {invoice_number} "
            "for {amount} was due on {due_date} and is {status}.\n\nThank you."
        ),
    )
    enabled = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Reminder settings"

    def __str__(self):
        return f"Reminder settings for {self.user}"
