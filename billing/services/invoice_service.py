import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from django.db import DatabaseError, transaction
from django.utils import timezone

from ..conf import billing_setting
from ..exceptions import InvalidInputError, InvoiceStateError, MissingReferenceError, PersistenceError
from ..models import Client, Invoice, InvoiceActivity, InvoiceItem, InvoiceMilestone, ReminderSettings
from ..money import ZERO, round_money, to_decimal
from .reminder_service import first_reminder_date
from .tax_calculator import TaxBreakdown
from .totals_service import (
    GenericTax,
    GstTax,
    InvoiceDraft,
    MilestonePayload,
    ProjectPayload,
    RetainerPayload,
    ServicePayload,
    resolve_invoice_totals,
    resolve_subtotal,
    resolve_tds,
)

logger = logging.getLogger(__name__)


class InvoiceService:
    VALID_TRANSITIONS = {
        Invoice.Status.DRAFT: [Invoice.Status.SENT],
        Invoice.Status.SENT: [Invoice.Status.PARTIALLY_PAID, Invoice.Status.PAID, Invoice.Status.OVERDUE],
        Invoice.Status.PARTIALLY_PAID: [Invoice.Status.PAID, Invoice.Status.OVERDUE],
        Invoice.Status.OVERDUE: [Invoice.Status.PARTIALLY_PAID, Invoice.Status.PAID],
        Invoice.Status.PAID: [],
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        return to_status in cls.VALID_TRANSITIONS.get(from_status, [])

    @staticmethod
    def generate_invoice_number(user, on_date: Optional[date] = None, prefix: Optional[str] = None) -> str:
        on_date = on_date or timezone.localdate()
        prefix = prefix or billing_setting("INVOICE_NUMBER_PREFIX")
        stem = f"{prefix}-{on_date.year}-{on_date.month:02d}-"

        highest = 0
        numbers = Invoice.objects.filter(user=user, invoice_number__startswith=stem).values_list(
            "invoice_number", flat=True
        )
        for number in numbers:
            suffix = number[len(stem):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{stem}{highest + 1:03d}"

    @staticmethod
    def resolve_totals(draft: InvoiceDraft) -> Tuple[TaxBreakdown, bool, Decimal]:
        """Totals plus the effective TDS choice, using configured defaults."""
        default_rate = billing_setting("DEFAULT_TDS_RATE")
        threshold = billing_setting("TDS_AUTO_THRESHOLD")
        tds_applicable, tds_rate = resolve_tds(draft, resolve_subtotal(draft), default_rate, threshold)
        breakdown = resolve_invoice_totals(draft, default_tds_rate=default_rate, tds_threshold=threshold)
        return breakdown, tds_applicable, tds_rate

    @staticmethod
    def _check_lines(draft: InvoiceDraft) -> None:
        # Blank quantities count as zero while a form is being edited, but never get saved.
        if not isinstance(draft.payload, ServicePayload):
            return
        for position, item in enumerate(draft.payload.items, start=1):
            if item.quantity <= 0:
                raise InvalidInputError(
                    "Line item quantity must be greater than zero",
                    field="quantity",
                    line=position,
                    value=str(item.quantity),
                )

    @classmethod
    def _apply_draft(cls, invoice: Invoice, draft: InvoiceDraft) -> None:
        cls._check_lines(draft)
        breakdown, tds_applicable, tds_rate = cls.resolve_totals(draft)
        tax_mode = draft.tax_mode

        invoice.currency = draft.currency
        invoice.engagement_type = draft.engagement_type
        invoice.retainer_period = draft.payload.period if isinstance(draft.payload, RetainerPayload) else ""
        invoice.is_gst_registered = isinstance(tax_mode, GstTax)
        invoice.gst_rate = tax_mode.rate if isinstance(tax_mode, GstTax) else billing_setting("DEFAULT_GST_RATE")
        if isinstance(tax_mode, GenericTax):
            invoice.tax_name = tax_mode.name
            invoice.tax_percentage = tax_mode.rate
        else:
            invoice.tax_name = "GST" if isinstance(tax_mode, GstTax) else ""
            invoice.tax_percentage = ZERO
        # The stored flag is the effective one, so an auto-applied TDS stays applied.
        invoice.is_tds_applicable = tds_applicable
        invoice.tds_rate = tds_rate
        invoice.apply_totals(breakdown)

    @staticmethod
    def _write_lines(invoice: Invoice, draft: InvoiceDraft) -> None:
        payload = draft.payload
        if isinstance(payload, MilestonePayload):
            InvoiceMilestone.objects.bulk_create([
                InvoiceMilestone(invoice=invoice, name=m.name, amount=round_money(m.amount), sort_order=idx)
                for idx, m in enumerate(payload.milestones)
            ])
        elif isinstance(payload, (ProjectPayload, RetainerPayload)):
            amount = round_money(payload.item.amount)
            InvoiceItem.objects.bulk_create([
                InvoiceItem(
                    invoice=invoice,
                    description=payload.item.description,
                    quantity=Decimal("1"),
                    rate=amount,
                    amount=amount,
                    sort_order=0,
                )
            ])
        else:
            InvoiceItem.objects.bulk_create([
                InvoiceItem(
                    invoice=invoice,
                    description=item.description,
                    quantity=item.quantity,
                    rate=item.rate,
                    amount=item.amount,
                    sort_order=idx,
                )
                for idx, item in enumerate(payload.items)
            ])

    @staticmethod
    def reminder_start_date(invoice: Invoice, today: date) -> Optional[date]:
        reminder_settings = ReminderSettings.objects.filter(user_id=invoice.user_id, enabled=True).first()
        if reminder_settings is None:
            return None
        return first_reminder_date(
            invoice.due_date,
            reminder_settings.days_before_due,
            reminder_settings.days_after_due,
            today,
        )

    @classmethod
    @transaction.atomic
    def create_invoice(
        cls,
        user,
        client: Optional[Client],
        draft: InvoiceDraft,
        issue_date: Optional[date] = None,
        due_date: Optional[date] = None,
        invoice_number: Optional[str] = None,
        status: str = Invoice.Status.DRAFT,
        notes: str = "",
        recurring_template=None,
        due_days: Optional[int] = None,
    ) -> Invoice:
        if client is None or client.user_id != user.id:
            raise MissingReferenceError("Client not found", user_id=user.id)
        if status not in (Invoice.Status.DRAFT, Invoice.Status.SENT):
            raise InvoiceStateError(f"Invoices cannot be created in status '{status}'", status=status)

        issue_date = issue_date or timezone.localdate()
        if due_days is None:
            due_days = billing_setting("INVOICE_DUE_DAYS")
        due_date = due_date or issue_date + timedelta(days=due_days)
        if due_date < issue_date:
            raise InvalidInputError("Due date cannot be before the issue date", field="due_date")

        invoice = Invoice(
            user=user,
            client=client,
            recurring_template=recurring_template,
            invoice_number=invoice_number or cls.generate_invoice_number(user, issue_date),
            status=status,
            issue_date=issue_date,
            due_date=due_date,
            notes=notes,
        )
        cls._apply_draft(invoice, draft)
        if status == Invoice.Status.SENT:
            invoice.next_reminder_date = cls.reminder_start_date(invoice, issue_date)

        try:
            invoice.save()
            cls._write_lines(invoice, draft)
        except DatabaseError as exc:
            raise PersistenceError(
                f"Could not save invoice {invoice.invoice_number}",
                invoice_number=invoice.invoice_number,
                reason=str(exc),
            ) from exc

        action = InvoiceActivity.ActionType.GENERATED if recurring_template else InvoiceActivity.ActionType.CREATED
        cls.log_activity(invoice, user, action, f"Invoice {invoice.invoice_number} created",
                         is_system=recurring_template is not None)
        logger.info(f"Invoice {invoice.invoice_number} created for user {user.id} (total {invoice.total} {invoice.currency})")
        return invoice

    @classmethod
    @transaction.atomic
    def update_invoice(
        cls,
        invoice: Invoice,
        draft: InvoiceDraft,
        user=None,
        issue_date: Optional[date] = None,
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> Invoice:
        if not invoice.can_edit:
            raise InvoiceStateError(
                f"Invoice in status '{invoice.status}' cannot be edited",
                invoice_number=invoice.invoice_number,
            )

        invoice.issue_date = issue_date or invoice.issue_date
        invoice.due_date = due_date or invoice.due_date
        if notes is not None:
            invoice.notes = notes
        cls._apply_draft(invoice, draft)

        try:
            invoice.save()
            invoice.items.all().delete()
            invoice.milestones.all().delete()
            cls._write_lines(invoice, draft)
        except DatabaseError as exc:
            raise PersistenceError(
                f"Could not update invoice {invoice.invoice_number}",
                invoice_number=invoice.invoice_number,
                reason=str(exc),
            ) from exc

        cls.log_activity(invoice, user, InvoiceActivity.ActionType.UPDATED, "Invoice updated")
        logger.info(f"Invoice {invoice.invoice_number} updated")
        return invoice

    @classmethod
    @transaction.atomic
    def transition_status(cls, invoice: Invoice, new_status: str, user=None, reason: str = "") -> Invoice:
        old_status = invoice.status
        if not cls.can_transition(old_status, new_status):
            raise InvoiceStateError(
                f"Cannot transition from '{old_status}' to '{new_status}'",
                invoice_number=invoice.invoice_number,
            )

        invoice.status = new_status
        if new_status == Invoice.Status.PAID:
            invoice.next_reminder_date = None
        invoice.save()

        cls.log_activity(
            invoice, user, InvoiceActivity.ActionType.STATUS_CHANGED,
            f"Status changed from {old_status} to {new_status}. {reason}".strip(),
            metadata={"old_status": old_status, "new_status": new_status},
        )
        logger.info(f"Invoice {invoice.invoice_number} transitioned from {old_status} to {new_status}")
        return invoice

    @classmethod
    @transaction.atomic
    def send_invoice(cls, invoice: Invoice, today: Optional[date] = None, user=None) -> Invoice:
        today = today or timezone.localdate()
        invoice = cls.transition_status(invoice, Invoice.Status.SENT, user=user)

        invoice.next_reminder_date = cls.reminder_start_date(invoice, today)
        invoice.save(update_fields=["next_reminder_date", "updated_at"])

        cls.log_activity(
            invoice, user, InvoiceActivity.ActionType.SENT, "Invoice sent",
            metadata={"next_reminder_date": invoice.next_reminder_date.isoformat() if invoice.next_reminder_date else None},
        )
        return invoice

    @classmethod
    @transaction.atomic
    def record_payment(
        cls,
        invoice: Invoice,
        amount: Any,
        payment_date: Optional[date] = None,
        method: str = "",
        reference: str = "",
        partial: bool = False,
        user=None,
    ) -> Invoice:
        if invoice.status == Invoice.Status.PAID:
            raise InvoiceStateError("Invoice is already paid", invoice_number=invoice.invoice_number)

        amount = round_money(to_decimal(amount, "amount"))
        if amount <= 0:
            raise InvalidInputError("Payment amount must be greater than zero", field="amount", value=str(amount))

        received = amount
        if partial:
            received = round_money(invoice.partially_paid_amount + amount)
        new_status = Invoice.Status.PAID
        if partial and received < invoice.amount_payable:
            new_status = Invoice.Status.PARTIALLY_PAID

        if new_status != invoice.status and not cls.can_transition(invoice.status, new_status):
            raise InvoiceStateError(
                f"Cannot record a payment on an invoice in status '{invoice.status}'",
                invoice_number=invoice.invoice_number,
            )

        old_status = invoice.status
        invoice.status = new_status
        invoice.payment_date = payment_date or timezone.localdate()
        invoice.payment_method = method
        invoice.payment_reference = reference
        if partial:
            invoice.partially_paid_amount = received
        invoice.is_partially_paid = new_status == Invoice.Status.PARTIALLY_PAID
        if new_status == Invoice.Status.PAID:
            invoice.next_reminder_date = None
        invoice.save()

        cls.log_activity(
            invoice, user, InvoiceActivity.ActionType.PAYMENT_RECEIVED,
            f"Payment of {amount} {invoice.currency} received",
            metadata={
                "amount": str(amount),
                "method": method,
                "reference": reference,
                "old_status": old_status,
                "new_status": new_status,
            },
        )
        logger.info(f"Payment of {amount} recorded on invoice {invoice.invoice_number}; status {old_status} -> {new_status}")
        return invoice

    @staticmethod
    def mark_overdue(today: Optional[date] = None, user=None) -> int:
        today = today or timezone.localdate()
        qs = Invoice.objects.filter(
            status__in=[Invoice.Status.SENT, Invoice.Status.PARTIALLY_PAID],
            due_date__lt=today,
        )
        if user is not None:
            qs = qs.filter(user=user)
        updated = qs.update(status=Invoice.Status.OVERDUE, updated_at=timezone.now())
        if updated:
            logger.info(f"Marked {updated} invoices overdue as of {today}")
        return updated

    @staticmethod
    def log_activity(invoice: Invoice, user, action: str, description: str,
                     metadata: Optional[Dict] = None, is_system: bool = False) -> InvoiceActivity:
        return InvoiceActivity.objects.create(
            invoice=invoice,
            user=user,
            action=action,
            description=description,
            metadata=metadata or {},
            is_system=is_system or user is None,
        )
