"""
Payment reminder scheduler.

Invoices are enrolled by getting a ``next_reminder_date`` when they are sent.
Each run e-mails every enrolled invoice whose date has come, then moves the
date to the next configured offset, or clears it when none is left.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from ..exceptions import MissingReferenceError, PersistenceError
from ..money import format_currency
from ..notifications import Notification, NotificationDispatcher, get_default_dispatcher
from .summary import ERROR, SKIPPED, SUCCESS, RunSummary

logger = logging.getLogger(__name__)


def _offsets(values: Optional[Iterable[Any]]) -> List[int]:
    offsets = set()
    for value in values or []:
        try:
            number = int(value)
        except (TypeError, ValueError):
            continue
        if number > 0:
            offsets.add(number)
    return sorted(offsets)


def compute_next_reminder_date(
    due_date: date,
    days_before: Iterable[Any],
    days_after: Iterable[Any],
    days_difference: int,
) -> Optional[date]:
    """
    Next reminder after one sent ``days_difference`` days from the due date.

    Before the due date the next closer before-due offset wins, falling back
    to the first after-due offset. On or after the due date the next larger
    after-due offset wins; ``None`` means no further reminders.
    """
    before = _offsets(days_before)
    after = _offsets(days_after)

    if days_difference < 0:
        distance = -days_difference
        closer = [offset for offset in before if offset < distance]
        if closer:
            return due_date - timedelta(days=max(closer))
        if after:
            return due_date + timedelta(days=after[0])
        return None

    later = [offset for offset in after if offset > days_difference]
    if later:
        return due_date + timedelta(days=later[0])
    return None


def first_reminder_date(
    due_date: date,
    days_before: Iterable[Any],
    days_after: Iterable[Any],
    today: date,
) -> Optional[date]:
    """Earliest configured reminder date on or after ``today``."""
    candidates = [due_date - timedelta(days=offset) for offset in _offsets(days_before)]
    candidates += [due_date + timedelta(days=offset) for offset in _offsets(days_after)]
    upcoming = [candidate for candidate in candidates if candidate >= today]
    return min(upcoming) if upcoming else None


def status_phrase(days_difference: int) -> str:
    if days_difference < 0:
        return f"due in {-days_difference} days"
    if days_difference == 0:
        return "due today"
    return f"overdue by {days_difference} days"


def format_due_date(value: date) -> str:
    # June 10, 2025
    return f"{value:%B} {value.day}, {value.year}"


def render_template(template: str, invoice, days_difference: int) -> str:
    replacements = {
        "{invoice_number}": invoice.invoice_number,
        "{amount}": format_currency(invoice.total, invoice.currency),
        "{due_date}": format_due_date(invoice.due_date),
        "{status}": status_phrase(days_difference),
    }
    for placeholder, value in replacements.items():
        template = template.replace(placeholder, value)
    return template


class ReminderScheduler:

    def __init__(self, dispatcher: Optional[NotificationDispatcher] = None):
        self.dispatcher = dispatcher or get_default_dispatcher()
        self._settings_cache: Dict[int, Any] = {}

    @staticmethod
    def get_due_invoices(today: date):
        from billing.models import Invoice

        return list(
            Invoice.objects.filter(
                status__in=Invoice.REMINDABLE_STATUSES,
                next_reminder_date__isnull=False,
                next_reminder_date__lte=today,
            ).select_related("client", "user").order_by("id")
        )

    def _settings_for(self, user_id: int):
        from billing.models import ReminderSettings

        if user_id not in self._settings_cache:
            self._settings_cache[user_id] = ReminderSettings.objects.filter(user_id=user_id).first()
        return self._settings_cache[user_id]

    def build_notification(self, invoice, reminder_settings, today: date) -> Notification:
        client = invoice.client
        if client is None:
            raise MissingReferenceError("Invoice has no client", invoice_number=invoice.invoice_number)
        if not client.email:
            raise MissingReferenceError("Client has no e-mail address", invoice_number=invoice.invoice_number)

        days_difference = (today - invoice.due_date).days
        return Notification(
            recipient=client.email,
            subject=render_template(reminder_settings.subject_template, invoice, days_difference),
            body=render_template(reminder_settings.message_template, invoice, days_difference),
        )

    def process_invoice(self, invoice, today: date) -> Dict[str, Any]:
        from billing.models import Invoice, InvoiceActivity

        reminder_settings = self._settings_for(invoice.user_id)
        if reminder_settings is None:
            raise MissingReferenceError("No reminder settings for user", user_id=invoice.user_id)
        if not reminder_settings.enabled:
            raise MissingReferenceError("Reminders disabled for user", user_id=invoice.user_id)

        notification = self.build_notification(invoice, reminder_settings, today)
        days_difference = (today - invoice.due_date).days
        next_date = compute_next_reminder_date(
            invoice.due_date,
            reminder_settings.days_before_due,
            reminder_settings.days_after_due,
            days_difference,
        )

        try:
            with transaction.atomic():
                # Claim the reminder; a concurrent run that already moved the date wins.
                claimed = Invoice.objects.filter(
                    pk=invoice.pk,
                    status__in=Invoice.REMINDABLE_STATUSES,
                    next_reminder_date=invoice.next_reminder_date,
                ).update(next_reminder_date=next_date, last_reminder_sent=today, updated_at=timezone.now())
                if not claimed:
                    return {"result": SKIPPED, "reason": "Reminder already processed"}

                InvoiceActivity.objects.create(
                    invoice=invoice,
                    action=InvoiceActivity.ActionType.REMINDER_SENT,
                    description=f"Reminder sent to {notification.recipient}",
                    metadata={
                        "days_difference": days_difference,
                        "next_reminder_date": next_date.isoformat() if next_date else None,
                    },
                    is_system=True,
                )

                # Dispatch stays last: nothing after a send may roll the claim back.
                self.dispatcher.dispatch(notification)
        except DatabaseError as exc:
            raise PersistenceError(
                f"Could not record reminder for {invoice.invoice_number}",
                invoice_number=invoice.invoice_number,
                reason=str(exc),
            ) from exc

        invoice.next_reminder_date = next_date
        invoice.last_reminder_sent = today
        logger.info(f"Reminder sent for invoice {invoice.invoice_number} ({status_phrase(days_difference)}); next {next_date}")
        return {
            "result": SUCCESS,
            "recipient": notification.recipient,
            "next_reminder_date": next_date.isoformat() if next_date else None,
        }

    def run(self, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or timezone.localdate()
        summary = RunSummary(SUCCESS, SKIPPED, ERROR)

        for invoice in self.get_due_invoices(today):
            detail = {"invoice_id": invoice.id, "invoice_number": invoice.invoice_number}
            try:
                outcome = self.process_invoice(invoice, today)
            except MissingReferenceError as exc:
                logger.warning(f"Skipping reminder for invoice {invoice.invoice_number}: {exc.message}")
                summary.record(SKIPPED, reason=exc.message, **detail)
                continue
            except Exception as exc:
                logger.exception(f"Error sending reminder for invoice {invoice.invoice_number}")
                summary.record(ERROR, error=str(exc), **detail)
                continue

            result = outcome.pop("result")
            if result == SKIPPED:
                logger.info(f"Reminder for invoice {invoice.invoice_number} already handled by another run")
            summary.record(result, **detail, **outcome)

        results = summary.as_dict()
        logger.info(
            f"Reminder run for {today}: processed={results['processed']} successful={results['successful']} "
            f"skipped={results['skipped']} failed={results['failed']}"
        )
        return results


def run_reminders(today: Optional[date] = None, dispatcher: Optional[NotificationDispatcher] = None) -> Dict[str, Any]:
    return ReminderScheduler(dispatcher=dispatcher).run(today)
