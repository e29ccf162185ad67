"""
Send payment reminders that are due.

Usage:
    python manage.py process_reminders                    # Send reminders due today
    python manage.py process_reminders --date 2025-06-10  # Run as of a given day
    python manage.py process_reminders --dry-run          # Show what would be sent
"""

import json
import logging
from datetime import date

from django.core.management.base import BaseCommand
from django.utils import timezone

from billdesk.middleware import correlation_id
from billing.services.reminder_service import ReminderScheduler, run_reminders, status_phrase

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Send payment reminders for invoices whose next reminder date has come'

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            type=str,
            help='Target date for processing (YYYY-MM-DD). Defaults to today.',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be processed without sending reminders',
        )
        parser.add_argument(
            '--json',
            action='store_true',
            help='Print the run summary as JSON',
        )

    def handle(self, *args, **options):
        target_date = None
        if options['date']:
            try:
                target_date = date.fromisoformat(options['date'])
            except ValueError:
                self.stderr.write(self.style.ERROR(f"Invalid date format: {options['date']}"))
                return

        target_date = target_date or timezone.localdate()

        if options['dry_run']:
            invoices = ReminderScheduler.get_due_invoices(target_date)
            if not invoices:
                self.stdout.write(self.style.SUCCESS('No reminders due'))
                return
            self.stdout.write(self.style.WARNING('DRY RUN - No reminders will be sent'))
            for invoice in invoices:
                recipient = invoice.client.email if invoice.client else '(no client)'
                days_difference = (target_date - invoice.due_date).days
                self.stdout.write(
                    f'  - Invoice {invoice.invoice_number} to {recipient or "(no e-mail)"} '
                    f'({status_phrase(days_difference)})'
                )
            return

        with correlation_id() as run_id:
            logger.info(f"Reminder run {run_id} started for {target_date}")
            results = run_reminders(target_date)

        if options['json']:
            self.stdout.write(json.dumps(results, indent=2, default=str))
            return

        self.stdout.write(self.style.SUCCESS(
            f"Reminders for {target_date}: "
            f"{results['successful']} sent, "
            f"{results['skipped']} skipped, "
            f"{results['failed']} failed "
            f"(of {results['processed']} due)"
        ))

        if results['failed'] > 0:
            self.stdout.write(self.style.WARNING(
                f"{results['failed']} reminder(s) failed; check logs for details."
            ))
