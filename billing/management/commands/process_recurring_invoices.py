import json
import logging
from datetime import date

from django.core.management.base import BaseCommand
from django.utils import timezone

from billdesk.middleware import correlation_id
from billing.services.recurring_service import RecurringInvoiceGenerator

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Generate invoices for recurring templates that are due"

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            type=str,
            help='Target date for processing (YYYY-MM-DD). Defaults to today.',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be processed without generating invoices.',
        )
        parser.add_argument(
            '--json',
            action='store_true',
            help='Print the run summary as JSON.',
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
            templates = RecurringInvoiceGenerator.get_due_templates(target_date)
            self.stdout.write(f"[DRY RUN] Found {len(templates)} templates due on {target_date}:")
            for template in templates:
                client_name = template.client.name if template.client else "Unknown Client"
                ending = " (end date passed, will deactivate)" if template.end_date and template.end_date < target_date else ""
                self.stdout.write(
                    f"  - Template #{template.id}: {template.title} for {client_name} "
                    f"({template.frequency}, due {template.next_issue_date}){ending}"
                )
            return

        with correlation_id() as run_id:
            logger.info(f"Recurring invoice run {run_id} started for {target_date}")
            results = RecurringInvoiceGenerator.process_all_due_templates(target_date)

        if options['json']:
            self.stdout.write(json.dumps(results, indent=2, default=str))
            return

        self.stdout.write(f"Processed recurring templates for {target_date}")
        self.stdout.write(self.style.SUCCESS(
            f"Processing complete: "
            f"{results['successful']} successful, "
            f"{results['deactivated']} deactivated, "
            f"{results['skipped']} skipped, "
            f"{results['failed']} failed "
            f"(of {results['processed']} total)"
        ))

        if results['failed'] > 0:
            self.stdout.write(self.style.WARNING(
                f"Check logs for details on {results['failed']} failed generations."
            ))
