from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from ..conf import billing_setting
from ..exceptions import InvalidInputError, MissingReferenceError, PersistenceError
from .invoice_service import InvoiceService
from .summary import DEACTIVATED, ERROR, SKIPPED, SUCCESS, RunSummary
from .totals_service import InvoiceDraft, draft_from_form, draft_to_snapshot

if TYPE_CHECKING:
    from django.contrib.auth.models import User
    from billing.models import Client, Invoice, RecurringInvoiceTemplate

logger = logging.getLogger(__name__)


class RecurringBillingService:

    @staticmethod
    def get_templates_for_user(user: "User", status: Optional[str] = None) -> List["RecurringInvoiceTemplate"]:
        from billing.models import RecurringInvoiceTemplate
        qs = RecurringInvoiceTemplate.objects.filter(user=user).select_related("client")
        if status:
            qs = qs.filter(status=status)
        return list(qs.order_by("-created_at"))

    @staticmethod
    @transaction.atomic
    def create_template(
        user: "User",
        client: "Client",
        title: str,
        frequency: str,
        start_date: date,
        draft: InvoiceDraft,
        end_date: Optional[date] = None,
        auto_send: bool = False,
    ) -> "RecurringInvoiceTemplate":
        from billing.models import RecurringInvoiceTemplate

        if client is None or client.user_id != user.id:
            raise MissingReferenceError("Client not found", user_id=user.id)
        if frequency not in RecurringInvoiceTemplate.Frequency.values:
            raise InvalidInputError(f"Unknown frequency: {frequency}", field="frequency", value=frequency)
        if end_date and end_date < start_date:
            raise InvalidInputError("End date cannot be before the start date", field="end_date")

        template = RecurringInvoiceTemplate(
            user=user,
            client=client,
            title=title,
            frequency=frequency,
            start_date=start_date,
            end_date=end_date,
            auto_send=auto_send,
            template_data=draft_to_snapshot(draft),
        )
        # The first invoice is issued one period after the start date.
        template.next_issue_date = template.advance(start_date)
        template.save()

        logger.info(f"Created recurring template {template.id} for user {user.id}; first issue {template.next_issue_date}")
        return template

    @staticmethod
    @transaction.atomic
    def update_template_draft(template: "RecurringInvoiceTemplate", draft: InvoiceDraft) -> "RecurringInvoiceTemplate":
        template.template_data = draft_to_snapshot(draft)
        template.save(update_fields=["template_data", "updated_at"])
        logger.info(f"Updated invoice data for recurring template {template.id}")
        return template

    @staticmethod
    @transaction.atomic
    def activate(template: "RecurringInvoiceTemplate", today: Optional[date] = None) -> "RecurringInvoiceTemplate":
        today = today or timezone.localdate()
        if template.end_date and template.end_date < today:
            raise InvalidInputError("Cannot activate a template whose end date has passed", template_id=template.id)

        template.status = template.Status.ACTIVE
        template.deactivation_reason = ""
        if template.next_issue_date < today:
            template.next_issue_date = today
        template.save()
        logger.info(f"Activated recurring template {template.id}; next issue {template.next_issue_date}")
        return template

    @staticmethod
    @transaction.atomic
    def deactivate(template: "RecurringInvoiceTemplate", reason: str = "") -> "RecurringInvoiceTemplate":
        template.status = template.Status.INACTIVE
        template.deactivation_reason = reason
        template.save()
        logger.info(f"Deactivated recurring template {template.id}: {reason or 'no reason given'}")
        return template

    @staticmethod
    def delete(template: "RecurringInvoiceTemplate") -> None:
        template_id = template.id
        template.delete()
        logger.info(f"Deleted recurring template {template_id}")


class RecurringInvoiceGenerator:

    @staticmethod
    def get_due_templates(target_date: Optional[date] = None) -> List["RecurringInvoiceTemplate"]:
        from billing.models import RecurringInvoiceTemplate

        target = target_date or timezone.localdate()
        return list(
            RecurringInvoiceTemplate.objects.filter(
                status=RecurringInvoiceTemplate.Status.ACTIVE,
                next_issue_date__lte=target,
            ).select_related("client", "user").order_by("id")
        )

    @staticmethod
    def generate_invoice_for_template(
        template: "RecurringInvoiceTemplate",
        today: date,
    ) -> Dict[str, Any]:
        """
        Run one template for ``today``.

        Raises MissingReferenceError or PersistenceError; everything written
        here is rolled back when an error escapes.
        """
        from billing.models import Invoice, RecurringInvoiceTemplate

        if template.end_date and template.end_date < today:
            with transaction.atomic():
                RecurringInvoiceTemplate.objects.filter(pk=template.pk).update(
                    status=RecurringInvoiceTemplate.Status.INACTIVE,
                    deactivation_reason="End date reached",
                    updated_at=timezone.now(),
                )
            template.status = RecurringInvoiceTemplate.Status.INACTIVE
            template.deactivation_reason = "End date reached"
            logger.info(f"Recurring template {template.id} deactivated: end date {template.end_date} has passed")
            return {"result": DEACTIVATED, "reason": "End date reached"}

        if template.client is None:
            raise MissingReferenceError("Client no longer exists", template_id=template.id)

        draft = draft_from_form(template.template_data or {})
        previous = template.next_issue_date
        next_issue = template.advance(previous)

        try:
            with transaction.atomic():
                # Advancing next_issue_date is the claim; a concurrent run that got here first wins.
                claimed = RecurringInvoiceTemplate.objects.filter(
                    pk=template.pk,
                    status=RecurringInvoiceTemplate.Status.ACTIVE,
                    next_issue_date=previous,
                ).update(next_issue_date=next_issue, last_generated=today, updated_at=timezone.now())
                if not claimed:
                    return {"result": SKIPPED, "reason": "Already generated by another run"}

                invoice = InvoiceService.create_invoice(
                    template.user,
                    template.client,
                    draft,
                    issue_date=today,
                    due_date=today + timedelta(days=billing_setting("RECURRING_DUE_DAYS")),
                    status=Invoice.Status.SENT if template.auto_send else Invoice.Status.DRAFT,
                    notes=template.title,
                    recurring_template=template,
                )
        except DatabaseError as exc:
            raise PersistenceError(
                f"Could not generate invoice for template {template.id}",
                template_id=template.id,
                reason=str(exc),
            ) from exc

        template.next_issue_date = next_issue
        template.last_generated = today
        logger.info(
            f"Generated invoice {invoice.invoice_number} from recurring template {template.id}; "
            f"next issue {next_issue}"
        )
        return {
            "result": SUCCESS,
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "next_issue_date": next_issue.isoformat(),
        }

    @staticmethod
    def process_all_due_templates(target_date: Optional[date] = None) -> Dict[str, Any]:
        today = target_date or timezone.localdate()
        templates = RecurringInvoiceGenerator.get_due_templates(today)
        summary = RunSummary(SUCCESS, DEACTIVATED, SKIPPED, ERROR)

        for template in templates:
            detail = {"template_id": template.id, "title": template.title}
            try:
                outcome = RecurringInvoiceGenerator.generate_invoice_for_template(template, today)
            except MissingReferenceError as exc:
                logger.warning(f"Skipping recurring template {template.id}: {exc.message}")
                summary.record(SKIPPED, reason=exc.message, **detail)
                continue
            except Exception as exc:
                logger.exception(f"Error generating invoice for recurring template {template.id}")
                summary.record(ERROR, error=str(exc), **detail)
                continue

            result = outcome.pop("result")
            summary.record(result, **detail, **outcome)

        results = summary.as_dict()
        logger.info(
            f"Recurring run for {today}: processed={results['processed']} successful={results['successful']} "
            f"deactivated={results['deactivated']} skipped={results['skipped']} failed={results['failed']}"
        )
        return results


def run_recurring_invoices(today: Optional[date] = None) -> Dict[str, Any]:
    return RecurringInvoiceGenerator.process_all_due_templates(today)
