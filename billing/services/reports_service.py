"""
Revenue and expense reports.

Revenue is cash received: the amount payable of paid invoices and the
amount received so far on partially paid ones, dated by payment date. All
figures keep their INR/USD split and add a total converted into the
preferred currency at the user's USD->INR rate.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.db.models import Case, Count, DecimalField, F, Q, Sum, When
from django.db.models.functions import TruncMonth

from ..models import Expense, Invoice
from ..money import INR, USD, ZERO, convert_currency, round_money
from .currency_service import CurrencyService
from .expense_service import UNCATEGORIZED

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "Unknown Client"


@dataclass
class _Bucket:
    label: str
    amount_inr: Decimal = ZERO
    amount_usd: Decimal = ZERO
    count: int = 0

    def add(self, currency: str, amount: Optional[Decimal], count: int) -> None:
        amount = amount or ZERO
        if currency == USD:
            self.amount_usd += amount
        else:
            self.amount_inr += amount
        self.count += count

    def as_dict(self, preferred_currency: str, rate: Decimal) -> Dict[str, Any]:
        total = convert_currency(self.amount_inr, INR, preferred_currency, rate)
        total += convert_currency(self.amount_usd, USD, preferred_currency, rate)
        return {
            "amount_inr": round_money(self.amount_inr),
            "amount_usd": round_money(self.amount_usd),
            "total": round_money(total),
            "currency": preferred_currency,
            "count": self.count,
        }


class ReportsService:

    @staticmethod
    def _received_queryset(user, start: Optional[date], end: Optional[date]):
        qs = Invoice.objects.filter(user=user, payment_date__isnull=False).filter(
            Q(status=Invoice.Status.PAID) | Q(partially_paid_amount__gt=0)
        )
        if start:
            qs = qs.filter(payment_date__gte=start)
        if end:
            qs = qs.filter(payment_date__lte=end)
        return qs

    @staticmethod
    def _received_amount():
        return Sum(
            Case(
                When(status=Invoice.Status.PAID, then=F("amount_payable")),
                default=F("partially_paid_amount"),
                output_field=DecimalField(max_digits=15, decimal_places=2),
            )
        )

    @staticmethod
    def _resolve_currency(user, preferred_currency: Optional[str], rate: Optional[Any]):
        preferred_currency = preferred_currency or CurrencyService.get_preferred_currency(user)
        rate = Decimal(str(rate)) if rate is not None else CurrencyService.get_rate(user)
        return preferred_currency, rate

    @classmethod
    def monthly_revenue(
        cls,
        user,
        start: Optional[date] = None,
        end: Optional[date] = None,
        preferred_currency: Optional[str] = None,
        rate: Optional[Any] = None,
    ) -> List[Dict[str, Any]]:
        preferred_currency, rate = cls._resolve_currency(user, preferred_currency, rate)
        rows = (
            cls._received_queryset(user, start, end)
            .annotate(month=TruncMonth("payment_date"))
            .values("month", "currency")
            .annotate(received=cls._received_amount(), invoices=Count("id"))
            .order_by("-month")
        )

        buckets: "OrderedDict[str, _Bucket]" = OrderedDict()
        for row in rows:
            label = row["month"].strftime("%Y-%m")
            buckets.setdefault(label, _Bucket(label)).add(row["currency"], row["received"], row["invoices"])

        return [
            {"month": label, **bucket.as_dict(preferred_currency, rate)}
            for label, bucket in buckets.items()
        ]

    @classmethod
    def revenue_by_client(
        cls,
        user,
        start: Optional[date] = None,
        end: Optional[date] = None,
        preferred_currency: Optional[str] = None,
        rate: Optional[Any] = None,
    ) -> List[Dict[str, Any]]:
        preferred_currency, rate = cls._resolve_currency(user, preferred_currency, rate)
        rows = (
            cls._received_queryset(user, start, end)
            .values("client_id", "client__name", "currency")
            .annotate(received=cls._received_amount(), invoices=Count("id"))
            .order_by()
        )

        buckets: Dict[Optional[int], _Bucket] = {}
        for row in rows:
            label = row["client__name"] or UNKNOWN_CLIENT
            buckets.setdefault(row["client_id"], _Bucket(label)).add(row["currency"], row["received"], row["invoices"])

        report = [
            {"client_id": client_id, "client": bucket.label, **bucket.as_dict(preferred_currency, rate)}
            for client_id, bucket in buckets.items()
        ]
        report.sort(key=lambda entry: entry["total"], reverse=True)
        return report

    @classmethod
    def expense_summary(
        cls,
        user,
        start: Optional[date] = None,
        end: Optional[date] = None,
        preferred_currency: Optional[str] = None,
        rate: Optional[Any] = None,
    ) -> List[Dict[str, Any]]:
        preferred_currency, rate = cls._resolve_currency(user, preferred_currency, rate)
        qs = Expense.objects.filter(user=user)
        if start:
            qs = qs.filter(expense_date__gte=start)
        if end:
            qs = qs.filter(expense_date__lte=end)
        rows = qs.values("category_id", "category__name", "currency").annotate(spent=Sum("amount"), expenses=Count("id")).order_by()

        buckets: Dict[Optional[int], _Bucket] = {}
        for row in rows:
            label = row["category__name"] or UNCATEGORIZED
            buckets.setdefault(row["category_id"], _Bucket(label)).add(row["currency"], row["spent"], row["expenses"])

        report = [
            {"category": bucket.label, **bucket.as_dict(preferred_currency, rate)}
            for bucket in buckets.values()
        ]
        report.sort(key=lambda entry: entry["total"], reverse=True)
        return report
