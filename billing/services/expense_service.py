import logging
from datetime import date
from typing import Any, Dict, Optional

from django.db import transaction

from ..exceptions import InvalidInputError, MissingReferenceError
from ..models import Client, Expense, ExpenseCategory
from ..money import INR, SUPPORTED_CURRENCIES, round_money, to_decimal

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"


class ExpenseService:

    @staticmethod
    def get_expenses_queryset(user, filters: Optional[Dict[str, Any]] = None):
        queryset = Expense.objects.filter(user=user).select_related("category", "client")
        if not filters:
            return queryset

        if filters.get("category_id"):
            queryset = queryset.filter(category_id=filters["category_id"])
        if filters.get("client_id"):
            queryset = queryset.filter(client_id=filters["client_id"])
        if filters.get("date_from"):
            queryset = queryset.filter(expense_date__gte=filters["date_from"])
        if filters.get("date_to"):
            queryset = queryset.filter(expense_date__lte=filters["date_to"])
        return queryset

    @staticmethod
    @transaction.atomic
    def create_expense(
        user,
        description: str,
        amount: Any,
        expense_date: date,
        currency: str = INR,
        category: Optional[ExpenseCategory] = None,
        client: Optional[Client] = None,
        receipt_reference: str = "",
    ) -> Expense:
        amount = round_money(to_decimal(amount, "amount"))
        if amount < 0:
            raise InvalidInputError("amount cannot be negative", field="amount", value=str(amount))
        if currency not in SUPPORTED_CURRENCIES:
            raise InvalidInputError(f"Unsupported currency: {currency}", field="currency")
        if category is not None and category.user_id != user.id:
            raise MissingReferenceError("Expense category not found", category_id=category.id)
        if client is not None and client.user_id != user.id:
            raise MissingReferenceError("Client not found", client_id=client.id)

        expense = Expense.objects.create(
            user=user,
            description=description,
            amount=amount,
            currency=currency,
            expense_date=expense_date,
            category=category,
            client=client,
            receipt_reference=receipt_reference,
        )
        logger.info(f"Expense {expense.id} of {amount} {currency} recorded for user {user.id}")
        return expense

    @staticmethod
    def get_or_create_category(user, name: str) -> ExpenseCategory:
        category, _ = ExpenseCategory.objects.get_or_create(user=user, name=name.strip())
        return category

    @staticmethod
    def category_label(expense: Expense) -> str:
        return expense.category.name if expense.category_id and expense.category else UNCATEGORIZED
