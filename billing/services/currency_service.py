import logging
from decimal import Decimal
from typing import Any, Optional

from django.db import transaction

from ..conf import billing_setting
from ..exceptions import InvalidInputError
from ..models import CurrencySettings
from ..money import INR, SUPPORTED_CURRENCIES, convert_currency, round_money, to_decimal

logger = logging.getLogger(__name__)


class CurrencyService:

    @staticmethod
    def get_settings(user) -> Optional[CurrencySettings]:
        return CurrencySettings.objects.filter(user=user).first()

    @classmethod
    def get_rate(cls, user) -> Decimal:
        """USD->INR rate for ``user``, falling back to the configured default."""
        currency_settings = cls.get_settings(user)
        if currency_settings and currency_settings.usd_to_inr_rate > 0:
            return currency_settings.usd_to_inr_rate
        return billing_setting("DEFAULT_USD_TO_INR_RATE")

    @classmethod
    def get_preferred_currency(cls, user) -> str:
        currency_settings = cls.get_settings(user)
        return currency_settings.preferred_currency if currency_settings else INR

    @staticmethod
    @transaction.atomic
    def update_settings(user, usd_to_inr_rate: Any = None, preferred_currency: Optional[str] = None) -> CurrencySettings:
        currency_settings, _ = CurrencySettings.objects.get_or_create(
            user=user,
            defaults={"usd_to_inr_rate": billing_setting("DEFAULT_USD_TO_INR_RATE")},
        )
        if usd_to_inr_rate is not None:
            rate = to_decimal(usd_to_inr_rate, "usd_to_inr_rate")
            if rate <= 0:
                raise InvalidInputError("usd_to_inr_rate must be greater than zero", field="usd_to_inr_rate")
            currency_settings.usd_to_inr_rate = rate
        if preferred_currency is not None:
            if preferred_currency not in SUPPORTED_CURRENCIES:
                raise InvalidInputError(f"Unsupported currency: {preferred_currency}", field="preferred_currency")
            currency_settings.preferred_currency = preferred_currency
        currency_settings.save()

        logger.info(
            f"Currency settings updated for user {user.id}: "
            f"1 USD = {currency_settings.usd_to_inr_rate} INR, preferred {currency_settings.preferred_currency}"
        )
        return currency_settings

    @classmethod
    def convert_for_user(cls, user, amount: Any, from_currency: str, to_currency: Optional[str] = None) -> Decimal:
        to_currency = to_currency or cls.get_preferred_currency(user)
        return round_money(convert_currency(amount, from_currency, to_currency, cls.get_rate(user)))
