"""Locale-aware money formatting for messages shown to staff and tenants.

The locale comes from settings.locale (LOCALE env var); the currency is the
first one babel lists for the locale's territory.
"""

import logging
from decimal import Decimal

from babel import Locale, UnknownLocaleError
from babel.numbers import format_currency, format_decimal, get_territory_currencies
from babel.numbers import get_currency_symbol as babel_currency_symbol

from rentbill.config import settings

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "th_TH"
DEFAULT_CURRENCY = "THB"
AMOUNT_PATTERN = "#,##0.00"


def resolve_locale(name: str | None) -> Locale:
    """Parse a locale name; names babel does not know fall back to DEFAULT_LOCALE."""
    try:
        return Locale.parse(name)
    except (UnknownLocaleError, ValueError, TypeError) as e:
        logger.warning("Unknown locale %r (%s), using %s", name, e, DEFAULT_LOCALE)
        return Locale.parse(DEFAULT_LOCALE)


def currency_for(locale: Locale) -> str:
    """ISO 4217 code of the locale's territory currency."""
    currencies = get_territory_currencies(locale.territory) if locale.territory else []
    return currencies[0] if currencies else DEFAULT_CURRENCY


LOCALE = resolve_locale(settings.locale)
CURRENCY = currency_for(LOCALE)


def get_currency_code() -> str:
    return CURRENCY


def get_currency_symbol() -> str:
    return babel_currency_symbol(CURRENCY, locale=LOCALE)


def format_amount(amount: Decimal | int, include_symbol: bool = True) -> str:
    """Format an amount with two decimals, e.g. '฿6,110.00' for th_TH.

    Negative amounts keep their sign; callers word refunds and debts themselves.
    """
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    if include_symbol:
        return format_currency(value, CURRENCY, locale=LOCALE)
    return format_decimal(value, format=AMOUNT_PATTERN, locale=LOCALE)


__all__ = [
    "LOCALE",
    "CURRENCY",
    "currency_for",
    "format_amount",
    "get_currency_code",
    "get_currency_symbol",
    "resolve_locale",
]
