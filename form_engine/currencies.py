"""
Currency configuration and utilities.

Holds the supported currency table, the locale to currency lookup used to
pick a default, and the display formatter shared by the currency field and
the total income display.
"""

import locale as _locale
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"
DEFAULT_LOCALE = "en-US"
DEFAULT_SYMBOL = "$"


@dataclass(frozen=True)
class Currency:
    """A supported currency."""
    code: str
    symbol: str
    name: str


SUPPORTED_CURRENCIES: List[Currency] = [
    Currency("USD", "$", "US Dollar"),
    Currency("EUR", "€", "Euro"),
    Currency("GBP", "£", "British Pound"),
    Currency("INR", "₹", "Indian Rupee"),
]

LOCALE_CURRENCY_MAP: Dict[str, str] = {
    "en-US": "USD",
    "en-GB": "GBP",
    "de-DE": "EUR",
    "fr-FR": "EUR",
    "es-ES": "EUR",
    "it-IT": "EUR",
    "en-IN": "INR",
}


def normalize_locale(locale_name: Optional[str]) -> Optional[str]:
    """
    Normalize a locale name to the 'll-CC' form used by the lookup table.

    Accepts POSIX names such as 'en_GB.UTF-8' as well as 'en-GB'.
    """
    if not locale_name:
        return None

    name = locale_name.split('.')[0].split('@')[0].replace('_', '-')
    parts = name.split('-')
    if len(parts) >= 2:
        return f"{parts[0].lower()}-{parts[1].upper()}"
    return parts[0].lower()


def get_system_locale() -> Optional[str]:
    """Return the process locale, or None when it cannot be determined."""
    try:
        name = _locale.getlocale()[0]
    except ValueError as e:
        logger.debug(f"Could not read process locale: {e}")
        return None
    return normalize_locale(name)


def get_default_currency(locale_name: Optional[str] = None) -> str:
    """
    Get the currency for a locale, defaulting to USD.

    Args:
        locale_name: Locale such as 'en-GB'; the process locale is used when omitted

    Returns:
        The detected currency code
    """
    resolved = normalize_locale(locale_name) or get_system_locale() or DEFAULT_LOCALE

    # Exact match first
    if resolved in LOCALE_CURRENCY_MAP:
        return LOCALE_CURRENCY_MAP[resolved]

    # Then the first entry sharing the language code ('en' from 'en-AU')
    language = resolved.split('-')[0]
    for key, code in LOCALE_CURRENCY_MAP.items():
        if key.startswith(language + '-'):
            logger.debug(f"Locale {resolved} matched {key} by language")
            return code

    return DEFAULT_CURRENCY


def get_currency_info(code: Optional[str]) -> Optional[Currency]:
    """Get currency information by code."""
    for currency in SUPPORTED_CURRENCIES:
        if currency.code == code:
            return currency
    return None


def get_currency_symbol(code: Optional[str]) -> str:
    info = get_currency_info(code)
    return info.symbol if info else DEFAULT_SYMBOL


def currency_options() -> List[Dict[str, str]]:
    """Select options for the currency field, in table order."""
    return [
        {"value": c.code, "label": f"{c.code} ({c.symbol}) - {c.name}"}
        for c in SUPPORTED_CURRENCIES
    ]


def format_currency(amount: Union[int, float, Decimal, None], code: Optional[str]) -> str:
    """
    Format an amount as '<symbol> <amount>' with two decimals.

    Negative amounts are rendered as '-<symbol> <amount>'.

    Args:
        amount: Amount to format; None is treated as zero
        code: Currency code used to pick the symbol

    Returns:
        Formatted string such as '$ 1,234.50'
    """
    symbol = get_currency_symbol(code)
    value = Decimal(str(amount)) if amount is not None else Decimal("0")
    value = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if value == 0:
        value = abs(value)

    if value < 0:
        return f"-{symbol} {-value:,.2f}"
    return f"{symbol} {value:,.2f}"
