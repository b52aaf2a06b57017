"""
Derived income calculations.

The total income is derived from the annual rate and the employment period.
Year fractions are calendar aware: the period is measured in whole calendar
months plus the elapsed share of the following month, so Feb-to-Feb and
Jan-to-Jan spans always count as whole years.
"""

import logging
import math
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str, None]

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def _to_datetime(value: DateLike) -> Optional[datetime]:
    """Normalize a date, datetime or ISO string to a naive datetime."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    if isinstance(value, str):
        return date_parser.parse(value).replace(tzinfo=None)
    raise TypeError(f"Unsupported date value: {value!r}")


def month_difference(start: datetime, end: datetime) -> float:
    """
    Fractional number of calendar months from start to end.

    Whole months are counted with relativedelta; the remainder is the
    elapsed share of the month that starts at the last whole-month anchor.
    """
    if end < start:
        return -month_difference(end, start)

    delta = relativedelta(end, start)
    whole_months = delta.years * 12 + delta.months

    anchor = start + relativedelta(months=whole_months)
    next_anchor = start + relativedelta(months=whole_months + 1)

    remainder = (end - anchor).total_seconds()
    month_length = (next_anchor - anchor).total_seconds()
    if month_length <= 0:
        return float(whole_months)

    return whole_months + remainder / month_length


def year_fraction(start: datetime, end: datetime) -> float:
    """Fractional number of years between two datetimes."""
    return month_difference(start, end) / 12


def calculate_total_income(
    annual_income: Any,
    start_date: DateLike,
    end_date: DateLike = None,
    now: Optional[Callable[[], datetime]] = None
) -> Decimal:
    """
    Calculate the total income earned over an employment period.

    Args:
        annual_income: The annual gross income
        start_date: Employment start date
        end_date: Employment end date; defaults to the current moment
        now: Clock used when end_date is missing (defaults to datetime.now)

    Returns:
        Total income rounded to cents, or 0 when inputs are incomplete or invalid
    """
    try:
        if isinstance(annual_income, bool) or not isinstance(annual_income, (int, float, Decimal)):
            raise ValueError("Annual income must be a valid number")
        if not math.isfinite(annual_income):
            raise ValueError("Annual income must be a valid number")

        start = _to_datetime(start_date)
        if start is None or annual_income <= 0:
            return ZERO

        end = _to_datetime(end_date)
        if end is None:
            end = (now or datetime.now)()

        if end < start:
            return ZERO

        years = year_fraction(start, end)

        total = Decimal(str(annual_income)) * Decimal(repr(years))
        return total.quantize(CENTS, rounding=ROUND_HALF_UP)

    except Exception as e:
        logger.error(f"Error calculating total income: {e}")
        return ZERO
