"""
Month and day arithmetic for paycheck planning.

Everything here works on explicit (year, month, day) integers or plain
``date`` objects so the results never depend on the server's timezone.
"""
import calendar
from datetime import date, datetime

from dateutil.relativedelta import relativedelta

from utils.errors import ValidationError


def days_in_month(year, month):
    return calendar.monthrange(year, month)[1]


def clip_day(year, month, day):
    """Return ``date(year, month, day)`` with *day* clipped to the month length.

    A due day of 31 in February becomes the 28th (or 29th).
    """
    return date(year, month, min(day, days_in_month(year, month)))


def add_months(year, month, count):
    """Shift (year, month) by *count* months and return the new pair."""
    shifted = date(year, month, 1) + relativedelta(months=count)
    return shifted.year, shifted.month


def month_window(year, month, lookahead_months=0):
    """List of (year, month) pairs from the target month through the lookahead."""
    return [add_months(year, month, offset) for offset in range(lookahead_months + 1)]


def month_bounds(year, month):
    """First and last day of a month."""
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def window_bounds(year, month, lookahead_months=0):
    """First day of the target month and last day of the final lookahead month."""
    end_year, end_month = add_months(year, month, lookahead_months)
    return date(year, month, 1), month_bounds(end_year, end_month)[1]


def month_index(year, month):
    """Months since year 0; handy for comparing (year, month) pairs."""
    return year * 12 + (month - 1)


def month_key(year, month):
    return f"{year:04d}-{month:02d}"


def parse_date(value, field='date'):
    """Coerce *value* to a ``date``.

    Accepts ``date``, ``datetime`` or an ISO ``YYYY-MM-DD`` string.
    Raises ``ValidationError`` for anything else.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), '%Y-%m-%d').date()
        except ValueError:
            pass
    raise ValidationError(f"Invalid {field}: expected YYYY-MM-DD")


def validate_period(year, month, lookahead_months=0, max_lookahead=None):
    """Validate and normalise a planning period, returning ints.

    Raises ``ValidationError`` for a non 4-digit year, a month outside 1-12
    or a negative / oversized lookahead.
    """
    try:
        year = int(year)
        month = int(month)
        lookahead_months = int(lookahead_months or 0)
    except (TypeError, ValueError):
        raise ValidationError('Year, month and lookahead must be integers')

    if year < 1000 or year > 9999:
        raise ValidationError('Year must be a 4-digit number')
    if month < 1 or month > 12:
        raise ValidationError('Month must be between 1 and 12')
    if lookahead_months < 0:
        raise ValidationError('Lookahead months cannot be negative')
    if max_lookahead is not None and lookahead_months > max_lookahead:
        raise ValidationError(f'Lookahead months cannot exceed {max_lookahead}')

    return year, month, lookahead_months
