"""
Paycheck Projection Service
Turns recurring IncomeSource definitions into dated paychecks for a month.

Paychecks are never stored.  They are recomputed on every read, and their id
is a pure function of (income source id, date) so allocations keyed by
paycheck id stay valid across calls.
"""
import re
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from models.income_sources import normalize_frequency
from utils.dates import clip_day, month_bounds, month_index, month_window
from utils.errors import ValidationError


PAYCHECK_ID_PATTERN = re.compile(r'^(\d+)-(\d{4}-\d{2}-\d{2})$')

STEP_DAYS = {
    'weekly': 7,
    'biweekly': 14,
}


@dataclass(frozen=True)
class Paycheck:
    """A projected occurrence of recurring income"""
    id: str
    income_source_id: int
    name: str
    amount: Decimal
    date: date
    frequency: str
    user_id: int

    @property
    def year(self):
        return self.date.year

    @property
    def month(self):
        return self.date.month

    def to_dict(self):
        return {
            'id': self.id,
            'income_source_id': self.income_source_id,
            'name': self.name,
            'amount': float(self.amount),
            'date': self.date.isoformat(),
            'frequency': self.frequency,
            'user_id': self.user_id,
        }


class PaycheckService:
    """Projection of income sources onto calendar months"""

    @staticmethod
    def make_paycheck_id(income_source_id, pay_date):
        return f"{income_source_id}-{pay_date.isoformat()}"

    @staticmethod
    def parse_paycheck_id(paycheck_id):
        """Split a paycheck id into ``(income_source_id, date)``.

        Raises ValidationError if the id is not of the form ``<id>-YYYY-MM-DD``.
        """
        match = PAYCHECK_ID_PATTERN.match(str(paycheck_id or ''))
        if not match:
            raise ValidationError(f'Invalid paycheck id: {paycheck_id!r}')
        try:
            pay_date = date.fromisoformat(match.group(2))
        except ValueError:
            raise ValidationError(f'Invalid paycheck id: {paycheck_id!r}')
        return int(match.group(1)), pay_date

    @staticmethod
    def stepped_dates(start_date, step_days, first_day, last_day):
        """
        Dates ``start_date + k * step_days`` (k >= 0) within [first_day, last_day].

        The first occurrence in range is found from the day offset directly,
        so the cost does not grow with the distance from ``start_date``.
        """
        if last_day < start_date:
            return []

        if first_day <= start_date:
            current = start_date
        else:
            offset = (first_day - start_date).days
            steps = -(-offset // step_days)  # ceiling division
            current = start_date + timedelta(days=steps * step_days)

        dates = []
        while current <= last_day:
            dates.append(current)
            current += timedelta(days=step_days)
        return dates

    @staticmethod
    def semimonthly_days(income_source):
        """The two pay days of a semimonthly source, before month clipping."""
        first = income_source.start_date.day
        second = income_source.second_pay_day
        if not second:
            second = first + 15 if first <= 15 else first - 15
        return sorted({first, second})

    @staticmethod
    def project(income_source, year, month):
        """
        Project one income source onto (year, month).

        Args:
            income_source: IncomeSource (or any object with the same attributes)
            year, month:   Target month

        Returns:
            list[Paycheck] sorted by date; empty for inactive sources or months
            outside the source's start/end window.
        """
        if not income_source.is_active:
            return []

        frequency = normalize_frequency(income_source.frequency)
        if frequency is None:
            raise ValidationError(f'Unknown income frequency: {income_source.frequency!r}')

        start_date = income_source.start_date
        end_date = income_source.end_date
        first_day, last_day = month_bounds(year, month)

        if frequency == 'monthly':
            target = month_index(year, month)
            if target < month_index(start_date.year, start_date.month):
                return []
            if end_date and target > month_index(end_date.year, end_date.month):
                return []
            dates = [clip_day(year, month, start_date.day)]

        elif frequency == 'semimonthly':
            days = PaycheckService.semimonthly_days(income_source)
            dates = sorted({clip_day(year, month, day) for day in days})
            dates = [d for d in dates if d >= start_date and (not end_date or d <= end_date)]

        else:
            window_end = min(last_day, end_date) if end_date else last_day
            dates = PaycheckService.stepped_dates(start_date, STEP_DAYS[frequency], first_day, window_end)

        return [
            Paycheck(
                id=PaycheckService.make_paycheck_id(income_source.id, pay_date),
                income_source_id=income_source.id,
                name=income_source.name,
                amount=Decimal(str(income_source.amount)),
                date=pay_date,
                frequency=frequency,
                user_id=income_source.user_id,
            )
            for pay_date in dates
        ]

    @staticmethod
    def project_window(income_sources, year, month, lookahead_months=0):
        """All paychecks for every source across the target month plus lookahead, sorted by date."""
        paychecks = []
        for target_year, target_month in month_window(year, month, lookahead_months):
            for income_source in income_sources:
                paychecks.extend(PaycheckService.project(income_source, target_year, target_month))

        paychecks.sort(key=lambda p: (p.date, p.income_source_id))
        return paychecks
