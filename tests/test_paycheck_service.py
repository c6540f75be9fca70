"""
Paycheck projection tests.

Projection is a pure function of the income source, so sources here are
plain namespaces rather than database rows.
"""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from services.paycheck_service import PaycheckService
from utils.errors import ValidationError


def _source(frequency, start_date, id=7, amount='1000.00', end_date=None, second_pay_day=None, is_active=True):
    return SimpleNamespace(
        id=id,
        user_id=1,
        name=f'{frequency} pay',
        amount=Decimal(amount),
        frequency=frequency,
        start_date=start_date,
        end_date=end_date,
        second_pay_day=second_pay_day,
        is_active=is_active,
    )


def _dates(paychecks):
    return [p.date for p in paychecks]


class TestPaycheckIds:
    def test_id_is_source_and_date(self):
        assert PaycheckService.make_paycheck_id(7, date(2025, 1, 3)) == '7-2025-01-03'

    def test_parse_round_trip(self):
        assert PaycheckService.parse_paycheck_id('7-2025-01-03') == (7, date(2025, 1, 3))

    @pytest.mark.parametrize('value', ['', None, 'abc', '7-2025-13-01', 'manual-2025-01-01', '7-2025-1-3'])
    def test_parse_rejects_malformed(self, value):
        with pytest.raises(ValidationError):
            PaycheckService.parse_paycheck_id(value)

    def test_projection_is_stable(self):
        source = _source('biweekly', date(2025, 1, 3))
        first = PaycheckService.project(source, 2025, 1)
        second = PaycheckService.project(source, 2025, 1)
        assert [(p.id, p.amount) for p in first] == [(p.id, p.amount) for p in second]


class TestSteppedFrequencies:
    def test_biweekly_from_first_paycheck(self):
        paychecks = PaycheckService.project(_source('biweekly', date(2025, 1, 3)), 2025, 1)
        assert _dates(paychecks) == [date(2025, 1, 3), date(2025, 1, 17), date(2025, 1, 31)]
        assert paychecks[0].id == '7-2025-01-03'
        assert (paychecks[1].date - paychecks[0].date).days == 14

    def test_biweekly_keeps_phase_years_after_start(self):
        start = date(2020, 1, 3)
        paychecks = PaycheckService.project(_source('biweekly', start), 2025, 1)
        assert _dates(paychecks) == [date(2025, 1, 10), date(2025, 1, 24)]
        assert all((p.date - start).days % 14 == 0 for p in paychecks)

    def test_weekly(self):
        paychecks = PaycheckService.project(_source('weekly', date(2025, 1, 1)), 2025, 1)
        assert _dates(paychecks) == [date(2025, 1, d) for d in (1, 8, 15, 22, 29)]

    def test_weekly_stops_at_end_date(self):
        source = _source('weekly', date(2025, 1, 1), end_date=date(2025, 1, 20))
        assert _dates(PaycheckService.project(source, 2025, 1)) == [date(2025, 1, 1), date(2025, 1, 8), date(2025, 1, 15)]

    def test_no_paychecks_before_start(self):
        assert PaycheckService.project(_source('weekly', date(2025, 3, 1)), 2025, 2) == []

    def test_frequency_alias(self):
        paychecks = PaycheckService.project(_source('bi-weekly', date(2025, 1, 3)), 2025, 1)
        assert len(paychecks) == 3
        assert all(p.frequency == 'biweekly' for p in paychecks)


class TestMonthly:
    def test_day_clipped_to_february(self):
        source = _source('monthly', date(2025, 1, 31))
        assert _dates(PaycheckService.project(source, 2025, 2)) == [date(2025, 2, 28)]

    def test_before_start_month(self):
        assert PaycheckService.project(_source('monthly', date(2025, 3, 25)), 2025, 2) == []

    def test_end_date_is_month_granular(self):
        source = _source('monthly', date(2025, 1, 25), end_date=date(2025, 3, 10))
        assert _dates(PaycheckService.project(source, 2025, 3)) == [date(2025, 3, 25)]
        assert PaycheckService.project(source, 2025, 4) == []


class TestSemimonthly:
    def test_default_second_day_is_fifteen_later(self):
        source = _source('semimonthly', date(2025, 1, 1))
        assert _dates(PaycheckService.project(source, 2025, 2)) == [date(2025, 2, 1), date(2025, 2, 16)]

    def test_explicit_second_day_clipped(self):
        source = _source('semimonthly', date(2025, 1, 15), second_pay_day=31)
        assert _dates(PaycheckService.project(source, 2025, 2)) == [date(2025, 2, 15), date(2025, 2, 28)]

    def test_late_start_day_pairs_with_earlier_day(self):
        source = _source('semimonthly', date(2025, 1, 20))
        assert _dates(PaycheckService.project(source, 2025, 2)) == [date(2025, 2, 5), date(2025, 2, 20)]

    def test_dates_before_start_dropped(self):
        source = _source('semimonthly', date(2025, 1, 20))
        assert _dates(PaycheckService.project(source, 2025, 1)) == [date(2025, 1, 20)]


class TestProjectWindow:
    def test_inactive_source_projects_nothing(self):
        assert PaycheckService.project(_source('weekly', date(2025, 1, 1), is_active=False), 2025, 1) == []

    def test_unknown_frequency(self):
        with pytest.raises(ValidationError):
            PaycheckService.project(_source('quarterly', date(2025, 1, 1)), 2025, 1)

    def test_window_sorted_across_sources_and_months(self):
        salary = _source('monthly', date(2025, 1, 25), id=1)
        wages = _source('biweekly', date(2025, 1, 3), id=2)

        paychecks = PaycheckService.project_window([salary, wages], 2025, 1, lookahead_months=1)

        assert _dates(paychecks) == sorted(_dates(paychecks))
        assert [p.id for p in paychecks] == [
            '2-2025-01-03', '2-2025-01-17', '1-2025-01-25', '2-2025-01-31',
            '2-2025-02-14', '1-2025-02-25', '2-2025-02-28',
        ]

    def test_to_dict(self):
        paycheck = PaycheckService.project(_source('monthly', date(2025, 1, 25)), 2025, 1)[0]
        assert paycheck.to_dict() == {
            'id': '7-2025-01-25',
            'income_source_id': 7,
            'name': 'monthly pay',
            'amount': 1000.0,
            'date': '2025-01-25',
            'frequency': 'monthly',
            'user_id': 1,
        }
