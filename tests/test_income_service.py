"""Income source management."""
from datetime import date
from decimal import Decimal

import pytest

from extensions import db
from services.income_service import IncomeService
from utils.errors import NotAuthenticated, NotFound, ValidationError


class TestCreateIncomeSource:
    def test_create_owned_by_current_user(self, logged_in):
        source = IncomeService.create_income_source('Salary', '2100.5', 'monthly', '2025-01-25')

        assert source.user_id == logged_in.id
        assert source.amount == Decimal('2100.50')
        assert source.start_date == date(2025, 1, 25)
        assert source.is_active is True

    def test_amount_rounds_half_up(self, logged_in):
        source = IncomeService.create_income_source('Salary', '1234.565', 'monthly', '2025-01-25')
        assert source.amount == Decimal('1234.57')

    def test_frequency_alias_stored_canonically(self, logged_in):
        source = IncomeService.create_income_source('Wages', '800', 'Bi-Weekly', '2025-01-03')
        assert source.frequency == 'biweekly'
        assert source.end_date is None

    @pytest.mark.parametrize('kwargs', [
        {'name': '', 'amount': '100', 'frequency': 'monthly', 'start_date': '2025-01-01'},
        {'name': 'Pay', 'amount': '-5', 'frequency': 'monthly', 'start_date': '2025-01-01'},
        {'name': 'Pay', 'amount': '100', 'frequency': 'yearly', 'start_date': '2025-01-01'},
        {'name': 'Pay', 'amount': '100', 'frequency': 'monthly', 'start_date': '2025-01-01',
         'end_date': '2024-12-01'},
        {'name': 'Pay', 'amount': '100', 'frequency': 'semimonthly', 'start_date': '2025-01-01',
         'second_pay_day': 40},
        {'name': 'Pay', 'amount': '100', 'frequency': 'semimonthly', 'start_date': '2025-01-15',
         'second_pay_day': 15},
        {'name': 'Pay', 'amount': '0.004', 'frequency': 'monthly', 'start_date': '2025-01-01'},
    ])
    def test_validation(self, logged_in, kwargs):
        with pytest.raises(ValidationError):
            IncomeService.create_income_source(**kwargs)

    def test_requires_login(self, login_as):
        login_as(None)
        with pytest.raises(NotAuthenticated):
            IncomeService.create_income_source('Salary', '100', 'monthly', '2025-01-25')


class TestManageIncomeSource:
    def test_update(self, logged_in, make_income_source):
        source = make_income_source()
        IncomeService.update_income_source(source.id, amount='1600', frequency='semi-monthly', second_pay_day=10)

        assert source.amount == Decimal('1600.00')
        assert source.frequency == 'semimonthly'
        assert source.second_pay_day == 10

    def test_end_before_start_rejected_on_update(self, logged_in, make_income_source):
        source = make_income_source(start_date=date(2025, 1, 25))
        with pytest.raises(ValidationError):
            IncomeService.update_income_source(source.id, end_date='2025-01-01')
        assert source.end_date is None

    def test_rejected_update_writes_nothing(self, logged_in, make_income_source):
        source = make_income_source(name='Salary', amount='1500.00')
        with pytest.raises(ValidationError):
            IncomeService.update_income_source(source.id, name='Renamed', amount='-5')

        db.session.commit()
        db.session.refresh(source)
        assert source.name == 'Salary'
        assert source.amount == Decimal('1500.00')

    def test_second_pay_day_matching_start_day_rejected(self, logged_in, make_income_source):
        source = make_income_source(start_date=date(2025, 1, 25))
        with pytest.raises(ValidationError):
            IncomeService.update_income_source(source.id, frequency='semimonthly', second_pay_day=25)

        db.session.commit()
        db.session.refresh(source)
        assert source.frequency == 'monthly'
        assert source.second_pay_day is None

    def test_only_owner_may_edit(self, partner, login_as, make_income_source):
        source = make_income_source()
        login_as(partner)
        with pytest.raises(NotFound):
            IncomeService.update_income_source(source.id, amount='1')

    def test_deactivate(self, logged_in, make_income_source):
        source = make_income_source()
        IncomeService.deactivate_income_source(source.id)
        assert source.is_active is False


class TestListIncomeSources:
    def test_lists_sources_of_all_members(self, budget_account, user, partner, logged_in, make_income_source):
        make_income_source(name='Salary')
        make_income_source(name='Wages', user_id=partner.id)

        names = [s.name for s in IncomeService.list_income_sources(budget_account.id)]
        assert names == ['Salary', 'Wages']

    def test_excludes_non_members_and_inactive(self, budget_account, logged_in, outsider, make_income_source):
        make_income_source(name='Salary')
        make_income_source(name='Old Job', is_active=False)
        make_income_source(name='Stranger', user_id=outsider.id)

        assert [s.name for s in IncomeService.list_income_sources(budget_account.id)] == ['Salary']
        assert IncomeService.active_sources_for_account(budget_account.id)[0].name == 'Salary'
