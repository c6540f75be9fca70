"""Debt CRUD and manual payment recording."""
from datetime import date
from decimal import Decimal

import pytest

from extensions import db
from models.debt_allocations import DebtAllocation
from models.monthly_debt_planning import MonthlyDebtPlanning
from services.allocation_service import AllocationService
from services.debt_planning_service import DebtPlanningService
from services.debt_service import DebtService
from utils.errors import AccessDenied, NotFound, ValidationError


class TestDebtCrud:
    def test_create(self, budget_account, logged_in):
        debt = DebtService.create_debt(budget_account.id, ' Phone ', '30', '2025-01-12', category='Bills')

        assert debt.name == 'Phone'
        assert debt.payment_amount == Decimal('30.00')
        assert debt.due_date == date(2025, 1, 12)
        assert debt.created_by_user_id == logged_in.id

    @pytest.mark.parametrize('name,amount,due', [
        ('', '30', '2025-01-12'),
        ('Phone', '0', '2025-01-12'),
        ('Phone', '30', 'soon'),
    ])
    def test_create_validation(self, budget_account, logged_in, name, amount, due):
        with pytest.raises(ValidationError):
            DebtService.create_debt(budget_account.id, name, amount, due)

    def test_negative_interest_rejected(self, budget_account, logged_in):
        with pytest.raises(ValidationError):
            DebtService.create_debt(budget_account.id, 'Card', '50', '2025-01-12', interest_rate='-1')

    def test_update(self, budget_account, logged_in, make_debt):
        debt = make_debt()
        DebtService.update_debt(budget_account.id, debt.id, payment_amount='275.50', name='Car Finance')

        assert debt.payment_amount == Decimal('275.50')
        assert debt.name == 'Car Finance'

    def test_rejected_update_writes_nothing(self, budget_account, logged_in, make_debt):
        debt = make_debt(name='Car Loan', payment_amount='250.00')
        with pytest.raises(ValidationError):
            DebtService.update_debt(budget_account.id, debt.id, name='Renamed', payment_amount='abc')

        db.session.commit()
        db.session.refresh(debt)
        assert debt.name == 'Car Loan'
        assert debt.payment_amount == Decimal('250.00')

    def test_deactivate_hides_from_list(self, budget_account, logged_in, make_debt):
        debt = make_debt()
        make_debt(name='Phone')
        DebtService.deactivate_debt(budget_account.id, debt.id)

        assert [d.name for d in DebtService.list_debts(budget_account.id)] == ['Phone']
        assert len(DebtService.list_debts(budget_account.id, include_inactive=True)) == 2

    def test_deactivated_debt_cannot_be_edited(self, budget_account, logged_in, make_debt):
        debt = make_debt()
        DebtService.deactivate_debt(budget_account.id, debt.id)
        with pytest.raises(NotFound):
            DebtService.update_debt(budget_account.id, debt.id, name='Again')

    def test_non_member_cannot_list(self, budget_account, outsider, login_as):
        login_as(outsider)
        with pytest.raises(AccessDenied):
            DebtService.list_debts(budget_account.id)


class TestRecordPayment:
    def test_early_payment_advances_due_date(self, budget_account, logged_in, make_debt):
        debt = make_debt(due_date=date(2025, 1, 28))

        allocation = DebtService.record_payment(budget_account.id, debt.id, '250', '2025-01-20')

        assert allocation.is_paid is True
        assert allocation.paycheck_id == 'manual-2025-01-20'
        assert allocation.payment_amount == Decimal('250.00')
        assert debt.due_date == date(2025, 2, 28)
        assert debt.last_payment_month == date(2025, 1, 1)

        record = MonthlyDebtPlanning.query.filter_by(debt_id=debt.id, year=2025, month=1).one()
        assert record.due_date == date(2025, 1, 28)
        assert allocation.monthly_debt_planning_id == record.id

    def test_second_payment_same_month_does_not_advance(self, budget_account, logged_in, make_debt):
        debt = make_debt(due_date=date(2025, 1, 28))
        DebtService.record_payment(budget_account.id, debt.id, '100', '2025-01-20')
        DebtService.record_payment(budget_account.id, debt.id, '150', '2025-01-22')

        assert debt.due_date == date(2025, 2, 28)
        assert DebtAllocation.query.count() == 1

    def test_late_payment_does_not_advance(self, budget_account, logged_in, make_debt):
        debt = make_debt(due_date=date(2025, 1, 28))
        DebtService.record_payment(budget_account.id, debt.id, '250', '2025-01-30')

        assert debt.due_date == date(2025, 1, 28)
        assert debt.last_payment_month is None

    def test_due_day_31_clipped_when_advanced(self, budget_account, logged_in, make_debt):
        debt = make_debt(due_date=date(2025, 1, 31))
        DebtService.record_payment(budget_account.id, debt.id, '250', '2025-01-15')

        assert debt.due_date == date(2025, 2, 28)

    def test_existing_allocation_marked_paid(self, budget_account, logged_in, make_debt):
        debt = make_debt(due_date=date(2025, 1, 28))
        DebtPlanningService.ensure_planning_records(budget_account.id, 2025, 1)
        record = DebtPlanningService.get_planning_records(budget_account.id, 2025, 1)[0]
        allocated = AllocationService.allocate(budget_account.id, record.id, '1-2025-01-25')

        paid = DebtService.record_payment(budget_account.id, debt.id, '250', '2025-01-25')

        assert paid.id == allocated.id
        assert paid.paycheck_id == '1-2025-01-25'
        assert paid.is_paid is True

    def test_balance_debt_overpayment_rejected(self, budget_account, logged_in, make_debt):
        debt = make_debt(payment_amount='100.00', has_balance=True)

        with pytest.raises(ValidationError, match='Payment amount cannot exceed current balance'):
            DebtService.record_payment(budget_account.id, debt.id, '150', '2025-01-10')
        assert DebtAllocation.query.count() == 0

    def test_unknown_debt(self, budget_account, logged_in):
        with pytest.raises(NotFound):
            DebtService.record_payment(budget_account.id, 999, '10', '2025-01-10')
