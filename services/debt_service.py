"""
Debt Service
============
Debt definition management and manual payment recording.

Manual payments
---------------
``record_payment`` stores a payment against the month's planning record as a
paid DebtAllocation.  It also owns the due-date advancement policy, which is
deliberately kept out of the allocation flow:

  A payment made *before* the debt's current due date, in a month with no
  earlier recorded payment, moves the debt's due date forward one month and
  stamps ``last_payment_month``.  Later payments, or a second payment in the
  same month, leave the due date alone.

Primary entry points
--------------------
  list_debts() / create_debt() / update_debt() / deactivate_debt()
  record_payment()
"""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from dateutil.relativedelta import relativedelta
from flask import current_app

from extensions import db
from models.debt_allocations import DebtAllocation
from models.debts import Debt
from models.monthly_debt_planning import MonthlyDebtPlanning
from services.allocation_service import AllocationService
from services.debt_planning_service import DebtPlanningService
from utils.dates import parse_date
from utils.db_helpers import account_get_or_404, account_query, require_membership
from utils.errors import NotFound, ValidationError


MANUAL_PAYCHECK_PREFIX = 'manual'


class DebtService:
    """Debt CRUD and payment recording, scoped to a budget account"""

    @staticmethod
    def _parse_rate(rate):
        if rate in (None, ''):
            return Decimal('0')
        try:
            value = Decimal(str(rate))
        except (InvalidOperation, ValueError):
            raise ValidationError('Invalid interest rate')
        if not value.is_finite() or value < 0:
            raise ValidationError('Interest rate cannot be negative')
        return value

    @staticmethod
    def _required_amount(amount):
        value = AllocationService.parse_amount(amount)
        if value is None:
            raise ValidationError('Payment amount is required')
        return value

    @staticmethod
    def _active_debt(budget_account_id, debt_id):
        debt = account_get_or_404(Debt, budget_account_id, debt_id, message='Debt not found')
        if not debt.is_active:
            raise NotFound('Debt not found')
        return debt

    @staticmethod
    def list_debts(budget_account_id, include_inactive=False):
        require_membership(budget_account_id)
        query = account_query(Debt, budget_account_id)
        if not include_inactive:
            query = query.filter_by(is_active=True)
        return query.order_by(Debt.name).all()

    @staticmethod
    def create_debt(budget_account_id, name, payment_amount, due_date,
                    interest_rate=None, category=None, has_balance=False):
        user_id = require_membership(budget_account_id)
        if not name or not str(name).strip():
            raise ValidationError('Debt name is required')

        debt = Debt(
            budget_account_id=budget_account_id,
            created_by_user_id=user_id,
            name=str(name).strip(),
            category=category or None,
            payment_amount=DebtService._required_amount(payment_amount),
            interest_rate=DebtService._parse_rate(interest_rate),
            due_date=parse_date(due_date, field='due date'),
            has_balance=bool(has_balance),
            is_active=True,
        )
        db.session.add(debt)
        db.session.commit()

        current_app.logger.info(f"debt {debt.id} '{debt.name}' created in account {budget_account_id}")
        return debt

    @staticmethod
    def update_debt(budget_account_id, debt_id, **changes):
        """
        Edit a debt definition.

        Existing allocation overrides are snapshots and are not touched, and
        already materialised planning rows keep their due date.

        Accepted keys: name, payment_amount, interest_rate, due_date, category, has_balance.
        Nothing is written unless every change validates.
        """
        require_membership(budget_account_id)
        debt = DebtService._active_debt(budget_account_id, debt_id)

        values = {}
        if 'name' in changes:
            if not changes['name'] or not str(changes['name']).strip():
                raise ValidationError('Debt name is required')
            values['name'] = str(changes['name']).strip()
        if 'payment_amount' in changes:
            values['payment_amount'] = DebtService._required_amount(changes['payment_amount'])
        if 'interest_rate' in changes:
            values['interest_rate'] = DebtService._parse_rate(changes['interest_rate'])
        if 'due_date' in changes:
            values['due_date'] = parse_date(changes['due_date'], field='due date')
        if 'category' in changes:
            values['category'] = changes['category'] or None
        if 'has_balance' in changes:
            values['has_balance'] = bool(changes['has_balance'])

        for key, value in values.items():
            setattr(debt, key, value)
        db.session.commit()
        return debt

    @staticmethod
    def deactivate_debt(budget_account_id, debt_id):
        """Logical delete; planning rows and allocations are kept for history"""
        require_membership(budget_account_id)
        debt = DebtService._active_debt(budget_account_id, debt_id)
        debt.is_active = False
        db.session.commit()

        current_app.logger.info(f"debt {debt.id} deactivated in account {budget_account_id}")
        return debt

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    @staticmethod
    def next_due_date(due_date):
        """One month after *due_date*, day clipped to the new month."""
        return due_date + relativedelta(months=1)

    @staticmethod
    def should_advance_due_date(debt, payment_date):
        """Early payment in a month with no earlier recorded payment."""
        payment_month = payment_date.replace(day=1)
        if debt.last_payment_month == payment_month:
            return False
        return payment_date < debt.due_date

    @staticmethod
    def record_payment(budget_account_id, debt_id, amount, payment_date, note=None):
        """
        Record a manual payment against a debt.

        The month's planning record is created if needed.  An existing
        allocation on it is marked paid; otherwise a paid allocation bound to
        a ``manual-<date>`` paycheck id is created.

        Returns:
            DebtAllocation: the paid allocation.
        """
        user_id = require_membership(budget_account_id)
        debt = DebtService._active_debt(budget_account_id, debt_id)
        amount = DebtService._required_amount(amount)
        payment_date = parse_date(payment_date, field='payment date')

        if debt.has_balance and amount > Decimal(str(debt.payment_amount)):
            raise ValidationError('Payment amount cannot exceed current balance')

        year, month = payment_date.year, payment_date.month
        try:
            record = account_query(MonthlyDebtPlanning, budget_account_id).filter_by(
                debt_id=debt.id, year=year, month=month,
            ).first()
            if record is None:
                record = MonthlyDebtPlanning(
                    budget_account_id=budget_account_id,
                    debt_id=debt.id,
                    year=year,
                    month=month,
                    due_date=DebtPlanningService.due_date_for_month(debt, year, month),
                    is_active=True,
                )
                db.session.add(record)
                db.session.flush()

            allocation = account_query(DebtAllocation, budget_account_id)\
                .filter_by(monthly_debt_planning_id=record.id)\
                .first()
            if allocation is None:
                allocation = DebtAllocation(
                    budget_account_id=budget_account_id,
                    monthly_debt_planning_id=record.id,
                    paycheck_id=f"{MANUAL_PAYCHECK_PREFIX}-{payment_date.isoformat()}",
                    user_id=user_id,
                )
                db.session.add(allocation)

            allocation.payment_amount = amount
            allocation.payment_date = payment_date
            allocation.is_paid = True
            allocation.paid_at = datetime.utcnow()
            allocation.note = note or f"Payment recorded on {payment_date.isoformat()}"

            if DebtService.should_advance_due_date(debt, payment_date):
                debt.due_date = DebtService.next_due_date(debt.due_date)
                debt.last_payment_month = date(year, month, 1)

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            f"debt {debt.id}: payment of {amount} recorded for {payment_date.isoformat()} in account {budget_account_id}"
        )
        return allocation
