"""
Debt Allocation Service
=======================
The authoritative mapping of monthly debt planning records to paychecks.

Invariant: a planning record has at most one DebtAllocation at any time.
``allocate`` is an idempotent replace: moving a debt to another paycheck
deletes the old row and inserts the new one inside the same transaction, so
an interrupted move never leaves zero or two rows behind.

Override fields (payment_amount, payment_date) are snapshots: once set they
do not follow later edits to the Debt.  When unset, presentation falls back
to the debt's payment amount and the planning record's due date.
"""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import current_app

from extensions import db
from models.debt_allocations import DebtAllocation
from models.monthly_debt_planning import MonthlyDebtPlanning
from services.paycheck_service import PaycheckService
from utils.dates import parse_date
from utils.db_helpers import account_get_or_404, account_query, require_membership
from utils.errors import NotFound, ValidationError


class AllocationService:
    """Allocate / unallocate / update / mark-paid for monthly debt instances"""

    # ------------------------------------------------------------------
    # Input parsing
    # ------------------------------------------------------------------

    @staticmethod
    def parse_amount(amount):
        """Return a positive 2dp Decimal, or None when no override was given."""
        if amount is None or amount == '':
            return None
        if isinstance(amount, bool):
            raise ValidationError('Invalid payment amount')
        try:
            value = Decimal(str(amount)).quantize(Decimal('0.01'), ROUND_HALF_UP)
        except (InvalidOperation, ValueError):
            raise ValidationError('Invalid payment amount')
        if not value.is_finite():
            raise ValidationError('Invalid payment amount')
        if value <= 0:
            raise ValidationError('Payment amount must be greater than zero')
        return value

    @staticmethod
    def parse_payment_date(value):
        if value is None or value == '':
            return None
        return parse_date(value, field='payment date')

    # ------------------------------------------------------------------
    # Effective values
    # ------------------------------------------------------------------

    @staticmethod
    def effective_amount(allocation, debt):
        """Override amount if set, else the debt's current payment amount."""
        if allocation is not None and allocation.payment_amount is not None:
            return Decimal(str(allocation.payment_amount))
        return Decimal(str(debt.payment_amount))

    @staticmethod
    def effective_date(allocation, planning_record):
        """Override payment date if set, else the month's due date."""
        if allocation is not None and allocation.payment_date is not None:
            return allocation.payment_date
        return planning_record.due_date

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def _planning_record(budget_account_id, planning_record_id):
        return account_get_or_404(
            MonthlyDebtPlanning, budget_account_id, planning_record_id,
            message='Monthly debt planning record not found',
        )

    @staticmethod
    def allocations_for_records(budget_account_id, planning_record_ids):
        """Allocation rows for the given planning records (no membership check)."""
        planning_record_ids = list(planning_record_ids)
        if not planning_record_ids:
            return []
        return account_query(DebtAllocation, budget_account_id)\
            .filter(DebtAllocation.monthly_debt_planning_id.in_(planning_record_ids))\
            .order_by(DebtAllocation.id)\
            .all()

    @staticmethod
    def get_allocations(budget_account_id, planning_record_ids=None):
        """All allocations in the account, optionally restricted to some planning records."""
        require_membership(budget_account_id)
        if planning_record_ids is not None:
            return AllocationService.allocations_for_records(budget_account_id, planning_record_ids)
        return account_query(DebtAllocation, budget_account_id).order_by(DebtAllocation.id).all()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @staticmethod
    def allocate(budget_account_id, planning_record_id, paycheck_id, amount=None, payment_date=None):
        """
        Bind a planning record to a paycheck, replacing any existing binding.

        Same paycheck already bound: the overrides are rewritten in place.
        Different paycheck: the old row is removed and a new one inserted
        in one commit.

        Returns:
            DebtAllocation: the live allocation for the record.
        """
        user_id = require_membership(budget_account_id)
        PaycheckService.parse_paycheck_id(paycheck_id)
        amount = AllocationService.parse_amount(amount)
        payment_date = AllocationService.parse_payment_date(payment_date)
        record = AllocationService._planning_record(budget_account_id, planning_record_id)

        note = f"Scheduled payment from paycheck allocation on {payment_date.isoformat()}" if payment_date else None

        try:
            existing = account_query(DebtAllocation, budget_account_id)\
                .filter_by(monthly_debt_planning_id=record.id)\
                .all()

            if len(existing) == 1 and existing[0].paycheck_id == paycheck_id:
                allocation = existing[0]
                allocation.payment_amount = amount
                allocation.payment_date = payment_date
                allocation.note = note
                moved_from = None
            else:
                moved_from = [a.paycheck_id for a in existing]
                for old in existing:
                    db.session.delete(old)
                db.session.flush()

                allocation = DebtAllocation(
                    budget_account_id=budget_account_id,
                    monthly_debt_planning_id=record.id,
                    paycheck_id=paycheck_id,
                    payment_amount=amount,
                    payment_date=payment_date,
                    note=note,
                    is_paid=False,
                    user_id=user_id,
                )
                db.session.add(allocation)

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        if moved_from:
            current_app.logger.info(
                f"allocation: planning {record.id} moved {moved_from} -> {paycheck_id} in account {budget_account_id}"
            )
        else:
            current_app.logger.info(
                f"allocation: planning {record.id} allocated to {paycheck_id} in account {budget_account_id}"
            )
        return allocation

    @staticmethod
    def unallocate(budget_account_id, planning_record_id, paycheck_id):
        """
        Remove the allocation binding the record to *paycheck_id*.

        Missing allocations are not an error, so a double-submitted
        unallocate simply succeeds.

        Returns:
            int: rows removed (0 or 1).
        """
        require_membership(budget_account_id)
        record = AllocationService._planning_record(budget_account_id, planning_record_id)

        try:
            deleted = account_query(DebtAllocation, budget_account_id)\
                .filter_by(monthly_debt_planning_id=record.id, paycheck_id=paycheck_id)\
                .delete(synchronize_session='fetch')
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        if deleted:
            current_app.logger.info(
                f"allocation: planning {record.id} unallocated from {paycheck_id} in account {budget_account_id}"
            )
        return deleted

    @staticmethod
    def update(budget_account_id, planning_record_id, paycheck_id, amount=None, payment_date=None):
        """Rewrite the overrides of an existing allocation without moving it."""
        require_membership(budget_account_id)
        amount = AllocationService.parse_amount(amount)
        payment_date = AllocationService.parse_payment_date(payment_date)
        record = AllocationService._planning_record(budget_account_id, planning_record_id)

        allocation = account_query(DebtAllocation, budget_account_id)\
            .filter_by(monthly_debt_planning_id=record.id, paycheck_id=paycheck_id)\
            .first()
        if allocation is None:
            raise NotFound('Debt allocation not found')

        allocation.payment_amount = amount
        allocation.payment_date = payment_date
        allocation.note = f"Updated payment from paycheck allocation on {payment_date.isoformat()}" if payment_date else None
        db.session.commit()

        current_app.logger.info(f"allocation {allocation.id}: overrides updated in account {budget_account_id}")
        return allocation

    @staticmethod
    def mark_paid(budget_account_id, planning_record_id, allocation_id, amount=None, payment_date=None):
        """
        Flag an allocation as paid and stamp ``paid_at``.
        Overrides are applied only when provided.
        """
        require_membership(budget_account_id)
        amount = AllocationService.parse_amount(amount)
        payment_date = AllocationService.parse_payment_date(payment_date)

        allocation = account_query(DebtAllocation, budget_account_id)\
            .filter_by(id=allocation_id, monthly_debt_planning_id=planning_record_id)\
            .first()
        if allocation is None:
            raise NotFound('Payment not found for this debt')

        allocation.is_paid = True
        allocation.paid_at = datetime.utcnow()
        if amount is not None:
            allocation.payment_amount = amount
        if payment_date is not None:
            allocation.payment_date = payment_date
        allocation.note = f"Payment marked as paid on {(payment_date or date.today()).isoformat()}"
        db.session.commit()

        current_app.logger.info(f"allocation {allocation.id}: marked paid in account {budget_account_id}")
        return allocation
