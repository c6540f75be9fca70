"""
Monthly Debt Planning Service
=============================
Materialises one MonthlyDebtPlanning row per active Debt per month so that a
single month's instance of a recurring debt can be allocated, hidden or
restored without touching the Debt definition.

Materialisation is an idempotent upsert keyed by (account, debt, year, month):
it is called on every planning read and only inserts rows that are missing.

Primary entry points
--------------------
  ensure_planning_records() — upsert rows for the target month + lookahead
  get_planning_records()    — read active (or hidden) rows for a window
  set_active()              — hide / restore one month's instance
"""
from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models.debts import Debt
from models.monthly_debt_planning import MonthlyDebtPlanning
from utils.dates import clip_day, month_index, month_window, validate_period
from utils.db_helpers import account_get_or_404, account_query, require_membership
from utils.errors import ValidationError


class DebtPlanningService:
    """Per-month materialisation of recurring debts"""

    @staticmethod
    def due_date_for_month(debt, year, month):
        """The debt's due day placed in (year, month), clipped to the month length."""
        return clip_day(year, month, debt.due_date.day)

    @staticmethod
    def applies_to_month(debt, year, month):
        """A debt appears from the month of its first due date onwards."""
        return month_index(year, month) >= month_index(debt.due_date.year, debt.due_date.month)

    @staticmethod
    def _window_filter(query, year, month, lookahead_months):
        first = month_index(year, month)
        last = first + lookahead_months
        expr = MonthlyDebtPlanning.year * 12 + MonthlyDebtPlanning.month - 1
        return query.filter(expr >= first, expr <= last)

    @staticmethod
    def _missing_records(budget_account_id, year, month, lookahead_months):
        debts = account_query(Debt, budget_account_id).filter_by(is_active=True).all()
        if not debts:
            return []

        existing_query = account_query(MonthlyDebtPlanning, budget_account_id)
        existing_query = DebtPlanningService._window_filter(existing_query, year, month, lookahead_months)
        existing = {(r.debt_id, r.year, r.month) for r in existing_query.all()}

        missing = []
        for target_year, target_month in month_window(year, month, lookahead_months):
            for debt in debts:
                if not DebtPlanningService.applies_to_month(debt, target_year, target_month):
                    continue
                if (debt.id, target_year, target_month) in existing:
                    continue
                missing.append(MonthlyDebtPlanning(
                    budget_account_id=budget_account_id,
                    debt_id=debt.id,
                    year=target_year,
                    month=target_month,
                    due_date=DebtPlanningService.due_date_for_month(debt, target_year, target_month),
                    is_active=True,
                ))
        return missing

    @staticmethod
    def materialize(budget_account_id, year, month, lookahead_months=0):
        """
        Insert missing planning rows for the window.  No membership check;
        callers must have verified access already.

        A unique-constraint violation means another request inserted the same
        rows first, so the batch is rolled back and retried once against the
        fresh state.

        Returns:
            int: number of rows created.
        """
        for attempt in range(2):
            missing = DebtPlanningService._missing_records(budget_account_id, year, month, lookahead_months)
            if not missing:
                return 0
            db.session.add_all(missing)
            try:
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                current_app.logger.warning(
                    f"monthly debt planning: concurrent insert for account {budget_account_id}, "
                    f"retrying (attempt {attempt + 1})"
                )
                continue
            current_app.logger.info(
                f"monthly debt planning: created {len(missing)} records for account {budget_account_id} "
                f"from {year}-{month:02d} (+{lookahead_months} months)"
            )
            return len(missing)
        return 0

    @staticmethod
    def ensure_planning_records(budget_account_id, year, month, lookahead_months=0):
        """
        Make sure every active debt has a planning row for each month in
        ``[target, target + lookahead_months]``.  Safe to call on every read.

        Returns:
            int: number of rows created.
        """
        require_membership(budget_account_id)
        year, month, lookahead_months = validate_period(
            year, month, lookahead_months,
            max_lookahead=current_app.config.get('PLANNING_MAX_LOOKAHEAD_MONTHS'),
        )
        return DebtPlanningService.materialize(budget_account_id, year, month, lookahead_months)

    @staticmethod
    def query_planning_records(budget_account_id, year, month, lookahead_months=0, active=True):
        """Planning rows in the window whose debt is still active, ordered by due date."""
        query = account_query(MonthlyDebtPlanning, budget_account_id)\
            .join(Debt, MonthlyDebtPlanning.debt_id == Debt.id)\
            .filter(Debt.is_active.is_(True))
        query = DebtPlanningService._window_filter(query, year, month, lookahead_months)
        if active is not None:
            query = query.filter(MonthlyDebtPlanning.is_active.is_(bool(active)))
        return query.order_by(MonthlyDebtPlanning.due_date, Debt.name, MonthlyDebtPlanning.id).all()

    @staticmethod
    def get_planning_records(budget_account_id, year, month, lookahead_months=0, active=True):
        """
        Read planning rows for a window.

        Args:
            active: True for the planning view, False for hidden rows, None for both.
        """
        require_membership(budget_account_id)
        year, month, lookahead_months = validate_period(
            year, month, lookahead_months,
            max_lookahead=current_app.config.get('PLANNING_MAX_LOOKAHEAD_MONTHS'),
        )
        return DebtPlanningService.query_planning_records(
            budget_account_id, year, month, lookahead_months, active=active
        )

    @staticmethod
    def set_active(budget_account_id, planning_record_id, is_active):
        """
        Hide (``False``) or restore (``True``) one month's debt instance.
        The record and any allocation on it are kept either way.
        """
        require_membership(budget_account_id)
        if not isinstance(is_active, bool):
            raise ValidationError('is_active must be true or false')

        record = account_get_or_404(
            MonthlyDebtPlanning, budget_account_id, planning_record_id,
            message='Monthly debt planning record not found',
        )
        record.is_active = is_active
        db.session.commit()

        current_app.logger.info(
            f"monthly debt planning {record.id} ({record.year_month}) "
            f"{'restored' if is_active else 'hidden'} in account {budget_account_id}"
        )
        return record
