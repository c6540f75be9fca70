"""
Paycheck Planning Service
=========================
Façade over the planning components.  One read builds the whole view:

  1. verify membership and validate the period
  2. materialise monthly debt planning rows for the window (idempotent)
  3. project paychecks from the members' income sources
  4. overlay allocation state onto every planning record
  5. derive warnings and drop the dismissed ones

Mutations go straight to AllocationService / DebtPlanningService /
WarningService; callers re-read afterwards.  Nothing is cached between calls.

Primary entry points
--------------------
  get_paycheck_planning_data()            — paychecks, debts, warnings
  get_hidden_monthly_debt_planning_data() — hidden planning records
  get_paycheck_allocations()              — per-paycheck summary for one month
  get_current_month_planning()            — planning view for today's month
  update_debt_allocation()                — allocate / unallocate / update
  mark_payment_as_paid()
  populate_monthly_debt_planning()
  set_monthly_debt_planning_active()
  dismiss_warning()
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from flask import current_app

from services.allocation_service import AllocationService
from services.debt_planning_service import DebtPlanningService
from services.income_service import IncomeService
from services.paycheck_service import Paycheck, PaycheckService
from services.warning_service import PlanningWarning, WarningService
from utils.dates import validate_period
from utils.db_helpers import require_membership
from utils.errors import ValidationError


ALLOCATION_ACTIONS = ('allocate', 'unallocate', 'update')


# ---------------------------------------------------------------------------
# Read model
# ---------------------------------------------------------------------------

@dataclass
class PlanningRecordView:
    """A month's debt instance with its allocation state resolved"""
    id: int
    debt_id: int
    name: str
    category: Optional[str]
    year: int
    month: int
    due_date: date
    default_amount: Decimal
    amount: Decimal
    payment_date: date
    is_active: bool
    status: str  # 'unallocated' | 'allocated' | 'paid'
    paycheck_id: Optional[str] = None
    allocation_id: Optional[int] = None
    paid_at: Optional[str] = None

    @property
    def is_allocated(self):
        return self.status != 'unallocated'

    @property
    def is_paid(self):
        return self.status == 'paid'

    def to_dict(self):
        return {
            'id': self.id,
            'debt_id': self.debt_id,
            'name': self.name,
            'category': self.category,
            'year': self.year,
            'month': self.month,
            'due_date': self.due_date.isoformat(),
            'default_amount': float(self.default_amount),
            'amount': float(self.amount),
            'payment_date': self.payment_date.isoformat(),
            'is_active': self.is_active,
            'status': self.status,
            'is_paid': self.is_paid,
            'paycheck_id': self.paycheck_id,
            'allocation_id': self.allocation_id,
            'paid_at': self.paid_at,
        }


@dataclass
class PaycheckView:
    paycheck: Paycheck
    allocated_debts: List[PlanningRecordView] = field(default_factory=list)

    @property
    def allocated_total(self):
        return sum((d.amount for d in self.allocated_debts), Decimal('0'))

    @property
    def remaining_amount(self):
        return self.paycheck.amount - self.allocated_total

    def to_dict(self):
        data = self.paycheck.to_dict()
        data.update({
            'allocated_debts': [d.to_dict() for d in self.allocated_debts],
            'allocated_total': float(self.allocated_total),
            'remaining_amount': float(self.remaining_amount),
        })
        return data


@dataclass
class PlanningView:
    year: int
    month: int
    lookahead_months: int
    paychecks: List[PaycheckView]
    debts: List[PlanningRecordView]
    warnings: List[PlanningWarning]

    @property
    def unallocated_debts(self):
        return [d for d in self.debts if not d.is_allocated]

    def to_dict(self):
        return {
            'year': self.year,
            'month': self.month,
            'lookahead_months': self.lookahead_months,
            'paychecks': [p.to_dict() for p in self.paychecks],
            'debts': [d.to_dict() for d in self.debts],
            'unallocated_debts': [d.to_dict() for d in self.unallocated_debts],
            'warnings': [w.to_dict() for w in self.warnings],
        }


class PaycheckPlanningService:
    """Single read model and mutation entry points for paycheck planning"""

    @staticmethod
    def _validated_period(year, month, lookahead_months):
        if lookahead_months is None:
            lookahead_months = current_app.config.get('PLANNING_DEFAULT_LOOKAHEAD_MONTHS', 0)
        return validate_period(
            year, month, lookahead_months,
            max_lookahead=current_app.config.get('PLANNING_MAX_LOOKAHEAD_MONTHS'),
        )

    @staticmethod
    def build_record_view(record, allocation):
        debt = record.debt
        if allocation is None:
            status = 'unallocated'
        elif allocation.is_paid:
            status = 'paid'
        else:
            status = 'allocated'

        return PlanningRecordView(
            id=record.id,
            debt_id=record.debt_id,
            name=debt.name,
            category=debt.category,
            year=record.year,
            month=record.month,
            due_date=record.due_date,
            default_amount=Decimal(str(debt.payment_amount)),
            amount=AllocationService.effective_amount(allocation, debt),
            payment_date=AllocationService.effective_date(allocation, record),
            is_active=record.is_active,
            status=status,
            paycheck_id=allocation.paycheck_id if allocation else None,
            allocation_id=allocation.id if allocation else None,
            paid_at=allocation.paid_at.isoformat() if allocation and allocation.paid_at else None,
        )

    @staticmethod
    def _record_views(budget_account_id, records):
        allocations = AllocationService.allocations_for_records(budget_account_id, [r.id for r in records])
        by_record = {}
        for allocation in allocations:
            by_record.setdefault(allocation.monthly_debt_planning_id, allocation)
        views = [PaycheckPlanningService.build_record_view(r, by_record.get(r.id)) for r in records]
        return views, allocations

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def get_paycheck_planning_data(budget_account_id, year, month, lookahead_months=None):
        """
        Build the planning view for the target month plus lookahead.

        Returns:
            PlanningView: paychecks (with allocated debts and remaining
            amount), active planning-record level debts and undismissed warnings.
        """
        require_membership(budget_account_id)
        year, month, lookahead_months = PaycheckPlanningService._validated_period(year, month, lookahead_months)

        DebtPlanningService.materialize(budget_account_id, year, month, lookahead_months)
        records = DebtPlanningService.query_planning_records(
            budget_account_id, year, month, lookahead_months, active=True
        )
        debt_views, allocations = PaycheckPlanningService._record_views(budget_account_id, records)

        income_sources = IncomeService.active_sources_for_account(budget_account_id)
        paychecks = PaycheckService.project_window(income_sources, year, month, lookahead_months)

        paycheck_views = [PaycheckView(paycheck=p) for p in paychecks]
        views_by_paycheck = {v.paycheck.id: v for v in paycheck_views}
        for debt_view in debt_views:
            paycheck_view = views_by_paycheck.get(debt_view.paycheck_id)
            if paycheck_view is not None:
                paycheck_view.allocated_debts.append(debt_view)

        warnings = WarningService.compute_warnings(paychecks, records, allocations)
        warnings = WarningService.filter_dismissed(warnings, WarningService.dismissed_keys(budget_account_id))

        return PlanningView(
            year=year,
            month=month,
            lookahead_months=lookahead_months,
            paychecks=paycheck_views,
            debts=debt_views,
            warnings=warnings,
        )

    @staticmethod
    def get_hidden_monthly_debt_planning_data(budget_account_id, year, month, lookahead_months=None):
        """Hidden (is_active=False) planning records for the window, same shape as ``debts``."""
        require_membership(budget_account_id)
        year, month, lookahead_months = PaycheckPlanningService._validated_period(year, month, lookahead_months)

        records = DebtPlanningService.query_planning_records(
            budget_account_id, year, month, lookahead_months, active=False
        )
        views, _ = PaycheckPlanningService._record_views(budget_account_id, records)
        return views

    @staticmethod
    def get_paycheck_allocations(budget_account_id, year, month):
        """Per-paycheck allocation summary for a single month."""
        view = PaycheckPlanningService.get_paycheck_planning_data(budget_account_id, year, month, 0)
        return view.paychecks

    @staticmethod
    def get_current_month_planning(budget_account_id, lookahead_months=None):
        today = date.today()
        return PaycheckPlanningService.get_paycheck_planning_data(
            budget_account_id, today.year, today.month, lookahead_months
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @staticmethod
    def update_debt_allocation(budget_account_id, planning_record_id, paycheck_id, action,
                               amount=None, payment_date=None):
        """Dispatch an allocation change; ``action`` is allocate, unallocate or update."""
        require_membership(budget_account_id)
        if action not in ALLOCATION_ACTIONS:
            raise ValidationError(f'Unknown allocation action: {action!r}')
        if not paycheck_id:
            raise ValidationError('Paycheck id is required')

        if action == 'allocate':
            AllocationService.allocate(budget_account_id, planning_record_id, paycheck_id, amount, payment_date)
        elif action == 'unallocate':
            AllocationService.unallocate(budget_account_id, planning_record_id, paycheck_id)
        else:
            AllocationService.update(budget_account_id, planning_record_id, paycheck_id, amount, payment_date)
        return {'success': True}

    @staticmethod
    def mark_payment_as_paid(budget_account_id, planning_record_id, allocation_id,
                             amount=None, payment_date=None):
        AllocationService.mark_paid(budget_account_id, planning_record_id, allocation_id, amount, payment_date)
        return {'success': True}

    @staticmethod
    def populate_monthly_debt_planning(budget_account_id, year, month, lookahead_months=None):
        """Materialise planning rows ahead of a read; returns the number created."""
        require_membership(budget_account_id)
        year, month, lookahead_months = PaycheckPlanningService._validated_period(year, month, lookahead_months)
        return DebtPlanningService.materialize(budget_account_id, year, month, lookahead_months)

    @staticmethod
    def set_monthly_debt_planning_active(budget_account_id, planning_record_id, is_active):
        DebtPlanningService.set_active(budget_account_id, planning_record_id, is_active)
        return {'success': True}

    @staticmethod
    def dismiss_warning(budget_account_id, warning_type, warning_key):
        WarningService.dismiss_warning(budget_account_id, warning_type, warning_key)
        return {'success': True}
