"""
Planning Warning Service
========================
Derives actionable warnings from projected paychecks, monthly debt planning
records and their allocations.

Each warning type is its own dataclass with a typed payload.  Every warning
carries a stable ``key`` built from the entities that triggered it, so a
dismissal recorded against one key keeps hiding that same warning on later
reads while a structurally different warning (new key) still shows.

  unfunded_debt           active record with no allocation
  insufficient_funds      paycheck whose allocations exceed its amount
  debt_due_before_income  unpaid allocation whose debt is due before the paycheck arrives
  income_shortfall        month whose debts exceed its projected income
"""
from collections import defaultdict
from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models.dismissed_warnings import DismissedWarning
from services.allocation_service import AllocationService
from services.paycheck_service import PaycheckService
from utils.dates import month_key
from utils.db_helpers import account_query, require_membership
from utils.errors import ValidationError


SEVERITY_ORDER = {'high': 0, 'medium': 1, 'low': 2}


# ---------------------------------------------------------------------------
# Warning variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PlanningWarning:
    key: str
    message: str

    type = 'warning'
    severity = 'low'

    def to_dict(self):
        data = {'type': self.type, 'severity': self.severity}
        for field in fields(self):
            value = getattr(self, field.name)
            if isinstance(value, Decimal):
                value = float(value)
            elif isinstance(value, date):
                value = value.isoformat()
            data[field.name] = value
        return data


@dataclass(frozen=True)
class UnfundedDebtWarning(PlanningWarning):
    planning_record_id: int
    debt_id: int
    debt_name: str
    amount: Decimal
    due_date: date

    type = 'unfunded_debt'
    severity = 'medium'


@dataclass(frozen=True)
class InsufficientFundsWarning(PlanningWarning):
    paycheck_id: str
    paycheck_date: date
    paycheck_amount: Decimal
    allocated_total: Decimal
    shortfall: Decimal

    type = 'insufficient_funds'
    severity = 'high'


@dataclass(frozen=True)
class DebtDueBeforeIncomeWarning(PlanningWarning):
    planning_record_id: int
    debt_id: int
    debt_name: str
    due_date: date
    paycheck_id: str
    paycheck_date: date

    type = 'debt_due_before_income'
    severity = 'high'


@dataclass(frozen=True)
class IncomeShortfallWarning(PlanningWarning):
    year: int
    month: int
    total_debts: Decimal
    total_income: Decimal

    type = 'income_shortfall'
    severity = 'high'


WARNING_TYPES = {
    cls.type: cls
    for cls in (UnfundedDebtWarning, InsufficientFundsWarning, DebtDueBeforeIncomeWarning, IncomeShortfallWarning)
}


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

def unfunded_debt_key(debt_id, year, month):
    return f"unfunded_debt:{debt_id}:{month_key(year, month)}"


def insufficient_funds_key(paycheck_id):
    return f"insufficient_funds:{paycheck_id}"


def debt_due_before_income_key(debt_id, year, month, paycheck_id):
    return f"debt_due_before_income:{debt_id}:{month_key(year, month)}:{paycheck_id}"


def income_shortfall_key(year, month):
    return f"income_shortfall:{month_key(year, month)}"


def _money(value):
    return f"£{value:,.2f}"


class WarningService:
    """Warning derivation and dismissal"""

    @staticmethod
    def compute_warnings(paychecks, planning_records, allocations):
        """
        Derive warnings for a planning window.

        Args:
            paychecks:        list[Paycheck] projected for the window
            planning_records: MonthlyDebtPlanning rows (hidden rows are ignored)
            allocations:      DebtAllocation rows for those records

        Returns:
            list[PlanningWarning], high severity first.
        """
        active = {r.id: r for r in planning_records if r.is_active}
        allocation_by_record = {}
        for allocation in allocations:
            if allocation.monthly_debt_planning_id in active:
                allocation_by_record.setdefault(allocation.monthly_debt_planning_id, allocation)

        paychecks_by_id = {p.id: p for p in paychecks}
        warnings = []

        # Unfunded debts
        for record in sorted(active.values(), key=lambda r: (r.due_date, r.id)):
            if record.id in allocation_by_record:
                continue
            amount = Decimal(str(record.debt.payment_amount))
            warnings.append(UnfundedDebtWarning(
                key=unfunded_debt_key(record.debt_id, record.year, record.month),
                message=f"{record.debt.name} ({_money(amount)}) due {record.due_date.isoformat()} "
                        f"is not assigned to a paycheck",
                planning_record_id=record.id,
                debt_id=record.debt_id,
                debt_name=record.debt.name,
                amount=amount,
                due_date=record.due_date,
            ))

        # Overcommitted paychecks
        allocated_totals = defaultdict(Decimal)
        for record_id, allocation in allocation_by_record.items():
            allocated_totals[allocation.paycheck_id] += AllocationService.effective_amount(
                allocation, active[record_id].debt
            )

        for paycheck in paychecks:
            total = allocated_totals.get(paycheck.id, Decimal('0'))
            if total > paycheck.amount:
                shortfall = total - paycheck.amount
                warnings.append(InsufficientFundsWarning(
                    key=insufficient_funds_key(paycheck.id),
                    message=f"{paycheck.name} on {paycheck.date.isoformat()} is short by {_money(shortfall)} "
                            f"({_money(total)} allocated from {_money(paycheck.amount)})",
                    paycheck_id=paycheck.id,
                    paycheck_date=paycheck.date,
                    paycheck_amount=paycheck.amount,
                    allocated_total=total,
                    shortfall=shortfall,
                ))

        # Debts due before the paycheck that funds them
        for record_id, allocation in sorted(allocation_by_record.items()):
            if allocation.is_paid:
                continue
            record = active[record_id]
            paycheck = paychecks_by_id.get(allocation.paycheck_id)
            if paycheck is not None:
                paycheck_date = paycheck.date
            else:
                try:
                    _, paycheck_date = PaycheckService.parse_paycheck_id(allocation.paycheck_id)
                except ValidationError:
                    continue
            if record.due_date < paycheck_date:
                warnings.append(DebtDueBeforeIncomeWarning(
                    key=debt_due_before_income_key(record.debt_id, record.year, record.month, allocation.paycheck_id),
                    message=f"{record.debt.name} is due {record.due_date.isoformat()} but its paycheck "
                            f"arrives {paycheck_date.isoformat()}",
                    planning_record_id=record.id,
                    debt_id=record.debt_id,
                    debt_name=record.debt.name,
                    due_date=record.due_date,
                    paycheck_id=allocation.paycheck_id,
                    paycheck_date=paycheck_date,
                ))

        # Months where debts exceed income
        debt_totals = defaultdict(Decimal)
        for record_id, record in active.items():
            debt_totals[(record.year, record.month)] += AllocationService.effective_amount(
                allocation_by_record.get(record_id), record.debt
            )
        income_totals = defaultdict(Decimal)
        for paycheck in paychecks:
            income_totals[(paycheck.year, paycheck.month)] += paycheck.amount

        for (year, month), total_debts in sorted(debt_totals.items()):
            total_income = income_totals.get((year, month), Decimal('0'))
            if total_debts > total_income:
                warnings.append(IncomeShortfallWarning(
                    key=income_shortfall_key(year, month),
                    message=f"Total debts ({_money(total_debts)}) exceed total income "
                            f"({_money(total_income)}) for {month_key(year, month)}",
                    year=year,
                    month=month,
                    total_debts=total_debts,
                    total_income=total_income,
                ))

        warnings.sort(key=lambda w: SEVERITY_ORDER[w.severity])
        return warnings

    @staticmethod
    def filter_dismissed(warnings, dismissed):
        """Drop warnings whose (type, key) pair is in *dismissed*."""
        return [w for w in warnings if (w.type, w.key) not in dismissed]

    @staticmethod
    def dismissed_keys(budget_account_id):
        """Set of (warning_type, warning_key) dismissed in the account (no membership check)."""
        rows = account_query(DismissedWarning, budget_account_id).all()
        return {(row.warning_type, row.warning_key) for row in rows}

    @staticmethod
    def get_dismissed_keys(budget_account_id):
        require_membership(budget_account_id)
        return WarningService.dismissed_keys(budget_account_id)

    @staticmethod
    def dismiss_warning(budget_account_id, warning_type, warning_key):
        """
        Record a dismissal.  Dismissing an already-dismissed key succeeds
        without inserting a second row.

        Returns:
            DismissedWarning: the existing or newly created dismissal.
        """
        user_id = require_membership(budget_account_id)
        if warning_type not in WARNING_TYPES:
            raise ValidationError(f'Unknown warning type: {warning_type!r}')
        if not warning_key or not isinstance(warning_key, str):
            raise ValidationError('Warning key is required')

        lookup = account_query(DismissedWarning, budget_account_id).filter_by(
            warning_type=warning_type,
            warning_key=warning_key,
        )
        existing = lookup.first()
        if existing:
            return existing

        dismissal = DismissedWarning(
            budget_account_id=budget_account_id,
            user_id=user_id,
            warning_type=warning_type,
            warning_key=warning_key,
        )
        db.session.add(dismissal)
        try:
            db.session.commit()
        except IntegrityError:
            # Another request dismissed the same key first
            db.session.rollback()
            return lookup.first()

        current_app.logger.info(f"warning dismissed: {warning_type} {warning_key} in account {budget_account_id}")
        return dismissal
