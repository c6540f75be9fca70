# Models package - Import all models for Flask-SQLAlchemy

from models.budget_accounts import BudgetAccount, BudgetAccountMember
from models.debt_allocations import DebtAllocation
from models.debts import Debt
from models.dismissed_warnings import DismissedWarning
from models.income_sources import IncomeSource
from models.monthly_debt_planning import MonthlyDebtPlanning
from models.users import User

__all__ = [
    'BudgetAccount',
    'BudgetAccountMember',
    'DebtAllocation',
    'Debt',
    'DismissedWarning',
    'IncomeSource',
    'MonthlyDebtPlanning',
    'User',
]
