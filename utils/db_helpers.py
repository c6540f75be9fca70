"""
Database query helpers for budget-account scoped multi-tenancy.

All planning data belongs to a BudgetAccount.  Every service entry point
calls ``require_membership`` before reading or writing so that a user can
never see or change another account's records.

Usage
-----
In any service function::

    from utils.db_helpers import require_membership, account_query, account_get_or_404

    user_id = require_membership(budget_account_id)
    debts = account_query(Debt, budget_account_id).filter_by(is_active=True).all()
    record = account_get_or_404(MonthlyDebtPlanning, budget_account_id, record_id)
"""

from flask_login import current_user

from utils.errors import AccessDenied, NotAuthenticated, NotFound


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

def get_current_user_id():
    """Return ``current_user.id``, or ``None`` if not authenticated."""
    if current_user and current_user.is_authenticated:
        return current_user.id
    return None


def require_user_id():
    """Like ``get_current_user_id`` but raises ``NotAuthenticated`` for anonymous callers."""
    user_id = get_current_user_id()
    if user_id is None:
        raise NotAuthenticated()
    return user_id


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------

def is_member(budget_account_id, user_id):
    from models.budget_accounts import BudgetAccountMember
    return BudgetAccountMember.query.filter_by(
        budget_account_id=budget_account_id,
        user_id=user_id,
    ).first() is not None


def require_membership(budget_account_id):
    """Verify the caller belongs to *budget_account_id* and return their user id.

    Raises ``NotAuthenticated`` when there is no caller and ``AccessDenied``
    when the caller is not a member (including when the account does not exist).
    """
    user_id = require_user_id()
    if budget_account_id is None:
        raise AccessDenied('No budget account selected')
    if not is_member(budget_account_id, user_id):
        raise AccessDenied()
    return user_id


def member_user_ids(budget_account_id):
    """User ids of every member of *budget_account_id*."""
    from models.budget_accounts import BudgetAccountMember
    rows = BudgetAccountMember.query.filter_by(budget_account_id=budget_account_id).all()
    return [row.user_id for row in rows]


# ---------------------------------------------------------------------------
# Scoped queries
# ---------------------------------------------------------------------------

def account_query(model, budget_account_id):
    """Return a query on *model* pre-filtered to *budget_account_id*."""
    if not hasattr(model, 'budget_account_id'):
        raise AttributeError(
            f"account_query() called on {model.__name__} but it has no budget_account_id column."
        )
    return model.query.filter_by(budget_account_id=budget_account_id)


def account_get(model, budget_account_id, record_id):
    """Fetch one record by id within the account; ``None`` if missing or foreign."""
    return account_query(model, budget_account_id).filter_by(id=record_id).first()


def account_get_or_404(model, budget_account_id, record_id, message=None):
    """Like ``account_get`` but raises ``NotFound``."""
    record = account_get(model, budget_account_id, record_id)
    if record is None:
        raise NotFound(message or f'{model.__name__} not found')
    return record
