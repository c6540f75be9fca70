"""
Shared pytest fixtures for the paycheck planner test suite.

All tests run against an in-memory SQLite database (TestingConfig).
A single app context is pushed for the whole session so that SQLAlchemy
objects remain attached throughout.  After each test, clean_db wipes all
rows so tests are fully independent.
"""
from datetime import date
from decimal import Decimal

import pytest
from app import create_app
from extensions import db as _db


# ---------------------------------------------------------------------------
# Application / database lifecycle
# ---------------------------------------------------------------------------

@pytest.fixture(scope='session')
def app():
    """Create a test Flask application with an in-memory SQLite database."""
    application = create_app('testing')
    ctx = application.app_context()
    ctx.push()
    _db.create_all()
    yield application
    _db.session.remove()
    _db.drop_all()
    ctx.pop()


@pytest.fixture(autouse=True)
def clean_db(app):
    """Wipe every table after each test so tests never share state."""
    yield
    _db.session.rollback()
    for table in reversed(_db.metadata.sorted_tables):
        _db.session.execute(table.delete())
    _db.session.commit()
    _db.session.expunge_all()


# ---------------------------------------------------------------------------
# Common model helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def budget_account(app):
    from models.budget_accounts import BudgetAccount
    account = BudgetAccount(name='Household')
    _db.session.add(account)
    _db.session.commit()
    return account


def _make_user(email, name):
    from models.users import User
    u = User(email=email, name=name)
    u.set_password('TestPass1!')
    _db.session.add(u)
    _db.session.commit()
    return u


@pytest.fixture
def user(app, budget_account):
    """Owner of ``budget_account``."""
    u = _make_user('owner@example.com', 'Account Owner')
    budget_account.add_member(u, role='owner')
    u.default_budget_account_id = budget_account.id
    _db.session.commit()
    return u


@pytest.fixture
def partner(app, budget_account):
    """Second member of ``budget_account``."""
    u = _make_user('partner@example.com', 'Partner')
    budget_account.add_member(u)
    _db.session.commit()
    return u


@pytest.fixture
def outsider(app):
    """A user with no membership of ``budget_account``."""
    return _make_user('outsider@example.com', 'Outsider')


@pytest.fixture
def login_as(monkeypatch):
    """Return a helper that re-patches the current user id within a test."""
    def _set(user_or_none):
        user_id = user_or_none.id if user_or_none is not None else None
        monkeypatch.setattr('utils.db_helpers.get_current_user_id', lambda: user_id)
    return _set


@pytest.fixture
def logged_in(user, login_as):
    login_as(user)
    return user


@pytest.fixture
def make_debt(budget_account, user):
    """Factory for debts in ``budget_account``."""
    from models.debts import Debt

    def _make(name='Car Loan', payment_amount='250.00', due_date=date(2025, 1, 15), **kwargs):
        debt = Debt(
            budget_account_id=kwargs.pop('budget_account_id', budget_account.id),
            created_by_user_id=user.id,
            name=name,
            payment_amount=Decimal(payment_amount),
            due_date=due_date,
            **kwargs,
        )
        _db.session.add(debt)
        _db.session.commit()
        return debt
    return _make


@pytest.fixture
def make_income_source(user):
    """Factory for income sources owned by ``user`` unless ``user_id`` is given."""
    from models.income_sources import IncomeSource

    def _make(name='Salary', amount='1500.00', frequency='monthly', start_date=date(2025, 1, 25), **kwargs):
        source = IncomeSource(
            user_id=kwargs.pop('user_id', user.id),
            name=name,
            amount=Decimal(amount),
            frequency=frequency,
            start_date=start_date,
            **kwargs,
        )
        _db.session.add(source)
        _db.session.commit()
        return source
    return _make
