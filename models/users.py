"""
User Model for Authentication
Identity behind every planning call; login flows live outside this app.
"""
from extensions import db
from flask_login import UserMixin
from werkzeug.security import generate_password_hash
from datetime import datetime


class User(UserMixin, db.Model):
    """User account for authentication"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=True)
    name = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Account the UI opens by default
    default_budget_account_id = db.Column(db.Integer, db.ForeignKey('budget_accounts.id'), nullable=True)

    # Relationships
    memberships = db.relationship('BudgetAccountMember', back_populates='user',
                                  lazy='dynamic', cascade='all, delete-orphan')
    income_sources = db.relationship('IncomeSource', back_populates='user', lazy='dynamic')

    def set_password(self, password):
        """Hash and set the user's password"""
        self.password_hash = generate_password_hash(password)

    def is_member_of(self, budget_account_id):
        """True if this user belongs to *budget_account_id*."""
        return self.memberships.filter_by(budget_account_id=budget_account_id).first() is not None

    def __repr__(self):
        return f'<User {self.email}>'
