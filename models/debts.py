from extensions import db
from datetime import datetime


class Debt(db.Model):
    """A recurring bill or liability, materialised per month for planning"""
    __tablename__ = 'debts'

    id = db.Column(db.Integer, primary_key=True)
    budget_account_id = db.Column(db.Integer, db.ForeignKey('budget_accounts.id'), nullable=False, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)

    name = db.Column(db.String(100), nullable=False)  # Car loan, Rent, Phone, etc.
    category = db.Column(db.String(100))
    payment_amount = db.Column(db.Numeric(10, 2), nullable=False)
    interest_rate = db.Column(db.Numeric(5, 2), default=0)

    # Day-of-month is the recurring due day; year-month is the first month due
    due_date = db.Column(db.Date, nullable=False)
    last_payment_month = db.Column(db.Date, nullable=True)  # First of the month last paid
    has_balance = db.Column(db.Boolean, default=False, nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    planning_records = db.relationship('MonthlyDebtPlanning', back_populates='debt', lazy='dynamic')
    created_by = db.relationship('User', foreign_keys=[created_by_user_id])

    def to_dict(self):
        return {
            'id': self.id,
            'budget_account_id': self.budget_account_id,
            'name': self.name,
            'category': self.category,
            'payment_amount': float(self.payment_amount),
            'interest_rate': float(self.interest_rate or 0),
            'due_date': self.due_date.isoformat(),
            'last_payment_month': self.last_payment_month.isoformat() if self.last_payment_month else None,
            'has_balance': self.has_balance,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f'<Debt {self.name}: £{self.payment_amount} due day {self.due_date.day}>'
