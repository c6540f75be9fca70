from extensions import db
from datetime import datetime


class DebtAllocation(db.Model):
    """Binding of one monthly debt planning record to one projected paycheck.

    A planning record has at most one allocation at a time; moving a debt to
    another paycheck replaces the row (see AllocationService.allocate).
    """
    __tablename__ = 'debt_allocations'

    id = db.Column(db.Integer, primary_key=True)
    budget_account_id = db.Column(db.Integer, db.ForeignKey('budget_accounts.id'), nullable=False, index=True)
    monthly_debt_planning_id = db.Column(db.Integer, db.ForeignKey('monthly_debt_planning.id'),
                                         nullable=False, index=True)
    paycheck_id = db.Column(db.String(64), nullable=False, index=True)  # "<income_source_id>-<YYYY-MM-DD>"

    # Overrides - NULL falls back to the debt / planning record defaults
    payment_amount = db.Column(db.Numeric(10, 2), nullable=True)
    payment_date = db.Column(db.Date, nullable=True)

    is_paid = db.Column(db.Boolean, default=False, nullable=False)
    paid_at = db.Column(db.DateTime, nullable=True)
    note = db.Column(db.Text)

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    allocated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    planning_record = db.relationship('MonthlyDebtPlanning', back_populates='allocations')
    user = db.relationship('User', foreign_keys=[user_id])

    def to_dict(self):
        return {
            'id': self.id,
            'monthly_debt_planning_id': self.monthly_debt_planning_id,
            'paycheck_id': self.paycheck_id,
            'payment_amount': float(self.payment_amount) if self.payment_amount is not None else None,
            'payment_date': self.payment_date.isoformat() if self.payment_date else None,
            'is_paid': self.is_paid,
            'paid_at': self.paid_at.isoformat() if self.paid_at else None,
            'note': self.note,
        }

    def __repr__(self):
        return f'<DebtAllocation planning={self.monthly_debt_planning_id} paycheck={self.paycheck_id} paid={self.is_paid}>'
