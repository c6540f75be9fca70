from extensions import db
from datetime import datetime


class MonthlyDebtPlanning(db.Model):
    """One debt's instance for one month.

    Rows are created lazily by DebtPlanningService and never deleted;
    ``is_active=False`` hides the month's instance without touching the Debt.
    """
    __tablename__ = 'monthly_debt_planning'
    __table_args__ = (
        db.UniqueConstraint('budget_account_id', 'debt_id', 'year', 'month',
                            name='uq_monthly_debt_planning_account_debt_month'),
    )

    id = db.Column(db.Integer, primary_key=True)
    budget_account_id = db.Column(db.Integer, db.ForeignKey('budget_accounts.id'), nullable=False, index=True)
    debt_id = db.Column(db.Integer, db.ForeignKey('debts.id'), nullable=False, index=True)

    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)
    due_date = db.Column(db.Date, nullable=False, index=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    debt = db.relationship('Debt', back_populates='planning_records')
    allocations = db.relationship('DebtAllocation', back_populates='planning_record',
                                  lazy='dynamic', cascade='all, delete-orphan')

    @property
    def year_month(self):
        return f"{self.year:04d}-{self.month:02d}"

    def __repr__(self):
        return f'<MonthlyDebtPlanning debt={self.debt_id} {self.year_month} active={self.is_active}>'
