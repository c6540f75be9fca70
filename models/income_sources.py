from extensions import db
from datetime import datetime


FREQUENCIES = ('weekly', 'biweekly', 'semimonthly', 'monthly')

# Spellings accepted on input and stored in their canonical form
FREQUENCY_ALIASES = {
    'bi-weekly': 'biweekly',
    'fortnightly': 'biweekly',
    'semi-monthly': 'semimonthly',
    'twice-monthly': 'semimonthly',
}


def normalize_frequency(value):
    """Return the canonical frequency name, or ``None`` if unrecognised."""
    if not value:
        return None
    value = str(value).strip().lower()
    value = FREQUENCY_ALIASES.get(value, value)
    return value if value in FREQUENCIES else None


class IncomeSource(db.Model):
    """Recurring income definition - projected into paychecks on every read"""
    __tablename__ = 'income_sources'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)  # Employer or income name
    amount = db.Column(db.Numeric(10, 2), nullable=False)  # Per paycheck
    frequency = db.Column(db.String(20), nullable=False, default='monthly')

    # Schedule
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)  # None = ongoing
    second_pay_day = db.Column(db.Integer, nullable=True)  # Semimonthly only (1-31)

    notes = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = db.relationship('User', back_populates='income_sources')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'amount': float(self.amount),
            'frequency': self.frequency,
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'second_pay_day': self.second_pay_day,
            'notes': self.notes,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f'<IncomeSource {self.name}: £{self.amount} {self.frequency}>'
