from extensions import db
from datetime import datetime


class DismissedWarning(db.Model):
    """A planning warning the account chose to hide, keyed by (type, key)"""
    __tablename__ = 'dismissed_warnings'
    __table_args__ = (
        db.UniqueConstraint('budget_account_id', 'warning_type', 'warning_key',
                            name='uq_dismissed_warning'),
    )

    id = db.Column(db.Integer, primary_key=True)
    budget_account_id = db.Column(db.Integer, db.ForeignKey('budget_accounts.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    warning_type = db.Column(db.String(50), nullable=False)
    warning_key = db.Column(db.String(255), nullable=False)
    dismissed_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<DismissedWarning {self.warning_type} {self.warning_key}>'
