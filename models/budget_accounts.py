"""
BudgetAccount and BudgetAccountMember models for multi-user support.
A BudgetAccount groups users together into a shared data pool; membership
is what every planning call verifies before touching the account's data.
"""
from datetime import datetime
from extensions import db


class BudgetAccount(db.Model):
    """Represents a household budget sharing a single data pool."""
    __tablename__ = 'budget_accounts'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, default='My Budget')
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    memberships = db.relationship('BudgetAccountMember', back_populates='budget_account',
                                  lazy='dynamic', cascade='all, delete-orphan')

    def add_member(self, user, role='member'):
        """Add *user* to this account unless already a member; returns the membership."""
        existing = self.memberships.filter_by(user_id=user.id).first()
        if existing:
            return existing
        membership = BudgetAccountMember(budget_account=self, user_id=user.id, role=role)
        db.session.add(membership)
        return membership

    def __repr__(self):
        return f'<BudgetAccount {self.name}>'


class BudgetAccountMember(db.Model):
    """A user's membership of a budget account."""
    __tablename__ = 'budget_account_members'
    __table_args__ = (
        db.UniqueConstraint('budget_account_id', 'user_id', name='uq_budget_account_member'),
    )

    id = db.Column(db.Integer, primary_key=True)
    budget_account_id = db.Column(db.Integer, db.ForeignKey('budget_accounts.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default='member')  # 'owner' | 'member'
    joined_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    budget_account = db.relationship('BudgetAccount', back_populates='memberships')
    user = db.relationship('User', back_populates='memberships')

    def __repr__(self):
        return f'<BudgetAccountMember account={self.budget_account_id} user={self.user_id} role={self.role}>'
