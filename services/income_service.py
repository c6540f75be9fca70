"""
Income Service
Handles recurring income source management for paycheck planning
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import current_app

from extensions import db
from models.income_sources import IncomeSource, normalize_frequency
from utils.dates import parse_date
from utils.db_helpers import member_user_ids, require_membership, require_user_id
from utils.errors import NotFound, ValidationError


class IncomeService:

    @staticmethod
    def _parse_amount(amount):
        try:
            value = Decimal(str(amount)).quantize(Decimal('0.01'), ROUND_HALF_UP)
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError('Invalid income amount')
        if not value.is_finite():
            raise ValidationError('Invalid income amount')
        if value <= 0:
            raise ValidationError('Income amount must be greater than zero')
        return value

    @staticmethod
    def _parse_frequency(frequency):
        value = normalize_frequency(frequency)
        if value is None:
            raise ValidationError(f'Unknown income frequency: {frequency!r}')
        return value

    @staticmethod
    def _parse_pay_day(day):
        if day in (None, ''):
            return None
        try:
            day = int(day)
        except (TypeError, ValueError):
            raise ValidationError('Second pay day must be a day of the month')
        if day < 1 or day > 31:
            raise ValidationError('Second pay day must be between 1 and 31')
        return day

    @staticmethod
    def active_sources_for_account(budget_account_id):
        """Active income sources owned by any member of the account (no membership check)."""
        user_ids = member_user_ids(budget_account_id)
        if not user_ids:
            return []
        return IncomeSource.query.filter(
            IncomeSource.user_id.in_(user_ids),
            IncomeSource.is_active.is_(True),
        ).order_by(IncomeSource.start_date, IncomeSource.id).all()

    @staticmethod
    def list_income_sources(budget_account_id, include_inactive=False):
        """Income sources of every account member"""
        require_membership(budget_account_id)
        query = IncomeSource.query.filter(IncomeSource.user_id.in_(member_user_ids(budget_account_id)))
        if not include_inactive:
            query = query.filter(IncomeSource.is_active.is_(True))
        return query.order_by(IncomeSource.name).all()

    @staticmethod
    def _check_pay_days(frequency, start_date, second_pay_day):
        if frequency == 'semimonthly' and second_pay_day == start_date.day:
            raise ValidationError('Second pay day must differ from the start date day')

    @staticmethod
    def create_income_source(name, amount, frequency, start_date, end_date=None,
                             second_pay_day=None, notes=None):
        """Create an income source owned by the current user"""
        user_id = require_user_id()
        if not name or not str(name).strip():
            raise ValidationError('Income name is required')

        start_date = parse_date(start_date, field='start date')
        end_date = parse_date(end_date, field='end date') if end_date else None
        if end_date and end_date < start_date:
            raise ValidationError('End date cannot be before start date')

        frequency = IncomeService._parse_frequency(frequency)
        second_pay_day = IncomeService._parse_pay_day(second_pay_day)
        IncomeService._check_pay_days(frequency, start_date, second_pay_day)

        income_source = IncomeSource(
            user_id=user_id,
            name=str(name).strip(),
            amount=IncomeService._parse_amount(amount),
            frequency=frequency,
            start_date=start_date,
            end_date=end_date,
            second_pay_day=second_pay_day,
            notes=notes,
            is_active=True,
        )
        db.session.add(income_source)
        db.session.commit()

        current_app.logger.info(f"income source {income_source.id} created for user {user_id}")
        return income_source

    @staticmethod
    def _owned_source(income_source_id):
        user_id = require_user_id()
        income_source = IncomeSource.query.filter_by(id=income_source_id, user_id=user_id).first()
        if not income_source:
            raise NotFound('Income source not found or not authorized')
        return income_source

    @staticmethod
    def update_income_source(income_source_id, **changes):
        """
        Update fields of an income source owned by the current user.

        Every change is validated before any is applied, so a rejected
        update leaves the source untouched.

        Accepted keys: name, amount, frequency, start_date, end_date,
        second_pay_day, notes, is_active.
        """
        income_source = IncomeService._owned_source(income_source_id)

        values = {}
        if 'name' in changes:
            if not changes['name'] or not str(changes['name']).strip():
                raise ValidationError('Income name is required')
            values['name'] = str(changes['name']).strip()
        if 'amount' in changes:
            values['amount'] = IncomeService._parse_amount(changes['amount'])
        if 'frequency' in changes:
            values['frequency'] = IncomeService._parse_frequency(changes['frequency'])
        if 'start_date' in changes:
            values['start_date'] = parse_date(changes['start_date'], field='start date')
        if 'end_date' in changes:
            values['end_date'] = parse_date(changes['end_date'], field='end date') if changes['end_date'] else None
        if 'second_pay_day' in changes:
            values['second_pay_day'] = IncomeService._parse_pay_day(changes['second_pay_day'])
        if 'notes' in changes:
            values['notes'] = changes['notes']
        if 'is_active' in changes:
            values['is_active'] = bool(changes['is_active'])

        start_date = values.get('start_date', income_source.start_date)
        end_date = values.get('end_date', income_source.end_date)
        if end_date and end_date < start_date:
            raise ValidationError('End date cannot be before start date')
        IncomeService._check_pay_days(
            values.get('frequency', income_source.frequency),
            start_date,
            values.get('second_pay_day', income_source.second_pay_day),
        )

        for key, value in values.items():
            setattr(income_source, key, value)
        db.session.commit()
        return income_source

    @staticmethod
    def deactivate_income_source(income_source_id):
        """Logical delete - keeps paycheck ids used by past allocations resolvable"""
        income_source = IncomeService._owned_source(income_source_id)
        income_source.is_active = False
        db.session.commit()

        current_app.logger.info(f"income source {income_source.id} deactivated")
        return income_source
