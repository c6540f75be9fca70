from flask import request, jsonify

from . import debts_bp
from services.debt_service import DebtService
from utils.errors import ValidationError


EDITABLE_FIELDS = ('name', 'payment_amount', 'interest_rate', 'due_date', 'category', 'has_balance')


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@debts_bp.route('/', methods=['GET'])
def index(budget_account_id):
    include_inactive = request.args.get('include_inactive') == 'true'
    debts = DebtService.list_debts(budget_account_id, include_inactive=include_inactive)
    return jsonify({'success': True, 'debts': [d.to_dict() for d in debts]})


@debts_bp.route('/add', methods=['POST'])
def add(budget_account_id):
    """Create a recurring debt in the budget account"""
    data = _json_body()
    debt = DebtService.create_debt(
        budget_account_id,
        name=data.get('name'),
        payment_amount=data.get('payment_amount'),
        due_date=data.get('due_date'),
        interest_rate=data.get('interest_rate'),
        category=data.get('category'),
        has_balance=data.get('has_balance', False),
    )
    return jsonify({'success': True, 'debt': debt.to_dict()}), 201


@debts_bp.route('/<int:id>/edit', methods=['POST'])
def edit(budget_account_id, id):
    data = _json_body()
    changes = {key: data[key] for key in EDITABLE_FIELDS if key in data}
    debt = DebtService.update_debt(budget_account_id, id, **changes)
    return jsonify({'success': True, 'debt': debt.to_dict()})


@debts_bp.route('/<int:id>/delete', methods=['POST'])
def delete(budget_account_id, id):
    """Deactivate a debt; its planning history is kept"""
    DebtService.deactivate_debt(budget_account_id, id)
    return jsonify({'success': True})


@debts_bp.route('/<int:id>/payments', methods=['POST'])
def record_payment(budget_account_id, id):
    """Record a manual payment, advancing the due date when paid early"""
    data = _json_body()
    allocation = DebtService.record_payment(
        budget_account_id, id,
        amount=data.get('amount'),
        payment_date=data.get('payment_date'),
        note=data.get('note'),
    )
    return jsonify({'success': True, 'allocation': allocation.to_dict()}), 201
