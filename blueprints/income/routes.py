from flask import request, jsonify
from flask_login import current_user

from . import income_bp
from services.income_service import IncomeService
from utils.errors import ValidationError


EDITABLE_FIELDS = ('name', 'amount', 'frequency', 'start_date', 'end_date', 'second_pay_day', 'notes', 'is_active')


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@income_bp.route('/', methods=['GET'])
def index():
    """List income sources of every member of a budget account"""
    budget_account_id = request.args.get('budget_account_id', type=int) or current_user.default_budget_account_id
    include_inactive = request.args.get('include_inactive') == 'true'
    sources = IncomeService.list_income_sources(budget_account_id, include_inactive=include_inactive)
    return jsonify({'success': True, 'income_sources': [s.to_dict() for s in sources]})


@income_bp.route('/add', methods=['POST'])
def add():
    """Create an income source owned by the logged-in user"""
    data = _json_body()
    income_source = IncomeService.create_income_source(
        name=data.get('name'),
        amount=data.get('amount'),
        frequency=data.get('frequency'),
        start_date=data.get('start_date'),
        end_date=data.get('end_date'),
        second_pay_day=data.get('second_pay_day'),
        notes=data.get('notes'),
    )
    return jsonify({'success': True, 'income_source': income_source.to_dict()}), 201


@income_bp.route('/<int:id>/edit', methods=['POST'])
def edit(id):
    data = _json_body()
    changes = {key: data[key] for key in EDITABLE_FIELDS if key in data}
    income_source = IncomeService.update_income_source(id, **changes)
    return jsonify({'success': True, 'income_source': income_source.to_dict()})


@income_bp.route('/<int:id>/delete', methods=['POST'])
def delete(id):
    """Deactivate an income source; past allocations keep their paycheck ids"""
    IncomeService.deactivate_income_source(id)
    return jsonify({'success': True})
