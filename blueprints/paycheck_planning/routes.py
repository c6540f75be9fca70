from datetime import date

from flask import request, jsonify

from . import paycheck_planning_bp
from services.allocation_service import AllocationService
from services.paycheck_planning_service import PaycheckPlanningService
from utils.errors import ValidationError


def _period_args(source):
    """year / month / lookahead from query args or a JSON body; year and month default to today."""
    today = date.today()
    return (
        source.get('year', today.year),
        source.get('month', today.month),
        source.get('lookahead'),
    )


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@paycheck_planning_bp.route('/', methods=['GET'])
def planning_data(budget_account_id):
    """Paychecks, planned debts and warnings for a month plus lookahead"""
    year, month, lookahead = _period_args(request.args)
    view = PaycheckPlanningService.get_paycheck_planning_data(budget_account_id, year, month, lookahead)
    return jsonify({'success': True, **view.to_dict()})


@paycheck_planning_bp.route('/current', methods=['GET'])
def current_month_planning(budget_account_id):
    """Planning view for the current calendar month"""
    view = PaycheckPlanningService.get_current_month_planning(budget_account_id, request.args.get('lookahead'))
    return jsonify({'success': True, **view.to_dict()})


@paycheck_planning_bp.route('/hidden', methods=['GET'])
def hidden_planning_data(budget_account_id):
    """Planning records that have been hidden for the window"""
    year, month, lookahead = _period_args(request.args)
    debts = PaycheckPlanningService.get_hidden_monthly_debt_planning_data(budget_account_id, year, month, lookahead)
    return jsonify({'success': True, 'debts': [d.to_dict() for d in debts]})


@paycheck_planning_bp.route('/allocations', methods=['GET'])
def list_allocations(budget_account_id):
    """Allocation rows, optionally filtered by repeated planning_record_id args"""
    record_ids = request.args.getlist('planning_record_id', type=int) or None
    allocations = AllocationService.get_allocations(budget_account_id, record_ids)
    return jsonify({'success': True, 'allocations': [a.to_dict() for a in allocations]})


@paycheck_planning_bp.route('/allocations', methods=['POST'])
def update_allocation(budget_account_id):
    """Allocate, unallocate or update a debt's paycheck allocation"""
    data = _json_body()
    result = PaycheckPlanningService.update_debt_allocation(
        budget_account_id,
        planning_record_id=data.get('planning_record_id'),
        paycheck_id=data.get('paycheck_id'),
        action=data.get('action'),
        amount=data.get('amount'),
        payment_date=data.get('date'),
    )
    return jsonify(result)


@paycheck_planning_bp.route('/allocations/<int:allocation_id>/paid', methods=['POST'])
def mark_paid(budget_account_id, allocation_id):
    """Mark an allocated payment as paid"""
    data = _json_body()
    result = PaycheckPlanningService.mark_payment_as_paid(
        budget_account_id,
        planning_record_id=data.get('planning_record_id'),
        allocation_id=allocation_id,
        amount=data.get('amount'),
        payment_date=data.get('date'),
    )
    return jsonify(result)


@paycheck_planning_bp.route('/populate', methods=['POST'])
def populate(budget_account_id):
    """Create missing monthly debt planning records ahead of time"""
    year, month, lookahead = _period_args(_json_body())
    created = PaycheckPlanningService.populate_monthly_debt_planning(budget_account_id, year, month, lookahead)
    return jsonify({'success': True, 'created': created})


@paycheck_planning_bp.route('/planning-records/<int:planning_record_id>/active', methods=['POST'])
def set_active(budget_account_id, planning_record_id):
    """Hide or restore one month's instance of a debt"""
    data = _json_body()
    result = PaycheckPlanningService.set_monthly_debt_planning_active(
        budget_account_id, planning_record_id, data.get('is_active'),
    )
    return jsonify(result)


@paycheck_planning_bp.route('/warnings/dismiss', methods=['POST'])
def dismiss_warning(budget_account_id):
    data = _json_body()
    result = PaycheckPlanningService.dismiss_warning(
        budget_account_id, data.get('warning_type'), data.get('warning_key'),
    )
    return jsonify(result)
