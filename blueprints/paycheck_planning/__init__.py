from flask import Blueprint
from flask_login import login_required

paycheck_planning_bp = Blueprint(
    'paycheck_planning', __name__,
    url_prefix='/budget-accounts/<int:budget_account_id>/paycheck-planning',
)

# Require authentication for all routes in this blueprint
@paycheck_planning_bp.before_request
@login_required
def require_login():
    pass

from . import routes
