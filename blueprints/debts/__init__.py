from flask import Blueprint
from flask_login import login_required

debts_bp = Blueprint('debts', __name__, url_prefix='/budget-accounts/<int:budget_account_id>/debts')

# Require authentication for all routes in this blueprint
@debts_bp.before_request
@login_required
def require_login():
    pass

from . import routes
