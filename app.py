import os
import logging
import click
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify
from flask_wtf.csrf import CSRFError
from werkzeug.exceptions import HTTPException
from config import config
from extensions import db, migrate, login_manager, csrf, limiter
from utils.errors import NotAuthenticated, PlanningError


def configure_logging(app):
    """Configure application logging"""
    if not app.debug and not app.testing:
        # Create logs directory if it doesn't exist
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = RotatingFileHandler(
            'logs/paycheck_planner.log',
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s '
            '[in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('Paycheck planner startup')
    else:
        # Development logging to console
        app.logger.setLevel(logging.DEBUG)
        app.logger.info('Paycheck planner startup (DEBUG mode)')


def create_app(config_name=None):
    """Application factory pattern"""

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    # Configure logging
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # Add security headers
    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        headers = app.config.get('SECURITY_HEADERS', {})
        for header, value in headers.items():
            response.headers[header] = value
        return response

    # User loader callback for Flask-Login
    @login_manager.user_loader
    def load_user(user_id):
        from models.users import User
        return db.session.get(User, int(user_id))

    # The API has no login page; anonymous callers get a JSON 401
    @login_manager.unauthorized_handler
    def unauthorized():
        error = NotAuthenticated()
        return jsonify(error.to_dict()), error.status_code

    # Import models to ensure they're registered with SQLAlchemy
    with app.app_context():
        import models  # noqa: F401

    # Register blueprints
    from blueprints.paycheck_planning import paycheck_planning_bp
    from blueprints.income import income_bp
    from blueprints.debts import debts_bp

    app.register_blueprint(paycheck_planning_bp)
    app.register_blueprint(income_bp)
    app.register_blueprint(debts_bp)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_commands(app)

    return app


def register_error_handlers(app):
    """Register global error handlers"""

    @app.errorhandler(PlanningError)
    def planning_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            app.logger.error(f'{type(error).__name__}: {error.message}')
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        return jsonify({'success': False, 'error': f'CSRF token validation failed: {error.description}'}), 400

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'success': False, 'error': error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        db.session.rollback()
        app.logger.exception(f'Internal Server Error: {error}')
        return jsonify({'success': False, 'error': 'Internal server error'}), 500


def register_commands(app):
    """Register Flask CLI commands."""

    @app.cli.group()
    def planning():
        """Paycheck planning maintenance."""
        pass

    @planning.command('populate')
    @click.argument('budget_account_id', type=int)
    @click.argument('year', type=int)
    @click.argument('month', type=int)
    @click.option('--lookahead', default=0, show_default=True, type=int,
                  help='Extra months to materialise after MONTH.')
    def populate(budget_account_id, year, month, lookahead):
        """Create missing monthly debt planning records for an account."""
        from models.budget_accounts import BudgetAccount
        from services.debt_planning_service import DebtPlanningService
        from utils.dates import validate_period
        from utils.errors import ValidationError

        if db.session.get(BudgetAccount, budget_account_id) is None:
            click.echo(f'ERROR: No budget account with id {budget_account_id}', err=True)
            return
        try:
            year, month, lookahead = validate_period(
                year, month, lookahead,
                max_lookahead=app.config.get('PLANNING_MAX_LOOKAHEAD_MONTHS'),
            )
        except ValidationError as e:
            click.echo(f'ERROR: {e.message}', err=True)
            return

        created = DebtPlanningService.materialize(budget_account_id, year, month, lookahead)
        click.echo(f'SUCCESS: {created} planning records created for {year}-{month:02d} (+{lookahead} months).')

    @planning.command('add-member')
    @click.argument('budget_account_id', type=int)
    @click.argument('email')
    def add_member(budget_account_id, email):
        """Add the user with EMAIL to a budget account."""
        from models.budget_accounts import BudgetAccount
        from models.users import User

        account = db.session.get(BudgetAccount, budget_account_id)
        if account is None:
            click.echo(f'ERROR: No budget account with id {budget_account_id}', err=True)
            return
        user = User.query.filter_by(email=email).first()
        if not user:
            click.echo(f'ERROR: No user found with email "{email}"', err=True)
            return
        if user.is_member_of(account.id):
            click.echo(f'"{user.name}" ({email}) is already a member of "{account.name}".')
            return
        account.add_member(user)
        if user.default_budget_account_id is None:
            user.default_budget_account_id = account.id
        db.session.commit()
        click.echo(f'SUCCESS: "{user.name}" ({email}) added to "{account.name}".')


if __name__ == '__main__':
    app = create_app()
    # SECURITY: Only bind to localhost in development
    # Never use 0.0.0.0 with debug mode - it exposes the debugger to the network
    app.run(host='127.0.0.1', port=5000, debug=True)
