"""
Error kinds raised by the planning services.

Each carries a user-facing ``message`` and the HTTP ``status_code`` the
blueprints return for it.  Double-unallocate and double-dismiss are not
errors at all; those calls simply succeed.
"""


class PlanningError(Exception):
    """Base class for errors surfaced to the caller."""
    status_code = 400
    default_message = 'Request could not be completed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'success': False, 'error': self.message, 'error_type': type(self).__name__}


class NotAuthenticated(PlanningError):
    status_code = 401
    default_message = 'User not authenticated'


class AccessDenied(PlanningError):
    status_code = 403
    default_message = 'Access denied to budget account'


class NotFound(PlanningError):
    status_code = 404
    default_message = 'Record not found'


class ValidationError(PlanningError):
    status_code = 400
    default_message = 'Invalid input'
