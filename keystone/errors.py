"""Domain errors raised by the tenancy services.

Routes never catch these; ``create_app`` registers a handler that renders
them with their status code after rolling back the session.
"""


class DomainError(Exception):
    status_code = 400
    kind = 'domain_error'

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'message': self.message, 'error': self.kind}


class ValidationError(DomainError):
    status_code = 400
    kind = 'validation_error'


class AuthorizationError(DomainError):
    status_code = 403
    kind = 'authorization_error'


class NotFoundError(DomainError):
    status_code = 404
    kind = 'not_found'


class ConflictError(DomainError):
    status_code = 409
    kind = 'conflict'
