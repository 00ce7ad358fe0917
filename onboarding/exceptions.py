
class ServiceException(Exception):
    """Base exception for service layer errors"""
    def __init__(self, message, error_code=None, status_code=400):
        self.message = message
        self.error_code = error_code or 'SERVICE_ERROR'
        self.status_code = status_code
        super().__init__(self.message)

    def __str__(self):
        return self.message

    def to_dict(self) -> dict:
        return {
            'error': True,
            'message': self.message,
            'error_code': self.error_code,
            'status_code': self.status_code
        }

class AuthenticationError(ServiceException):
    """Raised when the bearer token is missing or invalid"""
    def __init__(self, message="Authentication failed", error_code=None):
        super().__init__(
            message=message,
            error_code=error_code or 'AUTH_ERROR',
            status_code=401
        )

class ValidationError(ServiceException):
    """Raised when input validation fails"""
    def __init__(self, message="Validation failed", error_code=None):
        super().__init__(
            message=message,
            error_code=error_code or 'VALIDATION_ERROR',
            status_code=400
        )

class NotFoundError(ServiceException):
    """Raised when an invitation does not exist in the caller's organisation"""
    def __init__(self, message="Invitation not found", error_code=None):
        super().__init__(
            message=message,
            error_code=error_code or 'NOT_FOUND',
            status_code=404
        )

class InvalidStateError(ServiceException):
    """Raised when an action needs a pending invitation and it isn't one"""
    def __init__(self, status, message=None, error_code=None):
        self.status = getattr(status, 'value', status)
        super().__init__(
            message=message or f"Invitation is {self.status}",
            error_code=error_code or 'INVALID_STATE',
            status_code=409
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['status'] = self.status
        return data

class ActionInProgressError(ServiceException):
    """Raised when another action is already running for the same invitation"""
    def __init__(self, action, message=None, error_code=None):
        self.action = action
        super().__init__(
            message=message or f"A {action} is already in progress for this invitation",
            error_code=error_code or 'ACTION_IN_PROGRESS',
            status_code=409
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['action'] = self.action
        return data

class StoreFailure(ServiceException):
    """Raised when the invitation store call itself fails"""
    def __init__(self, message="Invitation store unavailable", error_code=None):
        super().__init__(
            message=message,
            error_code=error_code or 'STORE_FAILURE',
            status_code=503
        )

class NotificationFailure(ServiceException):
    """Raised by notification senders. Never reaches API callers, it becomes a warning."""
    def __init__(self, message="Failed to deliver invitation", error_code=None):
        super().__init__(
            message=message,
            error_code=error_code or 'NOTIFICATION_FAILURE',
            status_code=502
        )
