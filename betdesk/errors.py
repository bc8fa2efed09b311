"""
Domain exceptions for the betting API.

Services raise these; the app-level error handler in betdesk.main renders them
as {'success': False, 'error': message} with the carried status code.
"""


class BetDeskError(Exception):
    """Base API error with status code and message."""

    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'success': False, 'error': self.message}


class ValidationFailed(BetDeskError):
    """Raised when request data does not pass validation."""

    status_code = 400


class InsufficientBalance(BetDeskError):
    """Raised when a debit would take a balance below zero."""

    status_code = 400

    def __init__(self, message: str = "Insufficient balance"):
        super().__init__(message)


class MarketClosed(ValidationFailed):
    """Raised when a bet targets a market or match that is not open."""

    STATUS_MESSAGES = {
        "waiting": "Market is not yet active for betting",
        "closed": "Market is in 'Waiting Results' status and closed for betting",
        "resulted": "Market results have been declared",
    }

    def __init__(self, status: str, subject: str = "Market"):
        if subject == "Market":
            message = self.STATUS_MESSAGES.get(status, "Market is not available for betting")
        else:
            message = {
                "waiting": f"{subject} is not yet active for betting",
                "closed": f"{subject} is closed for betting",
                "resulted": f"{subject} results have been declared",
            }.get(status, f"{subject} is not available for betting")
        super().__init__(message)


class NotAuthenticated(BetDeskError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AccountBlocked(BetDeskError):
    status_code = 403

    def __init__(self, message: str = "Your account is blocked"):
        super().__init__(message)


class PermissionDenied(BetDeskError):
    status_code = 403

    def __init__(self, message: str = "Forbidden: Insufficient permissions"):
        super().__init__(message)


class NotFound(BetDeskError):
    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class Conflict(BetDeskError):
    status_code = 409
