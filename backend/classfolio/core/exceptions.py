"""
Domain error taxonomy.

Every error raised by the services derives from ClassfolioError and carries a
machine-readable code. The API layer maps codes to HTTP status codes.
"""

from typing import Optional


class ClassfolioError(Exception):
    code = "ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ConfigurationError(ClassfolioError):
    """Missing or rejected upstream credentials. Not retried."""

    code = "CONFIGURATION_ERROR"


class UpstreamUnavailable(ClassfolioError):
    """Quote provider network, HTTP or parse failure."""

    code = "UPSTREAM_UNAVAILABLE"


class NotFound(ClassfolioError):
    code = "NOT_FOUND"


class InvalidArgument(ClassfolioError):
    """Caller contract violation."""

    code = "INVALID_ARGUMENT"


class ZeroInitialValueError(ClassfolioError, ZeroDivisionError):
    code = "ZERO_INITIAL_VALUE"


class AlreadyInvested(ClassfolioError):
    code = "ALREADY_INVESTED"


class BudgetExceeded(ClassfolioError):
    code = "BUDGET_EXCEEDED"


class AlreadyMember(ClassfolioError):
    code = "ALREADY_MEMBER"


class ClassInactive(ClassfolioError):
    code = "CLASS_INACTIVE"


class InvalidInviteCode(ClassfolioError):
    code = "INVALID_INVITE_CODE"


class LeaveNotAllowed(ClassfolioError):
    code = "LEAVE_NOT_ALLOWED"
