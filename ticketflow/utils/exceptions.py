# ticketflow/utils/exceptions.py
"""Custom exceptions for TicketFlow"""
from typing import Any, Optional


class TicketFlowException(Exception):
    """Base exception for TicketFlow"""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(TicketFlowException):
    """Missing or malformed input"""
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", 400, details)


class NotFoundError(TicketFlowException):
    """Resource not found"""
    def __init__(self, message: str):
        super().__init__(message, "NOT_FOUND", 404)


class UnauthorizedError(TicketFlowException):
    """Caller not authenticated"""
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, "UNAUTHORIZED", 401)


class PermissionDeniedError(TicketFlowException):
    """Authorization predicate failed"""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, "FORBIDDEN", 403)


class ConflictError(TicketFlowException):
    """Concurrent modification of the same resource"""
    def __init__(self, message: str):
        super().__init__(message, "CONFLICT", 409)
