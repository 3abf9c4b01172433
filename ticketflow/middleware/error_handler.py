# ticketflow/middleware/error_handler.py
"""Global error handling"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ticketflow.core.logger import get_logger
from ticketflow.schemas.common import ErrorResponse
from ticketflow.utils.exceptions import TicketFlowException

logger = get_logger(__name__)


def error_body(code: str, message: str, request: Request, details: dict = None) -> dict:
    return ErrorResponse(
        error=code,
        message=message,
        details=details or {},
        path=str(request.url.path)
    ).model_dump()


def register_error_handlers(app: FastAPI):
    """Register error handlers with FastAPI app"""

    @app.exception_handler(TicketFlowException)
    async def ticketflow_exception_handler(request: Request, exc: TicketFlowException):
        """Handle TicketFlow exceptions"""
        if exc.status_code >= 500:
            logger.error(f"{exc.code}: {exc.message}")
        else:
            logger.warning(f"{exc.code}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, exc.message, request, exc.details)
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed path/query parameters"""
        fields = {}
        for error in exc.errors():
            field = ".".join(str(part) for part in error.get("loc", ()))
            fields.setdefault(field, error.get("msg", "Invalid value"))
        logger.warning(f"VALIDATION_ERROR: {fields}")
        return JSONResponse(
            status_code=400,
            content=error_body("VALIDATION_ERROR", "Invalid request data", request, {"fields": fields})
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.error(f"Unexpected error: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body("INTERNAL_SERVER_ERROR", "An unexpected error occurred", request)
        )
