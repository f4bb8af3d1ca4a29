"""
Error handling service for consistent error response formatting and logging.
Every failure reaches the client as {"error": {"code", "message", ...}}.
"""

from typing import Dict, Any, Optional, List, Union
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError as PydanticValidationError
from rental_market.utils.exceptions import APIException, ValidationError
from datetime import datetime, timezone
import logging
import uuid

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


class ErrorHandlerService:
    """
    Turns exceptions into error envelopes and logs them at a level matching their severity.
    """

    @staticmethod
    def format_error_response(
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Build the error envelope.

        Args:
            error_code: Machine-readable code such as NOT_FOUND
            message: Human-readable error message
            details: Per-field problems, omitted when empty
            request_id: Identifier echoed in the X-Request-ID header

        Returns:
            ``{"error": {...}}`` dictionary
        """
        error: Dict[str, Any] = {
            "code": error_code,
            "message": message,
            "timestamp": ErrorHandlerService._get_current_timestamp(),
        }
        if details:
            error["details"] = details
        if request_id:
            error["request_id"] = request_id
        return {"error": error}

    @staticmethod
    def handle_api_exception(
        exception: APIException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Errors raised deliberately by services, repositories and dependencies."""
        request_id = ErrorHandlerService._request_id(request)
        server_side = exception.status_code >= 500

        ErrorHandlerService._log(
            logging.ERROR if server_side else logging.WARNING,
            f"{exception.error_code} [{request_id}]: {exception.detail}",
            request,
            request_id,
            status_code=exception.status_code,
            exc_info=server_side and exception.__cause__ is not None,
        )

        details = exception.field_errors if isinstance(exception, ValidationError) else None
        body = ErrorHandlerService.format_error_response(
            exception.error_code or "API_ERROR",
            exception.detail,
            details=details,
            request_id=request_id
        )
        return JSONResponse(status_code=exception.status_code, content=body, headers=exception.headers)

    @staticmethod
    def handle_validation_error(
        exception: Union[RequestValidationError, PydanticValidationError],
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Malformed requests and rejected model values.

        Always answered with 400; the first problem is repeated in the message.
        """
        request_id = ErrorHandlerService._request_id(request)

        details = [
            {
                "field": " -> ".join(str(part) for part in problem["loc"]),
                "message": problem["msg"],
                "type": problem["type"],
            }
            for problem in exception.errors()
        ]

        message = "Request validation failed"
        if details:
            message = f"{message}: {details[0]['field']} - {details[0]['message']}"

        ErrorHandlerService._log(logging.WARNING, f"VALIDATION_ERROR [{request_id}]: {message}", request, request_id)

        body = ErrorHandlerService.format_error_response(
            "VALIDATION_ERROR",
            message,
            details=details,
            request_id=request_id
        )
        return JSONResponse(status_code=400, content=jsonable_encoder(body))

    @staticmethod
    def handle_database_error(
        exception: SQLAlchemyError,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Store errors that escaped the repositories; driver details stay in the log."""
        request_id = ErrorHandlerService._request_id(request)

        ErrorHandlerService._log(
            logging.ERROR,
            f"STORE_ERROR [{request_id}]: {type(exception).__name__} - {exception}",
            request,
            request_id,
            exc_info=True,
        )

        body = ErrorHandlerService.format_error_response(
            "STORE_ERROR",
            "Database operation failed",
            request_id=request_id
        )
        return JSONResponse(status_code=500, content=body)

    @staticmethod
    def handle_http_exception(
        exception: HTTPException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Framework HTTP errors such as unknown routes or disallowed methods."""
        request_id = ErrorHandlerService._request_id(request)
        code = f"HTTP_{exception.status_code}"

        ErrorHandlerService._log(logging.WARNING, f"{code} [{request_id}]: {exception.detail}", request, request_id)

        body = ErrorHandlerService.format_error_response(code, str(exception.detail), request_id=request_id)
        return JSONResponse(
            status_code=exception.status_code,
            content=body,
            headers=getattr(exception, "headers", None)
        )

    @staticmethod
    def handle_unexpected_error(
        exception: Exception,
        request: Optional[Request] = None
    ) -> JSONResponse:
        request_id = ErrorHandlerService._request_id(request)

        ErrorHandlerService._log(
            logging.ERROR,
            f"INTERNAL_SERVER_ERROR [{request_id}]: {type(exception).__name__} - {exception}",
            request,
            request_id,
            exc_info=exception,
        )

        body = ErrorHandlerService.format_error_response(
            "INTERNAL_SERVER_ERROR",
            UNEXPECTED_ERROR_MESSAGE,
            request_id=request_id
        )
        return JSONResponse(status_code=500, content=body)

    @staticmethod
    def _log(
        level: int,
        message: str,
        request: Optional[Request],
        request_id: str,
        status_code: Optional[int] = None,
        exc_info: Any = None
    ) -> None:
        extra = {
            "request_id": request_id,
            "path": request.url.path if request else None,
        }
        if status_code is not None:
            extra["status_code"] = status_code
        logger.log(level, message, extra=extra, exc_info=exc_info or None)

    @staticmethod
    def _request_id(request: Optional[Request]) -> str:
        """Reuse the id assigned by the request middleware when there is one."""
        if request is not None:
            request_id = getattr(request.state, "request_id", None)
            if request_id:
                return request_id
        return uuid.uuid4().hex[:8]

    @staticmethod
    def _get_current_timestamp() -> str:
        return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _error_example(code: str, message: str) -> Dict[str, Any]:
    return {
        "application/json": {
            "example": {
                "error": {
                    "code": code,
                    "message": message,
                    "timestamp": "2024-01-01T00:00:00Z",
                    "request_id": "abc12345"
                }
            }
        }
    }


# OpenAPI documentation of the error envelope per status code
ERROR_RESPONSES = {
    400: {"description": "Validation Error", "content": _error_example("VALIDATION_ERROR", "userId is required")},
    401: {"description": "Unauthorized", "content": _error_example("UNAUTHORIZED", "Authentication required")},
    403: {"description": "Forbidden", "content": _error_example("FORBIDDEN", "Access forbidden")},
    404: {"description": "Not Found", "content": _error_example("NOT_FOUND", "Property not found")},
    409: {"description": "Conflict", "content": _error_example("CONFLICT", "Resource already exists")},
    500: {"description": "Store Error", "content": _error_example("STORE_ERROR", "Database operation failed")},
}


def error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """OpenAPI ``responses`` entries for the given status codes."""
    return {code: ERROR_RESPONSES[code] for code in status_codes}
