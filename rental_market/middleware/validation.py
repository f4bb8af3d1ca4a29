"""
Request middleware for request tracking, body size limits and request logging.
"""

from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging
import time
import uuid

from rental_market.services.error_handler import ErrorHandlerService
from rental_market.utils.exceptions import BadRequestError

logger = logging.getLogger(__name__)


class ValidationMiddleware(BaseHTTPMiddleware):
    """
    Assigns a request id, rejects oversized bodies and optionally logs traffic.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 60 * 1024 * 1024,
        enable_request_logging: bool = True
    ):
        super().__init__(app)
        self.max_request_size = max_request_size
        self.enable_request_logging = enable_request_logging

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request through validation middleware.
        """
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        start_time = time.time()

        try:
            self._validate_request_size(request)
        except BadRequestError as exc:
            response = ErrorHandlerService.handle_api_exception(exc, request)
            response.headers["X-Request-ID"] = request_id
            return response

        if self.enable_request_logging:
            self._log_request(request, request_id)

        response = await call_next(request)

        if self.enable_request_logging:
            self._log_response(request, response, request_id, time.time() - start_time)

        response.headers["X-Request-ID"] = request_id
        return response

    def _validate_request_size(self, request: Request) -> None:
        """
        Validate request content length.

        Raises:
            BadRequestError: If request size exceeds limit
        """
        content_length = request.headers.get("content-length")
        if not content_length:
            return

        try:
            size = int(content_length)
        except ValueError:
            raise BadRequestError("Invalid content-length header")

        if size > self.max_request_size:
            raise BadRequestError(
                f"Request size {size} bytes exceeds maximum allowed size {self.max_request_size} bytes"
            )

    def _log_request(self, request: Request, request_id: str) -> None:
        client = request.client.host if request.client else "unknown"
        logger.info(
            f"Request [{request_id}]: {request.method} {request.url.path} from {client}",
            extra={"request_id": request_id, "method": request.method, "path": request.url.path}
        )

    def _log_response(
        self,
        request: Request,
        response: Response,
        request_id: str,
        processing_time: float
    ) -> None:
        logger.info(
            f"Response [{request_id}]: {response.status_code} for {request.method} {request.url.path} "
            f"in {processing_time:.3f}s",
            extra={
                "request_id": request_id,
                "status_code": response.status_code,
                "processing_time": processing_time
            }
        )
