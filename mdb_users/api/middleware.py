"""
Request middleware: request id propagation and request logging.
"""

import logging
import time
import uuid
from collections.abc import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..constants import REQUEST_ID_HEADER
from ..observability import (
    clear_correlation_id,
    clear_operation_context,
    get_logger,
    record_operation,
    set_correlation_id,
    set_operation_context,
)

logger = logging.getLogger(__name__)
contextual_logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Binds a request id to every request and logs its outcome.

    The id comes from the ``X-Request-ID`` header or is generated, is stored
    on ``request.state.request_id``, becomes the logging correlation id and
    is echoed back in the response header.
    """

    def __init__(self, app: Callable, header_name: str = REQUEST_ID_HEADER):
        super().__init__(app)
        self._header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self._header_name) or str(uuid.uuid4())
        set_correlation_id(request_id)
        request.state.request_id = request_id
        set_operation_context(method=request.method, path=request.url.path)

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.time() - start_time) * 1000
            record_operation("http.request", duration_ms, success=False, method=request.method)
            contextual_logger.exception(
                "Request failed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            clear_operation_context()
            clear_correlation_id()
            raise

        duration_ms = (time.time() - start_time) * 1000
        response.headers[self._header_name] = request_id

        failed = response.status_code >= 400
        record_operation(
            "http.request", duration_ms, success=not failed, method=request.method
        )
        contextual_logger.log(
            logging.ERROR if failed else logging.INFO,
            "Request completed with error" if failed else "Request completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        clear_operation_context()
        clear_correlation_id()
        return response
