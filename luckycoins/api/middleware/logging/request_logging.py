import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from luckycoins.core.exceptions.handler import REQUEST_ID_HEADER
from luckycoins.core.logger.logger import get_logger

logger = get_logger(__name__)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with a correlation id and logs its outcome.

    Bodies are never logged; admin login bodies carry passwords.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        started = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        }

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={**context, "error_type": type(e).__name__, "duration_ms": _elapsed_ms(started)},
                exc_info=True
            )
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "Request handled",
            extra={**context, "status_code": response.status_code, "duration_ms": _elapsed_ms(started)}
        )
        return response
