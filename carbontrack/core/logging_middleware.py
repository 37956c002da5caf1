import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from carbontrack.logging_config import request_id_var

logger = logging.getLogger("carbontrack")

REQUEST_ID_HEADER = "X-Request-ID"


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    요청/응답 로깅

    X-Request-ID 가 없으면 새로 발급하고, 요청이 끝날 때까지 request_id_var 에 담아
    같은 요청에서 남긴 모든 로그에 request_id 가 붙도록 한다.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        target = f"{request.method} {request.url.path}"
        client = request.client.host if request.client else "-"
        started = time.perf_counter()
        logger.info(f"[Request] {target} from {client}")
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(f"[Unhandled Error] {target} from {client}")
                raise

            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.log(
                _level_for(response.status_code),
                f"[Response] {target} -> {response.status_code} in {elapsed_ms:.1f}ms",
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_var.reset(token)
