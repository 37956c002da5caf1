import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from carbontrack.config import settings
from .exceptions import InfrastructureError

logger = logging.getLogger("carbontrack")


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None) or request.headers.get(
        "x-request-id"
    )


def _request_context(request: Request) -> Dict[str, Any]:
    client = request.client.host if request.client else "-"
    return {
        "method": request.method,
        "url": str(request.url),
        "client": client,
        "request_id": _request_id(request) or "-",
    }


def _with_request_id(request: Request, content: Dict[str, Any]) -> Dict[str, Any]:
    body = dict(content)
    body["request_id"] = _request_id(request)
    return body


def _server_error_body(request: Request, exc: Exception) -> Dict[str, Any]:
    internal = InfrastructureError()
    body = _with_request_id(request, internal.detail)  # type: ignore[arg-type]
    # 운영 환경에서는 내부 예외 클래스/메시지를 노출하지 않음
    if not settings.is_production:
        body["debug"] = {"exception": type(exc).__name__, "message": str(exc)}
    return body


async def handle_base_api_exception(request, exc):
    ctx = _request_context(request)
    log_msg = (
        f"[BaseAPIException] {ctx['method']} {ctx['url']} from {ctx['client']} "
        f"(request_id={ctx['request_id']}) -> {exc.status_code}: {exc.message}"
    )
    if getattr(exc, "status_code", 500) >= 500:
        logger.error(log_msg)
    else:
        logger.warning(log_msg)
    return JSONResponse(
        status_code=exc.status_code,
        content=_with_request_id(request, exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def handle_http_exception(request, exc):
    ctx = _request_context(request)

    error_msg = f"[HTTPException] {ctx['method']} {ctx['url']} from {ctx['client']} -> {exc.status_code}: {exc.detail}"

    if getattr(exc, "status_code", 500) >= 500:
        # 500번대 에러는 스택 트레이스 포함
        tb_str = ''.join(traceback.format_tb(exc.__traceback__))
        logger.error(f"{error_msg}\n\nStack Trace:\n{tb_str}")
    else:
        logger.warning(error_msg)

    if isinstance(exc.detail, dict) and "code" in exc.detail:
        content = exc.detail
    else:
        content = {
            "success": False,
            "error": str(exc.detail),
            "code": f"HTTP_{exc.status_code}",
            "details": {},
        }
    return JSONResponse(
        status_code=exc.status_code,
        content=_with_request_id(request, content),
        headers=getattr(exc, "headers", None),
    )


async def handle_validation_error(request, exc):
    ctx = _request_context(request)
    errors = [
        {
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    logger.warning(
        f"[ValidationError] {ctx['method']} {ctx['url']} from {ctx['client']} -> 422: {errors}"
    )
    content = {
        "success": False,
        "error": "Validation failed",
        "code": "VALIDATION_001",
        "details": {"errors": errors},
    }
    return JSONResponse(status_code=422, content=_with_request_id(request, content))


async def handle_database_error(request, exc):
    ctx = _request_context(request)
    logger.error(
        f"[DatabaseError] {ctx['method']} {ctx['url']} from {ctx['client']} "
        f"(request_id={ctx['request_id']}): {type(exc).__name__}: {exc}"
    )
    return JSONResponse(status_code=500, content=_server_error_body(request, exc))


async def handle_unexpected_error(request, exc):
    ctx = _request_context(request)

    # 전체 스택 트레이스 포함
    tb_str = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(
        f"\n{'=' * 80}\n"
        f"[Unhandled Error] {ctx['method']} {ctx['url']} from {ctx['client']}\n"
        f"Request ID: {ctx['request_id']}\n"
        f"Exception Type: {type(exc).__name__}\n"
        f"Exception Message: {str(exc)}\n\n"
        f"Full Stack Trace:\n{tb_str}"
        f"{'=' * 80}"
    )

    return JSONResponse(status_code=500, content=_server_error_body(request, exc))
