import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Tuple

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from jose import JWTError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from carbontrack.core.exception_handlers import _with_request_id
from carbontrack.core.exceptions import BaseAPIException, ConflictError, ValidationError
from carbontrack.core.security import decode_access_token
from carbontrack.database.connection import SessionLocal
from carbontrack.repositories.idempotency_repository import IdempotencyRepository

logger = logging.getLogger("carbontrack")

IDEMPOTENCY_HEADER = "X-Request-ID"
REPLAY_HEADER = "X-Idempotent-Replay"

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def _user_id_from(request: Request) -> Optional[int]:
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    try:
        return decode_access_token(token).get("user_id")
    except JWTError:
        return None


class IdempotencyMiddleware(BaseHTTPMiddleware):
    """
    포인트가 오가는 요청의 중복 처리 방지

    지정된 (method, path) 요청은 UUID 형식의 X-Request-ID 가 필수이며,
    보관 기간 안에 같은 키로 다시 들어오면 저장된 상태 코드와 본문을 그대로 돌려준다.

    - 키 누락/형식 오류: 400
    - 같은 키가 처리 중이거나 다른 요청(경로, 본문, 사용자)에 쓰인 경우: 409
    - 5xx 응답은 저장하지 않고 선점을 해제해 재시도를 허용
    - 저장소 장애 시 로그만 남기고 일반 요청처럼 처리
    """

    def __init__(self, app, routes: Iterable[Tuple[str, str]], ttl_hours: int = 24):
        super().__init__(app)
        self.routes = {(method.upper(), path) for method, path in routes}
        self.ttl = timedelta(hours=ttl_hours)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if (request.method, request.url.path) not in self.routes:
            return await call_next(request)

        key = request.headers.get(IDEMPOTENCY_HEADER)
        if not key:
            return self._reject(
                request,
                ValidationError(
                    "X-Request-ID header is required for this operation", status_code=400
                ),
            )
        if not UUID_PATTERN.match(key):
            return self._reject(
                request,
                ValidationError("X-Request-ID must be a valid UUID", status_code=400),
            )

        raw_body = await request.body()
        request_body = raw_body.decode("utf-8", errors="replace")
        user_id = _user_id_from(request)
        since = datetime.now(timezone.utc) - self.ttl

        try:
            existing = await self._run(
                request, lambda repo: repo.find_recent(key, since)
            )
            if existing is None:
                reserved = await self._run(
                    request,
                    lambda repo: repo.reserve(
                        key,
                        since,
                        request_method=request.method,
                        request_uri=request.url.path,
                        request_body=request_body,
                        user_id=user_id,
                        ip_address=request.client.host if request.client else None,
                        user_agent=(request.headers.get("user-agent") or "")[:255] or None,
                    ),
                )
        except IntegrityError:
            return self._reject(
                request,
                ConflictError("A request with this X-Request-ID is already being processed"),
            )
        except SQLAlchemyError as e:
            logger.error(f"Idempotency lookup failed for {key}, processing without it: {e}")
            return await call_next(request)

        if existing is not None:
            if not existing.is_completed:
                return self._reject(
                    request,
                    ConflictError("A request with this X-Request-ID is already being processed"),
                )
            if (
                existing.request_uri != request.url.path
                or existing.request_body != request_body
                or existing.user_id != user_id
            ):
                return self._reject(
                    request,
                    ConflictError("X-Request-ID was already used for a different request"),
                )
            logger.info(f"Replaying stored response for {key} ({existing.response_status})")
            return Response(
                content=existing.response_body or "",
                status_code=existing.response_status,
                media_type="application/json",
                headers={REPLAY_HEADER: "true"},
            )

        try:
            response = await call_next(request)
        except Exception:
            await self._release(request, reserved.id)
            raise

        body = b"".join([chunk async for chunk in response.body_iterator])
        if response.status_code >= 500:
            await self._release(request, reserved.id)
        else:
            try:
                await self._run(
                    request,
                    lambda repo: repo.complete(
                        reserved.id,
                        response.status_code,
                        body.decode("utf-8", errors="replace"),
                    ),
                )
            except SQLAlchemyError as e:
                logger.error(f"Failed to store idempotent response for {key}: {e}")

        return Response(
            content=body,
            status_code=response.status_code,
            headers=dict(response.headers),
            media_type=response.media_type,
        )

    async def _run(self, request: Request, work: Callable[[IdempotencyRepository], object]):
        # 테스트에서는 app.state.session_factory 로 세션 팩토리를 교체
        session_factory = getattr(request.app.state, "session_factory", SessionLocal)

        def _call():
            with session_factory() as db:
                return work(IdempotencyRepository(db))

        return await run_in_threadpool(_call)

    async def _release(self, request: Request, record_id: int) -> None:
        try:
            await self._run(request, lambda repo: repo.release(record_id))
        except SQLAlchemyError as e:
            logger.error(f"Failed to release idempotency record {record_id}: {e}")

    @staticmethod
    def _reject(request: Request, exc: BaseAPIException) -> JSONResponse:
        logger.warning(
            f"[Idempotency] {request.method} {request.url.path} -> {exc.status_code}: {exc.message}"
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_with_request_id(request, exc.detail),  # type: ignore[arg-type]
        )
