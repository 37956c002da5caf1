"""
관리자 브로드캐스트 API

- POST /admin/messages/broadcast: 다수 사용자에게 메시지 발송 (high/urgent 는 이메일 포함)
- GET  /admin/messages/broadcasts: 발송 이력
- GET  /admin/messages/broadcast/recipients: 수신자 검색
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from carbontrack.core.auth_middleware import require_admin
from carbontrack.deps import get_broadcast_service, get_request_context
from carbontrack.schemas.audit_log import RequestContext
from carbontrack.schemas.broadcast import (
    BroadcastHistoryResponse,
    BroadcastRequest,
    BroadcastResponse,
    RecipientListResponse,
)
from carbontrack.schemas.pagination import PaginationLimits
from carbontrack.schemas.user import User as UserSchema
from carbontrack.services.broadcast_service import BroadcastService

router = APIRouter(prefix="/admin/messages", tags=["admin-messages"])


@router.post("/broadcast", response_model=BroadcastResponse)
def broadcast_message(
    request: BroadcastRequest,
    current_user: UserSchema = Depends(require_admin),
    broadcast_service: BroadcastService = Depends(get_broadcast_service),
    context: RequestContext = Depends(get_request_context),
) -> BroadcastResponse:
    """시스템 메시지 브로드캐스트

    target_users 를 생략하면 전체 활성 사용자에게 발송합니다.
    존재하지 않는 사용자 ID 는 invalid_user_ids 로 보고되며 발송을 막지 않습니다.
    """
    return broadcast_service.broadcast(request, admin_id=current_user.id, context=context)


@router.get("/broadcasts", response_model=BroadcastHistoryResponse)
def list_broadcasts(
    page: int = Query(1, ge=1),
    limit: int = Query(
        PaginationLimits.BROADCASTS["default"],
        ge=PaginationLimits.BROADCASTS["min"],
        le=PaginationLimits.BROADCASTS["max"],
    ),
    current_user: UserSchema = Depends(require_admin),
    broadcast_service: BroadcastService = Depends(get_broadcast_service),
) -> BroadcastHistoryResponse:
    return broadcast_service.list_history(page=page, limit=limit)


@router.get("/broadcast/recipients", response_model=RecipientListResponse)
def search_recipients(
    search: Optional[str] = Query(None, description="사용자명/이메일 검색어"),
    limit: int = Query(
        PaginationLimits.RECIPIENTS["default"],
        ge=PaginationLimits.RECIPIENTS["min"],
        le=PaginationLimits.RECIPIENTS["max"],
    ),
    current_user: UserSchema = Depends(require_admin),
    broadcast_service: BroadcastService = Depends(get_broadcast_service),
) -> RecipientListResponse:
    return broadcast_service.search_recipients(search, limit)
