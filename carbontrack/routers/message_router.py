"""
사용자 메시지(수신함) API

모든 엔드포인트는 본인의 미삭제 메시지만 대상으로 한다.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from carbontrack.core.auth_middleware import verify_bearer_token
from carbontrack.deps import get_message_service
from carbontrack.schemas.message import (
    MessageActionResponse,
    MessageDetailResponse,
    MessageListResponse,
    UnreadCountResponse,
)
from carbontrack.schemas.pagination import PaginationLimits
from carbontrack.schemas.user import User as UserSchema
from carbontrack.services.message_service import MessageService

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("", response_model=MessageListResponse)
def list_messages(
    page: int = Query(1, ge=1),
    limit: int = Query(
        PaginationLimits.MESSAGES["default"],
        ge=PaginationLimits.MESSAGES["min"],
        le=PaginationLimits.MESSAGES["max"],
    ),
    is_read: Optional[bool] = Query(None, description="읽음 여부 필터"),
    current_user: UserSchema = Depends(verify_bearer_token),
    message_service: MessageService = Depends(get_message_service),
) -> MessageListResponse:
    return message_service.list_inbox(current_user.id, page, limit, is_read=is_read)


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(
    current_user: UserSchema = Depends(verify_bearer_token),
    message_service: MessageService = Depends(get_message_service),
) -> UnreadCountResponse:
    return message_service.unread_count(current_user.id)


@router.put("/read-all", response_model=MessageActionResponse)
def mark_all_read(
    current_user: UserSchema = Depends(verify_bearer_token),
    message_service: MessageService = Depends(get_message_service),
) -> MessageActionResponse:
    return message_service.mark_all_read(current_user.id)


@router.get("/{message_id}", response_model=MessageDetailResponse)
def get_message(
    message_id: int = Path(...),
    current_user: UserSchema = Depends(verify_bearer_token),
    message_service: MessageService = Depends(get_message_service),
) -> MessageDetailResponse:
    """메시지 상세 - 조회하면 읽음 처리됨"""
    return MessageDetailResponse(
        data=message_service.get_message(current_user.id, message_id)
    )


@router.put("/{message_id}/read", response_model=MessageActionResponse)
def mark_read(
    message_id: int = Path(...),
    current_user: UserSchema = Depends(verify_bearer_token),
    message_service: MessageService = Depends(get_message_service),
) -> MessageActionResponse:
    return message_service.mark_read(current_user.id, message_id)


@router.delete("/{message_id}", response_model=MessageActionResponse)
def delete_message(
    message_id: int = Path(...),
    current_user: UserSchema = Depends(verify_bearer_token),
    message_service: MessageService = Depends(get_message_service),
) -> MessageActionResponse:
    return message_service.delete(current_user.id, message_id)
