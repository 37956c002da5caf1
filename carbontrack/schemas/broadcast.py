from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from carbontrack.schemas.pagination import PaginationMeta
from carbontrack.schemas.user import RecipientItem


class BroadcastRequest(BaseModel):
    """관리자 브로드캐스트 요청

    priority/target_users 의 정규화와 검증은 BroadcastService 에서 처리한다.
    """

    title: str = Field(..., description="제목 (최대 255자)")
    content: str = Field(..., description="본문")
    priority: Optional[str] = Field(None, description="low|normal|high|urgent")
    target_users: Optional[List[int]] = Field(
        None, description="수신자 ID 목록, 생략 시 전체 활성 사용자"
    )


class EmailDeliveryStatus(str, Enum):
    SENT = "sent"
    PARTIAL = "partial"
    FAILED = "failed"


class EmailDeliveryReport(BaseModel):
    """BCC 일괄 이메일 발송 결과"""

    status: EmailDeliveryStatus
    recipient_count: int = 0
    sent_count: int = 0
    batches: int = 0
    simulated: bool = False
    errors: List[str] = []


class BroadcastResponse(BaseModel):
    success: bool = True
    broadcast_id: Optional[int] = None
    sent_count: int
    total_targets: int
    invalid_user_ids: List[int] = []
    failed_user_ids: List[int] = []
    email_delivery: Optional[EmailDeliveryReport] = None
    priority: str
    message: str


class BroadcastHistoryItem(BaseModel):
    id: int
    title: str
    content: str
    priority: str
    scope: str
    target_count: int
    sent_count: int
    invalid_user_ids: List[int] = []
    failed_user_ids: List[int] = []
    content_hash: str
    email_delivery: Optional[EmailDeliveryReport] = None
    created_by: Optional[int] = None
    request_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BroadcastHistoryResponse(BaseModel):
    success: bool = True
    items: List[BroadcastHistoryItem]
    pagination: PaginationMeta


class RecipientListResponse(BaseModel):
    success: bool = True
    items: List[RecipientItem]
