from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from carbontrack.schemas.pagination import PaginationMeta


class MessageSchema(BaseModel):
    id: int
    sender_id: Optional[int] = None
    receiver_id: int
    title: str
    content: str
    type: str
    priority: str
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageListResponse(BaseModel):
    success: bool = True
    items: List[MessageSchema]
    pagination: PaginationMeta


class MessageDetailResponse(BaseModel):
    success: bool = True
    data: MessageSchema


class UnreadCountResponse(BaseModel):
    success: bool = True
    unread_count: int


class MessageActionResponse(BaseModel):
    success: bool = True
    message: str
    affected: int = 1
