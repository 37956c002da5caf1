from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from carbontrack.models.base import BaseModel, BigIntPK, SoftDeleteMixin


class MessagePriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def values(cls):
        return [member.value for member in cls]


class MessageType(str, Enum):
    SYSTEM = "system"
    NOTIFICATION = "notification"
    EXCHANGE = "exchange"
    BROADCAST = "broadcast"


class Message(BaseModel, SoftDeleteMixin):
    """사용자 수신함 메시지"""

    __tablename__ = "messages"
    __table_args__ = (
        Index("idx_messages_receiver_read", "receiver_id", "is_read"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    # 시스템 발송이면 NULL
    sender_id: Mapped[Optional[int]] = mapped_column(
        BigIntPK, ForeignKey("users.id"), nullable=True
    )
    receiver_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("users.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(
        String(20), default=MessageType.SYSTEM.value, nullable=False
    )
    priority: Mapped[str] = mapped_column(
        String(20), default=MessagePriority.NORMAL.value, nullable=False
    )
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
