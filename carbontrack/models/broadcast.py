from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from carbontrack.models.base import Base, BigIntPK


class BroadcastScope(str, Enum):
    ALL = "all"  # 활성 사용자 전체
    CUSTOM = "custom"  # 지정된 target_users


class MessageBroadcast(Base):
    """
    관리자 브로드캐스트 이력

    발송 내용 스냅샷과 수신자/실패 목록, 이메일 발송 리포트를 함께 보관한다.
    """

    __tablename__ = "message_broadcasts"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    scope: Mapped[str] = mapped_column(String(20), nullable=False)

    target_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sent_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    invalid_user_ids: Mapped[List[int]] = mapped_column(
        JSON, default=list, nullable=False
    )
    failed_user_ids: Mapped[List[int]] = mapped_column(
        JSON, default=list, nullable=False
    )
    message_ids: Mapped[List[int]] = mapped_column(JSON, default=list, nullable=False)

    # sha256(title + content)
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    # EmailDeliveryReport.model_dump() 결과, 이메일 미발송이면 NULL
    email_delivery: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON, nullable=True
    )

    created_by: Mapped[Optional[int]] = mapped_column(
        BigIntPK, ForeignKey("users.id"), nullable=True
    )
    request_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at = mapped_column(DateTime(timezone=True), server_default=func.now())
