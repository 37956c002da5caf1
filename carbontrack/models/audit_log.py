from enum import Enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, func

from carbontrack.models.base import Base, BigIntPK


class ActorType(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SYSTEM = "system"


class AuditLog(Base):
    """감사 로그 - 포인트/교환/상품/메시지 관련 주요 행위 기록"""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("idx_audit_logs_action", "action"),
        Index("idx_audit_logs_affected", "affected_table", "affected_id"),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    user_id = Column(BigIntPK, ForeignKey("users.id"), nullable=True)
    actor_type = Column(String(20), nullable=False, default=ActorType.USER.value)
    action = Column(String(100), nullable=False)
    affected_table = Column(String(50), nullable=True)
    affected_id = Column(String(36), nullable=True)

    # AuditData 스키마로 검증된 구조화 데이터
    data = Column(JSON, nullable=True)

    status = Column(String(20), nullable=False, default="success")
    request_id = Column(String(64), nullable=True)
    ip_address = Column(String(45), nullable=True)
    endpoint = Column(String(255), nullable=True)
    request_method = Column(String(10), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
