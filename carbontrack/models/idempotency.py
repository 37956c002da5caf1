from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, func

from carbontrack.models.base import Base, BigIntPK


class IdempotencyRecord(Base):
    """
    중복 요청 방지 레코드

    X-Request-ID 별로 처리 결과(상태 코드, 응답 본문)를 보관한다.
    response_status 가 NULL 이면 아직 처리 중인 요청이다.
    """

    __tablename__ = "idempotency_records"
    __table_args__ = (Index("idx_idempotency_records_created_at", "created_at"),)

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    idempotency_key = Column(String(36), nullable=False, unique=True)
    user_id = Column(BigIntPK, ForeignKey("users.id"), nullable=True)

    request_method = Column(String(10), nullable=False)
    request_uri = Column(String(255), nullable=False)
    request_body = Column(Text, nullable=True)

    response_status = Column(Integer, nullable=True)
    response_body = Column(Text, nullable=True)

    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
