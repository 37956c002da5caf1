"""
포인트 원장 데이터 모델

사용자 포인트의 모든 변동 내역을 저장하는 원장(Ledger) 테이블을 정의합니다.
잔액(users.points)의 증감은 반드시 이 테이블의 항목 추가와 같은 트랜잭션에서 일어나며,
approved 상태 항목의 합계는 항상 사용자의 현재 잔액과 같아야 합니다.
"""

from enum import Enum

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    func,
)

from carbontrack.models.base import Base, BigIntPK


class PointsTransactionType(str, Enum):
    """원장 항목 유형"""

    EARN = "earn"  # 탄소 감축 활동 승인으로 적립
    SPEND = "spend"  # 상품 교환으로 사용
    ADJUST = "adjust"  # 관리자 조정 및 환불


class PointsTransactionStatus(str, Enum):
    """원장 항목 상태 - approved 항목만 잔액에 반영됨"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DELETED = "deleted"


class PointsTransaction(Base):
    """
    포인트 원장 테이블

    원칙:
    1. 불변성(Immutable): status 전이를 제외하면 생성 후 수정하지 않음
    2. 완전성(Complete): 모든 포인트 변동사항이 기록됨
    3. 추적성(Traceable): related_table/related_id 로 원인 레코드를 가리킴
    """

    __tablename__ = "points_transactions"
    __table_args__ = (
        Index("idx_points_tx_user_status", "user_id", "status"),
        Index("idx_points_tx_related", "related_table", "related_id"),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)

    user_id = Column(BigIntPK, ForeignKey("users.id"), nullable=False)

    # 부호가 있는 변동량 - 사용은 음수, 적립은 양수
    points = Column(Numeric(10, 2), nullable=False)

    # 변동량의 절대값
    raw = Column(Numeric(10, 2), nullable=False)

    type = Column(String(20), nullable=False)

    # 발생 출처 태그 (예: "product_exchange", "admin_adjust", "exchange_refund")
    act = Column(String(50), nullable=False)

    status = Column(
        String(20), nullable=False, default=PointsTransactionStatus.PENDING.value
    )

    # 적립 항목의 원천 탄소 활동 ID
    activity_id = Column(String(36), nullable=True)

    description = Column(Text, nullable=True)

    related_table = Column(String(50), nullable=True)
    related_id = Column(String(36), nullable=True)

    approved_by = Column(BigIntPK, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
