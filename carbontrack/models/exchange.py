import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from carbontrack.models.base import BaseModel, BigIntPK


class ExchangeStatus(str, Enum):
    """교환 주문 처리 상태"""

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def values(cls):
        return [member.value for member in cls]

    @classmethod
    def terminal(cls):
        return {cls.COMPLETED.value, cls.CANCELLED.value}

    @classmethod
    def progression(cls):
        """정상 진행 순서 (cancelled 제외)"""
        return [
            cls.PENDING.value,
            cls.PROCESSING.value,
            cls.SHIPPED.value,
            cls.COMPLETED.value,
        ]


def _new_exchange_id() -> str:
    return str(uuid.uuid4())


class ExchangeRecord(BaseModel):
    """
    포인트 상품 교환 기록

    product_name/product_price 는 교환 시점 스냅샷이라 이후 상품 수정과 무관하다.
    points_transaction_id 는 이 교환으로 생성된 spend 원장 항목을 가리킨다.
    """

    __tablename__ = "point_exchanges"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_point_exchanges_quantity_positive"),
        Index("idx_point_exchanges_user", "user_id", "created_at"),
        Index("idx_point_exchanges_status", "status"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=_new_exchange_id
    )
    user_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("users.id"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("products.id"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    points_used: Mapped[int] = mapped_column(Integer, nullable=False)

    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_price: Mapped[int] = mapped_column(Integer, nullable=False)

    delivery_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), default=ExchangeStatus.PENDING.value, nullable=False
    )
    tracking_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    points_transaction_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("points_transactions.id"), nullable=False
    )
    # 취소 환불이 적용된 경우의 adjust 원장 항목
    refund_transaction_id: Mapped[Optional[int]] = mapped_column(
        BigIntPK, ForeignKey("points_transactions.id"), nullable=True
    )

