"""
상품 카탈로그 데이터 모델

포인트로 교환 가능한 상품을 정의한다. stock 은 교환 트랜잭션 안에서만 차감된다.
"""

from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from carbontrack.models.base import BaseModel, BigIntPK, SoftDeleteMixin


class ProductStatus(str, Enum):
    """상품 판매 상태"""

    ACTIVE = "active"
    INACTIVE = "inactive"


class Product(BaseModel, SoftDeleteMixin):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint(
            "points_required >= 0", name="ck_products_points_required_non_negative"
        ),
        Index("idx_products_status_category", "status", "category"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # 추가 이미지 경로 목록 - ProductImages 스키마로 검증된 값만 저장
    images: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    # 상품 가격 (포인트 단위)
    points_required: Mapped[int] = mapped_column(Integer, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ProductStatus.ACTIVE.value, nullable=False
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    @property
    def is_available(self) -> bool:
        return (
            self.status == ProductStatus.ACTIVE.value
            and self.deleted_at is None
            and self.stock > 0
        )
