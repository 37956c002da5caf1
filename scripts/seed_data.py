"""
기본 데이터 시드 스크립트
관리자/일반 사용자와 교환 상품 카탈로그를 초기 데이터로 설정
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from decimal import Decimal

from sqlalchemy import select

from carbontrack.core.security import create_user_token
from carbontrack.database.session import get_db_context
from carbontrack.models import (
    PointsTransaction,
    PointsTransactionStatus,
    PointsTransactionType,
    Product,
    User,
)

DEFAULT_USERS = [
    # (username, email, is_admin, initial points)
    ("admin", "admin@carbontrack.example.com", True, Decimal("0")),
    ("demo", "demo@carbontrack.example.com", False, Decimal("1000")),
]

DEFAULT_PRODUCTS = [
    # (name, category, points_required, stock, sort_order)
    ("Reusable Water Bottle", "lifestyle", 300, 50, 1),
    ("Bamboo Cutlery Set", "lifestyle", 150, 100, 2),
    ("Organic Cotton Tote Bag", "lifestyle", 100, 200, 3),
    ("Tree Planting Certificate", "donation", 500, 1000, 4),
    ("Solar Power Bank", "electronics", 1200, 20, 5),
]


def seed_users(db):
    """기본 사용자 시드 - 초기 포인트는 adjust 원장 항목과 함께 적립"""
    created = 0
    for username, email, is_admin, points in DEFAULT_USERS:
        exists = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if exists:
            continue
        user = User(username=username, email=email, is_admin=is_admin, points=points)
        db.add(user)
        db.flush()
        if points:
            db.add(
                PointsTransaction(
                    user_id=user.id,
                    points=points,
                    raw=points,
                    type=PointsTransactionType.ADJUST.value,
                    act="seed",
                    status=PointsTransactionStatus.APPROVED.value,
                    description="Initial seed balance",
                )
            )
        created += 1
        print(f"👤 {username} ({email}) token: {create_user_token(user.id, email)}")
    print(f"✅ 사용자 시드 완료: {created}명 추가")


def seed_products(db):
    created = 0
    for name, category, points_required, stock, sort_order in DEFAULT_PRODUCTS:
        exists = db.execute(select(Product).where(Product.name == name)).scalar_one_or_none()
        if exists:
            continue
        db.add(
            Product(
                name=name,
                category=category,
                points_required=points_required,
                stock=stock,
                sort_order=sort_order,
                images=[],
            )
        )
        created += 1
    print(f"✅ 상품 시드 완료: {created}개 추가")


def main():
    with get_db_context() as db:
        seed_users(db)
        seed_products(db)


if __name__ == "__main__":
    main()
