from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from carbontrack.models.product import Product as ProductModel, ProductStatus
from carbontrack.repositories.base import BaseRepository
from carbontrack.schemas.product import ProductResponse


class ProductRepository(BaseRepository[ProductModel, ProductResponse]):
    """상품 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(ProductModel, ProductResponse, db)

    def _live(self):
        return select(ProductModel).where(ProductModel.deleted_at.is_(None))

    def get_live(self, product_id: int) -> Optional[ProductModel]:
        return self.db.execute(
            self._live().where(ProductModel.id == product_id)
        ).scalar_one_or_none()

    def lock_query(self, product_id: int):
        """교환 트랜잭션에서 사용하는 잠금 조회문"""
        return self._live().where(ProductModel.id == product_id).with_for_update()

    def get_for_update(self, product_id: int) -> Optional[ProductModel]:
        """재고 차감 전 상품 행을 배타 잠금과 함께 조회

        동시에 같은 상품을 교환하는 트랜잭션은 먼저 잠금을 얻은 쪽이 커밋/롤백할 때까지 대기한다.
        """
        return self.db.execute(self.lock_query(product_id)).scalar_one_or_none()

    def decrement_stock(self, product: ProductModel, quantity: int) -> ProductModel:
        product.stock = product.stock - quantity
        self.db.flush()
        return product

    def increment_stock(self, product: ProductModel, quantity: int) -> ProductModel:
        product.stock = product.stock + quantity
        self.db.flush()
        return product

    def list_products(
        self,
        page: int,
        limit: int,
        category: Optional[str] = None,
        search: Optional[str] = None,
        min_points: Optional[int] = None,
        max_points: Optional[int] = None,
        status: Optional[str] = None,
        include_inactive: bool = False,
    ) -> Tuple[List[ProductResponse], int]:
        stmt = self._live()

        if status:
            stmt = stmt.where(ProductModel.status == status)
        elif not include_inactive:
            stmt = stmt.where(ProductModel.status == ProductStatus.ACTIVE.value)

        if category:
            stmt = stmt.where(ProductModel.category == category)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    ProductModel.name.ilike(pattern),
                    ProductModel.description.ilike(pattern),
                )
            )
        if min_points is not None:
            stmt = stmt.where(ProductModel.points_required >= min_points)
        if max_points is not None:
            stmt = stmt.where(ProductModel.points_required <= max_points)

        stmt = stmt.order_by(ProductModel.sort_order, ProductModel.id)
        products, total = self._paginate(stmt, page, limit)
        return self._to_schemas(products), total

    def get_categories(self) -> List[str]:
        stmt = (
            select(ProductModel.category)
            .where(
                ProductModel.deleted_at.is_(None),
                ProductModel.status == ProductStatus.ACTIVE.value,
                ProductModel.category.is_not(None),
                ProductModel.category != "",
            )
            .distinct()
            .order_by(ProductModel.category)
        )
        return list(self.db.execute(stmt).scalars())

    def soft_delete(self, product: ProductModel, commit: bool = True) -> ProductModel:
        product.deleted_at = datetime.now(timezone.utc)
        self.db.flush()
        if commit:
            self.db.commit()
        return product
