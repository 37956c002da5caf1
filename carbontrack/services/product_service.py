import logging
from typing import Optional

from sqlalchemy.orm import Session

from carbontrack.config import Settings
from carbontrack.core.exceptions import NotFoundError, ValidationError
from carbontrack.models.audit_log import ActorType
from carbontrack.models.product import Product
from carbontrack.repositories.product_repository import ProductRepository
from carbontrack.schemas.audit_log import RequestContext
from carbontrack.schemas.pagination import PaginationMeta, clamp_limit
from carbontrack.schemas.product import (
    CategoryListResponse,
    ProductCreateRequest,
    ProductDeleteResponse,
    ProductListResponse,
    ProductResponse,
    ProductUpdateRequest,
)
from carbontrack.services.audit_log_service import AuditLogService

logger = logging.getLogger(__name__)


class ProductService:
    """상품 카탈로그 조회 및 관리자 상품 관리"""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        audit_service: Optional[AuditLogService] = None,
    ):
        self.db = db
        self.settings = settings
        self.repo = ProductRepository(db)
        self.audit_service = audit_service or AuditLogService(db)

    def _page_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.settings.PRODUCT_PAGE_SIZE_DEFAULT
        return clamp_limit(
            limit,
            {
                "min": self.settings.PRODUCT_PAGE_SIZE_MIN,
                "max": self.settings.PRODUCT_PAGE_SIZE_MAX,
            },
        )

    def list_products(
        self,
        page: int = 1,
        limit: Optional[int] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        min_points: Optional[int] = None,
        max_points: Optional[int] = None,
        status: Optional[str] = None,
        include_inactive: bool = False,
    ) -> ProductListResponse:
        """상품 목록 조회

        일반 사용자는 판매 중인 상품만, 관리자는 include_inactive/status 로 전체 조회.
        """
        if min_points is not None and max_points is not None and min_points > max_points:
            raise ValidationError(
                "min_points must not exceed max_points", status_code=400
            )
        page = max(1, page)
        limit = self._page_limit(limit)
        items, total = self.repo.list_products(
            page=page,
            limit=limit,
            category=category,
            search=search,
            min_points=min_points,
            max_points=max_points,
            status=status,
            include_inactive=include_inactive,
        )
        return ProductListResponse(
            items=items, pagination=PaginationMeta.build(page, limit, total)
        )

    def get_product(self, product_id: int) -> ProductResponse:
        product = self.repo.get_live(product_id)
        if not product:
            raise NotFoundError("Product not found")
        return ProductResponse.model_validate(product)

    def get_categories(self) -> CategoryListResponse:
        return CategoryListResponse(categories=self.repo.get_categories())

    def create_product(
        self,
        request: ProductCreateRequest,
        admin_id: int,
        context: Optional[RequestContext] = None,
    ) -> ProductResponse:
        values = request.model_dump(exclude={"images"}, mode="json")
        values["images"] = request.images.root
        product = self.repo.add(commit=True, **values)
        logger.info(f"Admin {admin_id} created product {product.id}")
        self.audit_service.log(
            "product_created",
            user_id=admin_id,
            actor_type=ActorType.ADMIN,
            affected_table=Product.__tablename__,
            affected_id=product.id,
            new=values,
            context=context,
        )
        return ProductResponse.model_validate(product)

    def update_product(
        self,
        product_id: int,
        request: ProductUpdateRequest,
        admin_id: int,
        context: Optional[RequestContext] = None,
    ) -> ProductResponse:
        product = self.repo.get_live(product_id)
        if not product:
            raise NotFoundError("Product not found")

        changes = request.model_dump(exclude_unset=True, exclude={"images"}, mode="json")
        if request.images is not None:
            changes["images"] = request.images.root
        old = {key: getattr(product, key) for key in changes}

        for key, value in changes.items():
            setattr(product, key, value)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Admin {admin_id} updated product {product_id}: {list(changes)}")
        self.audit_service.log(
            "product_updated",
            user_id=admin_id,
            actor_type=ActorType.ADMIN,
            affected_table=Product.__tablename__,
            affected_id=product_id,
            old=old,
            new=changes,
            context=context,
        )
        return ProductResponse.model_validate(product)

    def delete_product(
        self,
        product_id: int,
        admin_id: int,
        context: Optional[RequestContext] = None,
    ) -> ProductDeleteResponse:
        """논리 삭제 - 기존 교환 기록은 스냅샷을 유지"""
        product = self.repo.get_live(product_id)
        if not product:
            raise NotFoundError("Product not found")
        self.repo.soft_delete(product)
        logger.info(f"Admin {admin_id} deleted product {product_id}")
        self.audit_service.log(
            "product_deleted",
            user_id=admin_id,
            actor_type=ActorType.ADMIN,
            affected_table=Product.__tablename__,
            affected_id=product_id,
            old={"name": product.name},
            context=context,
        )
        return ProductDeleteResponse()
