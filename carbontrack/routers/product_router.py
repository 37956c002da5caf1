from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from carbontrack.deps import get_product_service
from carbontrack.schemas.product import (
    CategoryListResponse,
    ProductListResponse,
    ProductResponse,
)
from carbontrack.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=ProductListResponse)
def list_products(
    page: int = Query(1, ge=1, description="페이지 번호"),
    limit: Optional[int] = Query(None, description="페이지 크기 (10~50 으로 보정)"),
    category: Optional[str] = Query(None, description="카테고리"),
    search: Optional[str] = Query(None, description="상품명/설명 검색어"),
    min_points: Optional[int] = Query(None, ge=0, description="최소 포인트"),
    max_points: Optional[int] = Query(None, ge=0, description="최대 포인트"),
    product_service: ProductService = Depends(get_product_service),
) -> ProductListResponse:
    """판매 중인 상품 목록 조회"""
    return product_service.list_products(
        page=page,
        limit=limit,
        category=category,
        search=search,
        min_points=min_points,
        max_points=max_points,
    )


@router.get("/categories", response_model=CategoryListResponse)
def get_categories(
    product_service: ProductService = Depends(get_product_service),
) -> CategoryListResponse:
    """상품 카테고리 목록"""
    return product_service.get_categories()


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: int = Path(..., description="상품 ID"),
    product_service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    return product_service.get_product(product_id)
