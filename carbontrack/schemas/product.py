from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, RootModel, field_validator

from carbontrack.models.product import ProductStatus
from carbontrack.schemas.pagination import PaginationMeta


class ProductImages(RootModel[List[str]]):
    """products.images 컬럼에 저장되는 이미지 경로 목록"""

    root: List[str] = Field(default_factory=list, max_length=10)

    @field_validator("root")
    @classmethod
    def strip_blank(cls, v: List[str]) -> List[str]:
        return [path.strip() for path in v if path and path.strip()]


class ProductResponse(BaseModel):
    """상품 응답"""

    id: int
    name: str
    category: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    images: List[str] = []
    points_required: int
    stock: int
    status: str
    sort_order: int = 0
    is_available: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    success: bool = True
    items: List[ProductResponse]
    pagination: PaginationMeta


class CategoryListResponse(BaseModel):
    success: bool = True
    categories: List[str]


class ProductCreateRequest(BaseModel):
    """관리자 상품 등록 요청"""

    name: str = Field(..., min_length=1, max_length=255, description="상품명")
    category: Optional[str] = Field(None, max_length=100, description="카테고리")
    description: Optional[str] = Field(None, description="상품 설명")
    image_url: Optional[str] = Field(None, max_length=500, description="대표 이미지")
    images: ProductImages = Field(default_factory=lambda: ProductImages([]))
    points_required: int = Field(..., ge=0, description="교환 필요 포인트")
    stock: int = Field(0, ge=0, description="재고 수량")
    status: ProductStatus = Field(ProductStatus.ACTIVE, description="판매 상태")
    sort_order: int = Field(0, description="정렬 순서")


class ProductUpdateRequest(BaseModel):
    """관리자 상품 수정 요청 - 전달된 필드만 변경"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)
    images: Optional[ProductImages] = None
    points_required: Optional[int] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    status: Optional[ProductStatus] = None
    sort_order: Optional[int] = None

    @field_validator("name", "points_required", "stock", "status", "sort_order")
    @classmethod
    def reject_null(cls, v):
        # 생략은 허용, 명시적 null은 NOT NULL 컬럼이므로 거부
        if v is None:
            raise ValueError("must not be null")
        return v


class ProductDeleteResponse(BaseModel):
    success: bool = True
    message: str = "Product deleted successfully"
