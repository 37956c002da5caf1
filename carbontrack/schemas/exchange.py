from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, model_validator

from carbontrack.schemas.pagination import PaginationMeta

# 프런트엔드/레거시 클라이언트가 보내는 필드명 별칭
FIELD_SYNONYMS = {
    "delivery_address": ("shipping_address", "address", "ship_address"),
    "contact_phone": ("phone", "mobile", "tel", "contact"),
    "notes": ("remark", "remarks", "comment", "comments", "note"),
}


def _first_non_empty(data: dict, keys) -> Optional[Any]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str):
            value = value.strip()
        if value not in (None, ""):
            return value
    return None


class ExchangeRequest(BaseModel):
    """상품 교환 요청"""

    product_id: int = Field(..., description="교환할 상품 ID")
    quantity: int = Field(1, description="교환 수량 (기본 1)")
    delivery_address: Optional[str] = Field(None, description="배송지")
    contact_phone: Optional[str] = Field(None, max_length=50, description="연락처")
    notes: Optional[str] = Field(None, description="요청 사항")

    @model_validator(mode="before")
    @classmethod
    def apply_field_synonyms(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        normalized = dict(data)
        for field, synonyms in FIELD_SYNONYMS.items():
            normalized[field] = _first_non_empty(normalized, (field,) + synonyms)
        if normalized.get("quantity") is None:
            normalized["quantity"] = 1
        return normalized


class ExchangeResponse(BaseModel):
    success: bool = True
    exchange_id: str
    points_used: float
    remaining_points: float
    message: str = "Product exchanged successfully"


class ExchangeRecordSchema(BaseModel):
    """교환 기록"""

    id: str
    user_id: int
    product_id: int
    quantity: int
    points_used: int
    product_name: str
    product_price: int
    delivery_address: Optional[str] = None
    contact_phone: Optional[str] = None
    notes: Optional[str] = None
    status: str
    tracking_number: Optional[str] = None
    points_transaction_id: int
    refund_transaction_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExchangeListResponse(BaseModel):
    success: bool = True
    items: List[ExchangeRecordSchema]
    pagination: PaginationMeta


class ExchangeDetailResponse(BaseModel):
    success: bool = True
    data: ExchangeRecordSchema


class ExchangeStatusUpdateRequest(BaseModel):
    """관리자 교환 상태 변경 요청

    status 값 검증은 서비스에서 수행한다 (잘못된 값은 400).
    """

    status: str = Field(..., description="pending|processing|shipped|completed|cancelled")
    tracking_number: Optional[str] = Field(None, max_length=100, description="운송장 번호")
    notes: Optional[str] = Field(None, description="관리자 메모")


class ExchangeStatusUpdateResponse(BaseModel):
    success: bool = True
    message: str = "Exchange status updated successfully"
    refunded: bool = False
    data: ExchangeRecordSchema
