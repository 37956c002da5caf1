"""
상품 교환 API

- POST /exchange: 포인트로 상품 교환
- GET  /exchange/transactions: 내 교환 내역
- GET  /exchange/transactions/{exchange_id}: 내 교환 상세
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from carbontrack.core.auth_middleware import verify_bearer_token
from carbontrack.deps import get_exchange_service, get_request_context
from carbontrack.schemas.audit_log import RequestContext
from carbontrack.schemas.exchange import (
    ExchangeDetailResponse,
    ExchangeListResponse,
    ExchangeRequest,
    ExchangeResponse,
)
from carbontrack.schemas.pagination import PaginationLimits
from carbontrack.schemas.user import User as UserSchema
from carbontrack.services.exchange_service import ExchangeService


router = APIRouter(prefix="/exchange", tags=["exchange"])


@router.post("", response_model=ExchangeResponse)
def exchange_product(
    request: ExchangeRequest,
    current_user: UserSchema = Depends(verify_bearer_token),
    exchange_service: ExchangeService = Depends(get_exchange_service),
    context: RequestContext = Depends(get_request_context),
) -> ExchangeResponse:
    """상품 교환

    재고와 포인트를 확인한 뒤 차감하고 교환 기록을 생성합니다.
    배송 정보는 shipping_address/phone/remark 등의 별칭 필드도 허용합니다.
    """
    return exchange_service.exchange_product(current_user.id, request, context=context)


@router.get("/transactions", response_model=ExchangeListResponse)
def get_my_exchanges(
    page: int = Query(1, ge=1, description="페이지 번호"),
    limit: int = Query(
        PaginationLimits.EXCHANGES["default"],
        ge=PaginationLimits.EXCHANGES["min"],
        le=PaginationLimits.EXCHANGES["max"],
        description="페이지 크기",
    ),
    status: Optional[str] = Query(None, description="상태 필터"),
    current_user: UserSchema = Depends(verify_bearer_token),
    exchange_service: ExchangeService = Depends(get_exchange_service),
) -> ExchangeListResponse:
    """내 교환 내역 조회"""
    return exchange_service.list_user_exchanges(
        current_user.id, page=page, limit=limit, status=status
    )


@router.get("/transactions/{exchange_id}", response_model=ExchangeDetailResponse)
def get_my_exchange(
    exchange_id: str = Path(..., description="교환 ID"),
    current_user: UserSchema = Depends(verify_bearer_token),
    exchange_service: ExchangeService = Depends(get_exchange_service),
) -> ExchangeDetailResponse:
    """내 교환 상세 조회 - 다른 사용자의 기록은 404"""
    record = exchange_service.get_user_exchange(current_user.id, exchange_id)
    return ExchangeDetailResponse(data=record)
