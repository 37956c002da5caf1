"""
관리자 API

- /admin/products: 상품 관리 (등록/수정/논리 삭제, 비활성 포함 조회)
- /admin/exchanges: 교환 기록 조회 및 상태 변경
- /admin/users/{user_id}/points: 포인트 조정 및 원장 정합성 확인
- /admin/audit-logs: 감사 로그 조회
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from carbontrack.core.auth_middleware import require_admin
from carbontrack.deps import (
    get_audit_log_service,
    get_exchange_service,
    get_point_service,
    get_product_service,
    get_request_context,
)
from carbontrack.schemas.audit_log import AuditLogListResponse, RequestContext
from carbontrack.schemas.exchange import (
    ExchangeDetailResponse,
    ExchangeListResponse,
    ExchangeStatusUpdateRequest,
    ExchangeStatusUpdateResponse,
)
from carbontrack.schemas.pagination import PaginationLimits
from carbontrack.schemas.points import (
    AdminPointsAdjustmentRequest,
    PointsAdjustmentResponse,
    PointsIntegrityCheckResponse,
)
from carbontrack.schemas.product import (
    ProductCreateRequest,
    ProductDeleteResponse,
    ProductListResponse,
    ProductResponse,
    ProductUpdateRequest,
)
from carbontrack.schemas.user import User as UserSchema
from carbontrack.services.audit_log_service import AuditLogService
from carbontrack.services.exchange_service import ExchangeService
from carbontrack.services.point_service import PointService
from carbontrack.services.product_service import ProductService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# ----- 상품 -----

@router.get("/products", response_model=ProductListResponse)
def admin_list_products(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="active|inactive"),
    current_user: UserSchema = Depends(require_admin),
    product_service: ProductService = Depends(get_product_service),
) -> ProductListResponse:
    """비활성 상품을 포함한 상품 목록"""
    return product_service.list_products(
        page=page,
        limit=limit,
        category=category,
        search=search,
        status=status,
        include_inactive=True,
    )


@router.post("/products", response_model=ProductResponse)
def create_product(
    request: ProductCreateRequest,
    current_user: UserSchema = Depends(require_admin),
    product_service: ProductService = Depends(get_product_service),
    context: RequestContext = Depends(get_request_context),
) -> ProductResponse:
    return product_service.create_product(request, current_user.id, context=context)


@router.put("/products/{product_id}", response_model=ProductResponse)
def update_product(
    request: ProductUpdateRequest,
    product_id: int = Path(...),
    current_user: UserSchema = Depends(require_admin),
    product_service: ProductService = Depends(get_product_service),
    context: RequestContext = Depends(get_request_context),
) -> ProductResponse:
    return product_service.update_product(
        product_id, request, current_user.id, context=context
    )


@router.delete("/products/{product_id}", response_model=ProductDeleteResponse)
def delete_product(
    product_id: int = Path(...),
    current_user: UserSchema = Depends(require_admin),
    product_service: ProductService = Depends(get_product_service),
    context: RequestContext = Depends(get_request_context),
) -> ProductDeleteResponse:
    return product_service.delete_product(product_id, current_user.id, context=context)


# ----- 교환 -----

@router.get("/exchanges", response_model=ExchangeListResponse)
def admin_list_exchanges(
    page: int = Query(1, ge=1),
    limit: int = Query(
        PaginationLimits.EXCHANGES["default"],
        ge=PaginationLimits.EXCHANGES["min"],
        le=PaginationLimits.EXCHANGES["max"],
    ),
    status: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None, ge=1),
    current_user: UserSchema = Depends(require_admin),
    exchange_service: ExchangeService = Depends(get_exchange_service),
) -> ExchangeListResponse:
    return exchange_service.list_exchanges(
        page=page, limit=limit, status=status, user_id=user_id
    )


@router.get("/exchanges/{exchange_id}", response_model=ExchangeDetailResponse)
def admin_get_exchange(
    exchange_id: str = Path(...),
    current_user: UserSchema = Depends(require_admin),
    exchange_service: ExchangeService = Depends(get_exchange_service),
) -> ExchangeDetailResponse:
    return ExchangeDetailResponse(data=exchange_service.get_exchange(exchange_id))


@router.put("/exchanges/{exchange_id}/status", response_model=ExchangeStatusUpdateResponse)
def update_exchange_status(
    request: ExchangeStatusUpdateRequest,
    exchange_id: str = Path(..., description="교환 ID"),
    current_user: UserSchema = Depends(require_admin),
    exchange_service: ExchangeService = Depends(get_exchange_service),
    context: RequestContext = Depends(get_request_context),
) -> ExchangeStatusUpdateResponse:
    """교환 상태 변경

    잘못된 상태값은 400, 되돌릴 수 없는 전이도 400 으로 응답합니다.
    """
    return exchange_service.update_exchange_status(
        exchange_id, request, admin_id=current_user.id, context=context
    )


# ----- 포인트 -----

@router.post("/users/{user_id}/points/adjust", response_model=PointsAdjustmentResponse)
def adjust_user_points(
    request: AdminPointsAdjustmentRequest,
    user_id: int = Path(..., ge=1),
    current_user: UserSchema = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
    context: RequestContext = Depends(get_request_context),
) -> PointsAdjustmentResponse:
    logger.info(f"Admin {current_user.id} adjusting points for user {user_id}: {request.delta}")
    return point_service.admin_adjust_points(
        user_id, request, admin_id=current_user.id, context=context
    )


@router.get(
    "/users/{user_id}/points/integrity", response_model=PointsIntegrityCheckResponse
)
def check_user_points_integrity(
    user_id: int = Path(..., ge=1),
    current_user: UserSchema = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
) -> PointsIntegrityCheckResponse:
    """approved 원장 합계와 잔액이 일치하는지 확인"""
    return point_service.verify_integrity_for_user(user_id)


# ----- 감사 로그 -----

@router.get("/audit-logs", response_model=AuditLogListResponse)
def list_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(
        PaginationLimits.AUDIT_LOGS["default"],
        ge=PaginationLimits.AUDIT_LOGS["min"],
        le=PaginationLimits.AUDIT_LOGS["max"],
    ),
    action: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    affected_table: Optional[str] = Query(None),
    current_user: UserSchema = Depends(require_admin),
    audit_service: AuditLogService = Depends(get_audit_log_service),
) -> AuditLogListResponse:
    return audit_service.list_logs(
        page=page,
        limit=limit,
        action=action,
        user_id=user_id,
        affected_table=affected_table,
    )
