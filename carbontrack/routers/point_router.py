"""
포인트 API

- GET /points/balance: 내 포인트 잔액
- GET /points/ledger: 내 포인트 원장 (최신순)
"""

from fastapi import APIRouter, Depends, Query

from carbontrack.core.auth_middleware import verify_bearer_token
from carbontrack.deps import get_point_service
from carbontrack.schemas.pagination import PaginationLimits
from carbontrack.schemas.points import PointsBalanceResponse, PointsLedgerResponse
from carbontrack.schemas.user import User as UserSchema
from carbontrack.services.point_service import PointService

router = APIRouter(prefix="/points", tags=["points"])


@router.get("/balance", response_model=PointsBalanceResponse)
def get_my_balance(
    current_user: UserSchema = Depends(verify_bearer_token),
    point_service: PointService = Depends(get_point_service),
) -> PointsBalanceResponse:
    """내 포인트 잔액 조회"""
    return point_service.get_user_balance(current_user.id)


@router.get("/ledger", response_model=PointsLedgerResponse)
def get_my_ledger(
    page: int = Query(1, ge=1, description="페이지 번호"),
    limit: int = Query(
        PaginationLimits.POINTS_LEDGER["default"],
        ge=PaginationLimits.POINTS_LEDGER["min"],
        le=PaginationLimits.POINTS_LEDGER["max"],
        description="페이지 크기",
    ),
    current_user: UserSchema = Depends(verify_bearer_token),
    point_service: PointService = Depends(get_point_service),
) -> PointsLedgerResponse:
    """내 포인트 원장 조회"""
    return point_service.get_user_ledger(current_user.id, page=page, limit=limit)
