from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from carbontrack.schemas.pagination import PaginationMeta


class PointsLedgerEntry(BaseModel):
    """포인트 원장 항목"""

    id: int
    user_id: int
    points: float = Field(..., description="부호 있는 변동량")
    raw: float = Field(..., description="변동량 절대값")
    type: str
    act: str
    status: str
    activity_id: Optional[str] = None
    description: Optional[str] = None
    related_table: Optional[str] = None
    related_id: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PointsBalanceResponse(BaseModel):
    success: bool = True
    user_id: int
    balance: float


class PointsLedgerResponse(BaseModel):
    success: bool = True
    balance: float
    items: List[PointsLedgerEntry]
    pagination: PaginationMeta


class AdminPointsAdjustmentRequest(BaseModel):
    """관리자 포인트 조정 요청"""

    delta: float = Field(..., description="조정량 (음수면 차감)")
    reason: str = Field(..., min_length=1, max_length=500, description="조정 사유")


class PointsAdjustmentResponse(BaseModel):
    success: bool = True
    user_id: int
    delta: float
    balance: float
    transaction_id: int
    message: str = "Points adjusted successfully"


class PointsIntegrityCheckResponse(BaseModel):
    """원장 합계와 잔액 비교 결과"""

    user_id: int
    balance: float
    ledger_sum: float
    difference: float
    is_consistent: bool
