from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from carbontrack.models.points import (
    PointsTransaction,
    PointsTransactionStatus,
    PointsTransactionType,
)
from carbontrack.repositories.base import BaseRepository
from carbontrack.schemas.points import PointsLedgerEntry


class PointsRepository(BaseRepository[PointsTransaction, PointsLedgerEntry]):
    """포인트 원장 리포지토리

    원장 항목 추가는 잔액 변경과 같은 트랜잭션 안에서만 호출되어야 하므로
    이 리포지토리는 commit 하지 않고 flush 만 수행한다.
    """

    def __init__(self, db: Session):
        super().__init__(PointsTransaction, PointsLedgerEntry, db)

    def append_entry(
        self,
        user_id: int,
        points: Decimal,
        type: PointsTransactionType,
        act: str,
        status: PointsTransactionStatus = PointsTransactionStatus.APPROVED,
        description: Optional[str] = None,
        related_table: Optional[str] = None,
        related_id: Optional[str] = None,
        approved_by: Optional[int] = None,
        activity_id: Optional[str] = None,
    ) -> PointsTransaction:
        """원장 항목 추가

        Args:
            points: 부호 있는 변동량 (사용은 음수)
            type: earn/spend/adjust
            act: 발생 출처 태그
        """
        points = Decimal(points)
        approved_at = (
            datetime.now(timezone.utc)
            if status == PointsTransactionStatus.APPROVED
            else None
        )
        return self.add(
            commit=False,
            user_id=user_id,
            points=points,
            raw=abs(points),
            type=type.value,
            act=act,
            status=status.value,
            description=description,
            related_table=related_table,
            related_id=related_id,
            approved_by=approved_by,
            approved_at=approved_at,
            activity_id=activity_id,
        )

    def get_user_ledger(
        self, user_id: int, page: int, limit: int
    ) -> Tuple[List[PointsLedgerEntry], int]:
        """사용자 원장 조회 (최신순)"""
        stmt = (
            select(PointsTransaction)
            .where(PointsTransaction.user_id == user_id)
            .order_by(PointsTransaction.created_at.desc(), PointsTransaction.id.desc())
        )
        entries, total = self._paginate(stmt, page, limit)
        return self._to_schemas(entries), total

    def sum_approved(self, user_id: int) -> Decimal:
        """approved 항목 합계 - 잔액과 일치해야 함"""
        stmt = select(func.coalesce(func.sum(PointsTransaction.points), 0)).where(
            PointsTransaction.user_id == user_id,
            PointsTransaction.status == PointsTransactionStatus.APPROVED.value,
        )
        return Decimal(str(self.db.execute(stmt).scalar_one()))
