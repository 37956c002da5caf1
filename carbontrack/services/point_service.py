import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from carbontrack.core.exceptions import (
    InsufficientPointsError,
    NotFoundError,
    ValidationError,
)
from carbontrack.models.audit_log import ActorType
from carbontrack.models.points import PointsTransactionStatus, PointsTransactionType
from carbontrack.repositories.points_repository import PointsRepository
from carbontrack.repositories.user_repository import UserRepository
from carbontrack.schemas.audit_log import RequestContext
from carbontrack.schemas.pagination import PaginationMeta
from carbontrack.schemas.points import (
    AdminPointsAdjustmentRequest,
    PointsAdjustmentResponse,
    PointsBalanceResponse,
    PointsIntegrityCheckResponse,
    PointsLedgerResponse,
)
from carbontrack.services.audit_log_service import AuditLogService

logger = logging.getLogger(__name__)

ADJUST_ACT = "admin_adjust"


class PointService:
    """포인트 관련 비즈니스 로직을 담당하는 서비스"""

    def __init__(self, db: Session, audit_service: Optional[AuditLogService] = None):
        self.db = db
        self.points_repo = PointsRepository(db)
        self.user_repo = UserRepository(db)
        self.audit_service = audit_service or AuditLogService(db)

    def _get_user(self, user_id: int):
        user = self.user_repo.get_live(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_user_balance(self, user_id: int) -> PointsBalanceResponse:
        """사용자 포인트 잔액 조회"""
        user = self._get_user(user_id)
        return PointsBalanceResponse(user_id=user.id, balance=float(user.points))

    def get_user_ledger(self, user_id: int, page: int, limit: int) -> PointsLedgerResponse:
        """사용자 포인트 원장 조회 (최신순)

        Args:
            user_id: 사용자 ID
            page: 페이지 번호 (1부터)
            limit: 페이지 크기
        """
        user = self._get_user(user_id)
        items, total = self.points_repo.get_user_ledger(user_id, page, limit)
        logger.info(f"Retrieved ledger for user {user_id}: {total} entries")
        return PointsLedgerResponse(
            balance=float(user.points),
            items=items,
            pagination=PaginationMeta.build(page, limit, total),
        )

    def admin_adjust_points(
        self,
        user_id: int,
        request: AdminPointsAdjustmentRequest,
        admin_id: int,
        context: Optional[RequestContext] = None,
    ) -> PointsAdjustmentResponse:
        """관리자 포인트 조정

        사용자 행을 잠근 뒤 잔액과 원장을 함께 갱신한다. 결과 잔액이 음수가 되면 거부.
        """
        delta = Decimal(str(request.delta)).quantize(Decimal("0.01"))
        if delta == 0:
            raise ValidationError("Adjustment amount must not be zero", status_code=400)

        try:
            user = self.user_repo.get_for_update(user_id)
            if not user:
                raise NotFoundError("User not found")

            old_balance = Decimal(user.points)
            if old_balance + delta < 0:
                raise InsufficientPointsError(
                    details={"balance": float(old_balance), "delta": float(delta)}
                )

            self.user_repo.apply_points_delta(user, delta)
            entry = self.points_repo.append_entry(
                user_id=user_id,
                points=delta,
                type=PointsTransactionType.ADJUST,
                act=ADJUST_ACT,
                status=PointsTransactionStatus.APPROVED,
                description=request.reason,
                approved_by=admin_id,
            )
            self.audit_service.log(
                "points_adjusted",
                user_id=admin_id,
                actor_type=ActorType.ADMIN,
                affected_table="users",
                affected_id=user_id,
                old={"points": float(old_balance)},
                new={"points": float(user.points)},
                extra={"reason": request.reason, "transaction_id": entry.id},
                context=context,
                in_transaction=True,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Admin {admin_id} adjusted user {user_id} points by {delta}")
        return PointsAdjustmentResponse(
            user_id=user_id,
            delta=float(delta),
            balance=float(user.points),
            transaction_id=entry.id,
        )

    def verify_integrity_for_user(self, user_id: int) -> PointsIntegrityCheckResponse:
        """approved 원장 합계와 저장된 잔액 비교"""
        user = self._get_user(user_id)
        balance = Decimal(user.points)
        ledger_sum = self.points_repo.sum_approved(user_id)
        difference = balance - ledger_sum
        if difference != 0:
            logger.warning(
                f"Points ledger mismatch for user {user_id}: balance={balance}, ledger={ledger_sum}"
            )
        return PointsIntegrityCheckResponse(
            user_id=user_id,
            balance=float(balance),
            ledger_sum=float(ledger_sum),
            difference=float(difference),
            is_consistent=difference == 0,
        )
