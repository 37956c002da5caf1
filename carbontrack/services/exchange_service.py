"""
상품 교환 트랜잭션 서비스

포인트로 상품을 교환하는 흐름과 관리자 교환 상태 변경을 담당한다.

교환 트랜잭션은 상품 행 → 사용자 행 순서로 SELECT ... FOR UPDATE 잠금을 획득한 뒤
재고/잔액을 검증하고 네 가지 쓰기(재고, 잔액, 원장 항목, 교환 기록)를 한 번에 커밋한다.
잠금 경쟁에서 진 트랜잭션은 최신 값으로 다시 검증되며 재시도 없이 그대로 실패한다.
"""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from carbontrack.config import Settings
from carbontrack.core.exceptions import (
    InsufficientPointsError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from carbontrack.models.audit_log import ActorType
from carbontrack.models.exchange import ExchangeRecord, ExchangeStatus
from carbontrack.models.points import PointsTransactionStatus, PointsTransactionType
from carbontrack.models.product import ProductStatus
from carbontrack.repositories.exchange_repository import ExchangeRepository
from carbontrack.repositories.points_repository import PointsRepository
from carbontrack.repositories.product_repository import ProductRepository
from carbontrack.repositories.user_repository import UserRepository
from carbontrack.schemas.audit_log import RequestContext
from carbontrack.schemas.exchange import (
    ExchangeListResponse,
    ExchangeRecordSchema,
    ExchangeRequest,
    ExchangeResponse,
    ExchangeStatusUpdateRequest,
    ExchangeStatusUpdateResponse,
)
from carbontrack.schemas.pagination import PaginationMeta
from carbontrack.services.audit_log_service import AuditLogService
from carbontrack.services.email_service import EmailService
from carbontrack.services.message_service import MessageService

logger = logging.getLogger(__name__)

EXCHANGE_ACT = "product_exchange"
REFUND_ACT = "exchange_refund"


class ExchangeService:
    """상품 교환 관련 비즈니스 로직을 담당하는 서비스"""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        message_service: Optional[MessageService] = None,
        audit_service: Optional[AuditLogService] = None,
        email_service: Optional[EmailService] = None,
    ):
        self.db = db
        self.settings = settings
        self.user_repo = UserRepository(db)
        self.product_repo = ProductRepository(db)
        self.points_repo = PointsRepository(db)
        self.exchange_repo = ExchangeRepository(db)
        self.message_service = message_service or MessageService(
            db, email_service=email_service
        )
        self.audit_service = audit_service or AuditLogService(db)

    def exchange_product(
        self,
        user_id: int,
        request: ExchangeRequest,
        context: Optional[RequestContext] = None,
    ) -> ExchangeResponse:
        """포인트로 상품 교환

        Args:
            user_id: 교환하는 사용자 ID
            request: 상품 ID, 수량, 배송 정보

        Returns:
            ExchangeResponse: 교환 ID, 사용 포인트, 남은 포인트

        Raises:
            ValidationError: 수량이 1 미만
            NotFoundError: 상품이 없거나 삭제됨
            InvalidStateError: 판매 중이 아닌 상품
            InsufficientStockError: 재고 부족
            InsufficientPointsError: 포인트 부족
        """
        quantity = request.quantity
        if quantity < 1:
            raise ValidationError(
                "Quantity must be at least 1",
                details={"quantity": quantity},
                status_code=400,
            )

        try:
            product = self.product_repo.get_for_update(request.product_id)
            if not product:
                raise NotFoundError("Product not found")
            if product.status != ProductStatus.ACTIVE.value:
                raise InvalidStateError("Product not available")

            total_points = product.points_required * quantity
            if product.stock < quantity:
                raise InsufficientStockError(
                    details={"requested": quantity, "available": product.stock}
                )

            user = self.user_repo.get_for_update(user_id)
            if not user:
                raise NotFoundError("User not found")
            if Decimal(user.points) < total_points:
                raise InsufficientPointsError(
                    details={"required": total_points, "available": float(user.points)}
                )

            self.product_repo.decrement_stock(product, quantity)
            self.user_repo.apply_points_delta(user, -Decimal(total_points))

            exchange_id = str(uuid.uuid4())
            entry = self.points_repo.append_entry(
                user_id=user_id,
                points=-Decimal(total_points),
                type=PointsTransactionType.SPEND,
                act=EXCHANGE_ACT,
                status=PointsTransactionStatus.APPROVED,
                description=f"Exchange {product.name} x{quantity}",
                related_table=ExchangeRecord.__tablename__,
                related_id=exchange_id,
            )
            exchange = self.exchange_repo.add(
                commit=False,
                id=exchange_id,
                user_id=user_id,
                product_id=product.id,
                quantity=quantity,
                points_used=total_points,
                product_name=product.name,
                product_price=product.points_required,
                delivery_address=request.delivery_address,
                contact_phone=request.contact_phone,
                notes=request.notes,
                status=ExchangeStatus.PENDING.value,
                points_transaction_id=entry.id,
            )
            self.audit_service.log(
                "product_exchanged",
                user_id=user_id,
                affected_table=ExchangeRecord.__tablename__,
                affected_id=exchange_id,
                new={
                    "product_id": product.id,
                    "quantity": quantity,
                    "points_used": total_points,
                    "points_transaction_id": entry.id,
                },
                context=context,
                in_transaction=True,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        record = ExchangeRecordSchema.model_validate(exchange)
        remaining_points = float(user.points)
        logger.info(
            f"User {user_id} exchanged product {product.id} x{quantity} "
            f"for {total_points} points (exchange {exchange_id})"
        )

        self._notify_exchange_created(record, user.username)

        return ExchangeResponse(
            exchange_id=exchange_id,
            points_used=total_points,
            remaining_points=remaining_points,
        )

    def _notify_exchange_created(self, record: ExchangeRecordSchema, username: str) -> None:
        # 이미 커밋된 교환은 알림 실패로 되돌리지 않는다
        try:
            admin_ids = self.user_repo.list_admin_ids()
            self.message_service.notify_exchange_created(record, username, admin_ids)
        except Exception as e:
            self.db.rollback()
            logger.error(
                f"Failed to send exchange notifications for {record.id}: {str(e)}"
            )

    # ----- 조회 -----

    def _validate_status_filter(self, status: Optional[str]) -> Optional[str]:
        if status is None:
            return None
        if status not in ExchangeStatus.values():
            raise ValidationError(
                "Invalid status",
                details={"allowed": ExchangeStatus.values()},
                status_code=400,
            )
        return status

    def list_user_exchanges(
        self, user_id: int, page: int, limit: int, status: Optional[str] = None
    ) -> ExchangeListResponse:
        items, total = self.exchange_repo.list_exchanges(
            page=page,
            limit=limit,
            user_id=user_id,
            status=self._validate_status_filter(status),
        )
        return ExchangeListResponse(
            items=items, pagination=PaginationMeta.build(page, limit, total)
        )

    def get_user_exchange(self, user_id: int, exchange_id: str) -> ExchangeRecordSchema:
        record = self.exchange_repo.get_for_user(exchange_id, user_id)
        if not record:
            raise NotFoundError("Exchange not found")
        return record

    def list_exchanges(
        self,
        page: int,
        limit: int,
        status: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> ExchangeListResponse:
        """관리자 교환 목록 조회"""
        items, total = self.exchange_repo.list_exchanges(
            page=page,
            limit=limit,
            user_id=user_id,
            status=self._validate_status_filter(status),
        )
        return ExchangeListResponse(
            items=items, pagination=PaginationMeta.build(page, limit, total)
        )

    def get_exchange(self, exchange_id: str) -> ExchangeRecordSchema:
        record = self.exchange_repo.get_by_id(exchange_id)
        if not record:
            raise NotFoundError("Exchange not found")
        return record

    # ----- 관리자 상태 변경 -----

    @staticmethod
    def _check_transition(current: str, new: str) -> None:
        """pending -> processing -> shipped -> completed, cancelled 은 비종료 상태에서만

        같은 상태로의 변경은 운송장/메모 수정으로 허용한다.
        """
        if current == new:
            return
        if current in ExchangeStatus.terminal():
            raise InvalidStateError(
                f"Exchange is already {current}",
                details={"current_status": current, "requested_status": new},
            )
        if new == ExchangeStatus.CANCELLED.value:
            return
        progression = ExchangeStatus.progression()
        if progression.index(new) < progression.index(current):
            raise InvalidStateError(
                f"Cannot change status from {current} to {new}",
                details={"current_status": current, "requested_status": new},
            )

    def update_exchange_status(
        self,
        exchange_id: str,
        request: ExchangeStatusUpdateRequest,
        admin_id: Optional[int] = None,
        context: Optional[RequestContext] = None,
    ) -> ExchangeStatusUpdateResponse:
        """관리자 교환 상태 변경

        EXCHANGE_REFUND_ON_CANCEL 이 꺼져 있으면(기본값) 취소해도 포인트를 돌려주지 않는다.
        """
        new_status = (request.status or "").strip().lower()
        if new_status not in ExchangeStatus.values():
            raise ValidationError(
                "Invalid status",
                details={"allowed": ExchangeStatus.values()},
                status_code=400,
            )

        refunded = False
        try:
            exchange = self.exchange_repo.get_for_update(exchange_id)
            if not exchange:
                raise NotFoundError("Exchange not found")

            old_status = exchange.status
            self._check_transition(old_status, new_status)

            if (
                new_status == ExchangeStatus.CANCELLED.value
                and self.settings.EXCHANGE_REFUND_ON_CANCEL
                and exchange.refund_transaction_id is None
            ):
                self._refund(exchange, admin_id)
                refunded = True

            exchange.status = new_status
            if request.tracking_number is not None:
                exchange.tracking_number = request.tracking_number
            if request.notes is not None:
                exchange.notes = request.notes
            self.db.flush()

            self.audit_service.log(
                "exchange_status_updated",
                user_id=admin_id,
                actor_type=ActorType.ADMIN,
                affected_table=ExchangeRecord.__tablename__,
                affected_id=exchange_id,
                old={"status": old_status},
                new={
                    "status": new_status,
                    "tracking_number": request.tracking_number,
                    "notes": request.notes,
                },
                extra={"refunded": refunded},
                context=context,
                in_transaction=True,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        record = ExchangeRecordSchema.model_validate(exchange)
        logger.info(
            f"Exchange {exchange_id} status {old_status} -> {new_status} by admin {admin_id}"
        )

        try:
            self.message_service.notify_exchange_status(
                record,
                tracking_number=request.tracking_number,
                notes=request.notes,
                refunded=refunded,
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to send status notification for {exchange_id}: {str(e)}")

        return ExchangeStatusUpdateResponse(data=record, refunded=refunded)

    def _refund(self, exchange: ExchangeRecord, admin_id: Optional[int]) -> None:
        """취소된 교환의 포인트 환불과 재고 복구 (호출한 트랜잭션 안에서 실행)"""
        product = self.product_repo.get_for_update(exchange.product_id)
        if product:
            self.product_repo.increment_stock(product, exchange.quantity)

        user = self.user_repo.get_for_update(exchange.user_id)
        if not user:
            raise NotFoundError("User not found")

        amount = Decimal(exchange.points_used)
        self.user_repo.apply_points_delta(user, amount)
        entry = self.points_repo.append_entry(
            user_id=exchange.user_id,
            points=amount,
            type=PointsTransactionType.ADJUST,
            act=REFUND_ACT,
            status=PointsTransactionStatus.APPROVED,
            description=f"Refund for cancelled exchange {exchange.id}",
            related_table=ExchangeRecord.__tablename__,
            related_id=exchange.id,
            approved_by=admin_id,
        )
        exchange.refund_transaction_id = entry.id
        logger.info(f"Refunded {amount} points to user {exchange.user_id} for {exchange.id}")
