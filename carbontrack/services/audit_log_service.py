import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from carbontrack.models.audit_log import ActorType, AuditLog
from carbontrack.repositories.audit_log_repository import AuditLogRepository
from carbontrack.schemas.audit_log import AuditData, AuditLogListResponse, RequestContext
from carbontrack.schemas.pagination import PaginationMeta

logger = logging.getLogger(__name__)


class AuditLogService:
    """감사 로그 기록/조회 서비스"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AuditLogRepository(db)

    def log(
        self,
        action: str,
        user_id: Optional[int] = None,
        actor_type: ActorType = ActorType.USER,
        affected_table: Optional[str] = None,
        affected_id: Optional[Any] = None,
        old: Optional[Dict[str, Any]] = None,
        new: Optional[Dict[str, Any]] = None,
        extra: Optional[Dict[str, Any]] = None,
        context: Optional[RequestContext] = None,
        status: str = "success",
        in_transaction: bool = False,
    ) -> Optional[AuditLog]:
        """감사 로그 기록

        in_transaction=True 이면 호출한 서비스의 트랜잭션에 참여하며 실패 시 예외를 전파한다.
        단독 호출(기본값)은 즉시 커밋하고, 실패해도 로그만 남긴다.
        """
        data = AuditData(old=old, new=new, extra=extra or {})
        context = context or RequestContext()
        values = dict(
            user_id=user_id,
            actor_type=actor_type.value,
            action=action,
            affected_table=affected_table,
            affected_id=str(affected_id) if affected_id is not None else None,
            data=data.model_dump(mode="json", exclude_none=True),
            status=status,
            **context.model_dump(),
        )

        if in_transaction:
            return self.repo.add(commit=False, **values)

        try:
            return self.repo.add(commit=True, **values)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to write audit log '{action}': {str(e)}")
            return None

    def list_logs(
        self,
        page: int,
        limit: int,
        action: Optional[str] = None,
        user_id: Optional[int] = None,
        affected_table: Optional[str] = None,
    ) -> AuditLogListResponse:
        items, total = self.repo.list_logs(
            page=page,
            limit=limit,
            action=action,
            user_id=user_id,
            affected_table=affected_table,
        )
        return AuditLogListResponse(
            items=items, pagination=PaginationMeta.build(page, limit, total)
        )
