from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from carbontrack.models.audit_log import AuditLog
from carbontrack.repositories.base import BaseRepository
from carbontrack.schemas.audit_log import AuditLogSchema


class AuditLogRepository(BaseRepository[AuditLog, AuditLogSchema]):
    def __init__(self, db: Session):
        super().__init__(AuditLog, AuditLogSchema, db)

    def list_logs(
        self,
        page: int,
        limit: int,
        action: Optional[str] = None,
        user_id: Optional[int] = None,
        affected_table: Optional[str] = None,
    ) -> Tuple[List[AuditLogSchema], int]:
        stmt = self._apply_filters(
            select(AuditLog),
            {"action": action, "user_id": user_id, "affected_table": affected_table},
        ).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        logs, total = self._paginate(stmt, page, limit)
        return self._to_schemas(logs), total
