from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from carbontrack.schemas.pagination import PaginationMeta


class AuditData(BaseModel):
    """audit_logs.data 컬럼 구조 (버전 포함)"""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    old: Optional[Dict[str, Any]] = None
    new: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = Field(default_factory=dict)


class RequestContext(BaseModel):
    """감사 로그에 기록할 요청 정보"""

    request_id: Optional[str] = None
    ip_address: Optional[str] = None
    endpoint: Optional[str] = None
    request_method: Optional[str] = None


class AuditLogSchema(BaseModel):
    id: int
    user_id: Optional[int] = None
    actor_type: str
    action: str
    affected_table: Optional[str] = None
    affected_id: Optional[str] = None
    data: Optional[AuditData] = None
    status: str
    request_id: Optional[str] = None
    ip_address: Optional[str] = None
    endpoint: Optional[str] = None
    request_method: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    success: bool = True
    items: List[AuditLogSchema]
    pagination: PaginationMeta
