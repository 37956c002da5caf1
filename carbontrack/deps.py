from dependency_injector.wiring import Provide, inject
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from carbontrack.config import settings
from carbontrack.containers import Container
from carbontrack.database.session import get_db
from carbontrack.schemas.audit_log import RequestContext

# Services
from carbontrack.services.audit_log_service import AuditLogService
from carbontrack.services.broadcast_service import BroadcastService
from carbontrack.services.email_service import EmailService
from carbontrack.services.exchange_service import ExchangeService
from carbontrack.services.message_service import MessageService
from carbontrack.services.point_service import PointService
from carbontrack.services.product_service import ProductService


def get_request_context(request: Request) -> RequestContext:
    """감사 로그용 요청 정보 추출"""
    return RequestContext(
        request_id=getattr(request.state, "request_id", None)
        or request.headers.get("x-request-id"),
        ip_address=request.client.host if request.client else None,
        endpoint=request.url.path,
        request_method=request.method,
    )


def get_audit_log_service(db: Session = Depends(get_db)) -> AuditLogService:
    return AuditLogService(db=db)


def get_message_service(db: Session = Depends(get_db)) -> MessageService:
    return MessageService(db=db)


@inject
def get_exchange_service(
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(Provide[Container.email_service]),
) -> ExchangeService:
    return ExchangeService(db=db, settings=settings, email_service=email_service)


def get_product_service(db: Session = Depends(get_db)) -> ProductService:
    return ProductService(db=db, settings=settings)


def get_point_service(db: Session = Depends(get_db)) -> PointService:
    return PointService(db=db)


@inject
def get_broadcast_service(
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(Provide[Container.email_service]),
) -> BroadcastService:
    return BroadcastService(db=db, settings=settings, email_service=email_service)
