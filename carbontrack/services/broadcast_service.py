"""
관리자 브로드캐스트 메시지 서비스

하나의 메시지를 여러 사용자에게 개별 메시지로 발송한다. 수신자별 생성은 각각 커밋되어
일부 실패가 허용되며, high/urgent 우선순위는 BCC 일괄 이메일을 추가로 시도한다.
"""

import hashlib
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from carbontrack.config import Settings
from carbontrack.core.exceptions import NotFoundError, ValidationError
from carbontrack.models.audit_log import ActorType
from carbontrack.models.broadcast import BroadcastScope, MessageBroadcast
from carbontrack.models.message import MessagePriority, MessageType
from carbontrack.repositories.broadcast_repository import BroadcastRepository
from carbontrack.repositories.user_repository import UserRepository
from carbontrack.schemas.audit_log import RequestContext
from carbontrack.schemas.broadcast import (
    BroadcastHistoryResponse,
    BroadcastRequest,
    BroadcastResponse,
    EmailDeliveryReport,
    RecipientListResponse,
)
from carbontrack.schemas.pagination import PaginationMeta
from carbontrack.services.audit_log_service import AuditLogService
from carbontrack.services.email_service import EmailService
from carbontrack.services.message_service import MessageService

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 255


class BroadcastService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        email_service: EmailService,
        message_service: Optional[MessageService] = None,
        audit_service: Optional[AuditLogService] = None,
    ):
        self.db = db
        self.settings = settings
        self.email_service = email_service
        self.user_repo = UserRepository(db)
        self.broadcast_repo = BroadcastRepository(db)
        self.message_service = message_service or MessageService(db)
        self.audit_service = audit_service or AuditLogService(db)

    # ----- 입력 검증 -----

    @staticmethod
    def _normalize_priority(priority: Optional[str]) -> MessagePriority:
        value = (priority or MessagePriority.NORMAL.value).strip().lower()
        if value not in MessagePriority.values():
            raise ValidationError(
                "Invalid priority value",
                details={"allowed": MessagePriority.values()},
            )
        return MessagePriority(value)

    @staticmethod
    def _validate_text(title: str, content: str) -> None:
        if not title or not title.strip():
            raise ValidationError("Title is required", status_code=400)
        if len(title.strip()) > MAX_TITLE_LENGTH:
            raise ValidationError(
                f"Title must not exceed {MAX_TITLE_LENGTH} characters",
                details={"max_length": MAX_TITLE_LENGTH},
            )
        if not content or not content.strip():
            raise ValidationError("Content is required", status_code=400)

    @staticmethod
    def _normalize_targets(target_users: Optional[List[int]]) -> Optional[List[int]]:
        """None 은 전체 활성 사용자, 그 외에는 중복 제거된 양의 정수 목록"""
        if target_users is None:
            return None
        if any(user_id <= 0 for user_id in target_users):
            raise ValidationError(
                "target_users must contain only positive integer IDs", status_code=400
            )
        unique_ids = list(dict.fromkeys(target_users))
        if not unique_ids:
            raise ValidationError(
                "target_users must not be empty", status_code=400
            )
        return unique_ids

    # ----- 발송 -----

    def broadcast(
        self,
        request: BroadcastRequest,
        admin_id: int,
        context: Optional[RequestContext] = None,
    ) -> BroadcastResponse:
        """브로드캐스트 발송

        Returns:
            BroadcastResponse: 발송 수, 대상 수, 잘못된/실패한 사용자 ID, 이메일 리포트

        Raises:
            ValidationError: 우선순위/제목/본문/target_users 오류
            NotFoundError: 발송 대상이 한 명도 없음
        """
        priority = self._normalize_priority(request.priority)
        self._validate_text(request.title, request.content)
        title = request.title.strip()
        content = request.content.strip()
        requested_ids = self._normalize_targets(request.target_users)
        context = context or RequestContext()

        if requested_ids is None:
            scope = BroadcastScope.ALL
            target_ids = self.user_repo.list_active_ids()
            invalid_user_ids: List[int] = []
        else:
            scope = BroadcastScope.CUSTOM
            target_ids = self.user_repo.find_existing_ids(requested_ids)
            found = set(target_ids)
            invalid_user_ids = [uid for uid in requested_ids if uid not in found]

        if not target_ids:
            raise NotFoundError(
                "No target users found for broadcast",
                details={"invalid_user_ids": invalid_user_ids},
            )

        message_ids: List[int] = []
        sent_user_ids: List[int] = []
        failed_user_ids: List[int] = []
        for user_id in target_ids:
            try:
                message = self.message_service.send(
                    receiver_id=user_id,
                    title=title,
                    content=content,
                    type=MessageType.BROADCAST,
                    priority=priority,
                    sender_id=admin_id,
                )
                message_ids.append(message.id)
                sent_user_ids.append(user_id)
            except Exception as e:
                self.db.rollback()
                failed_user_ids.append(user_id)
                logger.error(f"Failed to deliver broadcast message to user {user_id}: {str(e)}")

        email_delivery = None
        if priority.value in self.settings.BROADCAST_EMAIL_PRIORITIES and sent_user_ids:
            email_delivery = self._send_broadcast_email(sent_user_ids, title, content, priority)

        broadcast = self._record_broadcast(
            title=title,
            content=content,
            priority=priority,
            scope=scope,
            target_count=len(target_ids),
            message_ids=message_ids,
            invalid_user_ids=invalid_user_ids,
            failed_user_ids=failed_user_ids,
            email_delivery=email_delivery,
            admin_id=admin_id,
            request_id=context.request_id,
        )

        self.audit_service.log(
            "system_message_broadcast",
            user_id=admin_id,
            actor_type=ActorType.ADMIN,
            affected_table=MessageBroadcast.__tablename__,
            affected_id=broadcast.id if broadcast else None,
            new={"title": title, "priority": priority.value, "scope": scope.value},
            extra={
                "target_count": len(target_ids),
                "sent_count": len(sent_user_ids),
                "invalid_user_ids": invalid_user_ids,
                "failed_user_ids": failed_user_ids,
                "email_status": email_delivery.status.value if email_delivery else None,
            },
            context=context,
        )

        logger.info(
            f"Broadcast by admin {admin_id}: {len(sent_user_ids)}/{len(target_ids)} delivered, "
            f"{len(invalid_user_ids)} invalid, {len(failed_user_ids)} failed"
        )

        return BroadcastResponse(
            broadcast_id=broadcast.id if broadcast else None,
            sent_count=len(sent_user_ids),
            total_targets=len(target_ids),
            invalid_user_ids=invalid_user_ids,
            failed_user_ids=failed_user_ids,
            email_delivery=email_delivery,
            priority=priority.value,
            message=f"Broadcast sent to {len(sent_user_ids)} users",
        )

    def _send_broadcast_email(
        self,
        user_ids: List[int],
        title: str,
        content: str,
        priority: MessagePriority,
    ) -> EmailDeliveryReport:
        subject = self.email_service.subject_for_priority(title, priority.value)
        emails = self.user_repo.get_emails(user_ids)
        report = self.email_service.send_bcc_batch(emails, subject, content)
        logger.info(
            f"Broadcast email {report.status.value}: {report.sent_count}/{report.recipient_count} recipients"
        )
        return report

    def _record_broadcast(
        self,
        title: str,
        content: str,
        priority: MessagePriority,
        scope: BroadcastScope,
        target_count: int,
        message_ids: List[int],
        invalid_user_ids: List[int],
        failed_user_ids: List[int],
        email_delivery: Optional[EmailDeliveryReport],
        admin_id: int,
        request_id: Optional[str],
    ) -> Optional[MessageBroadcast]:
        """발송 이력 저장 - 이미 생성된 메시지에는 영향을 주지 않는다"""
        content_hash = hashlib.sha256(f"{title}\n{content}".encode("utf-8")).hexdigest()
        try:
            return self.broadcast_repo.add(
                commit=True,
                title=title,
                content=content,
                priority=priority.value,
                scope=scope.value,
                target_count=target_count,
                sent_count=len(message_ids),
                message_ids=message_ids,
                invalid_user_ids=invalid_user_ids,
                failed_user_ids=failed_user_ids,
                content_hash=content_hash,
                email_delivery=email_delivery.model_dump(mode="json") if email_delivery else None,
                created_by=admin_id,
                request_id=request_id,
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to record broadcast history: {str(e)}")
            return None

    # ----- 조회 -----

    def list_history(self, page: int, limit: int) -> BroadcastHistoryResponse:
        items, total = self.broadcast_repo.list_history(page, limit)
        return BroadcastHistoryResponse(
            items=items, pagination=PaginationMeta.build(page, limit, total)
        )

    def search_recipients(self, search: Optional[str], limit: int) -> RecipientListResponse:
        return RecipientListResponse(items=self.user_repo.search_recipients(search, limit))
