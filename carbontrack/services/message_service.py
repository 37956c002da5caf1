import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from carbontrack.core.exceptions import NotFoundError
from carbontrack.models.exchange import ExchangeStatus
from carbontrack.models.message import Message, MessagePriority, MessageType
from carbontrack.repositories.message_repository import MessageRepository
from carbontrack.repositories.user_repository import UserRepository
from carbontrack.schemas.exchange import ExchangeRecordSchema
from carbontrack.schemas.message import (
    MessageActionResponse,
    MessageListResponse,
    MessageSchema,
    UnreadCountResponse,
)
from carbontrack.schemas.pagination import PaginationMeta
from carbontrack.services.email_service import EmailService

logger = logging.getLogger(__name__)

STATUS_TITLES = {
    ExchangeStatus.PENDING.value: "Your exchange order is pending",
    ExchangeStatus.PROCESSING.value: "Your exchange order is being processed",
    ExchangeStatus.SHIPPED.value: "Your exchange order has shipped",
    ExchangeStatus.COMPLETED.value: "Your exchange order is complete",
    ExchangeStatus.CANCELLED.value: "Your exchange order was cancelled",
}


class MessageService:
    """사용자 메시지(수신함)와 교환 관련 알림 발송

    email_service 가 주어지면 교환 알림을 커밋한 뒤 같은 내용을 수신자 이메일로도 보낸다.
    """

    def __init__(self, db: Session, email_service: Optional[EmailService] = None):
        self.db = db
        self.repo = MessageRepository(db)
        self.user_repo = UserRepository(db)
        self.email_service = email_service

    def send(
        self,
        receiver_id: int,
        title: str,
        content: str,
        type: MessageType = MessageType.SYSTEM,
        priority: MessagePriority = MessagePriority.NORMAL,
        sender_id: Optional[int] = None,
        commit: bool = True,
    ) -> Message:
        return self.repo.add(
            commit=commit,
            receiver_id=receiver_id,
            sender_id=sender_id,
            title=title,
            content=content,
            type=type.value,
            priority=priority.value,
        )

    # ----- 교환 알림 -----

    def _send_linked_email(self, message: Message) -> None:
        """커밋된 메시지를 수신자 이메일로도 발송 - 실패해도 메시지는 유지"""
        if self.email_service is None:
            return
        try:
            emails = self.user_repo.get_emails([message.receiver_id])
            if not emails:
                return
            subject = self.email_service.subject_for_priority(message.title, message.priority)
            if not self.email_service.send_email(emails[0], subject, message.content):
                logger.warning(f"Linked email for message {message.id} was not delivered")
        except Exception as e:
            logger.error(f"Failed to send linked email for message {message.id}: {str(e)}")

    def notify_exchange_created(
        self, exchange: ExchangeRecordSchema, username: str, admin_ids: Iterable[int]
    ) -> None:
        """교환 완료 후 사용자/관리자 알림 (커밋 이후 호출)"""
        messages = [
            self.send(
                receiver_id=exchange.user_id,
                title="Product exchanged successfully",
                content=(
                    f"You exchanged {exchange.product_name} x{exchange.quantity} "
                    f"for {exchange.points_used} points. We will arrange delivery soon."
                ),
                type=MessageType.EXCHANGE,
                commit=False,
            )
        ]
        for admin_id in admin_ids:
            messages.append(
                self.send(
                    receiver_id=admin_id,
                    title="New product exchange order",
                    content=(
                        f"User {username} exchanged {exchange.product_name} "
                        f"x{exchange.quantity}. Please process it promptly."
                    ),
                    type=MessageType.NOTIFICATION,
                    priority=MessagePriority.HIGH,
                    commit=False,
                )
            )
        self.db.commit()

        for message in messages:
            self._send_linked_email(message)

    def notify_exchange_status(
        self,
        exchange: ExchangeRecordSchema,
        tracking_number: Optional[str] = None,
        notes: Optional[str] = None,
        refunded: bool = False,
    ) -> Message:
        title = STATUS_TITLES.get(exchange.status, "Exchange status updated")
        lines = [
            f"Your exchange order ({exchange.product_name} x{exchange.quantity}) "
            f"status is now: {exchange.status}"
        ]
        if tracking_number:
            lines.append(f"Tracking number: {tracking_number}")
        if notes:
            lines.append(f"Notes: {notes}")
        if refunded:
            lines.append(f"{exchange.points_used} points have been refunded.")
        message = self.send(
            receiver_id=exchange.user_id,
            title=title,
            content="\n".join(lines),
            type=MessageType.EXCHANGE,
        )
        self._send_linked_email(message)
        return message

    # ----- 수신함 -----

    def _get_owned(self, user_id: int, message_id: int) -> Message:
        message = self.repo.get_owned(message_id, user_id)
        if not message:
            raise NotFoundError("Message not found")
        return message

    def list_inbox(
        self, user_id: int, page: int, limit: int, is_read: Optional[bool] = None
    ) -> MessageListResponse:
        items, total = self.repo.list_inbox(user_id, page, limit, is_read=is_read)
        return MessageListResponse(
            items=items, pagination=PaginationMeta.build(page, limit, total)
        )

    def get_message(self, user_id: int, message_id: int) -> MessageSchema:
        """메시지 상세 - 조회 시 읽음 처리"""
        message = self.repo.mark_read(self._get_owned(user_id, message_id))
        return MessageSchema.model_validate(message)

    def mark_read(self, user_id: int, message_id: int) -> MessageActionResponse:
        self.repo.mark_read(self._get_owned(user_id, message_id))
        return MessageActionResponse(message="Message marked as read")

    def mark_all_read(self, user_id: int) -> MessageActionResponse:
        affected = self.repo.mark_all_read(user_id)
        logger.info(f"Marked {affected} messages as read for user {user_id}")
        return MessageActionResponse(
            message="All messages marked as read", affected=affected
        )

    def delete(self, user_id: int, message_id: int) -> MessageActionResponse:
        self.repo.soft_delete(self._get_owned(user_id, message_id))
        return MessageActionResponse(message="Message deleted")

    def unread_count(self, user_id: int) -> UnreadCountResponse:
        return UnreadCountResponse(unread_count=self.repo.count_unread(user_id))
