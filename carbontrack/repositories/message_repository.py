from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from carbontrack.models.message import Message
from carbontrack.repositories.base import BaseRepository
from carbontrack.schemas.message import MessageSchema


class MessageRepository(BaseRepository[Message, MessageSchema]):
    """사용자 메시지 리포지토리 - 모든 조회는 수신자 본인 + 미삭제 조건"""

    def __init__(self, db: Session):
        super().__init__(Message, MessageSchema, db)

    def _inbox(self, user_id: int):
        return select(Message).where(
            Message.receiver_id == user_id, Message.deleted_at.is_(None)
        )

    def get_owned(self, message_id: int, user_id: int) -> Optional[Message]:
        return self.db.execute(
            self._inbox(user_id).where(Message.id == message_id)
        ).scalar_one_or_none()

    def list_inbox(
        self, user_id: int, page: int, limit: int, is_read: Optional[bool] = None
    ) -> Tuple[List[MessageSchema], int]:
        stmt = self._inbox(user_id)
        if is_read is not None:
            stmt = stmt.where(Message.is_read.is_(is_read))
        stmt = stmt.order_by(Message.created_at.desc(), Message.id.desc())
        messages, total = self._paginate(stmt, page, limit)
        return self._to_schemas(messages), total

    def count_unread(self, user_id: int) -> int:
        stmt = select(func.count(Message.id)).where(
            Message.receiver_id == user_id,
            Message.deleted_at.is_(None),
            Message.is_read.is_(False),
        )
        return self.db.execute(stmt).scalar_one()

    def mark_read(self, message: Message) -> Message:
        if not message.is_read:
            message.is_read = True
            self.db.commit()
        return message

    def mark_all_read(self, user_id: int) -> int:
        result = self.db.execute(
            update(Message)
            .where(
                Message.receiver_id == user_id,
                Message.deleted_at.is_(None),
                Message.is_read.is_(False),
            )
            .values(is_read=True)
        )
        self.db.commit()
        return result.rowcount or 0

    def soft_delete(self, message: Message) -> Message:
        message.deleted_at = datetime.now(timezone.utc)
        self.db.commit()
        return message
