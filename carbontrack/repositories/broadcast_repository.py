from typing import List, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from carbontrack.models.broadcast import MessageBroadcast
from carbontrack.repositories.base import BaseRepository
from carbontrack.schemas.broadcast import BroadcastHistoryItem


class BroadcastRepository(BaseRepository[MessageBroadcast, BroadcastHistoryItem]):
    """브로드캐스트 이력 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(MessageBroadcast, BroadcastHistoryItem, db)

    def list_history(self, page: int, limit: int) -> Tuple[List[BroadcastHistoryItem], int]:
        stmt = select(MessageBroadcast).order_by(
            MessageBroadcast.created_at.desc(), MessageBroadcast.id.desc()
        )
        rows, total = self._paginate(stmt, page, limit)
        return self._to_schemas(rows), total
