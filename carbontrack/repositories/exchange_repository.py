from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from carbontrack.models.exchange import ExchangeRecord
from carbontrack.repositories.base import BaseRepository
from carbontrack.schemas.exchange import ExchangeRecordSchema


class ExchangeRepository(BaseRepository[ExchangeRecord, ExchangeRecordSchema]):
    """상품 교환 기록 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(ExchangeRecord, ExchangeRecordSchema, db)

    def get_for_user(self, exchange_id: str, user_id: int) -> Optional[ExchangeRecordSchema]:
        """본인 교환 기록만 조회"""
        stmt = select(ExchangeRecord).where(
            ExchangeRecord.id == exchange_id, ExchangeRecord.user_id == user_id
        )
        return self._to_schema(self.db.execute(stmt).scalar_one_or_none())

    def get_for_update(self, exchange_id: str) -> Optional[ExchangeRecord]:
        stmt = (
            select(ExchangeRecord)
            .where(ExchangeRecord.id == exchange_id)
            .with_for_update()
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def list_exchanges(
        self,
        page: int,
        limit: int,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[ExchangeRecordSchema], int]:
        stmt = self._apply_filters(
            select(ExchangeRecord), {"user_id": user_id, "status": status}
        ).order_by(ExchangeRecord.created_at.desc(), ExchangeRecord.id)
        records, total = self._paginate(stmt, page, limit)
        return self._to_schemas(records), total
