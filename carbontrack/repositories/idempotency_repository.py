from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from carbontrack.models.idempotency import IdempotencyRecord
from carbontrack.repositories.base import BaseRepository
from carbontrack.schemas.idempotency import IdempotencyRecordSchema


class IdempotencyRepository(BaseRepository[IdempotencyRecord, IdempotencyRecordSchema]):
    """X-Request-ID 처리 결과 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(IdempotencyRecord, IdempotencyRecordSchema, db)

    def find_recent(self, key: str, since: datetime) -> Optional[IdempotencyRecordSchema]:
        stmt = select(IdempotencyRecord).where(
            IdempotencyRecord.idempotency_key == key,
            IdempotencyRecord.created_at >= since,
        )
        return self._to_schema(self.db.execute(stmt).scalar_one_or_none())

    def reserve(
        self,
        key: str,
        since: datetime,
        request_method: str,
        request_uri: str,
        request_body: Optional[str],
        user_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> IdempotencyRecordSchema:
        """
        처리 중 레코드 선점

        보관 기간이 지난 같은 키는 먼저 정리한다. 동시에 같은 키로 선점하면
        unique 제약 위반(IntegrityError)이 그대로 올라간다.
        """
        self.db.execute(
            delete(IdempotencyRecord).where(
                IdempotencyRecord.idempotency_key == key,
                IdempotencyRecord.created_at < since,
            )
        )
        record = self.add(
            idempotency_key=key,
            user_id=user_id,
            request_method=request_method,
            request_uri=request_uri,
            request_body=request_body,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return self._to_schema(record)

    def complete(self, record_id: int, response_status: int, response_body: str) -> None:
        self.db.execute(
            update(IdempotencyRecord)
            .where(IdempotencyRecord.id == record_id)
            .values(response_status=response_status, response_body=response_body)
        )
        self.db.commit()

    def release(self, record_id: int) -> None:
        """처리에 실패한 요청의 선점 해제 - 같은 키로 재시도 가능"""
        self.db.execute(delete(IdempotencyRecord).where(IdempotencyRecord.id == record_id))
        self.db.commit()
