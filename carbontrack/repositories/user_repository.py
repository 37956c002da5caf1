from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from carbontrack.models.user import User as UserModel, UserStatus
from carbontrack.repositories.base import BaseRepository
from carbontrack.schemas.user import RecipientItem, User as UserSchema


class UserRepository(BaseRepository[UserModel, UserSchema]):
    """사용자 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(UserModel, UserSchema, db)

    def _live(self):
        return select(UserModel).where(UserModel.deleted_at.is_(None))

    def get_live(self, user_id: int) -> Optional[UserModel]:
        """논리 삭제되지 않은 사용자 모델 조회"""
        return self.db.execute(
            self._live().where(UserModel.id == user_id)
        ).scalar_one_or_none()

    def get_for_update(self, user_id: int) -> Optional[UserModel]:
        """잔액 변경 전 사용자 행을 배타 잠금과 함께 조회

        SQLite 는 FOR UPDATE 를 무시하며 쓰기 자체가 DB 단위로 직렬화된다.
        """
        stmt = self._live().where(UserModel.id == user_id).with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def apply_points_delta(self, user: UserModel, delta: Decimal) -> UserModel:
        """잠금을 획득한 사용자 모델의 잔액을 변경 (flush 만 수행)"""
        user.points = Decimal(user.points or 0) + Decimal(delta)
        self.db.flush()
        return user

    def find_existing_ids(self, user_ids: Iterable[int]) -> List[int]:
        """존재하는(삭제되지 않은) 사용자 ID만 입력 순서대로 반환"""
        ids = list(user_ids)
        if not ids:
            return []
        found = set(
            self.db.execute(
                select(UserModel.id).where(
                    UserModel.id.in_(ids), UserModel.deleted_at.is_(None)
                )
            ).scalars()
        )
        return [user_id for user_id in ids if user_id in found]

    def list_active_ids(self) -> List[int]:
        stmt = (
            select(UserModel.id)
            .where(
                UserModel.deleted_at.is_(None),
                UserModel.status == UserStatus.ACTIVE.value,
            )
            .order_by(UserModel.id)
        )
        return list(self.db.execute(stmt).scalars())

    def list_admin_ids(self) -> List[int]:
        stmt = (
            select(UserModel.id)
            .where(UserModel.deleted_at.is_(None), UserModel.is_admin.is_(True))
            .order_by(UserModel.id)
        )
        return list(self.db.execute(stmt).scalars())

    def get_emails(self, user_ids: Iterable[int]) -> List[str]:
        ids = list(user_ids)
        if not ids:
            return []
        stmt = select(UserModel.email).where(UserModel.id.in_(ids))
        return [email for email in self.db.execute(stmt).scalars() if email]

    def search_recipients(self, search: Optional[str], limit: int) -> List[RecipientItem]:
        """브로드캐스트 수신자 검색 (활성 사용자 대상)"""
        stmt = self._live().where(UserModel.status == UserStatus.ACTIVE.value)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(UserModel.username.ilike(pattern), UserModel.email.ilike(pattern))
            )
        users = self.db.execute(stmt.order_by(UserModel.username).limit(limit)).scalars()
        return [RecipientItem.model_validate(user) for user in users]
