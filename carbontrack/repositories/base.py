from abc import ABC
from typing import TypeVar, Generic, Optional, List, Dict, Any, Type, Tuple
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from pydantic import BaseModel

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound=BaseModel)


class BaseRepository(Generic[T, SchemaType], ABC):
    """모든 리포지토리의 베이스 클래스 - Pydantic 응답 보장

    commit=False 로 호출하면 flush 까지만 수행하고 트랜잭션 경계는 호출한 서비스가 관리한다.
    """

    def __init__(
        self, model_class: Type[T], schema_class: Type[SchemaType], db: Session
    ):
        self.model_class = model_class
        self.schema_class = schema_class
        self.db = db

    def _to_schema(self, model_instance: Any) -> Optional[SchemaType]:
        """SQLAlchemy 모델을 Pydantic 스키마로 변환"""
        if model_instance is None:
            return None
        return self.schema_class.model_validate(model_instance)

    def _to_schemas(self, model_instances) -> List[SchemaType]:
        return [self._to_schema(instance) for instance in model_instances]

    def _apply_filters(self, stmt, filters: Optional[Dict[str, Any]]):
        if filters:
            for key, value in filters.items():
                if value is not None and hasattr(self.model_class, key):
                    stmt = stmt.where(getattr(self.model_class, key) == value)
        return stmt

    def _paginate(self, stmt, page: int, limit: int) -> Tuple[List[T], int]:
        """정렬이 적용된 select 문을 페이지 단위로 실행하고 (모델 목록, 전체 건수) 반환"""
        total = self.db.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ).scalar_one()
        rows = (
            self.db.execute(stmt.offset((page - 1) * limit).limit(limit))
            .scalars()
            .all()
        )
        return list(rows), total

    def get_model(self, id: Any) -> Optional[T]:
        return self.db.get(self.model_class, id)

    def get_by_id(self, id: Any) -> Optional[SchemaType]:
        """ID로 조회 - Pydantic 스키마 반환"""
        return self._to_schema(self.get_model(id))

    def add(self, commit: bool = True, **kwargs) -> T:
        """새 레코드 생성 - 모델 인스턴스 반환"""
        instance = self.model_class(**kwargs)
        self.db.add(instance)
        try:
            self.db.flush()
            self.db.refresh(instance)
            if commit:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return instance

