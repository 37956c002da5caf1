import os

# carbontrack 모듈 import 전에 테스트용 설정 적용
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("EMAIL_FORCE_SIMULATION", "true")

import uuid
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from carbontrack.core.security import create_user_token
from carbontrack.database.session import get_db
from carbontrack.models import (
    Base,
    PointsTransaction,
    PointsTransactionStatus,
    PointsTransactionType,
    Product,
    User,
)


@pytest.fixture
def engine():
    """테스트마다 새로 만드는 인메모리 SQLite 엔진"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def app(session_factory):
    from carbontrack.main import create_app

    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.session_factory = session_factory
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """테스트 클라이언트 픽스처"""
    return TestClient(app)


@pytest.fixture
def make_user(db_session):
    """사용자 생성 팩토리 - 초기 포인트는 approved 원장 항목과 함께 적립"""
    counter = {"n": 0}

    def _make_user(points=0, is_admin=False, status="active", username=None, email=None):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=username or f"user{n}",
            email=email or f"user{n}@example.com",
            points=Decimal(str(points)),
            is_admin=is_admin,
            status=status,
        )
        db_session.add(user)
        db_session.flush()
        if points:
            db_session.add(
                PointsTransaction(
                    user_id=user.id,
                    points=Decimal(str(points)),
                    raw=Decimal(str(points)),
                    type=PointsTransactionType.EARN.value,
                    act="seed",
                    status=PointsTransactionStatus.APPROVED.value,
                )
            )
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_product(db_session):
    counter = {"n": 0}

    def _make_product(points_required=50, stock=10, status="active", name=None, category="lifestyle"):
        counter["n"] += 1
        product = Product(
            name=name or f"Product {counter['n']}",
            category=category,
            description="Eco friendly item",
            points_required=points_required,
            stock=stock,
            status=status,
            images=[],
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make_product


@pytest.fixture
def auth_headers():
    """사용자 모델로 Bearer 헤더 생성"""

    def _auth_headers(user):
        token = create_user_token(user.id, user.email)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def exchange_headers(auth_headers):
    """교환 요청용 헤더 - 호출할 때마다 새 X-Request-ID(UUID) 발급"""

    def _exchange_headers(user=None):
        headers = auth_headers(user) if user is not None else {}
        headers["X-Request-ID"] = str(uuid.uuid4())
        return headers

    return _exchange_headers
