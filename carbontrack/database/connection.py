from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from carbontrack.config import settings


def _engine_kwargs() -> dict:
    if settings.is_sqlite:
        # SQLite는 풀 옵션을 지원하지 않으며 FastAPI 스레드풀에서 공유됨
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_pre_ping": True,  # 연결 유효성 검사
        "pool_recycle": settings.DB_POOL_RECYCLE,
    }


def enable_sqlite_write_locks(engine: Engine) -> None:
    """
    SQLite 트랜잭션을 BEGIN IMMEDIATE 로 시작

    SQLite 는 SELECT ... FOR UPDATE 를 무시하므로, 트랜잭션 시작 시점에 쓰기 잠금을
    잡아 잔액/재고 차감이 동시에 진행되지 않게 한다. pysqlite 의 자체 BEGIN 은 끈다.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,  # 디버그 모드에서 SQL 로깅
    **_engine_kwargs(),
)
if settings.is_sqlite:
    enable_sqlite_write_locks(engine)

# Use expire_on_commit=False to avoid DetachedInstanceError when accessing
# attributes after commit within the same request scope (common FastAPI pattern).
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)
