import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from mangum import Mangum
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from carbontrack import containers
from carbontrack.config import settings
from carbontrack.core.exception_handlers import (
    handle_base_api_exception,
    handle_database_error,
    handle_http_exception,
    handle_unexpected_error,
    handle_validation_error,
)
from carbontrack.core.exceptions import BaseAPIException
from carbontrack.core.idempotency_middleware import IdempotencyMiddleware
from carbontrack.core.logging_middleware import LoggingMiddleware
from carbontrack.database.connection import SessionLocal
from carbontrack.logging_config import setup_logging
from carbontrack.routers import (
    admin_router,
    broadcast_router,
    exchange_router,
    health_router,
    message_router,
    point_router,
    product_router,
)

load_dotenv()

setup_logging(settings.LOG_LEVEL, json_logs=settings.ENVIRONMENT != "dev")
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
    )
    app.container = containers.Container()  # type: ignore

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.session_factory = SessionLocal
    app.add_middleware(
        IdempotencyMiddleware,
        routes=[("POST", f"{settings.API_V1_STR}/exchange")],
        ttl_hours=settings.IDEMPOTENCY_TTL_HOURS,
    )
    # 마지막에 추가한 미들웨어가 가장 바깥에서 실행됨
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(BaseAPIException, handle_base_api_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(health_router.router)
    for module in (
        product_router,
        exchange_router,
        point_router,
        message_router,
        admin_router,
        broadcast_router,
    ):
        app.include_router(module.router, prefix=settings.API_V1_STR)

    logger.info(f"{settings.APP_NAME} initialized (environment={settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)
