import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carbontrack.config import settings
from carbontrack.database.session import get_db
from carbontrack.schemas.health import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
def health_check(db: Session = Depends(get_db)) -> HealthCheckResponse:
    """Health check endpoint."""

    response = HealthCheckResponse(
        timestamp=datetime.now(timezone.utc), version=settings.APP_VERSION
    )
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database query failed: {str(e)}")
        response.status = "degraded"
        response.database = "unavailable"
        response.error = type(e).__name__
    return response
