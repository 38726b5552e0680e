from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ...dependencies import get_db
from ..schemas import HealthResponse
from ....config import get_settings
from ....repositories.fetched_item_repository import FetchedItemRepository

logger = structlog.get_logger(__name__)
settings = get_settings()

router = APIRouter()

SERVICE_NAME = "Content Pipeline API"
SERVICE_VERSION = "0.1.0"


@router.get("/health", response_model=HealthResponse)
async def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        item_counts = FetchedItemRepository(db).count_by_status()
    except SQLAlchemyError as e:
        logger.error("health_check_failed", error=str(e))
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "database": "unhealthy",
                "error": "Database connectivity failed",
                "timestamp": datetime.utcnow().isoformat()
            }
        )

    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        environment="development" if settings.debug else "production",
        database="healthy",
        item_counts=item_counts,
        timestamp=datetime.utcnow().isoformat(),
    )
