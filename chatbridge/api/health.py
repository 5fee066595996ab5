import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chatbridge.config.settings import get_settings
from chatbridge.monitoring.metrics import metrics_response
from chatbridge.persistence.database import get_db
from chatbridge.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/healthz", response_model=HealthResponse)
def healthz(db: Session = Depends(get_db)) -> HealthResponse:
    settings = get_settings()
    db_ok = False
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as exc:
        logger.warning("Health check database probe failed: %s", exc)
    return HealthResponse(
        status="ok" if db_ok else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        environment=settings.app_env,
        database=db_ok,
    )


@router.get("/metrics")
def metrics():
    return metrics_response()
