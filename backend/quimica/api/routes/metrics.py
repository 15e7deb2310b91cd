"""
Prometheus metrics endpoint
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quimica.core.database import get_db
from quimica.core.logging_config import LoggingConfig
from quimica.core.metrics import (active_sessions, get_metrics,
                                  get_metrics_content_type,
                                  quiz_attempts_in_progress)
from quimica.models.quiz import QuizResult
from quimica.models.user import Session as UserSession

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(tags=["metrics"])


def refresh_learning_gauges(db: Session):
    """Set the gauges that are read from the database at scrape time"""
    active_sessions.set(
        db.query(UserSession).filter(UserSession.expires_at > datetime.utcnow()).count()
    )
    quiz_attempts_in_progress.set(
        db.query(QuizResult).filter(QuizResult.completed_at.is_(None)).count()
    )


@router.get("/metrics")
async def metrics(db: Session = Depends(get_db)):
    """
    Prometheus metrics endpoint

    Returns metrics in Prometheus text format. A database failure leaves the
    learning gauges at their previous values; the other metrics are still served.
    """
    try:
        refresh_learning_gauges(db)
    except SQLAlchemyError as e:
        logger.warning(f"Could not refresh learning gauges: {e}")

    return Response(content=get_metrics(), media_type=get_metrics_content_type())
