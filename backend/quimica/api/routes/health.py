"""
Health check endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quimica import __version__
from quimica.core.config import get_settings
from quimica.core.database import get_db
from quimica.core.logging_config import LoggingConfig
from quimica.models.user import Session as UserSession

logger = LoggingConfig.get_logger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint

    Returns:
        dict: Health status
    """
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "service": get_settings().app_name,
    }


@router.get("/health/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """
    Detailed health check with component status

    Returns:
        dict: Health status of the database and the generation providers' configuration
    """
    settings = get_settings()
    health_status = {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "service": settings.app_name,
        "version": __version__,
        "environment": settings.app_env,
        "components": {},
    }

    try:
        db.execute(text("SELECT 1"))
        active_sessions = db.query(UserSession).filter(UserSession.expires_at > datetime.utcnow()).count()
        health_status["components"]["database"] = {
            "status": "healthy",
            "message": "Database connection successful",
            "active_sessions": active_sessions,
        }
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        health_status["status"] = "unhealthy"
        health_status["components"]["database"] = {
            "status": "unhealthy",
            "message": f"Database connection failed: {str(e)}",
            "error": type(e).__name__,
        }

    configured = {
        "meshy": bool(settings.meshy_api_key),
        "tripo": bool(settings.tripo_api_key),
    }
    health_status["components"]["generation"] = {
        # Users can still send their own keys
        "status": "healthy" if all(configured.values()) else "warning",
        "server_keys": configured,
    }

    return health_status


@router.get("/health/liveness")
async def liveness_check():
    """Liveness check - is the service alive?"""
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
    }
