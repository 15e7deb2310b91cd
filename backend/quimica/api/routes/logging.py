"""
API endpoints for logging management
"""
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from quimica.core.auth import require_permission
from quimica.core.logging_config import LoggingConfig
from quimica.core.permissions import Permission
from quimica.models.user import User

router = APIRouter(prefix="/api/logging", tags=["logging"])

VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "NOTSET"]

KNOWN_MODULES = [
    "root",
    "quimica",
    "quimica.api",
    "quimica.services",
    "quimica.core",
    "sqlalchemy.engine",
    "uvicorn.access",
    "uvicorn.error",
]


class LogLevelUpdate(BaseModel):
    """Request model for updating log level"""
    level: str = Field(..., description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL")


class LogLevelResponse(BaseModel):
    """Response model for log level"""
    module: str
    level: str


class LogMetricsResponse(BaseModel):
    """Response model for log metrics"""
    metrics: Dict[str, int]
    total: int


@router.get("/levels", response_model=Dict[str, str])
async def get_log_levels(admin: User = Depends(require_permission(Permission.SYSTEM_CONFIG))):
    """Get current log levels of the application modules"""
    levels = {module: LoggingConfig.get_module_level(module) for module in KNOWN_MODULES}
    levels.update(LoggingConfig.get_module_levels())
    return levels


@router.get("/levels/{module:path}", response_model=LogLevelResponse)
async def get_module_log_level(
    module: str,
    admin: User = Depends(require_permission(Permission.SYSTEM_CONFIG))
):
    """Get log level for a specific module"""
    return LogLevelResponse(module=module, level=LoggingConfig.get_module_level(module))


@router.put("/levels/{module:path}", response_model=LogLevelResponse)
async def set_module_log_level(
    module: str,
    level_update: LogLevelUpdate,
    admin: User = Depends(require_permission(Permission.SYSTEM_CONFIG))
):
    """Set log level for a specific module"""
    level = level_update.level.upper()
    if level not in VALID_LEVELS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid log level '{level}'. Valid levels: {', '.join(VALID_LEVELS)}"
        )

    LoggingConfig.set_module_level(module, level)
    return LogLevelResponse(module=module, level=level)


@router.get("/metrics", response_model=LogMetricsResponse)
async def get_log_metrics(admin: User = Depends(require_permission(Permission.SYSTEM_CONFIG))):
    """Get logging metrics (count of logs by level)"""
    metrics = LoggingConfig.get_metrics()
    return LogMetricsResponse(metrics=metrics, total=sum(metrics.values()))


@router.post("/metrics/reset")
async def reset_log_metrics(admin: User = Depends(require_permission(Permission.SYSTEM_CONFIG))):
    """Reset logging metrics"""
    LoggingConfig.reset_metrics()
    return {"message": "Log metrics reset successfully"}
