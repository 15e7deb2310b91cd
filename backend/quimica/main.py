"""
Main FastAPI application entry point
"""
import warnings

# Suppress pkg_resources deprecation warning from opentelemetry
warnings.filterwarnings('ignore', message='.*pkg_resources is deprecated.*', category=UserWarning)
# Suppress OpenTelemetry shutdown warnings (spans dropped after shutdown is normal)
warnings.filterwarnings('ignore', message='.*Already shutdown.*', category=UserWarning)

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quimica import __version__
from quimica.api.routes import (attempts, auth, contents, dashboard,
                                generation, health, history, lessons)
from quimica.api.routes import logging as logging_routes
from quimica.api.routes import (metrics, models, performance, progress,
                                quizzes, results, sections, users)
from quimica.core.config import get_settings
from quimica.core.logging_config import LoggingConfig
from quimica.core.middleware import LoggingContextMiddleware
from quimica.core.middleware_metrics import MetricsMiddleware
from quimica.core.tracing import configure_tracing, shutdown_tracing

# Configure logging first
LoggingConfig.configure()

logger = LoggingConfig.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for FastAPI app"""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode...")
    configure_tracing(app)

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    shutdown_tracing()


_settings = get_settings()
app = FastAPI(
    title=_settings.app_name,
    description="Chemistry e-learning platform: lessons, quizzes, progress and AR models",
    version=__version__,
    lifespan=lifespan,
)

# Logging context first so every request carries its request id
app.add_middleware(LoggingContextMiddleware)
app.add_middleware(MetricsMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unhandled errors and answer with a JSON 500"""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={
            "error": str(exc),
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        }
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "type": type(exc).__name__
        }
    )


# Include routers
app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(logging_routes.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(lessons.router)
app.include_router(sections.router)
app.include_router(contents.router)
app.include_router(quizzes.router)
app.include_router(attempts.router)
app.include_router(results.router)
app.include_router(progress.router)
app.include_router(models.router)
app.include_router(generation.router)
app.include_router(performance.router)
app.include_router(dashboard.router)
app.include_router(history.router)


@app.get("/api")
async def root():
    """Root API endpoint"""
    settings = get_settings()
    return {
        "name": settings.app_name,
        "version": __version__,
        "status": "running",
        "environment": settings.app_env,
    }


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "quimica.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.app_env == "development",
    )
