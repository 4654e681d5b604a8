"""
FastAPI application factory
"""
import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from . import __version__
from .admin_routes import router as admin_router
from .auth_routes import router as auth_router
from .billing_routes import router as billing_router
from .config import config
from .content_routes import router as content_router
from .db import get_db
from .exceptions import register_exception_handlers
from .logging_config import RequestIDMiddleware, setup_logging
from .middleware.metrics_middleware import MetricsMiddleware
from .project_routes import router as project_router
from .services.metrics import get_metrics_collector

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    setup_logging(env=config.ENV, log_level=config.LOG_LEVEL)

    app = FastAPI(title="Content Vault API", version=__version__)

    register_exception_handlers(app)

    # Last added runs first: request ID must be set before metrics and handlers log
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestIDMiddleware)

    app.include_router(auth_router)
    app.include_router(content_router)
    app.include_router(project_router)
    app.include_router(billing_router)
    app.include_router(admin_router)

    @app.get("/")
    async def root():
        return {"message": "Content Vault API", "version": __version__}

    @app.get("/health")
    async def health(db: Session = Depends(get_db)):
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "env": config.ENV, "version": config.BUILD_VERSION}

    @app.get("/metrics", response_class=PlainTextResponse)
    async def metrics():
        return get_metrics_collector().format_prometheus()

    logger.info(f"Content Vault API configured (env={config.ENV})")
    return app
