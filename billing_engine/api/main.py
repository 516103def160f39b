"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from billing_engine.api.middleware import RequestIDMiddleware, MetricsMiddleware
from billing_engine.api.v1 import due_date, late_fee, records, stats
from billing_engine.infrastructure.observability.logging import setup_logging
from billing_engine.config import settings

# Setup structured logging
setup_logging(settings.log_level, service_name=settings.service_name)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Billing Lifecycle Engine",
        description="Late fees, due-date cascades, monthly billing records and stats",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(late_fee.router, prefix="/v1", tags=["late-fees"])
    app.include_router(due_date.router, prefix="/v1", tags=["due-dates"])
    app.include_router(records.router, prefix="/v1", tags=["records"])
    app.include_router(stats.router, prefix="/v1", tags=["stats"])

    return app


app = create_app()
