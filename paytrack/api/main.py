"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from paytrack.api.errors import register_exception_handlers
from paytrack.api.middleware import RequestIDMiddleware, MetricsMiddleware
from paytrack.api.v1 import budget, cashflow, obligations, payments, schedule
from paytrack.infrastructure.observability.logging import setup_logging
from paytrack.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Paytrack",
        description="Payment obligations, settlement schedules and cash-flow projection",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(obligations.router, prefix="/v1", tags=["obligations"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(schedule.router, prefix="/v1", tags=["schedule"])
    app.include_router(budget.router, prefix="/v1", tags=["budget"])
    app.include_router(cashflow.router, prefix="/v1", tags=["cashflow"])

    return app


app = create_app()
