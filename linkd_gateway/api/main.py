"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from linkd_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from linkd_gateway.api.v1 import analytics, fees, float_deposits, reports, transactions
from linkd_gateway.infrastructure.observability.logging import setup_logging
from linkd_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="LinKD Gateway",
        description="Fee, payout and analytics service for the KD to KES back office",
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
    app.include_router(fees.router, prefix="/v1", tags=["fees"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(float_deposits.router, prefix="/v1", tags=["float-deposits"])
    app.include_router(analytics.router, prefix="/v1", tags=["analytics"])
    app.include_router(reports.router, prefix="/v1", tags=["reports"])

    return app


app = create_app()
