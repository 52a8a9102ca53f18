"""FastAPI application factory"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from cambio_gateway.api.middleware import MetricsMiddleware, RequestIDMiddleware, WindowStatusMiddleware
from cambio_gateway.api.v1 import conversion, rates, transactions, window
from cambio_gateway.infrastructure.database.session import SessionLocal, init_storage
from cambio_gateway.infrastructure.observability.logging import setup_logging
from cambio_gateway.utils.scheduler import AsyncioScheduler
from cambio_gateway.workstation import Workstation, build_workstation
from cambio_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app(workstation: Workstation | None = None) -> FastAPI:
    """Create and configure FastAPI application"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.workstation is None:
            init_storage()
            app.state.workstation = build_workstation(SessionLocal, AsyncioScheduler())
        app.state.workstation.start()
        yield
        app.state.workstation.shutdown()

    app = FastAPI(
        title="Cambio Teller Gateway",
        description="Teller-window session and currency conversion service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.workstation = workstation

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(WindowStatusMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        current = app.state.workstation
        status = current.session.status.value if current is not None else None
        return {"status": "ok", "service": settings.service_name, "window": status}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(window.router, prefix="/v1", tags=["window"])
    app.include_router(rates.router, prefix="/v1", tags=["rates"])
    app.include_router(conversion.router, prefix="/v1", tags=["conversion"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])

    return app


app = create_app()
