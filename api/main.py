"""Kenya Criminal Legal Agent API.

FastAPI application serving legal queries, document analysis, the WhatsApp
webhook and operator endpoints.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from api.dependencies import Services, get_services, shutdown_services
from api.models import HealthResponse
from api.routers import (
    admin as admin_router,
    documents as documents_router,
    query as query_router,
    research as research_router,
    whatsapp as whatsapp_router,
)
from libs.common.settings import get_settings

VERSION = "1.0.0"


def configure_logging(log_level: str) -> None:
    logging.basicConfig(format="%(message)s", level=log_level)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Cancel background tasks still running at shutdown
    await shutdown_services()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Kenya Criminal Legal Agent API",
        description="Legal question answering and document analysis for Kenyan criminal law",
        version=VERSION,
        default_response_class=ORJSONResponse,
        debug=settings.debug,
        lifespan=lifespan,
    )

    cors_origins = ["*"] if settings.is_development else settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=False if settings.is_development else True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_request_size(request: Request, call_next):
        """Reject bodies larger than the document limit plus form overhead."""
        max_size = settings.max_document_size + 1024 * 1024

        if request.method in ["POST", "PUT", "PATCH"]:
            content_length = request.headers.get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > max_size:
                return ORJSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={
                        "error_code": "REQUEST_TOO_LARGE",
                        "message": f"Request body too large. Maximum size: {max_size} bytes",
                    },
                )

        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing and structured data."""
        start_time = time.time()
        request_id = request.headers.get("X-Request-ID") or f"req_{uuid.uuid4().hex[:16]}"
        request.state.request_id = request_id

        logger.info(
            "Request started",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            user_agent=request.headers.get("user-agent"),
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                request_id=request_id,
                error=str(e),
                process_time_ms=round((time.time() - start_time) * 1000, 2),
                exc_info=True,
            )
            raise

        logger.info(
            "Request completed",
            request_id=request_id,
            status_code=response.status_code,
            process_time_ms=round((time.time() - start_time) * 1000, 2),
        )
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(query_router.router, prefix="/api", tags=["Legal Query"])
    app.include_router(documents_router.router, prefix="/api", tags=["Documents"])
    app.include_router(whatsapp_router.router, prefix="/api", tags=["WhatsApp"])
    app.include_router(research_router.router, prefix="/api", tags=["Research"])
    app.include_router(admin_router.router, prefix="/api", tags=["Admin"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {"message": "Kenya Criminal Legal Agent API is running."}

    @app.get("/healthz", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint for liveness probes.

        Example:
            ```bash
            curl http://localhost:8000/healthz
            ```
        """
        return HealthResponse(status="healthy", service="api", version=VERSION)

    @app.get("/readyz", response_model=HealthResponse, tags=["Health"])
    async def readiness_check(services: Services = Depends(get_services)) -> HealthResponse:
        """Readiness check that builds the services and reports the cache backend."""
        return HealthResponse(
            status="ready",
            service="api",
            version=VERSION,
            details={
                "cache": type(services.cache).__name__,
                "whatsapp": "simulated" if services.transport.simulate else "live",
                "pending_tasks": str(len(services.runner)),
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
