from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from vauntico_api.core.settings import settings
from vauntico_api.db.session import init_models
from vauntico_api.services.fulfillment import FulfillmentServices, build_fulfillment_services
from vauntico_api.services.metrics import DatabaseMetricsStore
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing


APP_VERSION = "0.1.0"
SERVICE_NAME = "vauntico-fulfillment"


@asynccontextmanager
async def lifespan(app: FastAPI):
    services: FulfillmentServices = app.state.fulfillment_services

    if app.state.auto_create_schema and isinstance(services.store, DatabaseMetricsStore):
        await init_models()
        logger.info("Metrics schema ensured", database_url=settings.database_url.split("://", 1)[0])

    logger.info(
        "Fulfillment engine started",
        catalog_backend=settings.catalog_backend,
        mailer_backend=settings.mailer_backend,
        metrics_store_backend=settings.metrics_store_backend,
        service_key_configured=bool(settings.service_api_key),
        webhook_secret_configured=bool(settings.webhook_secret),
        airtable_configured=bool(settings.airtable_api_key and settings.airtable_base_id),
    )

    try:
        yield
    finally:
        await services.aclose()
        logger.info("Fulfillment engine stopped")


async def _http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    detail = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body", "detail": detail[:5]},
    )


def create_app(services: FulfillmentServices | None = None) -> FastAPI:
    """Application factory for the fulfillment service.

    ``services`` lets callers (tests, embedding apps) supply pre-built
    collaborators; otherwise they are assembled from settings.
    """
    configure_logging(
        service_name=SERVICE_NAME,
        environment=settings.environment,
        version=APP_VERSION,
    )

    app = FastAPI(
        title="Vauntico Fulfillment API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    if settings.tracing_enabled:
        configure_tracing(
            app,
            service_name=SERVICE_NAME,
            service_version=APP_VERSION,
            environment=settings.environment,
        )

    app.state.auto_create_schema = services is None and settings.database_auto_create
    app.state.fulfillment_services = services or build_fulfillment_services(settings)

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.include_router(api_router)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "message": "Vauntico Fulfillment Engine is live",
            "environment": settings.environment,
            "version": APP_VERSION,
        }

    return app
