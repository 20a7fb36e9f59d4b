"""Builds fulfillment collaborators from application settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable

import httpx
from loguru import logger

from vauntico_api.core.settings import Settings
from vauntico_api.services.catalog.resolver import (
    SAMPLE_PRODUCT,
    AirtableProductResolver,
    ProductResolver,
    StaticProductResolver,
)
from vauntico_api.services.metrics.reader import MetricsReader
from vauntico_api.services.metrics.store import (
    DatabaseMetricsStore,
    InMemoryMetricsStore,
    JsonFileMetricsStore,
    MetricsStore,
)
from vauntico_api.services.notifications.backend import (
    InMemoryMailer,
    Mailer,
    ResendMailer,
    SMTPMailer,
)
from vauntico_api.services.reporting.errors import ErrorReporter, LoggingErrorReporter

from .pipeline import FulfillmentPipeline


class ConfigurationError(RuntimeError):
    """Raised at startup when a selected backend lacks its credentials."""


@dataclass
class FulfillmentServices:
    store: MetricsStore
    reader: MetricsReader
    pipeline: FulfillmentPipeline
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    async def aclose(self) -> None:
        for close in self.closers:
            await close()


def _require(settings: Settings, *names: str) -> list[str]:
    return [name for name in names if not getattr(settings, name)]


def build_metrics_store(settings: Settings, session_factory=None) -> MetricsStore:
    backend = settings.metrics_store_backend
    if backend == "memory":
        return InMemoryMetricsStore(history_cap=settings.metrics_history_cap)
    if backend == "file":
        return JsonFileMetricsStore(Path(settings.metrics_log_path), history_cap=settings.metrics_history_cap)

    if session_factory is None:
        from vauntico_api.db.session import async_session

        session_factory = async_session
    return DatabaseMetricsStore(
        session_factory,
        log_key=settings.metrics_log_key,
        history_cap=settings.metrics_history_cap,
        max_retries=settings.metrics_store_max_retries,
    )


def build_product_resolver(settings: Settings, http_client: httpx.AsyncClient) -> ProductResolver:
    if settings.catalog_backend == "airtable":
        missing = _require(settings, "airtable_api_key", "airtable_base_id", "airtable_table_name")
        if not missing:
            return AirtableProductResolver(
                api_key=settings.airtable_api_key or "",
                base_id=settings.airtable_base_id or "",
                table_name=settings.airtable_table_name or "",
                api_url=settings.airtable_api_url,
                http_client=http_client,
            )
        if settings.environment != "development":
            raise ConfigurationError(f"Airtable catalog requires {', '.join(missing)}")
        logger.warning("Airtable credentials missing; serving sample catalog", missing=missing)

    return StaticProductResolver({SAMPLE_PRODUCT.record_id: SAMPLE_PRODUCT})


def build_mailer(settings: Settings, http_client: httpx.AsyncClient) -> Mailer:
    backend = settings.mailer_backend
    if backend == "resend":
        missing = _require(settings, "resend_api_key", "sender_email")
        if not missing:
            return ResendMailer(
                api_key=settings.resend_api_key or "",
                sender_email=settings.sender_email or "",
                api_url=settings.resend_api_url,
                http_client=http_client,
            )
    elif backend == "smtp":
        missing = _require(settings, "smtp_host", "sender_email")
        if not missing:
            return SMTPMailer(
                host=settings.smtp_host or "",
                port=settings.smtp_port,
                username=settings.smtp_username,
                password=settings.smtp_password,
                use_tls=settings.smtp_use_tls,
                sender_email=settings.sender_email or "",
                timeout_seconds=settings.mailer_timeout_seconds,
            )
    else:
        return InMemoryMailer()

    if settings.environment != "development":
        raise ConfigurationError(f"{backend} mailer requires {', '.join(missing)}")
    logger.warning("Mailer credentials missing; capturing emails in memory", backend=backend, missing=missing)
    return InMemoryMailer()


def build_fulfillment_services(
    settings: Settings,
    *,
    store: MetricsStore | None = None,
    resolver: ProductResolver | None = None,
    mailer: Mailer | None = None,
    error_reporter: ErrorReporter | None = None,
    session_factory=None,
) -> FulfillmentServices:
    """Assemble the pipeline; explicit collaborators take precedence over settings."""

    closers: list[Callable[[], Awaitable[None]]] = []
    if resolver is None or mailer is None:
        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                max(settings.catalog_timeout_seconds, settings.mailer_timeout_seconds),
                connect=5.0,
            )
        )
        closers.append(http_client.aclose)
        resolver = resolver or build_product_resolver(settings, http_client)
        mailer = mailer or build_mailer(settings, http_client)

    store = store or build_metrics_store(settings, session_factory)
    pipeline = FulfillmentPipeline(
        resolver=resolver,
        mailer=mailer,
        store=store,
        error_reporter=error_reporter or LoggingErrorReporter(),
        lookup_timeout_seconds=settings.catalog_timeout_seconds,
        delivery_timeout_seconds=settings.mailer_timeout_seconds,
        secrets=settings.secret_values(),
    )
    reader = MetricsReader(
        store,
        green_threshold=settings.metrics_green_threshold,
        amber_threshold=settings.metrics_amber_threshold,
    )
    return FulfillmentServices(store=store, reader=reader, pipeline=pipeline, closers=closers)


__all__ = [
    "ConfigurationError",
    "FulfillmentServices",
    "build_fulfillment_services",
    "build_mailer",
    "build_metrics_store",
    "build_product_resolver",
]
