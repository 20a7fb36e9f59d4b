"""Per-request fulfillment orchestration.

Resolve the product, validate the delivery fields, render the email, hand it
to the mailer, then record exactly one metrics event before answering. Business
failures short-circuit the remaining delivery steps but never the recording
step; a metrics write failure is reported and never changes the response.
"""

from __future__ import annotations

import asyncio
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from loguru import logger

from vauntico_api.domain.fulfillment.models import (
    AggregateMetrics,
    DeliveryOutcome,
    ErrorKind,
    FulfillmentRequest,
)
from vauntico_api.observability.tracing import tracer
from vauntico_api.services.catalog.resolver import ProductLookupError, ProductResolver
from vauntico_api.services.metrics.store import MetricsStore
from vauntico_api.services.notifications.backend import Mailer, MailerError
from vauntico_api.services.reporting.errors import ErrorReporter

from .templates import render_delivery_email

DETAIL_MAX_LINES = 5
DETAIL_MAX_CHARS = 300
REDACTED = "***"

_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_DATA: 400,
    ErrorKind.DELIVERY_FAILED: 500,
    ErrorKind.LOOKUP_FAILED: 500,
    ErrorKind.STORE_FAILURE: 500,
    ErrorKind.INTERNAL_ERROR: 500,
}

_ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NOT_FOUND: "Record not found",
    ErrorKind.INVALID_DATA: "Record is missing required delivery fields",
    ErrorKind.DELIVERY_FAILED: "Email delivery failed",
    ErrorKind.LOOKUP_FAILED: "Product lookup failed",
    ErrorKind.STORE_FAILURE: "Metrics store unavailable",
    ErrorKind.INTERNAL_ERROR: "Internal error",
}


@dataclass(frozen=True)
class FulfillmentResult:
    request_id: str
    outcome: DeliveryOutcome
    status_code: int
    body: dict[str, Any]
    metrics: AggregateMetrics | None = None

    @property
    def metrics_recorded(self) -> bool:
        return self.metrics is not None


def describe_exception(exc: BaseException) -> str:
    """Exception headline followed by innermost-first frame summaries."""

    lines = [f"{type(exc).__name__}: {exc}"]
    for frame in reversed(traceback.extract_tb(exc.__traceback__)):
        lines.append(f"at {frame.name} ({Path(frame.filename).name}:{frame.lineno})")
    return "\n".join(lines)


def redact_detail(detail: str | None, secrets: Iterable[str] = ()) -> list[str]:
    if not detail:
        return []
    for secret in secrets:
        if secret:
            detail = detail.replace(secret, REDACTED)
    lines = [line.strip() for line in detail.splitlines() if line.strip()]
    return [line[:DETAIL_MAX_CHARS] for line in lines[:DETAIL_MAX_LINES]]


class FulfillmentPipeline:
    """Turns one ``FulfillmentRequest`` into one delivery attempt and one metric."""

    def __init__(
        self,
        *,
        resolver: ProductResolver,
        mailer: Mailer,
        store: MetricsStore,
        error_reporter: ErrorReporter,
        lookup_timeout_seconds: float = 10.0,
        delivery_timeout_seconds: float = 15.0,
        secrets: Iterable[str] = (),
    ) -> None:
        self._resolver = resolver
        self._mailer = mailer
        self._store = store
        self._error_reporter = error_reporter
        self._lookup_timeout = lookup_timeout_seconds
        self._delivery_timeout = delivery_timeout_seconds
        self._secrets = tuple(secret for secret in secrets if secret)

    async def run(self, request: FulfillmentRequest) -> FulfillmentResult:
        log = logger.bind(request_id=request.request_id, product_ref=request.product_ref)
        log.info("Fulfillment request received")

        with tracer.start_as_current_span("fulfillment.run") as span:
            span.set_attribute("fulfillment.request_id", request.request_id)
            try:
                outcome = await self._deliver(request)
            except Exception as exc:
                self._error_reporter.report(
                    exc,
                    context={"request_id": request.request_id, "stage": "pipeline"},
                )
                outcome = DeliveryOutcome.failure(ErrorKind.INTERNAL_ERROR, describe_exception(exc))

            metrics = await self._record(request, outcome)
            result = self._respond(request, outcome, metrics)
            span.set_attribute("fulfillment.status_code", result.status_code)

        if outcome.succeeded:
            log.info("Fulfillment email sent", message_id=outcome.message_id)
        else:
            log.warning(
                "Fulfillment failed",
                error_kind=outcome.error_kind.value if outcome.error_kind else None,
                error_code=outcome.error_code,
                status_code=result.status_code,
            )
        return result

    async def _deliver(self, request: FulfillmentRequest) -> DeliveryOutcome:
        with tracer.start_as_current_span("fulfillment.resolve"):
            try:
                async with asyncio.timeout(self._lookup_timeout):
                    product = await self._resolver.resolve(request.product_ref)
            except TimeoutError:
                return DeliveryOutcome.failure(
                    ErrorKind.LOOKUP_FAILED,
                    f"Catalog lookup exceeded {self._lookup_timeout}s",
                    code="LookupTimeout",
                )
            except ProductLookupError as exc:
                return DeliveryOutcome.failure(ErrorKind.LOOKUP_FAILED, str(exc), code=exc.code)

        if product is None:
            return DeliveryOutcome.failure(
                ErrorKind.NOT_FOUND,
                f"No product found for reference {request.product_ref!r}",
            )

        recipient = (request.recipient_email or product.delivered_to or "").strip()
        missing = []
        if not recipient:
            missing.append("recipientEmail")
        if not (product.product_name or "").strip():
            missing.append("productName")
        if missing:
            return DeliveryOutcome.failure(
                ErrorKind.INVALID_DATA,
                f"Missing required fields: {', '.join(missing)}",
            )

        template = render_delivery_email(product, recipient, extra_data=request.extra_data)

        with tracer.start_as_current_span("fulfillment.send"):
            try:
                async with asyncio.timeout(self._delivery_timeout):
                    message_id = await self._mailer.send(
                        recipient,
                        template.subject,
                        template.text_body,
                        body_html=template.html_body,
                    )
            except TimeoutError:
                return DeliveryOutcome.failure(
                    ErrorKind.DELIVERY_FAILED,
                    f"Email delivery exceeded {self._delivery_timeout}s",
                    code="DeliveryTimeout",
                )
            except MailerError as exc:
                return DeliveryOutcome.failure(ErrorKind.DELIVERY_FAILED, str(exc), code=exc.code)
            except Exception as exc:
                self._error_reporter.report(
                    exc,
                    context={"request_id": request.request_id, "stage": "deliver"},
                )
                return DeliveryOutcome.failure(ErrorKind.DELIVERY_FAILED, describe_exception(exc))

        return DeliveryOutcome.success(message_id)

    async def _record(
        self,
        request: FulfillmentRequest,
        outcome: DeliveryOutcome,
    ) -> AggregateMetrics | None:
        with tracer.start_as_current_span("fulfillment.record"):
            try:
                return await self._store.record(outcome.succeeded, outcome.error_info)
            except Exception as exc:
                self._error_reporter.report(
                    exc,
                    context={
                        "request_id": request.request_id,
                        "stage": "record",
                        "error_kind": ErrorKind.STORE_FAILURE.value,
                        "delivery_succeeded": outcome.succeeded,
                    },
                )
                return None

    def _respond(
        self,
        request: FulfillmentRequest,
        outcome: DeliveryOutcome,
        metrics: AggregateMetrics | None,
    ) -> FulfillmentResult:
        if outcome.succeeded:
            return FulfillmentResult(
                request_id=request.request_id,
                outcome=outcome,
                status_code=200,
                body={"success": True, "messageId": outcome.message_id},
                metrics=metrics,
            )

        kind = outcome.error_kind or ErrorKind.INTERNAL_ERROR
        body: dict[str, Any] = {
            "success": False,
            "error": _ERROR_MESSAGES[kind],
            "code": outcome.error_code,
        }
        detail = redact_detail(outcome.error_detail, self._secrets)
        if detail:
            body["detail"] = detail
        return FulfillmentResult(
            request_id=request.request_id,
            outcome=outcome,
            status_code=_STATUS_CODES[kind],
            body=body,
            metrics=metrics,
        )


__all__ = [
    "DETAIL_MAX_LINES",
    "FulfillmentPipeline",
    "FulfillmentResult",
    "describe_exception",
    "redact_detail",
]
