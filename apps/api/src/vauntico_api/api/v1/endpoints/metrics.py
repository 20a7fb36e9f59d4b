"""Fulfillment accuracy endpoints for dashboards and health checks."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from vauntico_api.api.dependencies.security import require_service_api_key
from vauntico_api.api.dependencies.services import get_fulfillment_services
from vauntico_api.schemas.fulfillment import MetricsHistoryResponse, MetricsSummaryResponse
from vauntico_api.services.fulfillment import FulfillmentServices
from vauntico_api.services.metrics import MetricsStoreError

router = APIRouter(
    prefix="/metrics",
    tags=["Metrics"],
    dependencies=[Depends(require_service_api_key)],
)


@router.get("", response_model=MetricsSummaryResponse, summary="Current fulfillment accuracy")
async def get_metrics(
    services: FulfillmentServices = Depends(get_fulfillment_services),
) -> dict[str, object]:
    try:
        summary = await services.reader.current()
    except MetricsStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Metrics store unavailable",
        ) from exc
    return summary.as_dict()


@router.get("/history", response_model=MetricsHistoryResponse, summary="Most recent fulfillment events")
async def get_metrics_history(
    limit: int = Query(default=20, ge=1, le=100),
    services: FulfillmentServices = Depends(get_fulfillment_services),
) -> dict[str, object]:
    try:
        events = await services.reader.history(limit)
    except MetricsStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Metrics store unavailable",
        ) from exc
    return {"events": [event.as_dict() for event in events]}
