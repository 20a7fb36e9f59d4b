"""Request/response schemas for fulfillment endpoints."""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from vauntico_api.domain.fulfillment.models import FulfillmentRequest


class FulfillmentRunRequest(BaseModel):
    """Inbound delivery request; unknown keys are kept as the raw payload."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    product_ref: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("productRef", "recordId", "product_ref"),
        description="Catalog record identifier of the purchased product.",
    )
    recipient_email: str = Field(
        default="",
        validation_alias=AliasChoices("recipientEmail", "recipient_email"),
        description="Buyer address; falls back to the record's 'Delivered To' field.",
    )
    request_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("requestId", "request_id"),
    )
    extra_data: str | None = Field(
        default=None,
        validation_alias=AliasChoices("extraData", "extra_data"),
        description="Free text appended to the delivery email.",
    )

    def to_domain(self, *, fallback_request_id: str | None = None) -> FulfillmentRequest:
        raw_payload: dict[str, Any] = dict(self.model_extra or {})
        return FulfillmentRequest(
            request_id=self.request_id or fallback_request_id or uuid4().hex,
            recipient_email=self.recipient_email.strip(),
            product_ref=self.product_ref.strip(),
            raw_payload=raw_payload,
            extra_data=self.extra_data,
        )


class FulfillmentRunResponse(BaseModel):
    success: bool
    messageId: str | None = None
    error: str | None = None
    code: str | None = None
    detail: list[str] | None = None


class MetricsSummaryResponse(BaseModel):
    accuracyRate: float
    total: int
    successful: int
    status: str


class MetricEventResponse(BaseModel):
    timestamp: str
    status: str
    errorCode: str | None = None
    tag: str


class MetricsHistoryResponse(BaseModel):
    events: list[MetricEventResponse]
