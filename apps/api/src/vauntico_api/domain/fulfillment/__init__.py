"""Fulfillment domain types."""

from .models import (  # noqa: F401
    HISTORY_CAP,
    METRIC_TAG,
    AggregateMetrics,
    DeliveryOutcome,
    ErrorInfo,
    ErrorKind,
    FulfillmentRequest,
    MetricEvent,
    MetricStatus,
    apply_outcome,
    compute_accuracy,
)
