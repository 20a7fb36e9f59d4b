"""Fulfillment accuracy metrics."""

from .reader import MetricsReader, MetricsSummary
from .store import (
    DatabaseMetricsStore,
    InMemoryMetricsStore,
    JsonFileMetricsStore,
    MetricsStore,
    MetricsStoreError,
)

__all__ = [
    "DatabaseMetricsStore",
    "InMemoryMetricsStore",
    "JsonFileMetricsStore",
    "MetricsReader",
    "MetricsStore",
    "MetricsStoreError",
    "MetricsSummary",
]
