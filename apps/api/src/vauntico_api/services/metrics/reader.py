"""Read-only projection of the fulfillment accuracy log."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from vauntico_api.domain.fulfillment.models import MetricEvent

from .store import MetricsStore


@dataclass(frozen=True, slots=True)
class MetricsSummary:
    accuracy_rate: float
    total: int
    successful: int
    status: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "accuracyRate": round(self.accuracy_rate, 2),
            "total": self.total,
            "successful": self.successful,
            "status": self.status,
        }


class MetricsReader:
    """Exposes the current accuracy rate to dashboards and health checks."""

    def __init__(
        self,
        store: MetricsStore,
        *,
        green_threshold: float = 95.0,
        amber_threshold: float = 80.0,
    ) -> None:
        if amber_threshold > green_threshold:
            raise ValueError("amber_threshold must not exceed green_threshold")
        self._store = store
        self._green_threshold = green_threshold
        self._amber_threshold = amber_threshold

    async def current(self) -> MetricsSummary:
        metrics = await self._store.snapshot()
        return MetricsSummary(
            accuracy_rate=metrics.accuracy_rate,
            total=metrics.total,
            successful=metrics.successful,
            status=self._classify(metrics.total, metrics.accuracy_rate),
        )

    async def history(self, limit: int = 20) -> list[MetricEvent]:
        metrics = await self._store.snapshot()
        return list(metrics.history[: max(0, limit)])

    def _classify(self, total: int, accuracy_rate: float) -> str:
        if total == 0:
            return "NO_DATA"
        if accuracy_rate >= self._green_threshold:
            return "GREEN"
        if accuracy_rate >= self._amber_threshold:
            return "AMBER"
        return "RED"
