"""Durable row backing the fulfillment accuracy log."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, JSON, String

from vauntico_api.db.base import Base


class FulfillmentMetricsLog(Base):
    """Single keyed record holding totals and the newest-first event window."""

    __tablename__ = "fulfillment_metrics_log"

    log_key = Column(String(64), primary_key=True)
    total = Column(Integer, nullable=False, default=0)
    successful = Column(Integer, nullable=False, default=0)
    accuracy_rate = Column(Float, nullable=False, default=0.0)
    history = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=0)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def as_payload(self) -> dict[str, object]:
        return {
            "total": self.total,
            "successful": self.successful,
            "accuracyRate": self.accuracy_rate,
            "history": self.history,
        }
