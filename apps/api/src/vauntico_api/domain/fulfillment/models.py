"""Value types shared by the fulfillment pipeline and the metrics log."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

HISTORY_CAP = 100
METRIC_TAG = "TrustScore_Update"


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    INVALID_DATA = "InvalidData"
    DELIVERY_FAILED = "DeliveryFailed"
    LOOKUP_FAILED = "LookupFailed"
    STORE_FAILURE = "StoreFailure"
    UNAUTHORIZED = "Unauthorized"
    INTERNAL_ERROR = "InternalError"


class MetricStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    """Diagnostic attached to a failed attempt."""

    code: str
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class FulfillmentRequest:
    """One inbound delivery attempt."""

    request_id: str
    recipient_email: str
    product_ref: str
    raw_payload: Mapping[str, Any] = field(default_factory=dict)
    extra_data: str | None = None


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    message_id: str | None = None
    error_kind: ErrorKind | None = None
    error_code: str | None = None
    error_detail: str | None = None

    @classmethod
    def success(cls, message_id: str) -> "DeliveryOutcome":
        return cls(message_id=message_id)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        detail: str | None = None,
        *,
        code: str | None = None,
    ) -> "DeliveryOutcome":
        return cls(error_kind=kind, error_code=code or kind.value, error_detail=detail)

    @property
    def succeeded(self) -> bool:
        return self.error_kind is None

    @property
    def error_info(self) -> ErrorInfo | None:
        if self.succeeded:
            return None
        return ErrorInfo(code=self.error_code or "", detail=self.error_detail)


@dataclass(frozen=True, slots=True)
class MetricEvent:
    timestamp: str
    status: MetricStatus
    error_code: str | None = None
    tag: str = METRIC_TAG

    def as_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "status": self.status.value,
            "errorCode": self.error_code,
            "tag": self.tag,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "MetricEvent":
        timestamp = payload["timestamp"]
        if not isinstance(timestamp, str):
            raise ValueError("timestamp must be an ISO-8601 string")
        parse_timestamp(timestamp)
        error_code = payload.get("errorCode")
        return cls(
            timestamp=timestamp,
            status=MetricStatus(payload["status"]),
            error_code=str(error_code) if error_code is not None else None,
            tag=str(payload.get("tag") or METRIC_TAG),
        )


@dataclass(frozen=True, slots=True)
class AggregateMetrics:
    """Running totals plus the newest-first history window."""

    total: int = 0
    successful: int = 0
    accuracy_rate: float = 0.0
    history: tuple[MetricEvent, ...] = ()

    @classmethod
    def empty(cls) -> "AggregateMetrics":
        return cls()

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "accuracyRate": self.accuracy_rate,
            "history": [event.as_dict() for event in self.history],
        }

    @classmethod
    def from_dict(cls, payload: Any, *, history_cap: int = HISTORY_CAP) -> "AggregateMetrics":
        """Parse a persisted record, raising ``ValueError`` when it is not trustworthy."""

        if not isinstance(payload, Mapping):
            raise ValueError("metrics payload must be an object")
        try:
            total = payload["total"]
            successful = payload["successful"]
            raw_history = payload.get("history") or []
        except KeyError as exc:
            raise ValueError(f"missing field {exc.args[0]!r}") from exc
        if isinstance(total, bool) or isinstance(successful, bool):
            raise ValueError("counters must be integers")
        if not isinstance(total, int) or not isinstance(successful, int):
            raise ValueError("counters must be integers")
        if total < 0 or not 0 <= successful <= total:
            raise ValueError("counters out of range")
        if not isinstance(raw_history, list):
            raise ValueError("history must be a list")
        try:
            history = tuple(MetricEvent.from_dict(item) for item in raw_history[:history_cap])
        except (KeyError, TypeError) as exc:
            raise ValueError("malformed history entry") from exc
        if len(history) > total:
            raise ValueError("history longer than total")
        return cls(
            total=total,
            successful=successful,
            accuracy_rate=compute_accuracy(successful, total),
            history=history,
        )


def compute_accuracy(successful: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return (successful / total) * 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def apply_outcome(
    metrics: AggregateMetrics,
    success: bool,
    error: ErrorInfo | None = None,
    *,
    now: datetime | None = None,
    history_cap: int = HISTORY_CAP,
) -> AggregateMetrics:
    """Fold one attempt into the aggregate, keeping the history window bounded."""

    moment = now or utcnow()
    if metrics.history:
        newest = parse_timestamp(metrics.history[0].timestamp)
        if newest > moment:
            moment = newest

    event = MetricEvent(
        timestamp=format_timestamp(moment),
        status=MetricStatus.SUCCESS if success else MetricStatus.FAILED,
        error_code=error.code if error is not None else None,
    )
    total = metrics.total + 1
    successful = metrics.successful + (1 if success else 0)
    history = (event,) + metrics.history
    return AggregateMetrics(
        total=total,
        successful=successful,
        accuracy_rate=compute_accuracy(successful, total),
        history=history[:history_cap],
    )
