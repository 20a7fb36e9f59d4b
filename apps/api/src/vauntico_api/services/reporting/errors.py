"""Error telemetry sinks for failures the pipeline absorbs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from loguru import logger


class ErrorReporter(Protocol):
    def report(self, error: BaseException, *, context: dict[str, Any] | None = None) -> None:
        ...


class LoggingErrorReporter:
    """Ships errors to the structured log stream with their traceback."""

    def report(self, error: BaseException, *, context: dict[str, Any] | None = None) -> None:
        logger.opt(exception=error).bind(**(context or {})).error(
            "Fulfillment error reported",
            error_type=type(error).__name__,
        )


@dataclass
class ReportedError:
    error: BaseException
    context: dict[str, Any] = field(default_factory=dict)


class InMemoryErrorReporter:
    """Keeps reported errors for assertions."""

    def __init__(self) -> None:
        self.reports: list[ReportedError] = []

    def report(self, error: BaseException, *, context: dict[str, Any] | None = None) -> None:
        self.reports.append(ReportedError(error=error, context=dict(context or {})))
