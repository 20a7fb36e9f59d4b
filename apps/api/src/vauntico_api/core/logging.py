from __future__ import annotations

import json
import logging
import sys
from typing import Any

from loguru import logger
from opentelemetry import trace

_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "aiosqlite")


class InterceptHandler(logging.Handler):
    """Forward stdlib records (uvicorn, SQLAlchemy, httpx) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - bridging glue
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.bind(logger_name=record.name).opt(depth=6, exception=record.exc_info).log(
            level, "{}", record.getMessage()
        )


def _trace_ids() -> dict[str, str]:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return {}
    return {
        "trace_id": f"{span_context.trace_id:032x}",
        "span_id": f"{span_context.span_id:016x}",
    }


def _json_sink(metadata: dict[str, str]):
    def sink(message: Any) -> None:
        record = message.record
        extra = dict(record["extra"])
        payload: dict[str, Any] = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name.lower(),
            "message": record["message"],
            "logger": extra.pop("logger_name", record["name"]),
            **metadata,
            **_trace_ids(),
            **extra,
        }
        exception = record["exception"]
        if exception is not None and exception.type is not None:
            payload["exception"] = {"type": exception.type.__name__, "message": str(exception.value)}
        sys.stdout.write(json.dumps(payload, default=str) + "\n")

    return sink


def configure_logging(*, service_name: str, environment: str, version: str) -> None:
    """Send every log line to stdout as one JSON object tagged with the service identity."""

    logger.remove()
    logger.add(
        _json_sink({"service": service_name, "environment": environment, "version": version}),
        backtrace=False,
        diagnose=False,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
