"""Durable fulfillment accuracy log.

Every implementation serializes ``record`` end to end (load, fold, persist) so
concurrent fulfillment requests never overwrite each other's increments. The
database store additionally guards the persist step with a version
compare-and-swap so separate worker processes sharing one database stay
consistent.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Protocol

from loguru import logger
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vauntico_api.domain.fulfillment.models import (
    HISTORY_CAP,
    AggregateMetrics,
    ErrorInfo,
    ErrorKind,
    apply_outcome,
)
from vauntico_api.models.fulfillment_metrics import FulfillmentMetricsLog

DEFAULT_LOG_KEY = "fulfillment_accuracy"


class MetricsStoreError(RuntimeError):
    """Raised when the metrics log cannot be read or persisted."""

    code = ErrorKind.STORE_FAILURE.value

    def __init__(self, message: str, *, backend: str | None = None) -> None:
        super().__init__(message)
        self.backend = backend


class MetricsStore(Protocol):
    async def record(self, success: bool, error: ErrorInfo | None = None) -> AggregateMetrics:
        ...

    async def snapshot(self) -> AggregateMetrics:
        ...


def _log_update(backend: str, metrics: AggregateMetrics) -> None:
    logger.info(
        "Fulfillment metrics updated",
        backend=backend,
        accuracy_rate=round(metrics.accuracy_rate, 2),
        total=metrics.total,
        successful=metrics.successful,
    )


def _decode(payload: Any, *, backend: str, history_cap: int) -> AggregateMetrics:
    try:
        return AggregateMetrics.from_dict(payload, history_cap=history_cap)
    except ValueError as exc:
        logger.warning("Metrics log unreadable; starting from zero", backend=backend, error=str(exc))
        return AggregateMetrics.empty()


class InMemoryMetricsStore:
    """Process-local store used by tests and the ``memory`` backend."""

    def __init__(
        self,
        initial: AggregateMetrics | None = None,
        *,
        history_cap: int = HISTORY_CAP,
    ) -> None:
        self._metrics = initial or AggregateMetrics.empty()
        self._history_cap = history_cap
        self._lock = asyncio.Lock()

    async def record(self, success: bool, error: ErrorInfo | None = None) -> AggregateMetrics:
        async with self._lock:
            self._metrics = apply_outcome(
                self._metrics, success, error, history_cap=self._history_cap
            )
            metrics = self._metrics
        _log_update("memory", metrics)
        return metrics

    async def snapshot(self) -> AggregateMetrics:
        return self._metrics


class JsonFileMetricsStore:
    """Whole-record JSON file, replaced atomically on every write."""

    def __init__(self, path: str | os.PathLike[str], *, history_cap: int = HISTORY_CAP) -> None:
        self._path = Path(path)
        self._history_cap = history_cap
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def record(self, success: bool, error: ErrorInfo | None = None) -> AggregateMetrics:
        async with self._lock:
            current = await asyncio.to_thread(self._load)
            updated = apply_outcome(current, success, error, history_cap=self._history_cap)
            await asyncio.to_thread(self._persist, updated)
        _log_update("file", updated)
        return updated

    async def snapshot(self) -> AggregateMetrics:
        return await asyncio.to_thread(self._load)

    def _load(self) -> AggregateMetrics:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return AggregateMetrics.empty()
        except OSError as exc:
            raise MetricsStoreError(f"Unable to read metrics log: {exc}", backend="file") from exc

        try:
            payload = json.loads(raw)
        except ValueError as exc:
            logger.warning("Metrics log is not valid UTF-8 JSON; starting from zero", path=str(self._path), error=str(exc))
            return AggregateMetrics.empty()
        return _decode(payload, backend="file", history_cap=self._history_cap)

    def _persist(self, metrics: AggregateMetrics) -> None:
        serialized = json.dumps(metrics.as_dict(), indent=2)
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{self._path.name}.", suffix=".tmp")
        except OSError as exc:
            raise MetricsStoreError(f"Unable to write metrics log: {exc}", backend="file") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(serialized)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise MetricsStoreError(f"Unable to write metrics log: {exc}", backend="file") from exc


class DatabaseMetricsStore:
    """Single keyed row in ``fulfillment_metrics_log``."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        *,
        log_key: str = DEFAULT_LOG_KEY,
        history_cap: int = HISTORY_CAP,
        max_retries: int = 5,
    ) -> None:
        self._session_factory = session_factory
        self._log_key = log_key
        self._history_cap = history_cap
        self._max_retries = max(1, max_retries)
        self._lock = asyncio.Lock()

    async def snapshot(self) -> AggregateMetrics:
        try:
            async with self._session_factory() as session:
                row = await session.get(FulfillmentMetricsLog, self._log_key)
                payload = row.as_payload() if row is not None else None
        except SQLAlchemyError as exc:
            raise MetricsStoreError(f"Unable to load metrics log: {exc}", backend="database") from exc

        if payload is None:
            return AggregateMetrics.empty()
        return _decode(payload, backend="database", history_cap=self._history_cap)

    async def record(self, success: bool, error: ErrorInfo | None = None) -> AggregateMetrics:
        async with self._lock:
            for attempt in range(1, self._max_retries + 1):
                try:
                    updated = await self._try_record(success, error)
                except SQLAlchemyError as exc:
                    raise MetricsStoreError(
                        f"Unable to persist metrics log: {exc}", backend="database"
                    ) from exc
                if updated is not None:
                    _log_update("database", updated)
                    return updated
                logger.warning(
                    "Metrics log write conflict; retrying",
                    log_key=self._log_key,
                    attempt=attempt,
                )

        raise MetricsStoreError(
            f"Metrics log update conflicted {self._max_retries} times", backend="database"
        )

    async def _try_record(self, success: bool, error: ErrorInfo | None) -> AggregateMetrics | None:
        """One load/fold/compare-and-swap cycle; ``None`` signals a lost race."""

        async with self._session_factory() as session:
            row = await session.get(FulfillmentMetricsLog, self._log_key)
            if row is None:
                current = AggregateMetrics.empty()
                version = None
            else:
                current = _decode(row.as_payload(), backend="database", history_cap=self._history_cap)
                version = row.version

            updated = apply_outcome(current, success, error, history_cap=self._history_cap)
            values = {
                "total": updated.total,
                "successful": updated.successful,
                "accuracy_rate": updated.accuracy_rate,
                "history": [event.as_dict() for event in updated.history],
                "updated_at": datetime.now(timezone.utc),
            }

            if version is None:
                session.add(FulfillmentMetricsLog(log_key=self._log_key, version=1, **values))
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    return None
                return updated

            stmt = (
                update(FulfillmentMetricsLog)
                .where(
                    FulfillmentMetricsLog.log_key == self._log_key,
                    FulfillmentMetricsLog.version == version,
                )
                .values(version=version + 1, **values)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            if result.rowcount != 1:
                await session.rollback()
                return None
            await session.commit()
            return updated


__all__ = [
    "DEFAULT_LOG_KEY",
    "DatabaseMetricsStore",
    "InMemoryMetricsStore",
    "JsonFileMetricsStore",
    "MetricsStore",
    "MetricsStoreError",
]
