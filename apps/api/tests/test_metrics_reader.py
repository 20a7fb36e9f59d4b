from __future__ import annotations

import pytest

from vauntico_api.domain.fulfillment.models import AggregateMetrics, ErrorInfo
from vauntico_api.services.metrics import InMemoryMetricsStore, MetricsReader


@pytest.mark.asyncio
async def test_empty_log_reports_no_data():
    reader = MetricsReader(InMemoryMetricsStore())

    summary = await reader.current()

    assert summary.as_dict() == {"accuracyRate": 0.0, "total": 0, "successful": 0, "status": "NO_DATA"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("successes", "failures", "expected"),
    [(19, 1, "GREEN"), (9, 1, "AMBER"), (1, 1, "RED"), (0, 3, "RED")],
)
async def test_status_follows_accuracy_thresholds(successes, failures, expected):
    store = InMemoryMetricsStore()
    for _ in range(successes):
        await store.record(True)
    for _ in range(failures):
        await store.record(False, ErrorInfo(code="DeliveryFailed"))

    summary = await MetricsReader(store, green_threshold=95.0, amber_threshold=80.0).current()

    assert summary.status == expected
    assert summary.total == successes + failures


@pytest.mark.asyncio
async def test_reader_does_not_mutate_the_log():
    store = InMemoryMetricsStore()
    await store.record(True)
    reader = MetricsReader(store)

    await reader.current()
    await reader.history(5)

    assert (await store.snapshot()).total == 1


@pytest.mark.asyncio
async def test_history_returns_newest_first_up_to_limit():
    store = InMemoryMetricsStore()
    for code in ("a", "b", "c"):
        await store.record(False, ErrorInfo(code=code))

    events = await MetricsReader(store).history(2)

    assert [event.error_code for event in events] == ["c", "b"]


def test_thresholds_must_be_ordered():
    with pytest.raises(ValueError):
        MetricsReader(InMemoryMetricsStore(AggregateMetrics.empty()), green_threshold=50, amber_threshold=90)
