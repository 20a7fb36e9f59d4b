import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

from vauntico_api.app import create_app  # noqa: E402
from vauntico_api.core.settings import settings  # noqa: E402
from vauntico_api.db.session import build_engine, init_models  # noqa: E402
from vauntico_api.services.catalog import ProductRecord, StaticProductResolver  # noqa: E402
from vauntico_api.services.fulfillment import FulfillmentPipeline, build_fulfillment_services  # noqa: E402
from vauntico_api.services.metrics import InMemoryMetricsStore  # noqa: E402
from vauntico_api.services.notifications import InMemoryMailer  # noqa: E402
from vauntico_api.services.reporting import InMemoryErrorReporter  # noqa: E402

SERVICE_KEY = "test-service-key"
WEBHOOK_SECRET = "test-webhook-secret"


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'metrics.db'}")
    await init_models(engine)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def product() -> ProductRecord:
    return ProductRecord(
        record_id="rec123",
        product_name="Creator Playbook",
        product_type="Digital",
        price_zar=499.0,
        product_description="A step-by-step creator business guide.",
        tags=("guide", "creator"),
        delivery_format="PDF",
        download_link="https://cdn.example.com/playbook.pdf",
        status="Available",
        order_id="ORD-9001",
        delivered_to="buyer@example.com",
        gross_revenue_zar=499.0,
        is_high_value=True,
        product_summary_ai="Everything a new creator needs.",
        suggested_marketing_angle_ai="Launch faster.",
        short_description="Launch your creator business.",
    )


@pytest.fixture
def resolver(product) -> StaticProductResolver:
    resolver = StaticProductResolver()
    resolver.add(product)
    return resolver


@pytest.fixture
def mailer() -> InMemoryMailer:
    return InMemoryMailer()


@pytest.fixture
def reporter() -> InMemoryErrorReporter:
    return InMemoryErrorReporter()


@pytest.fixture
def store() -> InMemoryMetricsStore:
    return InMemoryMetricsStore()


@pytest.fixture
def pipeline(resolver, mailer, store, reporter) -> FulfillmentPipeline:
    return FulfillmentPipeline(
        resolver=resolver,
        mailer=mailer,
        store=store,
        error_reporter=reporter,
        lookup_timeout_seconds=0.5,
        delivery_timeout_seconds=0.5,
        secrets=[SERVICE_KEY, "re_live_secret"],
    )


@pytest.fixture
def secured_settings(monkeypatch):
    monkeypatch.setattr(settings, "service_api_key", SERVICE_KEY)
    monkeypatch.setattr(settings, "webhook_secret", WEBHOOK_SECRET)
    return settings


@pytest_asyncio.fixture
async def api_client(secured_settings, resolver, mailer, store, reporter):
    services = build_fulfillment_services(
        secured_settings,
        store=store,
        resolver=resolver,
        mailer=mailer,
        error_reporter=reporter,
    )
    app = create_app(services)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
