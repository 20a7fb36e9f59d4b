"""Product catalog lookups for fulfillment."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol
from urllib.parse import quote

import httpx
from loguru import logger


class ProductLookupError(RuntimeError):
    """Raised when the catalog cannot answer (outage, auth, malformed payload)."""

    def __init__(self, message: str, *, code: str = "LookupFailed", status_code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class DownloadFile:
    url: str
    filename: str


@dataclass(frozen=True, slots=True)
class ProductRecord:
    """Delivery-relevant fields of one purchased product."""

    record_id: str
    product_name: str | None = None
    product_type: str | None = None
    price_zar: float | None = None
    product_description: str | None = None
    tags: tuple[str, ...] = ()
    delivery_format: str | None = None
    download_link: str | None = None
    download_file: DownloadFile | None = None
    status: str | None = None
    order_id: str | None = None
    delivered_to: str | None = None
    gross_revenue_zar: float | None = None
    is_high_value: bool | None = None
    product_summary_ai: str | None = None
    suggested_marketing_angle_ai: str | None = None
    short_description: str | None = None
    raw_fields: Mapping[str, Any] = field(default_factory=dict)


class ProductResolver(Protocol):
    async def resolve(self, product_ref: str) -> ProductRecord | None:
        """Return the product for ``product_ref`` or ``None`` when it does not exist."""
        ...


def _clean_str(value: Any) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _coerce_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _coerce_tags(value: Any) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(item).strip() for item in value if str(item).strip())
    cleaned = _clean_str(value)
    return (cleaned,) if cleaned else ()


def _coerce_download_file(value: Any) -> DownloadFile | None:
    if not isinstance(value, list) or not value:
        return None
    first = value[0]
    if not isinstance(first, Mapping):
        return None
    url = _clean_str(first.get("url"))
    if not url:
        return None
    return DownloadFile(url=url, filename=_clean_str(first.get("filename")) or "download")


def product_from_airtable_fields(record_id: str, fields: Mapping[str, Any]) -> ProductRecord:
    """Map Airtable column names onto a ``ProductRecord``."""

    high_value = fields.get("Is High Value Product?")
    return ProductRecord(
        record_id=record_id,
        product_name=_clean_str(fields.get("Product Name")),
        product_type=_clean_str(fields.get("Product Type")),
        price_zar=_coerce_float(fields.get("Price (ZAR)")),
        product_description=_clean_str(fields.get("Product Description")),
        tags=_coerce_tags(fields.get("Tags")),
        delivery_format=_clean_str(fields.get("Delivery Format")),
        download_link=_clean_str(fields.get("Download Link")),
        download_file=_coerce_download_file(fields.get("Download File")),
        status=_clean_str(fields.get("Status")),
        order_id=_clean_str(fields.get("Order ID")),
        delivered_to=_clean_str(fields.get("Delivered To")),
        gross_revenue_zar=_coerce_float(fields.get("Gross Revenue (ZAR)")),
        is_high_value=high_value if isinstance(high_value, bool) else None,
        product_summary_ai=_clean_str(fields.get("Product Summary (AI)")),
        suggested_marketing_angle_ai=_clean_str(fields.get("Suggested Marketing Angle (AI)")),
        short_description=_clean_str(fields.get("Short Description")),
        raw_fields=dict(fields),
    )


class AirtableProductResolver:
    """Reads product records from an Airtable base over its REST API."""

    def __init__(
        self,
        *,
        api_key: str,
        base_id: str,
        table_name: str,
        api_url: str = "https://api.airtable.com/v0",
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._base_id = base_id
        self._table_name = table_name
        self._api_url = api_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._owns_client = http_client is None

    async def resolve(self, product_ref: str) -> ProductRecord | None:
        ref = product_ref.strip()
        if not ref:
            return None

        url = f"{self._api_url}/{quote(self._base_id, safe='')}/{quote(self._table_name, safe='')}/{quote(ref, safe='')}"
        try:
            response = await self._client.get(url, headers={"Authorization": f"Bearer {self._api_key}"})
        except httpx.TimeoutException as exc:
            raise ProductLookupError("Catalog request timed out", code="LookupTimeout") from exc
        except httpx.HTTPError as exc:
            raise ProductLookupError(f"Catalog request failed: {exc}") from exc

        if response.status_code == 404:
            logger.info("Catalog record not found", record_id=ref)
            return None
        if response.status_code >= 400:
            raise ProductLookupError(
                f"Catalog responded with HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProductLookupError("Catalog returned a non-JSON body") from exc
        fields = payload.get("fields") if isinstance(payload, Mapping) else None
        if not isinstance(fields, Mapping):
            raise ProductLookupError("Catalog record has no fields")

        product = product_from_airtable_fields(str(payload.get("id") or ref), fields)
        logger.info(
            "Catalog record fetched",
            record_id=product.record_id,
            product_name=product.product_name,
            order_id=product.order_id,
        )
        return product

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class StaticProductResolver:
    """Serves products from a fixed mapping (local runs and tests)."""

    def __init__(self, products: Mapping[str, ProductRecord] | None = None) -> None:
        self._products = dict(products or {})

    def add(self, product: ProductRecord) -> None:
        self._products[product.record_id] = product

    async def resolve(self, product_ref: str) -> ProductRecord | None:
        return self._products.get(product_ref.strip())


SAMPLE_PRODUCT = ProductRecord(
    record_id="default-record-id",
    product_name="Sample Product",
    product_type="Digital",
    price_zar=100.0,
    product_description="This is a sample product.",
    delivery_format="Download",
    download_link="https://example.com/download",
    status="Available",
    order_id="ORD12345",
    delivered_to="user@example.com",
    gross_revenue_zar=100.0,
    is_high_value=False,
    product_summary_ai="A great product.",
    suggested_marketing_angle_ai="Perfect for everyone.",
    short_description="Sample short description.",
)


__all__ = [
    "AirtableProductResolver",
    "DownloadFile",
    "ProductLookupError",
    "ProductRecord",
    "ProductResolver",
    "SAMPLE_PRODUCT",
    "StaticProductResolver",
    "product_from_airtable_fields",
]
