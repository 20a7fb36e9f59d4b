"""Product catalog collaborators."""

from .resolver import (
    SAMPLE_PRODUCT,
    AirtableProductResolver,
    DownloadFile,
    ProductLookupError,
    ProductRecord,
    ProductResolver,
    StaticProductResolver,
)

__all__ = [
    "AirtableProductResolver",
    "DownloadFile",
    "ProductLookupError",
    "ProductRecord",
    "ProductResolver",
    "SAMPLE_PRODUCT",
    "StaticProductResolver",
]
