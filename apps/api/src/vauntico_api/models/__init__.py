"""SQLAlchemy models package."""

from .fulfillment_metrics import FulfillmentMetricsLog  # noqa: F401
