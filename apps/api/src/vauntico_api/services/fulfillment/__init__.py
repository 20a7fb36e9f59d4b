"""Product fulfillment services."""

from .factory import ConfigurationError, FulfillmentServices, build_fulfillment_services
from .pipeline import FulfillmentPipeline, FulfillmentResult
from .templates import RenderedTemplate, render_delivery_email

__all__ = [
    "ConfigurationError",
    "FulfillmentPipeline",
    "FulfillmentResult",
    "FulfillmentServices",
    "RenderedTemplate",
    "build_fulfillment_services",
    "render_delivery_email",
]
