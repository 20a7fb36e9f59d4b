from fastapi import HTTPException, Request

from vauntico_api.services.fulfillment.factory import FulfillmentServices


def get_fulfillment_services(request: Request) -> FulfillmentServices:
    services = getattr(request.app.state, "fulfillment_services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Fulfillment services unavailable")
    return services
