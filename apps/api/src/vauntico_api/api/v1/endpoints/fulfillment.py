from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from vauntico_api.api.dependencies.security import require_service_api_key, verify_webhook_signature
from vauntico_api.api.dependencies.services import get_fulfillment_services
from vauntico_api.schemas.fulfillment import FulfillmentRunRequest, FulfillmentRunResponse
from vauntico_api.services.fulfillment import FulfillmentServices

router = APIRouter(prefix="/fulfillment")


async def _run(
    payload: FulfillmentRunRequest,
    services: FulfillmentServices,
    request_id: str | None,
) -> JSONResponse:
    result = await services.pipeline.run(payload.to_domain(fallback_request_id=request_id))
    return JSONResponse(
        status_code=result.status_code,
        content=result.body,
        headers={"X-Request-ID": result.request_id},
    )


@router.post(
    "/run",
    dependencies=[Depends(require_service_api_key)],
    response_model=FulfillmentRunResponse,
    summary="Deliver a purchased product by email",
)
async def run_fulfillment(
    payload: FulfillmentRunRequest,
    x_request_id: str | None = Header(None, alias="X-Request-ID"),
    services: FulfillmentServices = Depends(get_fulfillment_services),
) -> JSONResponse:
    return await _run(payload, services, x_request_id)


@router.post(
    "/webhook",
    response_model=FulfillmentRunResponse,
    summary="Signed webhook trigger for product delivery",
)
async def fulfillment_webhook(
    raw_body: bytes = Depends(verify_webhook_signature),
    x_request_id: str | None = Header(None, alias="X-Request-ID"),
    services: FulfillmentServices = Depends(get_fulfillment_services),
) -> JSONResponse:
    try:
        payload = FulfillmentRunRequest.model_validate_json(raw_body)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload body") from exc
    return await _run(payload, services, x_request_id)
