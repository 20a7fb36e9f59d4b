from fastapi import APIRouter

from .endpoints import fulfillment, metrics

router = APIRouter()
router.include_router(fulfillment.router, tags=["Fulfillment"])
router.include_router(metrics.router)
