import hashlib
import hmac

from fastapi import Header, HTTPException, Request, status
from loguru import logger

from vauntico_api.core.settings import settings


async def require_service_api_key(x_api_key: str = Header("", alias="X-API-Key")) -> None:
    expected = settings.service_api_key
    if not expected or not x_api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    if not hmac.compare_digest(x_api_key.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


def compute_webhook_signature(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


async def verify_webhook_signature(
    request: Request,
    x_webhook_signature: str = Header("", alias="X-Webhook-Signature"),
) -> bytes:
    """Check the HMAC-SHA256 signature of the raw body and return the body."""

    secret = settings.webhook_secret
    body = await request.body()
    provided = x_webhook_signature.strip()
    if provided.startswith("sha256="):
        provided = provided[len("sha256="):]

    if not secret or not provided:
        logger.warning("Webhook rejected", reason="missing secret or signature")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    expected = compute_webhook_signature(secret, body)
    if not hmac.compare_digest(provided.lower().encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Webhook rejected", reason="signature mismatch")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return body
