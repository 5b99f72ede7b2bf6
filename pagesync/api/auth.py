"""
Authentication for the trigger endpoints.

- Poll endpoint: shared secret as ``Authorization: Bearer`` or ``?secret=``
- Webhook endpoint: HMAC-SHA256 of the raw body in ``X-Notion-Signature``
"""

import hashlib
import hmac

from fastapi import HTTPException, Query, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pagesync.config.settings import get_settings

bearer_scheme = HTTPBearer(auto_error=False)

SIGNATURE_HEADER = "X-Notion-Signature"


async def verify_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    secret: str | None = Query(default=None, description="Shared secret (alternative to Bearer)"),
) -> str:
    """
    Verify the shared cron secret.

    Raises:
        HTTPException: 401 if the secret is missing or wrong
    """
    settings = get_settings()

    # No secret configured: open access (dev mode)
    if not settings.cron_secret:
        return "dev-mode"

    provided = credentials.credentials if credentials else secret
    if not provided or not hmac.compare_digest(provided, settings.cron_secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return provided


def compute_signature(secret: str, body: bytes) -> str:
    """Signature value expected in the signature header for ``body``."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


async def verify_webhook_signature(request: Request) -> bytes:
    """
    Check the webhook signature and return the raw body.

    Skipped when no webhook secret is configured.

    Raises:
        HTTPException: 401 if the signature is missing or does not match
    """
    body = await request.body()
    settings = get_settings()
    if not settings.webhook_secret:
        return body

    signature = request.headers.get(SIGNATURE_HEADER)
    expected = compute_signature(settings.webhook_secret, body)
    if not signature or not hmac.compare_digest(signature, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook signature",
        )
    return body
