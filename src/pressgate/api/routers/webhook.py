"""CMS webhook endpoint.

The CMS plugin posts a notification whenever a post changes status.
Drafts are acknowledged and ignored; everything else invalidates the
affected cache entries.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Header

from pressgate.api.deps import GatewayDep, SettingsDep, secret_matches
from pressgate.api.errors import UnauthorizedError
from pressgate.models import WebhookPayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wordpress-webhook", tags=["webhook"])


@router.post("")
async def receive_webhook(
    payload: WebhookPayload,
    config: SettingsDep,
    gateway: GatewayDep,
    x_webhook_secret: Annotated[str | None, Header()] = None,
) -> dict[str, Any]:
    if config.webhook_secret and not secret_matches(config.webhook_secret, x_webhook_secret):
        logger.warning(f"Rejected webhook for post {payload.post_id}: bad secret")
        raise UnauthorizedError("Unauthorized webhook request")

    events = gateway.handle_webhook(payload)
    if events:
        message = f"Invalidated {len(events)} cache targets"
    else:
        message = f"No invalidation for {payload.post_status.value} {payload.post_type}"

    return {
        "success": True,
        "message": message,
        "invalidated": [event.describe() for event in events],
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("")
async def webhook_status() -> dict[str, Any]:
    return {
        "status": "active",
        "description": "CMS webhook endpoint for cache invalidation",
        "supported_statuses": ["publish", "private", "trash"],
        "ignored_statuses": ["draft"],
        "webhook_url": "/api/wordpress-webhook",
    }
