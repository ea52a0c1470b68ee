"""
WhatsApp Webhook Router

FastAPI router exposing a Listener. No logic: both endpoints delegate.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response

from .listener import Listener

logger = logging.getLogger(__name__)


def build_router(
    listener: Listener,
    path: str = "/whatsapp",
    prefix: str = "/webhook",
    tags: Optional[list[str]] = None,
) -> APIRouter:
    """
    Build the GET/POST webhook routes for a listener.

    Args:
        listener: Listener that owns the handler registry
        path: Route path below prefix
        prefix: Router prefix
        tags: OpenAPI tags

    Returns:
        APIRouter to include in the application
    """

    router = APIRouter(prefix=prefix, tags=tags or ["WhatsApp Webhook"])

    @router.get(path, response_class=PlainTextResponse)
    async def whatsapp_subscription_verification(request: Request) -> Response:
        """Verify webhook subscription challenge from Meta."""
        return await listener.handle_subscription_verification(request)

    @router.post(path)
    async def whatsapp_notification(request: Request) -> Response:
        """Receive a webhook notification and dispatch it."""
        return await listener.handle_notification(request)

    logger.debug(f"WhatsApp webhook routes registered at {prefix}{path}")
    return router
