"""
FastAPI Application Entry Point

Integrates:
  - WhatsApp webhook listener (subscription verification + notifications)
  - Health checks
  - Middleware for logging & error handling

Run: uvicorn main:app --reload --host 0.0.0.0 --port 8000
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config import Config
from wa_webhooks import (
    BusinessNotificationContext,
    Handler,
    Listener,
    MessageNotificationContext,
    build_router,
    logging_middleware,
)
from wa_webhooks.listener import ConfigReader
from wa_webhooks.schemas import Message, Status

# Setup logging
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_default_handler() -> Handler:
    """Registry that only logs what arrives."""
    handler = Handler()

    @handler.on_message_received
    def log_message(ctx: MessageNotificationContext, message: Message) -> None:
        logger.info(
            f"Message received: {message.type}",
            extra={"message_id": message.id, "sender_id": message.from_, "entry_id": ctx.entry_id},
        )

    @handler.on_message_status_change
    def log_status(ctx: MessageNotificationContext, status: Status) -> None:
        logger.info(
            f"Message {status.id} is {status.status}",
            extra={"message_id": status.id, "recipient_id": status.recipient_id},
        )

    @handler.on_alert
    def log_alert(ctx: BusinessNotificationContext, alert) -> None:
        logger.warning(
            f"Account alert: {alert.alert_type} ({alert.alert_severity})",
            extra={"entry_id": ctx.entry_id},
        )

    return handler


def config_reader(request: Request):
    return Config.webhook_config()


def create_app(
    handler: Optional[Handler] = None,
    reader: Optional[ConfigReader] = None,
) -> FastAPI:
    """
    Build the webhook service.

    Args:
        handler: Handler registry. Defaults to one that logs traffic.
        reader: Per-request WebhookConfig reader. Defaults to Config.
    """

    listener = Listener(
        handler or build_default_handler(),
        config_reader=reader or config_reader,
        middlewares=[logging_middleware],
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan: startup and shutdown handlers.
        """
        # Startup
        logger.info("=" * 60)
        logger.info("WhatsApp webhook listener starting up...")
        logger.info(f"Webhook path: /webhook{Config.WEBHOOK_PATH}")
        logger.info(f"Signature validation: {Config.WHATSAPP_VALIDATE_SIGNATURE}")
        logger.info(f"Environment: {Config.ENVIRONMENT}")
        logger.info("=" * 60)

        yield

        # Shutdown
        logger.info("WhatsApp webhook listener shutting down...")

    app = FastAPI(
        title="WhatsApp Webhook Listener",
        description="Receives and dispatches WhatsApp Cloud API webhook notifications",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.listener = listener

    # Middleware for logging
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests."""
        logger.debug(f"{request.method} {request.url.path}")
        try:
            response = await call_next(request)
            return response
        except Exception as e:
            logger.error(f"Request error: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error"},
            )

    app.include_router(build_router(listener, path=Config.WEBHOOK_PATH))

    # Health check endpoints
    @app.get("/health/live")
    async def health_live():
        """Live health check (Kubernetes liveness probe)."""
        return {"status": "alive"}

    @app.get("/health/ready")
    async def health_ready():
        """Readiness health check (Kubernetes readiness probe)."""
        if Config.validate():
            return {"status": "ready"}
        return {"status": "not_ready", "reason": "missing configuration"}

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "WhatsApp Webhook Listener",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "subscription_verification": f"GET /webhook{Config.WEBHOOK_PATH}",
                "notifications": f"POST /webhook{Config.WEBHOOK_PATH}",
                "health_live": "GET /health/live",
                "health_ready": "GET /health/ready",
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=Config.LISTENER_PORT,
        reload=Config.ENVIRONMENT == "development",
    )
