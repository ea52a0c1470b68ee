"""
WhatsApp Webhook Listener

HTTP side of the webhook:
  GET  -> subscription verification (echo hub.challenge)
  POST -> signature gate, decode, middleware chain, handler registry

Only status codes go back to Meta. Error text never leaves the process.
"""

import inspect
import logging
import os
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Union

from fastapi import Request, status
from fastapi.responses import PlainTextResponse
from fastapi.responses import Response as HTTPResponse

from .errors import NotificationDecodeError, SignatureVerificationError
from .handler import Handler, Response
from .schemas import Notification, decode_notification
from .security import validate_payload_signature, verify_subscription

logger = logging.getLogger(__name__)

_TRUTHY = ("1", "true", "yes")


def env_flag(name: str, default: bool = False) -> bool:
    """Boolean environment variable: "1", "true" or "yes" (any case) enable it."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass
class WebhookConfig:
    """Per-request listener configuration."""

    token: str = ""
    validate: bool = False
    app_secret: str = ""

    @classmethod
    def from_env(cls) -> "WebhookConfig":
        """
        Load configuration from environment variables.

        WHATSAPP_VERIFY_TOKEN        subscription verify token
        WHATSAPP_VALIDATE_SIGNATURE  "1", "true" or "yes" to enforce X-Hub-Signature-256
        WHATSAPP_APP_SECRET          key for the signature HMAC
        """
        return cls(
            token=os.getenv("WHATSAPP_VERIFY_TOKEN", ""),
            validate=env_flag("WHATSAPP_VALIDATE_SIGNATURE"),
            app_secret=os.getenv("WHATSAPP_APP_SECRET", ""),
        )


ConfigReader = Callable[[Request], Union[WebhookConfig, Awaitable[WebhookConfig]]]
NotificationHandlerFunc = Callable[[Notification], Awaitable[Response]]
Middleware = Callable[[NotificationHandlerFunc], NotificationHandlerFunc]
SubscriptionVerifier = Callable[[str, str, str], Any]  # (mode, challenge, token), raise to reject


def env_config_reader(request: Request) -> WebhookConfig:
    return WebhookConfig.from_env()


def logging_middleware(next_handler: NotificationHandlerFunc) -> NotificationHandlerFunc:
    """Log the shape and outcome of every notification."""

    async def handle(notification: Notification) -> Response:
        response = await next_handler(notification)
        logger.info(
            f"Notification handled with status {response.status_code}",
            extra={
                "object": notification.object,
                "entries": len(notification.entry),
                "changes": sum(len(entry.changes) for entry in notification.entry),
                "status_code": response.status_code,
            },
        )
        return response

    return handle


def apply_middlewares(
    handler_func: NotificationHandlerFunc,
    middlewares: Iterable[Middleware],
) -> NotificationHandlerFunc:
    """Wrap handler_func so the first middleware listed runs outermost."""
    for middleware in reversed(list(middlewares)):
        handler_func = middleware(handler_func)
    return handler_func


def extract_and_validate_payload(
    body: bytes,
    headers: Mapping[str, str],
    config: WebhookConfig,
) -> Notification:
    """
    Run the signature gate (when enabled) and decode the body.

    Raises:
        SignatureVerificationError: Signature missing or wrong
        NotificationDecodeError: Body is not a notification envelope
    """

    if config.validate:
        validate_payload_signature(headers, body, config.app_secret)

    return decode_notification(body)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Listener:
    """
    Webhook listener around a handler registry.

    Args:
        handler: Registry whose handle_notification runs per POST
        config_reader: Request -> WebhookConfig, sync or async
        middlewares: Wrappers around the notification handler
        verifier: (mode, challenge, token) check for the GET handshake.
            Defaults to comparing against the configured verify token.
    """

    def __init__(
        self,
        handler: Handler,
        config_reader: Optional[ConfigReader] = None,
        middlewares: Iterable[Middleware] = (),
        verifier: Optional[SubscriptionVerifier] = None,
    ):
        self.handler = handler
        self._config_reader = config_reader or env_config_reader
        self._verifier = verifier
        self._handle = apply_middlewares(handler.handle_notification, middlewares)

    async def read_config(self, request: Request) -> WebhookConfig:
        return await _maybe_await(self._config_reader(request))

    # ============================================================================
    # WEBHOOK CHALLENGE (Setup only)
    # ============================================================================

    async def handle_subscription_verification(self, request: Request) -> HTTPResponse:
        """
        Answer Meta's GET handshake.

        Returns:
            200 with hub.challenge as plain text, 400 when the verifier
            rejects, 500 when the configuration cannot be read
        """

        params = request.query_params
        mode = params.get("hub.mode", "")
        challenge = params.get("hub.challenge", "")
        token = params.get("hub.verify_token", "")

        verifier = self._verifier
        if verifier is None:
            try:
                config = await self.read_config(request)
            except Exception as e:
                logger.error(f"Failed to read webhook config: {e}", exc_info=True)
                return HTTPResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

            verifier = partial(verify_subscription, expected_token=config.token)

        try:
            await _maybe_await(verifier(mode, challenge, token))
        except Exception as e:
            logger.warning(f"Subscription verification rejected: {e}", extra={"hub_mode": mode})
            return HTTPResponse(status_code=status.HTTP_400_BAD_REQUEST)

        logger.info("Subscription verified")
        return PlainTextResponse(challenge, status_code=status.HTTP_200_OK)

    # ============================================================================
    # WEBHOOK RECEIVER (Notification processing)
    # ============================================================================

    async def handle_notification(self, request: Request) -> HTTPResponse:
        """
        Process one POSTed notification.

        Flow:
        1. Read configuration (500 on failure)
        2. Read raw body (500 on failure)
        3. Verify signature when enabled (400 if invalid or missing)
        4. Decode (400 if malformed)
        5. Dispatch through the middleware chain (handler's status code)
        """

        try:
            config = await self.read_config(request)
        except Exception as e:
            logger.error(f"Failed to read webhook config: {e}", exc_info=True)
            return HTTPResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

        try:
            body = await request.body()
        except Exception as e:
            logger.error(f"Failed to read request: {e}", exc_info=True)
            return HTTPResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

        try:
            notification = extract_and_validate_payload(body, request.headers, config)
        except SignatureVerificationError as e:
            logger.warning(f"Signature verification failed: {e.__cause__ or e}")
            return HTTPResponse(status_code=status.HTTP_400_BAD_REQUEST)
        except NotificationDecodeError as e:
            logger.warning(f"Notification decode failed: {e}")
            return HTTPResponse(status_code=status.HTTP_400_BAD_REQUEST)

        try:
            response = await self._handle(notification)
        except Exception as e:
            logger.error(f"Notification handling failed: {e}", exc_info=True)
            return HTTPResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return HTTPResponse(status_code=response.status_code)
