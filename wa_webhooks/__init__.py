"""WhatsApp Webhook Listener - Module Exports"""

from .discriminator import (
    ChangeField,
    FlowEvent,
    InteractiveType,
    MessageKind,
    MessageRoute,
    MessageType,
    classify_change,
    classify_message,
    classify_text,
    parse_message_type,
    route_message,
)
from .errors import (
    HandlerError,
    InvalidSignatureError,
    NotificationDecodeError,
    SignatureNotFoundError,
    SignatureVerificationError,
    SubscriptionError,
    SubscriptionVerificationError,
    UnrecognizedMessageTypeError,
    WebhookError,
)
from .events import (
    BusinessNotificationContext,
    FlowNotificationContext,
    MessageInfo,
    MessageNotificationContext,
    ReferralNotification,
    SenderInfo,
)
from .handler import EventKind, Handler, Response, default_error_handler
from .listener import (
    Listener,
    WebhookConfig,
    apply_middlewares,
    env_config_reader,
    extract_and_validate_payload,
    logging_middleware,
)
from .router import build_router
from .schemas import Message, Notification, decode_notification
from .security import (
    extract_signature_from_header,
    sign_payload,
    validate_payload_signature,
    validate_signature,
    verify_subscription,
)
from .subscriptions import SubscribedApp, SubscriptionClient

__all__ = [
    # Schemas
    "Notification",
    "Message",
    "decode_notification",
    # Discrimination
    "MessageType",
    "MessageKind",
    "MessageRoute",
    "InteractiveType",
    "ChangeField",
    "FlowEvent",
    "parse_message_type",
    "classify_text",
    "classify_message",
    "classify_change",
    "route_message",
    # Handler contexts
    "MessageNotificationContext",
    "BusinessNotificationContext",
    "FlowNotificationContext",
    "MessageInfo",
    "ReferralNotification",
    "SenderInfo",
    # Dispatch
    "Handler",
    "EventKind",
    "Response",
    "default_error_handler",
    # Listener
    "Listener",
    "WebhookConfig",
    "env_config_reader",
    "logging_middleware",
    "apply_middlewares",
    "extract_and_validate_payload",
    "build_router",
    # Security
    "validate_signature",
    "validate_payload_signature",
    "extract_signature_from_header",
    "sign_payload",
    "verify_subscription",
    # Subscriptions
    "SubscriptionClient",
    "SubscribedApp",
    # Errors
    "WebhookError",
    "HandlerError",
    "NotificationDecodeError",
    "SignatureNotFoundError",
    "InvalidSignatureError",
    "SignatureVerificationError",
    "SubscriptionVerificationError",
    "UnrecognizedMessageTypeError",
    "SubscriptionError",
]
