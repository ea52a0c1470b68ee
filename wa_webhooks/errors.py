"""
WhatsApp Webhook Errors

Exception hierarchy for the webhook listener.
Every failure the listener can report is a WebhookError.
"""

from typing import Optional


class WebhookError(Exception):
    """Base class for webhook listener failures."""
    pass


# ============================================================================
# REQUEST BOUNDARY
# ============================================================================

class NotificationDecodeError(WebhookError):
    """Notification body is not a valid webhook envelope."""
    pass


class SignatureNotFoundError(WebhookError):
    """X-Hub-Signature-256 header is missing or lacks the sha256= prefix."""

    def __init__(self, message: str = "signature not found"):
        super().__init__(message)


class InvalidSignatureError(WebhookError):
    """Computed digest does not match the header value."""

    def __init__(self, message: str = "signature is invalid"):
        super().__init__(message)


class SignatureVerificationError(WebhookError):
    """Signature verification failed (see __cause__ for the reason)."""

    def __init__(self, message: str = "signature verification failed"):
        super().__init__(message)


class SubscriptionVerificationError(WebhookError):
    """Subscription handshake rejected."""
    pass


class UnrecognizedMessageTypeError(WebhookError):
    """Message could not be routed to any handler."""

    def __init__(self, message_type: str = "", message_id: str = ""):
        self.message_type = message_type
        self.message_id = message_id
        super().__init__(
            f"unrecognized message type: {message_type!r} (message id {message_id!r})"
        )


class SubscriptionError(WebhookError):
    """Subscription management request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


# ============================================================================
# HANDLER FAILURES (one class per handler slot)
# ============================================================================

class HandlerError(WebhookError):
    """
    A registered handler raised.

    The original exception is kept as ``__cause__`` and ``cause``.
    Subclasses name the handler family so callers can tell failures apart.
    """

    description = "handler failed"

    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        message = self.description if cause is None else f"{self.description}: {cause}"
        super().__init__(message)


class MessageReceivedHandlerError(HandlerError):
    description = "message received handler failed"


class NotificationErrorHandlerError(HandlerError):
    description = "notification errors handler failed"


class MessageStatusChangeHandlerError(HandlerError):
    description = "message status change handler failed"


class TextMessageHandlerError(HandlerError):
    description = "text message handler failed"


class ReferralMessageHandlerError(HandlerError):
    description = "referral message handler failed"


class ProductEnquiryHandlerError(HandlerError):
    description = "product enquiry handler failed"


class AudioMessageHandlerError(HandlerError):
    description = "audio message handler failed"


class VideoMessageHandlerError(HandlerError):
    description = "video message handler failed"


class ImageMessageHandlerError(HandlerError):
    description = "image message handler failed"


class DocumentMessageHandlerError(HandlerError):
    description = "document message handler failed"


class StickerMessageHandlerError(HandlerError):
    description = "sticker message handler failed"


class LocationMessageHandlerError(HandlerError):
    description = "location message handler failed"


class ContactsMessageHandlerError(HandlerError):
    description = "contacts message handler failed"


class ReactionMessageHandlerError(HandlerError):
    description = "reaction message handler failed"


class ButtonMessageHandlerError(HandlerError):
    description = "button message handler failed"


class OrderMessageHandlerError(HandlerError):
    description = "order message handler failed"


class SystemMessageHandlerError(HandlerError):
    description = "system message handler failed"


class UnknownMessageHandlerError(HandlerError):
    description = "unknown message handler failed"


class UnsupportedMessageHandlerError(HandlerError):
    description = "unsupported message handler failed"


class RequestWelcomeHandlerError(HandlerError):
    description = "request welcome handler failed"


class CustomerIDChangeHandlerError(HandlerError):
    description = "customer id change handler failed"


class InteractiveMessageHandlerError(HandlerError):
    description = "interactive message handler failed"


class ButtonReplyHandlerError(HandlerError):
    description = "button reply handler failed"


class ListReplyHandlerError(HandlerError):
    description = "list reply handler failed"


class FlowCompletionHandlerError(HandlerError):
    description = "flow completion handler failed"


class AddressSubmissionHandlerError(HandlerError):
    description = "address submission handler failed"


class UnrecognizedMessageHandlerError(HandlerError):
    description = "unrecognized message handler failed"


class AlertHandlerError(HandlerError):
    description = "account alert handler failed"


class TemplateStatusUpdateHandlerError(HandlerError):
    description = "template status update handler failed"


class TemplateCategoryUpdateHandlerError(HandlerError):
    description = "template category update handler failed"


class TemplateQualityUpdateHandlerError(HandlerError):
    description = "template quality update handler failed"


class PhoneNumberNameUpdateHandlerError(HandlerError):
    description = "phone number name update handler failed"


class PhoneNumberQualityUpdateHandlerError(HandlerError):
    description = "phone number quality update handler failed"


class AccountUpdateHandlerError(HandlerError):
    description = "account update handler failed"


class AccountReviewUpdateHandlerError(HandlerError):
    description = "account review update handler failed"


class CapabilityUpdateHandlerError(HandlerError):
    description = "business capability update handler failed"


class PhoneNumberSettingsHandlerError(HandlerError):
    description = "phone number settings handler failed"


class UserPreferencesHandlerError(HandlerError):
    description = "user preferences handler failed"


class CallStatusUpdateHandlerError(HandlerError):
    description = "call status update handler failed"


class GroupLifecycleUpdateHandlerError(HandlerError):
    description = "group lifecycle update handler failed"


class GroupParticipantsUpdateHandlerError(HandlerError):
    description = "group participants update handler failed"


class FlowStatusChangeHandlerError(HandlerError):
    description = "flow status change handler failed"


class FlowClientErrorRateHandlerError(HandlerError):
    description = "flow client error rate handler failed"


class FlowEndpointErrorRateHandlerError(HandlerError):
    description = "flow endpoint error rate handler failed"


class FlowEndpointLatencyHandlerError(HandlerError):
    description = "flow endpoint latency handler failed"


class FlowEndpointAvailabilityHandlerError(HandlerError):
    description = "flow endpoint availability handler failed"
