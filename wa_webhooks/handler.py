"""
WhatsApp Webhook - Handler Registry and Dispatch

One handler slot per discriminated category. Every slot defaults to a no-op.
Registration happens before serving; dispatch only reads the registry.

Handler signatures (plain functions or coroutine functions):

    message kinds        fn(ctx: MessageNotificationContext, info: MessageInfo, payload)
    message received     fn(ctx: MessageNotificationContext, message: Message)
    notification error   fn(ctx: MessageNotificationContext, error: ErrorInfo)
    status change        fn(ctx: MessageNotificationContext, status: Status)
    business events      fn(ctx: BusinessNotificationContext, details)
    flow events          fn(ctx: FlowNotificationContext, details)
    error callback       fn(error: WebhookError)  -- raise to abort, return to continue
"""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from . import errors
from .discriminator import (
    ChangeField,
    FlowEvent,
    MessageKind,
    classify_change,
    parse_flow_event,
    route_message,
)
from .errors import HandlerError, UnrecognizedMessageTypeError, WebhookError
from .events import (
    AccountReviewUpdate,
    AccountUpdate,
    AlertNotification,
    BusinessNotificationContext,
    CallStatusUpdate,
    CapabilityUpdate,
    FlowEndpointAvailabilityDetails,
    FlowEndpointLatencyDetails,
    FlowErrorRateDetails,
    FlowNotificationContext,
    FlowStatusChangeDetails,
    MessageInfo,
    MessageNotificationContext,
    PhoneNumberNameUpdate,
    PhoneNumberQualityUpdate,
    TemplateCategoryUpdate,
    TemplateQualityUpdate,
    TemplateStatusUpdate,
)
from .schemas import Change, Entry, Message, Notification, Value

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]
ErrorCallback = Callable[[WebhookError], Any]


class EventKind(str, Enum):
    """Handler slots that are not discriminated message kinds."""

    MESSAGE_RECEIVED = "message_received"
    NOTIFICATION_ERROR = "notification_error"
    MESSAGE_STATUS_CHANGE = "message_status_change"
    ALERT = "alert"
    TEMPLATE_STATUS_UPDATE = "template_status_update"
    TEMPLATE_CATEGORY_UPDATE = "template_category_update"
    TEMPLATE_QUALITY_UPDATE = "template_quality_update"
    PHONE_NUMBER_NAME_UPDATE = "phone_number_name_update"
    PHONE_NUMBER_QUALITY_UPDATE = "phone_number_quality_update"
    ACCOUNT_UPDATE = "account_update"
    ACCOUNT_REVIEW_UPDATE = "account_review_update"
    CAPABILITY_UPDATE = "capability_update"
    PHONE_NUMBER_SETTINGS = "phone_number_settings"
    USER_PREFERENCES = "user_preferences"
    CALL_STATUS_UPDATE = "call_status_update"
    GROUP_LIFECYCLE_UPDATE = "group_lifecycle_update"
    GROUP_PARTICIPANTS_UPDATE = "group_participants_update"
    FLOW_STATUS_CHANGE = "flow_status_change"
    FLOW_CLIENT_ERROR_RATE = "flow_client_error_rate"
    FLOW_ENDPOINT_ERROR_RATE = "flow_endpoint_error_rate"
    FLOW_ENDPOINT_LATENCY = "flow_endpoint_latency"
    FLOW_ENDPOINT_AVAILABILITY = "flow_endpoint_availability"


Slot = Union[MessageKind, EventKind]


@dataclass(frozen=True)
class Response:
    """Outcome of dispatching one notification."""
    status_code: int


_HANDLER_ERRORS: dict[Slot, type[HandlerError]] = {
    MessageKind.TEXT: errors.TextMessageHandlerError,
    MessageKind.REFERRAL: errors.ReferralMessageHandlerError,
    MessageKind.PRODUCT_ENQUIRY: errors.ProductEnquiryHandlerError,
    MessageKind.AUDIO: errors.AudioMessageHandlerError,
    MessageKind.VIDEO: errors.VideoMessageHandlerError,
    MessageKind.IMAGE: errors.ImageMessageHandlerError,
    MessageKind.DOCUMENT: errors.DocumentMessageHandlerError,
    MessageKind.STICKER: errors.StickerMessageHandlerError,
    MessageKind.LOCATION: errors.LocationMessageHandlerError,
    MessageKind.CONTACTS: errors.ContactsMessageHandlerError,
    MessageKind.REACTION: errors.ReactionMessageHandlerError,
    MessageKind.BUTTON: errors.ButtonMessageHandlerError,
    MessageKind.ORDER: errors.OrderMessageHandlerError,
    MessageKind.SYSTEM: errors.SystemMessageHandlerError,
    MessageKind.UNKNOWN: errors.UnknownMessageHandlerError,
    MessageKind.UNSUPPORTED: errors.UnsupportedMessageHandlerError,
    MessageKind.REQUEST_WELCOME: errors.RequestWelcomeHandlerError,
    MessageKind.INTERACTIVE: errors.InteractiveMessageHandlerError,
    MessageKind.BUTTON_REPLY: errors.ButtonReplyHandlerError,
    MessageKind.LIST_REPLY: errors.ListReplyHandlerError,
    MessageKind.FLOW_COMPLETION: errors.FlowCompletionHandlerError,
    MessageKind.ADDRESS_SUBMISSION: errors.AddressSubmissionHandlerError,
    MessageKind.CUSTOMER_ID_CHANGE: errors.CustomerIDChangeHandlerError,
    MessageKind.UNRECOGNIZED: errors.UnrecognizedMessageHandlerError,
    EventKind.MESSAGE_RECEIVED: errors.MessageReceivedHandlerError,
    EventKind.NOTIFICATION_ERROR: errors.NotificationErrorHandlerError,
    EventKind.MESSAGE_STATUS_CHANGE: errors.MessageStatusChangeHandlerError,
    EventKind.ALERT: errors.AlertHandlerError,
    EventKind.TEMPLATE_STATUS_UPDATE: errors.TemplateStatusUpdateHandlerError,
    EventKind.TEMPLATE_CATEGORY_UPDATE: errors.TemplateCategoryUpdateHandlerError,
    EventKind.TEMPLATE_QUALITY_UPDATE: errors.TemplateQualityUpdateHandlerError,
    EventKind.PHONE_NUMBER_NAME_UPDATE: errors.PhoneNumberNameUpdateHandlerError,
    EventKind.PHONE_NUMBER_QUALITY_UPDATE: errors.PhoneNumberQualityUpdateHandlerError,
    EventKind.ACCOUNT_UPDATE: errors.AccountUpdateHandlerError,
    EventKind.ACCOUNT_REVIEW_UPDATE: errors.AccountReviewUpdateHandlerError,
    EventKind.CAPABILITY_UPDATE: errors.CapabilityUpdateHandlerError,
    EventKind.PHONE_NUMBER_SETTINGS: errors.PhoneNumberSettingsHandlerError,
    EventKind.USER_PREFERENCES: errors.UserPreferencesHandlerError,
    EventKind.CALL_STATUS_UPDATE: errors.CallStatusUpdateHandlerError,
    EventKind.GROUP_LIFECYCLE_UPDATE: errors.GroupLifecycleUpdateHandlerError,
    EventKind.GROUP_PARTICIPANTS_UPDATE: errors.GroupParticipantsUpdateHandlerError,
    EventKind.FLOW_STATUS_CHANGE: errors.FlowStatusChangeHandlerError,
    EventKind.FLOW_CLIENT_ERROR_RATE: errors.FlowClientErrorRateHandlerError,
    EventKind.FLOW_ENDPOINT_ERROR_RATE: errors.FlowEndpointErrorRateHandlerError,
    EventKind.FLOW_ENDPOINT_LATENCY: errors.FlowEndpointLatencyHandlerError,
    EventKind.FLOW_ENDPOINT_AVAILABILITY: errors.FlowEndpointAvailabilityHandlerError,
}

# Single-payload business events: field -> (slot, projection of the value)
_BUSINESS_EVENTS: dict[ChangeField, tuple[EventKind, Callable[[Value], Any]]] = {
    ChangeField.ACCOUNT_ALERTS: (EventKind.ALERT, AlertNotification.from_value),
    ChangeField.TEMPLATE_STATUS_UPDATE: (EventKind.TEMPLATE_STATUS_UPDATE, TemplateStatusUpdate.from_value),
    ChangeField.TEMPLATE_CATEGORY_UPDATE: (EventKind.TEMPLATE_CATEGORY_UPDATE, TemplateCategoryUpdate.from_value),
    ChangeField.TEMPLATE_QUALITY_UPDATE: (EventKind.TEMPLATE_QUALITY_UPDATE, TemplateQualityUpdate.from_value),
    ChangeField.PHONE_NUMBER_NAME_UPDATE: (EventKind.PHONE_NUMBER_NAME_UPDATE, PhoneNumberNameUpdate.from_value),
    ChangeField.PHONE_NUMBER_QUALITY_UPDATE: (EventKind.PHONE_NUMBER_QUALITY_UPDATE, PhoneNumberQualityUpdate.from_value),
    ChangeField.ACCOUNT_UPDATE: (EventKind.ACCOUNT_UPDATE, AccountUpdate.from_value),
    ChangeField.ACCOUNT_REVIEW_UPDATE: (EventKind.ACCOUNT_REVIEW_UPDATE, AccountReviewUpdate.from_value),
    ChangeField.BUSINESS_CAPABILITY_UPDATE: (EventKind.CAPABILITY_UPDATE, CapabilityUpdate.from_value),
    ChangeField.ACCOUNT_SETTINGS_UPDATE: (EventKind.PHONE_NUMBER_SETTINGS, lambda value: value.phone_number_settings),
    ChangeField.CALLS: (EventKind.CALL_STATUS_UPDATE, CallStatusUpdate.from_value),
}

_FLOW_EVENTS: dict[FlowEvent, tuple[EventKind, Callable[[Value], Any]]] = {
    FlowEvent.FLOW_STATUS_CHANGE: (EventKind.FLOW_STATUS_CHANGE, FlowStatusChangeDetails.from_value),
    FlowEvent.CLIENT_ERROR_RATE: (EventKind.FLOW_CLIENT_ERROR_RATE, FlowErrorRateDetails.from_value),
    FlowEvent.ENDPOINT_ERROR_RATE: (EventKind.FLOW_ENDPOINT_ERROR_RATE, FlowErrorRateDetails.from_value),
    FlowEvent.ENDPOINT_LATENCY: (EventKind.FLOW_ENDPOINT_LATENCY, FlowEndpointLatencyDetails.from_value),
    FlowEvent.ENDPOINT_AVAILABILITY: (EventKind.FLOW_ENDPOINT_AVAILABILITY, FlowEndpointAvailabilityDetails.from_value),
}


def default_error_handler(error: WebhookError) -> None:
    """
    Fail fast on handler failures, drop unroutable messages.

    Raises:
        WebhookError: Anything other than UnrecognizedMessageTypeError
    """

    if isinstance(error, UnrecognizedMessageTypeError):
        logger.warning(
            f"Dropping unroutable message: {error}",
            extra={"message_type": error.message_type, "message_id": error.message_id},
        )
        return
    raise error


async def _invoke(fn: Callable[..., Any], *args: Any) -> Any:
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _slot(kind: Slot, doc: str):
    def register(self: "Handler", fn: Callback) -> Callback:
        return self.register(kind, fn)

    register.__doc__ = doc
    return register


class Handler:
    """
    Registry of notification handlers plus the dispatch walk.

    Every ``on_*`` method stores its argument and returns it unchanged,
    so it works both as a call and as a decorator:

        handler = Handler()

        @handler.on_text_message
        async def reply(ctx, info, text):
            ...
    """

    def __init__(self, on_error: Optional[ErrorCallback] = None):
        self._handlers: dict[Slot, Callback] = {}
        self._error_handler: ErrorCallback = on_error or default_error_handler

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, kind: Slot, fn: Callback) -> Callback:
        """Set the handler for a slot, replacing any previous one."""
        if kind not in _HANDLER_ERRORS:
            raise ValueError(f"Unknown handler slot: {kind!r}")
        self._handlers[kind] = fn
        return fn

    def on_error(self, fn: ErrorCallback) -> ErrorCallback:
        """Set the error callback. Raise from it to abort, return to continue."""
        self._error_handler = fn
        return fn

    def is_registered(self, kind: Slot) -> bool:
        return kind in self._handlers

    on_message_received = _slot(EventKind.MESSAGE_RECEIVED, "Called once per message, before its specific handler.")
    on_notification_error = _slot(EventKind.NOTIFICATION_ERROR, "Called once per error in a messages change.")
    on_message_status_change = _slot(EventKind.MESSAGE_STATUS_CHANGE, "Called once per delivery status.")

    on_text_message = _slot(MessageKind.TEXT, "Plain text messages.")
    on_referral_message = _slot(MessageKind.REFERRAL, "Text messages from an ad or post (ReferralNotification).")
    on_product_enquiry = _slot(MessageKind.PRODUCT_ENQUIRY, "Text messages sent with a reply context.")
    on_audio_message = _slot(MessageKind.AUDIO, "Audio messages (MediaInfo).")
    on_video_message = _slot(MessageKind.VIDEO, "Video messages (MediaInfo).")
    on_image_message = _slot(MessageKind.IMAGE, "Image messages (MediaInfo).")
    on_document_message = _slot(MessageKind.DOCUMENT, "Document messages (MediaInfo).")
    on_sticker_message = _slot(MessageKind.STICKER, "Sticker messages (MediaInfo).")
    on_location_message = _slot(MessageKind.LOCATION, "Location messages.")
    on_contacts_message = _slot(MessageKind.CONTACTS, "Shared contact cards.")
    on_reaction_message = _slot(MessageKind.REACTION, "Reactions to a message.")
    on_button_message = _slot(MessageKind.BUTTON, "Quick reply button presses on templates.")
    on_order_message = _slot(MessageKind.ORDER, "Catalog orders.")
    on_system_message = _slot(MessageKind.SYSTEM, "System messages (number or identity change).")
    on_unknown_message = _slot(MessageKind.UNKNOWN, "Messages of type unknown (receives the error list).")
    on_unsupported_message = _slot(MessageKind.UNSUPPORTED, "Messages of type unsupported (receives the error list).")
    on_request_welcome = _slot(MessageKind.REQUEST_WELCOME, "First contact welcome requests (receives the message).")
    on_interactive_message = _slot(MessageKind.INTERACTIVE, "Interactive replies of any other sub-type.")
    on_button_reply = _slot(MessageKind.BUTTON_REPLY, "Interactive reply button taps.")
    on_list_reply = _slot(MessageKind.LIST_REPLY, "Interactive list selections.")
    on_flow_completion = _slot(MessageKind.FLOW_COMPLETION, "Flow completions (NFMReply).")
    on_address_submission = _slot(MessageKind.ADDRESS_SUBMISSION, "Address message submissions (NFMReply).")
    on_customer_id_change = _slot(MessageKind.CUSTOMER_ID_CHANGE, "Identity changes found without a known type.")
    on_unrecognized_message = _slot(MessageKind.UNRECOGNIZED, "Messages no other slot matches (receives the message).")

    on_alert = _slot(EventKind.ALERT, "Account alerts.")
    on_template_status_update = _slot(EventKind.TEMPLATE_STATUS_UPDATE, "Template review outcomes.")
    on_template_category_update = _slot(EventKind.TEMPLATE_CATEGORY_UPDATE, "Template category changes.")
    on_template_quality_update = _slot(EventKind.TEMPLATE_QUALITY_UPDATE, "Template quality score changes.")
    on_phone_number_name_update = _slot(EventKind.PHONE_NUMBER_NAME_UPDATE, "Display name decisions.")
    on_phone_number_quality_update = _slot(EventKind.PHONE_NUMBER_QUALITY_UPDATE, "Phone number quality and limits.")
    on_account_update = _slot(EventKind.ACCOUNT_UPDATE, "Account restrictions, bans and violations.")
    on_account_review_update = _slot(EventKind.ACCOUNT_REVIEW_UPDATE, "Account review decisions.")
    on_capability_update = _slot(EventKind.CAPABILITY_UPDATE, "Business capability changes.")
    on_phone_number_settings = _slot(EventKind.PHONE_NUMBER_SETTINGS, "Phone number settings (calling) updates.")
    on_user_preferences = _slot(EventKind.USER_PREFERENCES, "Called once per marketing preference change.")
    on_call_status_update = _slot(EventKind.CALL_STATUS_UPDATE, "Call connect, terminate and status events.")
    on_group_lifecycle_update = _slot(EventKind.GROUP_LIFECYCLE_UPDATE, "Called once per group lifecycle event.")
    on_group_participants_update = _slot(EventKind.GROUP_PARTICIPANTS_UPDATE, "Called once per group participants event.")
    on_flow_status_change = _slot(EventKind.FLOW_STATUS_CHANGE, "Flow status transitions.")
    on_flow_client_error_rate = _slot(EventKind.FLOW_CLIENT_ERROR_RATE, "Flow client error rate alerts.")
    on_flow_endpoint_error_rate = _slot(EventKind.FLOW_ENDPOINT_ERROR_RATE, "Flow endpoint error rate alerts.")
    on_flow_endpoint_latency = _slot(EventKind.FLOW_ENDPOINT_LATENCY, "Flow endpoint latency alerts.")
    on_flow_endpoint_availability = _slot(EventKind.FLOW_ENDPOINT_AVAILABILITY, "Flow endpoint availability alerts.")

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def handle_notification(self, notification: Notification) -> Response:
        """
        Walk every entry and change in order and invoke matching handlers.

        Never raises. Any failure that reaches this level (by default the
        first handler failure) stops the walk and yields a 500.

        Returns:
            Response(200) on success, Response(500) on failure
        """

        try:
            for entry in notification.entry:
                for change in entry.changes:
                    await self._handle_change(notification, entry, change)
        except Exception as e:
            logger.error(
                f"Notification dispatch failed: {e}",
                exc_info=True,
                extra={"object": notification.object, "entries": len(notification.entry)},
            )
            return Response(status_code=500)

        return Response(status_code=200)

    async def _handle_change(self, notification: Notification, entry: Entry, change: Change) -> None:
        field = classify_change(change)
        if field is None:
            logger.debug(f"Ignoring change with unhandled field {change.field!r}")
            return

        if field is ChangeField.MESSAGES:
            await self._handle_messages_change(entry, change)
            return

        if field is ChangeField.FLOWS:
            await self._handle_flow_change(notification, entry, change)
            return

        ctx = BusinessNotificationContext.from_change(notification, entry, change)
        value = change.value

        if field is ChangeField.USER_PREFERENCES:
            for preference in value.user_preferences:
                await self._dispatch(EventKind.USER_PREFERENCES, ctx, preference)
        elif field is ChangeField.GROUP_LIFECYCLE_UPDATE:
            for group in value.groups:
                await self._dispatch(EventKind.GROUP_LIFECYCLE_UPDATE, ctx, group)
        elif field is ChangeField.GROUP_PARTICIPANTS_UPDATE:
            for group in value.groups:
                await self._dispatch(EventKind.GROUP_PARTICIPANTS_UPDATE, ctx, group)
        else:
            kind, project = _BUSINESS_EVENTS[field]
            await self._dispatch(kind, ctx, project(value))

    async def _handle_messages_change(self, entry: Entry, change: Change) -> None:
        ctx = MessageNotificationContext.from_change(entry, change)
        value = change.value

        for error in value.errors:
            await self._dispatch(EventKind.NOTIFICATION_ERROR, ctx, error)

        for status in value.statuses:
            await self._dispatch(EventKind.MESSAGE_STATUS_CHANGE, ctx, status)

        for message in value.messages:
            await self._dispatch(EventKind.MESSAGE_RECEIVED, ctx, message)
            await self._handle_message(ctx, message)

    async def _handle_message(self, ctx: MessageNotificationContext, message: Message) -> None:
        route = route_message(message)

        if route.kind is MessageKind.UNRECOGNIZED and not self.is_registered(MessageKind.UNRECOGNIZED):
            await self._report(UnrecognizedMessageTypeError(message.type or "", message.id or ""))
            return

        await self._dispatch(route.kind, ctx, MessageInfo.from_message(message), route.payload)

    async def _handle_flow_change(self, notification: Notification, entry: Entry, change: Change) -> None:
        event = parse_flow_event(change.value.event)
        if event is None:
            logger.debug(f"Ignoring flow event {change.value.event!r}")
            return

        ctx = FlowNotificationContext.from_change(notification, entry, change)
        kind, project = _FLOW_EVENTS[event]
        await self._dispatch(kind, ctx, project(change.value))

    async def _dispatch(self, kind: Slot, *args: Any) -> None:
        fn = self._handlers.get(kind)
        if fn is None:
            return

        try:
            await _invoke(fn, *args)
            return
        except Exception as e:
            failure = _HANDLER_ERRORS[kind](e)
            failure.__cause__ = e

        logger.warning(f"Handler failed: {failure}", extra={"slot": kind.value})
        await self._report(failure)

    async def _report(self, error: WebhookError) -> None:
        await _invoke(self._error_handler, error)
