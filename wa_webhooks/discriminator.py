"""
WhatsApp Webhook - Type Discriminator

Maps a decoded message (or change) to exactly one handler category.
Pure functions, no I/O, no handler knowledge.
"""

from enum import Enum
from typing import Any, Callable, NamedTuple, Optional

from .events import ReferralNotification
from .schemas import Change, Interactive, Message


# ============================================================================
# MESSAGE TYPE (the "type" tag)
# ============================================================================

class MessageType(str, Enum):
    """Value of a message's "type" field."""

    NO_MATCH = ""  # Not a known type. Distinct from UNKNOWN.
    AUDIO = "audio"
    BUTTON = "button"
    DOCUMENT = "document"
    TEXT = "text"
    IMAGE = "image"
    INTERACTIVE = "interactive"
    ORDER = "order"
    STICKER = "sticker"
    SYSTEM = "system"
    UNKNOWN = "unknown"
    UNSUPPORTED = "unsupported"
    VIDEO = "video"
    LOCATION = "location"
    REACTION = "reaction"
    CONTACTS = "contacts"
    REQUEST_WELCOME = "request_welcome"


def parse_message_type(value: Optional[str]) -> MessageType:
    """Trim and lowercase, then exact match. NO_MATCH for anything else."""
    try:
        return MessageType((value or "").strip().lower())
    except ValueError:
        return MessageType.NO_MATCH


class InteractiveType(str, Enum):
    LIST_REPLY = "list_reply"
    BUTTON_REPLY = "button_reply"
    NFM_REPLY = "nfm_reply"
    ADDRESS_MESSAGE = "address_message"


# ============================================================================
# MESSAGE KIND (the handler category)
# ============================================================================

class MessageKind(str, Enum):
    TEXT = "text"
    REFERRAL = "referral"
    PRODUCT_ENQUIRY = "product_enquiry"
    AUDIO = "audio"
    VIDEO = "video"
    IMAGE = "image"
    DOCUMENT = "document"
    STICKER = "sticker"
    LOCATION = "location"
    CONTACTS = "contacts"
    REACTION = "reaction"
    BUTTON = "button"
    ORDER = "order"
    SYSTEM = "system"
    UNKNOWN = "unknown"
    UNSUPPORTED = "unsupported"
    REQUEST_WELCOME = "request_welcome"
    INTERACTIVE = "interactive"
    BUTTON_REPLY = "button_reply"
    LIST_REPLY = "list_reply"
    FLOW_COMPLETION = "flow_completion"
    ADDRESS_SUBMISSION = "address_submission"
    CUSTOMER_ID_CHANGE = "customer_id_change"
    UNRECOGNIZED = "unrecognized"


class MessageRoute(NamedTuple):
    """Handler category plus the sub-object that handler receives."""
    kind: MessageKind
    payload: Any


_DIRECT_KINDS = {
    MessageType.AUDIO: MessageKind.AUDIO,
    MessageType.VIDEO: MessageKind.VIDEO,
    MessageType.IMAGE: MessageKind.IMAGE,
    MessageType.DOCUMENT: MessageKind.DOCUMENT,
    MessageType.STICKER: MessageKind.STICKER,
    MessageType.LOCATION: MessageKind.LOCATION,
    MessageType.CONTACTS: MessageKind.CONTACTS,
    MessageType.REACTION: MessageKind.REACTION,
    MessageType.BUTTON: MessageKind.BUTTON,
    MessageType.ORDER: MessageKind.ORDER,
    MessageType.SYSTEM: MessageKind.SYSTEM,
    MessageType.UNKNOWN: MessageKind.UNKNOWN,
    MessageType.UNSUPPORTED: MessageKind.UNSUPPORTED,
    MessageType.REQUEST_WELCOME: MessageKind.REQUEST_WELCOME,
}

_INTERACTIVE_KINDS = {
    InteractiveType.BUTTON_REPLY.value: MessageKind.BUTTON_REPLY,
    InteractiveType.LIST_REPLY.value: MessageKind.LIST_REPLY,
    InteractiveType.NFM_REPLY.value: MessageKind.FLOW_COMPLETION,
    InteractiveType.ADDRESS_MESSAGE.value: MessageKind.ADDRESS_SUBMISSION,
}


def classify_text(message: Message) -> MessageKind:
    """Referral beats reply context, reply context beats plain text."""
    if message.is_referral:
        return MessageKind.REFERRAL
    if message.context is not None:
        return MessageKind.PRODUCT_ENQUIRY
    return MessageKind.TEXT


def classify_interactive(interactive: Optional[Interactive]) -> MessageKind:
    if interactive is None:
        return MessageKind.INTERACTIVE
    return _INTERACTIVE_KINDS.get(
        (interactive.type or "").strip().lower(),
        MessageKind.INTERACTIVE,
    )


def classify_by_presence(message: Message) -> MessageKind:
    """Fallback for a type tag nobody recognized."""
    if message.contacts is not None:
        return MessageKind.CONTACTS
    if message.location is not None:
        return MessageKind.LOCATION
    if message.identity is not None:
        return MessageKind.CUSTOMER_ID_CHANGE
    return MessageKind.UNRECOGNIZED


def classify_message(message: Message) -> MessageKind:
    message_type = parse_message_type(message.type)

    if message_type is MessageType.TEXT:
        return classify_text(message)
    if message_type is MessageType.INTERACTIVE:
        return classify_interactive(message.interactive)

    kind = _DIRECT_KINDS.get(message_type)
    if kind is not None:
        return kind

    return classify_by_presence(message)


_PAYLOADS: dict[MessageKind, Callable[[Message], Any]] = {
    MessageKind.TEXT: lambda m: m.text,
    MessageKind.REFERRAL: lambda m: ReferralNotification(text=m.text, referral=m.referral),
    MessageKind.PRODUCT_ENQUIRY: lambda m: m.text,
    MessageKind.AUDIO: lambda m: m.audio,
    MessageKind.VIDEO: lambda m: m.video,
    MessageKind.IMAGE: lambda m: m.image,
    MessageKind.DOCUMENT: lambda m: m.document,
    MessageKind.STICKER: lambda m: m.sticker,
    MessageKind.LOCATION: lambda m: m.location,
    MessageKind.CONTACTS: lambda m: list(m.contacts or []),
    MessageKind.REACTION: lambda m: m.reaction,
    MessageKind.BUTTON: lambda m: m.button,
    MessageKind.ORDER: lambda m: m.order,
    MessageKind.SYSTEM: lambda m: m.system,
    MessageKind.UNKNOWN: lambda m: list(m.errors),
    MessageKind.UNSUPPORTED: lambda m: list(m.errors),
    MessageKind.REQUEST_WELCOME: lambda m: m,
    MessageKind.INTERACTIVE: lambda m: m.interactive,
    MessageKind.BUTTON_REPLY: lambda m: m.interactive.button_reply,
    MessageKind.LIST_REPLY: lambda m: m.interactive.list_reply,
    MessageKind.FLOW_COMPLETION: lambda m: m.interactive.nfm_reply,
    MessageKind.ADDRESS_SUBMISSION: lambda m: m.interactive.nfm_reply,
    MessageKind.CUSTOMER_ID_CHANGE: lambda m: m.identity,
    MessageKind.UNRECOGNIZED: lambda m: m,
}


def route_message(message: Message) -> MessageRoute:
    """Classify a message and pick the sub-object its handler receives."""
    kind = classify_message(message)
    return MessageRoute(kind, _PAYLOADS[kind](message))


# ============================================================================
# CHANGE FIELD (the non-message families)
# ============================================================================

class ChangeField(str, Enum):
    MESSAGES = "messages"
    FLOWS = "flows"
    ACCOUNT_ALERTS = "account_alerts"
    TEMPLATE_STATUS_UPDATE = "message_template_status_update"
    TEMPLATE_CATEGORY_UPDATE = "template_category_update"
    TEMPLATE_QUALITY_UPDATE = "message_template_quality_update"
    PHONE_NUMBER_NAME_UPDATE = "phone_number_name_update"
    PHONE_NUMBER_QUALITY_UPDATE = "phone_number_quality_update"
    ACCOUNT_UPDATE = "account_update"
    ACCOUNT_REVIEW_UPDATE = "account_review_update"
    BUSINESS_CAPABILITY_UPDATE = "business_capability_update"
    ACCOUNT_SETTINGS_UPDATE = "account_settings_update"
    USER_PREFERENCES = "user_preferences"
    CALLS = "calls"
    GROUP_LIFECYCLE_UPDATE = "group_lifecycle_update"
    GROUP_PARTICIPANTS_UPDATE = "group_participants_update"


def classify_change(change: Change) -> Optional[ChangeField]:
    """
    Change family by field name, falling back on which value keys are set.

    Returns None when nothing identifies the change.
    """

    try:
        return ChangeField((change.field or "").strip().lower())
    except ValueError:
        pass

    value = change.value
    if value.messages or value.statuses or value.errors:
        return ChangeField.MESSAGES
    if value.calls:
        return ChangeField.CALLS
    if value.groups:
        return ChangeField.GROUP_LIFECYCLE_UPDATE
    if value.user_preferences:
        return ChangeField.USER_PREFERENCES
    return None


class FlowEvent(str, Enum):
    FLOW_STATUS_CHANGE = "FLOW_STATUS_CHANGE"
    CLIENT_ERROR_RATE = "CLIENT_ERROR_RATE"
    ENDPOINT_ERROR_RATE = "ENDPOINT_ERROR_RATE"
    ENDPOINT_LATENCY = "ENDPOINT_LATENCY"
    ENDPOINT_AVAILABILITY = "ENDPOINT_AVAILABILITY"


def parse_flow_event(value: Optional[str]) -> Optional[FlowEvent]:
    try:
        return FlowEvent((value or "").strip().upper())
    except ValueError:
        return None
