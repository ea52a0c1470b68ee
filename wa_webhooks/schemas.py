"""
WhatsApp Webhook - Pydantic Schemas

Typed view of the notification envelope Meta POSTs to the webhook:
object -> entry[] -> changes[] -> value.

Models are frozen once decoded. Unknown fields are ignored so new
provider fields never break decoding.

ref: https://developers.facebook.com/docs/whatsapp/cloud-api/webhooks/payload-examples
"""

import json
import logging
from typing import Any, Optional, Union, get_origin

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from .errors import NotificationDecodeError

logger = logging.getLogger(__name__)


class WebhookModel(BaseModel):
    """Base for every decoded webhook model."""

    model_config = ConfigDict(
        extra="ignore",  # Meta adds fields without notice
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    @field_validator("*", mode="before")
    @classmethod
    def null_list_as_empty(cls, value: Any, info: ValidationInfo) -> Any:
        # JSON null on a list field decodes as an empty list
        if value is None and info.field_name is not None:
            field = cls.model_fields.get(info.field_name)
            if field is not None and get_origin(field.annotation) is list:
                return []
        return value


# ============================================================================
# ERRORS
# ============================================================================

class ErrorData(WebhookModel):
    messaging_product: Optional[str] = None
    details: Optional[str] = None


class ErrorInfo(WebhookModel):
    """
    Error object carried by notifications, messages and statuses.

    Flow alert notifications reuse the same key with error_type,
    error_rate and error_count instead of code/title.
    """

    code: Optional[int] = None
    title: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = None
    error_data: Optional[ErrorData] = None
    error_subcode: Optional[int] = None
    error_user_title: Optional[str] = None
    error_user_msg: Optional[str] = None
    fbtrace_id: Optional[str] = None
    details: Optional[str] = None
    href: Optional[str] = None

    # Flow alerts
    error_type: Optional[str] = None
    error_rate: Optional[float] = None
    error_count: Optional[int] = None

    def __str__(self) -> str:
        text = f"message: {self.message or self.title}, type: {self.type}, status_code: {self.code}"
        return f"whatsapp error: {text.lower()}"


# ============================================================================
# SENDER METADATA
# ============================================================================

class Metadata(WebhookModel):
    display_phone_number: Optional[str] = None
    phone_number_id: Optional[str] = None


class Profile(WebhookModel):
    name: Optional[str] = None


class Contact(WebhookModel):
    """Sender contact attached to a messages change."""
    profile: Optional[Profile] = None
    wa_id: Optional[str] = None


# ============================================================================
# MESSAGE PAYLOADS
# ============================================================================

class Text(WebhookModel):
    body: str = ""


class MediaInfo(WebhookModel):
    """Shared shape of audio, image, video, document and sticker payloads."""
    id: Optional[str] = None
    caption: Optional[str] = None
    mime_type: Optional[str] = None
    sha256: Optional[str] = None
    filename: Optional[str] = None
    animated: Optional[bool] = None
    voice: Optional[bool] = None


class Location(WebhookModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    name: Optional[str] = None
    address: Optional[str] = None
    url: Optional[str] = None


class Reaction(WebhookModel):
    message_id: Optional[str] = None
    emoji: Optional[str] = None


class Button(WebhookModel):
    payload: Optional[str] = None
    text: Optional[str] = None


class ProductItem(WebhookModel):
    product_retailer_id: Optional[str] = None
    quantity: Optional[Union[int, str]] = None
    item_price: Optional[Union[float, str]] = None
    currency: Optional[str] = None


class Order(WebhookModel):
    catalog_id: Optional[str] = None
    text: Optional[str] = None
    product_items: list[ProductItem] = Field(default_factory=list)


class Identity(WebhookModel):
    acknowledged: Optional[bool] = None
    created_timestamp: Optional[str] = None
    hash: Optional[str] = None


class System(WebhookModel):
    """Customer changed number or identity."""
    body: Optional[str] = None
    identity: Optional[str] = None
    new_wa_id: Optional[str] = None
    type: Optional[str] = None
    wa_id: Optional[str] = None
    customer: Optional[str] = None


class ButtonReply(WebhookModel):
    id: Optional[str] = None
    title: Optional[str] = None


class ListReply(WebhookModel):
    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None


class NFMReply(WebhookModel):
    """Flow (native flow message) completion."""
    name: Optional[str] = None
    body: Optional[str] = None
    response_json: Optional[str] = None

    def response(self) -> dict[str, Any]:
        """Decode response_json. Empty dict when absent."""
        if not self.response_json:
            return {}
        return json.loads(self.response_json)


class Interactive(WebhookModel):
    type: Optional[str] = None
    button_reply: Optional[ButtonReply] = None
    list_reply: Optional[ListReply] = None
    nfm_reply: Optional[NFMReply] = None


class Referral(WebhookModel):
    """Click-to-WhatsApp ad or post the customer came from."""
    source_url: Optional[str] = None
    source_type: Optional[str] = None
    source_id: Optional[str] = None
    headline: Optional[str] = None
    body: Optional[str] = None
    media_type: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    ctwa_clid: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(self.model_dump().values())


class ReferredProduct(WebhookModel):
    catalog_id: Optional[str] = None
    product_retailer_id: Optional[str] = None


class MessageContext(WebhookModel):
    """Present when the message replies to, or forwards, another message."""
    forwarded: Optional[bool] = None
    frequently_forwarded: Optional[bool] = None
    from_: Optional[str] = Field(None, alias="from")
    id: Optional[str] = None
    referred_product: Optional[ReferredProduct] = None
    type: Optional[str] = None


# Shared contact cards (type == "contacts")

class ContactName(WebhookModel):
    formatted_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    middle_name: Optional[str] = None
    suffix: Optional[str] = None
    prefix: Optional[str] = None


class ContactPhone(WebhookModel):
    phone: Optional[str] = None
    type: Optional[str] = None
    wa_id: Optional[str] = None


class ContactEmail(WebhookModel):
    email: Optional[str] = None
    type: Optional[str] = None


class ContactAddress(WebhookModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    type: Optional[str] = None


class ContactOrg(WebhookModel):
    company: Optional[str] = None
    department: Optional[str] = None
    title: Optional[str] = None


class ContactURL(WebhookModel):
    url: Optional[str] = None
    type: Optional[str] = None


class SharedContact(WebhookModel):
    addresses: list[ContactAddress] = Field(default_factory=list)
    birthday: Optional[str] = None
    emails: list[ContactEmail] = Field(default_factory=list)
    name: Optional[ContactName] = None
    org: Optional[ContactOrg] = None
    phones: list[ContactPhone] = Field(default_factory=list)
    urls: list[ContactURL] = Field(default_factory=list)


class Message(WebhookModel):
    """A single inbound WhatsApp message."""

    from_: Optional[str] = Field(None, alias="from")
    id: Optional[str] = None
    timestamp: Optional[str] = None
    type: Optional[str] = None

    context: Optional[MessageContext] = None
    referral: Optional[Referral] = None
    errors: list[ErrorInfo] = Field(default_factory=list)

    text: Optional[Text] = None
    audio: Optional[MediaInfo] = None
    image: Optional[MediaInfo] = None
    video: Optional[MediaInfo] = None
    document: Optional[MediaInfo] = None
    sticker: Optional[MediaInfo] = None
    location: Optional[Location] = None
    contacts: Optional[list[SharedContact]] = None
    reaction: Optional[Reaction] = None
    button: Optional[Button] = None
    order: Optional[Order] = None
    system: Optional[System] = None
    interactive: Optional[Interactive] = None
    identity: Optional[Identity] = None

    @property
    def is_forwarded(self) -> bool:
        return self.context is not None and bool(self.context.forwarded)

    @property
    def is_product_inquiry(self) -> bool:
        return self.context is not None and self.context.referred_product is not None

    @property
    def is_a_reply(self) -> bool:
        return (
            self.context is not None
            and self.context.referred_product is None
            and not self.context.forwarded
        )

    @property
    def is_referral(self) -> bool:
        return self.referral is not None and not self.referral.is_empty()


# ============================================================================
# STATUSES
# ============================================================================

class ConversationOrigin(WebhookModel):
    type: Optional[str] = None


class Conversation(WebhookModel):
    id: Optional[str] = None
    origin: Optional[ConversationOrigin] = None
    expiration_timestamp: Optional[str] = None


class Pricing(WebhookModel):
    billable: Optional[bool] = None
    category: Optional[str] = None
    pricing_model: Optional[str] = None
    type: Optional[str] = None


class Status(WebhookModel):
    """Delivery status of a message the business sent."""
    id: Optional[str] = None
    recipient_id: Optional[str] = None
    status: Optional[str] = None  # sent, delivered, read, failed, deleted, warning
    timestamp: Optional[str] = None
    conversation: Optional[Conversation] = None
    pricing: Optional[Pricing] = None
    errors: list[ErrorInfo] = Field(default_factory=list)
    biz_opaque_callback_data: Optional[str] = None


# ============================================================================
# ACCOUNT / TEMPLATE / PHONE NUMBER DETAILS
# ============================================================================

class RestrictionInfo(WebhookModel):
    restriction_type: Optional[str] = None
    expiration: Optional[str] = None


class BanInfo(WebhookModel):
    waba_ban_state: list[str] = Field(default_factory=list)
    waba_ban_date: Optional[str] = None


class ViolationInfo(WebhookModel):
    violation_type: Optional[str] = None


class DisableInfo(WebhookModel):
    disable_date: Optional[str] = None


class OtherInfo(WebhookModel):
    title: Optional[str] = None
    description: Optional[str] = None


class UserPreference(WebhookModel):
    """Marketing message opt-in / opt-out."""
    wa_id: Optional[str] = None
    detail: Optional[str] = None
    category: Optional[str] = None
    value: Optional[str] = None
    timestamp: Optional[int] = None


class CallingSettings(WebhookModel):
    status: Optional[str] = None
    call_icon_visibility: Optional[str] = None
    callback_permission_status: Optional[str] = None
    call_hours: Optional[dict[str, Any]] = None
    sip: Optional[dict[str, Any]] = None


class PhoneNumberSettings(WebhookModel):
    phone_number_id: Optional[str] = None
    calling: Optional[CallingSettings] = None


# ============================================================================
# CALLS AND GROUPS
# ============================================================================

class CallSession(WebhookModel):
    sdp_type: Optional[str] = None
    sdp: Optional[str] = None


class Call(WebhookModel):
    id: Optional[str] = None
    to: Optional[str] = None
    from_: Optional[str] = Field(None, alias="from")
    event: Optional[str] = None
    timestamp: Optional[str] = None
    direction: Optional[str] = None
    deeplink_payload: Optional[str] = None
    cta_payload: Optional[str] = None
    status: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = None
    biz_opaque_callback_data: Optional[str] = None
    session: Optional[CallSession] = None


class GroupParticipant(WebhookModel):
    wa_id: Optional[str] = None
    input: Optional[str] = None


class Group(WebhookModel):
    timestamp: Optional[str] = None
    group_id: Optional[str] = None
    type: Optional[str] = None
    request_id: Optional[str] = None
    subject: Optional[str] = None
    invite_link: Optional[str] = None
    join_approval_mode: Optional[str] = None
    description: Optional[str] = None
    reason: Optional[str] = None
    errors: list[ErrorInfo] = Field(default_factory=list)
    added_participants: list[GroupParticipant] = Field(default_factory=list)
    removed_participants: list[GroupParticipant] = Field(default_factory=list)
    join_request_id: Optional[str] = None
    wa_id: Optional[str] = None
    initiated_by: Optional[str] = None


# ============================================================================
# ENVELOPE
# ============================================================================

class Value(WebhookModel):
    """
    Polymorphic payload of a change.

    Only the subset belonging to the change's field is populated.
    """

    # Messages
    messaging_product: Optional[str] = None
    metadata: Optional[Metadata] = None
    contacts: list[Contact] = Field(default_factory=list)
    messages: list[Message] = Field(default_factory=list)
    statuses: list[Status] = Field(default_factory=list)
    errors: list[ErrorInfo] = Field(default_factory=list)

    # Templates
    event: Optional[str] = None
    message_template_id: Optional[int] = None
    message_template_name: Optional[str] = None
    message_template_language: Optional[str] = None
    reason: Optional[str] = None
    disable_info: Optional[DisableInfo] = None
    other_info: Optional[OtherInfo] = None
    previous_category: Optional[str] = None
    new_category: Optional[str] = None
    previous_quality_score: Optional[str] = None
    new_quality_score: Optional[str] = None

    # Phone numbers and account
    display_phone_number: Optional[str] = None
    phone_number: Optional[str] = None
    decision: Optional[str] = None
    requested_verified_name: Optional[str] = None
    rejection_reason: Optional[str] = None
    current_limit: Optional[str] = None
    max_daily_conversation_per_phone: Optional[int] = None
    max_phone_numbers_per_business: Optional[int] = None
    restriction_info: list[RestrictionInfo] = Field(default_factory=list)
    ban_info: Optional[BanInfo] = None
    violation_info: Optional[ViolationInfo] = None
    phone_number_settings: Optional[PhoneNumberSettings] = None

    # Account alerts
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    alert_severity: Optional[str] = None
    alert_status: Optional[str] = None
    alert_type: Optional[str] = None
    alert_description: Optional[str] = None

    # Flows
    message: Optional[str] = None
    flow_id: Optional[str] = None
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    error_rate: Optional[float] = None
    threshold: Optional[float] = None
    alert_state: Optional[str] = None
    p50_latency: Optional[int] = None
    p90_latency: Optional[int] = None
    requests_count: Optional[int] = None
    availability: Optional[float] = None

    # Preferences, calls, groups
    user_preferences: list[UserPreference] = Field(default_factory=list)
    calls: list[Call] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)


class Change(WebhookModel):
    field: str = ""
    value: Value = Field(default_factory=Value)


class Entry(WebhookModel):
    id: str = ""
    time: int = 0
    changes: list[Change] = Field(default_factory=list)


class Notification(WebhookModel):
    """Full webhook notification."""
    object: str = ""
    entry: list[Entry] = Field(default_factory=list)


def decode_notification(raw_body: bytes) -> Notification:
    """
    Decode a raw request body into a Notification.

    An empty body decodes to an empty notification (no entries).

    Raises:
        NotificationDecodeError: Malformed JSON or invalid envelope shape
    """

    if not raw_body or not raw_body.strip():
        return Notification()

    try:
        return Notification.model_validate_json(raw_body)
    except ValidationError as e:
        logger.warning(
            "Notification body rejected",
            extra={"error_count": e.error_count(), "body_length": len(raw_body)},
        )
        raise NotificationDecodeError(f"could not decode notification: {e}") from e
