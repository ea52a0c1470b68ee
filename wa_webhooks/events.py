"""
WhatsApp Webhook - Handler Contexts and Event Details

What a registered handler receives besides the raw payload:
- notification contexts (where in the envelope the item came from)
- MessageInfo (message header plus derived predicates)
- detail records projected from a change Value for each business event
"""

from dataclasses import dataclass, field
from typing import Optional

from .schemas import (
    BanInfo,
    Call,
    Change,
    Contact,
    DisableInfo,
    Entry,
    ErrorInfo,
    Message,
    MessageContext,
    Metadata,
    Notification,
    OtherInfo,
    Referral,
    RestrictionInfo,
    Text,
    Value,
    ViolationInfo,
)


# ============================================================================
# NOTIFICATION CONTEXTS
# ============================================================================

@dataclass(frozen=True)
class SenderInfo:
    name: str
    wa_id: str


@dataclass(frozen=True)
class MessageNotificationContext:
    """Envelope data shared by every item of a messages change."""

    entry_id: str
    messaging_product: Optional[str] = None
    contacts: list[Contact] = field(default_factory=list)
    metadata: Optional[Metadata] = None

    @classmethod
    def from_change(cls, entry: Entry, change: Change) -> "MessageNotificationContext":
        value = change.value
        return cls(
            entry_id=entry.id,
            messaging_product=value.messaging_product,
            contacts=list(value.contacts),
            metadata=value.metadata,
        )

    def sender_info(self) -> Optional[SenderInfo]:
        """First contact of the change, or None when there are no contacts."""
        senders = self.all_senders_info()
        return senders[0] if senders else None

    def all_senders_info(self) -> list[SenderInfo]:
        return [
            SenderInfo(
                name=(contact.profile.name or "") if contact.profile else "",
                wa_id=contact.wa_id or "",
            )
            for contact in self.contacts
        ]


@dataclass(frozen=True)
class BusinessNotificationContext:
    """Envelope data for account, template and phone number events."""

    object: str
    entry_id: str
    entry_time: int
    change_field: str

    @classmethod
    def from_change(
        cls, notification: Notification, entry: Entry, change: Change
    ) -> "BusinessNotificationContext":
        return cls(
            object=notification.object,
            entry_id=entry.id,
            entry_time=entry.time,
            change_field=change.field,
        )


@dataclass(frozen=True)
class FlowNotificationContext:
    """Envelope data for flow alerts, plus the event tag and flow id."""

    notification_object: str
    entry_id: str
    entry_time: int
    change_field: str
    event_name: str
    event_message: Optional[str] = None
    flow_id: Optional[str] = None

    @classmethod
    def from_change(
        cls, notification: Notification, entry: Entry, change: Change
    ) -> "FlowNotificationContext":
        value = change.value
        return cls(
            notification_object=notification.object,
            entry_id=entry.id,
            entry_time=entry.time,
            change_field=change.field,
            event_name=value.event or "",
            event_message=value.message,
            flow_id=value.flow_id,
        )


# ============================================================================
# MESSAGE INFO
# ============================================================================

@dataclass(frozen=True)
class MessageInfo:
    """Message header handed to every specific message handler."""

    from_: Optional[str]
    message_id: Optional[str]
    timestamp: Optional[str]
    type: Optional[str]
    context: Optional[MessageContext] = None
    is_a_reply: bool = False
    is_forwarded: bool = False
    is_product_inquiry: bool = False
    is_referral: bool = False

    @classmethod
    def from_message(cls, message: Message) -> "MessageInfo":
        return cls(
            from_=message.from_,
            message_id=message.id,
            timestamp=message.timestamp,
            type=message.type,
            context=message.context,
            is_a_reply=message.is_a_reply,
            is_forwarded=message.is_forwarded,
            is_product_inquiry=message.is_product_inquiry,
            is_referral=message.is_referral,
        )


@dataclass(frozen=True)
class ReferralNotification:
    """Text message sent from a click-to-WhatsApp ad or post."""
    text: Optional[Text]
    referral: Referral


# ============================================================================
# BUSINESS EVENT DETAILS
# ============================================================================

@dataclass(frozen=True)
class AlertNotification:
    entity_type: Optional[str]
    entity_id: Optional[str]
    alert_severity: Optional[str]
    alert_status: Optional[str]
    alert_type: Optional[str]
    alert_description: Optional[str]

    @classmethod
    def from_value(cls, value: Value) -> "AlertNotification":
        return cls(
            entity_type=value.entity_type,
            entity_id=value.entity_id,
            alert_severity=value.alert_severity,
            alert_status=value.alert_status,
            alert_type=value.alert_type,
            alert_description=value.alert_description,
        )


@dataclass(frozen=True)
class TemplateStatusUpdate:
    event: Optional[str]
    message_template_id: Optional[int]
    message_template_name: Optional[str]
    message_template_language: Optional[str]
    reason: Optional[str]
    disable_info: Optional[DisableInfo] = None
    other_info: Optional[OtherInfo] = None

    @classmethod
    def from_value(cls, value: Value) -> "TemplateStatusUpdate":
        return cls(
            event=value.event,
            message_template_id=value.message_template_id,
            message_template_name=value.message_template_name,
            message_template_language=value.message_template_language,
            reason=value.reason,
            disable_info=value.disable_info,
            other_info=value.other_info,
        )


@dataclass(frozen=True)
class TemplateCategoryUpdate:
    message_template_id: Optional[int]
    message_template_name: Optional[str]
    message_template_language: Optional[str]
    previous_category: Optional[str]
    new_category: Optional[str]

    @classmethod
    def from_value(cls, value: Value) -> "TemplateCategoryUpdate":
        return cls(
            message_template_id=value.message_template_id,
            message_template_name=value.message_template_name,
            message_template_language=value.message_template_language,
            previous_category=value.previous_category,
            new_category=value.new_category,
        )


@dataclass(frozen=True)
class TemplateQualityUpdate:
    previous_quality_score: Optional[str]
    new_quality_score: Optional[str]
    message_template_id: Optional[int]
    message_template_name: Optional[str]
    message_template_language: Optional[str]

    @classmethod
    def from_value(cls, value: Value) -> "TemplateQualityUpdate":
        return cls(
            previous_quality_score=value.previous_quality_score,
            new_quality_score=value.new_quality_score,
            message_template_id=value.message_template_id,
            message_template_name=value.message_template_name,
            message_template_language=value.message_template_language,
        )


@dataclass(frozen=True)
class PhoneNumberNameUpdate:
    display_phone_number: Optional[str]
    decision: Optional[str]
    requested_verified_name: Optional[str]
    rejection_reason: Optional[str]

    @classmethod
    def from_value(cls, value: Value) -> "PhoneNumberNameUpdate":
        return cls(
            display_phone_number=value.display_phone_number,
            decision=value.decision,
            requested_verified_name=value.requested_verified_name,
            rejection_reason=value.rejection_reason,
        )


@dataclass(frozen=True)
class PhoneNumberQualityUpdate:
    display_phone_number: Optional[str]
    event: Optional[str]
    current_limit: Optional[str]

    @classmethod
    def from_value(cls, value: Value) -> "PhoneNumberQualityUpdate":
        return cls(
            display_phone_number=value.display_phone_number,
            event=value.event,
            current_limit=value.current_limit,
        )


@dataclass(frozen=True)
class AccountUpdate:
    phone_number: Optional[str]
    event: Optional[str]
    restriction_info: list[RestrictionInfo] = field(default_factory=list)
    ban_info: Optional[BanInfo] = None
    violation_info: Optional[ViolationInfo] = None

    @classmethod
    def from_value(cls, value: Value) -> "AccountUpdate":
        return cls(
            phone_number=value.phone_number,
            event=value.event,
            restriction_info=list(value.restriction_info),
            ban_info=value.ban_info,
            violation_info=value.violation_info,
        )


@dataclass(frozen=True)
class AccountReviewUpdate:
    decision: Optional[str]

    @classmethod
    def from_value(cls, value: Value) -> "AccountReviewUpdate":
        return cls(decision=value.decision)


@dataclass(frozen=True)
class CapabilityUpdate:
    max_daily_conversation_per_phone: Optional[int]
    max_phone_numbers_per_business: Optional[int]

    @classmethod
    def from_value(cls, value: Value) -> "CapabilityUpdate":
        return cls(
            max_daily_conversation_per_phone=value.max_daily_conversation_per_phone,
            max_phone_numbers_per_business=value.max_phone_numbers_per_business,
        )


@dataclass(frozen=True)
class CallStatusUpdate:
    """Every call event carried by one calls change."""
    messaging_product: Optional[str]
    metadata: Optional[Metadata]
    contacts: list[Contact] = field(default_factory=list)
    calls: list[Call] = field(default_factory=list)
    errors: list[ErrorInfo] = field(default_factory=list)

    @classmethod
    def from_value(cls, value: Value) -> "CallStatusUpdate":
        return cls(
            messaging_product=value.messaging_product,
            metadata=value.metadata,
            contacts=list(value.contacts),
            calls=list(value.calls),
            errors=list(value.errors),
        )


# ============================================================================
# FLOW ALERT DETAILS
# ============================================================================

@dataclass(frozen=True)
class FlowStatusChangeDetails:
    old_status: Optional[str]
    new_status: Optional[str]

    @classmethod
    def from_value(cls, value: Value) -> "FlowStatusChangeDetails":
        return cls(old_status=value.old_status, new_status=value.new_status)


@dataclass(frozen=True)
class FlowErrorRateDetails:
    """Client or endpoint error rate crossed its threshold."""
    error_rate: Optional[float]
    threshold: Optional[float]
    alert_state: Optional[str]
    errors: list[ErrorInfo] = field(default_factory=list)

    @classmethod
    def from_value(cls, value: Value) -> "FlowErrorRateDetails":
        return cls(
            error_rate=value.error_rate,
            threshold=value.threshold,
            alert_state=value.alert_state,
            errors=list(value.errors),
        )


@dataclass(frozen=True)
class FlowEndpointLatencyDetails:
    p50_latency: Optional[int]
    p90_latency: Optional[int]
    requests_count: Optional[int]
    threshold: Optional[float]
    alert_state: Optional[str]

    @classmethod
    def from_value(cls, value: Value) -> "FlowEndpointLatencyDetails":
        return cls(
            p50_latency=value.p50_latency,
            p90_latency=value.p90_latency,
            requests_count=value.requests_count,
            threshold=value.threshold,
            alert_state=value.alert_state,
        )


@dataclass(frozen=True)
class FlowEndpointAvailabilityDetails:
    availability: Optional[float]
    threshold: Optional[float]
    alert_state: Optional[str]

    @classmethod
    def from_value(cls, value: Value) -> "FlowEndpointAvailabilityDetails":
        return cls(
            availability=value.availability,
            threshold=value.threshold,
            alert_state=value.alert_state,
        )
