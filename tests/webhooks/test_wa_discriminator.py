"""
WhatsApp Message Discrimination Tests

Type tag parsing, text priority chain, interactive sub-types,
presence fallback and change-field classification.
"""

import pytest

from wa_webhooks.discriminator import (
    ChangeField,
    FlowEvent,
    MessageKind,
    MessageType,
    classify_change,
    classify_message,
    classify_text,
    parse_flow_event,
    parse_message_type,
    route_message,
)
from wa_webhooks.events import ReferralNotification
from wa_webhooks.schemas import Change, Message


def message(**fields) -> Message:
    payload = {"from": "16315551234", "id": "wamid.1", "timestamp": "1707500000"}
    payload.update(fields)
    return Message.model_validate(payload)


class TestParseMessageType:

    @pytest.mark.parametrize("raw,expected", [
        ("text", MessageType.TEXT),
        ("  TEXT ", MessageType.TEXT),
        ("Interactive", MessageType.INTERACTIVE),
        ("request_welcome", MessageType.REQUEST_WELCOME),
        ("unknown", MessageType.UNKNOWN),
        ("unsupported", MessageType.UNSUPPORTED),
    ])
    def test_known_types(self, raw, expected):
        assert parse_message_type(raw) is expected

    @pytest.mark.parametrize("raw", ["", None, "voice", "texts"])
    def test_no_match_sentinel(self, raw):
        """Unrecognized strings map to the empty sentinel, not to UNKNOWN."""
        result = parse_message_type(raw)

        assert result is MessageType.NO_MATCH
        assert result.value == ""
        assert result is not MessageType.UNKNOWN


class TestTextPriority:
    """referral > context > plain text"""

    def test_referral_beats_context(self):
        msg = message(
            type="text",
            text={"body": "hi"},
            context={"from": "1", "id": "wamid.0"},
            referral={"source_type": "ad", "source_id": "42"},
        )

        assert classify_text(msg) is MessageKind.REFERRAL

    def test_context_is_product_enquiry(self):
        msg = message(type="text", text={"body": "hi"}, context={"from": "1", "id": "wamid.0"})

        assert classify_text(msg) is MessageKind.PRODUCT_ENQUIRY

    def test_plain_text(self):
        msg = message(type="text", text={"body": "hi"})

        assert classify_text(msg) is MessageKind.TEXT

    def test_empty_referral_ignored(self):
        msg = message(type="text", text={"body": "hi"}, referral={})

        assert classify_text(msg) is MessageKind.TEXT

    def test_referral_route_payload(self):
        msg = message(type="text", text={"body": "hi"}, referral={"source_url": "https://fb.me/x"})

        route = route_message(msg)

        assert route.kind is MessageKind.REFERRAL
        assert isinstance(route.payload, ReferralNotification)
        assert route.payload.text.body == "hi"
        assert route.payload.referral.source_url == "https://fb.me/x"


class TestInteractive:

    @pytest.mark.parametrize("interactive,expected", [
        ({"type": "button_reply", "button_reply": {"id": "btn1", "title": "Yes"}}, MessageKind.BUTTON_REPLY),
        ({"type": "list_reply", "list_reply": {"id": "row1", "title": "Row"}}, MessageKind.LIST_REPLY),
        ({"type": "nfm_reply", "nfm_reply": {"name": "flow", "response_json": "{}"}}, MessageKind.FLOW_COMPLETION),
        ({"type": "address_message", "nfm_reply": {"name": "address_message"}}, MessageKind.ADDRESS_SUBMISSION),
        ({"type": "product_list"}, MessageKind.INTERACTIVE),
    ])
    def test_sub_types(self, interactive, expected):
        assert classify_message(message(type="interactive", interactive=interactive)) is expected

    def test_missing_interactive_object(self):
        assert classify_message(message(type="interactive")) is MessageKind.INTERACTIVE

    def test_button_reply_payload(self):
        route = route_message(message(
            type="interactive",
            interactive={"type": "button_reply", "button_reply": {"id": "btn1", "title": "Yes"}},
        ))

        assert route.payload.id == "btn1"


class TestDirectTypes:

    @pytest.mark.parametrize("type_,field,body,kind", [
        ("audio", "audio", {"id": "a1", "mime_type": "audio/ogg"}, MessageKind.AUDIO),
        ("video", "video", {"id": "v1"}, MessageKind.VIDEO),
        ("image", "image", {"id": "i1", "caption": "look"}, MessageKind.IMAGE),
        ("document", "document", {"id": "d1", "filename": "a.pdf"}, MessageKind.DOCUMENT),
        ("sticker", "sticker", {"id": "s1", "animated": True}, MessageKind.STICKER),
        ("location", "location", {"latitude": 1.5, "longitude": 2.5}, MessageKind.LOCATION),
        ("reaction", "reaction", {"message_id": "wamid.0", "emoji": "👍"}, MessageKind.REACTION),
        ("button", "button", {"payload": "p", "text": "Yes"}, MessageKind.BUTTON),
        ("order", "order", {"catalog_id": "c1", "product_items": []}, MessageKind.ORDER),
        ("system", "system", {"body": "changed", "type": "user_changed_number"}, MessageKind.SYSTEM),
    ])
    def test_type_routes_with_payload(self, type_, field, body, kind):
        route = route_message(message(type=type_, **{field: body}))

        assert route.kind is kind
        assert route.payload is not None

    def test_unknown_carries_errors(self):
        route = route_message(message(type="unknown", errors=[{"code": 131051, "title": "Message type unknown"}]))

        assert route.kind is MessageKind.UNKNOWN
        assert route.payload[0].code == 131051

    def test_unsupported_carries_errors(self):
        route = route_message(message(type="unsupported", errors=[{"code": 131051}]))

        assert route.kind is MessageKind.UNSUPPORTED
        assert len(route.payload) == 1

    def test_request_welcome_carries_message(self):
        msg = message(type="request_welcome")

        assert route_message(msg).payload is msg


class TestPresenceFallback:
    """Unrecognized type tags fall back on populated fields."""

    def test_contacts(self):
        msg = message(type="vcard", contacts=[{"name": {"formatted_name": "Ann"}}], location={"latitude": 1})

        assert classify_message(msg) is MessageKind.CONTACTS

    def test_empty_contacts_list_counts_as_present(self):
        msg = message(type="vcard", contacts=[], location={"latitude": 1})

        assert classify_message(msg) is MessageKind.CONTACTS

    def test_location(self):
        msg = message(type="pin", location={"latitude": 1.0, "longitude": 2.0})

        assert classify_message(msg) is MessageKind.LOCATION

    def test_identity(self):
        msg = message(type="", identity={"acknowledged": True, "hash": "abc"})

        assert classify_message(msg) is MessageKind.CUSTOMER_ID_CHANGE

    def test_nothing_matches(self):
        assert classify_message(message(type="hologram")) is MessageKind.UNRECOGNIZED


class TestChangeClassification:

    def test_known_field(self):
        assert classify_change(Change(field="message_template_status_update")) is ChangeField.TEMPLATE_STATUS_UPDATE

    def test_unknown_field_with_messages(self):
        change = Change.model_validate({"field": "mystery", "value": {"statuses": [{"id": "wamid.1"}]}})

        assert classify_change(change) is ChangeField.MESSAGES

    def test_unknown_field_with_calls(self):
        change = Change.model_validate({"field": "mystery", "value": {"calls": [{"id": "c1"}]}})

        assert classify_change(change) is ChangeField.CALLS

    def test_unknown_field_empty_value(self):
        assert classify_change(Change(field="mystery")) is None

    def test_flow_event(self):
        assert parse_flow_event("endpoint_latency") is FlowEvent.ENDPOINT_LATENCY
        assert parse_flow_event("SOMETHING_NEW") is None
