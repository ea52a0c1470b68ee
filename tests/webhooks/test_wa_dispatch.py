"""
WhatsApp Dispatch Engine Tests

Handler registry walk: routing, ordering, error policy, fail-open defaults.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from wa_webhooks.errors import (
    ButtonReplyHandlerError,
    TextMessageHandlerError,
    UnrecognizedMessageTypeError,
)
from wa_webhooks.events import MessageInfo, MessageNotificationContext
from wa_webhooks.handler import EventKind, Handler, default_error_handler
from wa_webhooks.discriminator import MessageKind
from wa_webhooks.schemas import decode_notification


def decode(payload: dict):
    return decode_notification(json.dumps(payload).encode())


class TestRouting:
    """Exactly one specific handler per message."""

    @pytest.mark.asyncio
    async def test_text_message(self, make_notification, messages_change, make_message):
        """One text message "hi" -> one text handler call."""
        handler = Handler()
        on_text = AsyncMock()
        handler.on_text_message(on_text)

        response = await handler.handle_notification(
            decode(make_notification(messages_change([make_message("text", text={"body": "hi"})])))
        )

        assert response.status_code == 200
        on_text.assert_awaited_once()
        ctx, info, text = on_text.await_args.args
        assert isinstance(ctx, MessageNotificationContext)
        assert ctx.sender_info().name == "Kerry Fisher"
        assert isinstance(info, MessageInfo)
        assert info.from_ == "16315551234"
        assert text.body == "hi"

    @pytest.mark.asyncio
    async def test_button_reply_skips_generic_interactive(self, make_notification, messages_change, make_message):
        handler = Handler()
        on_button_reply = AsyncMock()
        on_interactive = AsyncMock()
        handler.on_button_reply(on_button_reply)
        handler.on_interactive_message(on_interactive)

        message = make_message(
            "interactive",
            interactive={"type": "button_reply", "button_reply": {"id": "btn1", "title": "Yes"}},
        )
        response = await handler.handle_notification(decode(make_notification(messages_change([message]))))

        assert response.status_code == 200
        on_button_reply.assert_awaited_once()
        assert on_button_reply.await_args.args[2].id == "btn1"
        on_interactive.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_reply_skips_generic_interactive(self, make_notification, messages_change, make_message):
        handler = Handler()
        on_list_reply = AsyncMock()
        on_interactive = AsyncMock()
        handler.on_list_reply(on_list_reply)
        handler.on_interactive_message(on_interactive)

        message = make_message(
            "interactive",
            interactive={"type": "list_reply", "list_reply": {"id": "row-2", "title": "Tuesday"}},
        )
        await handler.handle_notification(decode(make_notification(messages_change([message]))))

        on_list_reply.assert_awaited_once()
        on_interactive.assert_not_called()

    @pytest.mark.asyncio
    async def test_text_priority(self, make_notification, messages_change, make_message):
        """Referral, product enquiry and text each reach only their own slot."""
        handler = Handler()
        calls = []
        handler.on_text_message(lambda ctx, info, payload: calls.append("text"))
        handler.on_product_enquiry(lambda ctx, info, payload: calls.append("product_enquiry"))
        handler.on_referral_message(lambda ctx, info, payload: calls.append("referral"))

        messages = [
            make_message("text", msg_id="wamid.1", text={"body": "a"},
                         context={"from": "1", "id": "wamid.0"}, referral={"source_type": "ad"}),
            make_message("text", msg_id="wamid.2", text={"body": "b"}, context={"from": "1", "id": "wamid.0"}),
            make_message("text", msg_id="wamid.3", text={"body": "c"}),
        ]
        await handler.handle_notification(decode(make_notification(messages_change(messages))))

        assert calls == ["referral", "product_enquiry", "text"]

    @pytest.mark.asyncio
    async def test_sync_handlers_supported(self, make_notification, messages_change, make_message):
        handler = Handler()
        on_image = MagicMock(return_value=None)
        handler.on_image_message(on_image)

        await handler.handle_notification(
            decode(make_notification(messages_change([make_message("image", image={"id": "media-1"})])))
        )

        on_image.assert_called_once()
        assert on_image.call_args.args[2].id == "media-1"

    @pytest.mark.asyncio
    async def test_decorator_registration(self, make_notification, messages_change, make_message):
        handler = Handler()
        seen = []

        @handler.on_reaction_message
        async def on_reaction(ctx, info, reaction):
            seen.append(reaction.emoji)

        await handler.handle_notification(decode(make_notification(messages_change([
            make_message("reaction", reaction={"message_id": "wamid.0", "emoji": "🔥"}),
        ]))))

        assert seen == ["🔥"]
        assert on_reaction is not None

    def test_unknown_slot_rejected(self):
        with pytest.raises(ValueError):
            Handler().register("not-a-slot", lambda *args: None)


class TestWalkOrder:
    """Errors, then statuses, then messages; entries and changes in order."""

    @pytest.mark.asyncio
    async def test_families_in_order(self, make_notification, messages_change, make_message):
        handler = Handler()
        calls = []
        handler.on_notification_error(lambda ctx, error: calls.append(("error", error.code)))
        handler.on_message_status_change(lambda ctx, status: calls.append(("status", status.status)))
        handler.on_message_received(lambda ctx, message: calls.append(("received", message.id)))
        handler.on_text_message(lambda ctx, info, text: calls.append(("text", text.body)))

        change = messages_change(
            messages=[make_message("text", msg_id="wamid.m1", text={"body": "hi"})],
            statuses=[
                {"id": "wamid.s1", "status": "delivered", "timestamp": "1", "recipient_id": "1"},
                {"id": "wamid.s2", "status": "read", "timestamp": "2", "recipient_id": "1"},
            ],
            errors=[{"code": 131000, "title": "Something went wrong"}],
        )
        await handler.handle_notification(decode(make_notification(change)))

        assert calls == [
            ("error", 131000),
            ("status", "delivered"),
            ("status", "read"),
            ("received", "wamid.m1"),
            ("text", "hi"),
        ]

    @pytest.mark.asyncio
    async def test_entries_then_changes(self, make_notification, messages_change, make_message):
        handler = Handler()
        seen = []
        handler.on_text_message(lambda ctx, info, text: seen.append(text.body))

        notification = make_notification(
            messages_change([make_message("text", text={"body": "first"})]),
            messages_change([make_message("text", text={"body": "second"})]),
            entries=2,
        )
        await handler.handle_notification(decode(notification))

        assert seen == ["first", "second", "first", "second"]


class TestFailOpen:

    @pytest.mark.asyncio
    async def test_empty_notification(self, make_notification):
        handler = Handler()
        on_text = AsyncMock()
        handler.on_text_message(on_text)

        assert (await handler.handle_notification(decode({"object": "x", "entry": []}))).status_code == 200
        assert (await handler.handle_notification(decode(make_notification()))).status_code == 200
        on_text.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("type_,fields", [
        ("text", {"text": {"body": "hi"}}),
        ("audio", {"audio": {"id": "a"}}),
        ("interactive", {"interactive": {"type": "nfm_reply", "nfm_reply": {"response_json": "{}"}}}),
        ("order", {"order": {"catalog_id": "c"}}),
        ("unknown", {"errors": [{"code": 131051}]}),
        ("request_welcome", {}),
        ("contacts", {"contacts": [{"name": {"formatted_name": "Ann"}}]}),
    ])
    async def test_no_handlers_registered(self, make_notification, messages_change, make_message, type_, fields):
        handler = Handler()

        response = await handler.handle_notification(
            decode(make_notification(messages_change([make_message(type_, **fields)])))
        )

        assert response.status_code == 200


class TestErrorPolicy:

    @pytest.mark.asyncio
    async def test_failure_is_fail_fast(self, make_notification, messages_change, make_message):
        """Earlier items ran, later items did not, response is 500."""
        handler = Handler()
        seen = []

        def on_text(ctx, info, text):
            if text.body == "boom":
                raise RuntimeError("database down")
            seen.append(text.body)

        handler.on_text_message(on_text)

        messages = [
            make_message("text", msg_id="wamid.1", text={"body": "one"}),
            make_message("text", msg_id="wamid.2", text={"body": "boom"}),
            make_message("text", msg_id="wamid.3", text={"body": "three"}),
        ]
        response = await handler.handle_notification(decode(make_notification(messages_change(messages))))

        assert response.status_code == 500
        assert seen == ["one"]

    @pytest.mark.asyncio
    async def test_error_is_wrapped_per_family(self, make_notification, messages_change, make_message):
        errors = []
        handler = Handler(on_error=errors.append)
        original = RuntimeError("database down")
        handler.on_text_message(AsyncMock(side_effect=original))

        await handler.handle_notification(
            decode(make_notification(messages_change([make_message("text", text={"body": "hi"})])))
        )

        assert len(errors) == 1
        assert isinstance(errors[0], TextMessageHandlerError)
        assert errors[0].__cause__ is original
        assert str(errors[0]) == "text message handler failed: database down"

    @pytest.mark.asyncio
    async def test_swallowing_error_callback_continues(self, make_notification, messages_change, make_message):
        handler = Handler()
        seen = []
        failures = []

        @handler.on_error
        async def record(error):
            failures.append(type(error))

        def on_button_reply(ctx, info, reply):
            if reply.id == "bad":
                raise ValueError("bad button")
            seen.append(reply.id)

        handler.on_button_reply(on_button_reply)

        messages = [
            make_message("interactive", msg_id=f"wamid.{i}",
                         interactive={"type": "button_reply", "button_reply": {"id": reply_id}})
            for i, reply_id in enumerate(["ok-1", "bad", "ok-2"])
        ]
        response = await handler.handle_notification(decode(make_notification(messages_change(messages))))

        assert response.status_code == 200
        assert seen == ["ok-1", "ok-2"]
        assert failures == [ButtonReplyHandlerError]

    @pytest.mark.asyncio
    async def test_unrecognized_message_dropped_by_default(self, make_notification, messages_change, make_message):
        handler = Handler()

        response = await handler.handle_notification(
            decode(make_notification(messages_change([make_message("hologram")])))
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_unrecognized_message_reported(self, make_notification, messages_change, make_message):
        errors = []
        handler = Handler(on_error=errors.append)

        await handler.handle_notification(
            decode(make_notification(messages_change([make_message("hologram", msg_id="wamid.h")])))
        )

        assert isinstance(errors[0], UnrecognizedMessageTypeError)
        assert errors[0].message_type == "hologram"
        assert errors[0].message_id == "wamid.h"

    @pytest.mark.asyncio
    async def test_unrecognized_message_handler(self, make_notification, messages_change, make_message):
        handler = Handler()
        on_unrecognized = AsyncMock()
        handler.on_unrecognized_message(on_unrecognized)

        await handler.handle_notification(
            decode(make_notification(messages_change([make_message("hologram")])))
        )

        on_unrecognized.assert_awaited_once()
        assert on_unrecognized.await_args.args[2].type == "hologram"

    def test_default_error_handler_reraises(self):
        error = TextMessageHandlerError(RuntimeError("x"))

        with pytest.raises(TextMessageHandlerError):
            default_error_handler(error)

    def test_registry_reports_registration(self):
        handler = Handler()
        handler.register(EventKind.ALERT, lambda ctx, alert: None)

        assert handler.is_registered(EventKind.ALERT)
        assert not handler.is_registered(MessageKind.TEXT)
