"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

BUSINESS_ACCOUNT_ID = "102290129340398"
SENDER_WA_ID = "16315551234"


def _message(type_: str = "text", msg_id: str = "wamid.HBgLMTYzMTU1NTEyMzQVAgASGBQzQTdBNjg4QjU2", **payload) -> dict:
    message = {
        "from": SENDER_WA_ID,
        "id": msg_id,
        "timestamp": "1707500000",
        "type": type_,
    }
    message.update(payload)
    return message


def _messages_change(messages=(), statuses=(), errors=()) -> dict:
    value = {
        "messaging_product": "whatsapp",
        "metadata": {
            "display_phone_number": "15550783881",
            "phone_number_id": "106540352242922",
        },
        "contacts": [{"profile": {"name": "Kerry Fisher"}, "wa_id": SENDER_WA_ID}],
    }
    if messages:
        value["messages"] = list(messages)
    if statuses:
        value["statuses"] = list(statuses)
    if errors:
        value["errors"] = list(errors)
    return {"field": "messages", "value": value}


def _notification(*changes: dict, entries: int = 1) -> dict:
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {"id": BUSINESS_ACCOUNT_ID, "time": 1707500000 + i, "changes": list(changes)}
            for i in range(entries)
        ],
    }


@pytest.fixture
def make_message():
    """Build one inbound message dict: make_message("text", text={"body": "hi"})."""
    return _message


@pytest.fixture
def messages_change():
    """Build a "messages" change with metadata and one sender contact."""
    return _messages_change


@pytest.fixture
def make_notification():
    """Wrap changes into a whatsapp_business_account notification."""
    return _notification
