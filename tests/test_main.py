"""
Service Wiring Tests

The FastAPI app from main.py: health endpoints and the mounted webhook.
"""

import importlib
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

import config
from config import Config
from main import app, build_default_handler, create_app
from wa_webhooks import Handler, WebhookConfig
from wa_webhooks.listener import env_flag


class TestHealth:

    def test_live(self):
        response = TestClient(app).get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    def test_ready_reports_missing_token(self):
        with patch.object(Config, "WHATSAPP_VERIFY_TOKEN", ""):
            response = TestClient(app).get("/health/ready")

        assert response.json()["status"] == "not_ready"

    def test_ready(self):
        with patch.object(Config, "WHATSAPP_VERIFY_TOKEN", "token"), \
                patch.object(Config, "WHATSAPP_VALIDATE_SIGNATURE", False):
            response = TestClient(app).get("/health/ready")

        assert response.json() == {"status": "ready"}

    def test_root_lists_webhook(self):
        body = TestClient(app).get("/").json()

        assert body["endpoints"]["notifications"] == f"POST /webhook{Config.WEBHOOK_PATH}"


class TestWebhookMounted:

    def test_custom_handler_receives_messages(self, make_notification, messages_change, make_message):
        handler = Handler()
        on_text = AsyncMock()
        handler.on_text_message(on_text)
        service = create_app(handler, reader=lambda request: WebhookConfig(token="t"))

        with TestClient(service) as client:
            response = client.post(
                f"/webhook{Config.WEBHOOK_PATH}",
                json=make_notification(messages_change([make_message("text", text={"body": "hi"})])),
            )

        assert response.status_code == 200
        on_text.assert_awaited_once()

    def test_verification_uses_reader_token(self):
        service = create_app(reader=lambda request: WebhookConfig(token="configured"))

        response = TestClient(service).get(
            f"/webhook{Config.WEBHOOK_PATH}",
            params={"hub.mode": "subscribe", "hub.challenge": "1158201444", "hub.verify_token": "configured"},
        )

        assert response.status_code == 200
        assert response.text == "1158201444"

    def test_default_handler_accepts_traffic(self, make_notification, messages_change, make_message):
        service = create_app(build_default_handler(), reader=lambda request: WebhookConfig())
        change = messages_change(
            messages=[make_message("text", text={"body": "hi"})],
            statuses=[{"id": "wamid.s1", "status": "read", "timestamp": "1", "recipient_id": "1"}],
        )

        response = TestClient(service).post(f"/webhook{Config.WEBHOOK_PATH}", json=make_notification(change))

        assert response.status_code == 200


class TestSignatureFlag:
    """Service config and WebhookConfig.from_env read WHATSAPP_VALIDATE_SIGNATURE the same way."""

    @pytest.fixture
    def reload_config(self):
        yield lambda: importlib.reload(config).Config
        importlib.reload(config)

    @pytest.mark.parametrize("raw", ["1", "true", "TRUE", "yes", " Yes "])
    def test_truthy_values_enable_validation(self, reload_config, raw):
        with patch.dict("os.environ", {"WHATSAPP_VALIDATE_SIGNATURE": raw}):
            service_config = reload_config().webhook_config()
            library_config = WebhookConfig.from_env()

        assert service_config.validate is True
        assert library_config.validate is True

    @pytest.mark.parametrize("raw", ["0", "false", "no", ""])
    def test_other_values_disable_validation(self, reload_config, raw):
        with patch.dict("os.environ", {"WHATSAPP_VALIDATE_SIGNATURE": raw}):
            service_config = reload_config().webhook_config()
            library_config = WebhookConfig.from_env()

        assert service_config.validate is False
        assert library_config.validate is False

    def test_unset_uses_default(self):
        with patch.dict("os.environ", {}, clear=True):
            assert env_flag("WHATSAPP_VALIDATE_SIGNATURE") is False
            assert env_flag("WHATSAPP_VALIDATE_SIGNATURE", default=True) is True
