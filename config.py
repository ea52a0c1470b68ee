"""
Configuration management for the WhatsApp webhook listener.

Loads environment variables from .env file and provides typed access to configuration.
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

from wa_webhooks.listener import WebhookConfig, env_flag

logger = logging.getLogger(__name__)

# Load environment variables from .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path)


class Config:
    """Configuration class for the webhook listener service."""

    # Webhook
    WHATSAPP_VERIFY_TOKEN = os.getenv("WHATSAPP_VERIFY_TOKEN", "")
    WHATSAPP_APP_SECRET = os.getenv("WHATSAPP_APP_SECRET", "")
    WHATSAPP_VALIDATE_SIGNATURE = env_flag("WHATSAPP_VALIDATE_SIGNATURE")
    WEBHOOK_PATH = os.getenv("WEBHOOK_PATH", "/whatsapp")

    # Graph API (subscription management)
    WHATSAPP_ACCESS_TOKEN = os.getenv("WHATSAPP_ACCESS_TOKEN", "")
    WHATSAPP_BUSINESS_ACCOUNT_ID = os.getenv("WHATSAPP_BUSINESS_ACCOUNT_ID", "")
    WHATSAPP_API_VERSION = os.getenv("WHATSAPP_API_VERSION", "v23.0")
    WHATSAPP_BASE_URL = os.getenv("WHATSAPP_BASE_URL", "https://graph.facebook.com")

    # Service
    LISTENER_PORT = int(os.getenv("LISTENER_PORT", "8000"))
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def webhook_config(cls) -> WebhookConfig:
        """Listener configuration built from the loaded values."""
        return WebhookConfig(
            token=cls.WHATSAPP_VERIFY_TOKEN,
            validate=cls.WHATSAPP_VALIDATE_SIGNATURE,
            app_secret=cls.WHATSAPP_APP_SECRET,
        )

    @classmethod
    def validate(cls) -> bool:
        """Validate that required configuration is set."""
        required = ["WHATSAPP_VERIFY_TOKEN"]
        if cls.WHATSAPP_VALIDATE_SIGNATURE:
            required.append("WHATSAPP_APP_SECRET")
        missing = [key for key in required if not getattr(cls, key)]

        if missing:
            logger.warning(f"Missing required environment variables: {', '.join(missing)}")
            return False

        return True


if __name__ == "__main__":
    # Test configuration loading
    print("Configuration loaded:")
    print(f"  Verify Token: {'✓ Set' if Config.WHATSAPP_VERIFY_TOKEN else '✗ Missing'}")
    print(f"  App Secret: {'✓ Set' if Config.WHATSAPP_APP_SECRET else '✗ Missing'}")
    print(f"  Validate Signature: {Config.WHATSAPP_VALIDATE_SIGNATURE}")
    print(f"  Webhook Path: /webhook{Config.WEBHOOK_PATH}")
    print(f"  Listener Port: {Config.LISTENER_PORT}")
    print(f"  Environment: {Config.ENVIRONMENT}")
    print(f"\n  Validation: {'✓ PASSED' if Config.validate() else '✗ FAILED'}")
