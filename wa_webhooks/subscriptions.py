"""
WhatsApp Webhook Subscriptions

Subscribe, list and unsubscribe the app for a WhatsApp Business Account
(/{api-version}/{waba-id}/subscribed_apps).
No retries. Failures are raised, not swallowed.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field

from .errors import SubscriptionError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://graph.facebook.com"
DEFAULT_API_VERSION = "v23.0"


class SubscribedApp(BaseModel):
    name: str = ""
    id: str = ""


class SubscriptionList(BaseModel):
    data: list[SubscribedApp] = Field(default_factory=list)


class SubscriptionClient:
    """
    Async client for the subscribed_apps edge.

    Args:
        access_token: System user or business token
        base_url: Graph API base URL
        api_version: Graph API version, e.g. "v23.0"
        client: Shared httpx.AsyncClient. A short-lived one is opened
            per call when omitted.
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout
        self._client = client

    def endpoint(self, account_id: str) -> str:
        return f"{self.base_url}/{self.api_version}/{account_id}/subscribed_apps"

    async def create(self, account_id: str) -> bool:
        """Subscribe the app to the account's webhooks."""
        result = await self._send("POST", account_id)
        return bool(result.get("success", False))

    async def list_apps(self, account_id: str) -> list[SubscribedApp]:
        """Apps currently subscribed to the account."""
        result = await self._send("GET", account_id)
        return SubscriptionList.model_validate(result).data

    async def delete(self, account_id: str) -> bool:
        """Unsubscribe the app from the account's webhooks."""
        result = await self._send("DELETE", account_id)
        return bool(result.get("success", False))

    async def _send(self, method: str, account_id: str) -> dict[str, Any]:
        if not account_id:
            raise SubscriptionError("WhatsApp business account id is required")

        url = self.endpoint(account_id)
        headers = {"Authorization": f"Bearer {self.access_token}"}

        try:
            if self._client is not None:
                response = await self._client.request(
                    method, url, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.request(
                        method, url, headers=headers, timeout=self.timeout
                    )
        except httpx.RequestError as e:
            logger.error(
                f"Subscription request failed: {e}",
                exc_info=True,
                extra={"method": method, "account_id": account_id},
            )
            raise SubscriptionError(f"HTTP request failed: {e}") from e

        if response.status_code != 200:
            logger.error(
                f"WhatsApp API error: {response.status_code} - {response.text}",
                extra={
                    "method": method,
                    "account_id": account_id,
                    "status_code": response.status_code,
                },
            )
            raise SubscriptionError(
                f"WhatsApp API returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            result = response.json()
        except ValueError as e:
            raise SubscriptionError("Subscription response is not JSON") from e

        logger.info(
            f"Subscription {method} succeeded",
            extra={"method": method, "account_id": account_id},
        )
        return result
