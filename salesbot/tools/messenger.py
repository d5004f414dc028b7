"""
Outbound delivery to Messenger through the Graph Send API.

Delivery is best effort: failures are logged and never raised into the
conversation flow.
"""

import logging
from typing import Optional, Protocol

import httpx

from salesbot.config import settings

logger = logging.getLogger(__name__)


class MessageSender(Protocol):
    async def send_text(self, user_id: str, text: str) -> None: ...

    async def send_image(self, user_id: str, url: str) -> None: ...

    async def send_typing(self, user_id: str, on: bool) -> None: ...


class GraphMessengerSender:
    """Posts messages and sender actions for a single Facebook page."""

    def __init__(
        self,
        page_access_token: Optional[str] = None,
        api_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        integrations = settings.integrations
        self._token = page_access_token if page_access_token is not None else integrations.page_access_token
        self._url = api_url or integrations.graph_api_url
        self._client = client or httpx.AsyncClient(timeout=integrations.http_timeout_sec)

    async def _post(self, payload: dict) -> None:
        if not self._token:
            logger.warning("PAGE_ACCESS_TOKEN is not set; dropping outbound message")
            return
        try:
            response = await self._client.post(
                self._url, params={"access_token": self._token}, json=payload,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Send API call failed: %s", e)

    async def send_text(self, user_id: str, text: str) -> None:
        await self._post({
            "recipient": {"id": user_id},
            "messaging_type": "RESPONSE",
            "message": {"text": text},
        })

    async def send_image(self, user_id: str, url: str) -> None:
        await self._post({
            "recipient": {"id": user_id},
            "messaging_type": "RESPONSE",
            "message": {
                "attachment": {"type": "image", "payload": {"url": url, "is_reusable": True}},
            },
        })

    async def send_typing(self, user_id: str, on: bool) -> None:
        await self._post({
            "recipient": {"id": user_id},
            "sender_action": "typing_on" if on else "typing_off",
        })

    async def aclose(self) -> None:
        await self._client.aclose()
