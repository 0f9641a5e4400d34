"""
Discord Clients

- DiscordClient: bot-token REST access for reading and deleting channel messages
- DiscordWebhookClient: posts messages/embeds to an incoming webhook URL
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger("bridges.common.discord_client")

DISCORD_API_URL = "https://discord.com/api/v10"
MAX_MESSAGES_PER_PAGE = 100


class DiscordAPIError(RuntimeError):
    """Non-success response from Discord"""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"Discord API error {status_code}: {message}")
        self.status_code = status_code


def _retry_after(response: httpx.Response) -> float:
    """Seconds to wait after a 429, from the JSON body or header"""
    try:
        return float(response.json().get("retry_after"))
    except (ValueError, TypeError, AttributeError):
        pass
    try:
        return float(response.headers.get("Retry-After", "1"))
    except ValueError:
        return 1.0


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_error:
        try:
            message = response.json().get("message", response.text)
        except (ValueError, AttributeError):
            message = response.text
        raise DiscordAPIError(response.status_code, message)


class DiscordClient:
    """
    Discord REST client authenticated as a bot.

    Only the calls the archive job needs: channel lookup, paged
    message history and single message deletion.
    """

    def __init__(
        self,
        bot_token: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        if not bot_token:
            raise ValueError("Discord bot token is required")
        self._max_retries = max_retries
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=DISCORD_API_URL,
            headers={"Authorization": f"Bot {bot_token}"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def __enter__(self) -> "DiscordClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        attempt = 0
        while True:
            response = self._client.request(method, path, params=params)
            if response.status_code == 429 and attempt < self._max_retries:
                attempt += 1
                delay = _retry_after(response)
                logger.warning("Discord rate limited on %s %s, retrying in %.1fs", method, path, delay)
                self._sleep(delay)
                continue
            _raise_for_status(response)
            return response

    def get_channel(self, channel_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/channels/{channel_id}").json()

    def fetch_messages(
        self,
        channel_id: str,
        limit: int = MAX_MESSAGES_PER_PAGE,
        before: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch one page of channel history, newest first.

        Args:
            channel_id: Channel snowflake
            limit: Page size (max 100)
            before: Only messages older than this message id
        """
        params: Dict[str, Any] = {"limit": min(limit, MAX_MESSAGES_PER_PAGE)}
        if before:
            params["before"] = before
        return self._request("GET", f"/channels/{channel_id}/messages", params=params).json()

    def delete_message(self, channel_id: str, message_id: str) -> None:
        self._request("DELETE", f"/channels/{channel_id}/messages/{message_id}")


class DiscordWebhookClient:
    """Posts JSON payloads ({"content": ..., "embeds": [...]}) to a webhook"""

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = webhook_url
        self._timeout = httpx.Timeout(timeout)
        self._transport = transport
        self._async_transport = async_transport

    @property
    def is_configured(self) -> bool:
        return bool(self._url)

    def send(self, payload: Dict[str, Any]) -> None:
        """Post payload synchronously"""
        if not self._url:
            raise DiscordAPIError(0, "Webhook URL not configured")
        with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
            response = client.post(self._url, json=payload)
        _raise_for_status(response)

    async def asend(self, payload: Dict[str, Any]) -> None:
        """Post payload from async code"""
        if not self._url:
            raise DiscordAPIError(0, "Webhook URL not configured")
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._async_transport) as client:
            response = await client.post(self._url, json=payload)
        _raise_for_status(response)
