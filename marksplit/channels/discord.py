"""Discord transport posting chunks to a channel or thread over the REST API."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from marksplit.errors import LENGTH_ERROR_MARKERS, DeliveryError, MessageTooLongError

if TYPE_CHECKING:
    from marksplit.config.schema import Config


SUPPRESS_EMBEDS_FLAG = 1 << 2

RECOVERABLE_STATUS = {429, 500, 502, 503, 504}

# Recoverable network error patterns
RECOVERABLE_ERRORS = {
    "Timed out",
    "Connection reset",
    "Connection refused",
    "Connection aborted",
    "Network is unreachable",
    "Host is unreachable",
    "Name or service not known",
    "Temporary failure in name resolution",
    "Connect timeout",
    "Read timeout",
    "Write timeout",
}


def _is_recoverable_error(err: Exception) -> bool:
    """Check if error is recoverable (rate limit, server or network) and worth retrying."""
    if isinstance(err, MessageTooLongError):
        return False
    if isinstance(err, DeliveryError) and err.status in RECOVERABLE_STATUS:
        return True
    if isinstance(err, httpx.TransportError):
        return True
    err_str = str(err).lower()
    return any(pattern.lower() in err_str for pattern in RECOVERABLE_ERRORS)


def _error_from_response(response: httpx.Response) -> DeliveryError:
    body = response.text
    status = response.status_code
    if status == 400 and any(marker in body for marker in LENGTH_ERROR_MARKERS):
        return MessageTooLongError(f"Discord rejected message: {body}", status=status)

    retry_after = None
    if status == 429:
        try:
            retry_after = float(response.json().get("retry_after"))
        except (ValueError, TypeError, AttributeError):
            retry_after = None
    return DeliveryError(f"Discord API error {status}: {body}", status=status, retry_after=retry_after)


class DiscordTransport:
    """
    Post messages to one Discord channel (threads are channels too).

    Text goes out as plain messages with link embeds suppressed; images go
    out as embeds so they render as standalone pictures.
    """

    def __init__(
        self,
        token: str,
        channel_id: str,
        *,
        api_base: str = "https://discord.com/api/v10",
        suppress_embeds: bool = True,
        embed_color: int = 0x0099FF,
        timeout: float = 15.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.token = token
        self.channel_id = channel_id
        self.api_base = api_base.rstrip("/")
        self.suppress_embeds = suppress_embeds
        self.embed_color = embed_color
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(cls, config: Config, channel_id: str, **kwargs: Any) -> DiscordTransport:
        return cls(
            config.discord.token,
            channel_id,
            api_base=config.discord.api_base,
            suppress_embeds=config.discord.suppress_embeds,
            embed_color=config.discord.embed_color,
            timeout=config.discord.timeout,
            max_retries=config.delivery.max_retries,
            base_delay=config.delivery.retry_base_delay,
            **kwargs,
        )

    async def __aenter__(self) -> DiscordTransport:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def messages_url(self) -> str:
        return f"{self.api_base}/channels/{self.channel_id}/messages"

    async def _post(self, payload: dict[str, Any]) -> None:
        response = await self._client.post(
            self.messages_url,
            headers={"Authorization": f"Bot {self.token}"},
            json=payload,
        )
        if response.status_code >= 400:
            raise _error_from_response(response)

    async def _post_with_retry(self, payload: dict[str, Any]) -> None:
        """Post with retry logic and exponential backoff."""
        for attempt in range(self.max_retries):
            try:
                await self._post(payload)
                return
            except Exception as e:
                if not _is_recoverable_error(e) or attempt == self.max_retries - 1:
                    raise
                delay = self.base_delay * (2 ** attempt)
                if isinstance(e, DeliveryError) and e.retry_after is not None:
                    delay = max(delay, e.retry_after)
                logger.warning(
                    f"Discord send failed (attempt {attempt + 1}/{self.max_retries}), "
                    f"retrying in {delay}s: {e}"
                )
                await asyncio.sleep(delay)

    async def send_text(self, content: str) -> None:
        payload: dict[str, Any] = {"content": content}
        if self.suppress_embeds:
            payload["flags"] = SUPPRESS_EMBEDS_FLAG
        await self._post_with_retry(payload)

    async def send_image(self, url: str, alt_text: str | None = None) -> None:
        """Send an image as an embed, falling back to the raw Markdown."""
        embed: dict[str, Any] = {"image": {"url": url}, "color": self.embed_color}
        if alt_text and alt_text.strip():
            embed["description"] = alt_text
        try:
            await self._post_with_retry({"embeds": [embed]})
        except DeliveryError as e:
            logger.warning(f"Image embed failed for {url}, sending as text: {e}")
            await self._post_with_retry({"content": f"![{alt_text or ''}]({url})"})
