"""Sequential delivery of chunks through a transport.

Chunks go out one at a time, in order, with a short pause between sends.
A failure of one chunk never aborts the rest. A chunk the transport rejects
as too long is split again and its pieces are delivered in its place.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from loguru import logger

from marksplit.channels.base import Transport
from marksplit.errors import LENGTH_ERROR_MARKERS, MessageTooLongError
from marksplit.markdown.chunk import CEILING, CODE_CEILING, Chunk, parse_image
from marksplit.markdown.format import split_content
from marksplit.markdown.sanitize import sanitize
from marksplit.markdown.shrink import shrink

DEFAULT_SEND_DELAY = 0.1


@dataclass
class DeliveryResult:
    """Outcome of delivering one chunk."""

    chunk: Chunk
    ok: bool
    error: Exception | None = None


def is_length_error(err: Exception) -> bool:
    """True when *err* means the transport refused the message for its size."""
    if isinstance(err, MessageTooLongError):
        return True
    msg = str(err)
    return any(marker in msg for marker in LENGTH_ERROR_MARKERS)


class _Sender:
    def __init__(
        self,
        deliver: Transport,
        cancel: asyncio.Event | None,
        delay: float,
        code_limit: int,
    ):
        self.deliver = deliver
        self.cancel = cancel
        self.delay = delay
        self.code_limit = code_limit
        self.results: list[DeliveryResult] = []
        self._sent_any = False

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    async def _pause(self) -> None:
        if self._sent_any and self.delay > 0:
            await asyncio.sleep(self.delay)
        self._sent_any = True

    async def _resplit(self, chunk: Chunk, limit: int) -> None:
        pieces = shrink(chunk, limit=limit, code_limit=min(self.code_limit, limit))
        if len(pieces) <= 1:
            err = MessageTooLongError(f"Chunk of {len(chunk.content)} chars cannot be split further")
            logger.error(str(err))
            self.results.append(DeliveryResult(chunk, False, err))
            return
        await self.send_all(pieces, limit)

    async def send_all(self, chunks: list[Chunk], limit: int) -> None:
        total = len(chunks)
        for i, chunk in enumerate(chunks):
            if self.cancelled:
                logger.info(f"Delivery cancelled, {total - i} chunk(s) not sent")
                return

            image = parse_image(chunk.content) if chunk.is_image else None
            content = chunk.content if image else sanitize(chunk.content, frontmatter=False)
            if not content:
                continue
            if not image and len(content) > limit:
                logger.warning(f"Chunk {i + 1} is too large ({len(content)} chars), splitting further")
                await self._resplit(Chunk(chunk.kind, content, chunk.language), limit)
                continue

            await self._pause()
            if self.cancelled:
                logger.info(f"Delivery cancelled, {total - i} chunk(s) not sent")
                return

            try:
                if image:
                    url, alt = image
                    await self.deliver.send_image(url, alt or None)
                else:
                    logger.debug(f"Chunk {i + 1}/{total} length: {len(content)} chars")
                    await self.deliver.send_text(content)
            except Exception as e:
                if not image and is_length_error(e):
                    logger.warning(f"Chunk {i + 1} exceeded the transport limit, splitting further")
                    await self._resplit(Chunk(chunk.kind, content, chunk.language), max(1, len(content) // 2))
                    continue
                logger.error(f"Error sending chunk {i + 1}/{total}: {e}")
                self.results.append(DeliveryResult(chunk, False, e))
                continue

            self.results.append(DeliveryResult(chunk, True))


async def send_chunks(
    chunks: list[Chunk],
    deliver: Transport,
    *,
    cancel: asyncio.Event | None = None,
    delay: float = DEFAULT_SEND_DELAY,
    limit: int = CEILING,
    code_limit: int = CODE_CEILING,
) -> list[DeliveryResult]:
    """Deliver *chunks* in order and report one result per message attempted.

    Image chunks go to ``deliver.send_image``; everything else to
    ``deliver.send_text``. Setting *cancel* stops further sends; messages
    already sent stay sent.
    """
    sender = _Sender(deliver, cancel, delay, code_limit)
    await sender.send_all(chunks, limit)
    failed = sum(1 for r in sender.results if not r.ok)
    logger.debug(f"Delivered {len(sender.results) - failed}/{len(sender.results)} chunks")
    return sender.results


async def split_and_send(
    markdown: str,
    source_url: str | None,
    deliver: Transport,
    *,
    cancel: asyncio.Event | None = None,
    delay: float = DEFAULT_SEND_DELAY,
    limit: int = CEILING,
    code_limit: int = CODE_CEILING,
) -> list[DeliveryResult]:
    """Split *markdown* and deliver the chunks sequentially through *deliver*."""
    chunks = split_content(markdown, source_url, limit=limit, code_limit=code_limit)
    logger.debug(f"Sending {len(chunks)} chunks")
    return await send_chunks(
        chunks, deliver, cancel=cancel, delay=delay, limit=limit, code_limit=code_limit,
    )
