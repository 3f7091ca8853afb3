"""Transport contract consumed by the delivery orchestrator."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Transport(Protocol):
    """Something that can post one message at a time.

    Both methods raise :class:`~marksplit.errors.DeliveryError` (or any other
    exception) on failure and return normally on success. A length rejection
    should surface as :class:`~marksplit.errors.MessageTooLongError`.
    """

    async def send_text(self, content: str) -> None:
        ...

    async def send_image(self, url: str, alt_text: str | None = None) -> None:
        ...
