"""Delivery transports."""

from marksplit.channels.base import Transport
from marksplit.channels.discord import DiscordTransport

__all__ = ["Transport", "DiscordTransport"]
