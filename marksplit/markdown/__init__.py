"""Markdown splitting pipeline: sanitize, resolve links, decompose, shrink, pack."""

from marksplit.markdown.chunk import CEILING, CODE_CEILING, Chunk, ChunkKind
from marksplit.markdown.format import split_content
from marksplit.markdown.sanitize import sanitize

__all__ = ["CEILING", "CODE_CEILING", "Chunk", "ChunkKind", "split_content", "sanitize"]
