"""Unified entry point for Markdown → transport-ready chunks."""

from __future__ import annotations

from loguru import logger

from marksplit.markdown.chunk import CEILING, CODE_CEILING, Chunk
from marksplit.markdown.decompose import decompose
from marksplit.markdown.links import resolve_links
from marksplit.markdown.pack import pack
from marksplit.markdown.sanitize import sanitize


def split_content(
    markdown: str,
    source_url: str | None = None,
    limit: int = CEILING,
    code_limit: int = CODE_CEILING,
) -> list[Chunk]:
    """Split *markdown* into an ordered list of chunks of at most *limit* chars.

    Images come out as standalone ``image`` chunks, fenced code blocks are
    never torn, and prose is packed into as few messages as possible. Relative
    links are resolved against *source_url* when given.
    """
    if not markdown or not markdown.strip():
        return []

    cleaned = resolve_links(sanitize(markdown), source_url)
    atoms = decompose(cleaned, limit, code_limit)
    chunks = pack(atoms, limit)
    logger.debug(
        f"Split {len(markdown)} chars into {len(atoms)} atoms, packed into {len(chunks)} chunks"
    )
    return chunks
