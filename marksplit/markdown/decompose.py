"""Break Markdown into minimal indivisible units: images, code blocks, paragraphs.

Images are pulled out first so they are never reprocessed. The text between
images is scanned line by line; fenced blocks become ``code`` chunks and the
rest accumulates into ``paragraph`` chunks that are flushed only at heading
boundaries, keeping atoms as large as possible for the packer.
"""

from __future__ import annotations

import re

from marksplit.markdown.chunk import (
    CEILING,
    CODE_CEILING,
    FENCE,
    IMAGE_PATTERN,
    Chunk,
    ChunkKind,
    fence_language,
    fences_balanced,
    is_fence_line,
)
from marksplit.markdown.shrink import shrink

_HEADING = re.compile(r"^#{1,6}\s")
_ESCAPED_FENCE = r"\`\`\`"


def is_heading(line: str) -> bool:
    return bool(_HEADING.match(line.strip()))


def _ensure_size(chunk: Chunk, limit: int, code_limit: int) -> list[Chunk]:
    if len(chunk.content) <= limit:
        return [chunk]
    return shrink(chunk, limit=limit, code_limit=code_limit)


def decompose_text(text: str, limit: int = CEILING, code_limit: int = CODE_CEILING) -> list[Chunk]:
    """Split image-free text into ``code`` and ``paragraph`` atoms."""
    chunks: list[Chunk] = []
    lines = text.split("\n")
    buffer: list[str] = []
    in_code = False
    language = ""

    def flush(kind: ChunkKind) -> None:
        content = "\n".join(buffer).strip()
        buffer.clear()
        if not content:
            return
        if kind == ChunkKind.PARAGRAPH and not fences_balanced(content):
            # Stray inline ``` with no partner: escape it so it renders literally.
            content = content.replace(FENCE, _ESCAPED_FENCE)
        lang = (language or None) if kind == ChunkKind.CODE else None
        chunks.extend(_ensure_size(Chunk(kind, content, lang), limit, code_limit))

    for i, line in enumerate(lines):
        if is_fence_line(line):
            if in_code:
                buffer.append(line)
                flush(ChunkKind.CODE)
                in_code = False
                language = ""
            else:
                flush(ChunkKind.PARAGRAPH)
                in_code = True
                language = fence_language(line)
                buffer.append(line)
            continue

        if in_code:
            buffer.append(line)
            continue

        if line.strip() == "" and buffer:
            previous = next((b for b in reversed(buffer) if b.strip()), "")
            upcoming = lines[i + 1] if i + 1 < len(lines) else ""
            if is_heading(previous) or is_heading(upcoming):
                flush(ChunkKind.PARAGRAPH)
                continue
        buffer.append(line)

    if in_code:
        # Unterminated fence: close it so the block stays balanced.
        buffer.append(FENCE)
        flush(ChunkKind.CODE)
    else:
        flush(ChunkKind.PARAGRAPH)
    return chunks


def decompose(text: str, limit: int = CEILING, code_limit: int = CODE_CEILING) -> list[Chunk]:
    """Decompose *text* into ordered atoms, each within *limit* characters."""
    chunks: list[Chunk] = []
    last = 0
    for m in IMAGE_PATTERN.finditer(text):
        before = text[last:m.start()].strip()
        if before:
            chunks.extend(decompose_text(before, limit, code_limit))
        chunks.append(Chunk(ChunkKind.IMAGE, m.group(0)))
        last = m.end()

    rest = text[last:].strip()
    if rest:
        chunks.extend(decompose_text(rest, limit, code_limit))
    return chunks
