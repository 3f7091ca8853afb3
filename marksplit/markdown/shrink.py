"""Fallback strategies for units that still exceed the message ceiling.

Tiers are tried in order and the first one that produces more than one
well-formed piece wins:

1. horizontal rules
2. Markdown paragraphs (structure-aware, fences kept whole)
3. code block lines (code chunks only, re-fenced per piece)
4. sentences
5. hard character cut (always succeeds)

Pieces that are still too large after a tier are routed through the tiers
that follow it.
"""

from __future__ import annotations

import re
from typing import Callable

from loguru import logger

from marksplit.markdown.chunk import (
    CEILING,
    CODE_CEILING,
    FENCE,
    Chunk,
    ChunkKind,
    count_fences,
    fence_language,
    fences_balanced,
    is_fence_line,
)
from marksplit.markdown.sanitize import RULE_PLACEHOLDER

HARD_SPLIT_BACKOFF = 0.3

_RULE_LINE = re.compile(r"^[ \t]*[-*_](?:[ \t]*[-*_]){2,}[ \t]*$", re.MULTILINE)
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+(?=[A-Z])")
_HARD_BREAK_CHARS = " \n\t"
_SENTENCE_END_CHARS = ".!?"

_BLOCK_PATTERNS = (
    ("heading", re.compile(r"^#{1,6}\s")),
    ("rule", re.compile(r"^[-*_](?:\s*[-*_]){2,}$")),
    ("list", re.compile(r"^(?:[-*+]|\d+\.)\s")),
    ("quote", re.compile(r"^>")),
    ("table", re.compile(r"\|.*\|")),
)

Strategy = Callable[[Chunk, int, int], list[Chunk] | None]


def block_type(line: str) -> str | None:
    """Classify a line as a structural Markdown element, or ``None`` for prose."""
    stripped = line.strip()
    if stripped.startswith(FENCE):
        return "fence"
    for name, pattern in _BLOCK_PATTERNS:
        if pattern.search(stripped):
            return name
    return None


def classify(content: str, default: ChunkKind = ChunkKind.PARAGRAPH) -> Chunk:
    """Wrap *content* in a chunk, recognising a lone fenced block as code."""
    stripped = content.strip()
    if FENCE in stripped:
        if stripped.startswith(FENCE) and stripped.endswith(FENCE) and count_fences(stripped) == 2:
            first_line = stripped.split("\n", 1)[0]
            return Chunk(ChunkKind.CODE, stripped, fence_language(first_line))
        return Chunk(ChunkKind.MERGED, stripped)
    return Chunk(default, stripped)


def _all_balanced(pieces: list[Chunk]) -> bool:
    return all(fences_balanced(p.content) for p in pieces)


def _refine(pieces: list[Chunk], tier: int, limit: int, code_limit: int) -> list[Chunk]:
    out: list[Chunk] = []
    for piece in pieces:
        if len(piece.content) > limit:
            out.extend(shrink(piece, limit=limit, code_limit=code_limit, start=tier + 1))
        else:
            out.append(piece)
    return out


# ---------------------------------------------------------------------------
# Tier 1: horizontal rules
# ---------------------------------------------------------------------------

def split_on_rules(chunk: Chunk, limit: int = CEILING, code_limit: int = CODE_CEILING) -> list[Chunk] | None:
    if chunk.kind == ChunkKind.CODE:
        return None
    parts = _RULE_LINE.split(chunk.content)
    if len(parts) <= 1:
        return None

    pieces: list[Chunk] = []
    for i, part in enumerate(parts):
        if part.strip():
            pieces.append(classify(part))
        if i < len(parts) - 1:
            pieces.append(Chunk(ChunkKind.PARAGRAPH, RULE_PLACEHOLDER))

    if not _all_balanced(pieces):
        return None
    return _refine(pieces, 0, limit, code_limit)


# ---------------------------------------------------------------------------
# Tier 2: paragraphs
# ---------------------------------------------------------------------------

def split_markdown_paragraphs(content: str) -> list[str]:
    """Split Markdown into blocks at blank lines and structural boundaries.

    Headings and rules stand alone. A list, blockquote or table starts a new
    block unless it continues one of the same type. A fenced block, blank
    lines included, is always one block.
    """
    paragraphs: list[str] = []
    current: list[str] = []
    current_type: str | None = None
    in_code = False

    def flush() -> None:
        nonlocal current_type
        if current:
            paragraphs.append("\n".join(current))
            current.clear()
        current_type = None

    for line in content.split("\n"):
        if in_code:
            current.append(line)
            if is_fence_line(line):
                in_code = False
                flush()
            continue

        kind = block_type(line)
        if kind == "fence":
            flush()
            current.append(line)
            in_code = True
        elif not line.strip():
            flush()
        elif kind in ("heading", "rule"):
            flush()
            paragraphs.append(line)
        elif kind is not None and kind != current_type:
            flush()
            current.append(line)
            current_type = kind
        else:
            current.append(line)

    flush()
    return paragraphs


def split_paragraphs(chunk: Chunk, limit: int = CEILING, code_limit: int = CODE_CEILING) -> list[Chunk] | None:
    if chunk.kind == ChunkKind.CODE:
        return None
    paragraphs = [p.strip() for p in split_markdown_paragraphs(chunk.content) if p.strip()]
    if len(paragraphs) <= 1:
        return None

    pieces: list[Chunk] = []
    current = ""
    for paragraph in paragraphs:
        candidate = f"{current}\n\n{paragraph}" if current else paragraph
        if len(candidate) <= limit:
            current = candidate
            continue
        if current:
            pieces.append(classify(current))
        if len(paragraph) > limit:
            pieces.extend(shrink(classify(paragraph), limit=limit, code_limit=code_limit, start=2))
            current = ""
        else:
            current = paragraph
    if current:
        pieces.append(classify(current))

    if not _all_balanced(pieces):
        return None
    return pieces


# ---------------------------------------------------------------------------
# Tier 3: code block lines
# ---------------------------------------------------------------------------

def _cut_line(line: str, width: int) -> list[str]:
    return [line[i:i + width] for i in range(0, len(line), width)] or [""]


def split_code_lines(chunk: Chunk, limit: int = CEILING, code_limit: int = CODE_CEILING) -> list[Chunk] | None:
    """Split a fenced block by source line, re-fencing every piece."""
    if chunk.kind != ChunkKind.CODE:
        return None

    lines = chunk.content.split("\n")
    language = chunk.language or ""
    if lines and is_fence_line(lines[0]):
        language = chunk.language or fence_language(lines[0])
        lines = lines[1:]
        if lines and is_fence_line(lines[-1]):
            lines = lines[:-1]

    opening = f"{FENCE}{language}"
    budget = code_limit - len(opening) - len(FENCE) - 2
    if budget <= 0:
        return None

    body: list[str] = []
    for line in lines:
        # A single line wider than the budget is cut so the ceiling still holds.
        body.extend(_cut_line(line, budget) if len(line) > budget else [line])

    groups: list[list[str]] = []
    current: list[str] = []
    size = 0
    for line in body:
        added = len(line) + (1 if current else 0)
        if current and size + added > budget:
            groups.append(current)
            current, size = [], 0
            added = len(line)
        current.append(line)
        size += added
    if current:
        groups.append(current)

    return [
        Chunk(ChunkKind.CODE, f"{opening}\n" + "\n".join(group) + f"\n{FENCE}", language)
        for group in groups
    ]


# ---------------------------------------------------------------------------
# Tier 4: sentences
# ---------------------------------------------------------------------------

def split_text_by_sentences(text: str) -> list[str]:
    return [s for s in _SENTENCE_BREAK.split(text) if s.strip()]


def split_sentences(chunk: Chunk, limit: int = CEILING, code_limit: int = CODE_CEILING) -> list[Chunk] | None:
    if chunk.kind == ChunkKind.CODE:
        return None
    sentences = split_text_by_sentences(chunk.content)
    if len(sentences) <= 1:
        return None

    pieces: list[Chunk] = []
    current = ""
    for sentence in sentences:
        candidate = f"{current} {sentence}" if current else sentence
        if len(candidate) <= limit:
            current = candidate
            continue
        if current:
            pieces.append(Chunk(ChunkKind.SENTENCE, current.strip()))
        if len(sentence) > limit:
            pieces.extend(split_hard(Chunk(ChunkKind.SENTENCE, sentence), limit))
            current = ""
        else:
            current = sentence
    if current.strip():
        pieces.append(Chunk(ChunkKind.SENTENCE, current.strip()))

    if not _all_balanced(pieces):
        return None
    return pieces


# ---------------------------------------------------------------------------
# Tier 5: hard character cut
# ---------------------------------------------------------------------------

def find_break(text: str, limit: int, backoff: float = HARD_SPLIT_BACKOFF) -> int:
    """Index to cut *text* at: the nearest whitespace or sentence end within
    the last *backoff* share of the window, else exactly *limit*."""
    floor = limit - int(limit * backoff)
    for i in range(limit, floor, -1):
        if text[i] in _HARD_BREAK_CHARS:
            return i
        if text[i - 1] in _SENTENCE_END_CHARS:
            return i
    return limit


def split_hard(
    chunk: Chunk,
    limit: int = CEILING,
    code_limit: int = CODE_CEILING,
    backoff: float = HARD_SPLIT_BACKOFF,
) -> list[Chunk]:
    kind = chunk.kind if chunk.kind in (ChunkKind.SENTENCE, ChunkKind.MERGED) else ChunkKind.PARAGRAPH
    pieces: list[Chunk] = []
    remaining = chunk.content
    while len(remaining) > limit:
        cut = find_break(remaining, limit, backoff)
        piece = remaining[:cut].strip()
        if piece:
            pieces.append(Chunk(kind, piece))
        remaining = remaining[cut:].lstrip()
    if remaining.strip():
        pieces.append(Chunk(kind, remaining.strip()))
    return pieces


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

_TIERS: tuple[Strategy, ...] = (
    split_on_rules,
    split_paragraphs,
    split_code_lines,
    split_sentences,
)


def shrink(
    chunk: Chunk,
    limit: int = CEILING,
    code_limit: int = CODE_CEILING,
    start: int = 0,
) -> list[Chunk]:
    """Split an oversize chunk into pieces of at most *limit* characters.

    Chunks already within *limit* come back unchanged. *start* skips the
    tiers before it.
    """
    if len(chunk.content) <= limit:
        return [chunk]
    code_limit = min(code_limit, limit)

    for strategy in _TIERS[start:]:
        pieces = strategy(chunk, limit, code_limit)
        if pieces is not None and len(pieces) > 1:
            logger.debug(
                f"Split {chunk.kind.value} chunk of {len(chunk.content)} chars "
                f"into {len(pieces)} pieces via {strategy.__name__}"
            )
            return pieces

    logger.debug(f"Hard-splitting {chunk.kind.value} chunk of {len(chunk.content)} chars")
    return split_hard(chunk, limit, code_limit)
