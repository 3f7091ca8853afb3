"""Chunk model and fence-awareness helpers shared by the splitting pipeline."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

# Hard per-message ceiling of the transport (Discord).
CEILING = 2000
# Code pieces stay below this to leave room for re-inserted fence markers.
CODE_CEILING = 1900

FENCE = "```"

IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
_IMAGE_EXACT = re.compile(r"^!\[([^\]]*)\]\(([^)]+)\)$")


class ChunkKind(str, Enum):
    """Provenance tag of a chunk."""

    IMAGE = "image"
    CODE = "code"
    PARAGRAPH = "paragraph"
    SENTENCE = "sentence"
    MERGED = "merged"


@dataclass(frozen=True)
class Chunk:
    kind: ChunkKind
    content: str
    language: str | None = None  # code chunks only

    @property
    def is_image(self) -> bool:
        return self.kind == ChunkKind.IMAGE


def count_fences(text: str) -> int:
    return text.count(FENCE)


def fences_balanced(text: str) -> bool:
    """True when every ``` marker in *text* has a partner."""
    return count_fences(text) % 2 == 0


def parse_image(text: str) -> tuple[str, str] | None:
    """Return ``(url, alt)`` for a standalone ``![alt](url)``, else ``None``.

    An optional title (``![alt](url "title")``) is not part of the URL and is
    dropped.
    """
    m = _IMAGE_EXACT.match(text.strip())
    if not m:
        return None
    target = m.group(2).split(maxsplit=1)
    if not target:
        return None
    return target[0], m.group(1)


def fence_language(line: str) -> str:
    """Language tag of an opening fence line (empty when none)."""
    return line.strip()[len(FENCE):].strip()


def is_fence_line(line: str) -> bool:
    return line.strip().startswith(FENCE)
