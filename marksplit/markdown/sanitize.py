"""Strip transport-unsafe constructs from Markdown before and after splitting."""

from __future__ import annotations

import re

# Fixed-width strikethrough stand-in for a horizontal rule.
RULE_PLACEHOLDER = "~~" + " " * 49 + "~~"

_LINE_ENDINGS = re.compile(r"\r\n?")
_FRONTMATTER = re.compile(r"\A---[ \t]*\n.*?\n---[ \t]*(?:\n|\Z)", re.DOTALL)
_TRAILING_WS = re.compile(r"[ \t]+$", re.MULTILINE)
_STAR_RULE = re.compile(r"^\* \* \*$", re.MULTILINE)
_EXTRA_NEWLINES = re.compile(r"\n{3,}")


def strip_frontmatter(text: str) -> str:
    """Remove YAML frontmatter blocks sitting at the very start of *text*."""
    text = text.lstrip()
    m = _FRONTMATTER.match(text)
    while m:
        text = text[m.end():].lstrip()
        m = _FRONTMATTER.match(text)
    return text


def sanitize(text: str, frontmatter: bool = True) -> str:
    """Normalize Markdown for delivery.

    Removes leading frontmatter, strips trailing whitespace per line, swaps
    bare ``* * *`` rules for :data:`RULE_PLACEHOLDER` and collapses runs of
    blank lines. Idempotent.

    Pass ``frontmatter=False`` for text that is not a document start (a
    single chunk), where a leading ``---`` pair is content.
    """
    if not text:
        return ""
    text = _LINE_ENDINGS.sub("\n", text)
    if frontmatter:
        text = strip_frontmatter(text)
    text = _TRAILING_WS.sub("", text)
    text = _STAR_RULE.sub(RULE_PLACEHOLDER, text)
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()
