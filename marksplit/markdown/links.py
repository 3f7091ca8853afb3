"""Rewrite relative Markdown links and images to absolute URLs."""

from __future__ import annotations

import re
from urllib.parse import SplitResult, urljoin, urlsplit

from loguru import logger

from marksplit.markdown.chunk import is_fence_line

# Matches both [text](url) and the [alt](url) tail of ![alt](url).
_LINK = re.compile(r"\[([^\]]*)\]\(([^)]+)\)")


def _parse_source(source_url: str) -> SplitResult | None:
    try:
        base = urlsplit(source_url)
    except ValueError:
        return None
    if not base.scheme or not base.netloc:
        return None
    return base


def resolve_relative_path(base_path: str, relative_path: str) -> str:
    """Join *relative_path* onto the directory *base_path*.

    ``.`` segments are skipped and ``..`` pops one segment; popping past the
    root leaves the root in place.
    """
    parts = [p for p in base_path.split("/") if p]
    for part in relative_path.split("/"):
        if part == "..":
            if parts:
                parts.pop()
        elif part and part != ".":
            parts.append(part)
    resolved = "/" + "/".join(parts)
    if relative_path.endswith("/") and parts:
        resolved += "/"
    return resolved


def resolve_url(url: str, base: SplitResult) -> str:
    """Resolve a single link target against the parsed source document URL."""
    target = urlsplit(url)  # raises ValueError on malformed input
    if target.scheme:
        return url
    if url.startswith("//"):
        return f"{base.scheme}:{url}"
    if url.startswith("/"):
        return f"{base.scheme}://{base.netloc}{url}"
    if url.startswith(("#", "?")):
        return urljoin(base.geturl(), url)

    path = base.path or "/"
    base_dir = path if path.endswith("/") else path[: path.rfind("/") + 1]
    return f"{base.scheme}://{base.netloc}{resolve_relative_path(base_dir, url)}"


def resolve_links(text: str, source_url: str | None = None) -> str:
    """Make every link and image in *text* absolute relative to *source_url*.

    Returns *text* unchanged when *source_url* is missing or unparsable. A
    link that cannot be resolved is left as written.
    """
    if not source_url:
        return text

    base = _parse_source(source_url)
    if base is None:
        logger.warning(f"Failed to parse source URL: {source_url}")
        return text

    def _replace(match: re.Match) -> str:
        label, target = match.group(1), match.group(2)
        href, sep, title = target.strip().partition(" ")
        try:
            resolved = resolve_url(href, base)
        except ValueError as e:
            logger.warning(f"Failed to resolve URL {href!r}: {e}")
            return match.group(0)
        return f"[{label}]({resolved}{sep}{title})"

    # Fenced code is copied verbatim; only the prose between fences is rewritten.
    out: list[str] = []
    prose: list[str] = []
    in_code = False
    for line in text.split("\n"):
        if in_code or is_fence_line(line):
            if prose:
                out.append(_LINK.sub(_replace, "\n".join(prose)))
                prose.clear()
            out.append(line)
            if is_fence_line(line):
                in_code = not in_code
        else:
            prose.append(line)
    if prose:
        out.append(_LINK.sub(_replace, "\n".join(prose)))
    return "\n".join(out)
