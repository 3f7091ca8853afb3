"""Greedy recombination of atoms into the fewest ceiling-sized messages."""

from __future__ import annotations

from marksplit.markdown.chunk import CEILING, Chunk, ChunkKind, fences_balanced

SEPARATOR = "\n\n"

_PROSE_KINDS = (ChunkKind.PARAGRAPH, ChunkKind.SENTENCE)


def _merged_kind(group: list[Chunk]) -> ChunkKind:
    if all(c.kind in _PROSE_KINDS for c in group):
        return ChunkKind.PARAGRAPH
    return ChunkKind.MERGED


def extend_run(atoms: list[Chunk], start: int, limit: int = CEILING) -> tuple[Chunk, int]:
    """Merge atoms from *start* forward for as long as the result stays legal.

    Stops before an image, before the size would exceed *limit*, or before
    the fences would become unbalanced. Returns the merged chunk and the
    index of the first atom not consumed.
    """
    group = [atoms[start]]
    content = atoms[start].content
    end = start + 1

    while end < len(atoms):
        candidate = atoms[end]
        if candidate.is_image:
            break
        merged = content + SEPARATOR + candidate.content
        if len(merged) > limit or not fences_balanced(merged):
            break
        group.append(candidate)
        content = merged
        end += 1

    if len(group) == 1:
        return group[0], end
    return Chunk(_merged_kind(group), content.strip()), end


def pack(atoms: list[Chunk], limit: int = CEILING) -> list[Chunk]:
    """Walk *atoms* left to right; images pass through, text runs merge."""
    result: list[Chunk] = []
    i = 0
    while i < len(atoms):
        atom = atoms[i]
        if atom.is_image:
            result.append(atom)
            i += 1
            continue
        chunk, i = extend_run(atoms, i, limit)
        result.append(chunk)
    return result
