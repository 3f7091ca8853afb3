"""Tests for marksplit.markdown.shrink — oversize-unit fallback strategies."""

import pytest

from marksplit.markdown.chunk import CEILING, CODE_CEILING, Chunk, ChunkKind, fences_balanced
from marksplit.markdown.sanitize import RULE_PLACEHOLDER
from marksplit.markdown.shrink import (
    block_type,
    classify,
    find_break,
    shrink,
    split_code_lines,
    split_hard,
    split_markdown_paragraphs,
    split_on_rules,
    split_paragraphs,
    split_sentences,
)


def _words(chunks):
    return "".join("".join(c.content for c in chunks).split())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

class TestShrink:
    """Test shrink function."""

    def test_small_chunk_unchanged(self):
        """A chunk within the ceiling should come back as is."""
        chunk = Chunk(ChunkKind.PARAGRAPH, "short")
        assert shrink(chunk) == [chunk]

    def test_paragraphs_win_over_sentences(self):
        """Paragraph splitting should be tried before sentence splitting."""
        paragraphs = [("Sentence here. " * 53).strip() for _ in range(5)]
        chunk = Chunk(ChunkKind.PARAGRAPH, "\n\n".join(paragraphs))
        pieces = shrink(chunk)
        assert len(pieces) == 3
        assert all(p.kind == ChunkKind.PARAGRAPH for p in pieces)
        assert all(len(p.content) <= CEILING for p in pieces)

    def test_rules_split_first(self):
        """A horizontal rule should be the first split point."""
        half = "word " * 300
        chunk = Chunk(ChunkKind.PARAGRAPH, f"{half}\n\n---\n\n{half}")
        pieces = shrink(chunk)
        assert [p.content for p in pieces][1] == RULE_PLACEHOLDER
        assert len(pieces) == 3

    def test_code_uses_line_split(self):
        """Oversize code should be split by line and re-fenced."""
        body = "\n".join(f"let value{i} = {i};" for i in range(300))
        chunk = Chunk(ChunkKind.CODE, f"```typescript\n{body}\n```", "typescript")
        pieces = shrink(chunk)
        assert len(pieces) >= 3
        for p in pieces:
            assert p.kind == ChunkKind.CODE
            assert p.language == "typescript"
            assert len(p.content) <= CODE_CEILING
            assert p.content.startswith("```typescript\n")
            assert p.content.endswith("\n```")

    def test_sentences_when_single_paragraph(self):
        """A single long paragraph should fall through to sentences."""
        text = " ".join(f"This is sentence number {i}." for i in range(120))
        pieces = shrink(Chunk(ChunkKind.PARAGRAPH, text))
        assert len(pieces) > 1
        assert all(p.kind == ChunkKind.SENTENCE for p in pieces)
        assert all(len(p.content) <= CEILING for p in pieces)
        assert _words(pieces) == "".join(text.split())

    def test_hard_split_fallback(self):
        """Text with no structure should be hard-split."""
        text = " ".join(["lorem"] * 2000)
        pieces = shrink(Chunk(ChunkKind.PARAGRAPH, text))
        assert len(pieces) > 1
        assert all(len(p.content) <= CEILING for p in pieces)
        assert all(set(p.content.split()) == {"lorem"} for p in pieces)

    def test_custom_limit(self):
        """Pieces should respect a caller-supplied limit."""
        text = " ".join(["abc"] * 100)
        pieces = shrink(Chunk(ChunkKind.PARAGRAPH, text), limit=50)
        assert all(len(p.content) <= 50 for p in pieces)

    def test_code_limit_clamped_to_limit(self):
        """The code budget should never exceed the overall limit."""
        body = "\n".join("x = 1" for _ in range(100))
        pieces = shrink(Chunk(ChunkKind.CODE, f"```\n{body}\n```"), limit=200)
        assert all(len(p.content) <= 200 for p in pieces)
        assert all(fences_balanced(p.content) for p in pieces)


# ---------------------------------------------------------------------------
# Tier 1: rules
# ---------------------------------------------------------------------------

class TestSplitOnRules:
    """Test split_on_rules function."""

    def test_inserts_placeholder(self):
        """Each rule should become a placeholder piece."""
        pieces = split_on_rules(Chunk(ChunkKind.PARAGRAPH, "Alpha\n\n---\n\nBeta"))
        assert [p.content for p in pieces] == ["Alpha", RULE_PLACEHOLDER, "Beta"]

    @pytest.mark.parametrize("rule", ["---", "***", "___", "- - -", "* * * *"])
    def test_rule_variants(self, rule):
        """All thematic-break spellings should be recognised."""
        pieces = split_on_rules(Chunk(ChunkKind.PARAGRAPH, f"A\n{rule}\nB"))
        assert pieces is not None and len(pieces) == 3

    def test_no_rule_returns_none(self):
        """Text without rules should not be split by this tier."""
        assert split_on_rules(Chunk(ChunkKind.PARAGRAPH, "no rules here")) is None

    def test_code_chunks_skipped(self):
        """Code chunks should never be rule-split."""
        assert split_on_rules(Chunk(ChunkKind.CODE, "```\n---\n```")) is None

    def test_rule_inside_fence_rejected(self):
        """A split that would tear a fence should be rejected."""
        content = "Intro\n\n```\nfoo\n---\nbar\n```"
        assert split_on_rules(Chunk(ChunkKind.MERGED, content)) is None


# ---------------------------------------------------------------------------
# Tier 2: paragraphs
# ---------------------------------------------------------------------------

class TestSplitMarkdownParagraphs:
    """Test split_markdown_paragraphs function."""

    def test_structural_boundaries(self):
        """Lists, tables, fences and headings should start new blocks."""
        text = (
            "Intro line\n- item one\n- item two\nAfter list\n\n"
            "| a | b |\n| - | - |\n\n"
            "```py\nx = 1\n\ny = 2\n```\n"
            "# Title"
        )
        assert split_markdown_paragraphs(text) == [
            "Intro line",
            "- item one\n- item two\nAfter list",
            "| a | b |\n| - | - |",
            "```py\nx = 1\n\ny = 2\n```",
            "# Title",
        ]

    def test_blockquote_starts_block(self):
        """A blockquote should start a new block and continue across lines."""
        assert split_markdown_paragraphs("text\n> quoted\n> more") == ["text", "> quoted\n> more"]

    def test_numbered_list(self):
        """Numbered list items should stay in one block."""
        assert split_markdown_paragraphs("1. one\n2. two") == ["1. one\n2. two"]


class TestSplitParagraphs:
    """Test split_paragraphs function."""

    def test_greedy_grouping(self):
        """Paragraphs should be grouped greedily up to the ceiling."""
        paragraphs = ["a" * 800, "b" * 800, "c" * 800, "d" * 800, "e" * 800]
        pieces = split_paragraphs(Chunk(ChunkKind.PARAGRAPH, "\n\n".join(paragraphs)))
        assert [len(p.content) for p in pieces] == [1602, 1602, 800]

    def test_single_paragraph_returns_none(self):
        """One paragraph gives nothing to split on."""
        assert split_paragraphs(Chunk(ChunkKind.PARAGRAPH, "x" * 3000)) is None

    def test_fenced_block_kept_whole(self):
        """Blank lines inside a fence should not split it."""
        code = "```python\n" + "\n\n".join(f"f{i}()" for i in range(50)) + "\n```"
        content = f"{'Prose. ' * 260}\n\n{code}"
        pieces = split_paragraphs(Chunk(ChunkKind.MERGED, content))
        assert pieces[-1].kind == ChunkKind.CODE
        assert pieces[-1].language == "python"
        assert all(fences_balanced(p.content) for p in pieces)

    def test_oversize_paragraph_recursed(self):
        """A paragraph still over the ceiling should go to later tiers."""
        content = "short intro\n\n" + " ".join(["word"] * 1000)
        pieces = split_paragraphs(Chunk(ChunkKind.PARAGRAPH, content))
        assert all(len(p.content) <= CEILING for p in pieces)
        assert pieces[0].content == "short intro"


# ---------------------------------------------------------------------------
# Tier 3: code lines
# ---------------------------------------------------------------------------

class TestSplitCodeLines:
    """Test split_code_lines function."""

    def test_non_code_returns_none(self):
        """Prose chunks should be skipped by the code tier."""
        assert split_code_lines(Chunk(ChunkKind.PARAGRAPH, "text")) is None

    def test_lines_never_split(self):
        """Every source line should land whole in exactly one piece."""
        lines = [f"line_{i:04d} = '{'z' * 30}'" for i in range(200)]
        pieces = split_code_lines(Chunk(ChunkKind.CODE, "```py\n" + "\n".join(lines) + "\n```", "py"))
        rebuilt = []
        for p in pieces:
            inner = p.content.split("\n")
            assert inner[0] == "```py" and inner[-1] == "```"
            rebuilt.extend(inner[1:-1])
        assert rebuilt == lines

    def test_overlong_line_is_cut(self):
        """A line longer than the budget should be cut so the ceiling holds."""
        pieces = split_code_lines(Chunk(ChunkKind.CODE, "```\n" + "x" * 5000 + "\n```"))
        assert len(pieces) >= 3
        assert all(len(p.content) <= CODE_CEILING for p in pieces)
        assert "".join(p.content.replace("```", "").replace("\n", "") for p in pieces) == "x" * 5000

    def test_language_taken_from_fence(self):
        """The language should come from the opening fence when not set."""
        body = "\n".join("a" * 50 for _ in range(100))
        pieces = split_code_lines(Chunk(ChunkKind.CODE, f"```rust\n{body}\n```"))
        assert all(p.language == "rust" for p in pieces)


# ---------------------------------------------------------------------------
# Tier 4: sentences
# ---------------------------------------------------------------------------

class TestSplitSentences:
    """Test split_sentences function."""

    def test_requires_uppercase_after_break(self):
        """Lowercase after a period should not count as a sentence break."""
        assert split_sentences(Chunk(ChunkKind.PARAGRAPH, "one. two. three.")) is None

    def test_regroups_up_to_limit(self):
        """Sentences should be regrouped greedily up to the limit."""
        text = " ".join(f"Sentence {i} is here!" for i in range(10))
        pieces = split_sentences(Chunk(ChunkKind.PARAGRAPH, text), limit=60)
        assert all(len(p.content) <= 60 for p in pieces)
        assert " ".join(p.content for p in pieces) == text

    def test_code_returns_none(self):
        """Code chunks should never be sentence-split."""
        assert split_sentences(Chunk(ChunkKind.CODE, "```\nA. B. C.\n```")) is None


# ---------------------------------------------------------------------------
# Tier 5: hard cut
# ---------------------------------------------------------------------------

class TestFindBreak:
    """Test find_break function."""

    def test_prefers_whitespace(self):
        """Whitespace inside the back-off window should be the cut point."""
        assert find_break("a" * 1500 + " " + "b" * 1000, 2000) == 1500

    def test_sentence_end(self):
        """A sentence end inside the window should be the cut point."""
        assert find_break("a" * 1600 + "." + "b" * 1000, 2000) == 1601

    def test_no_boundary_cuts_at_limit(self):
        """With no boundary the cut should be exactly at the limit."""
        assert find_break("a" * 3000, 2000) == 2000

    def test_boundary_outside_backoff_window_ignored(self):
        """Boundaries more than 30% back should be ignored."""
        assert find_break("a" * 1300 + " " + "b" * 1700, 2000) == 2000


class TestSplitHard:
    """Test split_hard function."""

    def test_breaks_at_whitespace(self):
        """Pieces should end on word boundaries and lose no words."""
        text = " ".join(["word"] * 2000)
        pieces = split_hard(Chunk(ChunkKind.PARAGRAPH, text))
        for p in pieces[:-1]:
            assert 1400 <= len(p.content) <= CEILING
        assert all(p.content.startswith("word") and p.content.endswith("word") for p in pieces)
        assert _words(pieces) == "".join(text.split())

    def test_unbroken_text_cut_exactly(self):
        """Text without boundaries should be cut at exact multiples."""
        pieces = split_hard(Chunk(ChunkKind.PARAGRAPH, "x" * 4500))
        assert [len(p.content) for p in pieces] == [2000, 2000, 500]

    def test_keeps_sentence_kind(self):
        """Sentence chunks should stay sentence-kind after a hard split."""
        pieces = split_hard(Chunk(ChunkKind.SENTENCE, "y" * 2500))
        assert all(p.kind == ChunkKind.SENTENCE for p in pieces)


class TestHelpers:
    """Test block_type and classify helpers."""

    @pytest.mark.parametrize(
        "line,expected",
        [
            ("# Title", "heading"),
            ("---", "rule"),
            ("- item", "list"),
            ("+ item", "list"),
            ("12. item", "list"),
            ("> quote", "quote"),
            ("| a | b |", "table"),
            ("```js", "fence"),
            ("plain words", None),
        ],
    )
    def test_block_type(self, line, expected):
        """Each structural line should map to its block type."""
        assert block_type(line) == expected

    def test_classify_code(self):
        """A lone fenced block should classify as code with its language."""
        chunk = classify("```go\nfunc main() {}\n```")
        assert chunk.kind == ChunkKind.CODE
        assert chunk.language == "go"

    def test_classify_mixed(self):
        """Prose plus a fence should classify as merged."""
        assert classify("text\n\n```\ncode\n```").kind == ChunkKind.MERGED

    def test_classify_prose(self):
        """Prose should classify as paragraph with whitespace stripped."""
        assert classify("  prose  ").content == "prose"
