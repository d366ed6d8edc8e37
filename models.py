"""
models.py — BibNotion Shared Data Models
==========================================
Contains the data models passed between the parser, the block compiler,
the Notion publisher and the clean-up tools.

ArticleEntry is one article pulled out of an annotated bibliography.
BlockNode is one presentation block, independent of Notion's JSON shape —
notion_publisher.render_block() turns it into the real API payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class ArticleEntry:
    """
    A single article parsed from a "### Article N" fragment.

    Attributes:
        index:         1-based position among the VALID articles of a document
        citation:      Citation text (the first bold span of the fragment)
        annotation:    Free text between the citation and the full-text line
        full_text_url: Link to the full text, always starting with https://
    """
    index: int
    citation: str
    annotation: str
    full_text_url: str

    @property
    def annotation_paragraphs(self) -> list[str]:
        """Annotation split on blank lines, empty paragraphs removed."""
        return [p.strip() for p in self.annotation.split("\n\n") if p.strip()]


@dataclass(frozen=True)
class SkippedFragment:
    """A fragment that was dropped because it had no citation or no URL."""
    position: int
    reason: str
    excerpt: str = ""


@dataclass
class ParseReport:
    """Result of parsing a bibliography section: kept entries plus skipped fragments."""
    entries: list[ArticleEntry] = field(default_factory=list)
    skipped: list[SkippedFragment] = field(default_factory=list)


class BlockKind(Enum):
    """The block kinds the compiler emits."""
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    CALLOUT = "callout"
    DIVIDER = "divider"


@dataclass(frozen=True)
class TextSpan:
    """A run of text with optional bold styling and hyperlink."""
    text: str
    bold: bool = False
    href: str | None = None


@dataclass(frozen=True)
class BlockNode:
    """
    One output block. Order of a block list is page order.

    Headings carry a level (1-3), callouts carry an emoji icon.
    The text/bold/href accessors give a flat view for consumers that
    don't care about individual spans.
    """
    kind: BlockKind
    spans: tuple[TextSpan, ...] = ()
    level: int | None = None
    emoji: str | None = None

    @property
    def text(self) -> str:
        return "".join(span.text for span in self.spans)

    @property
    def bold(self) -> bool:
        return bool(self.spans) and all(span.bold for span in self.spans)

    @property
    def href(self) -> str | None:
        for span in self.spans:
            if span.href:
                return span.href
        return None

    # ── Constructors ──

    @classmethod
    def heading(cls, text: str, level: int = 2) -> BlockNode:
        return cls(BlockKind.HEADING, (TextSpan(text),), level=level)

    @classmethod
    def paragraph(cls, *spans: TextSpan | str, bold: bool = False) -> BlockNode:
        """Build a paragraph from spans; plain strings become spans with the given bold flag."""
        items = tuple(
            span if isinstance(span, TextSpan) else TextSpan(span, bold=bold)
            for span in spans
        )
        return cls(BlockKind.PARAGRAPH, items)

    @classmethod
    def callout(cls, text: str, emoji: str = "📄") -> BlockNode:
        return cls(BlockKind.CALLOUT, (TextSpan(text),), emoji=emoji)

    @classmethod
    def divider(cls) -> BlockNode:
        return cls(BlockKind.DIVIDER)


@dataclass
class BibliographyRecord:
    """
    One row of the Annotated Bibliographies database, reduced to the
    properties that matter for duplicate detection.
    """
    page_id: str
    url: str
    topic: str
    course: str = ""
    status: str = ""
    due_date: str = ""
    created_time: str = ""
    has_file: bool = False

    @property
    def key(self) -> str:
        """Rows with the same topic and course are duplicates of each other."""
        return f"{self.topic}::{self.course}"


@dataclass
class DuplicateGroup:
    """Records sharing one key, oldest first, plus the record that survives."""
    key: str
    records: list[BibliographyRecord]
    keep: BibliographyRecord

    @property
    def to_archive(self) -> list[BibliographyRecord]:
        return [r for r in self.records if r.page_id != self.keep.page_id]
