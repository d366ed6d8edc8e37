"""
bibliography_parser.py — BibNotion Annotated Bibliography Parser
=================================================================
Pulls articles out of an annotated bibliography written in markdown.

EXPECTED FORMAT (one block per article):

    ### Article 1
    **Smith, J. (2020). A study. Journal, 1(2), 3-4. https://doi.org/...**

    Annotation paragraph(s) describing the article.

    **Full-text available at:** https://example.com/a.pdf

    ---

HOW IT WORKS:
1. The document is split on "### Article <n>" headings. Anything before the
   first heading is preamble and ignored. The numeral <n> is ignored too —
   articles are renumbered 1..N in the order they appear.
2. Each fragment is walked line by line through a small state machine:

     SEEK_CITATION ──(bold line)──▶ SEEK_ANNOTATION ──(blank line)──▶ SEEK_URL
                                          ▲                              │
                                          └──────(more text)─────────────┘
     any state ──(**Full-text available at:** https://...)──▶ DONE

3. A fragment without a citation or without an https:// full-text link is
   dropped. By default this is silent; parse_articles() reports what was
   dropped and why, and extract_articles(strict=True) raises instead.

LABEL EDGE CASES:
- The citation may share a line with the label ("**Cite.** ... **Full-text
  available at:** https://..."); only bold text BEFORE the label counts.
- The label itself is never a citation. A fragment whose only bold span is
  "**Full-text available at:**" is dropped as "missing citation".
- The URL may sit on the first non-blank line after a bare label.
- A label with no https:// URL (e.g. an http:// link) doesn't end the
  fragment; a later label with an https:// URL is still used. Text after
  a failed label is not annotation.
"""

from __future__ import annotations

import re
from enum import Enum

from models import ArticleEntry, ParseReport, SkippedFragment

# Splits the document into per-article fragments
ARTICLE_DELIMITER = re.compile(r"### Article \d+")

# First **bold** span on a line (never spans lines)
BOLD_SPAN = re.compile(r"\*\*(.*?)\*\*")

FULL_TEXT_LABEL = "**Full-text available at:**"

# Maximal run of non-whitespace starting with https://
HTTPS_URL = re.compile(r"^(https://\S+)")

REASON_NO_CITATION = "missing citation"
REASON_NO_URL = "missing full-text URL"


class MalformedFragmentError(ValueError):
    """Raised in strict mode when one or more article fragments were dropped."""

    def __init__(self, skipped: list[SkippedFragment]) -> None:
        self.skipped = skipped
        details = "; ".join(f"fragment {s.position}: {s.reason}" for s in skipped)
        super().__init__(f"{len(skipped)} malformed article fragment(s): {details}")


class FragmentState(Enum):
    SEEK_CITATION = "seek_citation"
    SEEK_ANNOTATION = "seek_annotation"
    SEEK_URL = "seek_url"
    DONE = "done"


def split_fragments(markdown_section: str) -> list[str]:
    """Split on "### Article <n>" and drop the preamble before the first heading."""
    return ARTICLE_DELIMITER.split(markdown_section)[1:]


def _first_citation(text: str) -> tuple[str, int]:
    """First non-empty bold span in `text` and the offset just past it."""
    match = BOLD_SPAN.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip(), match.end()
    return "", 0


def parse_fragment(fragment: str) -> tuple[str, str, str]:
    """
    Walk one fragment and return (citation, annotation, full_text_url).

    Missing parts come back as empty strings; the caller decides whether
    the fragment is usable.
    """
    state = FragmentState.SEEK_CITATION
    citation = ""
    url = ""
    awaiting_url = False      # bare label seen, URL may be on the following line
    annotation_closed = False  # a label was seen, only another label matters now
    paragraphs: list[str] = []
    current: list[str] = []

    for raw_line in fragment.splitlines():
        line = raw_line.strip()

        if state is FragmentState.DONE:
            break

        if awaiting_url:
            if not line:
                continue
            awaiting_url = False
            match = HTTPS_URL.match(line)
            if match:
                url = match.group(1)
                state = FragmentState.DONE
                continue

        # Horizontal rules separate articles, they are never content
        if line == "---":
            continue

        if FULL_TEXT_LABEL in line:
            before, after = (part.strip() for part in line.split(FULL_TEXT_LABEL, 1))

            if state is FragmentState.SEEK_CITATION and not annotation_closed:
                citation, offset = _first_citation(before)
                if citation:
                    state = FragmentState.SEEK_ANNOTATION
                    before = before[offset:].strip()
            if before and not annotation_closed and state is not FragmentState.SEEK_CITATION:
                current.append(before)
            annotation_closed = True

            match = HTTPS_URL.match(after)
            if match:
                url = match.group(1)
                state = FragmentState.DONE
            elif not after:
                awaiting_url = True
            continue

        if annotation_closed:
            continue

        if state is FragmentState.SEEK_CITATION:
            citation, _ = _first_citation(line)
            if citation:
                state = FragmentState.SEEK_ANNOTATION
            continue

        if not line:
            if current:
                paragraphs.append(" ".join(current))
                current = []
                state = FragmentState.SEEK_URL
            continue

        current.append(line)
        state = FragmentState.SEEK_ANNOTATION

    if current:
        paragraphs.append(" ".join(current))

    return citation, "\n\n".join(paragraphs), url


def _excerpt(fragment: str, limit: int = 60) -> str:
    for line in fragment.splitlines():
        if line.strip():
            return line.strip()[:limit]
    return ""


def parse_articles(markdown_section: str) -> ParseReport:
    """
    Parse a bibliography section and report both kept and dropped fragments.

    Args:
        markdown_section: Markdown containing zero or more "### Article <n>" blocks

    Returns:
        ParseReport — entries numbered 1..m over the kept fragments only,
        skipped fragments numbered by their position among ALL fragments
    """
    report = ParseReport()

    for position, fragment in enumerate(split_fragments(markdown_section), start=1):
        citation, annotation, url = parse_fragment(fragment)

        if not citation:
            report.skipped.append(SkippedFragment(position, REASON_NO_CITATION, _excerpt(fragment)))
            continue
        if not url:
            report.skipped.append(SkippedFragment(position, REASON_NO_URL, _excerpt(fragment)))
            continue

        report.entries.append(ArticleEntry(
            index=len(report.entries) + 1,
            citation=citation,
            annotation=annotation,
            full_text_url=url,
        ))

    return report


def extract_articles(markdown_section: str, strict: bool = False) -> list[ArticleEntry]:
    """
    Extract the well-formed articles from a bibliography section.

    Args:
        markdown_section: Markdown containing "### Article <n>" blocks
        strict:           Raise MalformedFragmentError instead of silently
                          dropping fragments without a citation or URL

    Returns:
        Articles in document order, indexed 1..N
    """
    report = parse_articles(markdown_section)
    if strict and report.skipped:
        raise MalformedFragmentError(report.skipped)
    return report.entries


def extract_section(markdown: str, start_marker: str, end_marker: str | None = None) -> str:
    """
    Cut one bibliography out of a document holding several.

    EXAMPLE:
        extract_section(doc, "## Bibliography 1:", "## Bibliography 2:")

    Returns:
        The text after start_marker up to end_marker (or the end of the
        document). Empty string if start_marker isn't present.
    """
    if start_marker not in markdown:
        return ""
    section = markdown.split(start_marker, 1)[1]
    if end_marker:
        section = section.split(end_marker, 1)[0]
    return section
