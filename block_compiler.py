"""
block_compiler.py — BibNotion Block Layouts
=============================================
Turns parsed articles into ordered lists of BlockNode values.
Nothing here talks to Notion; notion_publisher renders the result.

QUICK ACCESS SECTION (compile_blocks):
┌──────────────────────────────────────────────┐
│ 📚 Quick Access: Citations & Full-Text Links  │  heading 2
│ All citations and direct links ...            │  paragraph
│ ── per article ─────────────────────────────  │
│ Article N                                     │  heading 3
│ 📄 citation                                   │  callout
│ 🔗 Full-text available here (url)             │  paragraph (link)
│ ───────────────                               │  divider
│ ── closing ─────────────────────────────────  │
│ 📑 View All Articles in Database              │  heading 3
│ For detailed article information ... <link>   │  paragraph (link)
└──────────────────────────────────────────────┘

Always 4 + 4 * len(entries) blocks.
"""

from __future__ import annotations

from typing import Iterable

from models import ArticleEntry, BlockNode, TextSpan

QUICK_ACCESS_TITLE = "📚 Quick Access: Citations & Full-Text Links"
QUICK_ACCESS_INTRO = "All citations and direct links to full-text versions are listed below for easy access:"
VIEW_ALL_TITLE = "📑 View All Articles in Database"
VIEW_ALL_TEXT = (
    "For detailed article information including summaries, strengths, weaknesses, "
    "and additional metadata, visit the Articles database: "
)
LINKED_ARTICLES_TITLE = "📑 Linked Articles"
LINKED_ARTICLES_TEXT = (
    "Click on any article in the Articles database to view detailed information, "
    "summaries, strengths, and weaknesses: "
)
CITATION_EMOJI = "📄"


def notion_url(object_id: str) -> str:
    """Public notion.so URL for a page or database ID (dashes removed)."""
    return f"https://www.notion.so/{object_id.replace('-', '')}"


def _in_index_order(entries: Iterable[ArticleEntry]) -> list[ArticleEntry]:
    return sorted(entries, key=lambda entry: entry.index)


def compile_blocks(entries: Iterable[ArticleEntry], cross_reference_locator: str) -> list[BlockNode]:
    """
    Build the Quick Access section for a bibliography page.

    Args:
        entries:                 Parsed articles (from extract_articles)
        cross_reference_locator: URL of the Articles catalog, linked in the
                                 closing paragraph as-is

    Returns:
        List of BlockNode in page order
    """
    blocks = [
        BlockNode.heading(QUICK_ACCESS_TITLE, level=2),
        BlockNode.paragraph(QUICK_ACCESS_INTRO),
    ]

    for entry in _in_index_order(entries):
        blocks.append(BlockNode.heading(f"Article {entry.index}", level=3))
        blocks.append(BlockNode.callout(entry.citation, emoji=CITATION_EMOJI))
        blocks.append(BlockNode.paragraph(
            TextSpan("🔗 "),
            TextSpan("Full-text available here", bold=True, href=entry.full_text_url),
            TextSpan(f" ({entry.full_text_url})"),
        ))
        blocks.append(BlockNode.divider())

    blocks.append(BlockNode.heading(VIEW_ALL_TITLE, level=3))
    blocks.append(BlockNode.paragraph(
        TextSpan(VIEW_ALL_TEXT),
        TextSpan(cross_reference_locator, bold=True, href=cross_reference_locator),
    ))

    return blocks


def compile_bibliography_blocks(
    title: str,
    introduction: str,
    entries: Iterable[ArticleEntry],
    articles_locator: str | None = None,
) -> list[BlockNode]:
    """
    Build the full annotated bibliography page: title, introduction, and
    every article with its citation, annotation and full-text link.

    Args:
        title:            Page title (rendered as heading 1)
        introduction:     Paragraph shown under the title
        entries:          Parsed articles
        articles_locator: Optional Articles database URL for a closing link

    Returns:
        List of BlockNode in page order
    """
    blocks = [BlockNode.heading(title, level=1)]
    if introduction:
        blocks.append(BlockNode.paragraph(introduction))
    blocks.append(BlockNode.divider())

    for entry in _in_index_order(entries):
        blocks.append(BlockNode.heading(f"Article {entry.index}", level=3))
        blocks.append(BlockNode.paragraph(entry.citation, bold=True))
        for para in entry.annotation_paragraphs:
            blocks.append(BlockNode.paragraph(para))
        blocks.append(BlockNode.paragraph(
            TextSpan("Full-text available at: "),
            TextSpan(entry.full_text_url, bold=True, href=entry.full_text_url),
        ))
        blocks.append(BlockNode.divider())

    if articles_locator:
        blocks.append(BlockNode.heading(LINKED_ARTICLES_TITLE, level=2))
        blocks.append(BlockNode.paragraph(
            TextSpan(LINKED_ARTICLES_TEXT),
            TextSpan(articles_locator, bold=True, href=articles_locator),
        ))

    return blocks
