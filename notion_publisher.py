"""
notion_publisher.py — BibNotion Notion Renderer & Page Operations
===================================================================
Renders BlockNode lists (from block_compiler) into Notion block JSON and
performs the page operations: append, replace, clean, populate.

HOW IT WORKS:
1. Parse the bibliography markdown into articles (bibliography_parser)
2. Lay the articles out as BlockNode values (block_compiler)
3. Render each BlockNode into a Notion block dict (render_block)
4. Append the blocks to the bibliography page, 100 per request

NOTION API BASICS:
- Everything on a page is a "block" — paragraphs, headings, callouts, etc.
- Page children are paginated: list calls return at most 100 blocks plus
  a cursor, so we always walk every page with collect_paginated_api()
- Append calls accept at most 100 children; append_blocks() batches
- Appending with after=<block id> inserts right after that block instead
  of at the end of the page

BLOCK TYPES USED IN THIS MODULE:
- heading_1, heading_2, heading_3  → Page title, section title, "Article N"
- paragraph                        → Introduction, annotation, links
- callout                          → Citation box with 📄 icon
- divider                          → Separator after each article
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from notion_client import Client
from notion_client.errors import APIResponseError
from notion_client.helpers import collect_paginated_api

from bibliography_parser import MalformedFragmentError, parse_articles
from block_compiler import compile_bibliography_blocks, compile_blocks, notion_url
from config import Config
from logging_config import sdk_logger
from models import BlockKind, BlockNode, ParseReport, TextSpan

logger = logging.getLogger("bibnotion.notion")

# Type alias for Notion block dictionaries
NotionBlock = dict[str, Any]

# Text that identifies a Quick Access heading on an existing page
QUICK_ACCESS_MARKER = "Quick Access"
VIEW_ALL_MARKER = "View All Articles"


# ══════════════════════════════════════════════════════════════
# NOTION CLIENT INITIALIZATION
# ══════════════════════════════════════════════════════════════

def get_notion_client() -> Client:
    """
    Create a Notion API client from the .env settings.

    TROUBLESHOOTING:
    - 401 Unauthorized → NOTION_API_KEY is wrong or revoked
    - 404 Not Found    → The page isn't shared with your integration
    """
    return Client(
        auth=Config.NOTION_API_KEY,
        notion_version=Config.NOTION_API_VERSION,
        logger=sdk_logger(),
        log_level=logging.DEBUG,
    )


# ══════════════════════════════════════════════════════════════
# RICH TEXT & BLOCK BUILDERS
# ══════════════════════════════════════════════════════════════
# IMPORTANT: Notion has a 2000-character limit per rich_text item.
# safe_rich_text() splits long text into several items so annotations
# copied from the markdown never hit that limit.
# ══════════════════════════════════════════════════════════════

NOTION_TEXT_LIMIT = 2000


def _split_text(text: str, limit: int = NOTION_TEXT_LIMIT) -> list[str]:
    """
    Split text into chunks of at most `limit` characters, preferring
    sentence ends, then commas, then spaces as break points.
    """
    if len(text) <= limit:
        return [text]

    chunks = []
    remaining = text

    while remaining:
        if len(remaining) <= limit:
            chunks.append(remaining)
            break

        chunk = remaining[:limit]

        break_point = chunk.rfind(". ")
        if break_point == -1 or break_point < limit // 2:
            break_point = chunk.rfind(", ")
        if break_point == -1 or break_point < limit // 2:
            break_point = chunk.rfind(" ")
        if break_point == -1:
            # No space at all (a very long URL) — hard cut
            break_point = limit
        else:
            break_point += 1

        chunks.append(remaining[:break_point])
        remaining = remaining[break_point:]

    return chunks


def rich_text(content: str, bold: bool = False, href: str | None = None) -> dict:
    """
    Create a single Notion rich text object. Truncates at 2000 chars —
    use safe_rich_text() when the length isn't known in advance.
    """
    if len(content) > NOTION_TEXT_LIMIT:
        content = content[:NOTION_TEXT_LIMIT]

    text: dict[str, Any] = {"content": content}
    if href:
        text["link"] = {"url": href}

    return {
        "type": "text",
        "text": text,
        "annotations": {
            "bold": bold,
            "italic": False,
            "code": False,
            "color": "default",
        },
    }


def safe_rich_text(content: str, bold: bool = False, href: str | None = None) -> list[dict]:
    """
    Create a LIST of rich text objects, auto-splitting content > 2000 chars.
    Formatting and link are applied to every chunk.
    """
    return [rich_text(chunk, bold=bold, href=href) for chunk in _split_text(content)]


def link_text(label: str, url: str, bold: bool = True) -> dict:
    """A rich text item that links to `url`."""
    return rich_text(label, bold=bold, href=url)


def spans_to_rich_text(spans: Iterable[TextSpan]) -> list[dict]:
    """Render TextSpans, dropping empty ones."""
    items: list[dict] = []
    for span in spans:
        if span.text:
            items.extend(safe_rich_text(span.text, bold=span.bold, href=span.href))
    return items


def _as_rich_text(content: str | list[dict]) -> list[dict]:
    return safe_rich_text(content) if isinstance(content, str) else content


def heading_block(content: str | list[dict], level: int = 2) -> dict:
    """
    Create a heading block. Notion supports heading_1, heading_2, heading_3.

    Args:
        content: Heading text, or ready-made rich text items
        level:   1, 2, or 3 (default: 2)
    """
    key = f"heading_{level}"
    return {
        "object": "block",
        "type": key,
        key: {
            "rich_text": _as_rich_text(content),
            "is_toggleable": False,
        },
    }


def paragraph_block(content: str | list[dict], bold: bool = False) -> dict:
    """Create a paragraph block from text (auto-split) or rich text items."""
    rich = safe_rich_text(content, bold=bold) if isinstance(content, str) else content
    return {
        "object": "block",
        "type": "paragraph",
        "paragraph": {"rich_text": rich},
    }


def callout_block(content: str | list[dict], emoji: str = "📄") -> dict:
    """Create a callout block — a highlighted box with an emoji icon."""
    return {
        "object": "block",
        "type": "callout",
        "callout": {
            "rich_text": _as_rich_text(content),
            "icon": {"type": "emoji", "emoji": emoji},
        },
    }


def divider_block() -> dict:
    """Create a horizontal divider line."""
    return {"object": "block", "type": "divider", "divider": {}}


# ══════════════════════════════════════════════════════════════
# BLOCKNODE → NOTION JSON
# ══════════════════════════════════════════════════════════════

def render_block(node: BlockNode) -> NotionBlock:
    """
    Convert one BlockNode into the Notion API block dict.

    Heading levels outside 1-3 are clamped, Notion has no heading_4.
    """
    rich = spans_to_rich_text(node.spans)

    if node.kind is BlockKind.HEADING:
        level = min(max(node.level or 2, 1), 3)
        return heading_block(rich, level=level)
    if node.kind is BlockKind.CALLOUT:
        return callout_block(rich, emoji=node.emoji or "📄")
    if node.kind is BlockKind.DIVIDER:
        return divider_block()
    return paragraph_block(rich)


def render_blocks(nodes: Iterable[BlockNode]) -> list[NotionBlock]:
    return [render_block(node) for node in nodes]


def block_plain_text(block: NotionBlock) -> str:
    """
    Plain text of a block. Fetched blocks carry "plain_text"; blocks we
    built ourselves only have text.content, so fall back to that.
    """
    payload = block.get(block.get("type", ""), {}) or {}
    parts = []
    for item in payload.get("rich_text", []):
        if "plain_text" in item:
            parts.append(item["plain_text"])
        else:
            parts.append(item.get("text", {}).get("content", ""))
    return "".join(parts)


# ══════════════════════════════════════════════════════════════
# LOW-LEVEL PAGE OPERATIONS
# ══════════════════════════════════════════════════════════════

def list_all_children(client: Client, block_id: str) -> list[NotionBlock]:
    """Fetch every child block of a page, following pagination cursors."""
    blocks = collect_paginated_api(client.blocks.children.list, block_id=block_id)
    logger.debug(f"Fetched {len(blocks)} blocks from {block_id}")
    return blocks


def append_blocks(
    client: Client,
    block_id: str,
    blocks: list[NotionBlock],
    after: str | None = None,
) -> int:
    """
    Append blocks to a page in batches of Config.NOTION_BLOCK_BATCH_SIZE.

    When `after` is given, each batch is inserted after the last block of
    the previous batch, so the original order is kept.

    Returns:
        Number of blocks appended
    """
    batch_size = Config.NOTION_BLOCK_BATCH_SIZE
    remaining = list(blocks)
    batch_num = 1

    while remaining:
        batch = remaining[:batch_size]
        remaining = remaining[batch_size:]

        kwargs: dict[str, Any] = {"block_id": block_id, "children": batch}
        if after:
            kwargs["after"] = after

        logger.debug(f"Appending block batch {batch_num} ({len(batch)} blocks)")
        response = client.blocks.children.append(**kwargs)

        if after:
            results = response.get("results") or []
            if results:
                after = results[-1]["id"]
        batch_num += 1

    return len(blocks)


def delete_blocks(client: Client, block_ids: Iterable[str]) -> int:
    """
    Delete blocks one by one. A failure on one block is logged and the
    rest are still attempted.

    Returns:
        Number of blocks actually deleted
    """
    deleted = 0
    for block_id in block_ids:
        try:
            client.blocks.delete(block_id=block_id)
            deleted += 1
        except APIResponseError as e:
            logger.warning(f"   ⚠️  Could not delete block {block_id[:8]}...: {e}")
    return deleted


def find_section(blocks: list[NotionBlock], title: str) -> tuple[int, int] | None:
    """
    Locate a heading_2 section whose text contains `title`.

    The section runs until the next heading_1, or the next heading_2 that
    doesn't also contain `title`.

    Returns:
        (start, end) indices, end exclusive — or None if not found
    """
    start = None
    for i, block in enumerate(blocks):
        if block.get("type") == "heading_2" and title in block_plain_text(block):
            start = i
            break

    if start is None:
        return None

    end = start + 1
    while end < len(blocks):
        block = blocks[end]
        block_type = block.get("type")
        if block_type == "heading_1":
            break
        if block_type == "heading_2" and title not in block_plain_text(block):
            break
        end += 1

    return start, end


# ══════════════════════════════════════════════════════════════
# BIBLIOGRAPHY PAGE OPERATIONS
# ══════════════════════════════════════════════════════════════

def _parse_section(markdown_section: str, strict: bool) -> ParseReport:
    report = parse_articles(markdown_section)
    if strict and report.skipped:
        raise MalformedFragmentError(report.skipped)
    for skipped in report.skipped:
        logger.debug(f"Skipped article fragment {skipped.position}: {skipped.reason} ({skipped.excerpt!r})")
    return report


def quick_access_blocks(report: ParseReport, articles_database_id: str) -> list[NotionBlock]:
    """Rendered Quick Access section for a parsed bibliography."""
    return render_blocks(compile_blocks(report.entries, notion_url(articles_database_id)))


def add_quick_access_section(
    client: Client,
    page_id: str,
    markdown_section: str,
    articles_database_id: str,
    strict: bool = False,
) -> ParseReport:
    """
    Append a Quick Access section (citations + full-text links) to the
    end of a bibliography page.

    Returns:
        The ParseReport, so callers can show how many articles were used
    """
    logger.info("\n📝 Adding Quick Access section to bibliography page...")
    report = _parse_section(markdown_section, strict)
    logger.info(f"   Found {len(report.entries)} articles")

    append_blocks(client, page_id, quick_access_blocks(report, articles_database_id))

    logger.info(f"   ✅ Added Quick Access section with {len(report.entries)} article entries")
    return report


def replace_quick_access_section(
    client: Client,
    page_id: str,
    markdown_section: str,
    articles_database_id: str,
    strict: bool = False,
) -> ParseReport:
    """
    Replace an existing Quick Access section in place, or append one if
    the page doesn't have it yet.

    The old section is deleted block by block and the new one is inserted
    after the block that preceded it.
    """
    report = _parse_section(markdown_section, strict)
    new_blocks = quick_access_blocks(report, articles_database_id)

    existing = list_all_children(client, page_id)
    section = find_section(existing, QUICK_ACCESS_MARKER)

    if section is None:
        logger.info("   ⚠️  Quick Access section not found, adding new one")
        append_blocks(client, page_id, new_blocks)
        logger.info("   ✅ Added new Quick Access section")
        return report

    start, end = section
    old_ids = [block["id"] for block in existing[start:end]]
    deleted = delete_blocks(client, old_ids)
    logger.info(f"   🗑️  Removed {deleted}/{len(old_ids)} old section blocks")

    # Section at the very top has no predecessor; Notion then appends at the end
    insert_after = existing[start - 1]["id"] if start > 0 else None
    append_blocks(client, page_id, new_blocks, after=insert_after)

    logger.info(f"   ✅ Replaced Quick Access section ({len(report.entries)} articles)")
    return report


def find_toggle_sections(blocks: list[NotionBlock]) -> list[str]:
    """
    IDs of blocks belonging to OLD toggle-format Quick Access sections.

    An old section is a Quick Access heading_2 immediately followed by a
    toggle block. It ends before the next heading_1, the next heading_2,
    or the "View All Articles" heading_3 (which the new format reuses).
    """
    to_delete: list[str] = []
    i = 0
    while i < len(blocks):
        block = blocks[i]
        is_quick_access = (
            block.get("type") == "heading_2"
            and QUICK_ACCESS_MARKER in block_plain_text(block)
        )
        followed_by_toggle = i + 1 < len(blocks) and blocks[i + 1].get("type") == "toggle"

        if not (is_quick_access and followed_by_toggle):
            i += 1
            continue

        j = i
        while j < len(blocks):
            current = blocks[j]
            current_type = current.get("type")
            if j > i and (
                current_type in ("heading_1", "heading_2")
                or (current_type == "heading_3" and VIEW_ALL_MARKER in block_plain_text(current))
            ):
                break
            to_delete.append(current["id"])
            j += 1
        i = j

    return to_delete


def clean_duplicate_sections(client: Client, page_id: str) -> int:
    """
    Remove old toggle-format Quick Access sections, keeping the callout format.

    Returns:
        Number of blocks removed
    """
    blocks = list_all_children(client, page_id)
    to_delete = find_toggle_sections(blocks)
    deleted = delete_blocks(client, to_delete)
    logger.info(f"   ✅ Removed {deleted} duplicate blocks")
    return deleted


def populate_bibliography_page(
    client: Client,
    page_id: str,
    title: str,
    introduction: str,
    markdown_section: str,
    articles_database_id: str | None = None,
    strict: bool = False,
) -> int:
    """
    Write the full annotated bibliography (title, introduction, every
    article with annotation and link) to a page.

    Returns:
        Number of blocks appended
    """
    logger.info(f"\n📝 Populating: {title}")
    report = _parse_section(markdown_section, strict)

    locator = notion_url(articles_database_id) if articles_database_id else None
    nodes = compile_bibliography_blocks(title, introduction, report.entries, articles_locator=locator)
    count = append_blocks(client, page_id, render_blocks(nodes))

    logger.info(f"   ✅ Content added: {len(report.entries)} articles, {count} blocks")
    return count
