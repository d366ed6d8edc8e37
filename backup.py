"""
backup.py — BibNotion Page Backup
===================================
Saves the current blocks of a page (usually the hub page) before scripts
rewrite it. Two files are written:
  - <name>-backup.json : raw block payloads, enough to rebuild by hand
  - <name>-backup.md   : readable rendition for a quick look
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from notion_client import Client

from block_compiler import notion_url
from notion_publisher import NotionBlock, block_plain_text, list_all_children

logger = logging.getLogger("bibnotion.backup")


def build_backup(page_id: str, blocks: list[NotionBlock], timestamp: str | None = None) -> dict[str, Any]:
    """Backup document for a page and its top-level blocks."""
    return {
        "timestamp": timestamp or datetime.now(timezone.utc).isoformat(),
        "pageId": page_id,
        "pageUrl": notion_url(page_id),
        "blocks": [
            {
                "id": block.get("id"),
                "type": block.get("type"),
                "content": block.get(block.get("type", "")),
                "has_children": block.get("has_children", False),
            }
            for block in blocks
        ],
    }


def backup_to_markdown(backup: dict[str, Any]) -> str:
    """Render a backup document as markdown, one section per block."""
    lines = [
        "# Page Content Backup",
        "",
        f"**Backup Date**: {backup['timestamp']}",
        f"**Page ID**: {backup['pageId']}",
        f"**Page URL**: {backup['pageUrl']}",
        "",
        "---",
        "",
    ]

    for entry in backup["blocks"]:
        block_type = entry["type"]
        content = entry["content"]
        if isinstance(content, dict) and "rich_text" in content:
            text = block_plain_text({"type": block_type, block_type: content})
            lines += [f"## {block_type}", "", text, ""]
        elif content:
            lines += [f"## {block_type}", "", json.dumps(content, indent=2, ensure_ascii=False), ""]

    return "\n".join(lines)


def backup_page(client: Client, page_id: str, output_dir: str | Path, name: str = "hub-content") -> tuple[Path, Path]:
    """
    Fetch every block of a page and write the JSON and markdown backups.

    Returns:
        (json_path, markdown_path)
    """
    logger.info(f"💾 Backing up page {page_id}...")
    blocks = list_all_children(client, page_id)
    logger.info(f"   Found {len(blocks)} blocks")

    backup = build_backup(page_id, blocks)

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    json_path = out / f"{name}-backup.json"
    md_path = out / f"{name}-backup.md"

    json_path.write_text(json.dumps(backup, indent=2, ensure_ascii=False), encoding="utf-8")
    md_path.write_text(backup_to_markdown(backup), encoding="utf-8")

    logger.info(f"   ✅ Content backed up to: {json_path}")
    logger.info(f"   📝 Readable backup created: {md_path}")
    return json_path, md_path
