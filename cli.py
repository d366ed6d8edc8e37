#!/usr/bin/env python3
"""
cli.py — BibNotion: Main Entry Point
======================================
Command line front end. Every command reads the workspace layout from
.notion-config.json and, where needed, the bibliography markdown file.

USAGE EXAMPLES:
  # Show what the Quick Access sections will look like (no Notion calls)
  bibnotion preview

  # Append a Quick Access section to every bibliography page
  bibnotion quick-access

  # Replace existing Quick Access sections in place
  bibnotion quick-access --replace

  # Write the full annotated bibliography to every bibliography page
  bibnotion populate

  # Remove old toggle-format Quick Access sections
  bibnotion clean-sections

  # Archive duplicate rows in the bibliographies database
  bibnotion dedupe --dry-run
  bibnotion dedupe

  # Back up the hub page before editing it
  bibnotion backup

  # Check your configuration
  bibnotion --show-config

THE PIPELINE:
  ┌──────────┐     ┌──────────────┐     ┌───────────────┐     ┌──────────┐
  │ Markdown │────▶│    Parse      │────▶│    Compile     │────▶│  Render  │
  │   file   │     │   articles    │     │    blocks      │     │ & append │
  └──────────┘     └──────────────┘     └───────────────┘     └──────────┘
                 bibliography_parser.py   block_compiler.py   notion_publisher.py
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from bibliography_parser import MalformedFragmentError, extract_section, parse_articles
from block_compiler import compile_blocks, notion_url
from config import Config, WorkspaceConfig, WorkspaceConfigError
from logging_config import setup_logging
from models import BlockKind, BlockNode

logger = logging.getLogger("bibnotion.cli")


def print_banner() -> None:
    print("""
╔══════════════════════════════════════════════════════════╗
║     📚 BibNotion — Annotated bibliographies in Notion     ║
╚══════════════════════════════════════════════════════════╝
    """)


def load_markdown(path: str | Path) -> str:
    """Read the bibliography markdown file."""
    return Path(path).read_text(encoding="utf-8")


def format_block(node: BlockNode) -> str:
    """One-line text rendition of a block, used by 'preview'."""
    if node.kind is BlockKind.DIVIDER:
        return "   ────────────────────"
    if node.kind is BlockKind.HEADING:
        return f"{'#' * (node.level or 2)} {node.text}"
    if node.kind is BlockKind.CALLOUT:
        return f"   {node.emoji or '📄'} {node.text}"
    return f"   {node.text}"


def _sections(workspace: WorkspaceConfig, markdown: str):
    """Yield (target, markdown section) for every configured bibliography."""
    for target in workspace.bibliographies:
        section = extract_section(markdown, target.start_marker, target.end_marker)
        if not section:
            logger.warning(f"⚠️  '{target.start_marker}' not found in markdown — skipping {target.title}")
            continue
        yield target, section


# ══════════════════════════════════════════════
# COMMANDS
# ══════════════════════════════════════════════

def cmd_preview(args: argparse.Namespace, workspace: WorkspaceConfig) -> None:
    markdown = load_markdown(Config.BIBLIOGRAPHY_MARKDOWN_PATH)
    articles_db = workspace.academic_databases.articles or ""

    for target, section in _sections(workspace, markdown):
        report = parse_articles(section)
        if args.strict and report.skipped:
            raise MalformedFragmentError(report.skipped)
        print(f"\n📚 {target.title}")
        print(f"   {len(report.entries)} articles, {len(report.skipped)} skipped")
        for skipped in report.skipped:
            print(f"   ⚠️  Fragment {skipped.position}: {skipped.reason} ({skipped.excerpt})")
        print("=" * 50)
        locator = notion_url(articles_db) if articles_db else ""
        for node in compile_blocks(report.entries, locator):
            print(format_block(node))


def cmd_quick_access(args: argparse.Namespace, workspace: WorkspaceConfig) -> None:
    from notion_publisher import add_quick_access_section, get_notion_client, replace_quick_access_section

    client = get_notion_client()
    articles_db = workspace.require_database("articles")
    markdown = load_markdown(Config.BIBLIOGRAPHY_MARKDOWN_PATH)
    operation = replace_quick_access_section if args.replace else add_quick_access_section

    for target, section in _sections(workspace, markdown):
        logger.info(f"\n📚 Processing: {target.title}")
        operation(client, target.page_id, section, articles_db, strict=args.strict)
        logger.info(f"   🔗 {notion_url(target.page_id)}")


def cmd_populate(args: argparse.Namespace, workspace: WorkspaceConfig) -> None:
    from notion_publisher import get_notion_client, populate_bibliography_page

    client = get_notion_client()
    markdown = load_markdown(Config.BIBLIOGRAPHY_MARKDOWN_PATH)
    articles_db = workspace.academic_databases.articles

    for target, section in _sections(workspace, markdown):
        populate_bibliography_page(
            client,
            target.page_id,
            target.title,
            target.introduction,
            section,
            articles_database_id=articles_db,
            strict=args.strict,
        )
        logger.info(f"   🔗 {notion_url(target.page_id)}")


def cmd_clean_sections(args: argparse.Namespace, workspace: WorkspaceConfig) -> None:
    from notion_publisher import clean_duplicate_sections, get_notion_client

    client = get_notion_client()
    for target in workspace.bibliographies:
        logger.info(f"\n📚 {target.title}:")
        clean_duplicate_sections(client, target.page_id)


def cmd_dedupe(args: argparse.Namespace, workspace: WorkspaceConfig) -> None:
    from dedupe import archive_duplicates, fetch_bibliography_records, identify_duplicates
    from notion_publisher import get_notion_client

    client = get_notion_client()
    database_id = workspace.require_database("bibliographies")
    logger.info(f"📄 Database ID: {database_id}\n")

    records = fetch_bibliography_records(client, database_id, workspace.data_source_id(database_id))
    groups = identify_duplicates(records)
    if not groups:
        logger.info("✅ No duplicates found! Database is clean.")
        return

    logger.info(f"⚠️  Found {len(groups)} duplicate group(s)\n")
    archived, failed = archive_duplicates(client, groups, dry_run=args.dry_run)

    if args.dry_run:
        logger.info("\n🔍 Dry run — nothing archived")
    else:
        logger.info(f"\n✅ Cleanup complete! Archived: {archived}, Failed: {failed}")
    logger.info(f"🔗 View database: {notion_url(database_id)}")


def cmd_backup(args: argparse.Namespace, workspace: WorkspaceConfig) -> None:
    from backup import backup_page
    from notion_publisher import get_notion_client

    page_id = args.page_id or workspace.hub_page_id
    if not page_id:
        raise WorkspaceConfigError("HUB page ID not found in workspace config (use --page-id)")
    backup_page(get_notion_client(), page_id, Config.BACKUP_DIR)


COMMANDS = {
    "preview": cmd_preview,
    "quick-access": cmd_quick_access,
    "populate": cmd_populate,
    "clean-sections": cmd_clean_sections,
    "dedupe": cmd_dedupe,
    "backup": cmd_backup,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bibnotion",
        description="📚 BibNotion — Publish and maintain annotated bibliographies in Notion",
    )
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show current configuration and exit",
    )

    sub = parser.add_subparsers(dest="command")

    preview = sub.add_parser("preview", help="Print the Quick Access blocks without calling Notion")
    preview.add_argument("--strict", action="store_true", help="Fail on malformed article entries")

    quick = sub.add_parser("quick-access", help="Add the Quick Access section to bibliography pages")
    quick.add_argument("--replace", action="store_true", help="Replace an existing section in place")
    quick.add_argument("--strict", action="store_true", help="Fail on malformed article entries")

    populate = sub.add_parser("populate", help="Write full bibliography content to the pages")
    populate.add_argument("--strict", action="store_true", help="Fail on malformed article entries")

    sub.add_parser("clean-sections", help="Remove old toggle-format Quick Access sections")

    dedupe = sub.add_parser("dedupe", help="Archive duplicate bibliography database entries")
    dedupe.add_argument("--dry-run", action="store_true", help="Only show what would be archived")

    backup = sub.add_parser("backup", help="Back up a page's blocks to JSON and markdown")
    backup.add_argument("--page-id", default=None, help="Page to back up (default: hub page)")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level=Config.LOG_LEVEL, log_file=Config.LOG_FILE_PATH)
    print_banner()

    if args.show_config:
        Config.print_config()
        return

    if not args.command:
        parser.print_help()
        sys.exit(1)

    errors = Config.validate(skip_notion=args.command == "preview")
    if errors:
        logger.error("❌ Configuration errors:")
        for error in errors:
            logger.error(f"   • {error}")
        logger.error("\n📝 Copy .env.example to .env and fill in your values.")
        sys.exit(1)

    start_time = time.time()

    try:
        workspace = WorkspaceConfig.load(Config.NOTION_CONFIG_PATH)
        COMMANDS[args.command](args, workspace)

        elapsed = time.time() - start_time
        logger.info(f"\n⏱️  Total time: {elapsed:.1f} seconds")
        logger.info("✨ Done!")

    except KeyboardInterrupt:
        print("\n\n⚠️  Cancelled by user.")
        sys.exit(0)

    except Exception as e:
        logger.error(f"\n❌ Error: {e}")
        logger.error("\n💡 Tips:")
        logger.error("   • Check that NOTION_API_KEY is valid")
        logger.error("   • Make sure the pages and databases are shared with your integration")
        logger.error("   • Run 'bibnotion preview --strict' to find malformed article entries")
        logger.debug(f"Full error: {type(e).__name__}: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
