"""
dedupe.py — BibNotion Duplicate Bibliography Clean-up
=======================================================
Finds rows of the Annotated Bibliographies database that describe the same
bibliography (same Topic + Course) and archives all but one of them.

WHICH ROW SURVIVES:
  1. The oldest row that has a file attached
  2. Otherwise the most recently created row

Archiving (pages.update archived=True) is reversible from Notion's trash,
unlike deleting blocks.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from notion_client import Client
from notion_client.errors import APIResponseError
from notion_client.helpers import collect_paginated_api

from models import BibliographyRecord, DuplicateGroup

logger = logging.getLogger("bibnotion.dedupe")


def _title(prop: dict[str, Any] | None) -> str:
    items = (prop or {}).get("title") or []
    return items[0].get("plain_text", "") if items else ""


def _select(prop: dict[str, Any] | None) -> str:
    select = (prop or {}).get("select") or {}
    return select.get("name", "")


def record_from_page(page: dict[str, Any]) -> BibliographyRecord:
    """Reduce a database page to the properties used for duplicate detection."""
    props = page.get("properties", {})
    due = (props.get("Due Date") or {}).get("date") or {}
    files = (props.get("File") or {}).get("files") or []
    return BibliographyRecord(
        page_id=page["id"],
        url=page.get("url", ""),
        topic=_title(props.get("Topic")) or "Untitled",
        course=_select(props.get("Course")),
        status=_select(props.get("Status")),
        due_date=due.get("start") or "",
        created_time=page.get("created_time", ""),
        has_file=len(files) > 0,
    )


def select_best_record(records: list[BibliographyRecord]) -> BibliographyRecord:
    """
    Pick the record to keep from a group sorted oldest first.
    Prefer one with a file, otherwise keep the newest.
    """
    with_files = [r for r in records if r.has_file]
    if with_files:
        return with_files[0]
    return records[-1]


def identify_duplicates(records: Iterable[BibliographyRecord]) -> list[DuplicateGroup]:
    """
    Group records by Topic + Course and return only groups with more than one row.
    Groups keep first-seen order; records inside a group are sorted by created_time.
    """
    grouped: dict[str, list[BibliographyRecord]] = {}
    for record in records:
        grouped.setdefault(record.key, []).append(record)

    duplicates = []
    for key, group in grouped.items():
        if len(group) > 1:
            # ISO-8601 timestamps sort correctly as strings
            ordered = sorted(group, key=lambda r: r.created_time)
            duplicates.append(DuplicateGroup(key=key, records=ordered, keep=select_best_record(ordered)))
    return duplicates


class DataSourceNotFoundError(LookupError):
    """The database has no data source to query."""


def resolve_data_source_id(client: Client, database_id: str) -> str:
    """
    Data source ID of a single-source database.

    With API version 2025-09-03 a database is a container: its rows live in
    data sources, listed on the database object.

    Raises:
        DataSourceNotFoundError: If the database lists no data sources
    """
    database = client.databases.retrieve(database_id=database_id)
    sources = database.get("data_sources") or []
    if not sources:
        raise DataSourceNotFoundError(f"No data sources found for database {database_id}")
    if len(sources) > 1:
        logger.info(f"   ℹ️  Found {len(sources)} data sources (using first)")
    return sources[0]["id"]


def fetch_bibliography_records(
    client: Client,
    database_id: str,
    data_source_id: str | None = None,
) -> list[BibliographyRecord]:
    """
    Fetch every row of the bibliographies database.

    Rows are always queried through the database's data source. Pass
    data_source_id when the workspace config has it cached, otherwise it
    is looked up with databases.retrieve.
    """
    if not data_source_id:
        data_source_id = resolve_data_source_id(client, database_id)
        logger.debug(f"Resolved data source {data_source_id} for database {database_id}")
    pages = collect_paginated_api(client.data_sources.query, data_source_id=data_source_id)
    logger.info(f"📋 Found {len(pages)} total entries")
    return [record_from_page(page) for page in pages]


def archive_duplicates(
    client: Client,
    groups: list[DuplicateGroup],
    dry_run: bool = False,
) -> tuple[int, int]:
    """
    Archive every record except the kept one in each group.

    Args:
        client:  Notion API client
        groups:  Output of identify_duplicates()
        dry_run: Only log what would be archived

    Returns:
        (archived, failed) counts
    """
    archived = 0
    failed = 0

    for group in groups:
        topic, _, course = group.key.partition("::")
        logger.info(f'📚 "{topic}" ({course or "no course"}): {len(group.records)} entries')
        logger.info(f"   ✅ Keeping: {group.keep.page_id[:8]}... (created: {group.keep.created_time[:10]})")

        for record in group.to_archive:
            if dry_run:
                logger.info(f"   🗑️  Would archive: {record.page_id[:8]}... (created: {record.created_time[:10]})")
                continue
            try:
                client.pages.update(page_id=record.page_id, archived=True)
                logger.info(f"   🗑️  Archived: {record.page_id[:8]}...")
                archived += 1
            except APIResponseError as e:
                logger.error(f"   ❌ Failed to archive {record.page_id[:8]}...: {e}")
                failed += 1

    return archived, failed
