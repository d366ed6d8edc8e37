"""
test_notion_publisher.py — Unit tests for notion_publisher.py
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from notion_client.errors import APIResponseError

import notion_publisher
from block_compiler import QUICK_ACCESS_TITLE
from config import Config
from models import BlockNode, TextSpan
from notion_publisher import (
    NOTION_TEXT_LIMIT,
    _split_text,
    add_quick_access_section,
    append_blocks,
    block_plain_text,
    callout_block,
    clean_duplicate_sections,
    delete_blocks,
    divider_block,
    find_section,
    find_toggle_sections,
    heading_block,
    link_text,
    paragraph_block,
    populate_bibliography_page,
    render_block,
    replace_quick_access_section,
    rich_text,
    safe_rich_text,
)
from bibliography_parser import MalformedFragmentError


def _api_error() -> APIResponseError:
    # Constructor arguments differ between notion-client releases
    error = APIResponseError.__new__(APIResponseError)
    Exception.__init__(error, "Could not find block")
    return error


def _appended_children(client: MagicMock) -> list[dict]:
    children = []
    for call in client.blocks.children.append.call_args_list:
        children.extend(call.kwargs["children"])
    return children


# ══════════════════════════════════════════════════════════════
# Text helpers
# ══════════════════════════════════════════════════════════════

class TestSplitText:
    """Test text splitting for Notion's 2000-char limit."""

    def test_short_text_not_split(self):
        assert _split_text("Short text") == ["Short text"]

    def test_exact_limit_not_split(self):
        assert len(_split_text("x" * NOTION_TEXT_LIMIT)) == 1

    def test_over_limit_gets_split(self):
        result = _split_text("word " * 500)
        assert len(result) >= 2
        for chunk in result:
            assert len(chunk) <= NOTION_TEXT_LIMIT

    def test_split_at_sentence_boundary(self):
        result = _split_text("This is a complete sentence. " * 100)
        assert result[0].rstrip().endswith(".")

    def test_hard_cut_without_spaces(self):
        result = _split_text("y" * (NOTION_TEXT_LIMIT + 10))
        assert [len(c) for c in result] == [NOTION_TEXT_LIMIT, 10]


class TestRichText:

    def test_plain(self):
        item = rich_text("Hello")
        assert item["text"] == {"content": "Hello"}
        assert item["annotations"]["bold"] is False

    def test_link(self):
        item = link_text("here", "https://example.com")
        assert item["text"]["link"] == {"url": "https://example.com"}
        assert item["annotations"]["bold"] is True

    def test_truncates_over_limit(self):
        assert len(rich_text("x" * (NOTION_TEXT_LIMIT + 5))["text"]["content"]) == NOTION_TEXT_LIMIT

    def test_safe_rich_text_keeps_link_on_every_chunk(self):
        items = safe_rich_text("word " * 500, bold=True, href="https://example.com")
        assert len(items) >= 2
        for item in items:
            assert item["text"]["link"]["url"] == "https://example.com"
            assert item["annotations"]["bold"] is True


# ══════════════════════════════════════════════════════════════
# Block builders & rendering
# ══════════════════════════════════════════════════════════════

class TestBlockBuilders:

    def test_heading_block_levels(self):
        assert heading_block("H")["type"] == "heading_2"
        assert heading_block("H", level=3)["type"] == "heading_3"

    def test_paragraph_block_bold(self):
        block = paragraph_block("Bold", bold=True)
        assert block["paragraph"]["rich_text"][0]["annotations"]["bold"] is True

    def test_callout_block(self):
        block = callout_block("Cite", emoji="📄")
        assert block["callout"]["icon"] == {"type": "emoji", "emoji": "📄"}

    def test_divider_block(self):
        assert divider_block() == {"object": "block", "type": "divider", "divider": {}}


class TestRenderBlock:

    def test_heading(self):
        block = render_block(BlockNode.heading("Article 1", level=3))
        assert block["type"] == "heading_3"
        assert block["heading_3"]["rich_text"][0]["text"]["content"] == "Article 1"

    def test_heading_level_clamped(self):
        assert render_block(BlockNode.heading("Deep", level=5))["type"] == "heading_3"

    def test_callout(self):
        block = render_block(BlockNode.callout("Smith (2020)", emoji="📄"))
        assert block["type"] == "callout"
        assert block["callout"]["rich_text"][0]["text"]["content"] == "Smith (2020)"

    def test_divider(self):
        assert render_block(BlockNode.divider())["type"] == "divider"

    def test_link_paragraph(self):
        node = BlockNode.paragraph(
            TextSpan("🔗 "),
            TextSpan("Full-text available here", bold=True, href="https://example.com/a.pdf"),
            TextSpan(" (https://example.com/a.pdf)"),
        )
        rich = render_block(node)["paragraph"]["rich_text"]
        assert len(rich) == 3
        assert "link" not in rich[0]["text"]
        assert rich[1]["text"]["link"]["url"] == "https://example.com/a.pdf"
        assert rich[1]["annotations"]["bold"] is True

    def test_empty_spans_dropped(self):
        node = BlockNode.paragraph(TextSpan(""), TextSpan("text"))
        assert len(render_block(node)["paragraph"]["rich_text"]) == 1


class TestBlockPlainText:

    def test_fetched_block(self, make_block):
        assert block_plain_text(make_block("b1", "heading_2", "📚 Quick Access")) == "📚 Quick Access"

    def test_built_block(self):
        assert block_plain_text(heading_block("Built")) == "Built"

    def test_divider_has_no_text(self):
        assert block_plain_text(divider_block()) == ""


# ══════════════════════════════════════════════════════════════
# Page operations (mocked client)
# ══════════════════════════════════════════════════════════════

class TestAppendBlocks:

    def test_batches(self, mock_client, monkeypatch):
        monkeypatch.setattr(Config, "NOTION_BLOCK_BATCH_SIZE", 2)
        blocks = [paragraph_block(str(i)) for i in range(5)]
        assert append_blocks(mock_client, "page", blocks) == 5
        sizes = [len(c.kwargs["children"]) for c in mock_client.blocks.children.append.call_args_list]
        assert sizes == [2, 2, 1]

    def test_empty(self, mock_client):
        assert append_blocks(mock_client, "page", []) == 0
        mock_client.blocks.children.append.assert_not_called()

    def test_after_is_chained(self, mock_client, monkeypatch):
        monkeypatch.setattr(Config, "NOTION_BLOCK_BATCH_SIZE", 2)
        mock_client.blocks.children.append.side_effect = [
            {"results": [{"id": "n1"}, {"id": "n2"}]},
            {"results": [{"id": "n3"}]},
        ]
        append_blocks(mock_client, "page", [paragraph_block(str(i)) for i in range(3)], after="anchor")
        calls = mock_client.blocks.children.append.call_args_list
        assert calls[0].kwargs["after"] == "anchor"
        assert calls[1].kwargs["after"] == "n2"


class TestDeleteBlocks:

    def test_continues_after_failure(self, mock_client):
        mock_client.blocks.delete.side_effect = [None, _api_error(), None]
        assert delete_blocks(mock_client, ["a", "b", "c"]) == 2
        assert mock_client.blocks.delete.call_count == 3


class TestFindSection:

    def test_section_bounds(self, make_block):
        blocks = [
            make_block("intro", "paragraph", "Intro"),
            make_block("qa", "heading_2", QUICK_ACCESS_TITLE),
            make_block("a1", "heading_3", "Article 1"),
            make_block("d1", "divider"),
            make_block("next", "heading_2", "Other section"),
        ]
        assert find_section(blocks, "Quick Access") == (1, 4)

    def test_runs_to_end(self, make_block):
        blocks = [make_block("qa", "heading_2", "Quick Access"), make_block("p", "paragraph", "x")]
        assert find_section(blocks, "Quick Access") == (0, 2)

    def test_not_found(self, make_block):
        assert find_section([make_block("p", "paragraph", "Quick Access")], "Quick Access") is None


class TestQuickAccess:

    def test_add_appends_compiled_section(self, mock_client, sample_bibliography):
        report = add_quick_access_section(mock_client, "page", sample_bibliography, "db-id")
        children = _appended_children(mock_client)
        assert len(children) == 4 + 4 * len(report.entries)
        assert children[0]["type"] == "heading_2"
        assert children[-1]["paragraph"]["rich_text"][-1]["text"]["link"]["url"] == "https://www.notion.so/dbid"

    def test_add_strict_raises_before_api_call(self, mock_client, sample_bibliography):
        with pytest.raises(MalformedFragmentError):
            add_quick_access_section(mock_client, "page", sample_bibliography, "db", strict=True)
        mock_client.blocks.children.append.assert_not_called()

    def test_replace_without_existing_section_appends(self, mock_client, sample_bibliography):
        replace_quick_access_section(mock_client, "page", sample_bibliography, "db")
        mock_client.blocks.delete.assert_not_called()
        assert "after" not in mock_client.blocks.children.append.call_args.kwargs

    def test_replace_deletes_old_and_inserts_after_predecessor(self, mock_client, sample_bibliography, make_block):
        mock_client.blocks.children.list.return_value = {
            "results": [
                make_block("intro", "paragraph", "Intro"),
                make_block("qa", "heading_2", QUICK_ACCESS_TITLE),
                make_block("old1", "toggle", "Article 1"),
                make_block("h1", "heading_1", "Appendix"),
            ],
            "has_more": False,
            "next_cursor": None,
        }
        replace_quick_access_section(mock_client, "page", sample_bibliography, "db")

        deleted = [c.kwargs["block_id"] for c in mock_client.blocks.delete.call_args_list]
        assert deleted == ["qa", "old1"]
        assert mock_client.blocks.children.append.call_args_list[0].kwargs["after"] == "intro"


    def test_replace_section_at_top_of_page_appends(self, mock_client, sample_bibliography, make_block):
        mock_client.blocks.children.list.return_value = {
            "results": [
                make_block("qa", "heading_2", QUICK_ACCESS_TITLE),
                make_block("old1", "callout", "Old citation"),
                make_block("h1", "heading_1", "Appendix"),
            ],
            "has_more": False,
            "next_cursor": None,
        }
        replace_quick_access_section(mock_client, "page", sample_bibliography, "db")

        deleted = [c.kwargs["block_id"] for c in mock_client.blocks.delete.call_args_list]
        assert deleted == ["qa", "old1"]
        assert all("after" not in c.kwargs for c in mock_client.blocks.children.append.call_args_list)


class TestCleanDuplicateSections:

    def test_find_toggle_sections(self, make_block):
        blocks = [
            make_block("old", "heading_2", "📚 Quick Access"),
            make_block("t1", "toggle", "Article 1"),
            make_block("t2", "toggle", "Article 2"),
            make_block("view", "heading_3", "📑 View All Articles in Database"),
            make_block("new", "heading_2", "📚 Quick Access"),
            make_block("a1", "heading_3", "Article 1"),
        ]
        assert find_toggle_sections(blocks) == ["old", "t1", "t2"]

    def test_new_format_kept(self, make_block):
        blocks = [make_block("new", "heading_2", "Quick Access"), make_block("c", "callout", "Cite")]
        assert find_toggle_sections(blocks) == []

    def test_clean_deletes(self, mock_client, make_block):
        mock_client.blocks.children.list.return_value = {
            "results": [make_block("old", "heading_2", "Quick Access"), make_block("t1", "toggle", "A")],
            "has_more": False,
            "next_cursor": None,
        }
        assert clean_duplicate_sections(mock_client, "page") == 2


class TestPopulate:

    def test_populate_appends_full_bibliography(self, mock_client, sample_bibliography):
        count = populate_bibliography_page(
            mock_client, "page", "Title", "Intro.", sample_bibliography, articles_database_id="db"
        )
        children = _appended_children(mock_client)
        assert count == len(children)
        assert children[0]["type"] == "heading_1"
        headings = [block_plain_text(b) for b in children if b["type"] == "heading_3"]
        assert headings == ["Article 1", "Article 2", "Article 3"]


def test_get_notion_client_uses_config(monkeypatch):
    created = {}

    def fake_client(**kwargs):
        created.update(kwargs)
        return MagicMock()

    monkeypatch.setattr(notion_publisher, "Client", fake_client)
    monkeypatch.setattr(Config, "NOTION_API_KEY", "secret_abc")
    monkeypatch.setattr(Config, "NOTION_API_VERSION", "2025-09-03")
    notion_publisher.get_notion_client()
    assert created["auth"] == "secret_abc"
    assert created["notion_version"] == "2025-09-03"
    assert created["logger"].name == "bibnotion.notion.http"
