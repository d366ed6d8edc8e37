"""
conftest.py — Shared fixtures for BibNotion unit tests
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add project root to sys.path so tests can import BibNotion modules
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def sample_bibliography() -> str:
    """Realistic bibliography document: two bibliographies, one broken entry."""
    return """\
# Attachment Theory Annotated Bibliographies

Prepared for SOCW-6510. Each entry uses **APA 7** format.

## Bibliography 1: Attachment Theory in Clinical Social Work Practice

### Article 1
**Smith, J. (2020). Attachment in adult therapy. *Clinical Social Work Journal*, 48(2), 100-110. https://doi.org/10.1000/cswj.1**

This article reviews attachment-informed interventions with adult clients.
It draws on twelve outcome studies.

A weakness is the small number of randomized trials.

**Full-text available at:** https://example.com/smith2020.pdf

---

### Article 2
**Lee, K. (2019). Secure base in practice. *Social Work*, 64(1), 20-29. https://doi.org/10.1000/sw.2**

Annotation without any full-text link.

---

### Article 7
**Ahmed, R. (2021). Mentalization and attachment. *Journal of Social Work Practice*, 35(3), 250-262. https://doi.org/10.1000/jswp.3**

Describes mentalization-based treatment.

**Full-text available at:** https://example.com/ahmed2021.pdf

---

## Bibliography 2: Attachment Theory in Child and Family Social Work

### Article 1
**Garcia, M. (2018). Foster care placements. *Child & Family Social Work*, 23(4), 600-608. https://doi.org/10.1000/cfsw.4**

Examines placement stability and attachment security.

**Full-text available at:** https://example.com/garcia2018.pdf

## Notes on Article Selection

Articles were chosen from peer-reviewed journals.
"""


@pytest.fixture
def mock_client() -> MagicMock:
    """A Notion client double with empty, single-page list responses."""
    client = MagicMock()
    client.blocks.children.list.return_value = {"results": [], "has_more": False, "next_cursor": None}
    client.blocks.children.append.return_value = {"results": []}
    return client


def fetched_block(block_id: str, block_type: str, text: str = "") -> dict:
    """A block as the Notion API returns it from blocks.children.list."""
    payload = {"rich_text": [{"type": "text", "plain_text": text, "text": {"content": text}}]} if text else {}
    return {"object": "block", "id": block_id, "type": block_type, block_type: payload, "has_children": False}


@pytest.fixture
def make_block():
    """Factory fixture for fetched blocks."""
    return fetched_block
