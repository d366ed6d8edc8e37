"""
config.py — BibNotion Configuration Loader & Validator
========================================================
Central configuration for BibNotion. Two sources:

1. Environment / .env file (secrets and paths) → the Config class
2. .notion-config.json (workspace layout: hub page, database IDs,
   bibliography pages) → the WorkspaceConfig pydantic model

.env FILE LOCATION:
BibNotion looks for .env in this order:
  1. ~/.bibnotion/.env  (recommended — works from anywhere)
  2. <project>/.env     (installation directory)
  3. ./.env             (current directory)

.notion-config.json LAYOUT:
  {
    "hubPageId": "...",
    "academicDatabases": {"bibliographies": "...", "articles": "..."},
    "dataSources": {"<database id>": {"id": "<data source id>"}},
    "bibliographies": [
      {"title": "...", "pageId": "...",
       "startMarker": "## Bibliography 1:", "endMarker": "## Bibliography 2:",
       "introduction": "..."}
    ]
  }
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from dotenv import load_dotenv  # Reads .env file and loads values into environment
from pydantic import BaseModel, ConfigDict, Field, ValidationError

# ──────────────────────────────────────────────────────────────────
# LOAD .env FILE
# ──────────────────────────────────────────────────────────────────
# The first one found wins, so once ~/.bibnotion/.env exists you can run
# 'bibnotion' from any folder.
# ──────────────────────────────────────────────────────────────────

_home_env = Path.home() / ".bibnotion" / ".env"
if _home_env.exists():
    load_dotenv(_home_env, override=True)
else:
    _project_env = Path(__file__).parent / ".env"
    if _project_env.exists():
        load_dotenv(_project_env, override=True)
    else:
        load_dotenv()


class Config:
    """
    Central configuration for BibNotion.

    All settings are class-level variables:
        Config.NOTION_API_KEY
        Config.NOTION_CONFIG_PATH
    """

    # ══════════════════════════════════════════════════════════════
    # NOTION SETTINGS
    # ══════════════════════════════════════════════════════════════

    # NOTION_API_KEY: Internal Integration Token from https://www.notion.so/my-integrations
    # The bibliography pages and databases must be shared with the integration
    # (page "..." menu → Connections), otherwise every call returns 404.
    NOTION_API_KEY: str = os.getenv("NOTION_API_KEY", "")

    # NOTION_API_VERSION: Notion-Version header. 2025-09-03 introduced data sources.
    NOTION_API_VERSION: str = os.getenv("NOTION_API_VERSION", "2025-09-03")

    # NOTION_BLOCK_BATCH_SIZE: Notion accepts at most 100 children per append call.
    NOTION_BLOCK_BATCH_SIZE: int = int(os.getenv("NOTION_BLOCK_BATCH_SIZE", "100"))

    # ══════════════════════════════════════════════════════════════
    # FILE LOCATIONS
    # ══════════════════════════════════════════════════════════════

    # Workspace layout file (see module docstring)
    NOTION_CONFIG_PATH: str = os.getenv("NOTION_CONFIG_PATH", ".notion-config.json")

    # The markdown file holding the annotated bibliographies
    BIBLIOGRAPHY_MARKDOWN_PATH: str = os.getenv(
        "BIBLIOGRAPHY_MARKDOWN_PATH",
        "storage/bibliographies/attachment-theory-annotated-bibliographies.md",
    )

    # Where page backups are written
    BACKUP_DIR: str = os.getenv("BACKUP_DIR", "docs")

    # ══════════════════════════════════════════════════════════════
    # LOGGING
    # ══════════════════════════════════════════════════════════════

    LOG_FILE_PATH: str = os.getenv(
        "LOG_FILE_PATH", str(Path.home() / ".bibnotion" / "bibnotion.log")
    )

    # Log level for console output (DEBUG, INFO, WARNING, ERROR)
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls, skip_notion: bool = False, require_workspace: bool = True) -> list[str]:
        """
        Check required settings before anything touches the API.

        Args:
            skip_notion:       Don't require an API key (used by 'preview',
                               which never calls Notion)
            require_workspace: Also require the .notion-config.json file to exist

        Returns:
            List of error messages. Empty list means everything is configured.
        """
        errors = []

        if not skip_notion and not cls.NOTION_API_KEY:
            errors.append(
                "NOTION_API_KEY is not set. Get it from https://www.notion.so/my-integrations"
            )

        if require_workspace and not Path(cls.NOTION_CONFIG_PATH).exists():
            errors.append(
                f"Workspace config not found at {cls.NOTION_CONFIG_PATH}. "
                "Set NOTION_CONFIG_PATH or create .notion-config.json"
            )

        return errors

    @classmethod
    def print_config(cls):
        """Print current configuration with secrets masked."""
        print("\n📋 Current Configuration:")
        _project_env = Path(__file__).parent / ".env"
        if _home_env.exists():
            print(f"   Config file:      {_home_env}")
        elif _project_env.exists():
            print(f"   Config file:      {_project_env}")
        else:
            print(f"   Config file:      ⚠️  No .env found! Expected at {_home_env}")
        print(f"   Notion API Key:   {'✅ Set' if cls.NOTION_API_KEY else '❌ Missing'}")
        print(f"   Notion Version:   {cls.NOTION_API_VERSION}")
        print(f"   Workspace file:   {cls.NOTION_CONFIG_PATH}")
        print(f"   Bibliography:     {cls.BIBLIOGRAPHY_MARKDOWN_PATH}")
        print(f"   Backup dir:       {cls.BACKUP_DIR}")
        print()


# ══════════════════════════════════════════════════════════════
# WORKSPACE LAYOUT (.notion-config.json)
# ══════════════════════════════════════════════════════════════


class WorkspaceConfigError(Exception):
    """The workspace config file is missing, unreadable, or invalid."""


class _CamelModel(BaseModel):
    # The JSON file uses camelCase keys; Python code uses snake_case
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DataSourceRef(_CamelModel):
    id: str
    name: str | None = None


class AcademicDatabases(_CamelModel):
    assignments: str | None = None
    treatment_plans: str | None = Field(default=None, alias="treatmentPlans")
    session_notes: str | None = Field(default=None, alias="sessionNotes")
    bibliographies: str | None = None
    articles: str | None = None
    rubrics: str | None = None
    textbooks: str | None = None


class BibliographyTarget(_CamelModel):
    """One bibliography page and where its content lives in the markdown file."""
    title: str
    page_id: str = Field(alias="pageId")
    start_marker: str = Field(alias="startMarker")
    end_marker: str | None = Field(default=None, alias="endMarker")
    introduction: str = ""


class WorkspaceConfig(_CamelModel):
    hub_page_id: str | None = Field(default=None, alias="hubPageId")
    academic_databases: AcademicDatabases = Field(
        default_factory=AcademicDatabases, alias="academicDatabases"
    )
    data_sources: dict[str, DataSourceRef] = Field(default_factory=dict, alias="dataSources")
    bibliographies: list[BibliographyTarget] = Field(default_factory=list)

    @classmethod
    def load(cls, path: str | Path | None = None) -> WorkspaceConfig:
        """
        Read and validate the workspace config file.

        Args:
            path: File to read. Defaults to Config.NOTION_CONFIG_PATH

        Raises:
            WorkspaceConfigError: If the file is missing, not JSON, or invalid
        """
        config_path = Path(path or Config.NOTION_CONFIG_PATH)
        try:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise WorkspaceConfigError(f"Could not read {config_path}: file not found") from e
        except json.JSONDecodeError as e:
            raise WorkspaceConfigError(f"Could not parse {config_path}: {e}") from e

        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise WorkspaceConfigError(f"Invalid workspace config in {config_path}:\n{e}") from e

    def data_source_id(self, database_id: str) -> str | None:
        """Cached data source ID for a database, if the config has one."""
        ref = self.data_sources.get(database_id)
        return ref.id if ref else None

    def require_database(self, name: str) -> str:
        """
        Database ID by its academicDatabases field name.

        Raises:
            WorkspaceConfigError: If the ID isn't configured
        """
        database_id = getattr(self.academic_databases, name, None)
        if not database_id:
            raise WorkspaceConfigError(f"{name} database ID not found in workspace config")
        return database_id
