"""
logging_config.py — BibNotion Logging Configuration
=====================================================
Every module logs under the "bibnotion" logger tree:

  bibnotion.cli       command progress, config errors, timing
  bibnotion.notion    section add/replace/clean/populate, skipped fragments (DEBUG)
  bibnotion.notion.http  request log of the Notion SDK itself (DEBUG)
  bibnotion.dedupe    duplicate groups, archive results
  bibnotion.backup    backup file locations

Two outputs:
  1. Console (stderr): the emoji progress lines you see while running
     'bibnotion quick-access', 'bibnotion dedupe', ... (LOG_LEVEL, default INFO)
  2. File (~/.bibnotion/bibnotion.log): everything at DEBUG with timestamps,
     including which article fragments were skipped and every API request

USAGE:
    from logging_config import setup_logging
    setup_logging(level=Config.LOG_LEVEL, log_file=Config.LOG_FILE_PATH)  # once, in cli.main()

    # Then in each module:
    logger = logging.getLogger("bibnotion.module_name")
"""

from __future__ import annotations

import logging
from pathlib import Path


# Directory for BibNotion runtime files
BIBNOTION_DIR = Path.home() / ".bibnotion"

DEFAULT_LOG_FILE = BIBNOTION_DIR / "bibnotion.log"

# Handed to notion_client.Client(logger=...) so SDK output lands in our file log
SDK_LOGGER_NAME = "bibnotion.notion.http"


def sdk_logger() -> logging.Logger:
    """Logger for the Notion SDK; its records reach the console only at WARNING and up."""
    return logging.getLogger(SDK_LOGGER_NAME)


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Configure the "bibnotion" logger tree.

    Args:
        level:    Console level ("DEBUG", "INFO", "WARNING", ...). Unknown names fall back to INFO
        log_file: Path to the log file. Defaults to ~/.bibnotion/bibnotion.log
    """
    log_path = Path(log_file) if log_file else DEFAULT_LOG_FILE

    root_logger = logging.getLogger("bibnotion")
    root_logger.setLevel(logging.DEBUG)  # Capture everything; handlers filter

    # setup_logging() runs once per main() call; tests call main() repeatedly
    if root_logger.handlers:
        return

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root_logger.addHandler(file_handler)
    except OSError:
        # A read-only home directory still gets console output
        root_logger.warning(f"⚠️  Could not create log file at {log_path}, logging to console only")
