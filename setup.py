"""
setup.py — Makes BibNotion installable as a system-wide CLI command
=====================================================================
After running 'pip install .' (or 'pip install -e .'), you can run
BibNotion from anywhere on your system:

    bibnotion preview
    bibnotion quick-access --replace
    bibnotion --show-config

INSTALLATION:
    # Development mode (code changes take effect immediately)
    pip install -e ".[dev]"

    # Regular install
    pip install .
"""

from setuptools import setup

setup(
    # ── Package metadata ──
    name="bibnotion",
    version="1.0.0",
    description="📚 BibNotion — Publish and maintain annotated bibliographies in Notion.",

    # ── Flat layout: individual modules, no package folder ──
    py_modules=[
        "cli",
        "config",
        "models",
        "bibliography_parser",
        "block_compiler",
        "notion_publisher",
        "dedupe",
        "backup",
        "logging_config",
    ],

    install_requires=[
        "notion-client>=2.5.0",
        "python-dotenv>=1.0.0",
        "pydantic>=2.0.0",
    ],

    extras_require={
        "dev": [
            "pytest>=7.0",
            "httpx",
        ],
    },

    # "bibnotion" command → main() in cli.py
    entry_points={
        "console_scripts": [
            "bibnotion=cli:main",
        ],
    },

    python_requires=">=3.10",
)
