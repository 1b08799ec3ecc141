"""Shared pytest fixtures for the precast test suite.

Provides reusable fixtures for:
- Throw-away template roots built under ``tmp_path``
- A logger backed by a recording Rich console
- A mocked package installer
- Engines over the fixture root and over the bundled templates
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from rich.console import Console

from precast.config import ProjectConfig
from precast.package_manager import PackageInstaller
from precast.scaffolder.template_engine import TemplateEngine
from precast.utils import ConsoleLogger

BUNDLED_TEMPLATES = Path(__file__).resolve().parent.parent / "precast" / "templates"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create *files* (relative path -> content) under *root*."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


# ---------------------------------------------------------------------------
# Tree builder
# ---------------------------------------------------------------------------


@pytest.fixture
def make_tree():
    """Return the ``write_tree`` helper for building template trees in tests."""
    return write_tree


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture
def logger() -> ConsoleLogger:
    """A verbose logger whose output is recorded instead of shown."""
    return ConsoleLogger(Console(record=True, width=200, force_terminal=False), verbose=True)


# ---------------------------------------------------------------------------
# Template roots and engines
# ---------------------------------------------------------------------------


@pytest.fixture
def template_root(tmp_path: Path) -> Path:
    """A minimal template root with one ``demo`` framework."""
    root = tmp_path / "templates"
    write_tree(
        root,
        {
            "frameworks/demo/base/_gitignore.hbs": "node_modules\n",
            "frameworks/demo/base/package.json.hbs": '{"name": "{{ name }}"}\n',
        },
    )
    return root


@pytest.fixture
def engine(template_root: Path, logger: ConsoleLogger) -> TemplateEngine:
    return TemplateEngine(template_root, logger=logger)


@pytest.fixture
def bundled_engine(logger: ConsoleLogger) -> TemplateEngine:
    """Engine over the templates that ship with the package."""
    return TemplateEngine(BUNDLED_TEMPLATES, logger=logger)


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Empty directory that generated projects land in."""
    out = tmp_path / "out"
    out.mkdir()
    return out


# ---------------------------------------------------------------------------
# Package installer
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_installer() -> MagicMock:
    """A PackageInstaller double that records install calls."""
    installer = MagicMock(spec=PackageInstaller)
    installer.package_manager = "npm"
    installer.install = AsyncMock(return_value=None)
    installer.install_dependencies = AsyncMock(return_value=None)
    return installer


# ---------------------------------------------------------------------------
# Configs
# ---------------------------------------------------------------------------


@pytest.fixture
def react_config() -> ProjectConfig:
    return ProjectConfig(name="my-app", framework="react", typescript=True, styling="css")


@pytest.fixture
def next_prisma_config() -> ProjectConfig:
    return ProjectConfig(
        name="shop",
        framework="next",
        database="postgres",
        orm="prisma",
        styling="tailwind",
        auth_provider="better-auth",
    )
