"""Integration tests for project creation.

These tests run the real generator, plugin manager and template engine
against the bundled template tree (and one throw-away tree) and check the
project directory that comes out.

No package manager or network access is required: installs go to a mock.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from precast.catalogs import FRAMEWORKS
from precast.config import CONFIG_FILENAME, ProjectConfig
from precast.plugins import create_plugin_manager
from precast.scaffolder.generator import (
    ConfigValidationError,
    FrameworkLayout,
    create_project,
    generate_template,
)
from precast.scaffolder.plugin_manager import PluginManager


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def listing(path: Path) -> list[str]:
    return sorted(p.relative_to(path).as_posix() for p in path.rglob("*") if p.is_file())


async def _create(config: ProjectConfig, output_dir: Path, engine, installer, logger) -> Path:
    result = await create_project(
        config,
        output_dir,
        engine=engine,
        plugin_manager=create_plugin_manager(logger),
        installer=installer,
        logger=logger,
    )
    assert result.failed_steps == []
    return result.project_path


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestMinimalTemplateTree:
    async def test_demo_framework(self, engine, mock_installer, logger, tmp_path: Path):
        out = tmp_path / "my-app"
        await generate_template(
            ProjectConfig(name="my-app", framework="demo"),
            out,
            engine=engine,
            plugin_manager=PluginManager(logger),
            installer=mock_installer,
            logger=logger,
            layouts={"demo": FrameworkLayout("demo")},
        )
        assert listing(out) == [".gitignore", "package.json"]
        assert json.loads((out / "package.json").read_text()) == {"name": "my-app"}


@pytest.mark.integration
class TestBundledTemplates:
    @pytest.mark.parametrize("framework", FRAMEWORKS)
    async def test_every_framework_scaffolds(
        self, framework, bundled_engine, mock_installer, logger, output_dir: Path
    ):
        config = ProjectConfig(name="my-app", framework=framework)
        project = await _create(config, output_dir, bundled_engine, mock_installer, logger)

        files = listing(project)
        assert json.loads((project / "package.json").read_text())["name"] == "my-app"
        assert ".gitignore" in files
        assert CONFIG_FILENAME in files
        assert not any(name.endswith(".hbs") for name in files)
        assert not any(name.endswith((".js", ".jsx")) and "config" not in name for name in files)

    async def test_javascript_react(self, bundled_engine, mock_installer, logger, output_dir: Path):
        config = ProjectConfig(
            name="my-app", framework="react", typescript=False, eslint=False, prettier=False,
            gitignore=False,
        )
        project = await _create(config, output_dir, bundled_engine, mock_installer, logger)

        files = listing(project)
        assert "src/App.jsx" in files
        assert "src/App.tsx" not in files
        assert "tsconfig.json" not in files
        assert ".eslintrc.json" not in files
        assert ".prettierrc" not in files
        assert ".gitignore" not in files
        package = json.loads((project / "package.json").read_text())
        assert "lint" not in package["scripts"]
        assert "typescript" not in package["devDependencies"]

    async def test_tailwind_files(self, bundled_engine, mock_installer, logger, output_dir: Path):
        config = ProjectConfig(name="my-app", framework="vue", styling="tailwind")
        project = await _create(config, output_dir, bundled_engine, mock_installer, logger)
        files = listing(project)
        assert "tailwind.config.js" in files
        assert "postcss.config.js" in files
        assert "tailwindcss" in json.loads((project / "package.json").read_text())["devDependencies"]

    async def test_monorepo(self, bundled_engine, mock_installer, logger, output_dir: Path):
        config = ProjectConfig(name="my-app", framework="react", backend="express")
        project = await _create(config, output_dir, bundled_engine, mock_installer, logger)

        root = json.loads((project / "package.json").read_text())
        assert root["workspaces"] == ["apps/*", "packages/*"]
        assert (project / "apps/web/package.json").exists()
        assert (project / "apps/web/src/App.tsx").exists()
        assert json.loads((project / "apps/api/package.json").read_text())["name"] == "@my-app/api"
        assert (project / "apps/api/src/index.ts").exists()
        assert (project / "packages/shared/index.ts").exists()

    async def test_full_stack_next(self, bundled_engine, mock_installer, logger, output_dir: Path):
        config = ProjectConfig(
            name="shop",
            framework="next",
            database="postgres",
            orm="prisma",
            styling="tailwind",
            ui_library="shadcn",
            auth_provider="better-auth",
            ai_assistant="claude",
            plugins=["stripe"],
            auto_install=True,
        )
        project = await _create(config, output_dir, bundled_engine, mock_installer, logger)

        assert (project / "app/page.tsx").exists()
        assert (project / "components.json").exists()
        assert (project / "src/lib/auth.ts").exists()
        assert (project / "src/lib/stripe.ts").exists()
        assert (project / "CLAUDE.md").exists()
        assert (project / ".claude/mcp.json").exists()
        assert "postgresql" in json.loads((project / ".claude/mcp.json").read_text())["mcpServers"]
        env = (project / ".env").read_text()
        assert "BETTER_AUTH_SECRET=" in env
        assert "STRIPE_SECRET_KEY=" in env
        mock_installer.install_dependencies.assert_awaited_once_with(project)

        saved = ProjectConfig.load(project)
        assert saved.auth_provider == "better-auth"
        assert saved.ai_context == ["claude"]

    async def test_angular_typescript_enforced(self, bundled_engine, mock_installer, logger, output_dir: Path):
        config = ProjectConfig(name="my-app", framework="angular", typescript=False)
        with pytest.raises(ConfigValidationError, match="Angular projects require TypeScript"):
            await _create(config, output_dir, bundled_engine, mock_installer, logger)
        assert list(output_dir.iterdir()) == []
