"""Tests for catalog plugin setup.

Covers:
- Discovery of plugins that ship a ``config.json``
- Framework-keyed lookup with the ``"*"`` fallback
- Env merging, script merging and dependency installation
- Missing and malformed plugin configurations
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from precast.config import ProjectConfig
from precast.scaffolder.plugins_gen import (
    PLUGIN_ENV_MARKER,
    PluginSetupGenerator,
    available_plugins,
    for_stack,
    load_plugin_config,
)
from precast.scaffolder.template_engine import TemplateEngine


pytestmark = pytest.mark.unit


@pytest.fixture
def plugin_gen(bundled_engine, mock_installer, logger) -> PluginSetupGenerator:
    return PluginSetupGenerator(bundled_engine, mock_installer, logger)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    path = tmp_path / "shop"
    path.mkdir()
    (path / "package.json").write_text(
        json.dumps({"name": "shop", "scripts": {"dev": "next dev", "email:dev": "mine"}})
    )
    return path


# ---------------------------------------------------------------------------
# Catalog helpers
# ---------------------------------------------------------------------------


class TestCatalog:
    def test_available_plugins(self, bundled_engine):
        assert available_plugins(bundled_engine) == ["posthog", "resend", "stripe"]

    def test_for_stack_fallback(self):
        table = {"next": ["a"], "*": ["b"]}
        assert for_stack(table, "next") == ["a"]
        assert for_stack(table, "vue") == ["b"]
        assert for_stack({}, "vue") == []

    def test_load_config_aliases(self, bundled_engine):
        plugin = load_plugin_config(bundled_engine, "resend")
        assert plugin.dev_dependencies == {"*": ["react-email"]}
        assert plugin.env_variables["EMAIL_FROM"] == "onboarding@resend.dev"
        assert load_plugin_config(bundled_engine, "nope") is None


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


class TestPluginSetup:
    async def test_stripe_on_next(self, plugin_gen: PluginSetupGenerator, project: Path, mock_installer):
        config = ProjectConfig(name="shop", framework="next")
        assert await plugin_gen.generate(config, project, ["stripe"]) == ["stripe"]

        root = project.resolve()
        mock_installer.install.assert_any_await(["stripe", "@stripe/stripe-js"], root)
        assert (project / "src/lib/stripe.ts").exists()
        assert (project / "app/api/webhooks/stripe/route.ts").exists()
        assert not (project / "src/lib/stripe-client.ts").exists()

        example = (project / ".env.example").read_text()
        assert example.startswith(PLUGIN_ENV_MARKER)
        assert "STRIPE_SECRET_KEY=your-stripe-secret-key" in example
        assert (project / ".env").exists()

        scripts = json.loads((project / "package.json").read_text())["scripts"]
        assert scripts["dev"] == "next dev"
        assert scripts["stripe:listen"].startswith("stripe listen")

    async def test_fallback_files_and_existing_scripts_kept(self, plugin_gen: PluginSetupGenerator, project: Path):
        config = ProjectConfig(name="shop", framework="react", plugins=["resend"])
        assert await plugin_gen.generate(config, project) == ["resend"]

        assert (project / "src/lib/email.ts").exists()
        scripts = json.loads((project / "package.json").read_text())["scripts"]
        assert scripts["email:dev"] == "mine"

    async def test_env_not_duplicated(self, plugin_gen: PluginSetupGenerator, project: Path):
        (project / ".env").write_text("RESEND_API_KEY=re_live\n")
        config = ProjectConfig(name="shop", framework="react")
        await plugin_gen.generate(config, project, ["resend"])
        await plugin_gen.generate(config, project, ["resend"])

        env = (project / ".env").read_text()
        assert env.count("RESEND_API_KEY=") == 1
        assert "RESEND_API_KEY=re_live" in env
        assert env.count(PLUGIN_ENV_MARKER) == 1

    async def test_monorepo_backend_files(self, plugin_gen: PluginSetupGenerator, tmp_path: Path, mock_installer):
        config = ProjectConfig(name="shop", framework="react", backend="express")
        await plugin_gen.generate(config, tmp_path, ["stripe"])

        assert (tmp_path / "apps/web/src/lib/stripe-client.ts").exists()
        assert (tmp_path / "apps/api/src/routes/stripe.ts").exists()
        assert (tmp_path / "apps/api/.env.example").exists()
        mock_installer.install.assert_any_await(["stripe"], tmp_path.resolve() / "apps" / "api")

    async def test_missing_plugin_warns(self, plugin_gen: PluginSetupGenerator, project: Path, logger):
        config = ProjectConfig(name="shop", framework="react")
        assert await plugin_gen.generate(config, project, ["ghost"]) == []
        assert "Plugin configuration not found for: ghost" in logger.console.export_text()

    async def test_invalid_config_warns(self, make_tree, mock_installer, logger, tmp_path: Path):
        root = tmp_path / "templates"
        make_tree(root, {"plugins/broken/config.json": "{not json"})
        gen = PluginSetupGenerator(TemplateEngine(root, logger=logger), mock_installer, logger)

        project = tmp_path / "app"
        project.mkdir()
        assert await gen.generate(ProjectConfig(name="app"), project, ["broken"]) == []
        assert "Invalid plugin configuration for broken" in logger.console.export_text()

    async def test_nothing_requested(self, plugin_gen: PluginSetupGenerator, project: Path, mock_installer):
        assert await plugin_gen.generate(ProjectConfig(name="shop"), project) == []
        mock_installer.install.assert_not_awaited()
