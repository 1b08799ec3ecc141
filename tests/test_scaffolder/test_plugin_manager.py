"""Tests for the plugin registry and lifecycle hooks.

Covers:
- Registration order, duplicates, unregister, lookup
- Hook execution order and fail-fast behaviour
- Sync and async hooks
- Validation aggregation across plugins
- Config transform pipelines and their order sensitivity
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from precast.config import ProjectConfig
from precast.scaffolder.plugin_manager import (
    LIFECYCLE_HOOKS,
    DuplicatePluginError,
    GenerationContext,
    Plugin,
    PluginManager,
    ValidationResult,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def manager(logger) -> PluginManager:
    return PluginManager(logger)


@pytest.fixture
def context(tmp_path: Path, logger) -> GenerationContext:
    config = ProjectConfig(name="my-app")
    return GenerationContext(config, tmp_path, MagicMock(), logger)


def recording_plugin(name: str, calls: list[str], **extra) -> Plugin:
    async def generate(ctx: GenerationContext) -> str:
        calls.append(name)
        return name

    return Plugin(name=name, generate=generate, **extra)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestRegistry:
    def test_register_keeps_order(self, manager: PluginManager):
        for name in ("a", "b", "c"):
            manager.register(Plugin(name=name))
        assert [p.name for p in manager.plugins] == ["a", "b", "c"]
        assert len(manager) == 3
        assert "b" in manager
        assert manager.get("c").name == "c"
        assert manager.get("zzz") is None

    def test_duplicate_rejected(self, manager: PluginManager):
        manager.register(Plugin(name="a"))
        with pytest.raises(DuplicatePluginError, match="'a'"):
            manager.register(Plugin(name="a", version="2.0.0"))
        assert len(manager) == 1

    def test_unregister(self, manager: PluginManager):
        manager.register(Plugin(name="a"))
        assert manager.unregister("a") is True
        assert manager.unregister("a") is False
        assert "a" not in manager

    def test_plugins_is_a_copy(self, manager: PluginManager):
        manager.register(Plugin(name="a"))
        manager.plugins.clear()
        assert len(manager) == 1


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestExecuteHook:
    async def test_registration_order_then_after_unregister(
        self, manager: PluginManager, context: GenerationContext
    ):
        calls: list[str] = []
        for name in ("A", "B", "C"):
            manager.register(recording_plugin(name, calls))

        results = await manager.execute_hook("generate", context)
        assert calls == ["A", "B", "C"]
        assert results == ["A", "B", "C"]

        calls.clear()
        manager.unregister("B")
        await manager.run_generate(context)
        assert calls == ["A", "C"]

    async def test_fail_fast(self, manager: PluginManager, context: GenerationContext, logger):
        calls: list[str] = []

        def explode(ctx):
            calls.append("B")
            raise RuntimeError("boom")

        manager.register(recording_plugin("A", calls))
        manager.register(Plugin(name="B", generate=explode))
        manager.register(recording_plugin("C", calls))

        with pytest.raises(RuntimeError, match="boom"):
            await manager.run_generate(context)
        assert calls == ["A", "B"]
        assert 'plugin "B" generate hook failed: boom' in logger.console.export_text()

    async def test_sync_hooks_and_missing_hooks(
        self, manager: PluginManager, context: GenerationContext
    ):
        seen: list[str] = []
        manager.register(Plugin(name="sync", post_generate=lambda ctx: seen.append("sync") or 1))
        manager.register(Plugin(name="nothing"))
        assert await manager.run_post_generate(context) == [1]
        assert seen == ["sync"]
        assert await manager.run_pre_generate(context) == []

    @pytest.mark.parametrize("hook", LIFECYCLE_HOOKS)
    async def test_every_lifecycle_hook_dispatches(
        self, manager: PluginManager, context: GenerationContext, hook: str
    ):
        seen: list[str] = []
        manager.register(Plugin(name="p", **{hook: lambda ctx: seen.append(hook)}))
        await getattr(manager, f"run_{hook}")(context)
        assert seen == [hook]

    async def test_unknown_hook(self, manager: PluginManager, context: GenerationContext):
        with pytest.raises(ValueError, match="unknown hook"):
            await manager.execute_hook("on_weekend", context)

    async def test_context_exposes_render_context(self, context: GenerationContext):
        assert context.render_context["name"] == "my-app"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestValidateConfig:
    def test_aggregates_without_stopping(self, manager: PluginManager):
        manager.register(
            Plugin(name="a", validate_config=lambda c: ValidationResult(False, ["bad a"]))
        )
        manager.register(
            Plugin(name="b", validate_config=lambda c: {"valid": False, "errors": ["bad b"]})
        )
        manager.register(Plugin(name="c", validate_config=lambda c: ValidationResult()))

        result = manager.validate_config(ProjectConfig(name="x"))
        assert result.valid is False
        assert result.errors == ["[a] bad a", "[b] bad b"]

    def test_invalid_without_message(self, manager: PluginManager):
        manager.register(Plugin(name="quiet", validate_config=lambda c: {"valid": False}))
        result = manager.validate_config(ProjectConfig(name="x"))
        assert result.errors == ["[quiet] configuration rejected"]

    def test_no_validators_is_valid(self, manager: PluginManager):
        manager.register(Plugin(name="a"))
        assert manager.validate_config(ProjectConfig(name="x")).valid is True


# ---------------------------------------------------------------------------
# Transform pipeline
# ---------------------------------------------------------------------------


def _set_x(config: ProjectConfig) -> ProjectConfig:
    config.x = 1
    return config


def _derive_y(config: ProjectConfig) -> ProjectConfig:
    config.y = config.x + 1
    return config


@pytest.mark.unit
class TestTransformConfig:
    def test_pipeline_in_order(self, manager: PluginManager):
        manager.register(Plugin(name="A", transform_config=_set_x))
        manager.register(Plugin(name="B", transform_config=_derive_y))

        original = ProjectConfig(name="x")
        result = manager.transform_config(original)
        assert result.x == 1
        assert result.y == 2
        assert not hasattr(original, "x")

    def test_reverse_order_fails(self, manager: PluginManager):
        manager.register(Plugin(name="B", transform_config=_derive_y))
        manager.register(Plugin(name="A", transform_config=_set_x))

        with pytest.raises(AttributeError):
            manager.transform_config(ProjectConfig(name="x"))

    def test_extras_reach_template_context(self, manager: PluginManager):
        manager.register(Plugin(name="A", transform_config=_set_x))
        assert manager.transform_config(ProjectConfig(name="x")).template_context()["x"] == 1

    def test_in_place_changes_do_not_leak(self, manager: PluginManager):
        def add_stripe(config: ProjectConfig) -> ProjectConfig:
            config.plugins.append("stripe")
            return config

        manager.register(Plugin(name="A", transform_config=add_stripe))
        original = ProjectConfig(name="x")
        assert manager.transform_config(original).plugins == ["stripe"]
        assert original.plugins == []
