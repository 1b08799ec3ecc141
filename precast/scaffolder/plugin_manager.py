"""Plugin registry and lifecycle hook execution.

A ``Plugin`` is a plain record with optional hook callables; ``None`` means
the plugin sits that phase out.  ``PluginManager`` keeps plugins in
registration order and runs hooks strictly one after another in that order,
stopping at the first hook that raises.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

from precast.config import ProjectConfig
from precast.utils import ConsoleLogger

if TYPE_CHECKING:
    from precast.scaffolder.template_engine import TemplateEngine


LIFECYCLE_HOOKS: tuple[str, ...] = (
    "pre_generate",
    "generate",
    "post_generate",
    "before_install",
    "after_install",
)


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass
class GenerationContext:
    """Everything a hook may need, built once per generation."""

    config: ProjectConfig
    project_path: Path
    template_engine: "TemplateEngine"
    logger: ConsoleLogger

    @property
    def render_context(self) -> dict[str, Any]:
        return self.config.template_context()


@dataclass
class ValidationResult:
    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


HookFn = Callable[[GenerationContext], Union[Awaitable[Any], Any]]
ValidateFn = Callable[[ProjectConfig], Union[ValidationResult, Mapping[str, Any]]]
TransformFn = Callable[[ProjectConfig], ProjectConfig]


@dataclass
class Plugin:
    """A named bundle of optional lifecycle hooks.

    Hooks may be plain functions or coroutines.  ``validate_config`` returns a
    ``ValidationResult`` (or a ``{"valid": ..., "errors": [...]}`` mapping)
    and ``transform_config`` returns the config to hand to the next plugin.
    """

    name: str
    version: str = "0.0.0"
    description: str = ""
    pre_generate: HookFn | None = None
    generate: HookFn | None = None
    post_generate: HookFn | None = None
    before_install: HookFn | None = None
    after_install: HookFn | None = None
    validate_config: ValidateFn | None = None
    transform_config: TransformFn | None = None

    def hook(self, hook_name: str) -> HookFn | None:
        if hook_name not in LIFECYCLE_HOOKS:
            raise ValueError(
                f"unknown hook {hook_name!r}; expected one of: {', '.join(LIFECYCLE_HOOKS)}"
            )
        return getattr(self, hook_name)


class DuplicatePluginError(Exception):
    """A plugin with the same name is already registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"plugin {name!r} is already registered")


# ---------------------------------------------------------------------------
# PluginManager
# ---------------------------------------------------------------------------


class PluginManager:
    """Ordered plugin registry.

    Registration order is execution order: a later plugin may rely on files
    or config changes made by an earlier one.
    """

    def __init__(self, logger: ConsoleLogger | None = None) -> None:
        self._plugins: list[Plugin] = []
        self.logger = logger or ConsoleLogger()

    # -- Registry ----------------------------------------------------------

    def register(self, plugin: Plugin) -> None:
        if plugin.name in self:
            raise DuplicatePluginError(plugin.name)
        self._plugins.append(plugin)
        self.logger.debug(f"Registered plugin {plugin.name}@{plugin.version}")

    def unregister(self, name: str) -> bool:
        """Remove the plugin called *name*; returns whether it was registered."""
        for index, plugin in enumerate(self._plugins):
            if plugin.name == name:
                del self._plugins[index]
                return True
        return False

    def get(self, name: str) -> Plugin | None:
        return next((p for p in self._plugins if p.name == name), None)

    @property
    def plugins(self) -> list[Plugin]:
        return list(self._plugins)

    def __contains__(self, name: object) -> bool:
        return any(p.name == name for p in self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)

    # -- Hooks -------------------------------------------------------------

    async def execute_hook(self, hook_name: str, context: GenerationContext) -> list[Any]:
        """Run *hook_name* on every plugin that implements it.

        Hooks run sequentially in registration order.  The first hook to
        raise is logged with its plugin name and the exception propagates;
        hooks of later plugins are not run.
        """
        if hook_name not in LIFECYCLE_HOOKS:
            raise ValueError(
                f"unknown hook {hook_name!r}; expected one of: {', '.join(LIFECYCLE_HOOKS)}"
            )

        results: list[Any] = []
        for plugin in list(self._plugins):
            fn = plugin.hook(hook_name)
            if fn is None:
                continue
            try:
                result = fn(context)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as exc:
                self.logger.error(f'plugin "{plugin.name}" {hook_name} hook failed: {exc}')
                raise
            results.append(result)
        return results

    async def run_pre_generate(self, context: GenerationContext) -> list[Any]:
        return await self.execute_hook("pre_generate", context)

    async def run_generate(self, context: GenerationContext) -> list[Any]:
        return await self.execute_hook("generate", context)

    async def run_post_generate(self, context: GenerationContext) -> list[Any]:
        return await self.execute_hook("post_generate", context)

    async def run_before_install(self, context: GenerationContext) -> list[Any]:
        return await self.execute_hook("before_install", context)

    async def run_after_install(self, context: GenerationContext) -> list[Any]:
        return await self.execute_hook("after_install", context)

    # -- Config ------------------------------------------------------------

    def validate_config(self, config: ProjectConfig) -> ValidationResult:
        """Collect every plugin's validation errors, each prefixed ``[name]``.

        All plugins are consulted even after one reports errors.
        """
        errors: list[str] = []
        warnings: list[str] = []
        for plugin in self._plugins:
            if plugin.validate_config is None:
                continue
            outcome = plugin.validate_config(config)
            if isinstance(outcome, Mapping):
                outcome = ValidationResult(
                    valid=bool(outcome.get("valid", True)),
                    errors=list(outcome.get("errors") or []),
                    warnings=list(outcome.get("warnings") or []),
                )
            errors += [f"[{plugin.name}] {e}" for e in outcome.errors]
            warnings += [f"[{plugin.name}] {w}" for w in outcome.warnings]
            if not outcome.valid and not outcome.errors:
                errors.append(f"[{plugin.name}] configuration rejected")
        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    def transform_config(self, config: ProjectConfig) -> ProjectConfig:
        """Pipe *config* through every plugin's ``transform_config`` in order.

        Each plugin receives the previous plugin's output.
        """
        current = config.model_copy(deep=True)
        for plugin in self._plugins:
            if plugin.transform_config is None:
                continue
            current = plugin.transform_config(current)
        return current
