"""Catalog plugins (Stripe, Resend, PostHog ...) described by ``config.json``.

Each plugin directory under ``plugins/<id>/`` holds a ``config.json`` listing
its dependencies, environment variables, package scripts and the template
files to render, all keyed by framework with ``"*"`` as the fallback.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from precast.config import ProjectConfig
from precast.package_manager import PackageInstaller
from precast.scaffolder.env_file import merge_variables
from precast.scaffolder.template_engine import TemplateEngine
from precast.utils import ConsoleLogger, load_json, save_json

PLUGIN_ENV_MARKER = "# Plugin Configuration"


class SetupFile(BaseModel):
    template: str
    output: str


class PostInstall(BaseModel):
    instructions: list[str] = Field(default_factory=list)


class PluginConfig(BaseModel):
    """Parsed ``plugins/<id>/config.json``; JSON keys are camelCase."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str = ""
    category: str = ""
    dependencies: dict[str, list[str]] = Field(default_factory=dict)
    dev_dependencies: dict[str, list[str]] = Field(default_factory=dict, alias="devDependencies")
    backend_dependencies: dict[str, list[str]] = Field(
        default_factory=dict, alias="backendDependencies"
    )
    backend_dev_dependencies: dict[str, list[str]] = Field(
        default_factory=dict, alias="backendDevDependencies"
    )
    env_variables: dict[str, str] = Field(default_factory=dict, alias="envVariables")
    scripts: dict[str, str] = Field(default_factory=dict)
    setup_files: dict[str, list[SetupFile]] = Field(default_factory=dict, alias="setupFiles")
    backend_setup_files: dict[str, list[SetupFile]] = Field(
        default_factory=dict, alias="backendSetupFiles"
    )
    post_install: PostInstall = Field(default_factory=PostInstall, alias="postInstall")
    documentation_url: str = Field(default="", alias="documentationUrl")


def for_stack(table: dict[str, list[Any]], key: str) -> list[Any]:
    """Entry for *key*, falling back to the ``"*"`` entry."""
    return list(table.get(key) or table.get("*") or [])


def available_plugins(engine: TemplateEngine) -> list[str]:
    return [
        plugin_id
        for plugin_id in engine.available_templates("plugins")
        if engine.has_template(f"plugins/{plugin_id}/config.json")
    ]


def load_plugin_config(engine: TemplateEngine, plugin_id: str) -> PluginConfig | None:
    """Read ``plugins/<plugin_id>/config.json``; ``None`` when there is none."""
    path = engine.template_path(f"plugins/{plugin_id}/config.json")
    if not path.is_file():
        return None
    return PluginConfig.model_validate(load_json(path))


class PluginSetupGenerator:
    def __init__(
        self,
        engine: TemplateEngine,
        installer: PackageInstaller,
        logger: ConsoleLogger | None = None,
    ) -> None:
        self.engine = engine
        self.installer = installer
        self.logger = logger or engine.logger

    async def generate(
        self,
        config: ProjectConfig,
        project_path: Path,
        plugin_ids: list[str] | None = None,
    ) -> list[str]:
        """Set up every plugin in *plugin_ids* (default ``config.plugins``).

        Returns:
            The ids that were set up.
        """
        plugin_ids = plugin_ids if plugin_ids is not None else config.plugins
        if not plugin_ids:
            return []

        config = config.with_project_path(project_path)
        has_backend = config.backend != "none"
        web_path, api_path = config.web_path, config.api_path

        deps: list[str] = []
        dev_deps: list[str] = []
        backend_deps: list[str] = []
        backend_dev_deps: list[str] = []
        env_variables: dict[str, str] = {}
        scripts: dict[str, str] = {}
        done: list[str] = []

        self.logger.info(f"Setting up plugins: {', '.join(plugin_ids)}...")
        for plugin_id in plugin_ids:
            try:
                plugin = load_plugin_config(self.engine, plugin_id)
            except (json.JSONDecodeError, ValidationError) as exc:
                self.logger.warn(f"Invalid plugin configuration for {plugin_id}: {exc}")
                continue
            if plugin is None:
                self.logger.warn(f"Plugin configuration not found for: {plugin_id}")
                continue

            self.logger.info(f"Setting up {plugin.name}...")
            deps += for_stack(plugin.dependencies, config.framework)
            dev_deps += for_stack(plugin.dev_dependencies, config.framework)
            env_variables.update(plugin.env_variables)
            scripts.update(plugin.scripts)

            await self._render_setup_files(
                plugin, plugin.setup_files, config.framework, web_path, config
            )
            if has_backend:
                backend_deps += for_stack(plugin.backend_dependencies, config.backend)
                backend_dev_deps += for_stack(plugin.backend_dev_dependencies, config.backend)
                await self._render_setup_files(
                    plugin, plugin.backend_setup_files, config.backend, api_path, config
                )

            self.logger.steps(f"{plugin.name} setup instructions", plugin.post_install.instructions)
            done.append(plugin_id)

        if env_variables:
            targets = [web_path] + ([api_path] if config.is_monorepo else [])
            for target in targets:
                await merge_variables(target / ".env.example", env_variables, PLUGIN_ENV_MARKER)
                await merge_variables(target / ".env", env_variables, PLUGIN_ENV_MARKER)

        if scripts:
            await self._merge_scripts(web_path / "package.json", scripts)

        await self.installer.install(deps, web_path)
        await self.installer.install(dev_deps, web_path, dev=True)
        if config.is_monorepo:
            await self.installer.install(backend_deps, api_path)
            await self.installer.install(backend_dev_deps, api_path, dev=True)

        if done:
            self.logger.success("Plugins setup completed!")
        return done

    async def _render_setup_files(
        self,
        plugin: PluginConfig,
        table: dict[str, list[SetupFile]],
        stack_key: str,
        target: Path,
        config: ProjectConfig,
    ) -> None:
        context = config.template_context()
        context.update(plugin_id=plugin.id, plugin_name=plugin.name)
        for setup_file in for_stack(table, stack_key):
            candidates = [
                f"plugins/{plugin.id}/{setup_file.template}",
                f"plugins/{plugin.id}/{stack_key}/{setup_file.template}",
            ]
            template = next((c for c in candidates if self.engine.has_template(c)), None)
            if template is None:
                self.logger.warn(f"Template not found: {setup_file.template} for plugin {plugin.id}")
                continue
            if await self.engine.render_file(
                template, target / setup_file.output, context, skip_if_exists=True
            ):
                self.logger.success(f"  Created {setup_file.output}")

    async def _merge_scripts(self, package_json: Path, scripts: dict[str, str]) -> None:
        if not package_json.is_file():
            self.logger.warn(f"{package_json} not found; add these scripts manually: {scripts}")
            return
        data = await asyncio.to_thread(load_json, package_json)
        existing = data.setdefault("scripts", {})
        for name, command in scripts.items():
            existing.setdefault(name, command)
        await save_json(data, package_json)
