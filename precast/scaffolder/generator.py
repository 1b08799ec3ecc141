"""Main scaffolding orchestrator.

``ProjectGenerator`` turns a ``ProjectConfig`` into a project directory: it
copies the framework's template trees, runs the plugin lifecycle hooks around
that copy, then runs the auxiliary setups (AI context, UI library, auth, MCP,
catalog plugins).  The auxiliary setups are independent of each other and of
the scaffold: one failing is reported and the rest still run.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from precast.catalogs import FRAMEWORKS
from precast.config import ProjectConfig, Settings
from precast.package_manager import PackageInstaller
from precast.scaffolder.ai_context_gen import AIContextGenerator
from precast.scaffolder.auth_gen import AuthGenerator
from precast.scaffolder.mcp_gen import MCPGenerator
from precast.scaffolder.plugin_manager import GenerationContext, PluginManager
from precast.scaffolder.plugins_gen import PluginSetupGenerator
from precast.scaffolder.template_engine import TemplateEngine
from precast.scaffolder.ui_library_gen import UILibraryGenerator
from precast.scaffolder.validator import ConfigValidator
from precast.utils import ConsoleLogger


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class UnknownFrameworkError(Exception):
    def __init__(self, framework: str, known: list[str]) -> None:
        self.framework = framework
        super().__init__(f"Unknown framework: {framework!r} (known: {', '.join(known)})")


class ProjectExistsError(Exception):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Directory {path} already exists")


class ConfigValidationError(Exception):
    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Invalid configuration:\n" + "\n".join(f"  - {e}" for e in errors))


# ---------------------------------------------------------------------------
# Framework layouts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FrameworkLayout:
    """Template subtrees of ``frameworks/<name>`` copied after ``base``.

    Each subdirectory is copied only when the template tree has it.
    """

    name: str
    subdirs: tuple[str, ...] = ("src",)


FRAMEWORK_LAYOUTS: dict[str, FrameworkLayout] = {
    name: FrameworkLayout(name) for name in FRAMEWORKS
}
FRAMEWORK_LAYOUTS["next"] = FrameworkLayout("next", ("src", "app"))
FRAMEWORK_LAYOUTS["remix"] = FrameworkLayout("remix", ("app",))


@dataclass
class GenerationResult:
    project_path: Path
    files: list[Path] = field(default_factory=list)
    completed_steps: list[str] = field(default_factory=list)
    failed_steps: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Main generator
# ---------------------------------------------------------------------------


class ProjectGenerator:
    """Scaffolds one project.

    The template engine, plugin manager, package installer and logger are
    owned by the caller (normally one CLI invocation) and passed in; missing
    ones are created per generator.
    """

    def __init__(
        self,
        config: ProjectConfig,
        *,
        engine: TemplateEngine | None = None,
        plugin_manager: PluginManager | None = None,
        installer: PackageInstaller | None = None,
        logger: ConsoleLogger | None = None,
        layouts: Mapping[str, FrameworkLayout] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or ConsoleLogger()
        self.settings = settings or Settings()
        self.layouts = dict(layouts if layouts is not None else FRAMEWORK_LAYOUTS)
        self.plugin_manager = plugin_manager or PluginManager(self.logger)
        self.installer = installer or PackageInstaller(
            config.package_manager, enabled=config.auto_install, logger=self.logger
        )
        self._engine = engine

    @property
    def engine(self) -> TemplateEngine:
        if self._engine is None:
            self._engine = TemplateEngine(self.settings.template_root, logger=self.logger)
        return self._engine

    def layout_for(self, framework: str) -> FrameworkLayout:
        layout = self.layouts.get(framework)
        if layout is None:
            raise UnknownFrameworkError(framework, sorted(self.layouts))
        return layout

    async def generate(self, project_path: str | Path) -> GenerationResult:
        """Generate the project into *project_path*.

        Phases run in a fixed order: ``pre_generate`` hooks, framework
        templates, ``generate`` hooks, ``post_generate`` hooks, auxiliary
        setups.  Errors before the auxiliary setups propagate.
        """
        # 1. Reject unknown frameworks before touching anything
        layout = self.layout_for(self.config.framework)

        project_path = Path(project_path).resolve()
        config = self.config.with_project_path(project_path)
        engine = self.engine
        context = GenerationContext(
            config=config,
            project_path=project_path,
            template_engine=engine,
            logger=self.logger,
        )
        result = GenerationResult(project_path=project_path)

        # 2. Plugin pre-generation
        await self.plugin_manager.run_pre_generate(context)

        # 3. Framework (and, for a monorepo, workspace and backend) templates
        result.files += await self._scaffold(config, layout, engine)

        # 4. Plugin generation and post-generation
        await self.plugin_manager.run_generate(context)
        await self.plugin_manager.run_post_generate(context)

        # 5. Auxiliary setups
        await self._run_auxiliary(config, project_path, engine, result)
        return result

    # -- Scaffold ----------------------------------------------------------

    async def _scaffold(
        self, config: ProjectConfig, layout: FrameworkLayout, engine: TemplateEngine
    ) -> list[Path]:
        context = config.template_context()
        root = config.project_path
        written: list[Path] = []

        if config.is_monorepo:
            self.logger.info(f"Creating monorepo: apps/web ({config.framework}), apps/api ({config.backend})")
            if engine.has_template("workspace"):
                written += await engine.copy_template_tree("workspace", root, context, overwrite=True)
            target = root / "apps" / "web"
        else:
            target = root

        framework_dir = f"frameworks/{layout.name}"
        written += await engine.copy_template_tree(
            f"{framework_dir}/base", target, context, overwrite=True
        )
        available = engine.available_templates(framework_dir)
        for subdir in layout.subdirs:
            if subdir in available:
                written += await engine.copy_template_tree(
                    f"{framework_dir}/{subdir}", target / subdir, context, overwrite=True
                )

        if config.is_monorepo:
            backend_dir = f"backends/{config.backend}"
            if engine.has_template(backend_dir):
                written += await engine.copy_template_tree(
                    backend_dir, root / "apps" / "api", context, overwrite=True
                )
            else:
                self.logger.warn(f"No templates for backend {config.backend}; apps/api left empty")
            if engine.has_template("shared"):
                written += await engine.copy_template_tree(
                    "shared", root / "packages" / "shared", context, overwrite=True
                )

        self.logger.debug(f"Scaffolded {len(written)} file(s) for {layout.name}")
        return written

    # -- Auxiliary setups --------------------------------------------------

    async def _run_auxiliary(
        self,
        config: ProjectConfig,
        project_path: Path,
        engine: TemplateEngine,
        result: GenerationResult,
    ) -> None:
        wants_mcp = bool(config.mcp_servers) or "claude" in config.ai_context
        steps: list[tuple[str, bool, Callable[[], Awaitable[object]]]] = [
            (
                "ai-context",
                bool(config.ai_context),
                lambda: AIContextGenerator(engine, self.logger).generate(config, project_path),
            ),
            (
                "ui-library",
                bool(config.ui_library) and config.framework != "vanilla",
                lambda: UILibraryGenerator(engine, self.installer, self.logger).generate(
                    config, project_path
                ),
            ),
            (
                "auth",
                bool(config.auth_provider),
                lambda: AuthGenerator(engine, self.installer, self.logger).generate(
                    config, project_path
                ),
            ),
            (
                "mcp",
                wants_mcp,
                lambda: MCPGenerator(self.logger).generate(config, project_path),
            ),
            (
                "plugins",
                bool(config.plugins),
                lambda: PluginSetupGenerator(engine, self.installer, self.logger).generate(
                    config, project_path
                ),
            ),
        ]

        for name, enabled, run in steps:
            if not enabled:
                continue
            try:
                await run()
            except Exception as exc:
                self.logger.warn(f"{name} setup failed: {exc}")
                result.failed_steps.append(name)
            else:
                result.completed_steps.append(name)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


async def generate_template(
    config: ProjectConfig,
    project_path: str | Path,
    **dependencies,
) -> GenerationResult:
    """Generate *config* into *project_path*; see ``ProjectGenerator`` for *dependencies*."""
    return await ProjectGenerator(config, **dependencies).generate(project_path)


def check_config(
    config: ProjectConfig,
    plugin_manager: PluginManager,
    logger: ConsoleLogger,
) -> None:
    """Run stack compatibility rules and plugin validation.

    Warnings are printed; any error raises ``ConfigValidationError``.
    """
    stack = ConfigValidator().validate(config)
    plugins = plugin_manager.validate_config(config)
    for warning in stack.warnings + plugins.warnings:
        logger.warn(warning)
    errors = stack.errors + plugins.errors
    if errors:
        raise ConfigValidationError(errors)


async def create_project(
    config: ProjectConfig,
    output_dir: str | Path = ".",
    *,
    engine: TemplateEngine | None = None,
    plugin_manager: PluginManager | None = None,
    installer: PackageInstaller | None = None,
    logger: ConsoleLogger | None = None,
    settings: Settings | None = None,
    layouts: Mapping[str, FrameworkLayout] | None = None,
) -> GenerationResult:
    """Create ``<output_dir>/<config.name>`` and scaffold it.

    Validates the config, lets plugins transform it, generates the project,
    installs dependencies when ``auto_install`` is set (between the
    ``before_install`` and ``after_install`` hooks) and saves ``precast.json``.
    """
    logger = logger or ConsoleLogger()
    plugin_manager = plugin_manager or PluginManager(logger)
    project_path = (Path(output_dir) / config.name).resolve()
    if project_path.exists():
        raise ProjectExistsError(project_path)

    check_config(config, plugin_manager, logger)
    config = plugin_manager.transform_config(config)

    generator = ProjectGenerator(
        config,
        engine=engine,
        plugin_manager=plugin_manager,
        installer=installer,
        logger=logger,
        layouts=layouts,
        settings=settings,
    )
    generator.layout_for(config.framework)
    project_path.mkdir(parents=True)
    result = await generator.generate(project_path)

    bound = config.with_project_path(project_path)
    context = GenerationContext(bound, project_path, generator.engine, logger)
    await plugin_manager.run_before_install(context)
    if config.auto_install:
        await generator.installer.install_dependencies(project_path)
    await plugin_manager.run_after_install(context)

    bound.save()
    return result
