"""Component-library setup (shadcn/ui, DaisyUI, Vuetify, Brutalist UI)."""

from __future__ import annotations

from pathlib import Path

from precast.catalogs import UI_LIBRARIES
from precast.config import ProjectConfig
from precast.package_manager import PackageInstaller
from precast.scaffolder.template_engine import TemplateEngine
from precast.utils import ConsoleLogger


class UILibrarySetupError(Exception):
    """The library cannot be used with the chosen framework or styling."""


class UILibraryGenerator:
    def __init__(
        self,
        engine: TemplateEngine,
        installer: PackageInstaller,
        logger: ConsoleLogger | None = None,
    ) -> None:
        self.engine = engine
        self.installer = installer
        self.logger = logger or engine.logger

    async def generate(self, config: ProjectConfig, project_path: Path) -> bool:
        library_id = config.ui_library
        if not library_id:
            return False

        library = UI_LIBRARIES.get(library_id)
        if library is None or library.disabled:
            self.logger.warn(f"Unknown UI library: {library_id}")
            return False
        if config.framework not in library.frameworks:
            raise UILibrarySetupError(
                f"{library.name} does not support {config.framework}. "
                f"Supported frameworks: {', '.join(library.frameworks)}"
            )
        if library.requires_tailwind and config.styling != "tailwind":
            raise UILibrarySetupError(f"{library.name} requires Tailwind CSS styling")

        config = config.with_project_path(project_path)
        target = config.web_path
        self.logger.info(f"Setting up {library.name}...")
        await self.installer.install(library.required_deps, target, dev=True)

        category = f"ui/{library.id}"
        if self.engine.has_template(category):
            await self.engine.copy_template_tree(
                category, target, config.template_context(), skip_if_exists=True
            )

        self.logger.success(f"{library.name} setup complete")
        self.logger.steps(f"{library.name} next steps", library.post_install_steps)
        return True
