"""Command-line interface.

``precast create <name>`` scaffolds a new project; ``precast add <kind> <id>``
adds auth, a UI library, AI context, MCP servers or a catalog plugin to a
project created earlier (its choices are read back from ``precast.json``).
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from pydantic import ValidationError

from precast import __version__
from precast.catalogs import (
    AI_ASSISTANTS,
    AUTH_PROVIDERS,
    BACKENDS,
    DATABASES,
    FRAMEWORKS,
    MCP_SERVERS,
    ORMS,
    PACKAGE_MANAGERS,
    RUNTIMES,
    STYLINGS,
    UI_LIBRARIES,
)
from precast.config import CONFIG_FILENAME, ProjectConfig, Settings
from precast.package_manager import PackageInstaller, PackageInstallError
from precast.plugins import create_plugin_manager
from precast.scaffolder.ai_context_gen import AIContextGenerator
from precast.scaffolder.auth_gen import AuthGenerator, AuthSetupError
from precast.scaffolder.generator import (
    ConfigValidationError,
    ProjectExistsError,
    UnknownFrameworkError,
    create_project,
)
from precast.scaffolder.mcp_gen import MCPGenerator
from precast.scaffolder.plugins_gen import PluginSetupGenerator
from precast.scaffolder.template_engine import (
    TemplateEngine,
    TemplateNotFoundError,
    TemplateProcessingError,
    TemplateRootNotFoundError,
)
from precast.scaffolder.ui_library_gen import UILibraryGenerator, UILibrarySetupError
from precast.utils import (
    ConsoleLogger,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
)

ADD_KINDS = ("auth", "ui", "ai", "mcp", "plugin")

_HANDLED_ERRORS = (
    AuthSetupError,
    ConfigValidationError,
    FileExistsError,
    FileNotFoundError,
    PackageInstallError,
    ProjectExistsError,
    TemplateNotFoundError,
    TemplateProcessingError,
    TemplateRootNotFoundError,
    UILibrarySetupError,
    UnknownFrameworkError,
    ValidationError,
    ValueError,
)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="precast",
        description="Scaffold a project from stack-specific templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  precast create my-app --framework react --styling tailwind\n"
            "  precast create shop --framework next --database postgres --orm prisma --auth better-auth\n"
            "  precast add plugin stripe --path ./shop\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"precast {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Print debug output")
    parser.add_argument(
        "--template-root",
        default=None,
        help="Template directory (default: PRECAST_TEMPLATE_ROOT or the bundled templates)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create a new project")
    create.add_argument("name", help="Project name (lowercase letters, digits and hyphens)")
    create.add_argument("--output", "-o", default=".", help="Parent directory (default: .)")
    create.add_argument("--framework", "-f", default="react", choices=FRAMEWORKS)
    create.add_argument("--backend", "-b", default="none", choices=BACKENDS)
    create.add_argument("--database", "-d", default="none", choices=DATABASES)
    create.add_argument("--orm", default="none", choices=ORMS)
    create.add_argument("--styling", "-s", default="css", choices=STYLINGS)
    create.add_argument("--runtime", default="node", choices=RUNTIMES)
    create.add_argument("--no-typescript", dest="typescript", action="store_false")
    create.add_argument("--no-gitignore", dest="gitignore", action="store_false")
    create.add_argument("--no-eslint", dest="eslint", action="store_false")
    create.add_argument("--no-prettier", dest="prettier", action="store_false")
    create.add_argument("--docker", action="store_true")
    create.add_argument("--auth", dest="auth_provider", default=None, choices=sorted(AUTH_PROVIDERS))
    create.add_argument("--ui", dest="ui_library", default=None, choices=sorted(UI_LIBRARIES))
    create.add_argument("--ai", dest="ai_assistant", default=None, choices=AI_ASSISTANTS)
    create.add_argument("--api-client", default=None)
    create.add_argument("--deployment", dest="deployment_method", default=None)
    create.add_argument(
        "--mcp", dest="mcp_servers", action="append", default=[], metavar="SERVER",
        help="MCP server id (repeatable); default is auto-detection when --ai claude",
    )
    create.add_argument("--plugin", dest="plugins", action="append", default=[], metavar="ID")
    create.add_argument("--powerup", dest="powerups", action="append", default=[], metavar="ID")
    create.add_argument("--package-manager", "-p", default=None, choices=PACKAGE_MANAGERS)
    create.add_argument("--install", dest="auto_install", action="store_true",
                        help="Install dependencies after scaffolding")
    create.add_argument("--insecure-secrets", dest="secure_passwords", action="store_false",
                        help="Use fixed placeholder secrets instead of random ones")

    add = sub.add_parser("add", help="Add a feature to an existing project")
    add.add_argument("kind", choices=ADD_KINDS)
    add.add_argument("id", help="Provider, library, assistant, server or plugin id")
    add.add_argument("--path", default=".", help=f"Project directory containing {CONFIG_FILENAME}")
    add.add_argument("--install", dest="auto_install", action="store_true")

    return parser


def config_from_args(args: argparse.Namespace, settings: Settings) -> ProjectConfig:
    typescript = args.typescript
    if args.framework == "angular" and not typescript:
        print_warning("Angular requires TypeScript; enabling it")
        typescript = True
    return ProjectConfig(
        name=args.name,
        framework=args.framework,
        backend=args.backend,
        database=args.database,
        orm=args.orm,
        styling=args.styling,
        runtime=args.runtime,
        typescript=typescript,
        gitignore=args.gitignore,
        eslint=args.eslint,
        prettier=args.prettier,
        docker=args.docker,
        auth_provider=args.auth_provider,
        ui_library=args.ui_library,
        ai_assistant=args.ai_assistant,
        api_client=args.api_client,
        deployment_method=args.deployment_method,
        mcp_servers=args.mcp_servers,
        plugins=args.plugins,
        powerups=args.powerups,
        package_manager=args.package_manager or settings.package_manager,
        auto_install=args.auto_install,
        secure_passwords=args.secure_passwords,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def add_feature(
    kind: str,
    feature_id: str,
    project_path: Path,
    *,
    engine: TemplateEngine,
    installer: PackageInstaller | None = None,
    logger: ConsoleLogger | None = None,
) -> ProjectConfig:
    """Add one feature to the project at *project_path* and update ``precast.json``.

    Existing files are never overwritten.  Errors propagate: here the feature
    is the whole point of the command.
    """
    logger = logger or engine.logger
    project_path = Path(project_path).resolve()
    # The saved path may be stale if the project directory was moved.
    config = ProjectConfig.load(project_path).model_copy(update={"project_path": project_path})
    installer = installer or PackageInstaller(
        config.package_manager, enabled=config.auto_install, logger=logger
    )

    if kind == "auth":
        config = config.model_copy(update={"auth_provider": feature_id})
        await AuthGenerator(engine, installer, logger).generate(config, project_path)
    elif kind == "ui":
        config = config.model_copy(update={"ui_library": feature_id})
        await UILibraryGenerator(engine, installer, logger).generate(config, project_path)
    elif kind == "ai":
        config = config.model_copy(
            update={"ai_assistant": feature_id, "ai_context": _append(config.ai_context, feature_id)}
        )
        await AIContextGenerator(engine, logger).generate(
            config.model_copy(update={"ai_context": [feature_id]}), project_path
        )
    elif kind == "mcp":
        if feature_id not in MCP_SERVERS:
            raise ValueError(f"Unknown MCP server: {feature_id}")
        config = config.model_copy(update={"mcp_servers": _append(config.mcp_servers, feature_id)})
        await MCPGenerator(logger).generate(config, project_path)
    elif kind == "plugin":
        config = config.model_copy(update={"plugins": _append(config.plugins, feature_id)})
        done = await PluginSetupGenerator(engine, installer, logger).generate(
            config, project_path, [feature_id]
        )
        if not done:
            raise ValueError(f"Plugin {feature_id!r} could not be set up")
    else:
        raise ValueError(f"Unknown feature kind: {kind}")

    config.save()
    return config


def _append(items: list[str], value: str) -> list[str]:
    return items if value in items else [*items, value]


def _print_created(config: ProjectConfig, project_path: Path, failed: list[str]) -> None:
    summary = {
        "Project": config.name,
        "Path": str(project_path),
        "Framework": config.framework,
        "Backend": config.backend,
        "Database": f"{config.database} ({config.orm})",
        "Styling": config.styling,
        "TypeScript": "yes" if config.typescript else "no",
    }
    if config.auth_provider:
        summary["Auth"] = config.auth_provider
    if config.ui_library:
        summary["UI library"] = config.ui_library
    print_summary_table(summary, title="Project created")
    if failed:
        print_warning(f"Finished with warnings in: {', '.join(failed)}")
    print_success(f"Done. Next: cd {config.name}")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``precast``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    logger = ConsoleLogger(verbose=args.verbose or settings.debug)

    try:
        engine = TemplateEngine(args.template_root or settings.template_root, logger=logger)

        if args.command == "create":
            config = config_from_args(args, settings)
            installer = PackageInstaller(
                config.package_manager, enabled=config.auto_install, logger=logger
            )
            result = asyncio.run(
                create_project(
                    config,
                    args.output,
                    engine=engine,
                    plugin_manager=create_plugin_manager(logger),
                    installer=installer,
                    logger=logger,
                    settings=settings,
                )
            )
            _print_created(config, result.project_path, result.failed_steps)
        else:
            installer = None
            if args.auto_install:
                installer = PackageInstaller(
                    ProjectConfig.load(Path(args.path)).package_manager, logger=logger
                )
            asyncio.run(
                add_feature(
                    args.kind, args.id, Path(args.path),
                    engine=engine, installer=installer, logger=logger,
                )
            )
            print_success(f"Added {args.kind} {args.id}.")
    except _HANDLED_ERRORS as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
