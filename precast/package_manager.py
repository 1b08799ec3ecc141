"""Package-manager invocation.

``PackageInstaller`` is the only component that shells out to npm/yarn/pnpm/bun.
Generators receive an instance instead of calling subprocesses directly, so a
disabled installer (``--no-install``) or a test double can stand in for it.
"""

from __future__ import annotations

from pathlib import Path

from precast.utils import ConsoleLogger, run_command

_ADD_COMMANDS: dict[str, list[str]] = {
    "npm": ["npm", "install"],
    "yarn": ["yarn", "add"],
    "pnpm": ["pnpm", "add"],
    "bun": ["bun", "add"],
}

_DEV_FLAGS: dict[str, str] = {
    "npm": "--save-dev",
    "yarn": "--dev",
    "pnpm": "--save-dev",
    "bun": "--dev",
}

_LOCKFILES: tuple[tuple[str, str], ...] = (
    ("bun.lockb", "bun"),
    ("bun.lock", "bun"),
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
)


class PackageInstallError(Exception):
    """Raised when the package manager exits with a non-zero status."""

    def __init__(self, command: list[str], returncode: int, stderr: str) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"'{' '.join(command)}' failed with exit code {returncode}: {stderr.strip()[:500]}"
        )


def detect_package_manager(project_path: Path, default: str = "npm") -> str:
    """Pick the package manager from the lockfile present in *project_path*."""
    for lockfile, manager in _LOCKFILES:
        if (Path(project_path) / lockfile).exists():
            return manager
    return default


def build_install_command(package_manager: str, packages: list[str], *, dev: bool = False) -> list[str]:
    if package_manager not in _ADD_COMMANDS:
        raise ValueError(f"unsupported package manager: {package_manager}")
    cmd = [*_ADD_COMMANDS[package_manager]]
    if dev:
        cmd.append(_DEV_FLAGS[package_manager])
    cmd.extend(packages)
    return cmd


class PackageInstaller:
    """Installs packages into a generated project.

    When ``enabled`` is false the command is only logged, which is what a
    scaffold without ``--install`` wants: the dependency list still reaches
    the user, but nothing touches the network.
    """

    def __init__(
        self,
        package_manager: str = "npm",
        *,
        enabled: bool = True,
        logger: ConsoleLogger | None = None,
        timeout: int = 600,
    ) -> None:
        self.package_manager = package_manager
        self.enabled = enabled
        self.logger = logger or ConsoleLogger()
        self.timeout = timeout

    async def install(self, packages: list[str], project_path: Path, *, dev: bool = False) -> None:
        packages = list(dict.fromkeys(p for p in packages if p))
        if not packages:
            return
        cmd = build_install_command(self.package_manager, packages, dev=dev)
        if not self.enabled:
            self.logger.info(f"Skipping install, run later: {' '.join(cmd)}")
            return

        await self._run(cmd, project_path)

    async def install_dependencies(self, project_path: Path) -> None:
        """Install everything declared in the project's ``package.json``."""
        cmd = [self.package_manager, "install"]
        if not self.enabled:
            self.logger.info(f"Skipping install, run later: {' '.join(cmd)}")
            return
        self.logger.info(f"Installing dependencies with {self.package_manager}...")
        await self._run(cmd, project_path)

    async def _run(self, cmd: list[str], project_path: Path) -> None:
        self.logger.debug(f"Running {' '.join(cmd)} in {project_path}")
        returncode, _stdout, stderr = await run_command(cmd, cwd=project_path, timeout=self.timeout)
        if returncode != 0:
            raise PackageInstallError(cmd, returncode, stderr)
