"""Stack compatibility checks run before anything is written."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from precast.catalogs import AUTH_PROVIDERS, DOCKER_POWERUPS, FULL_STACK_FRAMEWORKS, UI_LIBRARIES
from precast.config import ProjectConfig
from precast.scaffolder.plugin_manager import ValidationResult


@dataclass(frozen=True)
class CompatibilityRule:
    """``check`` returns ``True`` when the config passes."""

    name: str
    check: Callable[[ProjectConfig], bool]
    message: str
    severity: str = "error"


def _auth_supports_framework(config: ProjectConfig) -> bool:
    if config.auth_provider is None:
        return True
    provider = AUTH_PROVIDERS.get(config.auth_provider)
    if provider is None:
        return False
    return config.framework in provider.supported_frameworks or (
        config.backend in provider.supported_frameworks
    )


def _ui_library_supports_framework(config: ProjectConfig) -> bool:
    if config.ui_library is None:
        return True
    library = UI_LIBRARIES.get(config.ui_library)
    return library is not None and not library.disabled and config.framework in library.frameworks


DEFAULT_RULES: tuple[CompatibilityRule, ...] = (
    CompatibilityRule(
        "mongoose-requires-mongodb",
        lambda c: not (c.orm == "mongoose" and c.database != "mongodb"),
        "Mongoose ORM can only be used with MongoDB",
    ),
    CompatibilityRule(
        "prisma-sqlite-warning",
        lambda c: not (c.orm == "prisma" and c.database == "sqlite"),
        "SQLite with Prisma is not recommended for production use",
        "warning",
    ),
    CompatibilityRule(
        "no-backend-no-database",
        lambda c: not (
            c.backend == "none"
            and c.database != "none"
            and c.framework not in FULL_STACK_FRAMEWORKS
        ),
        "Cannot use a database without a backend",
    ),
    CompatibilityRule(
        "docker-database-recommendation",
        lambda c: not (c.docker and c.database == "none"),
        "Docker setup is most useful when you have a database",
        "warning",
    ),
    CompatibilityRule(
        "typescript-recommended",
        lambda c: c.typescript or c.framework not in ("angular", "vue"),
        "TypeScript is highly recommended for Angular and Vue projects",
        "warning",
    ),
    CompatibilityRule(
        "powerups-docker-dependency",
        lambda c: c.docker or not any(p in DOCKER_POWERUPS for p in c.powerups),
        "Some selected PowerUps require Docker. Please enable Docker with --docker",
    ),
    CompatibilityRule(
        "auth-provider-framework",
        _auth_supports_framework,
        "The selected auth provider does not support this framework",
    ),
    CompatibilityRule(
        "ui-library-framework",
        _ui_library_supports_framework,
        "The selected UI library is unavailable for this framework",
        "warning",
    ),
)


class ConfigValidator:
    """Evaluates compatibility rules; errors make the result invalid, warnings do not."""

    def __init__(self, rules: tuple[CompatibilityRule, ...] | list[CompatibilityRule] = DEFAULT_RULES) -> None:
        self.rules: list[CompatibilityRule] = list(rules)

    def add_rule(self, rule: CompatibilityRule) -> None:
        self.rules.append(rule)

    def remove_rule(self, name: str) -> bool:
        before = len(self.rules)
        self.rules = [r for r in self.rules if r.name != name]
        return len(self.rules) != before

    def validate(self, config: ProjectConfig) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []
        for rule in self.rules:
            if rule.check(config):
                continue
            if rule.severity == "error":
                errors.append(rule.message)
            else:
                warnings.append(rule.message)
        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)
