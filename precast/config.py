"""precast configuration.

Two Pydantic v2 models live here: ``ProjectConfig``, the stack choices every
generator consumes, and ``Settings``, the tool-level knobs that can be set from
environment variables.  Both serialise to/from JSON without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from precast.catalogs import (
    BACKENDS,
    DATABASES,
    ORMS,
    PACKAGE_MANAGERS,
    RUNTIMES,
    STYLINGS,
)

CONFIG_FILENAME = "precast.json"

_OPTIONAL_SELECTIONS = (
    "auth_provider",
    "ui_library",
    "api_client",
    "deployment_method",
    "ai_assistant",
)


class ProjectConfig(BaseModel):
    """Stack choices for one scaffolded project.

    Unknown attributes are accepted so that plugins can attach their own
    fields during ``transform_config``; those extras end up in the render
    context like any declared field.

    ``framework`` is intentionally left unchecked here: the generator owns the
    set of frameworks it can scaffold and rejects unknown ones itself.
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1, pattern=r"^[a-z0-9-]+$")
    framework: str = Field(default="react")
    backend: str = Field(default="none")
    database: str = Field(default="none")
    orm: str = Field(default="none")
    styling: str = Field(default="css")
    runtime: str = Field(default="node")

    typescript: bool = True
    git: bool = True
    gitignore: bool = True
    eslint: bool = True
    prettier: bool = True
    docker: bool = False
    auto_install: bool = False
    secure_passwords: bool = True

    auth_provider: Optional[str] = None
    ui_library: Optional[str] = None
    api_client: Optional[str] = None
    deployment_method: Optional[str] = None
    ai_assistant: Optional[str] = None
    ai_context: list[str] = Field(
        default_factory=list,
        description="Context-file identifiers; derived from ai_assistant when empty",
    )

    mcp_servers: list[str] = Field(default_factory=list)
    powerups: list[str] = Field(default_factory=list)
    plugins: list[str] = Field(default_factory=list)

    project_path: Optional[Path] = None
    package_manager: str = Field(default="npm")

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @field_validator(*_OPTIONAL_SELECTIONS, mode="before")
    @classmethod
    def _none_means_unset(cls, value: Any) -> Any:
        if value in ("", "none"):
            return None
        return value

    @field_validator("backend", "database", "orm", "styling", "runtime", "package_manager")
    @classmethod
    def _member_of_catalog(cls, value: str, info) -> str:
        allowed = {
            "backend": BACKENDS,
            "database": DATABASES,
            "orm": ORMS,
            "styling": STYLINGS,
            "runtime": RUNTIMES,
            "package_manager": PACKAGE_MANAGERS,
        }[info.field_name]
        if value not in allowed:
            raise ValueError(
                f"unknown {info.field_name} {value!r}; expected one of: {', '.join(allowed)}"
            )
        return value

    @model_validator(mode="after")
    def _apply_dependent_defaults(self) -> "ProjectConfig":
        if self.database == "none":
            self.orm = "none"
        if not self.ai_context and self.ai_assistant:
            self.ai_context = [self.ai_assistant]
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def is_monorepo(self) -> bool:
        """Whether frontend and backend are scaffolded into ``apps/web`` and ``apps/api``."""
        return self.backend not in ("none", "next-api")

    @property
    def web_path(self) -> Optional[Path]:
        if self.project_path is None:
            return None
        return self.project_path / "apps" / "web" if self.is_monorepo else self.project_path

    @property
    def api_path(self) -> Optional[Path]:
        if self.project_path is None:
            return None
        return self.project_path / "apps" / "api" if self.is_monorepo else self.project_path

    def with_project_path(self, path: str | Path) -> "ProjectConfig":
        """Return a copy bound to *path*.

        The project path is set once: rebinding a config that already points
        somewhere else raises ``ValueError``.
        """
        resolved = Path(path).resolve()
        if self.project_path is not None and Path(self.project_path).resolve() != resolved:
            raise ValueError(
                f"project path already set to {self.project_path}; refusing to move it to {resolved}"
            )
        return self.model_copy(update={"project_path": resolved})

    def template_context(self) -> dict[str, Any]:
        """Render context for templates: every field, extras included."""
        context = self.model_dump()
        if self.project_path is not None:
            context["project_path"] = str(self.project_path)
        return context

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration as JSON.

        Args:
            path: Destination file. Defaults to ``<project_path>/precast.json``.

        Returns:
            The path where the file was written.
        """
        if path is None:
            if self.project_path is None:
                raise ValueError("cannot save a config without a project path")
            path = self.project_path / CONFIG_FILENAME
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "ProjectConfig":
        """Load a saved configuration.  *path* may be the file or the project directory."""
        path = Path(path)
        if path.is_dir():
            path = path / CONFIG_FILENAME
        return cls.model_validate_json(path.read_text(encoding="utf-8"))


class Settings(BaseModel):
    """Tool-level settings, independent of any one project."""

    template_root: Optional[Path] = Field(
        default=None, description="Explicit template root; skips the probe order"
    )
    debug: bool = False
    package_manager: str = Field(default="npm")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            PRECAST_TEMPLATE_ROOT, PRECAST_DEBUG (or DEBUG),
            PRECAST_PACKAGE_MANAGER.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("PRECAST_TEMPLATE_ROOT"):
            kwargs["template_root"] = Path(os.environ["PRECAST_TEMPLATE_ROOT"])
        debug = os.environ.get("PRECAST_DEBUG") or os.environ.get("DEBUG") or ""
        kwargs["debug"] = debug.lower() in ("1", "true", "yes", "on")
        if os.environ.get("PRECAST_PACKAGE_MANAGER"):
            kwargs["package_manager"] = os.environ["PRECAST_PACKAGE_MANAGER"]
        return cls(**kwargs)
