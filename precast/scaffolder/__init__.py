"""Scaffolding: template engine, plugin manager and generators."""

from .generator import (
    FRAMEWORK_LAYOUTS,
    ConfigValidationError,
    FrameworkLayout,
    GenerationResult,
    ProjectExistsError,
    ProjectGenerator,
    UnknownFrameworkError,
    create_project,
    generate_template,
)
from .plugin_manager import (
    DuplicatePluginError,
    GenerationContext,
    Plugin,
    PluginManager,
    ValidationResult,
)
from .template_engine import (
    TemplateEngine,
    TemplateNotFoundError,
    TemplateProcessingError,
    TemplateRootNotFoundError,
    resolve_template_root,
)

__all__ = [
    "ConfigValidationError",
    "DuplicatePluginError",
    "FRAMEWORK_LAYOUTS",
    "FrameworkLayout",
    "GenerationContext",
    "GenerationResult",
    "Plugin",
    "PluginManager",
    "ProjectExistsError",
    "ProjectGenerator",
    "TemplateEngine",
    "TemplateNotFoundError",
    "TemplateProcessingError",
    "TemplateRootNotFoundError",
    "UnknownFrameworkError",
    "ValidationResult",
    "create_project",
    "generate_template",
    "resolve_template_root",
]
