"""Built-in TypeScript plugin.

Adds shared TypeScript configuration on top of the framework templates and
forces TypeScript on for Angular, which cannot do without it.
"""

from __future__ import annotations

from precast.config import ProjectConfig
from precast.scaffolder.plugin_manager import GenerationContext, Plugin, ValidationResult
from precast.scaffolder.template_engine import TemplateTree


def validate_config(config: ProjectConfig) -> ValidationResult:
    errors: list[str] = []
    if config.framework == "angular" and not config.typescript:
        errors.append("Angular projects require TypeScript")
    return ValidationResult(valid=not errors, errors=errors)


def transform_config(config: ProjectConfig) -> ProjectConfig:
    if config.framework == "angular" and not config.typescript:
        return config.model_copy(update={"typescript": True})
    return config


async def pre_generate(context: GenerationContext) -> None:
    if context.config.typescript:
        context.logger.debug("TypeScript plugin: preparing TypeScript configuration")


async def generate(context: GenerationContext) -> None:
    config = context.config
    if not config.typescript:
        return
    trees = [
        TemplateTree("features/typescript/base"),
        TemplateTree("features/typescript/react", condition=config.framework == "react"),
        TemplateTree("features/typescript/vue", condition=config.framework == "vue"),
    ]
    await context.template_engine.copy_conditional_trees(
        trees, config.web_path or context.project_path, config.template_context(),
        skip_if_exists=True,
    )


async def post_generate(context: GenerationContext) -> None:
    if context.config.typescript:
        context.logger.success("TypeScript configuration added successfully")


def create_typescript_plugin() -> Plugin:
    return Plugin(
        name="typescript",
        version="1.0.0",
        description="Adds TypeScript support and configuration",
        pre_generate=pre_generate,
        generate=generate,
        post_generate=post_generate,
        validate_config=validate_config,
        transform_config=transform_config,
    )
