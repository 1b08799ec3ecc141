"""Context files for AI coding assistants.

Each assistant gets one rendered instructions file; Claude additionally gets
``.claude/settings.json`` with a permission allow-list derived from the
stack.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from precast.catalogs import AI_CONTEXT_FILES
from precast.config import ProjectConfig
from precast.scaffolder.template_engine import TemplateEngine
from precast.utils import ConsoleLogger, save_json

_PACKAGE_RUNNERS = {"bun": "bunx", "pnpm": "pnpx", "npm": "npx", "yarn": "npx"}

_FRAMEWORK_DOCS: dict[str, list[str]] = {
    "next": ["nextjs.org", "vercel.com"],
    "vue": ["vuejs.org"],
    "nuxt": ["vuejs.org", "nuxt.com"],
    "react": ["react.dev"],
    "svelte": ["svelte.dev"],
    "angular": ["angular.dev"],
    "astro": ["docs.astro.build"],
}


def claude_settings(config: ProjectConfig) -> dict[str, Any]:
    """Permission settings for ``.claude/settings.json``."""
    pm = config.package_manager
    allow = [
        f"Bash({pm} install:*)",
        f"Bash({pm} add:*)",
        f"Bash({pm} remove:*)",
        f"Bash({pm} run:*)",
        f"Bash({pm} test:*)",
        f"Bash({_PACKAGE_RUNNERS.get(pm, 'npx')}:*)",
        "Bash(mkdir:*)",
        "Bash(ls:*)",
        "Bash(git:*)",
        "WebFetch(domain:github.com)",
        "WebSearch",
    ]
    allow += [f"WebFetch(domain:{d})" for d in _FRAMEWORK_DOCS.get(config.framework, [])]

    if config.styling == "tailwind":
        allow.append("WebFetch(domain:tailwindcss.com)")
    if config.ui_library == "shadcn":
        allow.append("WebFetch(domain:ui.shadcn.com)")
    elif config.ui_library == "daisyui":
        allow.append("WebFetch(domain:daisyui.com)")
    if config.orm == "prisma":
        allow += ["WebFetch(domain:prisma.io)", "Bash(npx prisma:*)"]
    elif config.orm == "drizzle":
        allow += ["WebFetch(domain:orm.drizzle.team)", "Bash(npx drizzle-kit:*)"]
    if config.auth_provider == "auth.js":
        allow.append("WebFetch(domain:authjs.dev)")
    elif config.auth_provider == "better-auth":
        allow.append("WebFetch(domain:better-auth.com)")
    if config.typescript:
        allow += ["Bash(npx tsc:*)", "WebFetch(domain:typescriptlang.org)"]

    return {"permissions": {"allow": allow, "deny": []}}


class AIContextGenerator:
    def __init__(self, engine: TemplateEngine, logger: ConsoleLogger | None = None) -> None:
        self.engine = engine
        self.logger = logger or engine.logger

    async def generate(self, config: ProjectConfig, project_path: Path) -> list[Path]:
        """Write the context file of every assistant in ``config.ai_context``.

        Existing files are kept; unknown identifiers are reported and skipped.
        """
        context = config.template_context()
        written: list[Path] = []
        for assistant in config.ai_context:
            entry = AI_CONTEXT_FILES.get(assistant)
            if entry is None:
                self.logger.warn(f"Unknown AI assistant: {assistant}")
                continue

            template, output = entry
            self.logger.info(f"Setting up {assistant} context files...")
            target = project_path / output
            if await self.engine.render_file(template, target, context, skip_if_exists=True):
                written.append(target)

            if assistant == "claude":
                settings_path = project_path / ".claude" / "settings.json"
                if not settings_path.exists():
                    await save_json(claude_settings(config), settings_path)
                    written.append(settings_path)
        return written
