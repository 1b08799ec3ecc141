"""Template resolution, rendering and tree copying.

Templates live in a tree partitioned by category (``frameworks/<name>/base``,
``auth/<provider>``, ``plugins/<id>`` ...).  Files ending in ``.hbs`` are
rendered with Jinja2; everything else is copied byte for byte.  A leading
``_`` in a file name stands for a leading dot, so ``_gitignore.hbs`` lands as
``.gitignore``.

Which files of a tree apply to a given stack is decided by ``SKIP_RULES``, a
single table keyed on file-name suffixes.  New variant axes go into that
table, never into the callers.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from collections.abc import Callable, Collection, Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from precast.utils import ConsoleLogger, camel_case, capitalize, kebab_case, write_text_file

TEMPLATE_SUFFIX = ".hbs"

_PACKAGE_DIR = Path(__file__).resolve().parent


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TemplateRootNotFoundError(Exception):
    """None of the candidate template directories exist."""

    def __init__(self, probed: list[Path]) -> None:
        self.probed = probed
        listing = "\n".join(f"  - {p}" for p in probed)
        super().__init__(f"template root not found; probed:\n{listing}")


class TemplateNotFoundError(Exception):
    """A named template file or subtree is missing under the template root."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"template not found: {path}")


class TemplateProcessingError(Exception):
    """Reading, compiling or writing a template failed.

    The underlying error is available as ``__cause__``.
    """

    def __init__(self, template_path: str | Path) -> None:
        self.template_path = template_path
        super().__init__(f"failed to process template: {template_path}")


# ---------------------------------------------------------------------------
# Template root discovery
# ---------------------------------------------------------------------------


def candidate_template_roots(
    module_dir: Path | None = None, cwd: Path | None = None
) -> list[Path]:
    """Directories probed for the template root, in order.

    A packaged install keeps ``templates/`` next to the package, a source
    checkout may keep it one or two levels up.
    """
    base = module_dir or _PACKAGE_DIR
    return [
        base / "templates",
        base.parent / "templates",
        base.parent.parent / "templates",
        (cwd or Path.cwd()) / "templates",
    ]


def resolve_template_root(
    override: str | Path | None = None,
    *,
    module_dir: Path | None = None,
    cwd: Path | None = None,
) -> Path:
    """Return the first existing template directory.

    An explicit *override* (``--template-root`` or ``PRECAST_TEMPLATE_ROOT``)
    is used as-is and must exist.
    """
    if override is not None:
        root = Path(override)
        if not root.is_dir():
            raise TemplateRootNotFoundError([root])
        return root.resolve()

    candidates = candidate_template_roots(module_dir, cwd)
    for candidate in candidates:
        if candidate.is_dir():
            return candidate.resolve()
    raise TemplateRootNotFoundError(candidates)


# ---------------------------------------------------------------------------
# File selection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SkipRule:
    """Skip files whose base name ``matches`` when ``skip_when(context)`` holds.

    A rule with ``twin`` only fires when the file named ``twin(name)`` sits in
    the same directory.
    """

    name: str
    matches: Callable[[str], bool]
    skip_when: Callable[[Mapping[str, Any]], bool]
    twin: Callable[[str], str] | None = None


def _is_tool_config(name: str) -> bool:
    return any(name.endswith(f".config.{ext}.hbs") for ext in ("js", "mjs", "cjs"))


def _typescript_twin(name: str) -> str:
    """``vite.config.mjs.hbs`` -> ``vite.config.ts.hbs``."""
    stem = name[: -len(TEMPLATE_SUFFIX)].rsplit(".", 1)[0]
    return f"{stem}.ts{TEMPLATE_SUFFIX}"


def _is_style_tool_config(name: str) -> bool:
    return any(
        name == f"{tool}.config.{ext}.hbs"
        for tool in ("tailwind", "postcss")
        for ext in ("js", "mjs", "ts")
    )


def _is_tsconfig(name: str) -> bool:
    return (name.startswith("tsconfig") and name.endswith(".json.hbs")) or name == "env.d.ts.hbs"


def _is_eslint_file(name: str) -> bool:
    return name.startswith(("_eslintrc", "_eslintignore", "eslint.config."))


def _is_prettier_file(name: str) -> bool:
    return name.startswith(("_prettierrc", "_prettierignore", "prettier.config."))


SKIP_RULES: tuple[SkipRule, ...] = (
    SkipRule(
        "typescript-sources",
        lambda n: n.endswith((".ts.hbs", ".tsx.hbs")),
        lambda ctx: not ctx.get("typescript"),
    ),
    SkipRule(
        "javascript-sources",
        lambda n: n.endswith((".js.hbs", ".jsx.hbs")) and not _is_tool_config(n),
        lambda ctx: bool(ctx.get("typescript")),
    ),
    SkipRule(
        "javascript-tool-configs",
        _is_tool_config,
        lambda ctx: bool(ctx.get("typescript")),
        twin=_typescript_twin,
    ),
    SkipRule(
        "scss-stylesheets",
        lambda n: n.endswith(".scss.hbs"),
        lambda ctx: ctx.get("styling") != "scss",
    ),
    SkipRule(
        "tailwind-configs",
        _is_style_tool_config,
        lambda ctx: ctx.get("styling") != "tailwind",
    ),
    SkipRule(
        "typescript-configs",
        _is_tsconfig,
        lambda ctx: not ctx.get("typescript"),
    ),
    SkipRule(
        "gitignore",
        lambda n: n in ("_gitignore", "_gitignore.hbs"),
        lambda ctx: ctx.get("gitignore") is False,
    ),
    SkipRule("eslint", _is_eslint_file, lambda ctx: ctx.get("eslint") is False),
    SkipRule("prettier", _is_prettier_file, lambda ctx: ctx.get("prettier") is False),
)


def should_skip(
    relative_path: str | Path,
    context: Mapping[str, Any],
    siblings: Collection[str] = (),
) -> bool:
    """Whether a template file is excluded for this *context*.

    Only the base name is inspected, plus the names in *siblings* (the other
    files of its directory) for rules that need a twin.
    """
    name = PurePosixPath(str(relative_path).replace(os.sep, "/")).name
    return any(
        rule.matches(name)
        and rule.skip_when(context)
        and (rule.twin is None or rule.twin(name) in siblings)
        for rule in SKIP_RULES
    )


def destination_name(relative_path: str | Path) -> str:
    """Map a template path to its output path.

    Trailing ``.hbs`` is stripped and a leading ``_`` in the base name becomes
    a dot.  Applying it to its own output changes nothing.
    """
    path = PurePosixPath(str(relative_path).replace(os.sep, "/"))
    name = path.name
    while name.endswith(TEMPLATE_SUFFIX) and len(name) > len(TEMPLATE_SUFFIX):
        name = name[: -len(TEMPLATE_SUFFIX)]
    if name.startswith("_") and len(name) > 1:
        name = "." + name[1:]
    return str(path.with_name(name))


def iter_template_files(source_dir: Path) -> Iterator[Path]:
    """Yield every file under *source_dir*, relative to it, dotfiles included.

    Directories themselves are never yielded, and the walk is lazy.
    """
    for dirpath, dirnames, filenames in os.walk(source_dir):
        dirnames.sort()
        current = Path(dirpath)
        for filename in sorted(filenames):
            yield (current / filename).relative_to(source_dir)


def variant_name(template_path: str, suffix: str) -> str:
    """``components/Layout.tsx.hbs`` + ``tailwind`` -> ``components/Layout-tailwind.tsx.hbs``."""
    path = PurePosixPath(template_path)
    stem, dot, extensions = path.name.partition(".")
    return str(path.with_name(f"{stem}-{suffix}{dot}{extensions}"))


@dataclass
class TemplateTree:
    """A subtree copied only when ``condition`` holds for the context."""

    source_dir: str
    dest_dir: str = ""
    condition: bool | Callable[[Mapping[str, Any]], bool] = True

    def applies(self, context: Mapping[str, Any]) -> bool:
        if callable(self.condition):
            return bool(self.condition(context))
        return bool(self.condition)


# ---------------------------------------------------------------------------
# TemplateEngine
# ---------------------------------------------------------------------------

# Helper names Jinja cannot expose as bare identifiers; reach them through
# the ``helpers`` global instead, e.g. ``helpers['and'](a, b)``.
_JINJA_RESERVED = frozenset(
    {"and", "or", "not", "in", "is", "if", "else", "true", "false", "none", "True", "False", "None"}
)


class TemplateEngine:
    """Renders and copies templates from one template root.

    One engine is created per CLI run and handed to every generator and
    plugin through the generation context.
    """

    def __init__(
        self,
        template_root: str | Path | None = None,
        *,
        logger: ConsoleLogger | None = None,
    ) -> None:
        self.template_root = resolve_template_root(template_root)
        self.logger = logger or ConsoleLogger()
        self.helpers: dict[str, Callable[..., Any]] = {}
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_root)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.globals["helpers"] = self.helpers
        self._register_default_helpers()

    # -- Helper registry ---------------------------------------------------

    def _register_default_helpers(self) -> None:
        self.register_helper("eq", lambda a, b: a == b)
        self.register_helper("ne", lambda a, b: a != b)
        self.register_helper("and", lambda a, b: a and b)
        self.register_helper("or", lambda a, b: a or b)
        self.register_helper("not", lambda a: not a)
        self.register_helper(
            "includes", lambda items, value: isinstance(items, (list, tuple)) and value in items
        )
        self.register_helper("capitalize", capitalize)
        self.register_helper("kebabCase", kebab_case)
        self.register_helper("camelCase", camel_case)
        self.register_helper("ifAny", lambda *args: any(args))
        self.register_helper("ifAll", lambda *args: all(args))
        self.register_helper("stripHash", lambda value: value.replace("#", "") if value else "")

    def register_helper(self, name: str, fn: Callable[..., Any]) -> None:
        """Register *fn* under *name*; an existing helper of that name is replaced."""
        self.helpers[name] = fn
        if name.isidentifier() and name not in _JINJA_RESERVED:
            self.env.globals[name] = fn
            self.env.filters[name] = fn

    # -- Lookup ------------------------------------------------------------

    def template_path(self, template: str | Path) -> Path:
        """Absolute path of *template*; relative paths are taken from the root."""
        path = Path(template)
        return path if path.is_absolute() else self.template_root / path

    def has_template(self, template: str | Path) -> bool:
        return self.template_path(template).exists()

    def available_templates(self, category: str) -> list[str]:
        """Sorted names of the subdirectories under ``<root>/<category>``."""
        directory = self.template_root / category
        if not directory.is_dir():
            return []
        return sorted(p.name for p in directory.iterdir() if p.is_dir())

    # -- Rendering ---------------------------------------------------------

    def render_string(self, source: str, context: Mapping[str, Any]) -> str:
        return self.env.from_string(source).render(**context)

    def render(self, template: str | Path, context: Mapping[str, Any]) -> str:
        """Render *template* without writing anything."""
        path = self.template_path(template)
        if not path.is_file():
            raise TemplateNotFoundError(path)
        return self.render_string(path.read_text(encoding="utf-8"), context)

    async def render_file(
        self,
        template: str | Path,
        output_path: str | Path,
        context: Mapping[str, Any],
        *,
        overwrite: bool = False,
        skip_if_exists: bool = False,
    ) -> bool:
        """Render *template* into *output_path*.

        An existing output is left alone when ``skip_if_exists`` is set (this
        takes precedence over ``overwrite``), replaced when ``overwrite`` is
        set, and otherwise reported with ``FileExistsError``.  A rendering
        that comes out blank is not written.

        Returns:
            ``True`` if the file was written.
        """
        out = Path(output_path)
        if not await self._may_write(out, overwrite=overwrite, skip_if_exists=skip_if_exists):
            return False

        path = self.template_path(template)
        try:
            source = await asyncio.to_thread(path.read_text, encoding="utf-8")
            content = self.render_string(source, context)
            if not content.strip():
                self.logger.debug(f"Rendered {path} is empty, not writing {out}")
                return False
            await asyncio.to_thread(write_text_file, out, content)
        except Exception as exc:
            raise TemplateProcessingError(path) from exc
        return True

    async def copy_file(
        self,
        source: str | Path,
        output_path: str | Path,
        *,
        overwrite: bool = False,
        skip_if_exists: bool = False,
    ) -> bool:
        """Byte-copy *source* with the same exists/overwrite policy as ``render_file``."""
        out = Path(output_path)
        if not await self._may_write(out, overwrite=overwrite, skip_if_exists=skip_if_exists):
            return False
        path = self.template_path(source)
        try:
            await asyncio.to_thread(_copy_bytes, path, out)
        except OSError as exc:
            raise TemplateProcessingError(path) from exc
        return True

    async def _may_write(self, out: Path, *, overwrite: bool, skip_if_exists: bool) -> bool:
        if not await asyncio.to_thread(out.exists):
            return True
        if skip_if_exists:
            self.logger.debug(f"Skipping existing file {out}")
            return False
        if not overwrite:
            raise FileExistsError(f"refusing to overwrite existing file: {out}")
        return True

    # -- Trees -------------------------------------------------------------

    async def copy_template_tree(
        self,
        source_dir: str,
        dest_dir: str | Path,
        context: Mapping[str, Any],
        *,
        overwrite: bool = False,
        skip_if_exists: bool = False,
    ) -> list[Path]:
        """Mirror ``<root>/<source_dir>`` into *dest_dir*.

        Files rejected by ``should_skip`` are left out, names go through
        ``destination_name``, ``.hbs`` files are rendered and the rest copied.

        Returns:
            The output paths actually written.
        """
        source = self.template_root / source_dir
        if not source.is_dir():
            raise TemplateNotFoundError(source)

        dest = Path(dest_dir)
        listings: dict[Path, frozenset[str]] = {}

        def siblings(rel: Path) -> frozenset[str]:
            if rel.parent not in listings:
                listings[rel.parent] = frozenset(os.listdir(source / rel.parent))
            return listings[rel.parent]

        candidates = iter_template_files(source)
        selected = (rel for rel in candidates if not should_skip(rel, context, siblings(rel)))

        written: list[Path] = []
        for rel in selected:
            target = dest / destination_name(rel)
            if rel.name.endswith(TEMPLATE_SUFFIX):
                wrote = await self.render_file(
                    source / rel, target, context,
                    overwrite=overwrite, skip_if_exists=skip_if_exists,
                )
            else:
                wrote = await self.copy_file(
                    source / rel, target,
                    overwrite=overwrite, skip_if_exists=skip_if_exists,
                )
            if wrote:
                written.append(target)

        self.logger.debug(f"Copied {len(written)} file(s) from {source_dir} to {dest}")
        return written

    async def copy_conditional_trees(
        self,
        trees: Iterable[TemplateTree],
        dest_root: str | Path,
        context: Mapping[str, Any],
        *,
        overwrite: bool = False,
        skip_if_exists: bool = False,
    ) -> list[Path]:
        """Copy each tree whose condition holds, in the given order."""
        written: list[Path] = []
        for tree in trees:
            if not tree.applies(context):
                continue
            written += await self.copy_template_tree(
                tree.source_dir,
                Path(dest_root) / tree.dest_dir,
                context,
                overwrite=overwrite,
                skip_if_exists=skip_if_exists,
            )
        return written

    # -- Variants ----------------------------------------------------------

    def select_variant(
        self,
        base_template: str,
        context: Mapping[str, Any],
        variants: Mapping[str, str] | Iterable[tuple[str, str]],
    ) -> str:
        """Pick a per-stack override of *base_template* if one exists.

        *variants* maps context keys to suffixes.  For each pair in order,
        when ``context[key] == suffix`` and ``<stem>-<suffix><extensions>``
        exists next to the base file, that sibling is returned.
        """
        pairs = variants.items() if isinstance(variants, Mapping) else variants
        for key, suffix in pairs:
            if context.get(key) != suffix:
                continue
            candidate = variant_name(base_template, suffix)
            if self.has_template(candidate):
                return candidate
        return base_template

    async def render_variant(
        self,
        base_template: str,
        output_path: str | Path,
        context: Mapping[str, Any],
        variants: Mapping[str, str] | Iterable[tuple[str, str]],
        **options: bool,
    ) -> bool:
        chosen = self.select_variant(base_template, context, variants)
        return await self.render_file(chosen, output_path, context, **options)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _copy_bytes(source: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, target)
