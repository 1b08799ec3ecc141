"""Append-only updates to ``.env`` and ``.env.example``.

Every generator that contributes environment variables writes a section
headed by ``# <Name> Configuration``; the header doubles as the marker that
makes a second run a no-op.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Mapping
from pathlib import Path

from precast.utils import read_text_if_exists, write_text_file

PLACEHOLDER_VALUE = "your-value-here"

_VALUE_RE = re.compile(r"=.+$", re.MULTILINE)


def section_marker(name: str) -> str:
    return f"# {name} Configuration"


def to_example(content: str) -> str:
    """Replace real values with placeholders for ``.env.example``.

    Values that already look like placeholders (containing ``your-``) or
    point at ``http://localhost`` are kept.
    """

    def _mask(match: re.Match[str]) -> str:
        value = match.group(0)
        if "your-" in value or "http://localhost" in value:
            return value
        return f"={PLACEHOLDER_VALUE}"

    return _VALUE_RE.sub(_mask, content)


def defined_keys(content: str) -> set[str]:
    keys: set[str] = set()
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        keys.add(stripped.split("=", 1)[0].strip())
    return keys


async def append_section(path: Path, section: str, marker: str) -> bool:
    """Append *section* to *path* unless the file already contains *marker*.

    A missing file is created holding just the section.

    Returns:
        ``True`` if the file changed.
    """
    existing = await asyncio.to_thread(read_text_if_exists, path)
    if marker in existing:
        return False
    if existing:
        content = existing.rstrip("\n") + "\n\n" + section
    else:
        content = section
    if not content.endswith("\n"):
        content += "\n"
    await asyncio.to_thread(write_text_file, path, content)
    return True


async def merge_variables(
    path: Path,
    variables: Mapping[str, str],
    marker: str,
) -> list[str]:
    """Add the *variables* not yet defined in *path* under a *marker* header.

    Returns:
        The keys that were added, in the given order.
    """
    existing = await asyncio.to_thread(read_text_if_exists, path)
    present = defined_keys(existing)
    missing = [key for key in variables if key not in present]
    if not missing:
        return []

    lines = [marker] + [f"{key}={variables[key]}" for key in missing]
    prefix = existing.rstrip("\n") + "\n\n" if existing else ""
    await asyncio.to_thread(write_text_file, path, prefix + "\n".join(lines) + "\n")
    return missing
