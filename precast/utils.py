"""Shared utility functions for precast.

Provides async command execution, JSON I/O, file-system helpers and the
Rich-based console output used by every generator.  ``ConsoleLogger`` is the
logger object handed to plugins through the generation context.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: str | list[str],
    cwd: str | Path | None = None,
    timeout: int = 300,
    capture: bool = True,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a command asynchronously.

    Args:
        cmd: Shell command string or list of arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams).
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  If *capture* is ``False``
        the stdout/stderr strings will be empty.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None

    if isinstance(cmd, list):
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=stdout_pipe,
            stderr=stderr_pipe,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )
    else:
        process = await asyncio.create_subprocess_shell(
            cmd,
            stdout=stdout_pipe,
            stderr=stderr_pipe,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (
            -1,
            "",
            f"Command timed out after {timeout}s: {cmd if isinstance(cmd, str) else ' '.join(cmd)}",
        )

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------


def kebab_case(value: str) -> str:
    """``myProjectName`` -> ``my-project-name``."""
    if not value:
        return ""
    return re.sub(r"([a-z])([A-Z])", r"\1-\2", value).lower()


def camel_case(value: str) -> str:
    """``my-project-name`` -> ``myProjectName``."""
    if not value:
        return ""
    return re.sub(r"-(.)", lambda m: m.group(1).upper(), value)


def capitalize(value: str) -> str:
    """Upper-case the first character only; the rest is left alone."""
    if not value:
        return ""
    return value[0].upper() + value[1:]


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        return {"_root": data}
    return data


async def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> None:
    """Save data as pretty-printed JSON with a trailing newline.

    Parent directories are created automatically and the write runs in a
    worker thread.
    """
    file_path = Path(path)
    content = json.dumps(data, indent=2, ensure_ascii=False, default=str) + "\n"
    await asyncio.to_thread(write_text_file, file_path, content)


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def write_text_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def read_text_if_exists(path: Path) -> str:
    if not path.is_file():
        return ""
    return path.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]")


class ConsoleLogger:
    """Leveled output on top of a Rich console.

    Messages are escaped, so text such as ``[auth] failed`` prints literally.
    ``debug`` output is dropped unless the logger was created with
    ``verbose=True``.
    """

    def __init__(self, output: Console | None = None, *, verbose: bool = False) -> None:
        self.console = output or console
        self.verbose = verbose

    def info(self, message: str) -> None:
        self.console.print(escape(message))

    def success(self, message: str) -> None:
        self.console.print(f"[bold green]{escape(message)}[/bold green]")

    def warn(self, message: str) -> None:
        self.console.print(f"[bold yellow]{escape(message)}[/bold yellow]")

    def error(self, message: str) -> None:
        self.console.print(f"[bold red]{escape(message)}[/bold red]")

    def debug(self, message: str) -> None:
        if self.verbose:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def steps(self, title: str, steps: list[str]) -> None:
        """Print a numbered list of follow-up steps inside a panel."""
        if not steps:
            return
        body = "\n".join(f"{i}. {escape(step)}" for i, step in enumerate(steps, 1))
        self.console.print(Panel(body, title=escape(title), border_style="cyan"))
