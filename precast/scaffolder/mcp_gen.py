"""Model Context Protocol server configuration for Claude.

Servers are either named explicitly (``--mcp``) or picked from the catalog by
their triggers.  The result is ``.claude/mcp.json`` plus an MCP section in
``.env.example`` listing the variables the servers read.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from precast.catalogs import MCP_SERVERS, MCPServer
from precast.config import ProjectConfig
from precast.scaffolder.env_file import append_section
from precast.utils import ConsoleLogger, save_json

MCP_ENV_MARKER = "# MCP (Model Context Protocol) Configuration"


def select_servers(config: ProjectConfig, logger: ConsoleLogger | None = None) -> list[MCPServer]:
    """Servers for *config*: the requested ids if any, else those whose triggers match."""
    if config.mcp_servers:
        invalid = [s for s in config.mcp_servers if s not in MCP_SERVERS]
        if invalid and logger is not None:
            logger.warn(f"Invalid MCP server IDs: {', '.join(invalid)}")
        return [MCP_SERVERS[s] for s in dict.fromkeys(config.mcp_servers) if s in MCP_SERVERS]
    return [server for server in MCP_SERVERS.values() if server.matches(config)]


def mcp_config(servers: list[MCPServer]) -> dict[str, Any]:
    return {
        "mcpServers": {
            s.config.server_name: {
                "command": s.config.command,
                "args": list(s.config.args),
                "env": dict(s.config.env),
            }
            for s in servers
        }
    }


def mcp_env_section(servers: list[MCPServer]) -> str:
    """``.env.example`` section for the servers' variables; empty if they need none."""
    lines: list[str] = []
    seen: set[str] = set()
    for server in servers:
        for key in server.config.env:
            if key in seen:
                continue
            seen.add(key)
            lines += [f"# {server.name} - {server.description}", f"{key}="]
    if not lines:
        return ""
    rule = "# " + "=" * 77
    return "\n".join([rule, MCP_ENV_MARKER, rule, *lines]) + "\n"


class MCPGenerator:
    def __init__(self, logger: ConsoleLogger | None = None) -> None:
        self.logger = logger or ConsoleLogger()

    async def generate(self, config: ProjectConfig, project_path: Path) -> list[MCPServer]:
        self.logger.info("Setting up MCP (Model Context Protocol) configuration...")
        servers = select_servers(config, self.logger)

        if config.mcp_servers and not servers:
            self.logger.warn(
                "None of the specified MCP servers were found. Available: "
                + ", ".join(MCP_SERVERS)
            )
            return []
        if not servers:
            self.logger.info("No MCP servers configured for this project setup")
            return []

        await save_json(mcp_config(servers), project_path / ".claude" / "mcp.json")

        section = mcp_env_section(servers)
        if section:
            await append_section(project_path / ".env.example", section, MCP_ENV_MARKER)

        self.logger.success(f"MCP configuration created with {len(servers)} server(s)")
        for server in servers:
            self.logger.info(f"  - {server.name}")
        return servers
