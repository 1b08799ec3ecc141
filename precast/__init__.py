"""precast: stack-aware project scaffolding.

Copies and renders template trees for a chosen framework, then layers on
auth, UI library, AI-assistant context, MCP and plugin setup.
"""

__version__ = "0.1.0"
