"""Tool registration for the Spotify MCP server.

Every tool is registered through ``ToolRegistry.add``, which validates the
arguments with the tool's pydantic model and wraps the handler with the
initialization gate. No handler can be reached without passing the gate.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from mcp.types import Tool
from pydantic import BaseModel

from spotify_mcp.auth import CredentialStore, OAuthManager
from spotify_mcp.client import SpotifyClient
from spotify_mcp.config import SpotifySettings
from spotify_mcp.gate import InitializationGate, gated

ToolResult = dict[str, Any] | str
ToolHandler = Callable[["ToolContext", Any], Awaitable[ToolResult]]


@dataclass
class ToolContext:
    """Shared collaborators handed to every tool handler."""

    settings: SpotifySettings
    store: CredentialStore
    manager: OAuthManager
    client: SpotifyClient
    gate: InitializationGate
    open_browser: bool = True


@dataclass
class RegisteredTool:
    name: str
    description: str
    params_model: type[BaseModel]
    run: Callable[[ToolContext, dict[str, Any]], Awaitable[ToolResult]]

    def definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.params_model.model_json_schema(),
        )


class ToolRegistry:
    """Named tools, each guarded by the initialization gate."""

    def __init__(self, gate: InitializationGate) -> None:
        self.gate = gate
        self._tools: dict[str, RegisteredTool] = {}

    def add(
        self,
        name: str,
        description: str,
        params_model: type[BaseModel],
        handler: ToolHandler,
    ) -> None:
        """Register a tool handler.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """
        if name in self._tools:
            raise ValueError(f"Tool already registered: {name}")

        @gated(self.gate, name)
        async def run(ctx: ToolContext, arguments: dict[str, Any]) -> ToolResult:
            params = params_model.model_validate(arguments or {})
            return await handler(ctx, params)

        self._tools[name] = RegisteredTool(name, description, params_model, run)

    def names(self) -> list[str]:
        return list(self._tools)

    def list_tools(self) -> list[Tool]:
        return [tool.definition() for tool in self._tools.values()]

    async def call(self, ctx: ToolContext, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Run a registered tool.

        Raises:
            ValueError: If tool name is not recognized.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ValueError(f"Unknown tool: {name}")
        return await tool.run(ctx, arguments)
