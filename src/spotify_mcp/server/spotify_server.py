"""Spotify MCP server for Claude Desktop integration.

This MCP server exposes Spotify Web API tools (search, browse, playlists,
personalization) to an AI agent. Authorization happens on the first call to
get_initial_context, which runs the OAuth flow over a loopback redirect when
no usable credentials are configured. Every other tool is rejected until
that call has succeeded.
"""

import asyncio
import json
import logging
import os
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import ValidationError

from spotify_mcp.__version__ import __version__
from spotify_mcp.auth import CredentialStore, OAuthManager
from spotify_mcp.client import SpotifyClient
from spotify_mcp.config import SpotifySettings
from spotify_mcp.errors import SpotifyMCPError
from spotify_mcp.gate import InitializationGate
from spotify_mcp.server.registry import ToolContext, ToolRegistry
from spotify_mcp.server.responses import render
from spotify_mcp.server.tools import register_all_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "spotify-mcp"


class SpotifyServer:
    """MCP server for the Spotify Web API.

    All collaborators are created here and shared by reference: the
    CredentialStore is read by the client and written by the OAuth manager,
    and the gate is checked by every registered tool.

    Attributes:
        server: MCP Server instance.
        settings: Configuration inputs.
        store: Credential store shared by the manager and the client.
        manager: OAuthManager for authorization and refresh.
        client: Authenticated Spotify API client.
        gate: Initialization gate guarding all non-initializer tools.
        registry: Registered tools.
    """

    def __init__(
        self,
        settings: SpotifySettings | None = None,
        store: CredentialStore | None = None,
        manager: OAuthManager | None = None,
        client: SpotifyClient | None = None,
        gate: InitializationGate | None = None,
        open_browser: bool = True,
    ) -> None:
        """Initialize the Spotify MCP server."""
        self.settings = settings or SpotifySettings.from_env()
        self.store = store or CredentialStore(
            access_token=self.settings.access_token,
            refresh_token=self.settings.refresh_token,
        )
        self.manager = manager or OAuthManager(self.settings, self.store)
        self.client = client or SpotifyClient(self.store, self.manager)
        self.gate = gate or InitializationGate()
        self.context = ToolContext(
            settings=self.settings,
            store=self.store,
            manager=self.manager,
            client=self.client,
            gate=self.gate,
            open_browser=open_browser,
        )
        self.registry = ToolRegistry(self.gate)
        register_all_tools(self.registry)

        self.server = Server(SERVER_NAME, version=__version__)
        self._setup_handlers()

    async def close(self) -> None:
        """Release the HTTP clients and any pending authorization listener."""
        await self.client.close()
        self.manager.close()

    def _setup_handlers(self) -> None:
        """Register MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """Return list of available tools."""
            return self.registry.list_tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            """Handle tool calls."""
            return [TextContent(type="text", text=await self.handle_tool_call(name, arguments))]

    async def handle_tool_call(self, name: str, arguments: dict[str, Any] | None) -> str:
        """Run a tool and render its result or error as text."""
        try:
            result = await self.registry.call(self.context, name, arguments or {})
        except SpotifyMCPError as e:
            logger.info("Tool %s failed: %s", name, type(e).__name__)
            return _error_text(str(e), e)
        except ValidationError as e:
            return _error_text(f"Invalid arguments for {name}: {_summarize_validation(e)}", e)
        except ValueError as e:
            return _error_text(str(e), e)
        except Exception as e:
            logger.exception(f"Error calling tool {name}")
            return _error_text(f"Unexpected error while running {name}: {e}", e)
        return render(result, self.settings.max_tool_token_output)

    async def run(self) -> None:
        """Run the MCP server using stdio transport."""
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.close()


def _error_text(message: str, exc: Exception) -> str:
    return json.dumps({"error": message, "error_type": type(exc).__name__}, indent=2)


def _summarize_validation(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def configure_logging() -> None:
    """Send logs to stderr; stdout carries the MCP protocol."""
    level = os.environ.get("SPOTIFY_MCP_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs full request URLs at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main() -> None:
    """Entry point for the Spotify MCP server."""
    configure_logging()
    server = SpotifyServer()
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
