"""MCP server definition (generated tools over the low-level server API)."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx
from mcp import types
from mcp.server.lowlevel import Server

from .anki_client import AnkiClient
from .config import SYNC_TOOL, AppConfig
from .errors import AnkiConnectError
from .sync import SyncGate
from .tools import GeneratedTool, ToolResult, generate_all_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "anki-mcp-server"
SERVER_VERSION = "2.0.0"


@dataclass(slots=True)
class AppContext:
    config: AppConfig
    anki: AnkiClient
    sync_gate: SyncGate
    tools: list[GeneratedTool]


def create_app_context(config: AppConfig, *, timeout_seconds: float = 15.0) -> AppContext:
    anki = AnkiClient(
        url=config.anki_connect.url,
        version=config.anki_connect.version,
        timeout_seconds=timeout_seconds,
    )
    gate = SyncGate(anki, interval_seconds=config.sync.sync_interval_seconds)
    return AppContext(
        config=config,
        anki=anki,
        sync_gate=gate,
        tools=generate_all_tools(config, anki, gate),
    )


async def sync_if_stale(gate: SyncGate) -> None:
    """Run the staleness gate; a failed sync must not fail the caller's request."""
    try:
        await gate.sync_if_stale()
    except (AnkiConnectError, httpx.HTTPError) as exc:
        logger.warning("Skipping AnkiWeb sync: %s", exc)


def create_mcp_server(tools: Sequence[GeneratedTool], sync_gate: SyncGate | None = None) -> Server:
    by_name = {tool.name: tool for tool in tools}
    server: Server = Server(
        SERVER_NAME,
        version=SERVER_VERSION,
        instructions=(
            "Search, browse and create Anki flashcards through preset tools. "
            "Search tools are paginated; request optional fields via 'include' only when needed."
        ),
    )

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [tool.to_mcp() for tool in tools]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> ToolResult:
        tool = by_name.get(name)
        if tool is None:
            raise ValueError(f"Unknown tool: {name}")
        if sync_gate is not None and name != SYNC_TOOL:
            await sync_if_stale(sync_gate)
        return await tool.handler(dict(arguments or {}))

    return server
