"""CLI entrypoint."""

from __future__ import annotations

import logging
import sys

import anyio
import uvicorn
from mcp.server.stdio import stdio_server

from .asgi import create_app
from .config import AppConfig, load_config
from .mcp_server import create_app_context, create_mcp_server, sync_if_stale
from .settings import Settings

logger = logging.getLogger(__name__)


async def run_stdio(settings: Settings, config: AppConfig) -> None:
    app_ctx = create_app_context(config, timeout_seconds=settings.http_timeout_seconds)
    server = create_mcp_server(app_ctx.tools, app_ctx.sync_gate)
    try:
        await sync_if_stale(app_ctx.sync_gate)
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await app_ctx.anki.aclose()


def main() -> None:
    settings = Settings()
    # stdout carries the stdio protocol, so logs go to stderr.
    logging.basicConfig(
        level=settings.log_level.upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(settings.config_path)
    logger.info("Loaded %d presets and %d note templates", len(config.presets), len(config.practice_notes))

    if (settings.transport or config.transport) == "http":
        logger.info("Serving MCP over HTTP on %s:%s", settings.mcp_host, settings.mcp_port)
        uvicorn.run(
            create_app(settings, config),
            host=settings.mcp_host,
            port=settings.mcp_port,
            log_level=settings.log_level.lower(),
        )
    else:
        anyio.run(run_stdio, settings, config)


if __name__ == "__main__":
    main()
