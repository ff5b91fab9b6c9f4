from __future__ import annotations

import asyncio

from mcp.server.fastmcp import FastMCP

from bitbucket_mcp.core.client import BitbucketClient
from bitbucket_mcp.core.config import Config, load_config
from bitbucket_mcp.core.logging import setup_logging
from bitbucket_mcp.core.registry import register_discovered_tools

SERVER_NAME = "bitbucket-mcp"


def build_app(client: BitbucketClient, config: Config) -> FastMCP:
    app = FastMCP(SERVER_NAME)
    register_discovered_tools(app, client, config)
    return app


# --- Entry point ----------------------------------------------------------- #


async def main() -> None:
    setup_logging()
    config = load_config()

    async with BitbucketClient(config) as client:
        app = build_app(client, config)
        await app.run_stdio_async()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
