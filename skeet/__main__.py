"""CLI entry point: python -m skeet"""

from __future__ import annotations

import argparse
import asyncio

import uvicorn

from skeet.app import create_app
from skeet.config import SkeetSettings
from skeet.gateway.mcp_server import serve_stdio
from skeet.observability.logging import setup_logging


def main() -> None:
    parser = argparse.ArgumentParser(prog="skeet", description="Skeet database tool gateway")
    parser.add_argument("--transport", choices=["stdio", "http"], default="stdio",
                        help="MCP over stdio (default) or the HTTP REST API")
    args = parser.parse_args()

    settings = SkeetSettings()
    setup_logging(settings.log_level)

    if args.transport == "http":
        uvicorn.run(
            create_app(settings),
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
        )
    else:
        asyncio.run(serve_stdio(settings))


if __name__ == "__main__":
    main()
